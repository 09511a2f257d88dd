import threading
import time

import pytest

from sqlstress.core.worker_pool import PoolShutdownError, WorkerPool


def _wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return False


def test_runs_all_tasks_then_drains_on_shutdown():
    pool = WorkerPool(size=4, capacity=100, poll_interval_seconds=0.01)
    done = []
    lock = threading.Lock()

    def _task(i):
        def run():
            with lock:
                done.append(i)

        return run

    for i in range(50):
        pool.submit(_task(i))
    pool.shutdown()

    assert pool.await_termination(5.0)
    assert sorted(done) == list(range(50))


def test_submit_after_shutdown_rejected():
    pool = WorkerPool(size=1, capacity=10, poll_interval_seconds=0.01)
    pool.shutdown()
    with pytest.raises(PoolShutdownError):
        pool.submit(lambda: None)
    assert pool.await_termination(5.0)


def test_shutdown_now_drops_queued_tasks():
    pool = WorkerPool(size=1, capacity=10, poll_interval_seconds=0.01)
    started = threading.Event()
    release = threading.Event()
    ran = []

    def _blocking():
        started.set()
        release.wait(5.0)

    pool.submit(_blocking)
    assert started.wait(5.0)
    for i in range(5):
        pool.submit(lambda i=i: ran.append(i))

    assert pool.queue_depth == 5
    assert pool.active_count == 1
    assert pool.shutdown_now() == 5
    release.set()

    assert pool.await_termination(5.0)
    assert ran == []


def test_worker_survives_task_exception():
    pool = WorkerPool(size=1, capacity=10, poll_interval_seconds=0.01)
    ran = threading.Event()

    def _boom():
        raise RuntimeError("boom")

    pool.submit(_boom)
    pool.submit(ran.set)

    assert ran.wait(5.0)
    pool.shutdown()
    assert pool.await_termination(5.0)


def test_await_termination_times_out_while_busy():
    pool = WorkerPool(size=1, capacity=10, poll_interval_seconds=0.01)
    release = threading.Event()
    pool.submit(lambda: release.wait(5.0))
    assert _wait_for(lambda: pool.active_count == 1)
    pool.shutdown()

    assert not pool.await_termination(0.05)
    release.set()
    assert pool.await_termination(5.0)


def test_size_validated():
    with pytest.raises(ValueError):
        WorkerPool(size=0, capacity=1)
