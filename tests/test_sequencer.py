import random
import threading

import pytest

from sqlstress.core.sequencer import (
    RandomSequencer,
    SequentialSequencer,
    create_sequencer,
)
from sqlstress.models import ExecutionSequence


def test_sequential_from_start():
    seq = SequentialSequencer(3)
    assert [seq.next_index() for _ in range(3)] == [0, 1, 2]
    assert not seq.exhausted
    assert seq.next_index() is None
    assert seq.exhausted
    assert seq.last_index == 2


def test_sequential_restart_index():
    seq = SequentialSequencer(5, restart_index=2)
    assert seq.next_index() == 3
    assert seq.next_index() == 4
    assert seq.next_index() is None
    assert seq.exhausted


def test_restart_at_last_index_is_immediately_exhausted():
    seq = SequentialSequencer(3, restart_index=2)
    assert seq.next_index() is None
    assert seq.exhausted


def test_sequential_is_thread_safe():
    seq = SequentialSequencer(2000)
    seen = []
    lock = threading.Lock()

    def _pull():
        while True:
            index = seq.next_index()
            if index is None:
                return
            with lock:
                seen.append(index)

    threads = [threading.Thread(target=_pull) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(seen) == list(range(2000))


def test_random_stays_in_range():
    seq = RandomSequencer(4, random.Random(3))
    picks = {seq.next_index() for _ in range(200)}
    assert picks <= {0, 1, 2, 3}
    assert len(picks) == 4
    assert not seq.exhausted
    assert seq.last_index in picks


def test_factory_and_validation():
    assert isinstance(create_sequencer(ExecutionSequence.RANDOM, 2), RandomSequencer)
    assert isinstance(
        create_sequencer(ExecutionSequence.SEQUENTIAL, 2, restart_index=0),
        SequentialSequencer,
    )
    with pytest.raises(ValueError):
        SequentialSequencer(0)
