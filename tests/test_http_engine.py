import json

import httpx
import pytest

from sqlstress.connectors.base import EngineConnectError
from sqlstress.connectors.http_jobs import HttpJobEngine
from sqlstress.models import Credentials


class _Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.now += seconds


class _FakeJobServer:
    """In-memory stand-in for the job REST API."""

    def __init__(self, states=("COMPLETED",), error_message=None, job_id="job-1"):
        self.states = list(states)
        self.error_message = error_message
        self.job_id = job_id
        self.login_status = 200
        self.login_body = {"token": "abc123"}
        self.submitted = []
        self.polls = 0
        self.auth_headers = []
        self.down = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/apiv2/login":
            assert json.loads(request.content) == {"userName": "admin", "password": "secret"}
            return httpx.Response(self.login_status, json=self.login_body)

        if self.down:
            raise httpx.ConnectError("connection refused", request=request)
        self.auth_headers.append(request.headers.get("Authorization"))
        if path == "/api/v3/sql" and request.method == "POST":
            self.submitted.append(json.loads(request.content))
            body = {"id": self.job_id} if self.job_id else {}
            return httpx.Response(200, json=body)
        if path.startswith("/api/v3/job/") and request.method == "GET":
            self.polls += 1
            state = self.states.pop(0) if len(self.states) > 1 else self.states[0]
            body = {"jobState": state}
            if self.error_message:
                body["errorMessage"] = self.error_message
            return httpx.Response(200, json=body)
        return httpx.Response(404, text="not found")


def _engine(server, clock=None, **kwargs):
    clock = clock or _Clock()
    return HttpJobEngine(
        "http://engine.test:9047/",
        Credentials(username="admin", password="secret"),
        transport=httpx.MockTransport(server.handler),
        sleep=clock.sleep,
        clock=clock,
        **kwargs,
    )


def test_completed_job_succeeds():
    server = _FakeJobServer(states=["RUNNING", "ENQUEUED", "COMPLETED"])
    engine = _engine(server)

    outcome = engine.execute("select 1", ("space", "folder"))

    assert outcome.successful
    assert server.polls == 3
    assert server.submitted == [{"sql": "select 1", "context": ["space", "folder"]}]
    assert set(server.auth_headers) == {"_dremioabc123"}
    engine.close()


def test_context_omitted_when_empty():
    server = _FakeJobServer()
    engine = _engine(server)
    engine.execute("select 1")
    assert server.submitted == [{"sql": "select 1"}]


def test_already_exists_failure_counts_as_success():
    server = _FakeJobServer(
        states=["FAILED"], error_message="Table [scratch.t] already exists."
    )
    assert _engine(server).execute("create table scratch.t as select 1").successful


@pytest.mark.parametrize(
    "state", ["FAILED", "CANCELED", "CANCELLED", "INVALID_STATE", "CANCELLATION_REQUESTED", ""]
)
def test_other_terminal_states_fail(state):
    server = _FakeJobServer(states=[state], error_message="boom")
    outcome = _engine(server).execute("select 1")
    assert not outcome.successful
    assert "job-1" in outcome.error_message


def test_stuck_job_times_out():
    server = _FakeJobServer(states=["RUNNING"])
    clock = _Clock()
    engine = _engine(server, clock, query_timeout_seconds=2, poll_interval_seconds=0.5)

    outcome = engine.execute("select 1")

    assert not outcome.successful
    assert "timed out" in outcome.error_message
    assert "RUNNING" in outcome.error_message
    assert server.polls == 4


def test_missing_job_id_fails():
    server = _FakeJobServer(job_id=None)
    outcome = _engine(server).execute("select 1")
    assert not outcome.successful
    assert "no job id" in outcome.error_message
    assert server.polls == 0


def test_transport_error_becomes_failure():
    server = _FakeJobServer()
    engine = _engine(server)
    server.down = True
    outcome = engine.execute("select 1")

    assert not outcome.successful
    assert "connection refused" in outcome.error_message


def test_login_rejected():
    server = _FakeJobServer()
    server.login_status = 401
    server.login_body = {"errorMessage": "Invalid username or password"}
    with pytest.raises(EngineConnectError, match="401"):
        _engine(server)


def test_login_without_token():
    server = _FakeJobServer()
    server.login_body = {"userName": "admin"}
    with pytest.raises(EngineConnectError, match="token"):
        _engine(server)
