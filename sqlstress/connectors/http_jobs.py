"""
HTTP Job Protocol Engine

Submits SQL as an asynchronous job over the engine's REST API and polls the
job until it reaches a terminal state or the per-query timeout passes.

Every call owns its own polling loop, so concurrent calls run truly in
parallel (bounded only by the worker pool).
"""

import logging
import time
from typing import Any, Callable, Dict, Optional, Sequence

import httpx

from sqlstress.connectors.base import EngineConnectError
from sqlstress.models import Credentials, ExecutionOutcome

logger = logging.getLogger(__name__)

LOGIN_PATH = "/apiv2/login"
SQL_PATH = "/api/v3/sql"
JOB_PATH = "/api/v3/job"
TOKEN_PREFIX = "_dremio"

COMPLETED = "COMPLETED"
FAILED = "FAILED"
# States after which a job will not change any more. An empty state is
# treated as terminal too.
TERMINAL_STATES = frozenset(
    {
        COMPLETED,
        "CANCELED",
        "CANCELLED",
        FAILED,
        "INVALID_STATE",
        "CANCELLATION_REQUESTED",
        "",
    }
)
ALREADY_EXISTS_MARKER = "already exists."


class JobStatusError(Exception):
    """Raised when a job status response cannot be interpreted."""


def _json_body(response: httpx.Response) -> Dict[str, Any]:
    try:
        body = response.json()
    except ValueError as e:
        raise JobStatusError(
            f"could not read json '{response.text[:200]}': {e}"
        ) from e
    if not isinstance(body, dict):
        raise JobStatusError(f"unexpected response body {body!r}")
    return body


class HttpJobEngine:
    """
    Polling-HTTP protocol engine.

    Authenticates once at construction; failure raises EngineConnectError.
    """

    name = "HTTP"

    def __init__(
        self,
        base_url: str,
        credentials: Credentials,
        *,
        query_timeout_seconds: float = 3600.0,
        poll_interval_seconds: float = 0.5,
        request_timeout_seconds: float = 30.0,
        verify_tls: bool = True,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the engine and log in.

        Args:
            base_url: Engine base URL, e.g. http://localhost:9047
            credentials: Login user/password
            query_timeout_seconds: Max time a job may stay non-terminal
            poll_interval_seconds: Delay between job status checks
            request_timeout_seconds: Timeout for each individual HTTP request
            verify_tls: Whether to verify certificates and hostnames
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.query_timeout_seconds = float(query_timeout_seconds)
        self.poll_interval_seconds = max(0.0, float(poll_interval_seconds))
        self._sleep = sleep
        self._clock = clock

        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=request_timeout_seconds,
            verify=verify_tls,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )
        try:
            token = self._login(credentials)
        except Exception:
            self._client.close()
            raise
        self._client.headers["Authorization"] = f"{TOKEN_PREFIX}{token}"
        logger.info("Authenticated against %s as %s", self.base_url, credentials.username)

    def _login(self, credentials: Credentials) -> str:
        try:
            response = self._client.post(
                LOGIN_PATH,
                json={"userName": credentials.username, "password": credentials.password},
            )
        except httpx.HTTPError as e:
            raise EngineConnectError(f"failed sending login request: {e}") from e
        if response.status_code >= 400:
            raise EngineConnectError(
                f"login failed with status {response.status_code}: {response.text[:200]}"
            )
        try:
            body = _json_body(response)
        except JobStatusError as e:
            raise EngineConnectError(f"unable to read login response: {e}") from e
        token = body.get("token")
        if token is None or str(token) == "":
            raise EngineConnectError(f"unable to read token from {body!r}")
        return str(token)

    def _submit(self, sql: str, context: Optional[Sequence[str]]) -> str:
        payload: Dict[str, Any] = {"sql": sql}
        if context:
            payload["context"] = list(context)
        response = self._client.post(SQL_PATH, json=payload)
        if response.status_code >= 400:
            raise JobStatusError(
                f"job submission failed with status {response.status_code}: {response.text[:200]}"
            )
        body = _json_body(response)
        job_id = body.get("id")
        if job_id is None or str(job_id) == "":
            raise JobStatusError(f"no job id in response {body!r} so failing the query")
        return str(job_id)

    def _job_status(self, job_id: str) -> tuple[str, Optional[str]]:
        response = self._client.get(f"{JOB_PATH}/{job_id}")
        if response.status_code >= 400:
            raise JobStatusError(
                f"job status request failed with status {response.status_code}: {response.text[:200]}"
            )
        body = _json_body(response)
        if "jobState" not in body:
            raise JobStatusError(f"invalid result body for id {job_id}: {body!r}")
        state = body.get("jobState")
        state_str = "" if state is None else str(state)
        return state_str, body.get("errorMessage")

    def _wait_for_job(self, job_id: str) -> ExecutionOutcome:
        deadline = self._clock() + self.query_timeout_seconds
        last_state = ""
        while self._clock() < deadline:
            self._sleep(self.poll_interval_seconds)
            state, error_message = self._job_status(job_id)
            if state not in TERMINAL_STATES:
                last_state = state
                continue
            if state == COMPLETED:
                return ExecutionOutcome.success()
            if state == FAILED and error_message and ALREADY_EXISTS_MARKER in str(error_message):
                logger.debug("job %s failed with 'already exists', counting as success", job_id)
                return ExecutionOutcome.success()
            return ExecutionOutcome.failure(
                f"job {job_id} finished in state '{state}': {error_message}"
            )
        return ExecutionOutcome.failure(
            f"query timed out after {self.query_timeout_seconds:.0f} seconds. "
            f"state was {last_state or 'unknown'}"
        )

    def execute(
        self, sql: str, context: Optional[Sequence[str]] = None
    ) -> ExecutionOutcome:
        """Submit one statement and wait for its job to finish."""
        if not sql or not sql.strip():
            return ExecutionOutcome.failure("sql cannot be empty")
        try:
            job_id = self._submit(sql, context)
            return self._wait_for_job(job_id)
        except (httpx.HTTPError, JobStatusError) as e:
            return ExecutionOutcome.failure(str(e))

    def close(self) -> None:
        self._client.close()
