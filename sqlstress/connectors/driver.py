"""
Driver Protocol Engine

Runs every statement on one shared DB-API connection. The connection is not
safe for concurrent use, so all calls are serialized behind a single lock:
a larger worker pool does not add real concurrency for this engine.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Optional, Sequence, Tuple
from urllib.parse import urlparse

import snowflake.connector
from snowflake.connector.errors import DatabaseError

from sqlstress.config import settings
from sqlstress.connectors.base import EngineConnectError
from sqlstress.models import Credentials, ExecutionOutcome

logger = logging.getLogger(__name__)


def use_statement(context: Sequence[str]) -> str:
    return "USE " + ".".join(context)


class DriverEngine:
    """
    Connection-based protocol engine.

    The last applied context path is private state of this engine and is only
    read or written while holding the connection lock. It is updated only
    after the `USE` statement succeeds.
    """

    name = "DRIVER"

    def __init__(self, connection: Any):
        self._connection = connection
        self._lock = threading.Lock()
        self._current_context: Tuple[str, ...] = ()

    @property
    def current_context(self) -> Tuple[str, ...]:
        with self._lock:
            return self._current_context

    def _run(self, sql: str) -> int:
        cursor = self._connection.cursor()
        try:
            cursor.execute(sql)
            rows = 0
            if cursor.description is not None:
                # Drain results so the engine does the full amount of work.
                rows = len(cursor.fetchall())
            return rows
        finally:
            cursor.close()

    def execute(
        self, sql: str, context: Optional[Sequence[str]] = None
    ) -> ExecutionOutcome:
        """Switch context if needed, then run the statement."""
        wanted = tuple(context or ())
        try:
            with self._lock:
                # No context means "run wherever the session currently is".
                if wanted and wanted != self._current_context:
                    logger.info("Switching context to %s", ".".join(wanted))
                    self._run(use_statement(wanted))
                    self._current_context = wanted
                rows = self._run(sql)
            logger.debug("Statement returned %d rows", rows)
            return ExecutionOutcome.success()
        except Exception as e:
            return ExecutionOutcome.failure(f"{type(e).__name__}: {e}")

    def close(self) -> None:
        with self._lock:
            self._connection.close()


def _account_and_host(endpoint: str) -> Tuple[str, Optional[str]]:
    """Split an endpoint into a Snowflake account identifier and optional host."""
    raw = endpoint.strip()
    if "://" in raw:
        raw = urlparse(raw).hostname or ""
    raw = raw.split("/", 1)[0].split(":", 1)[0]
    if not raw:
        raise EngineConnectError(f"invalid endpoint '{endpoint}'")
    if raw.endswith(".snowflakecomputing.com"):
        return raw[: -len(".snowflakecomputing.com")], raw
    return raw, None


def _load_private_key(path: str, passphrase: str) -> bytes:
    from cryptography.hazmat.backends import default_backend
    from cryptography.hazmat.primitives import serialization

    try:
        with open(path, "rb") as f:
            pem = f.read()
    except OSError as e:
        raise EngineConnectError(f"unable to read private key {path}: {e}") from e

    p_key = serialization.load_pem_private_key(
        pem,
        password=passphrase.encode() if passphrase else None,
        backend=default_backend(),
    )
    return p_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def connection_params(
    endpoint: str,
    credentials: Credentials,
    *,
    timeout_seconds: float,
    skip_tls_verification: bool = False,
) -> Dict[str, Any]:
    """Build keyword arguments for snowflake.connector.connect."""
    account, host = _account_and_host(endpoint)
    params: Dict[str, Any] = {
        "account": account,
        "user": credentials.username,
        "login_timeout": settings.SNOWFLAKE_CONNECT_LOGIN_TIMEOUT,
        "network_timeout": max(
            int(timeout_seconds), settings.SNOWFLAKE_CONNECT_NETWORK_TIMEOUT
        ),
        "session_parameters": {"QUERY_TAG": settings.SNOWFLAKE_QUERY_TAG},
    }
    if host:
        params["host"] = host

    if settings.SNOWFLAKE_PRIVATE_KEY_PATH:
        try:
            params["private_key"] = _load_private_key(
                settings.SNOWFLAKE_PRIVATE_KEY_PATH,
                settings.SNOWFLAKE_PRIVATE_KEY_PASSPHRASE,
            )
        except (ValueError, TypeError) as e:
            raise EngineConnectError(f"invalid private key: {e}") from e
    elif credentials.password:
        params["password"] = credentials.password
    else:
        raise EngineConnectError("No password or private key configured")

    if settings.SNOWFLAKE_WAREHOUSE:
        params["warehouse"] = settings.SNOWFLAKE_WAREHOUSE
    if settings.SNOWFLAKE_ROLE:
        params["role"] = settings.SNOWFLAKE_ROLE
    if skip_tls_verification:
        params["insecure_mode"] = True
    return params


def connect_snowflake(
    endpoint: str,
    credentials: Credentials,
    *,
    timeout_seconds: float,
    skip_tls_verification: bool = False,
) -> DriverEngine:
    """Open the single shared connection and wrap it in a DriverEngine."""
    params = connection_params(
        endpoint,
        credentials,
        timeout_seconds=timeout_seconds,
        skip_tls_verification=skip_tls_verification,
    )
    logger.info("Connecting to %s as %s", params["account"], credentials.username)
    try:
        connection = snowflake.connector.connect(**params)
    except DatabaseError as e:
        raise EngineConnectError(f"unable to connect to {endpoint}: {e}") from e
    return DriverEngine(connection)
