"""
Protocol engines and the factory that selects one at startup.
"""

import logging

from sqlstress.config import settings
from sqlstress.connectors.base import EngineConnectError, ProtocolEngine
from sqlstress.connectors.driver import DriverEngine, connect_snowflake
from sqlstress.connectors.http_jobs import HttpJobEngine
from sqlstress.models import Credentials, ProtocolKind

logger = logging.getLogger(__name__)


def connect(
    credentials: Credentials,
    endpoint: str,
    timeout_seconds: float,
    protocol: ProtocolKind,
    skip_tls_verification: bool = False,
) -> ProtocolEngine:
    """
    Open a protocol engine for the given endpoint.

    Raises:
        EngineConnectError: authentication or connection failed
    """
    if protocol == ProtocolKind.HTTP:
        return HttpJobEngine(
            endpoint,
            credentials,
            query_timeout_seconds=timeout_seconds,
            poll_interval_seconds=settings.HTTP_POLL_INTERVAL_SECONDS,
            request_timeout_seconds=settings.HTTP_REQUEST_TIMEOUT_SECONDS,
            verify_tls=not skip_tls_verification,
        )
    if protocol == ProtocolKind.DRIVER:
        return connect_snowflake(
            endpoint,
            credentials,
            timeout_seconds=timeout_seconds,
            skip_tls_verification=skip_tls_verification,
        )
    raise EngineConnectError(f"unsupported protocol {protocol!r}")


__all__ = [
    "DriverEngine",
    "EngineConnectError",
    "HttpJobEngine",
    "ProtocolEngine",
    "connect",
    "connect_snowflake",
]
