"""Command line entry point for a stress run."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from pydantic import ValidationError

from sqlstress import __version__
from sqlstress.config import settings
from sqlstress.core.stress_exec import StressRun
from sqlstress.models import (
    Credentials,
    ExecutionSequence,
    ProtocolKind,
    StressOptions,
    WorkloadFileType,
)

logger = logging.getLogger(__name__)

NOISY_LOGGERS = ("snowflake.connector", "httpx", "httpcore")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sqlstress",
        description="Run a sustained, weighted query workload against a SQL engine.",
    )
    parser.add_argument(
        "workload", type=Path, help="The file (or replay directory) to use for stress definitions"
    )
    parser.add_argument(
        "-q",
        "--max-queries-in-flight",
        type=int,
        default=settings.DEFAULT_MAX_QUERIES_IN_FLIGHT,
        help="Max number of queries in flight (if possible)",
    )
    parser.add_argument(
        "-t",
        "--timeout-seconds",
        type=int,
        default=settings.DEFAULT_QUERY_TIMEOUT_SECONDS,
        help="Per-query timeout (http protocol only)",
    )
    parser.add_argument(
        "-d",
        "--duration-seconds",
        type=int,
        default=settings.DEFAULT_DURATION_SECONDS,
        help="Duration in seconds to run stress",
    )
    parser.add_argument(
        "-l",
        "--host",
        default=settings.DEFAULT_ENDPOINT,
        help="HTTP url of the engine (http) or account/host (driver)",
    )
    parser.add_argument("-u", "--user", default=settings.DEFAULT_USERNAME, help="Login user")
    parser.add_argument(
        "-p", "--password", default=settings.DEFAULT_PASSWORD, help="Login password"
    )
    parser.add_argument(
        "-s",
        "--skip-ssl-verification",
        action="store_true",
        help="Skip certificate and hostname verification",
    )
    parser.add_argument(
        "--protocol",
        choices=[p.value for p in ProtocolKind],
        default=ProtocolKind.HTTP.value,
        help="Protocol used to submit queries",
    )
    parser.add_argument(
        "--file-type",
        choices=[f.value for f in WorkloadFileType],
        default=WorkloadFileType.STRESS_JSON.value,
        help="stress_json for a declarative workload, queries_json for replay logs",
    )
    parser.add_argument(
        "--sequence",
        choices=[s.value for s in ExecutionSequence],
        default=ExecutionSequence.RANDOM.value,
        help="Pick pool entries at random or in order",
    )
    parser.add_argument(
        "--restart-index",
        type=int,
        default=None,
        help="Sequential mode: resume after this query index",
    )
    parser.add_argument(
        "--limit-results",
        type=int,
        default=None,
        help="Replay mode: inject LIMIT n into every replayed query",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    return parser


def configure_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(level=level, format=settings.LOG_FORMAT, stream=sys.stderr)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def build_options(args: argparse.Namespace) -> StressOptions:
    return StressOptions(
        workload_path=args.workload,
        file_type=WorkloadFileType(args.file_type),
        execution_sequence=ExecutionSequence(args.sequence),
        restart_index=args.restart_index,
        limit_results=args.limit_results,
        protocol=ProtocolKind(args.protocol),
        endpoint=args.host,
        credentials=Credentials(username=args.user or "", password=args.password or ""),
        skip_tls_verification=args.skip_ssl_verification,
        max_queries_in_flight=args.max_queries_in_flight,
        query_timeout_seconds=args.timeout_seconds,
        duration_seconds=args.duration_seconds,
    )


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)
    logger.info("sqlstress version %s", __version__)

    try:
        options = build_options(args)
    except ValidationError as e:
        parser.error(str(e))

    try:
        return StressRun(options).run()
    except KeyboardInterrupt:
        print("[sqlstress] interrupted", file=sys.stderr)
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
