"""
Replay Loader

Turns historical query-log records (queries.json, one JSON object per line)
into single-frequency query templates.

Records are skipped when they were run by the engine's internal system user,
did not complete, carry the "NA" non-SQL marker, or contain DDL/DML keywords.
"""

from __future__ import annotations

import gzip
import io
import logging
import re
from pathlib import Path
from typing import IO, Iterable, Iterator, List, Optional

from pydantic import ValidationError

from sqlstress.core.query_pool import WorkloadError
from sqlstress.models import QueryTemplate, ReplayRecord

logger = logging.getLogger(__name__)

SYSTEM_USER = "$dremio$"
COMPLETED_OUTCOME = "COMPLETED"
NON_SQL_MARKER = "NA"

_BLOCKED_KEYWORDS = (
    "create",
    "alter",
    "drop",
    "insert",
    "update",
    "delete",
    "grant",
    "revoke",
    "password",
)
_BLOCKED_RE = re.compile(r"\b(?:" + "|".join(_BLOCKED_KEYWORDS) + r")\s")
# Only a LIMIT closing the statement belongs to the outermost query.
_TRAILING_LIMIT_RE = re.compile(
    r"\blimit\s+\d+(?=(?:\s+offset\s+\d+)?\s*;?\s*$)", re.IGNORECASE
)
_CONTEXT_SPLIT_RE = re.compile(r",\s*")


def is_replayable(record: ReplayRecord) -> bool:
    if record.username == SYSTEM_USER:
        return False
    if record.outcome != COMPLETED_OUTCOME:
        return False
    text = record.query_text
    if not text or text == NON_SQL_MARKER:
        return False
    if _BLOCKED_RE.search(text.lower()):
        return False
    return True


def parse_context(raw: Optional[str]) -> List[str]:
    """Parse a bracketed, comma-separated context such as `[space, folder]`."""
    if raw is None:
        return []
    stripped = raw.strip()
    if stripped.startswith("["):
        stripped = stripped[1:]
    if stripped.endswith("]"):
        stripped = stripped[:-1]
    stripped = stripped.strip()
    if not stripped:
        return []
    return [part for part in _CONTEXT_SPLIT_RE.split(stripped) if part]


def apply_limit(sql: str, limit: int) -> str:
    """Replace the statement's trailing LIMIT n clause or append one.

    LIMIT clauses inside subqueries and CTEs are left untouched.
    """
    replacement = f"LIMIT {int(limit)}"
    if _TRAILING_LIMIT_RE.search(sql):
        return _TRAILING_LIMIT_RE.sub(replacement, sql, count=1)
    return f"{sql.rstrip().rstrip(';').rstrip()} {replacement}"


def to_template(record: ReplayRecord, *, limit_results: int | None = None) -> QueryTemplate:
    sql = record.query_text or ""
    if limit_results is not None:
        sql = apply_limit(sql, limit_results)
    sql = f"/* replayed query id: {record.query_id or 'unknown'} */ {sql}"
    return QueryTemplate(
        query=sql,
        frequency=1,
        sqlContext=parse_context(record.context),
    )


def parse_replay_lines(
    lines: Iterable[str],
    *,
    limit_results: int | None = None,
    source: str = "<stream>",
) -> List[QueryTemplate]:
    """Filter and convert replay records; blank lines are ignored."""
    templates: List[QueryTemplate] = []
    skipped = 0
    for line_no, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            record = ReplayRecord.model_validate_json(line)
        except ValidationError as e:
            raise WorkloadError(
                f"invalid query log record at {source}:{line_no}: {e}"
            ) from e
        if not is_replayable(record):
            skipped += 1
            continue
        templates.append(to_template(record, limit_results=limit_results))
    logger.debug(
        "Read %d replayable queries from %s (%d skipped)",
        len(templates),
        source,
        skipped,
    )
    return templates


def _open_text(path: Path) -> Optional[IO[str]]:
    name = path.name.lower()
    if name.endswith(".gz"):
        return io.TextIOWrapper(gzip.open(path, "rb"), encoding="utf-8")
    if name.endswith(".json"):
        return path.open("r", encoding="utf-8")
    return None


def load_replay_file(path: Path, *, limit_results: int | None = None) -> List[QueryTemplate]:
    stream = _open_text(path)
    if stream is None:
        logger.warning("Skipping %s: expected a .json or .json.gz file", path)
        return []
    try:
        with stream:
            return parse_replay_lines(
                stream, limit_results=limit_results, source=str(path)
            )
    except (OSError, EOFError, UnicodeDecodeError) as e:
        raise WorkloadError(f"unable to read query log {path}: {e}") from e


def _iter_replay_files(path: Path) -> Iterator[Path]:
    if path.is_dir():
        for child in sorted(path.iterdir()):
            if child.is_file():
                yield child
    else:
        yield path


def load_replay_templates(
    path: Path, *, limit_results: int | None = None
) -> List[QueryTemplate]:
    """Load a queries.json file, a gzip-compressed one, or a directory of them."""
    if not path.exists():
        raise WorkloadError(f"query log path {path} does not exist")
    templates: List[QueryTemplate] = []
    for file_path in _iter_replay_files(path):
        templates.extend(load_replay_file(file_path, limit_results=limit_results))
    logger.info("Loaded %d replayable queries from %s", len(templates), path)
    return templates
