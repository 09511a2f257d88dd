"""
Query Pool Builder

Expands a workload description into the flat, frequency-weighted pool the
dispatcher samples from. A template with frequency N appears N times, so a
uniform pick over the pool is a weighted pick over the templates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List

from pydantic import ValidationError

from sqlstress.models import (
    QueryGroup,
    QueryTemplate,
    WorkloadConfig,
    WorkloadFileType,
)

logger = logging.getLogger(__name__)


class WorkloadError(ValueError):
    """Raised when a workload description cannot be loaded or is invalid."""


@dataclass(frozen=True)
class QueryPool:
    """Immutable result of pool building."""

    entries: tuple[QueryTemplate, ...]
    groups: Dict[str, QueryGroup] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.entries)

    def __getitem__(self, index: int) -> QueryTemplate:
        return self.entries[index]


def build_group_map(groups: Iterable[QueryGroup]) -> Dict[str, QueryGroup]:
    """Index groups by name; duplicate or empty groups are configuration errors."""
    out: Dict[str, QueryGroup] = {}
    for group in groups:
        if group.name in out:
            raise WorkloadError(
                "unable to read workload because there are at least two query groups "
                f"named {group.name}"
            )
        if not group.queries:
            raise WorkloadError(
                f"invalid workload: query group {group.name} has zero queries"
            )
        out[group.name] = group
    return out


def expand_frequencies(templates: Iterable[QueryTemplate]) -> List[QueryTemplate]:
    """Repeat every template max(frequency, 1) times, preserving order."""
    pool: List[QueryTemplate] = []
    for template in templates:
        pool.extend([template] * template.weight)
    return pool


class QueryPoolBuilder:
    """Builds a QueryPool from a declarative workload or replay templates."""

    def build(self, workload: WorkloadConfig) -> QueryPool:
        groups = build_group_map(workload.query_groups)
        for template in workload.queries:
            if template.group_ref and template.group_ref not in groups:
                raise WorkloadError(
                    f"query entry references unknown query group {template.group_ref!r}"
                )
        entries = expand_frequencies(workload.queries)
        if not entries:
            raise WorkloadError("workload contains no queries")
        logger.info(
            "Built query pool: %d templates, %d groups, %d pool entries",
            len(workload.queries),
            len(groups),
            len(entries),
        )
        return QueryPool(entries=tuple(entries), groups=groups)

    def build_from_templates(self, templates: Iterable[QueryTemplate]) -> QueryPool:
        entries = expand_frequencies(templates)
        if not entries:
            raise WorkloadError("no replayable queries found")
        logger.info("Built replay query pool: %d pool entries", len(entries))
        return QueryPool(entries=tuple(entries))


def parse_workload(text: str) -> WorkloadConfig:
    try:
        return WorkloadConfig.model_validate_json(text)
    except ValidationError as e:
        raise WorkloadError(f"invalid workload description: {e}") from e


def load_workload(path: Path) -> WorkloadConfig:
    """Read and validate a stress.json file."""
    if not path.is_file():
        raise WorkloadError(f"workload file {path} does not exist")
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise WorkloadError(f"unable to read workload file {path}: {e}") from e
    return parse_workload(text)


def load_query_pool(
    path: Path,
    file_type: WorkloadFileType,
    *,
    limit_results: int | None = None,
) -> QueryPool:
    """Build the pool for either supported workload input."""
    builder = QueryPoolBuilder()
    if file_type == WorkloadFileType.QUERIES_JSON:
        # replay imports WorkloadError from this module
        from sqlstress.core.replay import load_replay_templates

        return builder.build_from_templates(
            load_replay_templates(path, limit_results=limit_results)
        )
    return builder.build(load_workload(path))
