"""
Query Mapper

Turns one pool entry into the burst of executable statements it stands for:
group expansion, parameter substitution, then sequence expansion.
"""

from __future__ import annotations

import logging
from typing import List, Mapping

from sqlstress.core.parameters import ParameterResolver, token_pattern
from sqlstress.core.query_pool import WorkloadError
from sqlstress.models import QueryGroup, QueryTemplate, ResolvedQuery

logger = logging.getLogger(__name__)


class QueryMapper:
    """Resolves templates into ResolvedQuery bursts."""

    def __init__(
        self,
        groups: Mapping[str, QueryGroup] | None = None,
        resolver: ParameterResolver | None = None,
    ) -> None:
        self._groups = dict(groups or {})
        self._resolver = resolver or ParameterResolver()

    def raw_queries(self, template: QueryTemplate) -> List[str]:
        if template.group_ref:
            group = self._groups.get(template.group_ref)
            if group is None:
                raise WorkloadError(
                    f"query entry references unknown query group {template.group_ref!r}"
                )
            return list(group.queries)
        if template.text:
            return [template.text]
        return []

    def resolve(self, template: QueryTemplate) -> List[ResolvedQuery]:
        """
        Resolve a template into one or more statements.

        Statements from a sequence expansion carry no context; otherwise every
        statement carries the template's sqlContext (or None when unset).
        """
        context = tuple(template.sql_context) if template.sql_context else None
        resolved: List[ResolvedQuery] = []
        for raw in self.raw_queries(template):
            sql = self._resolver.resolve(raw, template.parameters)
            sequence = template.sequence
            if sequence is not None:
                pattern = token_pattern(sequence.name)
                for value in sequence.values():
                    resolved.append(ResolvedQuery(sql=pattern.sub(str(value), sql)))
            else:
                resolved.append(ResolvedQuery(sql=sql, context=context))
        return resolved
