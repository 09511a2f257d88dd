"""
Parameter substitution for query templates.

Tokens look like `:name`. Each distinct token name found in a statement gets one
value drawn at random from its candidate list, and every occurrence of that
token in the statement is replaced with the same drawn value.
"""

from __future__ import annotations

import random
import re
from typing import Any, Mapping, Sequence

_TOKEN_RE = re.compile(r":(\w+)")


def format_value(value: Any) -> str:
    """Render a JSON candidate value as SQL text."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def token_pattern(name: str) -> re.Pattern[str]:
    """Pattern matching `:name` but not a longer token such as `:name_2`."""
    return re.compile(r":" + re.escape(name) + r"(?!\w)")


class ParameterResolver:
    """Substitutes `:name` tokens using configured candidate lists."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def resolve(self, sql: str, parameters: Mapping[str, Sequence[Any]] | None) -> str:
        if not parameters:
            return sql

        drawn: dict[str, str] = {}
        for match in _TOKEN_RE.finditer(sql):
            name = match.group(1)
            if name in drawn:
                continue
            candidates = parameters.get(name)
            if not candidates:
                continue
            drawn[name] = format_value(self._rng.choice(list(candidates)))

        if not drawn:
            return sql

        def _replace(match: re.Match[str]) -> str:
            return drawn.get(match.group(1), match.group(0))

        return _TOKEN_RE.sub(_replace, sql)
