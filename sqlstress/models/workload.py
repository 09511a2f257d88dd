"""
Workload Models

Defines Pydantic models for the declarative workload description (stress.json)
and for replayed query-log records (queries.json), plus the ephemeral
ResolvedQuery handed to a protocol engine.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Sequence(BaseModel):
    """
    Integer range expanded into one query per value.

    Every `:name` token in the statement is replaced with the current value.
    """

    name: str = Field(..., min_length=1, description="Token name (without ':')")
    start: int = Field(..., description="First value (inclusive)")
    end: int = Field(..., description="Last value (inclusive)")
    step: int = Field(1, ge=1, description="Increment between values")

    @model_validator(mode="after")
    def validate_range(self) -> "Sequence":
        if self.end < self.start:
            raise ValueError(
                f"sequence '{self.name}' end ({self.end}) is before start ({self.start})"
            )
        return self

    def values(self) -> range:
        return range(self.start, self.end + 1, self.step)


class QueryTemplate(BaseModel):
    """
    A configured, not-yet-executed query definition.

    Exactly one of `query` (literal SQL) or `queryGroup` (name of a QueryGroup)
    must be set.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    text: Optional[str] = Field(None, alias="query", description="Literal SQL")
    group_ref: Optional[str] = Field(
        None, alias="queryGroup", description="Name of a query group"
    )
    frequency: int = Field(
        1, description="Relative weight; values below 1 are treated as 1"
    )
    parameters: Dict[str, List[Any]] = Field(
        default_factory=dict,
        description="Candidate values per ':name' token",
    )
    sql_context: List[str] = Field(
        default_factory=list,
        alias="sqlContext",
        description="Catalog/schema path segments",
    )
    sequence: Optional[Sequence] = Field(None, description="Sequence expansion")

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # JSON `null` means "not configured"; a null frequency falls back to 1.
        if isinstance(data, dict):
            data = dict(data)
            for key in ("frequency", "parameters", "sqlContext", "sql_context"):
                if key in data and data[key] is None:
                    data.pop(key)
        return data

    @model_validator(mode="after")
    def validate_query_or_group(self):
        """Validate that exactly one of query/queryGroup is given."""
        has_text = bool(self.text)
        has_group = bool(self.group_ref)
        if has_text and has_group:
            raise ValueError(
                "a query entry cannot set both 'query' and 'queryGroup'"
            )
        if not has_text and not has_group:
            raise ValueError(
                "a query entry must set either 'query' or 'queryGroup'"
            )
        return self

    @property
    def weight(self) -> int:
        return max(int(self.frequency), 1)


class QueryGroup(BaseModel):
    """Ordered list of literal SQL statements executed as one unit."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Group name")
    queries: List[str] = Field(..., description="Statements in execution order")


class WorkloadConfig(BaseModel):
    """
    Top level stress.json document.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    queries: List[QueryTemplate] = Field(..., description="Query templates")
    query_groups: List[QueryGroup] = Field(
        default_factory=list, alias="queryGroups", description="Named query groups"
    )

    @model_validator(mode="before")
    @classmethod
    def _default_groups(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("queryGroups", []) is None:
            data = dict(data)
            data.pop("queryGroups")
        return data


class ReplayRecord(BaseModel):
    """
    One line of a historical query log (queries.json).
    """

    model_config = ConfigDict(
        populate_by_name=True, extra="ignore", coerce_numbers_to_str=True
    )

    query_text: Optional[str] = Field(None, alias="queryText")
    outcome: Optional[str] = Field(None, description="Final job state")
    context: Optional[str] = Field(None, description="Bracketed context list")
    username: Optional[str] = Field(None, description="User that ran the query")
    query_id: Optional[str] = Field(None, alias="queryId")


@dataclass(frozen=True)
class ResolvedQuery:
    """Final SQL text plus the context path to apply (None means no context)."""

    sql: str
    context: Optional[Tuple[str, ...]] = None
