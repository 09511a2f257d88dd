"""
Run Configuration Models

Defines the validated options for a single stress run:
- where the workload comes from and how it is interpreted
- how the next query is chosen
- which protocol executes it and against which endpoint
- concurrency, timeout and duration limits
"""

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class WorkloadFileType(str, Enum):
    """Supported workload inputs."""

    STRESS_JSON = "stress_json"  # Declarative queries + queryGroups document
    QUERIES_JSON = "queries_json"  # Replay of a historical query log


class ExecutionSequence(str, Enum):
    """How the dispatcher picks the next pool entry."""

    RANDOM = "random"
    SEQUENTIAL = "sequential"


class ProtocolKind(str, Enum):
    """Supported protocol engines."""

    HTTP = "http"  # Asynchronous job submission + status polling
    DRIVER = "driver"  # One shared driver connection


class Credentials(BaseModel):
    """Username/password pair used at connect time."""

    model_config = ConfigDict(frozen=True)

    username: str = Field("", description="Login user")
    password: str = Field("", description="Login password", repr=False)


class StressOptions(BaseModel):
    """
    Configuration for one stress run.

    Built by the command line layer; the core only reads it.
    """

    model_config = ConfigDict(frozen=True)

    workload_path: Path = Field(..., description="stress.json, queries.json file or directory")
    file_type: WorkloadFileType = Field(
        WorkloadFileType.STRESS_JSON, description="How to interpret workload_path"
    )
    execution_sequence: ExecutionSequence = Field(
        ExecutionSequence.RANDOM, description="Random or sequential selection"
    )
    restart_index: Optional[int] = Field(
        None,
        ge=0,
        description="Sequential mode: resume after this pool index",
    )
    limit_results: Optional[int] = Field(
        None, ge=1, description="Replay mode: LIMIT injected into every query"
    )

    protocol: ProtocolKind = Field(ProtocolKind.HTTP, description="Protocol engine")
    endpoint: str = Field(..., min_length=1, description="HTTP base URL or account")
    credentials: Credentials = Field(default_factory=Credentials)
    skip_tls_verification: bool = Field(
        False, description="Skip certificate and hostname checks"
    )

    max_queries_in_flight: int = Field(
        32, ge=1, description="Worker pool size"
    )
    query_timeout_seconds: int = Field(
        3600, ge=1, description="Per-query timeout (HTTP protocol)"
    )
    duration_seconds: int = Field(600, ge=1, description="Total run duration")

    @property
    def duration_target_ms(self) -> int:
        return int(self.duration_seconds) * 1000
