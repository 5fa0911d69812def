"""
Data models for the remediation job.

Uses Pydantic for validation and serialization.
"""
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class JobRecord(BaseModel):
    """A job document as read from the collection.

    Absent and null fields are both represented as None.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Any = Field(alias="_id")
    job_id: Optional[Any] = None
    client_code: Optional[Any] = None
    num_search: Optional[Any] = None


class OutcomeRecord(BaseModel):
    """Classification of one remediation attempt."""

    record_id: str
    outcome: Literal["updated", "skipped", "errored"]
    error: Optional[str] = None


class RunSummary(BaseModel):
    """Summary of a remediation run."""

    run_id: str
    total: int
    scanned: int = 0
    updated: int = 0
    skipped: int = 0
    errored: int = 0
    cursor_fault: Optional[str] = None
    duration_seconds: float = 0.0
