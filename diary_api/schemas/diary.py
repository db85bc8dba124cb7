"""
Diary Backend — Pydantic Request/Response Schemas
==================================================

What:  Pydantic models defining the JSON contract of /api and /summary-data.
How:   FastAPI serializes route return values through these models (by alias,
       so the summary keeps its camelCase field names on the wire) and
       generates the OpenAPI document from them.
Who:   Used by services as return types and by routes as response models.

Every body carries `ok`. Error bodies are produced by the global exception
handlers in main.py using ErrorResponse.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

# A questionnaire answer: one choice, or several tags
FieldValue = Union[str, List[str]]


# ══════════════════════════════════════════════════════════════════════════
# Stored Record
# ══════════════════════════════════════════════════════════════════════════


class DiaryRecord(BaseModel):
    """
    What:  The value persisted under a RecordKey.

    `data` is schema-free from the store's point of view. The summary
    resolves the values it understands (FieldValue) field by field.
    """
    received_at: str = Field(description="Creation time (UTC ISO 8601, millisecond precision)")
    updated_at: Optional[str] = Field(
        default=None,
        description="Last edit time (UTC ISO 8601); absent until the record is updated",
    )
    data: Dict[str, Any] = Field(default_factory=dict, description="Questionnaire answers")

    def to_document(self) -> Dict[str, Any]:
        """JSON-ready dict for the store; omits updated_at until an edit happened."""
        return self.model_dump(exclude_none=True)


# ══════════════════════════════════════════════════════════════════════════
# Record Endpoint Responses
# ══════════════════════════════════════════════════════════════════════════


class KeyResponse(BaseModel):
    """Returned by create, update and delete."""
    ok: bool = True
    key: str = Field(description="RecordKey of the affected record")


class DiaryListItem(BaseModel):
    """
    One listed record. `record` is null when the key disappeared between
    listing and reading it.
    """
    key: str
    record: Optional[Any] = None


class DiaryListResponse(BaseModel):
    """
    What:  One page of GET /api.

    How cursor works:
        - cursor: opaque token for the next page, null once exhausted
        - Client passes it back as ?cursor= to continue
    """
    ok: bool = True
    items: List[DiaryListItem] = Field(default_factory=list)
    cursor: Optional[str] = Field(default=None, description="Next-page token; null when exhausted")


# ══════════════════════════════════════════════════════════════════════════
# Summary
# ══════════════════════════════════════════════════════════════════════════


class DurationStats(BaseModel):
    count: int = 0
    sum: float = 0.0


class DiarySummary(BaseModel):
    """
    What:  Aggregate counters over the records of a trailing window.
    How:   Built by the fold functions in services/summary_service.py.
           Histograms are initialized with every bucket at zero; per-day
           maps only contain dates that received at least one increment.
    """
    total: int = 0
    by_date: Dict[str, int] = Field(default_factory=dict, alias="byDate")
    by_headache: Dict[str, int] = Field(default_factory=dict, alias="byHeadache")
    by_severity: Dict[str, int] = Field(default_factory=dict, alias="bySeverity")
    by_medication: Dict[str, int] = Field(default_factory=dict, alias="byMedication")
    by_overall: Dict[str, int] = Field(default_factory=dict, alias="byOverall")
    by_med_effect: Dict[str, int] = Field(default_factory=dict, alias="byMedEffect")
    by_sensitivity: Dict[str, int] = Field(default_factory=dict, alias="bySensitivity")
    by_symptoms: Dict[str, int] = Field(default_factory=dict, alias="bySymptoms")
    by_condition: Dict[str, int] = Field(default_factory=dict, alias="byCondition")
    by_condition_headache: Dict[str, int] = Field(default_factory=dict, alias="byConditionHeadache")
    by_activity: Dict[str, int] = Field(default_factory=dict, alias="byActivity")
    duration: DurationStats = Field(default_factory=DurationStats)
    by_date_headache: Dict[str, int] = Field(default_factory=dict, alias="byDateHeadache")
    by_date_duration_sum: Dict[str, float] = Field(default_factory=dict, alias="byDateDurationSum")
    by_date_duration_count: Dict[str, int] = Field(default_factory=dict, alias="byDateDurationCount")
    by_date_severity_max: Dict[str, int] = Field(default_factory=dict, alias="byDateSeverityMax")
    by_date_med_yes: Dict[str, int] = Field(default_factory=dict, alias="byDateMedYes")

    model_config = {"populate_by_name": True}


class SummaryResponse(BaseModel):
    """Returned by GET /summary-data."""
    ok: bool = True
    summary: DiarySummary
    days: int = Field(description="Window length in calendar days, ending today (UTC)")


# ══════════════════════════════════════════════════════════════════════════
# Error & Health
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    What:  Error body for every failed request.

    Example:
        {"ok": false, "error": "记录键无效", "request_id": "a1b2c3d4"}
    """
    ok: bool = False
    error: str = Field(description="Human-readable error description")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Returned by GET /health for monitoring and load balancer probes."""
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    store: str = Field(description="Store binding: connected, unconfigured, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
