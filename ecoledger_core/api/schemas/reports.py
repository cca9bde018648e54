"""Report and collection task API schemas."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


# =============================================================================
# REPORTS
# =============================================================================


class SubmitReportRequest(BaseModel):
    """Request body for submitting a waste report."""

    location: str = Field(..., description="Where the waste is")
    waste_type: str = Field(..., description="Kind of waste, e.g. 'plastic'")
    amount: str = Field(..., description="Estimated amount, e.g. '5 kg'")
    image_url: Optional[str] = Field(default=None, description="Photo reference")
    verification: Optional[dict[str, Any]] = Field(
        default=None,
        description="Oracle classification captured at report time (stored as-is)",
    )


class ReportResponse(BaseModel):
    """Response body for a report."""

    id: int
    user_id: int
    location: str
    waste_type: str
    amount: str
    image_url: Optional[str] = None
    verification_json: Optional[dict[str, Any]] = None
    status: str
    collector_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ReportListResponse(BaseModel):
    """Response body for listing reports."""

    reports: list[ReportResponse]
    total: int


# =============================================================================
# TASKS
# =============================================================================


class TaskResponse(BaseModel):
    """Collection task view of a report."""

    id: int
    location: str
    waste_type: str
    amount: str
    status: str
    date: str = Field(..., description="Report date, YYYY-MM-DD")
    collector_id: Optional[int] = None

    @classmethod
    def from_model(cls, report) -> "TaskResponse":
        return cls(
            id=report.id,
            location=report.location,
            waste_type=report.waste_type,
            amount=report.amount,
            status=report.status,
            date=report.created_at.date().isoformat(),
            collector_id=report.collector_id,
        )


class TaskListResponse(BaseModel):
    """Response body for listing tasks."""

    tasks: list[TaskResponse]
    total: int


class VerifyCollectionRequest(BaseModel):
    """Evidence submitted by the assigned collector."""

    image_url: str = Field(..., description="Photo of the cleaned-up location")


class JudgmentResponse(BaseModel):
    """Judgment the decision was based on."""

    area_clean: bool
    waste_type_match: bool
    confidence: float
    quantity_match: Optional[bool] = None


class VerifyCollectionResponse(BaseModel):
    """Outcome of a verification attempt."""

    accepted: bool
    reason: Optional[str] = Field(
        default=None,
        description="area_not_clean, low_confidence, oracle_timeout or oracle_error",
    )
    points: int = 0
    task: TaskResponse
    judgment: JudgmentResponse
