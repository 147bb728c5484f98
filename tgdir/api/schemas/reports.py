from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from tgdir.infrastructure.db.models import GroupReport


class ReportCreateRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000, description="What is wrong with the group")


class ReportReviewRequest(BaseModel):
    status: str = Field(..., pattern=r"^(reviewed|resolved|dismissed)$")
    notes: str | None = Field(None, max_length=2000)


class ReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    group_id: str
    user_id: str
    group_name: str
    reason: str
    status: str
    reported_at: datetime
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    notes: str | None = None

    @classmethod
    def from_model(cls, report: GroupReport) -> ReportResponse:
        return cls(
            id=report.id,
            group_id=report.group_id,
            user_id=report.user_id,
            group_name=report.group_name,
            reason=report.reason,
            status=report.status.value,
            reported_at=report.reported_at,
            reviewed_by=report.reviewed_by,
            reviewed_at=report.reviewed_at,
            notes=report.notes,
        )


class ReportListResponse(BaseModel):
    items: list[ReportResponse]
