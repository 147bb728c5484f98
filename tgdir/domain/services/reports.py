"""User reports against listed groups and their admin review."""

from __future__ import annotations

from datetime import UTC, datetime

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from tgdir.domain.errors import AuthorizationError, NotFoundError, ValidationError
from tgdir.domain.models import User
from tgdir.domain.services.activity import ActivityRecorder
from tgdir.infrastructure.db.models import CatalogEntry, GroupReport, ReportStatus
from tgdir.infrastructure.repositories.unit_of_work import UnitOfWork

logger = structlog.get_logger()


class ReportService:
    def __init__(self, session: AsyncSession, activity: ActivityRecorder | None = None) -> None:
        self.session = session
        self.activity = activity or ActivityRecorder(session)

    async def report_group(self, group_id: str, actor: User, reason: str) -> GroupReport:
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A report reason is required")

        entry = await self.session.get(CatalogEntry, group_id, populate_existing=True)
        if entry is None:
            raise NotFoundError(f"Group {group_id} not found")

        report = GroupReport(
            group_id=group_id,
            user_id=actor.user_id,
            group_name=entry.name,
            reason=reason,
            status=ReportStatus.PENDING,
        )
        async with UnitOfWork(self.session, operation="report_group"):
            self.session.add(report)

        await logger.ainfo(
            "group_reported", report_id=report.id, group_id=group_id, user_id=actor.user_id
        )
        await self.activity.record(
            actor.user_id,
            "create",
            "report",
            {"group_name": entry.name, "reason": reason},
            entity_id=report.id,
        )
        return report

    async def list_reports(
        self, actor: User, *, status: str | None = None
    ) -> list[GroupReport]:
        if not actor.is_admin:
            raise AuthorizationError("Only admins can view reports")

        stmt = select(GroupReport).order_by(GroupReport.reported_at.desc(), GroupReport.id.desc())
        if status:
            try:
                stmt = stmt.where(GroupReport.status == ReportStatus(status))
            except ValueError as exc:
                raise ValidationError(f"Unknown report status: {status}") from exc
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def review_report(
        self,
        report_id: str,
        actor: User,
        *,
        status: str,
        notes: str | None = None,
    ) -> GroupReport:
        if not actor.is_admin:
            raise AuthorizationError("Only admins can review reports")
        try:
            outcome = ReportStatus(status)
        except ValueError as exc:
            raise ValidationError(f"Unknown report status: {status}") from exc
        if outcome not in ReportStatus.review_outcomes():
            allowed = ", ".join(s.value for s in ReportStatus.review_outcomes())
            raise ValidationError(f"Review status must be one of: {allowed}")

        report = await self.session.get(GroupReport, report_id, populate_existing=True)
        if report is None:
            raise NotFoundError(f"Report {report_id} not found")

        async with UnitOfWork(self.session, operation="review_report"):
            report.status = outcome
            report.reviewed_by = actor.user_id
            report.reviewed_at = datetime.now(UTC)
            if notes is not None:
                report.notes = notes.strip() or None

        await logger.ainfo(
            "report_reviewed", report_id=report_id, status=outcome.value, reviewer_id=actor.user_id
        )
        return report
