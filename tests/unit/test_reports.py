"""Tests for group reports."""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession
from tgdir.domain.errors import AuthorizationError, NotFoundError, ValidationError
from tgdir.domain.services.reports import ReportService
from tgdir.infrastructure.db.models import ReportStatus

from tests.utils import approved_entry, make_user

OWNER = make_user("owner-1")
REPORTER = make_user("reporter-1")
ADMIN = make_user("admin-user", admin=True)


class TestReports:
    async def test_report_and_review(self, db: AsyncSession) -> None:
        entry = await approved_entry(db, OWNER)
        service = ReportService(db)

        report = await service.report_group(entry.id, REPORTER, "  Spam links  ")
        assert report.status == ReportStatus.PENDING
        assert report.reason == "Spam links"
        assert report.group_name == "DevTR"

        reviewed = await service.review_report(report.id, ADMIN, status="resolved", notes="Removed")
        assert reviewed.status == ReportStatus.RESOLVED
        assert reviewed.reviewed_by == "admin-user"
        assert reviewed.notes == "Removed"

    async def test_list_reports_filters_by_status(self, db: AsyncSession) -> None:
        entry = await approved_entry(db, OWNER)
        service = ReportService(db)
        first = await service.report_group(entry.id, REPORTER, "Spam")
        await service.report_group(entry.id, REPORTER, "Scam")
        await service.review_report(first.id, ADMIN, status="dismissed")

        pending = await service.list_reports(ADMIN, status="pending")
        everything = await service.list_reports(ADMIN)

        assert [report.reason for report in pending] == ["Scam"]
        assert len(everything) == 2

    async def test_reason_required(self, db: AsyncSession) -> None:
        entry = await approved_entry(db, OWNER)

        with pytest.raises(ValidationError):
            await ReportService(db).report_group(entry.id, REPORTER, " ")

    async def test_unknown_group(self, db: AsyncSession) -> None:
        with pytest.raises(NotFoundError):
            await ReportService(db).report_group("missing", REPORTER, "Spam")

    async def test_review_is_admin_only(self, db: AsyncSession) -> None:
        entry = await approved_entry(db, OWNER)
        service = ReportService(db)
        report = await service.report_group(entry.id, REPORTER, "Spam")

        with pytest.raises(AuthorizationError):
            await service.list_reports(REPORTER)
        with pytest.raises(AuthorizationError):
            await service.review_report(report.id, REPORTER, status="resolved")

    @pytest.mark.parametrize("status", ["pending", "archived"])
    async def test_review_rejects_invalid_outcome(self, db: AsyncSession, status: str) -> None:
        entry = await approved_entry(db, OWNER)
        service = ReportService(db)
        report = await service.report_group(entry.id, REPORTER, "Spam")

        with pytest.raises(ValidationError):
            await service.review_report(report.id, ADMIN, status=status)
