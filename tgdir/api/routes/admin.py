"""Admin routes: moderation queue, catalog curation, users and reports."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from tgdir.api.deps import get_db_session, http_error, require_roles
from tgdir.api.schemas.auth import UpdateRoleRequest, UserResponse
from tgdir.api.schemas.groups import (
    CatalogEntryResponse,
    CatalogEntryUpdateRequest,
    RejectRequest,
    SubmissionListResponse,
    SubmissionResponse,
    SubmissionStatsResponse,
)
from tgdir.api.schemas.reports import ReportListResponse, ReportResponse, ReportReviewRequest
from tgdir.domain import User
from tgdir.domain.errors import DirectoryError
from tgdir.domain.services.auth_service import AuthService
from tgdir.domain.services.catalog import CatalogService
from tgdir.domain.services.moderation import ModerationService
from tgdir.domain.services.reports import ReportService

router = APIRouter(prefix="/admin", tags=["Admin"])

admin_only = require_roles(["admin"])


@router.get("/submissions/pending", response_model=SubmissionListResponse)
async def pending_submissions(
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(admin_only),
) -> SubmissionListResponse:
    try:
        submissions = await ModerationService(session).list_pending(user)
    except DirectoryError as exc:
        raise http_error(exc) from exc
    return SubmissionListResponse(
        items=[SubmissionResponse.from_model(item) for item in submissions],
        total=len(submissions),
    )


@router.get("/submissions/stats", response_model=SubmissionStatsResponse)
async def submission_stats(
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(admin_only),
) -> SubmissionStatsResponse:
    try:
        counts = await ModerationService(session).stats(user)
    except DirectoryError as exc:
        raise http_error(exc) from exc
    return SubmissionStatsResponse(**counts)


@router.post("/submissions/{submission_id}/approve", response_model=CatalogEntryResponse)
async def approve_submission(
    submission_id: str,
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(admin_only),
) -> CatalogEntryResponse:
    """Approve a pending submission and list it in the catalog."""
    try:
        entry = await ModerationService(session).approve(submission_id, user)
        listing = await CatalogService(session).get_entry(entry.id)
    except DirectoryError as exc:
        raise http_error(exc) from exc
    return CatalogEntryResponse.from_listing(listing)


@router.post("/submissions/{submission_id}/reject", response_model=SubmissionResponse)
async def reject_submission(
    submission_id: str,
    payload: RejectRequest,
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(admin_only),
) -> SubmissionResponse:
    try:
        submission = await ModerationService(session).reject(submission_id, user, payload.reason)
    except DirectoryError as exc:
        raise http_error(exc) from exc
    return SubmissionResponse.from_model(submission)


@router.patch("/groups/{entry_id}", response_model=CatalogEntryResponse)
async def update_group(
    entry_id: str,
    payload: CatalogEntryUpdateRequest,
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(admin_only),
) -> CatalogEntryResponse:
    try:
        listing = await CatalogService(session).update_entry(
            entry_id, user, payload.model_dump(exclude_none=True)
        )
    except DirectoryError as exc:
        raise http_error(exc) from exc
    return CatalogEntryResponse.from_listing(listing)


@router.get("/users", response_model=list[UserResponse])
async def list_users(
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(admin_only),
) -> list[UserResponse]:
    try:
        users = await AuthService(session).list_users(user)
    except DirectoryError as exc:
        raise http_error(exc) from exc
    return [UserResponse(**item) for item in users]


@router.patch("/users/{user_id}/role", response_model=UserResponse)
async def update_user_role(
    user_id: str,
    payload: UpdateRoleRequest,
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(admin_only),
) -> UserResponse:
    try:
        updated = await AuthService(session).update_user_role(user, user_id=user_id, role=payload.role)
    except DirectoryError as exc:
        raise http_error(exc) from exc
    return UserResponse(**updated)


@router.get("/reports", response_model=ReportListResponse)
async def list_reports(
    report_status: str | None = Query(None, alias="status"),
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(admin_only),
) -> ReportListResponse:
    try:
        reports = await ReportService(session).list_reports(user, status=report_status)
    except DirectoryError as exc:
        raise http_error(exc) from exc
    return ReportListResponse(items=[ReportResponse.from_model(report) for report in reports])


@router.patch("/reports/{report_id}", response_model=ReportResponse)
async def review_report(
    report_id: str,
    payload: ReportReviewRequest,
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(admin_only),
) -> ReportResponse:
    try:
        report = await ReportService(session).review_report(
            report_id, user, status=payload.status, notes=payload.notes
        )
    except DirectoryError as exc:
        raise http_error(exc) from exc
    return ReportResponse.from_model(report)
