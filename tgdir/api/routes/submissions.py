"""Owner-facing routes: group metadata preview and the user's own submissions."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from tgdir.api.deps import get_current_user, get_db_session, get_metadata_fetcher, http_error
from tgdir.api.schemas.groups import (
    GroupMetadataResponse,
    SubmissionCreateRequest,
    SubmissionListResponse,
    SubmissionResponse,
    SubmissionUpdateRequest,
)
from tgdir.domain import User
from tgdir.domain.errors import DirectoryError
from tgdir.domain.services.moderation import ModerationService
from tgdir.domain.services.submissions import SubmissionService
from tgdir.libs.telegram_client import MetadataFetcherProtocol

telegram_router = APIRouter(prefix="/telegram", tags=["Telegram"])
router = APIRouter(prefix="/submissions", tags=["Submissions"])


@telegram_router.get("/groups/{handle}", response_model=GroupMetadataResponse)
async def preview_group(
    handle: str,
    user: User = Depends(get_current_user),
    fetcher: MetadataFetcherProtocol = Depends(get_metadata_fetcher),
) -> GroupMetadataResponse:
    """Look up a public group so the owner can review it before submitting."""
    try:
        metadata = await fetcher.fetch_group_metadata(handle)
    except DirectoryError as exc:
        raise http_error(exc) from exc
    return GroupMetadataResponse.from_metadata(metadata)


@router.post("", response_model=SubmissionResponse, status_code=status.HTTP_201_CREATED)
async def create_submission(
    payload: SubmissionCreateRequest,
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(get_current_user),
    fetcher: MetadataFetcherProtocol = Depends(get_metadata_fetcher),
) -> SubmissionResponse:
    """Fetch the group's metadata and file a submission for it."""
    service = SubmissionService(session)
    try:
        metadata = await fetcher.fetch_group_metadata(payload.handle)
        submission = await service.submit(
            user,
            metadata,
            category=payload.category,
            extra_tags=payload.tags,
            note=payload.note,
        )
    except DirectoryError as exc:
        raise http_error(exc) from exc
    return SubmissionResponse.from_model(submission)


@router.get("", response_model=SubmissionListResponse)
async def list_my_submissions(
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(get_current_user),
) -> SubmissionListResponse:
    submissions = await SubmissionService(session).list_for_owner(user)
    return SubmissionListResponse(
        items=[SubmissionResponse.from_model(item) for item in submissions],
        total=len(submissions),
    )


@router.get("/{submission_id}", response_model=SubmissionResponse)
async def get_submission(
    submission_id: str,
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(get_current_user),
) -> SubmissionResponse:
    try:
        submission = await SubmissionService(session).get(submission_id, user)
    except DirectoryError as exc:
        raise http_error(exc) from exc
    return SubmissionResponse.from_model(submission)


@router.patch("/{submission_id}", response_model=SubmissionResponse)
async def update_submission(
    submission_id: str,
    payload: SubmissionUpdateRequest,
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(get_current_user),
) -> SubmissionResponse:
    try:
        submission = await SubmissionService(session).update_category(
            submission_id, user, payload.category
        )
    except DirectoryError as exc:
        raise http_error(exc) from exc
    return SubmissionResponse.from_model(submission)


@router.delete("/{submission_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_submission(
    submission_id: str,
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(get_current_user),
) -> Response:
    try:
        await SubmissionService(session).delete(submission_id, user)
    except DirectoryError as exc:
        raise http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{submission_id}/resubmit", response_model=SubmissionResponse)
async def resubmit_submission(
    submission_id: str,
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(get_current_user),
) -> SubmissionResponse:
    """Send a rejected submission back to the moderation queue."""
    try:
        submission = await ModerationService(session).resubmit(submission_id, user)
    except DirectoryError as exc:
        raise http_error(exc) from exc
    return SubmissionResponse.from_model(submission)
