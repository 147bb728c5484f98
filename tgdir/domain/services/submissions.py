"""
Submission service for owner-scoped group listing requests.

A submission captures a metadata snapshot of a Telegram group plus the owner's
classification. Regular users' submissions wait in ``pending`` for moderation;
admins' submissions are approved and listed in the catalog immediately.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from tgdir.domain.errors import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from tgdir.domain.models import GroupMetadata, User
from tgdir.domain.reference_data import SUBMITTABLE_CATEGORIES
from tgdir.domain.services.activity import ActivityRecorder
from tgdir.domain.services.catalog import entry_from_submission
from tgdir.domain.tags import merge_tags
from tgdir.infrastructure.db.models import Submission, SubmissionStatus
from tgdir.infrastructure.repositories.unit_of_work import UnitOfWork

logger = structlog.get_logger()

DELETABLE_STATUSES = (SubmissionStatus.PENDING, SubmissionStatus.REJECTED)


def validate_category(category: str | None) -> str:
    cleaned = (category or "").strip()
    if cleaned not in SUBMITTABLE_CATEGORIES:
        allowed = ", ".join(SUBMITTABLE_CATEGORIES)
        raise ValidationError(f"Category must be one of: {allowed}")
    return cleaned


class SubmissionService:
    """Creates and manages a user's own submissions."""

    def __init__(self, session: AsyncSession, activity: ActivityRecorder | None = None) -> None:
        self.session = session
        self.activity = activity or ActivityRecorder(session)

    async def submit(
        self,
        owner: User,
        metadata: GroupMetadata | None,
        *,
        category: str,
        extra_tags: Iterable[str] | None = None,
        note: str | None = None,
    ) -> Submission:
        if metadata is None:
            raise ValidationError("Group metadata is required; fetch the group first")
        category = validate_category(category)

        now = datetime.now(UTC)
        submission = Submission(
            owner_id=owner.user_id,
            group_name=metadata.name,
            group_description=metadata.description or "",
            group_username=metadata.username,
            group_image=metadata.image,
            category=category,
            tags=merge_tags(metadata.tags, extra_tags or ()),
            members=metadata.members,
            link=metadata.link,
            status=SubmissionStatus.APPROVED if owner.is_admin else SubmissionStatus.PENDING,
            submission_note=(note or "").strip() or None,
            submitted_at=now,
        )
        if owner.is_admin:
            submission.reviewed_at = now
            submission.reviewed_by = owner.user_id

        async with UnitOfWork(self.session, operation="submit_group") as uow:
            self.session.add(submission)
            if owner.is_admin:
                await uow.flush()
                self.session.add(entry_from_submission(submission))

        await logger.ainfo(
            "submission_created",
            submission_id=submission.id,
            owner_id=owner.user_id,
            status=submission.status.value,
            category=category,
        )
        await self.activity.record(
            owner.user_id,
            "create",
            "group",
            {"group_name": submission.group_name, "status": submission.status.value},
            entity_id=submission.id,
        )
        return submission

    async def list_for_owner(self, owner: User) -> list[Submission]:
        stmt = (
            select(Submission)
            .where(Submission.owner_id == owner.user_id)
            .order_by(Submission.submitted_at.desc(), Submission.id.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get(self, submission_id: str, actor: User) -> Submission:
        submission = await self._load(submission_id)
        if submission.owner_id != actor.user_id and not actor.is_admin:
            raise AuthorizationError("You do not have access to this submission")
        return submission

    async def update_category(self, submission_id: str, actor: User, category: str) -> Submission:
        submission = await self._load_owned(submission_id, actor)
        category = validate_category(category)

        async with UnitOfWork(self.session, operation="update_submission_category"):
            result = await self.session.execute(
                update(Submission)
                .where(
                    Submission.id == submission_id,
                    Submission.status == SubmissionStatus.PENDING,
                )
                .values(category=category)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise InvalidStateError("Only pending submissions can change category")

        await self.session.refresh(submission)
        await self.activity.record(
            actor.user_id,
            "update",
            "group",
            {"group_name": submission.group_name, "category": category},
            entity_id=submission_id,
        )
        return submission

    async def delete(self, submission_id: str, actor: User) -> None:
        submission = await self._load_owned(submission_id, actor)
        group_name = submission.group_name

        async with UnitOfWork(self.session, operation="delete_submission"):
            result = await self.session.execute(
                delete(Submission)
                .where(
                    Submission.id == submission_id,
                    Submission.status.in_(DELETABLE_STATUSES),
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise InvalidStateError("Approved submissions cannot be deleted")

        self.session.expunge(submission)
        await logger.ainfo("submission_deleted", submission_id=submission_id, owner_id=actor.user_id)
        await self.activity.record(
            actor.user_id, "delete", "group", {"group_name": group_name}, entity_id=submission_id
        )

    async def _load(self, submission_id: str) -> Submission:
        submission = await self.session.get(Submission, submission_id, populate_existing=True)
        if submission is None:
            raise NotFoundError(f"Submission {submission_id} not found")
        return submission

    async def _load_owned(self, submission_id: str, actor: User) -> Submission:
        submission = await self._load(submission_id)
        if submission.owner_id != actor.user_id:
            raise AuthorizationError("Only the owner can change this submission")
        return submission
