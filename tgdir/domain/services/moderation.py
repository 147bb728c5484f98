"""
Moderation workflow for group submissions.

State machine::

    pending --approve--> approved (terminal, listed in the catalog)
    pending --reject---> rejected --resubmit (owner)--> pending

Every transition is a conditional ``UPDATE ... WHERE status = :expected`` so a
concurrent reviewer who lost the race gets ``InvalidStateError`` instead of
overwriting the winner's decision.
"""

from __future__ import annotations

from datetime import UTC, datetime

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from tgdir.domain.errors import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from tgdir.domain.models import User
from tgdir.domain.services.activity import ActivityRecorder
from tgdir.domain.services.catalog import entry_from_submission, refresh_entry_from_submission
from tgdir.infrastructure.db.models import CatalogEntry, Submission, SubmissionStatus
from tgdir.infrastructure.repositories.unit_of_work import UnitOfWork

logger = structlog.get_logger()


def _require_admin(actor: User, action: str) -> None:
    if not actor.is_admin:
        raise AuthorizationError(f"Only admins can {action} submissions")


class ModerationService:
    """Admin review of pending submissions and owner resubmission."""

    def __init__(self, session: AsyncSession, activity: ActivityRecorder | None = None) -> None:
        self.session = session
        self.activity = activity or ActivityRecorder(session)

    async def approve(self, submission_id: str, actor: User) -> CatalogEntry:
        _require_admin(actor, "approve")
        submission = await self._load(submission_id)
        now = datetime.now(UTC)

        async with UnitOfWork(self.session, operation="approve_submission"):
            await self._transition(
                submission_id,
                expected=SubmissionStatus.PENDING,
                status=SubmissionStatus.APPROVED,
                reviewed_at=now,
                reviewed_by=actor.user_id,
                rejection_reason=None,
            )
            await self.session.refresh(submission)

            existing = await self.session.execute(
                select(CatalogEntry).where(CatalogEntry.submission_id == submission_id)
            )
            entry = existing.scalar_one_or_none()
            if entry is None:
                entry = entry_from_submission(submission)
                self.session.add(entry)
            else:
                refresh_entry_from_submission(entry, submission)

        await logger.ainfo(
            "submission_approved",
            submission_id=submission_id,
            entry_id=entry.id,
            reviewer_id=actor.user_id,
        )
        await self.activity.record(
            submission.owner_id,
            "update",
            "group",
            {"group_name": submission.group_name, "status": SubmissionStatus.APPROVED.value},
            entity_id=submission_id,
        )
        return entry

    async def reject(self, submission_id: str, actor: User, reason: str) -> Submission:
        _require_admin(actor, "reject")
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A rejection reason is required")
        submission = await self._load(submission_id)

        async with UnitOfWork(self.session, operation="reject_submission"):
            await self._transition(
                submission_id,
                expected=SubmissionStatus.PENDING,
                status=SubmissionStatus.REJECTED,
                reviewed_at=datetime.now(UTC),
                reviewed_by=actor.user_id,
                rejection_reason=reason,
            )

        await self.session.refresh(submission)
        await logger.ainfo(
            "submission_rejected",
            submission_id=submission_id,
            reviewer_id=actor.user_id,
            reason=reason,
        )
        await self.activity.record(
            submission.owner_id,
            "update",
            "group",
            {
                "group_name": submission.group_name,
                "status": SubmissionStatus.REJECTED.value,
                "reason": reason,
            },
            entity_id=submission_id,
        )
        return submission

    async def resubmit(self, submission_id: str, actor: User) -> Submission:
        submission = await self._load(submission_id)
        if submission.owner_id != actor.user_id:
            raise AuthorizationError("Only the owner can resubmit this submission")

        async with UnitOfWork(self.session, operation="resubmit_submission"):
            await self._transition(
                submission_id,
                expected=SubmissionStatus.REJECTED,
                status=SubmissionStatus.PENDING,
                submitted_at=datetime.now(UTC),
                reviewed_at=None,
                reviewed_by=None,
                rejection_reason=None,
            )

        await self.session.refresh(submission)
        await logger.ainfo("submission_resubmitted", submission_id=submission_id)
        await self.activity.record(
            actor.user_id,
            "update",
            "group",
            {"group_name": submission.group_name, "status": SubmissionStatus.PENDING.value},
            entity_id=submission_id,
        )
        return submission

    async def list_pending(self, actor: User) -> list[Submission]:
        _require_admin(actor, "review")
        stmt = (
            select(Submission)
            .where(Submission.status == SubmissionStatus.PENDING)
            .order_by(Submission.submitted_at.desc(), Submission.id.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def stats(self, actor: User) -> dict[str, int]:
        """Count submissions per status."""
        _require_admin(actor, "review")
        result = await self.session.execute(
            select(Submission.status, func.count(Submission.id)).group_by(Submission.status)
        )
        counts = {status.value: 0 for status in SubmissionStatus}
        for status, count in result.all():
            counts[SubmissionStatus(status).value] = count
        counts["total"] = sum(counts.values())
        return counts

    async def _load(self, submission_id: str) -> Submission:
        submission = await self.session.get(Submission, submission_id, populate_existing=True)
        if submission is None:
            raise NotFoundError(f"Submission {submission_id} not found")
        return submission

    async def _transition(
        self, submission_id: str, *, expected: SubmissionStatus, **values: object
    ) -> None:
        result = await self.session.execute(
            update(Submission)
            .where(Submission.id == submission_id, Submission.status == expected)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise InvalidStateError(
                f"Submission {submission_id} is not {expected.value}; it may have been reviewed already"
            )
