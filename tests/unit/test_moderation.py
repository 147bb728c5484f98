"""Tests for the moderation state machine."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from tgdir.domain.errors import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from tgdir.domain.services.moderation import ModerationService
from tgdir.domain.services.submissions import SubmissionService
from tgdir.infrastructure.db.models import CatalogEntry, Submission, SubmissionStatus

from tests.utils import make_metadata, make_user

OWNER = make_user("owner-1")
OTHER = make_user("other-1")
ADMIN = make_user("admin-user", admin=True)


async def _pending(db: AsyncSession, name: str = "DevTR") -> str:
    submission = await SubmissionService(db).submit(
        OWNER, make_metadata(name=name, username=name.lower(), members=500), category="Technology"
    )
    return submission.id


async def _entry_count(db: AsyncSession) -> int:
    return await db.scalar(select(func.count(CatalogEntry.id)))


class TestModerationWorkflow:
    async def test_reject_resubmit_approve(self, db: AsyncSession) -> None:
        """Full round trip from the owner's first submission to a catalog listing."""
        submission_id = await _pending(db)
        service = ModerationService(db)

        rejected = await service.reject(submission_id, ADMIN, "Duplicate listing")
        assert rejected.status == SubmissionStatus.REJECTED
        assert rejected.rejection_reason == "Duplicate listing"
        assert rejected.reviewed_by == "admin-user"

        resubmitted = await service.resubmit(submission_id, OWNER)
        assert resubmitted.status == SubmissionStatus.PENDING
        assert resubmitted.rejection_reason is None
        assert resubmitted.reviewed_by is None

        entry = await service.approve(submission_id, ADMIN)
        assert entry.approved is True
        assert entry.name == "DevTR"
        assert entry.members == 500
        assert entry.owner_id == "owner-1"
        assert entry.submission_id == submission_id

        submission = await SubmissionService(db).get(submission_id, OWNER)
        assert submission.status == SubmissionStatus.APPROVED
        assert await _entry_count(db) == 1

    async def test_approve_twice_fails_without_second_entry(self, db: AsyncSession) -> None:
        submission_id = await _pending(db)
        service = ModerationService(db)
        await service.approve(submission_id, ADMIN)

        with pytest.raises(InvalidStateError):
            await service.approve(submission_id, ADMIN)

        assert await _entry_count(db) == 1

    async def test_reject_after_approve_fails(self, db: AsyncSession) -> None:
        submission_id = await _pending(db)
        service = ModerationService(db)
        await service.approve(submission_id, ADMIN)

        with pytest.raises(InvalidStateError):
            await service.reject(submission_id, ADMIN, "Too late")

    async def test_reject_requires_reason(self, db: AsyncSession) -> None:
        submission_id = await _pending(db)

        with pytest.raises(ValidationError):
            await ModerationService(db).reject(submission_id, ADMIN, "   ")

    async def test_only_admins_review(self, db: AsyncSession) -> None:
        submission_id = await _pending(db)
        service = ModerationService(db)

        with pytest.raises(AuthorizationError):
            await service.approve(submission_id, OWNER)
        with pytest.raises(AuthorizationError):
            await service.reject(submission_id, OWNER, "spam")
        with pytest.raises(AuthorizationError):
            await service.list_pending(OWNER)

    async def test_resubmit_only_from_rejected_by_owner(self, db: AsyncSession) -> None:
        submission_id = await _pending(db)
        service = ModerationService(db)

        with pytest.raises(InvalidStateError):
            await service.resubmit(submission_id, OWNER)

        await service.reject(submission_id, ADMIN, "Spam")
        with pytest.raises(AuthorizationError):
            await service.resubmit(submission_id, OTHER)

    async def test_unknown_submission(self, db: AsyncSession) -> None:
        with pytest.raises(NotFoundError):
            await ModerationService(db).approve("missing", ADMIN)

    async def test_list_pending_and_stats(self, db: AsyncSession) -> None:
        first = await _pending(db, "DevTR")
        second = await _pending(db, "PyTR")
        await _pending(db, "GoTR")
        service = ModerationService(db)
        await service.approve(first, ADMIN)
        await service.reject(second, ADMIN, "Inactive group")

        pending = await service.list_pending(ADMIN)
        stats = await service.stats(ADMIN)

        assert [item.group_name for item in pending] == ["GoTR"]
        assert stats == {"pending": 1, "approved": 1, "rejected": 1, "total": 3}


class TestConcurrentReview:
    async def test_second_reviewer_cannot_approve_again(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        async with session_factory() as first, session_factory() as second:
            submission_id = await _pending(first)
            await first.get(Submission, submission_id)

            await ModerationService(second).approve(submission_id, ADMIN)
            with pytest.raises(InvalidStateError):
                await ModerationService(first).approve(submission_id, ADMIN)

            assert await _entry_count(second) == 1

    async def test_decision_made_between_read_and_write(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        async with session_factory() as first, session_factory() as second:
            submission_id = await _pending(first)
            reviewer = ModerationService(first)
            load = reviewer._load

            async def load_then_lose_race(target_id: str) -> Submission:
                submission = await load(target_id)
                await ModerationService(second).approve(target_id, ADMIN)
                return submission

            monkeypatch.setattr(reviewer, "_load", load_then_lose_race)

            with pytest.raises(InvalidStateError):
                await reviewer.reject(submission_id, ADMIN, "Spam")

            stored = (
                await second.execute(
                    select(Submission.status, Submission.rejection_reason).where(
                        Submission.id == submission_id
                    )
                )
            ).one()
            assert stored == (SubmissionStatus.APPROVED, None)
            assert await _entry_count(second) == 1
