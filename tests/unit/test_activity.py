"""Tests for the per-user activity log."""

from __future__ import annotations

from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession
from tgdir.domain.services.activity import ActivityRecorder
from tgdir.domain.services.submissions import SubmissionService
from tgdir.infrastructure.db.models import Submission, UserActivity

from tests.utils import make_metadata, make_user


async def _count(db: AsyncSession, user_id: str) -> int:
    return await db.scalar(
        select(func.count(UserActivity.id)).where(UserActivity.user_id == user_id)
    )


async def test_log_is_capped_per_user(db: AsyncSession) -> None:
    recorder = ActivityRecorder(db)
    for n in range(25):
        await recorder.record("user-1", "create", "group", {"n": n})
    await recorder.record("user-2", "update", "profile")

    recent = await recorder.list_recent("user-1", limit=50)

    assert await _count(db, "user-1") == 20
    assert await _count(db, "user-2") == 1
    assert len(recent) == 20
    assert recent[0].details == {"n": 24}
    assert recent[-1].details == {"n": 5}


async def test_list_recent_defaults_to_five(db: AsyncSession) -> None:
    recorder = ActivityRecorder(db, limit=3)
    for n in range(4):
        await recorder.record("user-1", "delete", "report", {"n": n})

    assert [entry.details["n"] for entry in await recorder.list_recent("user-1")] == [3, 2, 1]


async def test_unknown_types_are_ignored(db: AsyncSession) -> None:
    await ActivityRecorder(db).record("user-1", "archive", "group")

    assert await _count(db, "user-1") == 0


async def test_store_failure_is_not_raised(db: AsyncSession) -> None:
    submission = await SubmissionService(db).submit(
        make_user("owner-1"), make_metadata(), category="Technology"
    )
    await db.execute(text("DROP TABLE user_activity"))
    await db.commit()

    await ActivityRecorder(db).record("owner-1", "update", "group", {"group_name": "DevTR"})

    assert submission.group_name == "DevTR"
    assert await db.scalar(select(func.count(Submission.id))) == 1


async def test_submission_records_owner_activity(db: AsyncSession) -> None:
    submission = await SubmissionService(db).submit(
        make_user("owner-1"), make_metadata(), category="Technology"
    )

    [entry] = await ActivityRecorder(db).list_recent("owner-1")

    assert entry.action_type == "create"
    assert entry.entity_type == "group"
    assert entry.entity_id == submission.id
    assert entry.details == {"group_name": "DevTR", "status": "pending"}
