"""Per-user activity log (advisory, capped per user)."""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from tgdir.core.config import get_settings
from tgdir.infrastructure.db.models import UserActivity

logger = structlog.get_logger()

ACTION_TYPES = frozenset({"create", "update", "delete"})
ENTITY_TYPES = frozenset({"group", "promotion", "report", "profile"})


class ActivityRecorder:
    """Appends activity rows and prunes each user's log to the newest entries.

    Recording runs after the primary operation has committed. The insert and
    the prune share a savepoint, so a store failure only discards the activity
    rows; it is logged and never surfaces to the caller.
    """

    def __init__(self, session: AsyncSession, *, limit: int | None = None) -> None:
        self.session = session
        self.limit = limit if limit is not None else get_settings().activity_log_limit

    async def record(
        self,
        user_id: str,
        action_type: str,
        entity_type: str,
        details: dict[str, Any] | None = None,
        entity_id: str | None = None,
    ) -> None:
        if action_type not in ACTION_TYPES or entity_type not in ENTITY_TYPES:
            await logger.awarning(
                "activity_unknown_type", action_type=action_type, entity_type=entity_type
            )
            return

        try:
            async with self.session.begin_nested():
                self.session.add(
                    UserActivity(
                        user_id=user_id,
                        action_type=action_type,
                        entity_type=entity_type,
                        entity_id=entity_id,
                        details=details or {},
                    )
                )
                await self.session.flush()

                newest = (
                    select(UserActivity.id)
                    .where(UserActivity.user_id == user_id)
                    .order_by(UserActivity.id.desc())
                    .limit(self.limit)
                )
                await self.session.execute(
                    delete(UserActivity)
                    .where(UserActivity.user_id == user_id, UserActivity.id.not_in(newest))
                    .execution_options(synchronize_session=False)
                )
        except SQLAlchemyError as exc:
            await logger.awarning(
                "activity_record_failed",
                user_id=user_id,
                action_type=action_type,
                entity_type=entity_type,
                error=str(exc),
            )
        await self.session.commit()

    async def list_recent(self, user_id: str, limit: int = 5) -> list[UserActivity]:
        """Return the user's newest activity entries."""
        stmt = (
            select(UserActivity)
            .where(UserActivity.user_id == user_id)
            .order_by(UserActivity.id.desc())
            .limit(max(1, min(limit, self.limit)))
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
