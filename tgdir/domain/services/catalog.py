"""
Catalog service: the public read side of approved groups plus admin curation.

The ``featured`` flag of an entry is never stored; it is derived on every read
from the entry's promotions (see ``featured_clause``).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from tgdir.domain.errors import AuthorizationError, NotFoundError, ValidationError
from tgdir.domain.models import User
from tgdir.domain.reference_data import ALL_CATEGORY, CATEGORIES, SUBMITTABLE_CATEGORIES
from tgdir.domain.services.promotions import featured_clause
from tgdir.domain.slug import create_slug
from tgdir.domain.tags import merge_tags
from tgdir.infrastructure.db.models import CatalogEntry, Submission
from tgdir.infrastructure.repositories.unit_of_work import UnitOfWork

logger = structlog.get_logger()

CURATABLE_FIELDS = frozenset({"description", "category", "tags", "verified"})
SORT_ORDERS = ("featured", "members")
TOP_GROUPS_LIMIT = 100


@dataclass(slots=True)
class CatalogListing:
    """A catalog entry together with its derived featured flag."""

    entry: CatalogEntry
    featured: bool

    @property
    def slug(self) -> str:
        return create_slug(self.entry.name)


def entry_from_submission(submission: Submission) -> CatalogEntry:
    """Build the public listing for an approved submission."""
    return CatalogEntry(
        submission_id=submission.id,
        owner_id=submission.owner_id,
        name=submission.group_name,
        description=submission.group_description,
        username=submission.group_username,
        image=submission.group_image,
        members=submission.members,
        category=submission.category,
        tags=list(submission.tags or []),
        link=submission.link,
        verified=False,
        approved=True,
    )


def refresh_entry_from_submission(entry: CatalogEntry, submission: Submission) -> CatalogEntry:
    entry.name = submission.group_name
    entry.description = submission.group_description
    entry.username = submission.group_username
    entry.image = submission.group_image
    entry.members = submission.members
    entry.category = submission.category
    entry.tags = list(submission.tags or [])
    entry.link = submission.link
    entry.approved = True
    return entry


class CatalogService:
    """Browse, search and curate approved groups."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_entries(
        self,
        *,
        category: str | None = None,
        search: str | None = None,
        featured_only: bool = False,
        sort: str = "featured",
        limit: int = 50,
        offset: int = 0,
        now: datetime | None = None,
    ) -> list[CatalogListing]:
        """List approved entries.

        ``sort="featured"`` puts featured entries first and then newest first;
        ``sort="members"`` ranks by member count, largest first.
        """
        if sort not in SORT_ORDERS:
            raise ValidationError(f"Sort must be one of: {', '.join(SORT_ORDERS)}")
        now = now or datetime.now(UTC)
        featured = featured_clause(CatalogEntry.id, now).label("featured")
        stmt = select(CatalogEntry, featured).where(CatalogEntry.approved.is_(True))

        if category and category != ALL_CATEGORY:
            if category not in CATEGORIES:
                raise ValidationError(f"Unknown category: {category}")
            stmt = stmt.where(CatalogEntry.category == category)

        term = (search or "").strip().lower()
        if term:
            pattern = f"%{term}%"
            stmt = stmt.where(
                or_(
                    func.lower(CatalogEntry.name).like(pattern),
                    func.lower(CatalogEntry.description).like(pattern),
                    func.lower(CatalogEntry.username).like(pattern),
                )
            )

        if featured_only:
            stmt = stmt.where(featured_clause(CatalogEntry.id, now))

        primary = CatalogEntry.members.desc() if sort == "members" else featured.desc()
        stmt = (
            stmt.order_by(primary, CatalogEntry.created_at.desc(), CatalogEntry.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return [CatalogListing(entry=entry, featured=bool(flag)) for entry, flag in result.all()]

    async def list_featured(
        self, *, now: datetime | None = None, limit: int = 12
    ) -> list[CatalogListing]:
        return await self.list_entries(featured_only=True, limit=limit, now=now)

    async def list_top(
        self,
        *,
        category: str | None = None,
        search: str | None = None,
        limit: int = TOP_GROUPS_LIMIT,
        now: datetime | None = None,
    ) -> list[CatalogListing]:
        """The largest approved groups by member count, at most 100."""
        return await self.list_entries(
            category=category,
            search=search,
            sort="members",
            limit=min(limit, TOP_GROUPS_LIMIT),
            now=now,
        )

    async def get_entry(self, entry_id: str, *, now: datetime | None = None) -> CatalogListing:
        now = now or datetime.now(UTC)
        stmt = select(CatalogEntry, featured_clause(CatalogEntry.id, now)).where(
            CatalogEntry.id == entry_id, CatalogEntry.approved.is_(True)
        )
        row = (await self.session.execute(stmt)).first()
        if row is None:
            raise NotFoundError(f"Group {entry_id} not found")
        return CatalogListing(entry=row[0], featured=bool(row[1]))

    async def get_entry_by_slug(self, slug: str, *, now: datetime | None = None) -> CatalogListing:
        """Resolve a slug by comparing it against the slug of every approved name."""
        wanted = create_slug(slug)
        if not wanted:
            raise NotFoundError(f"Group {slug!r} not found")

        result = await self.session.execute(
            select(CatalogEntry.id, CatalogEntry.name)
            .where(CatalogEntry.approved.is_(True))
            .order_by(CatalogEntry.created_at.asc(), CatalogEntry.id.asc())
        )
        for entry_id, name in result.all():
            if create_slug(name) == wanted:
                return await self.get_entry(entry_id, now=now)
        raise NotFoundError(f"Group {slug!r} not found")

    async def category_counts(self) -> list[dict[str, Any]]:
        """Count approved entries per category; ``All`` carries the total."""
        result = await self.session.execute(
            select(CatalogEntry.category, func.count(CatalogEntry.id))
            .where(CatalogEntry.approved.is_(True))
            .group_by(CatalogEntry.category)
        )
        counts = {category: count for category, count in result.all()}
        total = sum(counts.values())
        return [
            {"name": name, "count": total if name == ALL_CATEGORY else counts.get(name, 0)}
            for name in CATEGORIES
        ]

    async def update_entry(
        self, entry_id: str, actor: User, changes: dict[str, Any]
    ) -> CatalogListing:
        if not actor.is_admin:
            raise AuthorizationError("Only admins can edit listed groups")

        unknown = set(changes) - CURATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

        category = changes.get("category")
        if category is not None and category not in SUBMITTABLE_CATEGORIES:
            raise ValidationError(f"Unknown category: {category}")

        entry = await self.session.get(CatalogEntry, entry_id, populate_existing=True)
        if entry is None:
            raise NotFoundError(f"Group {entry_id} not found")

        async with UnitOfWork(self.session, operation="update_catalog_entry"):
            if "description" in changes and changes["description"] is not None:
                entry.description = changes["description"].strip()
            if category is not None:
                entry.category = category
            if "tags" in changes and changes["tags"] is not None:
                entry.tags = merge_tags((), changes["tags"])
            if "verified" in changes and changes["verified"] is not None:
                entry.verified = bool(changes["verified"])

        await logger.ainfo(
            "catalog_entry_updated",
            entry_id=entry_id,
            actor_id=actor.user_id,
            fields=sorted(changes),
        )
        return await self.get_entry(entry_id)

