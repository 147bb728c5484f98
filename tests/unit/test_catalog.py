"""Tests for catalog browsing and curation."""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession
from tgdir.domain.errors import AuthorizationError, NotFoundError, ValidationError
from tgdir.domain.services.catalog import CatalogService
from tgdir.domain.services.promotions import PromotionService

from tests.utils import FakePaymentGateway, approved_entry, make_metadata, make_user

OWNER = make_user("owner-1")
ADMIN = make_user("admin-user", admin=True)


async def _seed(db: AsyncSession) -> dict[str, str]:
    """Three listed groups across two categories; returns name -> entry id."""
    seeds = [
        (make_metadata("DevTR", "devtr", description="Python and Django developers"), "Technology"),
        (make_metadata("Crypto Signals", "signals", description="Daily bitcoin talk"), "Finance"),
        (make_metadata("Yazılım Geliştiriciler", "yazilimcilar"), "Technology"),
    ]
    ids = {}
    for metadata, category in seeds:
        entry = await approved_entry(db, OWNER, metadata, category=category)
        ids[entry.name] = entry.id
    return ids


async def _feature(db: AsyncSession, group_id: str) -> None:
    service = PromotionService(db)
    promotion = await service.create_promotion(group_id, OWNER, "1-month")
    await service.activate_on_payment_success(promotion.id)


class TestListEntries:
    async def test_lists_all_approved(self, db: AsyncSession) -> None:
        await _seed(db)

        listings = await CatalogService(db).list_entries()

        assert len(listings) == 3
        assert all(not listing.featured for listing in listings)

    async def test_category_filter(self, db: AsyncSession) -> None:
        await _seed(db)
        service = CatalogService(db)

        tech = await service.list_entries(category="Technology")
        everything = await service.list_entries(category="All")

        assert {listing.entry.name for listing in tech} == {"DevTR", "Yazılım Geliştiriciler"}
        assert len(everything) == 3

    async def test_unknown_category(self, db: AsyncSession) -> None:
        with pytest.raises(ValidationError):
            await CatalogService(db).list_entries(category="Cooking")

    @pytest.mark.parametrize(
        ("term", "expected"),
        [("devtr", {"DevTR"}), ("BITCOIN", {"Crypto Signals"}), ("yazilimci", {"Yazılım Geliştiriciler"})],
    )
    async def test_search_matches_name_description_username(
        self, db: AsyncSession, term: str, expected: set[str]
    ) -> None:
        await _seed(db)

        listings = await CatalogService(db).list_entries(search=term)

        assert {listing.entry.name for listing in listings} == expected

    async def test_featured_entries_come_first(self, db: AsyncSession) -> None:
        ids = await _seed(db)
        await _feature(db, ids["DevTR"])
        service = CatalogService(db)

        listings = await service.list_entries()
        featured = await service.list_featured()

        assert listings[0].entry.id == ids["DevTR"]
        assert listings[0].featured is True
        assert [listing.featured for listing in listings[1:]] == [False, False]
        assert [listing.entry.id for listing in featured] == [ids["DevTR"]]

    async def test_pagination(self, db: AsyncSession) -> None:
        await _seed(db)
        service = CatalogService(db)

        first = await service.list_entries(limit=2)
        rest = await service.list_entries(limit=2, offset=2)

        assert len(first) == 2
        assert len(rest) == 1
        assert rest[0].entry.id not in {listing.entry.id for listing in first}

    async def test_top_groups_rank_by_members(self, db: AsyncSession) -> None:
        ids = {}
        for name, members in (("Small", 10), ("Large", 5000), ("Medium", 300)):
            entry = await approved_entry(
                db, OWNER, make_metadata(name, name.lower(), members=members)
            )
            ids[name] = entry.id
        await _feature(db, ids["Small"])
        service = CatalogService(db)

        top = await service.list_top()
        top_two = await service.list_top(limit=2)

        assert [listing.entry.name for listing in top] == ["Large", "Medium", "Small"]
        assert top[-1].featured is True
        assert [listing.entry.name for listing in top_two] == ["Large", "Medium"]

    async def test_unknown_sort_order(self, db: AsyncSession) -> None:
        with pytest.raises(ValidationError):
            await CatalogService(db).list_entries(sort="oldest")


class TestLookups:
    async def test_get_entry(self, db: AsyncSession) -> None:
        ids = await _seed(db)

        listing = await CatalogService(db).get_entry(ids["DevTR"])

        assert listing.entry.username == "devtr"
        assert listing.slug == "devtr"

    async def test_get_missing_entry(self, db: AsyncSession) -> None:
        with pytest.raises(NotFoundError):
            await CatalogService(db).get_entry("missing")

    async def test_get_entry_by_slug_transliterates(self, db: AsyncSession) -> None:
        ids = await _seed(db)

        listing = await CatalogService(db).get_entry_by_slug("yazilim-gelistiriciler")

        assert listing.entry.id == ids["Yazılım Geliştiriciler"]

    async def test_unknown_slug(self, db: AsyncSession) -> None:
        await _seed(db)

        with pytest.raises(NotFoundError):
            await CatalogService(db).get_entry_by_slug("no-such-group")

    async def test_category_counts(self, db: AsyncSession) -> None:
        await _seed(db)

        counts = {item["name"]: item["count"] for item in await CatalogService(db).category_counts()}

        assert counts["All"] == 3
        assert counts["Technology"] == 2
        assert counts["Finance"] == 1
        assert counts["Music"] == 0


class TestUpdateEntry:
    async def test_admin_curates_entry(self, db: AsyncSession) -> None:
        ids = await _seed(db)

        listing = await CatalogService(db).update_entry(
            ids["DevTR"],
            ADMIN,
            {"description": " Updated ", "category": "Education", "tags": ["py", "py"], "verified": True},
        )

        assert listing.entry.description == "Updated"
        assert listing.entry.category == "Education"
        assert listing.entry.tags == ["py"]
        assert listing.entry.verified is True

    async def test_non_admin_cannot_curate(self, db: AsyncSession) -> None:
        ids = await _seed(db)

        with pytest.raises(AuthorizationError):
            await CatalogService(db).update_entry(ids["DevTR"], OWNER, {"verified": True})

    @pytest.mark.parametrize("changes", [{"name": "Renamed"}, {"category": "All"}])
    async def test_rejects_invalid_changes(
        self, db: AsyncSession, changes: dict[str, str]
    ) -> None:
        ids = await _seed(db)

        with pytest.raises(ValidationError):
            await CatalogService(db).update_entry(ids["DevTR"], ADMIN, changes)


async def test_checkout_then_payment_features_group(
    db: AsyncSession, gateway: FakePaymentGateway
) -> None:
    ids = await _seed(db)
    promotions = PromotionService(db)
    promotion, _ = await promotions.checkout(ids["Crypto Signals"], OWNER, "1-month", gateway)

    before = await CatalogService(db).get_entry(ids["Crypto Signals"])
    assert before.featured is False

    await promotions.handle_payment_callback(
        {"order_id": promotion.order_id, "status": "paid_over", "sign": "valid"}, gateway
    )

    after = await CatalogService(db).get_entry(ids["Crypto Signals"])
    assert after.featured is True
