"""Public catalog routes and group reports."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from tgdir.api.deps import get_current_user, get_db_session, http_error
from tgdir.api.schemas.groups import (
    CatalogEntryResponse,
    CatalogListResponse,
    CategoryCount,
    CategoryListResponse,
)
from tgdir.api.schemas.reports import ReportCreateRequest, ReportResponse
from tgdir.domain import User
from tgdir.domain.errors import DirectoryError
from tgdir.domain.services.catalog import CatalogService
from tgdir.domain.services.reports import ReportService

router = APIRouter(prefix="/groups", tags=["Groups"])


@router.get("", response_model=CatalogListResponse)
async def list_groups(
    category: str | None = Query(None, description="Category name; `All` disables the filter"),
    search: str | None = Query(None, max_length=100),
    featured: bool = Query(False, description="Only featured groups"),
    sort: str = Query("featured", description="`featured` or `members`"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_db_session),
) -> CatalogListResponse:
    try:
        listings = await CatalogService(session).list_entries(
            category=category,
            search=search,
            featured_only=featured,
            sort=sort,
            limit=limit,
            offset=offset,
        )
    except DirectoryError as exc:
        raise http_error(exc) from exc
    return CatalogListResponse(
        items=[CatalogEntryResponse.from_listing(listing) for listing in listings],
        limit=limit,
        offset=offset,
    )


@router.get("/featured", response_model=CatalogListResponse)
async def featured_groups(
    limit: int = Query(12, ge=1, le=50),
    session: AsyncSession = Depends(get_db_session),
) -> CatalogListResponse:
    listings = await CatalogService(session).list_featured(limit=limit)
    return CatalogListResponse(
        items=[CatalogEntryResponse.from_listing(listing) for listing in listings],
        limit=limit,
        offset=0,
    )


@router.get("/top", response_model=CatalogListResponse)
async def top_groups(
    category: str | None = Query(None, description="Category name; `All` disables the filter"),
    search: str | None = Query(None, max_length=100),
    limit: int = Query(100, ge=1, le=100),
    session: AsyncSession = Depends(get_db_session),
) -> CatalogListResponse:
    try:
        listings = await CatalogService(session).list_top(
            category=category, search=search, limit=limit
        )
    except DirectoryError as exc:
        raise http_error(exc) from exc
    return CatalogListResponse(
        items=[CatalogEntryResponse.from_listing(listing) for listing in listings],
        limit=limit,
        offset=0,
    )


@router.get("/categories", response_model=CategoryListResponse)
async def categories(session: AsyncSession = Depends(get_db_session)) -> CategoryListResponse:
    counts = await CatalogService(session).category_counts()
    return CategoryListResponse(items=[CategoryCount(**item) for item in counts])


@router.get("/slug/{slug}", response_model=CatalogEntryResponse)
async def get_group_by_slug(
    slug: str,
    session: AsyncSession = Depends(get_db_session),
) -> CatalogEntryResponse:
    try:
        listing = await CatalogService(session).get_entry_by_slug(slug)
    except DirectoryError as exc:
        raise http_error(exc) from exc
    return CatalogEntryResponse.from_listing(listing)


@router.get("/{entry_id}", response_model=CatalogEntryResponse)
async def get_group(
    entry_id: str,
    session: AsyncSession = Depends(get_db_session),
) -> CatalogEntryResponse:
    try:
        listing = await CatalogService(session).get_entry(entry_id)
    except DirectoryError as exc:
        raise http_error(exc) from exc
    return CatalogEntryResponse.from_listing(listing)


@router.post(
    "/{entry_id}/reports",
    response_model=ReportResponse,
    status_code=status.HTTP_201_CREATED,
)
async def report_group(
    entry_id: str,
    payload: ReportCreateRequest,
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(get_current_user),
) -> ReportResponse:
    try:
        report = await ReportService(session).report_group(entry_id, user, payload.reason)
    except DirectoryError as exc:
        raise http_error(exc) from exc
    return ReportResponse.from_model(report)
