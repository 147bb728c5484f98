"""Pydantic schemas for submissions, moderation and the public catalog."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from tgdir.domain.models import GroupMetadata
from tgdir.domain.services.catalog import CatalogListing
from tgdir.infrastructure.db.models import Submission


class GroupMetadataResponse(BaseModel):
    """Preview of a Telegram group before it is submitted."""

    name: str
    description: str
    username: str
    link: str
    members: int
    image: str | None = None
    verified: bool = False
    chat_type: str = "group"
    tags: list[str] = Field(default_factory=list)

    @classmethod
    def from_metadata(cls, metadata: GroupMetadata) -> GroupMetadataResponse:
        return cls(
            name=metadata.name,
            description=metadata.description,
            username=metadata.username,
            link=metadata.link,
            members=metadata.members,
            image=metadata.image,
            verified=metadata.verified,
            chat_type=metadata.chat_type,
            tags=list(metadata.tags),
        )


class SubmissionCreateRequest(BaseModel):
    handle: str = Field(
        ...,
        min_length=1,
        max_length=128,
        description="Group handle: @name, name or https://t.me/name",
    )
    category: str = Field(..., description="Category the group is filed under")
    tags: list[str] = Field(default_factory=list, description="Additional owner tags")
    note: str | None = Field(None, max_length=1000, description="Note for the moderators")


class SubmissionUpdateRequest(BaseModel):
    category: str = Field(..., description="New category (pending submissions only)")


class RejectRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000, description="Why the group was rejected")


class SubmissionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_id: str
    group_name: str
    group_description: str
    group_username: str
    group_image: str | None = None
    category: str
    tags: list[str]
    members: int
    link: str
    status: str
    submission_note: str | None = None
    submitted_at: datetime
    reviewed_at: datetime | None = None
    reviewed_by: str | None = None
    rejection_reason: str | None = None

    @classmethod
    def from_model(cls, submission: Submission) -> SubmissionResponse:
        return cls(
            id=submission.id,
            owner_id=submission.owner_id,
            group_name=submission.group_name,
            group_description=submission.group_description,
            group_username=submission.group_username,
            group_image=submission.group_image,
            category=submission.category,
            tags=list(submission.tags or []),
            members=submission.members,
            link=submission.link,
            status=submission.status.value,
            submission_note=submission.submission_note,
            submitted_at=submission.submitted_at,
            reviewed_at=submission.reviewed_at,
            reviewed_by=submission.reviewed_by,
            rejection_reason=submission.rejection_reason,
        )


class SubmissionListResponse(BaseModel):
    items: list[SubmissionResponse]
    total: int


class SubmissionStatsResponse(BaseModel):
    pending: int
    approved: int
    rejected: int
    total: int


class CatalogEntryResponse(BaseModel):
    id: str
    slug: str
    name: str
    description: str
    username: str
    image: str | None = None
    members: int
    category: str
    tags: list[str]
    link: str
    verified: bool
    approved: bool
    featured: bool
    created_at: datetime

    @classmethod
    def from_listing(cls, listing: CatalogListing) -> CatalogEntryResponse:
        entry = listing.entry
        return cls(
            id=entry.id,
            slug=listing.slug,
            name=entry.name,
            description=entry.description,
            username=entry.username,
            image=entry.image,
            members=entry.members,
            category=entry.category,
            tags=list(entry.tags or []),
            link=entry.link,
            verified=entry.verified,
            approved=entry.approved,
            featured=listing.featured,
            created_at=entry.created_at,
        )


class CatalogListResponse(BaseModel):
    items: list[CatalogEntryResponse]
    limit: int
    offset: int


class CategoryCount(BaseModel):
    name: str
    count: int


class CategoryListResponse(BaseModel):
    items: list[CategoryCount]


class CatalogEntryUpdateRequest(BaseModel):
    description: str | None = Field(None, max_length=4000)
    category: str | None = None
    tags: list[str] | None = None
    verified: bool | None = None
