"""Domain services."""

from tgdir.domain.services.activity import ActivityRecorder
from tgdir.domain.services.auth_service import AuthService
from tgdir.domain.services.catalog import CatalogListing, CatalogService
from tgdir.domain.services.moderation import ModerationService
from tgdir.domain.services.promotions import PromotionService
from tgdir.domain.services.reports import ReportService
from tgdir.domain.services.submissions import SubmissionService

__all__ = [
    "ActivityRecorder",
    "AuthService",
    "CatalogListing",
    "CatalogService",
    "ModerationService",
    "PromotionService",
    "ReportService",
    "SubmissionService",
]
