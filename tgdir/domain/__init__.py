from tgdir.domain.models import GroupMetadata, PromotionPlan, User

__all__ = ["GroupMetadata", "PromotionPlan", "User"]
