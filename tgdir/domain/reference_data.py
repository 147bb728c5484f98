"""Fixed reference data: categories, promotion plans and tag keywords."""

from __future__ import annotations

from tgdir.domain.models import PromotionPlan

ALL_CATEGORY = "All"

CATEGORIES: tuple[str, ...] = (
    ALL_CATEGORY,
    "Technology",
    "Finance",
    "Art",
    "Business",
    "Gaming",
    "Music",
    "Education",
)

# Categories a group can be filed under ("All" is a browse-only pseudo-category)
SUBMITTABLE_CATEGORIES: tuple[str, ...] = tuple(c for c in CATEGORIES if c != ALL_CATEGORY)

PROMOTION_PLANS: tuple[PromotionPlan, ...] = (
    PromotionPlan(
        id="1-month",
        name="1 Month Featured",
        duration_days=30,
        price=9.99,
        features=(
            "Listed in the featured section of the home page",
            "Ranked first on its category page",
            "Featured badge",
            "Active for 30 days",
        ),
    ),
    PromotionPlan(
        id="3-month",
        name="3 Month Featured",
        duration_days=90,
        price=24.99,
        features=(
            "Listed in the featured section of the home page",
            "Ranked first on its category page",
            "Featured badge",
            "Active for 90 days",
            "17% discount",
        ),
        popular=True,
    ),
    PromotionPlan(
        id="6-month",
        name="6 Month Featured",
        duration_days=180,
        price=44.99,
        features=(
            "Listed in the featured section of the home page",
            "Ranked first on its category page",
            "Featured badge",
            "Active for 180 days",
            "25% discount",
            "Priority support",
        ),
    ),
)

PLANS_BY_ID: dict[str, PromotionPlan] = {plan.id: plan for plan in PROMOTION_PLANS}

MAX_AUTO_TAGS = 10

TAG_KEYWORDS: tuple[str, ...] = (
    "react", "vue", "angular", "javascript", "typescript", "node", "python", "java",
    "php", "laravel", "django", "flutter", "kotlin", "swift", "ios", "android",
    "web", "mobile", "frontend", "backend", "fullstack", "devops", "ai", "ml",
    "blockchain", "crypto", "bitcoin", "ethereum", "nft", "defi",
    "design", "ui", "ux", "figma", "photoshop", "illustrator",
    "business", "startup", "entrepreneur", "marketing", "sales",
    "game", "unity", "unreal", "gamedev", "indie",
    "music", "production", "beat", "mixing", "mastering",
    "book", "literature", "reading", "writing", "author",
)  # fmt: skip
