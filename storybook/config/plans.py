"""
Subscription plans, physical products and promotions.

Prices are in rupees unless marked USD. Razorpay amounts are paise, so
callers multiply by 100 when creating orders.
"""

from dataclasses import dataclass, field
from typing import Optional, Union

UNLIMITED = "unlimited"
UNLIMITED_STORY_LIMIT = 999999
FREE_PLAN_ID = "free"
FREE_STORY_LIMIT = 1

BILLING_CYCLES = ("monthly", "yearly")


@dataclass(frozen=True)
class PlanPrice:
    monthly: int
    yearly: int  # 2 months free
    usd_monthly: int
    usd_yearly: int

    def for_cycle(self, billing_cycle: str) -> int:
        return self.yearly if billing_cycle == "yearly" else self.monthly


@dataclass(frozen=True)
class PlanLimits:
    stories_per_month: Union[int, str]
    children_profiles: int
    story_templates: str  # basic, premium or all
    physical_prints: int
    priority_support: bool
    advanced_personalization: bool


@dataclass(frozen=True)
class SubscriptionPlan:
    id: str
    name: str
    description: str
    price: PlanPrice
    limits: PlanLimits
    target: str
    features: list[str] = field(default_factory=list)
    popular: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": {
                "monthly": self.price.monthly,
                "yearly": self.price.yearly,
                "usd": {"monthly": self.price.usd_monthly, "yearly": self.price.usd_yearly},
            },
            "features": list(self.features),
            "limits": {
                "storiesPerMonth": self.limits.stories_per_month,
                "childrenProfiles": self.limits.children_profiles,
                "storyTemplates": self.limits.story_templates,
                "physicalPrints": self.limits.physical_prints,
                "prioritySupport": self.limits.priority_support,
                "advancedPersonalization": self.limits.advanced_personalization,
            },
            "popular": self.popular,
            "target": self.target,
        }


SUBSCRIPTION_PLANS: list[SubscriptionPlan] = [
    SubscriptionPlan(
        id="starter",
        name="Story Explorer",
        description="Perfect for trying out personalized stories",
        price=PlanPrice(monthly=499, yearly=4990, usd_monthly=6, usd_yearly=60),
        features=[
            "3 personalized stories per month",
            "Basic story templates",
            "1 child profile",
            "Digital PDF downloads",
            "Studio Ghibli art style",
            "Basic personalization",
        ],
        limits=PlanLimits(
            stories_per_month=3,
            children_profiles=1,
            story_templates="basic",
            physical_prints=0,
            priority_support=False,
            advanced_personalization=False,
        ),
        target="First-time users and budget-conscious families",
    ),
    SubscriptionPlan(
        id="family",
        name="Family Storyteller",
        description="Most popular plan for growing families",
        price=PlanPrice(monthly=999, yearly=9990, usd_monthly=12, usd_yearly=120),
        features=[
            "10 personalized stories per month",
            "All story templates & themes",
            "Up to 3 children profiles",
            "HD quality illustrations",
            "Multiple art styles available",
            "Educational content included",
            "2 physical prints per month",
            "Age-appropriate content filtering",
            "Multi-language support (Hindi, English)",
        ],
        limits=PlanLimits(
            stories_per_month=10,
            children_profiles=3,
            story_templates="premium",
            physical_prints=2,
            priority_support=False,
            advanced_personalization=True,
        ),
        popular=True,
        target="Families with multiple children who value education",
    ),
    SubscriptionPlan(
        id="premium",
        name="Story Universe",
        description="Unlimited creativity for dedicated storytelling families",
        price=PlanPrice(monthly=1999, yearly=19990, usd_monthly=24, usd_yearly=240),
        features=[
            "Unlimited personalized stories",
            "All current & future templates",
            "Up to 5 children profiles",
            "Premium HD+ quality",
            "Advanced personalization (pets, family)",
            "Early access to new features",
            "5 physical prints per month",
            "Priority customer support",
            "Therapeutic & special needs content",
            "B2B educational licensing",
            "Custom story requests",
        ],
        limits=PlanLimits(
            stories_per_month=UNLIMITED,
            children_profiles=5,
            story_templates="all",
            physical_prints=5,
            priority_support=True,
            advanced_personalization=True,
        ),
        target="Power users, educators, and families with special needs",
    ),
]

PLANS_BY_ID: dict[str, SubscriptionPlan] = {plan.id: plan for plan in SUBSCRIPTION_PLANS}

# Upgrade order; anything not listed (the free plan) ranks lowest
PLAN_RANK = {FREE_PLAN_ID: 0, "starter": 1, "family": 2, "premium": 3}


# Physical products (a la carte for all plans)
PHYSICAL_PRODUCTS: dict[str, dict] = {
    "softcover": {"name": "Softcover Storybook", "price": 899, "usd": 11, "deliveryTime": "5-7 days"},
    "hardcover": {
        "name": "Premium Hardcover",
        "price": 1499,
        "usd": 18,
        "deliveryTime": "7-10 days",
        "popular": True,
    },
    "poster": {"name": "Story Poster (A3)", "price": 799, "usd": 10, "deliveryTime": "3-5 days"},
    "framedArt": {"name": "Framed Art Collection", "price": 2999, "usd": 36, "deliveryTime": "10-14 days"},
    "giftBox": {"name": "Premium Gift Box", "price": 3999, "usd": 48, "deliveryTime": "14-21 days"},
}


PROMOTIONS: dict[str, dict] = {
    "welcome": {
        "code": "WELCOME30",
        "discount": 30,
        "validFor": "first_month",
        "description": "Welcome offer for new subscribers",
    },
    "yearly": {
        "code": "YEARLY20",
        "discount": 20,
        "validFor": "yearly_plans",
        "description": "Additional 20% off yearly subscriptions",
    },
    "student": {
        "code": "STUDENT50",
        "discount": 50,
        "validFor": "all_plans",
        "description": "Student discount for educational use",
    },
}


# Formats a finished storybook can be ordered in (prices in rupees)
OUTPUT_OPTIONS: list[dict] = [
    {
        "id": "pdf",
        "name": "Digital PDF",
        "description": "Instant download of your complete storybook",
        "price": 299,
        "deliveryTime": "Instant",
        "features": ["High-quality PDF format", "All pages with illustrations", "Print at home option", "Lifetime access"],
    },
    {
        "id": "images",
        "name": "Image Collection",
        "description": "High-resolution images of all illustrations",
        "price": 499,
        "deliveryTime": "Instant",
        "features": ["Individual high-res images", "Perfect for wallpapers", "Social media ready", "ZIP download"],
    },
    {
        "id": "hardcover",
        "name": "Premium Hardcover Book",
        "description": "Beautiful hardbound storybook with premium paper",
        "price": 1499,
        "deliveryTime": "7-10 days",
        "features": ["Premium hardcover binding", "Glossy finish pages", "A4 size format", "Gift wrapping available"],
        "popular": True,
    },
    {
        "id": "softcover",
        "name": "Softcover Book",
        "description": "Affordable paperback version of your storybook",
        "price": 899,
        "deliveryTime": "5-7 days",
        "features": ["Quality paperback", "Vibrant printing", "A4 size format", "Lightweight"],
    },
    {
        "id": "photoFrames",
        "name": "Framed Art Collection",
        "description": "Select pages as beautiful framed wall art",
        "price": 2999,
        "deliveryTime": "10-14 days",
        "features": ["6 selected illustrations", "8x10 inch frames", "Ready to hang", "Premium glass protection"],
    },
    {
        "id": "poster",
        "name": "Story Poster",
        "description": "All pages combined in one beautiful poster",
        "price": 799,
        "deliveryTime": "5-7 days",
        "features": ["A2 size poster", "All illustrations in grid", "Matte finish", "Perfect for kids room"],
    },
    {
        "id": "digitalBundle",
        "name": "Digital Bundle",
        "description": "Complete digital package with extras",
        "price": 699,
        "deliveryTime": "Instant",
        "features": ["PDF storybook", "All high-res images", "Phone wallpapers", "Printable coloring pages"],
    },
    {
        "id": "giftBox",
        "name": "Premium Gift Box",
        "description": "Luxury gift set with book and collectibles",
        "price": 3999,
        "deliveryTime": "14-21 days",
        "features": ["Hardcover book", "3 framed prints", "Character stickers", "Premium gift packaging"],
    },
]

OUTPUT_FORMAT_IDS = [option["id"] for option in OUTPUT_OPTIONS]


def get_plan(plan_id: str) -> Optional[SubscriptionPlan]:
    return PLANS_BY_ID.get(plan_id)


def get_plan_features(plan_id: str) -> list[str]:
    plan = get_plan(plan_id)
    return list(plan.features) if plan else []


def is_unlimited(plan_id: str) -> bool:
    plan = get_plan(plan_id)
    return plan is not None and plan.limits.stories_per_month == UNLIMITED


def get_story_limit(plan_id: str) -> int:
    """Monthly story allowance; unlimited plans map to a large sentinel."""
    plan = get_plan(plan_id)
    if plan is None:
        return FREE_STORY_LIMIT
    if plan.limits.stories_per_month == UNLIMITED:
        return UNLIMITED_STORY_LIMIT
    return int(plan.limits.stories_per_month)


def plan_rank(plan_id: str) -> int:
    return PLAN_RANK.get(plan_id, 0)


def get_promotion(code: str) -> Optional[dict]:
    """Find a promotion by its code (case-insensitive)."""
    for promo in PROMOTIONS.values():
        if promo["code"] == code.upper():
            return promo
    return None


def apply_promotion(amount: int, code: str, billing_cycle: str = "monthly") -> int:
    """
    Discounted amount for a promotion code.

    YEARLY20 only applies to yearly billing; unknown codes leave the amount
    unchanged.
    """
    promo = get_promotion(code)
    if promo is None:
        return amount
    if promo["validFor"] == "yearly_plans" and billing_cycle != "yearly":
        return amount
    return round(amount * (100 - promo["discount"]) / 100)
