"""Shared enums for API models."""

from enum import Enum


class PlanId(str, Enum):
    """Paid subscription plans."""

    STARTER = "starter"
    FAMILY = "family"
    PREMIUM = "premium"


class BillingCycle(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    PENDING = "pending"
    CANCELLED = "cancelled"
    INACTIVE = "inactive"


class StoryStatus(str, Enum):
    """Lifecycle of a stored story."""

    DRAFT = "draft"
    GENERATED = "generated"
    ILLUSTRATED = "illustrated"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class OrderStatus(str, Enum):
    """Fulfilment stages of a print or download order."""

    CREATED = "created"
    PAYMENT_PENDING = "payment_pending"
    PAYMENT_COMPLETED = "payment_completed"
    PROCESSING = "processing"
    PRINTING = "printing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"


class ArtStyle(str, Enum):
    CARTOON = "cartoon"
    WATERCOLOR = "watercolor"
    DIGITAL_ART = "digital_art"
    ILLUSTRATION = "illustration"


class PromptCategory(str, Enum):
    CHARACTER = "character"
    SCENE = "scene"
    STYLE = "style"
    TECHNICAL = "technical"


class CacheKind(str, Enum):
    CHARACTER = "character"
    IMAGE = "image"
    STORY = "story"
    TEMPLATE = "template"
    ALL = "all"
