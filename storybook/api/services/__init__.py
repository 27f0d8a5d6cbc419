"""Services for story generation and billing."""

from .story_service import StoryService
from .subscription_service import LimitCheck, SubscriptionService
from .payment_service import PaymentService, verify_payment_signature, verify_webhook_signature

__all__ = [
    "StoryService",
    "SubscriptionService",
    "LimitCheck",
    "PaymentService",
    "verify_payment_signature",
    "verify_webhook_signature",
]
