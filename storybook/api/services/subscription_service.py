"""Subscription lifecycle and monthly story limits."""

import asyncio
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import razorpay

from ...config.plans import (
    FREE_PLAN_ID,
    FREE_STORY_LIMIT,
    UNLIMITED_STORY_LIMIT,
    apply_promotion,
    get_plan,
    get_plan_features,
    get_promotion,
    get_story_limit,
    is_unlimited,
    plan_rank,
)
from .. import config
from ..database.repository import PaymentRepository, UserRepository, first_of_month
from ..errors import ExternalServiceError, PaymentError, StoryLimitReached, ValidationError
from ..logging import generation_logger
from ..models.responses import (
    CancelSubscriptionResponse,
    CreateSubscriptionResponse,
    SubscriptionInfo,
    SubscriptionStatusResponse,
    UpgradeSubscriptionResponse,
    UsageInfo,
    UserResponse,
)
from .payment_service import CURRENCY, get_razorpay_client

logger = logging.getLogger(__name__)

FREE_PLAN_NAME = "Free"
FREE_PLAN_FEATURES = ["1 story per month", "Basic templates", "Digital downloads"]

CYCLE_DAYS = {"monthly": 30, "yearly": 365}
CYCLE_TOTAL_COUNT = {"monthly": 12, "yearly": 1}


@dataclass
class LimitCheck:
    """Outcome of a story limit check."""

    allowed: bool
    current_plan: str
    used: int
    limit: int
    reason: Optional[str] = None
    test_mode: bool = False


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; they are stored as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _from_epoch(seconds) -> Optional[datetime]:
    return datetime.fromtimestamp(int(seconds), tz=timezone.utc) if seconds else None


def next_reset_date(now: datetime) -> datetime:
    """First day of the month after `now`."""
    if now.month == 12:
        return datetime(now.year + 1, 1, 1, tzinfo=timezone.utc)
    return datetime(now.year, now.month + 1, 1, tzinfo=timezone.utc)


def _webhook_entity(event: dict, kind: str) -> dict:
    """`event["payload"][kind]["entity"]`, or {} where any level is missing or not an object."""
    node = event
    for key in ("payload", kind, "entity"):
        node = node.get(key) if isinstance(node, dict) else None
    return node if isinstance(node, dict) else {}


def effective_story_limit(user: UserResponse) -> int:
    if is_unlimited(user.subscription_plan):
        return UNLIMITED_STORY_LIMIT
    return user.monthly_stories_limit


class SubscriptionService:
    """Plans, Razorpay subscriptions and the monthly story allowance."""

    def __init__(
        self,
        users: UserRepository,
        payments: PaymentRepository,
        client: Optional[razorpay.Client] = None,
    ):
        self.users = users
        self.payments = payments
        self._client = client

    @property
    def client(self) -> razorpay.Client:
        if self._client is None:
            try:
                self._client = get_razorpay_client()
            except ValueError as e:
                raise ExternalServiceError("Razorpay", "Payment gateway not configured") from e
        return self._client

    # -------------------------------------------------------------------------
    # Usage limits
    # -------------------------------------------------------------------------

    def check_story_limit(self, user: UserResponse) -> LimitCheck:
        limit = effective_story_limit(user)
        used = user.monthly_stories_used
        plan = user.subscription_plan

        if config.TEST_MODE:
            return LimitCheck(allowed=True, current_plan=plan, used=used, limit=limit, test_mode=True)
        if is_unlimited(plan) or used < limit:
            return LimitCheck(allowed=True, current_plan=plan, used=used, limit=limit)
        return LimitCheck(
            allowed=False,
            current_plan=plan,
            used=used,
            limit=limit,
            reason=f"You've reached your monthly limit of {limit} stories",
        )

    async def refresh_usage(self, user: UserResponse, now: Optional[datetime] = None) -> UserResponse:
        """Start a new month for `user` when the last reset predates it."""
        now = now or _utcnow()
        reset_at = _aware(user.usage_reset_date)
        if reset_at is not None and reset_at >= first_of_month(now):
            return user
        await self.users.reset_monthly_usage(user.id, now)
        logger.info("Monthly usage reset", extra={"user_id": user.id, "event": "usage_reset"})
        return user.model_copy(update={"monthly_stories_used": 0, "usage_reset_date": now})

    async def ensure_can_generate(self, user: UserResponse, now: Optional[datetime] = None) -> LimitCheck:
        """Raise StoryLimitReached when the allowance is used up."""
        user = await self.refresh_usage(user, now)
        check = self.check_story_limit(user)
        if not check.allowed:
            logger.info(
                f"Story limit reached on plan {check.current_plan}",
                extra={"user_id": user.id, "event": "limit_reached"},
            )
            raise StoryLimitReached(check.current_plan, check.used, check.limit)
        return check

    async def record_story_created(self, user: UserResponse) -> None:
        """
        Count a story against the allowance.

        On limited plans the stored counter is only incremented while it is
        below the stored limit; StoryLimitReached otherwise.
        """
        if config.TEST_MODE:
            logger.debug("Test mode: usage not recorded", extra={"user_id": user.id})
            return
        limited = not is_unlimited(user.subscription_plan)
        counted = await self.users.increment_story_usage(user.id, within_limit=limited)
        if not counted:
            limit = effective_story_limit(user)
            raise StoryLimitReached(user.subscription_plan, limit, limit)

    # -------------------------------------------------------------------------
    # Subscription lifecycle
    # -------------------------------------------------------------------------

    async def create(self, user: UserResponse, plan_id: str, billing_cycle: str) -> CreateSubscriptionResponse:
        """Start a Razorpay subscription; the user stays pending until it activates."""
        plan = get_plan(plan_id)
        if plan is None:
            raise ValidationError("Invalid plan")

        client = self.client
        try:
            subscription = await asyncio.to_thread(
                client.subscription.create,
                {
                    "plan_id": f"{plan_id}_{billing_cycle}",
                    "customer_notify": 1,
                    "total_count": CYCLE_TOTAL_COUNT[billing_cycle],
                    "notes": {"userId": user.id, "planId": plan_id, "billingCycle": billing_cycle},
                },
            )
        except Exception as e:
            logger.error(f"Razorpay subscription failed: {e}", extra={"provider": "razorpay", "error_type": type(e).__name__})
            raise PaymentError("Failed to create subscription") from e

        now = _utcnow()
        await self.users.update_subscription(
            user.id,
            subscription_plan=plan_id,
            subscription_status="pending",
            subscription_start_date=now,
            subscription_end_date=now + timedelta(days=CYCLE_DAYS[billing_cycle]),
            subscription_id=subscription.get("id"),
            monthly_stories_limit=get_story_limit(plan_id),
        )
        generation_logger.payment_event("subscription.created", user.id, plan=plan_id, cycle=billing_cycle)

        return CreateSubscriptionResponse(
            subscription_id=subscription["id"],
            payment_link=subscription.get("short_url"),
            amount=plan.price.for_cycle(billing_cycle),
            currency=CURRENCY,
        )

    async def upgrade(
        self,
        user: UserResponse,
        plan_id: str,
        billing_cycle: str,
        promo_code: Optional[str] = None,
    ) -> UpgradeSubscriptionResponse:
        """Create a one-off Razorpay order for moving to a higher plan."""
        plan = get_plan(plan_id)
        if plan is None:
            raise ValidationError("Invalid plan")
        if plan_rank(plan_id) <= plan_rank(user.subscription_plan):
            raise ValidationError("Can only upgrade to a higher tier plan")

        price = plan.price.for_cycle(billing_cycle)
        if promo_code:
            if get_promotion(promo_code) is None:
                raise ValidationError("Invalid promotion code", {"field": "promoCode"})
            price = apply_promotion(price, promo_code, billing_cycle)
        amount = price * 100
        client = self.client
        try:
            order = await asyncio.to_thread(
                client.order.create,
                {
                    "amount": amount,
                    "currency": CURRENCY,
                    "notes": {
                        "userId": user.id,
                        "upgradeFrom": user.subscription_plan,
                        "upgradeTo": plan_id,
                        "billingCycle": billing_cycle,
                    },
                },
            )
        except Exception as e:
            logger.error(f"Razorpay upgrade order failed: {e}", extra={"provider": "razorpay", "error_type": type(e).__name__})
            raise PaymentError("Failed to upgrade subscription") from e

        await self.payments.create_payment(
            razorpay_order_id=order["id"],
            amount=amount,
            user_id=user.id,
            plan_id=plan_id,
            billing_cycle=billing_cycle,
            currency=CURRENCY,
        )
        generation_logger.payment_event("subscription.upgrade_requested", user.id, plan=plan_id)

        return UpgradeSubscriptionResponse(
            order_id=order["id"],
            amount=amount,
            currency=CURRENCY,
            key=config.RAZORPAY_KEY_ID,
        )

    async def cancel(self, user: UserResponse) -> CancelSubscriptionResponse:
        """Cancel at period end; the plan stays usable until the end date."""
        if user.subscription_plan == FREE_PLAN_ID:
            raise ValidationError("No active subscription to cancel")

        await self.users.update_subscription(user.id, subscription_status="cancelled")
        generation_logger.payment_event("subscription.cancelled", user.id, plan=user.subscription_plan)

        return CancelSubscriptionResponse(
            message="Subscription cancelled successfully",
            active_until=user.subscription_end_date,
        )

    def get_status(self, user: UserResponse, now: Optional[datetime] = None) -> SubscriptionStatusResponse:
        now = now or _utcnow()
        plan = get_plan(user.subscription_plan)

        end_date = _aware(user.subscription_end_date)
        days_remaining = 0
        if end_date is not None:
            days_remaining = max(0, math.ceil((end_date - now).total_seconds() / 86400))

        limit = effective_story_limit(user)
        used = user.monthly_stories_used

        return SubscriptionStatusResponse(
            subscription=SubscriptionInfo(
                plan=user.subscription_plan,
                plan_name=plan.name if plan else FREE_PLAN_NAME,
                status=user.subscription_status,
                start_date=_aware(user.subscription_start_date),
                end_date=end_date,
                days_remaining=days_remaining,
                auto_renew=user.subscription_status == "active" and plan is not None,
            ),
            usage=UsageInfo(
                stories_used=used,
                stories_limit=limit,
                stories_remaining=max(0, limit - used),
                can_generate_story=self.check_story_limit(user).allowed,
                reset_date=next_reset_date(now),
            ),
            features=get_plan_features(user.subscription_plan) if plan else list(FREE_PLAN_FEATURES),
        )

    # -------------------------------------------------------------------------
    # Webhooks
    # -------------------------------------------------------------------------

    async def handle_webhook_event(self, event: dict) -> None:
        """Apply a verified Razorpay webhook event. Unknown events are only logged."""
        event_type = event.get("event")
        event_type = event_type if isinstance(event_type, str) else ""

        if event_type == "payment.captured":
            await self._payment_captured(_webhook_entity(event, "payment"))
            return

        if not event_type.startswith("subscription."):
            logger.info(f"Ignoring webhook event {event_type}", extra={"event": event_type})
            return

        entity = _webhook_entity(event, "subscription")
        notes = entity.get("notes")
        notes = notes if isinstance(notes, dict) else {}
        user_id = notes.get("userId")
        user = await self.users.get_user(user_id) if user_id else None
        if user is None:
            logger.warning(f"Webhook {event_type} for unknown user {user_id}", extra={"event": event_type})
            return

        if event_type in ("subscription.activated", "subscription.updated"):
            plan_id = notes.get("planId")
            if get_plan(plan_id) is None:
                logger.warning(f"Webhook {event_type} with unknown plan {plan_id}", extra={"event": event_type})
                return
            await self.users.update_subscription(
                user.id,
                subscription_plan=plan_id,
                subscription_status="active",
                subscription_start_date=_from_epoch(entity.get("start_at")),
                subscription_end_date=_from_epoch(entity.get("end_at")),
                monthly_stories_limit=get_story_limit(plan_id),
            )
        elif event_type == "subscription.pending":
            await self.users.update_subscription(
                user.id,
                subscription_status="pending",
                monthly_stories_limit=FREE_STORY_LIMIT,
            )
        elif event_type in ("subscription.halted", "subscription.cancelled"):
            await self.users.update_subscription(
                user.id,
                subscription_status="cancelled",
                subscription_end_date=_from_epoch(entity.get("end_at")) or user.subscription_end_date,
            )
        elif event_type == "subscription.completed":
            await self.users.update_subscription(
                user.id,
                subscription_plan=FREE_PLAN_ID,
                subscription_status="inactive",
                subscription_start_date=None,
                subscription_end_date=None,
                monthly_stories_limit=FREE_STORY_LIMIT,
            )
        else:
            logger.info(f"Ignoring webhook event {event_type}", extra={"event": event_type})
            return

        generation_logger.payment_event(event_type, user.id)

    async def _payment_captured(self, entity: dict) -> None:
        """Settle the payment; a captured upgrade order moves the user to its plan."""
        order_id = entity.get("order_id")
        if not order_id:
            logger.warning("payment.captured without order_id", extra={"event": "payment.captured"})
            return

        payment = await self.payments.mark_captured(order_id, entity.get("id", ""))
        if payment is None:
            logger.info(f"payment.captured for untracked order {order_id}", extra={"event": "payment.captured"})
            return

        if payment.user_id and payment.plan_id:
            now = _utcnow()
            days = CYCLE_DAYS.get(payment.billing_cycle or "monthly", 30)
            await self.users.update_subscription(
                payment.user_id,
                subscription_plan=payment.plan_id,
                subscription_status="active",
                subscription_start_date=now,
                subscription_end_date=now + timedelta(days=days),
                monthly_stories_limit=get_story_limit(payment.plan_id),
            )

        generation_logger.payment_event("payment.captured", payment.user_id, order=order_id)
