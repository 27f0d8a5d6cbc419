"""Repositories for users, stories, orders and payments using SQLAlchemy ORM.

Repositories hand pydantic response models to the layers above; ORM rows
never leave this module.
"""

import json
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.responses import (
    OrderResponse,
    PaymentRecord,
    StoryPageResponse,
    StoryResponse,
    UserResponse,
)
from .models import Order, Payment, Story, User


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def first_of_month(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _dumps(value: Any) -> Optional[str]:
    return json.dumps(value) if value is not None else None


def _loads(value: Optional[str], default: Any = None) -> Any:
    return json.loads(value) if value else default


class UserRepository:
    """Repository for accounts and their usage counters."""

    SUBSCRIPTION_FIELDS = frozenset(
        {
            "subscription_plan",
            "subscription_status",
            "subscription_start_date",
            "subscription_end_date",
            "subscription_id",
            "monthly_stories_limit",
        }
    )

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _get_row(self, user_id: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def create_user(self, email: str, password_hash: str, name: Optional[str] = None) -> UserResponse:
        """Create a user on the free plan. Duplicate emails raise IntegrityError on flush."""
        user = User(
            email=email,
            name=name,
            password_hash=password_hash,
            usage_reset_date=_utcnow(),
        )
        self.session.add(user)
        await self.session.flush()
        await self.session.refresh(user)
        return self._to_response(user)

    async def get_user(self, user_id: str) -> Optional[UserResponse]:
        user = await self._get_row(user_id)
        return self._to_response(user) if user else None

    async def email_exists(self, email: str) -> bool:
        result = await self.session.execute(select(func.count()).select_from(User).where(User.email == email))
        return (result.scalar() or 0) > 0

    async def get_credentials(self, email: str) -> Optional[tuple[UserResponse, str]]:
        """The user and their password hash, for login only."""
        result = await self.session.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()
        if user is None:
            return None
        return self._to_response(user), user.password_hash

    async def update_last_login(self, user_id: str) -> None:
        await self.session.execute(update(User).where(User.id == user_id).values(last_login_at=_utcnow()))

    async def update_subscription(self, user_id: str, **fields) -> Optional[UserResponse]:
        """Update subscription columns. Unknown field names raise ValueError."""
        unknown = set(fields) - self.SUBSCRIPTION_FIELDS
        if unknown:
            raise ValueError(f"Not subscription fields: {sorted(unknown)}")

        user = await self._get_row(user_id)
        if user is None:
            return None
        for name, value in fields.items():
            setattr(user, name, value)
        await self.session.flush()
        await self.session.refresh(user)
        return self._to_response(user)

    async def increment_story_usage(
        self, user_id: str, within_limit: bool = False, now: Optional[datetime] = None
    ) -> bool:
        """
        Count one created story against the month and the lifetime total.

        With `within_limit` the row only changes while `monthly_stories_used`
        is below `monthly_stories_limit`. Returns whether a row was updated.
        """
        statement = update(User).where(User.id == user_id)
        if within_limit:
            statement = statement.where(User.monthly_stories_used < User.monthly_stories_limit)
        result = await self.session.execute(
            statement.values(
                monthly_stories_used=User.monthly_stories_used + 1,
                total_stories_created=User.total_stories_created + 1,
                last_story_created_at=now or _utcnow(),
            )
        )
        return (result.rowcount or 0) > 0

    async def reset_monthly_usage(self, user_id: str, now: Optional[datetime] = None) -> None:
        await self.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(monthly_stories_used=0, usage_reset_date=now or _utcnow())
        )

    async def reset_stale_usage(self, now: Optional[datetime] = None) -> int:
        """Zero the counter for users last reset before this month. Returns the count."""
        now = now or _utcnow()
        result = await self.session.execute(
            update(User)
            .where(or_(User.usage_reset_date.is_(None), User.usage_reset_date < first_of_month(now)))
            .values(monthly_stories_used=0, usage_reset_date=now)
        )
        return result.rowcount or 0

    @staticmethod
    def _to_response(user: User) -> UserResponse:
        return UserResponse(
            id=user.id,
            email=user.email,
            name=user.name,
            subscription_plan=user.subscription_plan,
            subscription_status=user.subscription_status,
            subscription_start_date=user.subscription_start_date,
            subscription_end_date=user.subscription_end_date,
            subscription_id=user.subscription_id,
            monthly_stories_used=user.monthly_stories_used,
            monthly_stories_limit=user.monthly_stories_limit,
            total_stories_created=user.total_stories_created,
            last_story_created_at=user.last_story_created_at,
            usage_reset_date=user.usage_reset_date,
            email_verified=bool(user.email_verified),
            last_login_at=user.last_login_at,
            created_at=user.created_at,
        )


class StoryRepository:
    """Repository for story persistence operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _get_row(self, story_id: str) -> Optional[Story]:
        result = await self.session.execute(select(Story).where(Story.id == story_id))
        return result.scalar_one_or_none()

    async def create_story(
        self,
        user_id: str,
        title: str,
        child_name: str,
        pages: list[dict],
        child_age: Optional[str] = None,
        theme: Optional[dict] = None,
        customization: Optional[dict] = None,
        metadata: Optional[dict] = None,
        status: str = "generated",
    ) -> StoryResponse:
        story = Story(
            user_id=user_id,
            title=title,
            child_name=child_name,
            child_age=child_age,
            pages_json=json.dumps(pages),
            theme_json=_dumps(theme),
            customization_json=_dumps(customization),
            metadata_json=_dumps(metadata),
            status=status,
        )
        self.session.add(story)
        await self.session.flush()
        await self.session.refresh(story)
        return self._to_response(story)

    async def get_story(self, story_id: str) -> Optional[StoryResponse]:
        story = await self._get_row(story_id)
        return self._to_response(story) if story else None

    async def list_stories(self, user_id: str, limit: int = 20, offset: int = 0) -> tuple[list[StoryResponse], int]:
        """A page of the user's stories, newest first, and the user's total."""
        count_result = await self.session.execute(
            select(func.count()).select_from(Story).where(Story.user_id == user_id)
        )
        total = count_result.scalar() or 0

        result = await self.session.execute(
            select(Story)
            .where(Story.user_id == user_id)
            .order_by(Story.created_at.desc(), Story.id)
            .limit(limit)
            .offset(offset)
        )
        return [self._to_response(s) for s in result.scalars().all()], total

    async def update_images(self, story_id: str, image_urls: list[Optional[str]]) -> Optional[StoryResponse]:
        """Attach image URLs in page order; the story becomes illustrated once any URL is set."""
        story = await self._get_row(story_id)
        if story is None:
            return None

        pages = _loads(story.pages_json, [])
        for page, url in zip(pages, image_urls):
            if url:
                page["imageUrl"] = url

        story.pages_json = json.dumps(pages)
        story.image_urls_json = json.dumps(image_urls)
        if any(image_urls):
            story.images_generated = True
            story.status = "illustrated"

        await self.session.flush()
        await self.session.refresh(story)
        return self._to_response(story)

    async def delete_story(self, story_id: str) -> bool:
        story = await self._get_row(story_id)
        if story is None:
            return False
        await self.session.delete(story)
        await self.session.flush()
        return True

    @staticmethod
    def _to_response(story: Story) -> StoryResponse:
        return StoryResponse(
            id=story.id,
            user_id=story.user_id,
            title=story.title,
            child_name=story.child_name,
            child_age=story.child_age,
            theme=_loads(story.theme_json),
            customization=_loads(story.customization_json),
            pages=[StoryPageResponse.model_validate(p) for p in _loads(story.pages_json, [])],
            metadata=_loads(story.metadata_json),
            images_generated=bool(story.images_generated),
            image_urls=_loads(story.image_urls_json, []),
            status=story.status,
            created_at=story.created_at,
            updated_at=story.updated_at,
        )


class OrderRepository:
    """Repository for print and download orders."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_order(
        self,
        order_number: str,
        story_id: str,
        customer_info: dict,
        output_format: str,
        total_amount: int,
        quantity: int = 1,
        user_id: Optional[str] = None,
        razorpay_order_id: Optional[str] = None,
        currency: str = "INR",
        order_status: str = "payment_pending",
    ) -> OrderResponse:
        order = Order(
            order_number=order_number,
            story_id=story_id,
            user_id=user_id,
            customer_info_json=json.dumps(customer_info),
            output_format=output_format,
            quantity=quantity,
            total_amount=total_amount,
            currency=currency,
            payment_status="pending",
            order_status=order_status,
            razorpay_order_id=razorpay_order_id,
        )
        self.session.add(order)
        await self.session.flush()
        await self.session.refresh(order)
        return self._to_response(order)

    async def get_order(self, order_id: str) -> Optional[OrderResponse]:
        result = await self.session.execute(select(Order).where(Order.id == order_id))
        order = result.scalar_one_or_none()
        return self._to_response(order) if order else None

    async def update_payment(
        self,
        order_id: str,
        payment_status: str,
        order_status: Optional[str] = None,
        razorpay_payment_id: Optional[str] = None,
    ) -> Optional[OrderResponse]:
        result = await self.session.execute(select(Order).where(Order.id == order_id))
        order = result.scalar_one_or_none()
        if order is None:
            return None

        order.payment_status = payment_status
        if order_status:
            order.order_status = order_status
        if razorpay_payment_id:
            order.razorpay_payment_id = razorpay_payment_id

        await self.session.flush()
        await self.session.refresh(order)
        return self._to_response(order)

    @staticmethod
    def _to_response(order: Order) -> OrderResponse:
        return OrderResponse(
            id=order.id,
            order_number=order.order_number,
            story_id=order.story_id,
            user_id=order.user_id,
            customer_info=_loads(order.customer_info_json, {}),
            output_format=order.output_format,
            quantity=order.quantity,
            total_amount=order.total_amount,
            currency=order.currency,
            payment_status=order.payment_status,
            order_status=order.order_status,
            razorpay_order_id=order.razorpay_order_id,
            razorpay_payment_id=order.razorpay_payment_id,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class PaymentRepository:
    """Repository for subscription payments."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_payment(
        self,
        razorpay_order_id: str,
        amount: int,
        user_id: Optional[str] = None,
        plan_id: Optional[str] = None,
        billing_cycle: Optional[str] = None,
        currency: str = "INR",
        status: str = "pending",
    ) -> PaymentRecord:
        payment = Payment(
            razorpay_order_id=razorpay_order_id,
            amount=amount,
            currency=currency,
            status=status,
            plan_id=plan_id,
            billing_cycle=billing_cycle,
            user_id=user_id,
        )
        self.session.add(payment)
        await self.session.flush()
        await self.session.refresh(payment)
        return self._to_response(payment)

    async def get_by_order_id(self, razorpay_order_id: str) -> Optional[PaymentRecord]:
        payment = await self._get_row(razorpay_order_id)
        return self._to_response(payment) if payment else None

    async def mark_captured(
        self,
        razorpay_order_id: str,
        razorpay_payment_id: str,
        razorpay_signature: Optional[str] = None,
    ) -> Optional[PaymentRecord]:
        """Mark the payment for an order completed. Unknown orders return None."""
        payment = await self._get_row(razorpay_order_id)
        if payment is None:
            return None

        payment.status = "completed"
        payment.razorpay_payment_id = razorpay_payment_id
        if razorpay_signature:
            payment.razorpay_signature = razorpay_signature

        await self.session.flush()
        await self.session.refresh(payment)
        return self._to_response(payment)

    async def _get_row(self, razorpay_order_id: str) -> Optional[Payment]:
        result = await self.session.execute(
            select(Payment).where(Payment.razorpay_order_id == razorpay_order_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _to_response(payment: Payment) -> PaymentRecord:
        return PaymentRecord(
            id=payment.id,
            razorpay_order_id=payment.razorpay_order_id,
            razorpay_payment_id=payment.razorpay_payment_id,
            amount=payment.amount,
            currency=payment.currency,
            status=payment.status,
            plan_id=payment.plan_id,
            billing_cycle=payment.billing_cycle,
            user_id=payment.user_id,
            created_at=payment.created_at,
        )
