"""SQLAlchemy ORM models.

JSON payloads (pages, theme, customer info...) are stored as text in the
`*_json` columns and decoded by the repositories.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class User(Base):
    """Account with its subscription and monthly usage counters."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[Optional[str]] = mapped_column(String(100))
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)

    subscription_plan: Mapped[str] = mapped_column(String(20), nullable=False, default="free")
    subscription_status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    subscription_start_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    subscription_end_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    subscription_id: Mapped[Optional[str]] = mapped_column(String(100))

    monthly_stories_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    monthly_stories_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    total_stories_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_story_created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    usage_reset_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    email_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    stories: Mapped[list["Story"]] = relationship(
        back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (Index("idx_users_subscription_id", "subscription_id"),)


class Story(Base):
    """A generated or assembled storybook."""

    __tablename__ = "stories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    child_name: Mapped[str] = mapped_column(String(50), nullable=False)
    child_age: Mapped[Optional[str]] = mapped_column(String(10))
    theme_json: Mapped[Optional[str]] = mapped_column(Text)
    customization_json: Mapped[Optional[str]] = mapped_column(Text)
    pages_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    metadata_json: Mapped[Optional[str]] = mapped_column(Text)
    images_generated: Mapped[bool] = mapped_column(Boolean, default=False)
    image_urls_json: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    user: Mapped["User"] = relationship(back_populates="stories")
    orders: Mapped[list["Order"]] = relationship(
        back_populates="story", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        Index("idx_stories_user_id", "user_id"),
        Index("idx_stories_created_at", "created_at"),
    )


class Order(Base):
    """Print or download order for a story, paid through Razorpay."""

    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    order_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    story_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("stories.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL")
    )
    customer_info_json: Mapped[str] = mapped_column(Text, nullable=False)
    output_format: Mapped[str] = mapped_column(String(50), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    total_amount: Mapped[int] = mapped_column(Integer, nullable=False)  # paise
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="INR")
    payment_status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    order_status: Mapped[str] = mapped_column(String(30), nullable=False, default="created")
    razorpay_order_id: Mapped[Optional[str]] = mapped_column(String(100))
    razorpay_payment_id: Mapped[Optional[str]] = mapped_column(String(100))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationship
    story: Mapped["Story"] = relationship(back_populates="orders")

    __table_args__ = (
        Index("idx_orders_story_id", "story_id"),
        Index("idx_orders_razorpay_order_id", "razorpay_order_id"),
    )


class Payment(Base):
    """Subscription payment tracked from order creation to capture."""

    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    razorpay_order_id: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    razorpay_payment_id: Mapped[Optional[str]] = mapped_column(String(100))
    razorpay_signature: Mapped[Optional[str]] = mapped_column(String(200))
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="INR")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    plan_id: Mapped[Optional[str]] = mapped_column(String(20))
    billing_cycle: Mapped[Optional[str]] = mapped_column(String(10))
    user_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL")
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (Index("idx_payments_user_id", "user_id"),)
