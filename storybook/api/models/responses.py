"""Pydantic models for API responses."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from .base import ApiModel
from .enums import OrderStatus, PaymentStatus, StoryStatus, SubscriptionStatus


# =============================================================================
# Users
# =============================================================================


class UserResponse(ApiModel):
    """A user as the client sees it; the password hash never leaves the repository."""

    id: str
    email: str
    name: Optional[str] = None
    subscription_plan: str = "free"
    subscription_status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    subscription_start_date: Optional[datetime] = None
    subscription_end_date: Optional[datetime] = None
    subscription_id: Optional[str] = None
    monthly_stories_used: int = 0
    monthly_stories_limit: int = 1
    total_stories_created: int = 0
    last_story_created_at: Optional[datetime] = None
    usage_reset_date: Optional[datetime] = None
    email_verified: bool = False
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class AuthResponse(BaseModel):
    """Login/signup response with access token."""

    access_token: str
    token_type: str = "bearer"
    user: UserResponse


# =============================================================================
# Stories
# =============================================================================


class StoryPageResponse(ApiModel):
    """One page of a story. Animal book pages also carry `animal` and `lesson`."""

    page_number: int
    text: str
    image_prompt: str = ""
    learning_focus: Optional[str] = None
    image_url: Optional[str] = None
    id: Optional[str] = None
    animal: Optional[str] = None
    lesson: Optional[str] = None
    status: Optional[str] = None


class StoryResponse(ApiModel):
    """A stored story with its pages."""

    id: str
    user_id: Optional[str] = None
    title: str
    child_name: str
    child_age: Optional[str] = None
    theme: Optional[dict] = None
    customization: Optional[dict] = None
    pages: list[StoryPageResponse] = Field(default_factory=list)
    metadata: Optional[dict] = None
    images_generated: bool = False
    image_urls: list[Optional[str]] = Field(default_factory=list)
    status: StoryStatus = StoryStatus.DRAFT
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class StoryListResponse(ApiModel):
    """Paginated list of a user's stories."""

    stories: list[StoryResponse]
    total: int
    limit: int
    offset: int


class GeneratedStoryBody(ApiModel):
    id: str
    title: str
    pages: list[StoryPageResponse]


class GenerationMetadata(ApiModel):
    theme: Optional[dict] = None
    customization: Optional[dict] = None
    child_name: str
    generated_at: str
    tokens_used: int
    estimated_cost: float
    model: str
    cached: bool = False
    fallback: bool = False


class GenerateStoryResponse(ApiModel):
    """Response for a generated story."""

    success: bool = True
    story: GeneratedStoryBody
    metadata: GenerationMetadata


class StorybookResponse(ApiModel):
    """The assembled animal storybook."""

    id: str
    child_name: str
    child_photo_url: Optional[str] = None
    title: str
    pages: list[StoryPageResponse]
    created_at: Optional[datetime] = None
    status: str = "created"


# =============================================================================
# Photos and images
# =============================================================================


class PhotoAnalysisMetadata(ApiModel):
    child_name: str
    model: str
    tokens_used: int = 0
    estimated_cost: float = 0.0
    analyzed_at: str
    provider: str
    cached: bool = False


class PhotoAnalysisResponse(ApiModel):
    """Character description generated from a photo."""

    success: bool = True
    description: str
    metadata: PhotoAnalysisMetadata


class ImageResult(ApiModel):
    page_number: int
    image_url: Optional[str] = None
    prompt: Optional[str] = None
    revised_prompt: Optional[str] = None
    cost: float = 0.0
    error: Optional[str] = None
    placeholder: bool = False
    note: Optional[str] = None
    generated_at: Optional[str] = None


class ImageBatchMetadata(ApiModel):
    total_images: int
    successful_images: int
    failed_images: int
    placeholder_images: int
    total_cost: float
    testing_mode: bool
    art_style: str
    child_description: str
    generated_at: str


class GenerateImagesResponse(ApiModel):
    """Illustrations for a story, one entry per page."""

    success: bool = True
    story_id: str
    images: list[ImageResult]
    metadata: ImageBatchMetadata


class GenerateImageResponse(ApiModel):
    """A single illustration, or an SVG placeholder when `fallback` is set."""

    success: bool = True
    image_url: str
    prompt: Optional[str] = None
    fallback: bool = False
    message: Optional[str] = None


# =============================================================================
# Billing
# =============================================================================


class PaymentRecord(ApiModel):
    id: int
    razorpay_order_id: str
    razorpay_payment_id: Optional[str] = None
    amount: int
    currency: str = "INR"
    status: PaymentStatus
    plan_id: Optional[str] = None
    billing_cycle: Optional[str] = None
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None


class OrderResponse(ApiModel):
    """A print or download order."""

    id: str
    order_number: str
    story_id: str
    user_id: Optional[str] = None
    customer_info: dict[str, Any]
    output_format: str
    quantity: int = 1
    total_amount: int
    currency: str = "INR"
    payment_status: PaymentStatus
    order_status: OrderStatus
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CreateOrderResponse(ApiModel):
    success: bool = True
    order_id: str
    razorpay_order_id: str
    razorpay_key: str
    amount: int
    currency: str = "INR"
    receipt: str


class VerifyPaymentResponse(ApiModel):
    success: bool = True
    order_id: str
    payment_id: str
    message: str


class CreateSubscriptionResponse(ApiModel):
    success: bool = True
    subscription_id: str
    payment_link: Optional[str] = None
    amount: int
    currency: str = "INR"


class UpgradeSubscriptionResponse(ApiModel):
    success: bool = True
    order_id: str
    amount: int
    currency: str = "INR"
    key: str


class CancelSubscriptionResponse(ApiModel):
    success: bool = True
    message: str
    active_until: Optional[datetime] = None


class SubscriptionInfo(ApiModel):
    plan: str
    plan_name: str
    status: SubscriptionStatus
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    days_remaining: int
    auto_renew: bool


class UsageInfo(ApiModel):
    stories_used: int
    stories_limit: int
    stories_remaining: int
    can_generate_story: bool
    reset_date: datetime


class SubscriptionStatusResponse(ApiModel):
    """Plan, usage and features for the current user."""

    subscription: SubscriptionInfo
    usage: UsageInfo
    features: list[str]
