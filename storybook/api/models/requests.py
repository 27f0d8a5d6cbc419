"""Pydantic models for API requests."""

from typing import Optional
from urllib.parse import urlparse

from pydantic import BaseModel, EmailStr, Field, field_validator

from ...config.plans import OUTPUT_FORMAT_IDS
from .base import ApiModel
from .enums import ArtStyle, BillingCycle, PlanId


def _http_url(value: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("must be an http(s) URL")
    return value


def _age_as_text(value):
    return str(value) if isinstance(value, (int, float)) else value


# =============================================================================
# Auth
# =============================================================================


class SignupRequest(BaseModel):
    """Request body for creating an account."""

    email: EmailStr = Field(..., examples=["parent@example.com"])
    password: str = Field(..., min_length=8, description="At least 8 characters")
    name: Optional[str] = Field(default=None, max_length=100)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class LoginRequest(BaseModel):
    """Login request with email and password."""

    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


# =============================================================================
# Story generation
# =============================================================================


class ThemeInput(ApiModel):
    id: Optional[str] = None
    name: Optional[str] = None
    category: Optional[str] = None
    image_style: Optional[str] = None


class CustomizationInput(ApiModel):
    setting: Optional[str] = None
    characters: Optional[list[str]] = None
    learning_goals: Optional[list[str]] = None
    tone: Optional[str] = None
    additional_instructions: Optional[str] = None


class PhotoAnalysisInput(ApiModel):
    appearance: Optional[str] = None
    characteristics: Optional[list[str]] = None


class GenerateStoryRequest(ApiModel):
    """Request body for generating a personalized story."""

    template_id: Optional[str] = None
    theme: Optional[ThemeInput] = None
    customization: Optional[CustomizationInput] = None
    child_name: str = Field(..., min_length=1, max_length=50, examples=["Maya"])
    child_age: str = Field(..., min_length=1, examples=["5"])
    child_interests: list[str] = Field(default_factory=list)
    child_photo_analysis: Optional[PhotoAnalysisInput] = None
    learning_objectives: list[str] = Field(default_factory=list)
    cultural_background: Optional[str] = None
    special_considerations: list[str] = Field(default_factory=list)

    coerce_age = field_validator("child_age", mode="before")(_age_as_text)


class UpdateStoryImagesRequest(ApiModel):
    """Attach generated image URLs to a stored story, in page order."""

    image_urls: list[Optional[str]] = Field(..., min_length=1)


class StorybookRequest(ApiModel):
    """Request body for assembling the animal storybook."""

    child_name: str = Field(..., min_length=1, max_length=50)
    child_photo_url: str = Field(..., min_length=1)
    child_description: Optional[str] = Field(default=None, description="Switches pages to the Ghibli scene prompts")
    selected_animals: Optional[list[str]] = None


class TemplateProfileRequest(ApiModel):
    """Child profile for a custom AI-designed template."""

    child_name: str = Field(..., min_length=1, max_length=50)
    child_age: str = Field(..., min_length=1)
    interests: list[str] = Field(default_factory=list)
    learning_goals: list[str] = Field(default_factory=list)
    parent_concerns: list[str] = Field(default_factory=list)
    cultural_background: str = "diverse"

    coerce_age = field_validator("child_age", mode="before")(_age_as_text)


# =============================================================================
# Photos and images
# =============================================================================


class AnalyzePhotoRequest(ApiModel):
    """Request body for describing a child from a photo."""

    photo_url: str = Field(..., description="Public http(s) URL of the photo")
    child_name: str = Field(..., min_length=1, max_length=50)

    @field_validator("photo_url")
    @classmethod
    def check_url(cls, v: str) -> str:
        return _http_url(v)


class PageInput(ApiModel):
    page_number: int = Field(..., ge=1)
    text: str = ""
    image_prompt: str = Field(..., min_length=1)


class GenerateImagesRequest(ApiModel):
    """Request body for illustrating a story."""

    story_id: str = Field(..., min_length=1)
    child_name: str = Field(..., min_length=1)
    child_age: str = Field(..., min_length=1)
    child_photo_url: Optional[str] = None
    child_description: Optional[str] = None
    pages: list[PageInput] = Field(..., min_length=1)
    art_style: ArtStyle = ArtStyle.ILLUSTRATION
    testing_mode: bool = Field(default=True, description="Illustrate only the first two pages")

    coerce_age = field_validator("child_age", mode="before")(_age_as_text)


class GenerateImageRequest(ApiModel):
    """Request body for a single illustration."""

    prompt: str = Field(..., min_length=1, max_length=2000)
    child_description: Optional[str] = None
    style: Optional[str] = None


# =============================================================================
# Billing
# =============================================================================


class SubscriptionRequest(ApiModel):
    plan: PlanId
    billing_cycle: BillingCycle = BillingCycle.MONTHLY
    promo_code: Optional[str] = Field(default=None, max_length=20, examples=["WELCOME30"])


class CustomerInfo(ApiModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    phone: str = Field(..., min_length=5)
    address: Optional[dict] = None


class CreateOrderRequest(ApiModel):
    """Request body for a print or download order."""

    amount: int = Field(..., gt=0, description="Amount in paise")
    storybook_id: str = Field(..., min_length=1)
    output_format: str = Field(..., min_length=1)
    customer_info: CustomerInfo
    quantity: int = Field(default=1, ge=1)

    @field_validator("output_format")
    @classmethod
    def known_format(cls, v: str) -> str:
        if v not in OUTPUT_FORMAT_IDS:
            raise ValueError(f"must be one of {', '.join(OUTPUT_FORMAT_IDS)}")
        return v


class VerifyPaymentRequest(ApiModel):
    """Checkout callback fields; Razorpay names keep their snake_case."""

    razorpay_order_id: str = Field(..., min_length=1, alias="razorpay_order_id")
    razorpay_payment_id: str = Field(..., min_length=1, alias="razorpay_payment_id")
    razorpay_signature: str = Field(..., min_length=1, alias="razorpay_signature")
    order_id: str = Field(..., min_length=1)


# =============================================================================
# Prompt optimizer
# =============================================================================


class TemplateResultRequest(ApiModel):
    success: bool
    quality_score: float = Field(..., ge=0, le=10)
    consistency_score: float = Field(..., ge=0, le=10)


class ABTestRequest(ApiModel):
    name: str = Field(..., min_length=1)
    template_a: str
    template_b: str


class ABTestResultRequest(ApiModel):
    template_id: str
    success: bool
    quality_score: float = Field(..., ge=0, le=10)
    consistency_score: float = Field(..., ge=0, le=10)


class ScorePromptRequest(ApiModel):
    """Score an image prompt against its page and feed the optimizer."""

    page_text: str = Field(..., min_length=1)
    image_prompt: str = Field(..., min_length=1)
    character_reference: Optional[str] = None
    template_id: Optional[str] = None


class ApplyTemplateRequest(ApiModel):
    variables: dict[str, str] = Field(default_factory=dict)


class RequiredElements(ApiModel):
    setting: Optional[str] = None
    characters: list[str] = Field(default_factory=list)
    action: Optional[str] = None
    objects: list[str] = Field(default_factory=list)


class ValidatePromptRequest(ApiModel):
    """Check an image prompt against the page text it illustrates."""

    story_text: str = Field(..., min_length=1)
    image_prompt: str = Field(..., min_length=1)
    story_type: Optional[str] = None
    required: Optional[RequiredElements] = None
