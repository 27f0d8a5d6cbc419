"""Pydantic models for API requests and responses."""

from .base import ApiModel
from .requests import (
    SignupRequest,
    LoginRequest,
    GenerateStoryRequest,
    UpdateStoryImagesRequest,
    StorybookRequest,
    TemplateProfileRequest,
    AnalyzePhotoRequest,
    GenerateImagesRequest,
    GenerateImageRequest,
    SubscriptionRequest,
    CreateOrderRequest,
    VerifyPaymentRequest,
)
from .responses import (
    UserResponse,
    AuthResponse,
    StoryPageResponse,
    StoryResponse,
    StoryListResponse,
    GenerateStoryResponse,
    PhotoAnalysisResponse,
    GenerateImagesResponse,
    GenerateImageResponse,
    OrderResponse,
    PaymentRecord,
    SubscriptionStatusResponse,
)
from .enums import (
    PlanId,
    BillingCycle,
    SubscriptionStatus,
    StoryStatus,
    PaymentStatus,
    OrderStatus,
    ArtStyle,
)

__all__ = [
    "ApiModel",
    # Requests
    "SignupRequest",
    "LoginRequest",
    "GenerateStoryRequest",
    "UpdateStoryImagesRequest",
    "StorybookRequest",
    "TemplateProfileRequest",
    "AnalyzePhotoRequest",
    "GenerateImagesRequest",
    "GenerateImageRequest",
    "SubscriptionRequest",
    "CreateOrderRequest",
    "VerifyPaymentRequest",
    # Responses
    "UserResponse",
    "AuthResponse",
    "StoryPageResponse",
    "StoryResponse",
    "StoryListResponse",
    "GenerateStoryResponse",
    "PhotoAnalysisResponse",
    "GenerateImagesResponse",
    "GenerateImageResponse",
    "OrderResponse",
    "PaymentRecord",
    "SubscriptionStatusResponse",
    # Enums
    "PlanId",
    "BillingCycle",
    "SubscriptionStatus",
    "StoryStatus",
    "PaymentStatus",
    "OrderStatus",
    "ArtStyle",
]
