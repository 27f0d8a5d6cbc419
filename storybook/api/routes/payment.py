"""Checkout endpoints for print and download orders."""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from ...config.plans import OUTPUT_OPTIONS
from .. import config
from ..dependencies import Checkout, CurrentUser
from ..errors import ErrorType, error_body
from ..models.requests import CreateOrderRequest, VerifyPaymentRequest
from ..models.responses import CreateOrderResponse, VerifyPaymentResponse

router = APIRouter(prefix="/api/payment", tags=["Payment"])

TEST_CARD = {
    "cardNumber": "4111 1111 1111 1111",
    "expiry": "Any future date",
    "cvv": "Any 3 digits",
    "name": "Any name",
}


@router.post("/create-order", response_model=CreateOrderResponse, summary="Create a Razorpay order")
async def create_order(request: CreateOrderRequest, user: CurrentUser, service: Checkout):
    return await service.create_order(request, user.id)


@router.post(
    "/verify",
    response_model=VerifyPaymentResponse,
    summary="Verify a checkout signature",
    responses={400: {"description": "Signature mismatch; the order is marked failed"}},
)
async def verify_payment(request: VerifyPaymentRequest, user: CurrentUser, service: Checkout):
    result = await service.verify_payment(request, user.id)
    if result is None:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_body(ErrorType.VALIDATION_ERROR, "Payment verification failed"),
        )
    return result


@router.get("/setup", summary="Razorpay configuration help")
async def payment_setup():
    key_id = config.RAZORPAY_KEY_ID
    return {
        "configured": config.razorpay_configured(),
        "currentKeyId": f"{key_id[:20]}..." if key_id else "Not set",
        "instructions": [
            "Go to https://dashboard.razorpay.com and sign up or log in",
            "Navigate to Settings > API Keys",
            "Generate test or live API keys",
            "Set RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET in .env",
            "Restart the API server",
        ],
        "testCards": TEST_CARD,
    }


@router.get("/output-options", summary="Output formats and prices")
async def output_options():
    return {"success": True, "options": OUTPUT_OPTIONS}
