"""Razorpay orders and signature verification for print and download purchases."""

import asyncio
import hashlib
import hmac
import logging
import secrets
import time
from typing import Optional

import razorpay

from .. import config
from ..database.repository import OrderRepository, StoryRepository
from ..errors import ApiError, AuthorizationError, ErrorType, NotFoundError, PaymentError
from ..logging import generation_logger
from ..models.requests import CreateOrderRequest, VerifyPaymentRequest
from ..models.responses import CreateOrderResponse, VerifyPaymentResponse

logger = logging.getLogger(__name__)

CURRENCY = "INR"


def get_razorpay_client() -> razorpay.Client:
    """Razorpay SDK client. Raises ValueError when the keys are missing or placeholders."""
    if not config.razorpay_configured():
        raise ValueError("Razorpay keys are not configured")
    return razorpay.Client(auth=(config.RAZORPAY_KEY_ID, config.RAZORPAY_KEY_SECRET))


def _hmac_hex(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_webhook_signature(body: bytes, signature: str, secret: str) -> bool:
    """Hex HMAC-SHA256 of the raw body, compared in constant time."""
    expected = _hmac_hex(secret, body)
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))


def verify_payment_signature(order_id: str, payment_id: str, signature: str, secret: str) -> bool:
    """Checkout signature: hex HMAC-SHA256 of "{order_id}|{payment_id}"."""
    expected = _hmac_hex(secret, f"{order_id}|{payment_id}".encode("utf-8"))
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))


def unique_reference(prefix: str) -> str:
    """`{prefix}_{epoch ms}_{8 hex chars}`."""
    return f"{prefix}_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


class PaymentService:
    """Creates Razorpay orders for stories and verifies checkout callbacks."""

    def __init__(self, orders: OrderRepository, stories: StoryRepository, client: Optional[razorpay.Client] = None):
        self.orders = orders
        self.stories = stories
        self._client = client

    @property
    def client(self) -> razorpay.Client:
        if self._client is None:
            self._client = get_razorpay_client()
        return self._client

    async def create_order(self, request: CreateOrderRequest, user_id: str) -> CreateOrderResponse:
        if self._client is None and not config.razorpay_configured():
            raise ApiError(
                "Payment gateway not configured",
                {"hint": "Add your keys from https://dashboard.razorpay.com/app/keys"},
                ErrorType.INTERNAL_ERROR,
            )

        story = await self.stories.get_story(request.storybook_id)
        if story is None:
            raise NotFoundError("Storybook")
        if story.user_id != user_id:
            raise AuthorizationError("You do not have access to this storybook")

        receipt = unique_reference("receipt")
        try:
            razorpay_order = await asyncio.to_thread(
                self.client.order.create,
                {
                    "amount": request.amount,
                    "currency": CURRENCY,
                    "receipt": receipt,
                    "notes": {
                        "storybookId": request.storybook_id,
                        "outputFormat": request.output_format,
                        "customerName": request.customer_info.name,
                        "customerEmail": request.customer_info.email,
                    },
                },
            )
        except Exception as e:
            logger.error(f"Razorpay order creation failed: {e}", extra={"provider": "razorpay", "error_type": type(e).__name__})
            raise PaymentError(f"Failed to create order: {e}") from e

        order = await self.orders.create_order(
            order_number=unique_reference("ORDER"),
            story_id=request.storybook_id,
            user_id=user_id,
            customer_info=request.customer_info.model_dump(),
            output_format=request.output_format,
            quantity=request.quantity,
            total_amount=request.amount,
            razorpay_order_id=razorpay_order["id"],
            currency=CURRENCY,
        )
        generation_logger.payment_event("order.created", user_id, order=order.order_number, amount=request.amount)

        return CreateOrderResponse(
            order_id=order.id,
            razorpay_order_id=razorpay_order["id"],
            razorpay_key=config.RAZORPAY_KEY_ID,
            amount=request.amount,
            currency=CURRENCY,
            receipt=receipt,
        )

    async def verify_payment(self, request: VerifyPaymentRequest, user_id: str) -> Optional[VerifyPaymentResponse]:
        """
        Check the checkout signature and settle the caller's order.

        Returns None when the signature does not match or was issued for a
        different Razorpay order, after marking the order failed.
        """
        if not config.RAZORPAY_KEY_SECRET:
            raise ApiError("Payment gateway not configured", error_type=ErrorType.INTERNAL_ERROR)

        order = await self.orders.get_order(request.order_id)
        if order is None:
            raise NotFoundError("Order")
        if order.user_id != user_id:
            raise AuthorizationError("You do not have access to this order")

        authentic = request.razorpay_order_id == order.razorpay_order_id and verify_payment_signature(
            request.razorpay_order_id,
            request.razorpay_payment_id,
            request.razorpay_signature,
            config.RAZORPAY_KEY_SECRET,
        )
        if not authentic:
            await self.orders.update_payment(order.id, payment_status="failed")
            generation_logger.payment_event("payment.verification_failed", order.user_id, order=order.order_number)
            return None

        await self.orders.update_payment(
            order.id,
            payment_status="completed",
            order_status="payment_completed",
            razorpay_payment_id=request.razorpay_payment_id,
        )
        generation_logger.payment_event("payment.verified", order.user_id, order=order.order_number)

        return VerifyPaymentResponse(
            order_id=order.id,
            payment_id=request.razorpay_payment_id,
            message="Payment verified successfully",
        )
