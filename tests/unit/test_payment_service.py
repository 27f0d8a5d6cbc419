"""Tests for Razorpay signatures and the checkout service."""

import hashlib
import hmac
import re
from unittest.mock import AsyncMock, MagicMock

import pytest

from storybook.api import config
from storybook.api.database.repository import OrderRepository, StoryRepository
from storybook.api.errors import ApiError, AuthorizationError, NotFoundError, PaymentError
from storybook.api.models.requests import CreateOrderRequest, VerifyPaymentRequest
from storybook.api.models.responses import OrderResponse
from storybook.api.services.payment_service import (
    PaymentService,
    unique_reference,
    verify_payment_signature,
    verify_webhook_signature,
)

from tests.unit.conftest import make_story

KEY_SECRET = "rzp_secret"


def _order(**overrides) -> OrderResponse:
    fields = {
        "id": "ord-1",
        "order_number": "ORDER_1_abcd",
        "story_id": "story-1",
        "user_id": "user-1",
        "customer_info": {"name": "Asha"},
        "output_format": "pdf",
        "total_amount": 29900,
        "payment_status": "pending",
        "order_status": "payment_pending",
        "razorpay_order_id": "order_rzp",
    }
    fields.update(overrides)
    return OrderResponse(**fields)


def _order_request(**overrides) -> CreateOrderRequest:
    fields = {
        "amount": 29900,
        "storybookId": "story-1",
        "outputFormat": "pdf",
        "customerInfo": {"name": "Asha", "email": "asha@example.com", "phone": "9999999999"},
    }
    fields.update(overrides)
    return CreateOrderRequest.model_validate(fields)


@pytest.fixture
def razorpay_client():
    client = MagicMock()
    client.order.create.return_value = {"id": "order_rzp"}
    return client


@pytest.fixture
def service(razorpay_client):
    return PaymentService(AsyncMock(spec=OrderRepository), AsyncMock(spec=StoryRepository), client=razorpay_client)


class TestSignatures:
    """Tests for the HMAC helpers."""

    def test_webhook_signature(self):
        body = b'{"event":"payment.captured"}'
        signature = hmac.new(b"whsec", body, hashlib.sha256).hexdigest()

        assert verify_webhook_signature(body, signature, "whsec")
        assert not verify_webhook_signature(body + b" ", signature, "whsec")
        assert not verify_webhook_signature(body, signature.upper(), "whsec")

    def test_payment_signature(self):
        """Checkout signs "order_id|payment_id"."""
        signature = hmac.new(KEY_SECRET.encode(), b"order_rzp|pay_1", hashlib.sha256).hexdigest()

        assert verify_payment_signature("order_rzp", "pay_1", signature, KEY_SECRET)
        assert not verify_payment_signature("order_rzp", "pay_2", signature, KEY_SECRET)

    def test_unique_reference(self):
        reference = unique_reference("receipt")

        assert re.fullmatch(r"receipt_\d+_[0-9a-f]{8}", reference)
        assert unique_reference("receipt") != reference


class TestCreateOrder:
    """Tests for PaymentService.create_order."""

    async def test_creates_razorpay_and_local_order(self, service, razorpay_client, monkeypatch):
        monkeypatch.setattr(config, "RAZORPAY_KEY_ID", "rzp_test_key")
        service.stories.get_story.return_value = make_story()
        service.orders.create_order.return_value = _order()

        result = await service.create_order(_order_request(), "user-1")

        payload = razorpay_client.order.create.call_args.args[0]
        assert payload["amount"] == 29900
        assert payload["currency"] == "INR"
        assert payload["receipt"].startswith("receipt_")
        assert payload["notes"]["outputFormat"] == "pdf"

        saved = service.orders.create_order.call_args.kwargs
        assert saved["razorpay_order_id"] == "order_rzp"
        assert saved["order_number"].startswith("ORDER_")
        assert saved["customer_info"]["email"] == "asha@example.com"

        assert result.order_id == "ord-1"
        assert result.razorpay_key == "rzp_test_key"
        assert result.receipt == payload["receipt"]

    async def test_unknown_story(self, service, razorpay_client):
        service.stories.get_story.return_value = None

        with pytest.raises(NotFoundError):
            await service.create_order(_order_request(), "user-1")
        razorpay_client.order.create.assert_not_called()

    async def test_someone_elses_story(self, service):
        service.stories.get_story.return_value = make_story(user_id="user-2")

        with pytest.raises(AuthorizationError):
            await service.create_order(_order_request(), "user-1")

    async def test_razorpay_failure(self, service, razorpay_client):
        """Gateway errors become PaymentError and nothing is saved."""
        service.stories.get_story.return_value = make_story()
        razorpay_client.order.create.side_effect = RuntimeError("gateway down")

        with pytest.raises(PaymentError):
            await service.create_order(_order_request(), "user-1")
        service.orders.create_order.assert_not_called()

    async def test_not_configured(self, monkeypatch):
        monkeypatch.setattr(config, "RAZORPAY_KEY_ID", "rzp_test_placeholder")
        monkeypatch.setattr(config, "RAZORPAY_KEY_SECRET", "secret")
        service = PaymentService(AsyncMock(spec=OrderRepository), AsyncMock(spec=StoryRepository))

        with pytest.raises(ApiError) as exc_info:
            await service.create_order(_order_request(), "user-1")
        assert exc_info.value.status_code == 500


class TestVerifyPayment:
    """Tests for PaymentService.verify_payment."""

    @pytest.fixture(autouse=True)
    def key_secret(self, monkeypatch):
        monkeypatch.setattr(config, "RAZORPAY_KEY_SECRET", KEY_SECRET)

    def _request(self, signature: str, razorpay_order_id: str = "order_rzp") -> VerifyPaymentRequest:
        return VerifyPaymentRequest.model_validate(
            {
                "razorpay_order_id": razorpay_order_id,
                "razorpay_payment_id": "pay_1",
                "razorpay_signature": signature,
                "orderId": "ord-1",
            }
        )

    async def test_valid_signature(self, service):
        service.orders.get_order.return_value = _order()
        signature = hmac.new(KEY_SECRET.encode(), b"order_rzp|pay_1", hashlib.sha256).hexdigest()

        result = await service.verify_payment(self._request(signature), "user-1")

        service.orders.update_payment.assert_called_once_with(
            "ord-1", payment_status="completed", order_status="payment_completed", razorpay_payment_id="pay_1"
        )
        assert result.payment_id == "pay_1"
        assert result.message == "Payment verified successfully"

    async def test_invalid_signature_marks_failed(self, service):
        """A mismatch returns None after marking the order failed."""
        service.orders.get_order.return_value = _order()

        result = await service.verify_payment(self._request("deadbeef"), "user-1")

        assert result is None
        service.orders.update_payment.assert_called_once_with("ord-1", payment_status="failed")

    async def test_unknown_order(self, service):
        service.orders.get_order.return_value = None

        with pytest.raises(NotFoundError):
            await service.verify_payment(self._request("deadbeef"), "user-1")

    async def test_signature_for_another_gateway_order(self, service):
        """A genuine signature for a cheaper Razorpay order does not settle this one."""
        service.orders.get_order.return_value = _order(razorpay_order_id="order_expensive", total_amount=999900)
        signature = hmac.new(KEY_SECRET.encode(), b"order_cheap|pay_1", hashlib.sha256).hexdigest()

        result = await service.verify_payment(self._request(signature, "order_cheap"), "user-1")

        assert result is None
        service.orders.update_payment.assert_called_once_with("ord-1", payment_status="failed")

    async def test_someone_elses_order(self, service):
        service.orders.get_order.return_value = _order(user_id="user-2")
        signature = hmac.new(KEY_SECRET.encode(), b"order_rzp|pay_1", hashlib.sha256).hexdigest()

        with pytest.raises(AuthorizationError):
            await service.verify_payment(self._request(signature), "user-1")

        service.orders.update_payment.assert_not_called()
