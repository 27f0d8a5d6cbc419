"""Subscription endpoints and the Razorpay webhook."""

import json
import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from ...config.plans import PHYSICAL_PRODUCTS, PROMOTIONS, SUBSCRIPTION_PLANS
from .. import config
from ..dependencies import CurrentUser, Subscriptions
from ..models.requests import SubscriptionRequest
from ..models.responses import (
    CancelSubscriptionResponse,
    CreateSubscriptionResponse,
    SubscriptionStatusResponse,
    UpgradeSubscriptionResponse,
)
from ..services.payment_service import verify_webhook_signature

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/subscription", tags=["Subscription"])

SIGNATURE_HEADER = "x-razorpay-signature"


@router.get("/plans", summary="Plan catalogue")
async def list_plans():
    return {
        "success": True,
        "plans": [plan.to_dict() for plan in SUBSCRIPTION_PLANS],
        "physicalProducts": PHYSICAL_PRODUCTS,
        "promotions": list(PROMOTIONS.values()),
    }


@router.post("/create", response_model=CreateSubscriptionResponse, summary="Start a paid subscription")
async def create_subscription(request: SubscriptionRequest, user: CurrentUser, service: Subscriptions):
    return await service.create(user, request.plan.value, request.billing_cycle.value)


@router.post("/upgrade", response_model=UpgradeSubscriptionResponse, summary="Upgrade to a higher plan")
async def upgrade_subscription(request: SubscriptionRequest, user: CurrentUser, service: Subscriptions):
    return await service.upgrade(user, request.plan.value, request.billing_cycle.value, request.promo_code)


@router.post("/cancel", response_model=CancelSubscriptionResponse, summary="Cancel the subscription")
async def cancel_subscription(user: CurrentUser, service: Subscriptions):
    return await service.cancel(user)


@router.get("/status", response_model=SubscriptionStatusResponse, summary="Plan, usage and features")
async def subscription_status(user: CurrentUser, service: Subscriptions):
    user = await service.refresh_usage(user)
    return service.get_status(user)


@router.post("/webhook", summary="Razorpay webhook")
async def razorpay_webhook(request: Request, service: Subscriptions):
    """
    Apply a Razorpay subscription or payment event.

    The signature covers the raw body, so it is read before any JSON parsing.
    """
    body = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER)
    if not signature:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "Missing signature"})

    if not config.RAZORPAY_WEBHOOK_SECRET:
        logger.error("Webhook received but RAZORPAY_WEBHOOK_SECRET is not set", extra={"provider": "razorpay"})
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": "Webhook secret not configured"}
        )

    if not verify_webhook_signature(body, signature, config.RAZORPAY_WEBHOOK_SECRET):
        logger.warning("Rejected webhook with invalid signature", extra={"provider": "razorpay"})
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"error": "Invalid signature"})

    try:
        event = json.loads(body)
    except ValueError:
        event = None
    if not isinstance(event, dict):
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "Invalid payload"})

    await service.handle_webhook_event(event)
    return {"status": "ok"}
