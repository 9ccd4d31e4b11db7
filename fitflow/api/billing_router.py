"""
Billing Router - Stripe webhook, checkout and billing portal endpoints
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field
from starlette.concurrency import run_in_threadpool

from fitflow.api.dependencies import get_payment_service, get_webhook_handler
from fitflow.services.payment_service import PaymentService
from fitflow.services.webhook_handler import WebhookHandler

logger = logging.getLogger(__name__)

billing_router = APIRouter(prefix="/api/stripe", tags=["billing"])


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(default=None, alias='userId')
    plan_id: Optional[str] = Field(default=None, alias='planId')


class PortalRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    customer_id: Optional[str] = Field(default=None, alias='customerId')


@billing_router.post("/webhook")
async def stripe_webhook(request: Request, handler: WebhookHandler = Depends(get_webhook_handler)):
    """
    Handle Stripe webhook events with signature verification.

    Unsigned or badly signed requests are rejected with 400 before any event
    is parsed. Events that cannot be applied are acknowledged so Stripe stops
    redelivering them; storage failures return 500 so Stripe retries.
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    result = await run_in_threadpool(handler.handle_event, payload, signature)
    return {"received": True, **result}


@billing_router.post("/create-checkout-session")
def create_checkout_session(body: CheckoutRequest, payment_service: PaymentService = Depends(get_payment_service)):
    """Start a Stripe Checkout for a paid plan"""
    return payment_service.create_checkout_session(body.user_id, body.plan_id)


@billing_router.post("/create-portal-session")
def create_portal_session(body: PortalRequest, payment_service: PaymentService = Depends(get_payment_service)):
    """Open the Stripe Billing Portal for an existing customer"""
    return payment_service.create_portal_session(body.customer_id)
