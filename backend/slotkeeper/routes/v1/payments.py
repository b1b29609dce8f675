# backend/slotkeeper/routes/v1/payments.py
"""
Payment routes - API v1

Endpoints:
    POST /intents - Open a Stripe payment for a candidate slot
    POST /confirm - Turn a succeeded payment into a booking
    GET /bookings/{booking_id} - Payment status of a booking
    POST /webhook - Stripe webhook receiver
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
import stripe

from ...api.dependencies import (
    get_payment_service,
    get_payment_webhook_service,
    get_stripe_gateway,
)
from ...core.exceptions import DomainException
from ...schemas.booking import BookingResponse
from ...schemas.payment import (
    PaymentConfirm,
    PaymentIntentCreate,
    PaymentIntentResponse,
    PaymentStatusResponse,
    WebhookAckResponse,
)
from ...services.booking_service import ParticipantInfo
from ...services.payment_service import PaymentConfirmationRequest, PaymentService
from ...services.payment_webhooks import PaymentWebhookService
from ...services.stripe_gateway import StripeGateway
from .errors import handle_domain_exception

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["payments-v1"])


@router.post("/intents", response_model=PaymentIntentResponse)
async def create_payment_intent(
    intent_data: PaymentIntentCreate,
    payment_service: PaymentService = Depends(get_payment_service),
) -> PaymentIntentResponse:
    """
    Start checkout for a slot.

    The slot is not held; it is secured only when /confirm commits.
    """
    try:
        handle = await asyncio.to_thread(
            payment_service.create_payment_intent,
            intent_data.offering_id,
            intent_data.start,
            intent_data.timezone,
            intent_data.end,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return PaymentIntentResponse(
        payment_intent_id=handle.payment_intent_id,
        client_secret=handle.client_secret,
        amount_cents=handle.amount_cents,
        platform_fee_cents=handle.platform_fee_cents,
        currency=handle.currency,
        start=handle.start,
        end=handle.end,
    )


@router.post("/confirm", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def confirm_payment(
    confirm_data: PaymentConfirm,
    payment_service: PaymentService = Depends(get_payment_service),
) -> BookingResponse:
    """
    Book the slot a succeeded payment was made for.

    A 409 with code BOOKING_CONFLICT_REFUNDED means the slot was lost and
    the payment refunded. A 502 COMPENSATION_FAILED means the refund did not
    go through and needs manual follow-up.
    """
    request = PaymentConfirmationRequest(
        offering_id=confirm_data.offering_id,
        start=confirm_data.start,
        timezone=confirm_data.timezone,
        payment_intent_id=confirm_data.payment_intent_id,
        participant=ParticipantInfo(
            name=confirm_data.participant_name, email=str(confirm_data.participant_email)
        ),
        notes=confirm_data.notes,
    )
    try:
        booking = await asyncio.to_thread(payment_service.confirm_booking_with_payment, request)
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)


@router.get("/bookings/{booking_id}", response_model=PaymentStatusResponse)
async def get_payment_status(
    booking_id: str,
    payment_service: PaymentService = Depends(get_payment_service),
) -> PaymentStatusResponse:
    try:
        payment = await asyncio.to_thread(payment_service.get_payment_status, booking_id)
    except DomainException as e:
        handle_domain_exception(e)
    return PaymentStatusResponse.model_validate(payment)


@router.post("/webhook", response_model=WebhookAckResponse)
async def handle_stripe_webhook(
    request: Request,
    gateway: StripeGateway = Depends(get_stripe_gateway),
    webhook_service: PaymentWebhookService = Depends(get_payment_webhook_service),
) -> WebhookAckResponse:
    """
    Receive Stripe events.

    Raises:
        HTTPException: 400 on a missing or invalid signature
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    if not signature:
        logger.warning("Missing Stripe signature header")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Missing stripe-signature header"
        )

    try:
        event = gateway.construct_webhook_event(payload, signature)
    except DomainException as e:
        handle_domain_exception(e)
    except stripe.SignatureVerificationError:
        logger.warning("Invalid Stripe webhook signature")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook signature"
        )
    except ValueError:
        logger.warning("Malformed Stripe webhook payload")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payload")

    try:
        result = await asyncio.to_thread(webhook_service.handle_webhook_event, event)
    except DomainException as e:
        handle_domain_exception(e)
    return WebhookAckResponse(**result)
