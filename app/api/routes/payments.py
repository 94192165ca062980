import json

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.dependencies import get_current_principal, get_db, get_payment_gateway
from app.core.errors import UnknownReference, ValidationError
from app.core.logging_config import get_logger
from app.models.user import User
from app.schemas.payment import (
    InitializePaymentRequest,
    InitializePaymentResponse,
    PaymentOut,
    PaymentStatusResponse,
    VerifyPaymentResponse,
    WebhookAck,
)
from app.services import reconciliation
from app.services.webhook_auth import verify_signature

router = APIRouter(prefix="/payments", tags=["Payments"])
logger = get_logger("webhook")


# ---------------------------------------------------------------------
# INITIALIZE
# ---------------------------------------------------------------------
@router.post("/initialize", response_model=InitializePaymentResponse)
def initialize_payment(
    data: InitializePaymentRequest,
    principal: User = Depends(get_current_principal),
    db: Session = Depends(get_db),
    gateway=Depends(get_payment_gateway),
):
    transaction = reconciliation.initialize_payment(db, gateway, data.booking_id, principal)
    return InitializePaymentResponse(
        authorization_url=transaction.authorization_url,
        access_code=transaction.access_code,
        reference=transaction.reference,
    )


# ---------------------------------------------------------------------
# VERIFY (client polling after redirect)
# ---------------------------------------------------------------------
@router.get("/verify/{reference}", response_model=VerifyPaymentResponse)
def verify_payment(
    reference: str,
    principal: User = Depends(get_current_principal),
    db: Session = Depends(get_db),
    gateway=Depends(get_payment_gateway),
):
    result = reconciliation.verify_by_reference(db, gateway, reference, principal)
    transaction = result.transaction

    return VerifyPaymentResponse(
        reference=reference,
        payment_status=result.payment.status,
        booking_status=result.booking.status,
        booking_payment_status=result.booking.payment_status,
        gateway_status=transaction.status,
        amount=transaction.amount,
        currency=transaction.currency,
        paid_at=transaction.paid_at,
        channel=transaction.channel,
        gateway_response=transaction.gateway_response,
    )


# ---------------------------------------------------------------------
# STATUS BY BOOKING
# ---------------------------------------------------------------------
@router.get("/status/{booking_id}", response_model=PaymentStatusResponse)
def payment_status(
    booking_id: int,
    principal: User = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    status = reconciliation.payment_status(db, booking_id, principal)
    payment = status.pop("payment")
    return PaymentStatusResponse(
        **status,
        payment=PaymentOut.model_validate(payment) if payment is not None else None,
    )


# ---------------------------------------------------------------------
# WEBHOOK (no bearer auth; authenticated by signature over the raw body)
# ---------------------------------------------------------------------
@router.post("/webhook", response_model=WebhookAck)
async def paystack_webhook(
    request: Request,
    x_paystack_signature: str | None = Header(None),
    db: Session = Depends(get_db),
):
    # Raw bytes first: the signature is computed over exactly what was sent
    raw_body = await request.body()

    verify_signature(raw_body, x_paystack_signature, settings.PAYSTACK_WEBHOOK_SECRET)

    try:
        event = json.loads(raw_body)
    except ValueError:
        raise ValidationError("Webhook body is not valid JSON")

    logger.info(f"Webhook received | Event={event.get('event') if isinstance(event, dict) else None}")

    try:
        outcome = await run_in_threadpool(reconciliation.handle_webhook_event, db, event)
    except UnknownReference as e:
        # Acknowledge so the gateway stops redelivering an event we can never apply
        logger.error(f"Webhook ignored | {e.message}")
        return WebhookAck(status="ignored", detail=e.message)

    return WebhookAck(status=outcome)
