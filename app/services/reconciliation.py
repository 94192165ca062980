"""
Reconciliation engine: the booking/payment state machine.

Booking.status:         pending -> confirmed | cancelled
                        confirmed -> completed | cancelled
Booking.payment_status: pending -> paid | failed
                        failed -> pending (new Payment via initialize)
                        paid -> refunded

Every gateway-reported outcome, whether it comes from a webhook or from a
client-initiated verify call, goes through ``apply_gateway_event``. That
routine holds a per-reference lock, re-reads both rows, and commits the
Payment and Booking changes in one transaction. Both tables carry a version
column, so a write racing another process fails as ``StaleDataError``; the
transaction is rolled back and the whole read-check-write is repeated.
"""
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.config import settings
from app.core.errors import Conflict, ReconciliationFailed, UnknownReference, ValidationError
from app.core.logging_config import get_logger
from app.models.booking import Booking
from app.models.enums import (
    BookingAnomaly,
    BookingPaymentStatus,
    BookingStatus,
    PaymentAnomaly,
    PaymentStatus,
    TERMINAL_BOOKING_STATUSES,
)
from app.models.payment import Payment
from app.models.user import User
from app.services import booking_store, payment_ledger
from app.services.gateway_client import InitializedTransaction, VerifiedTransaction
from app.services.locks import KeyedLock
from app.utils.references import generate_gateway_reference
from app.utils.timeutils import parse_gateway_timestamp, utcnow

logger = get_logger("payment")
booking_logger = get_logger("booking")

APPLY_ATTEMPTS = 3

# Gateway transaction statuses that settle a Payment; anything else is still in flight
SUCCESS_STATUSES = {"success"}
FAILURE_STATUSES = {"failed", "reversed"}

_reference_locks = KeyedLock()


@dataclass
class GatewayOutcome:
    reference: str
    succeeded: bool
    paid_at: datetime | None = None
    transaction_id: str | None = None
    channel: str | None = None


@dataclass
class ApplyResult:
    payment: Payment
    booking: Booking | None
    applied: bool


@dataclass
class VerifyResult:
    payment: Payment
    booking: Booking
    transaction: VerifiedTransaction


def outcome_from_verification(transaction: VerifiedTransaction) -> GatewayOutcome | None:
    if transaction.status in SUCCESS_STATUSES:
        succeeded = True
    elif transaction.status in FAILURE_STATUSES:
        succeeded = False
    else:
        return None

    return GatewayOutcome(
        reference=transaction.reference,
        succeeded=succeeded,
        paid_at=transaction.paid_at,
        transaction_id=transaction.transaction_id,
        channel=transaction.channel,
    )


# ---------------------------------------------------------------------
# INITIALIZE
# ---------------------------------------------------------------------
def initialize_payment(db: Session, gateway, booking_id: int, principal: User) -> InitializedTransaction:
    booking = booking_store.get_booking_for(db, booking_id, principal)

    if booking.payment_status == BookingPaymentStatus.PAID.value:
        raise Conflict("This booking has already been paid")

    if booking.payment_status == BookingPaymentStatus.REFUNDED.value:
        raise Conflict("This booking has been refunded and cannot be paid again")

    if booking.status in TERMINAL_BOOKING_STATUSES:
        raise Conflict(f"Cannot pay for a {booking.status} booking")

    owner_email = booking.owner.email if booking.owner else booking.passengers[0]["email"]
    itinerary = booking.itinerary or {}

    # Nothing is persisted until the gateway has confirmed the transaction exists
    transaction = gateway.initialize_transaction(
        amount=booking.total_price,
        currency=booking.currency,
        reference=generate_gateway_reference(booking.booking_reference),
        callback_url=settings.payment_callback_url,
        email=owner_email,
        metadata={
            "booking_id": booking.id,
            "booking_reference": booking.booking_reference,
            "custom_fields": [
                {
                    "display_name": "Booking Reference",
                    "variable_name": "booking_reference",
                    "value": booking.booking_reference,
                },
                {
                    "display_name": "Flight Route",
                    "variable_name": "flight_route",
                    "value": f"{itinerary.get('origin')} to {itinerary.get('destination')}",
                },
            ],
        },
    )

    for attempt in range(1, APPLY_ATTEMPTS + 1):
        booking = booking_store.get_booking(db, booking_id)
        payment_ledger.add_payment(db, booking, transaction.reference)

        if booking.payment_status != BookingPaymentStatus.PAID.value:
            booking.payment_reference = transaction.reference
        if booking.payment_status == BookingPaymentStatus.FAILED.value:
            booking.payment_status = BookingPaymentStatus.PENDING.value

        try:
            db.commit()
        except StaleDataError:
            db.rollback()
            logger.warning(
                f"Booking changed while recording payment | Ref={transaction.reference} | Attempt={attempt}"
            )
            continue
        except IntegrityError:
            db.rollback()
            logger.error(f"Gateway reference already recorded | Ref={transaction.reference}")
            raise Conflict("Payment reference already in use, please retry")

        logger.info(
            f"Payment Initialized | Booking={booking.booking_reference} | Ref={transaction.reference} "
            f"| Amount={booking.total_price} {booking.currency}"
        )
        return transaction

    logger.error(f"Payment initialized at gateway but not recorded | Ref={transaction.reference}")
    raise ReconciliationFailed("Payment was initialized but could not be recorded, please retry")


# ---------------------------------------------------------------------
# APPLY GATEWAY EVENT
# ---------------------------------------------------------------------
def _locked_payment(db: Session, reference: str) -> Payment | None:
    return (
        db.query(Payment)
        .filter(Payment.gateway_reference == reference)
        .populate_existing()
        .with_for_update()
        .first()
    )


def _locked_booking(db: Session, booking_id: int) -> Booking | None:
    return (
        db.query(Booking)
        .filter(Booking.id == booking_id)
        .populate_existing()
        .with_for_update()
        .first()
    )


def _run_serialized(db: Session, reference: str, step):
    """Run ``step(db)`` under the reference lock, retrying on version conflicts."""
    with _reference_locks.hold(reference):
        for attempt in range(1, APPLY_ATTEMPTS + 1):
            try:
                return step(db)
            except StaleDataError:
                db.rollback()
                logger.warning(f"Concurrent update | Ref={reference} | Attempt={attempt}")
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Could not persist payment outcome | Ref={reference} | {e}")
                raise ReconciliationFailed()

    logger.error(f"Gave up applying payment outcome | Ref={reference}")
    raise ReconciliationFailed()


def _apply_success(payment: Payment, booking: Booking, outcome: GatewayOutcome):
    payment.status = PaymentStatus.COMPLETED.value
    payment.transaction_id = outcome.transaction_id or outcome.reference
    payment.gateway_channel = outcome.channel

    if booking.status == BookingStatus.CANCELLED.value:
        booking.payment_anomaly = BookingAnomaly.PAID_AFTER_CANCELLATION.value
        logger.error(
            f"Payment succeeded for cancelled booking, left cancelled | Booking={booking.booking_reference} "
            f"| Ref={payment.gateway_reference}"
        )
        return

    if booking.payment_status in (BookingPaymentStatus.PAID.value, BookingPaymentStatus.REFUNDED.value):
        # Only one Payment per booking may complete
        payment.status = PaymentStatus.FAILED.value
        payment.anomaly = PaymentAnomaly.DUPLICATE_CHARGE.value
        logger.error(
            f"Duplicate charge, refund required | Booking={booking.booking_reference} "
            f"| Ref={payment.gateway_reference} | PaidRef={booking.payment_reference}"
        )
        return

    booking.payment_status = BookingPaymentStatus.PAID.value
    booking.payment_reference = payment.gateway_reference
    if booking.status == BookingStatus.PENDING.value:
        booking.status = BookingStatus.CONFIRMED.value
    if booking.paid_at is None:
        booking.paid_at = outcome.paid_at or utcnow()

    logger.info(f"Booking {booking.booking_reference} payment confirmed | Ref={payment.gateway_reference}")


def _apply_failure(payment: Payment, booking: Booking):
    payment.status = PaymentStatus.FAILED.value

    if booking.status == BookingStatus.CANCELLED.value:
        logger.info(
            f"Payment failure for cancelled booking discarded | Booking={booking.booking_reference} "
            f"| Ref={payment.gateway_reference}"
        )
        return

    # A late failure for a superseded attempt must not mark the current one failed
    if (
        booking.payment_status == BookingPaymentStatus.PENDING.value
        and booking.payment_reference == payment.gateway_reference
    ):
        booking.payment_status = BookingPaymentStatus.FAILED.value

    logger.info(f"Booking {booking.booking_reference} payment failed | Ref={payment.gateway_reference}")


def apply_gateway_event(db: Session, outcome: GatewayOutcome) -> ApplyResult:
    """Apply a settled gateway outcome at most once.

    Returns ``applied=False`` when the Payment was already settled; the stored
    state is left untouched in that case.
    """
    def step(db: Session) -> ApplyResult:
        payment = _locked_payment(db, outcome.reference)
        if payment is None:
            db.rollback()
            logger.error(f"Gateway event for unknown reference | Ref={outcome.reference}")
            raise UnknownReference(f"No payment found for reference {outcome.reference}")

        booking = _locked_booking(db, payment.booking_id)

        if payment.status != PaymentStatus.PENDING.value:
            db.commit()
            logger.info(f"Gateway event already applied | Ref={outcome.reference} | Status={payment.status}")
            return ApplyResult(payment=payment, booking=booking, applied=False)

        if booking is None:
            db.rollback()
            logger.error(f"Payment references a missing booking | Ref={outcome.reference}")
            raise ReconciliationFailed("Payment references a missing booking")

        if outcome.succeeded:
            _apply_success(payment, booking, outcome)
        else:
            _apply_failure(payment, booking)

        db.commit()
        return ApplyResult(payment=payment, booking=booking, applied=True)

    return _run_serialized(db, outcome.reference, step)


# ---------------------------------------------------------------------
# REFUND
# ---------------------------------------------------------------------
def record_refund(db: Session, reference: str) -> bool:
    def step(db: Session) -> bool:
        payment = _locked_payment(db, reference)
        if payment is None:
            db.rollback()
            logger.error(f"Refund for unknown reference | Ref={reference}")
            raise UnknownReference(f"No payment found for reference {reference}")

        if payment.status != PaymentStatus.COMPLETED.value:
            db.rollback()
            logger.warning(f"Refund ignored | Ref={reference} | Status={payment.status}")
            return False

        booking = _locked_booking(db, payment.booking_id)
        payment.status = PaymentStatus.REFUNDED.value
        if (
            booking is not None
            and booking.status != BookingStatus.CANCELLED.value
            and booking.payment_status == BookingPaymentStatus.PAID.value
            and booking.payment_reference == reference
        ):
            booking.payment_status = BookingPaymentStatus.REFUNDED.value

        db.commit()
        logger.info(f"Refund recorded | Ref={reference}")
        return True

    return _run_serialized(db, reference, step)


# ---------------------------------------------------------------------
# VERIFY
# ---------------------------------------------------------------------
def verify_by_reference(db: Session, gateway, reference: str, principal: User) -> VerifyResult:
    payment = payment_ledger.get_by_reference(db, reference)
    if payment is None:
        logger.warning(f"Verify for unknown reference | Ref={reference}")
        raise UnknownReference(f"No payment found for reference {reference}")

    booking_store.ensure_can_access(payment.booking, principal)

    transaction = gateway.verify_transaction(reference)

    if transaction.amount is not None and (
        transaction.amount != payment.amount or (transaction.currency or payment.currency) != payment.currency
    ):
        logger.warning(
            f"Gateway amount differs from recorded payment | Ref={reference} "
            f"| Gateway={transaction.amount} {transaction.currency} | Expected={payment.amount} {payment.currency}"
        )

    outcome = outcome_from_verification(transaction)
    if outcome is None:
        logger.info(f"Verify: transaction not settled yet | Ref={reference} | Status={transaction.status}")
        return VerifyResult(payment=payment, booking=payment.booking, transaction=transaction)

    outcome.reference = reference
    result = apply_gateway_event(db, outcome)
    return VerifyResult(payment=result.payment, booking=result.booking, transaction=transaction)


# ---------------------------------------------------------------------
# WEBHOOK EVENTS
# ---------------------------------------------------------------------
def handle_webhook_event(db: Session, event: dict) -> str:
    """Dispatch an authenticated webhook payload.

    Returns "processed", "duplicate" or "ignored". Raises ``UnknownReference``
    when the event names a reference this service never initialized.
    """
    if not isinstance(event, dict):
        raise ValidationError("Webhook payload must be a JSON object")

    event_type = event.get("event")
    data = event.get("data") or {}
    if not isinstance(data, dict):
        raise ValidationError("Webhook payload data must be a JSON object")

    if event_type in ("charge.success", "charge.failed"):
        reference = data.get("reference")
        if not reference:
            raise ValidationError("Webhook payload has no transaction reference")

        transaction_id = data.get("id")
        outcome = GatewayOutcome(
            reference=reference,
            succeeded=event_type == "charge.success",
            paid_at=parse_gateway_timestamp(data.get("paid_at") or data.get("paidAt")),
            transaction_id=str(transaction_id) if transaction_id is not None else None,
            channel=data.get("channel"),
        )
        result = apply_gateway_event(db, outcome)
        return "processed" if result.applied else "duplicate"

    if event_type == "refund.processed":
        transaction = data.get("transaction")
        reference = data.get("transaction_reference") or (
            transaction.get("reference") if isinstance(transaction, dict) else None
        )
        if not reference:
            raise ValidationError("Refund event has no transaction reference")
        return "processed" if record_refund(db, reference) else "duplicate"

    logger.info(f"Unhandled webhook event type: {event_type}")
    return "ignored"


# ---------------------------------------------------------------------
# BOOKING LIFECYCLE
# ---------------------------------------------------------------------
def cancel_booking(db: Session, booking_id: int, principal: User) -> Booking:
    booking = booking_store.get_booking_for(db, booking_id, principal)

    if booking.status == BookingStatus.CANCELLED.value:
        raise Conflict("Booking is already cancelled")

    if booking.status == BookingStatus.COMPLETED.value:
        raise Conflict("Cannot cancel a completed booking")

    booking.status = BookingStatus.CANCELLED.value
    booking = booking_store.save(db, booking)

    booking_logger.info(
        f"Booking Cancelled | Ref={booking.booking_reference} | By={principal.email} "
        f"| PaymentStatus={booking.payment_status}"
    )
    return booking


def complete_booking(db: Session, booking_id: int) -> Booking:
    booking = booking_store.get_booking(db, booking_id)

    if booking.status != BookingStatus.CONFIRMED.value:
        raise Conflict(f"Only confirmed bookings can be completed (status is {booking.status})")

    booking.status = BookingStatus.COMPLETED.value
    booking = booking_store.save(db, booking)

    booking_logger.info(f"Booking Completed | Ref={booking.booking_reference}")
    return booking


def payment_status(db: Session, booking_id: int, principal: User) -> dict:
    booking = booking_store.get_booking_for(db, booking_id, principal)
    payment = None
    if booking.payment_reference:
        payment = payment_ledger.get_by_reference(db, booking.payment_reference)
    if payment is None:
        payment = payment_ledger.latest_for_booking(db, booking.id)

    return {
        "booking_reference": booking.booking_reference,
        "status": booking.status,
        "payment_status": booking.payment_status,
        "payment_reference": booking.payment_reference,
        "paid_at": booking.paid_at,
        "payment_anomaly": booking.payment_anomaly,
        "payment": payment,
    }
