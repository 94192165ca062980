from sqlalchemy.orm import Session

from app.models.enums import PaymentStatus
from app.models.payment import Payment


def add_payment(db: Session, booking, reference: str) -> Payment:
    """Stage a pending Payment for ``booking``; the caller commits."""
    payment = Payment(
        booking_id=booking.id,
        amount=booking.total_price,
        currency=booking.currency,
        gateway_reference=reference,
        status=PaymentStatus.PENDING.value,
    )
    db.add(payment)
    return payment


def get_by_reference(db: Session, reference: str) -> Payment | None:
    return db.query(Payment).filter(Payment.gateway_reference == reference).first()


def latest_for_booking(db: Session, booking_id: int) -> Payment | None:
    return (
        db.query(Payment)
        .filter(Payment.booking_id == booking_id)
        .order_by(Payment.id.desc())
        .first()
    )


def list_for_booking(db: Session, booking_id: int) -> list[Payment]:
    return db.query(Payment).filter(Payment.booking_id == booking_id).order_by(Payment.id).all()
