"""
Booking Store: persistence and access checks for Booking rows.

Updates go through ``save`` which relies on the mapper's version column, so
a write based on a stale read fails instead of overwriting someone else's
change.
"""
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.errors import Conflict, Forbidden, NotFound
from app.core.logging_config import get_logger
from app.models.booking import Booking
from app.models.user import User
from app.schemas.booking import BookingCreate
from app.utils.itinerary import extract_itinerary
from app.utils.pricing import calculate_booking_price
from app.utils.references import generate_booking_reference

logger = get_logger("booking")

REFERENCE_ATTEMPTS = 3


def create_booking(db: Session, owner: User, data: BookingCreate) -> Booking:
    itinerary = extract_itinerary(data.flight_offer)
    pricing = calculate_booking_price(data.flight_offer)
    passengers = [p.model_dump(mode="json") for p in data.passengers]

    for attempt in range(1, REFERENCE_ATTEMPTS + 1):
        booking = Booking(
            booking_reference=generate_booking_reference(),
            owner_id=owner.id,
            itinerary=itinerary,
            flight_offer=data.flight_offer,
            passengers=passengers,
            **pricing,
        )
        db.add(booking)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.warning(
                f"Booking reference collision | Ref={booking.booking_reference} | Attempt={attempt}"
            )
            continue

        db.refresh(booking)
        logger.info(
            f"Booking Created | User={owner.email} | Ref={booking.booking_reference} "
            f"| Total={booking.total_price} {booking.currency}"
        )
        return booking

    raise Conflict("Could not allocate a unique booking reference, please retry")


def get_booking(db: Session, booking_id: int) -> Booking:
    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if not booking:
        raise NotFound("Booking not found")
    return booking


def get_booking_by_reference(db: Session, reference: str) -> Booking:
    booking = db.query(Booking).filter(Booking.booking_reference == reference).first()
    if not booking:
        raise NotFound("Booking not found")
    return booking


def list_owner_bookings(db: Session, owner_id: int) -> list[Booking]:
    return (
        db.query(Booking)
        .filter(Booking.owner_id == owner_id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
        .all()
    )


def list_all_bookings(db: Session) -> list[Booking]:
    return db.query(Booking).order_by(Booking.created_at.desc(), Booking.id.desc()).all()


def ensure_can_access(booking: Booking, principal: User):
    if booking.owner_id != principal.id and not principal.is_admin:
        raise Forbidden("Not authorized to access this booking")


def get_booking_for(db: Session, booking_id: int, principal: User) -> Booking:
    booking = get_booking(db, booking_id)
    ensure_can_access(booking, principal)
    return booking


def save(db: Session, booking: Booking) -> Booking:
    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        raise Conflict("Booking was modified concurrently, please retry")
    db.refresh(booking)
    return booking
