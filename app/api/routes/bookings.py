from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.dependencies import get_current_principal, get_db, require_admin
from app.models.user import User
from app.schemas.booking import BookingCreate, BookingOut
from app.services import booking_store, reconciliation

router = APIRouter(prefix="/bookings", tags=["Bookings"])


# ---------------------------------------------------------------------
# CREATE BOOKING
# ---------------------------------------------------------------------
@router.post("/", response_model=BookingOut, status_code=201)
def create_booking(
    data: BookingCreate,
    principal: User = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    booking = booking_store.create_booking(db, principal, data)
    return BookingOut.from_booking(booking)


# ---------------------------------------------------------------------
# MY BOOKINGS
# ---------------------------------------------------------------------
@router.get("/my-bookings", response_model=list[BookingOut])
def my_bookings(principal: User = Depends(get_current_principal), db: Session = Depends(get_db)):
    return [BookingOut.from_booking(b) for b in booking_store.list_owner_bookings(db, principal.id)]


# ---------------------------------------------------------------------
# ADMIN: ALL BOOKINGS
# ---------------------------------------------------------------------
@router.get("/admin/all", response_model=list[BookingOut])
def all_bookings(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return [BookingOut.from_booking(b) for b in booking_store.list_all_bookings(db)]


# ---------------------------------------------------------------------
# GET BY REFERENCE
# ---------------------------------------------------------------------
@router.get("/reference/{reference}", response_model=BookingOut)
def booking_by_reference(
    reference: str,
    principal: User = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    booking = booking_store.get_booking_by_reference(db, reference)
    booking_store.ensure_can_access(booking, principal)
    return BookingOut.from_booking(booking)


# ---------------------------------------------------------------------
# GET BY ID
# ---------------------------------------------------------------------
@router.get("/{booking_id}", response_model=BookingOut)
def get_booking(
    booking_id: int,
    principal: User = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return BookingOut.from_booking(booking_store.get_booking_for(db, booking_id, principal))


# ---------------------------------------------------------------------
# CANCEL BOOKING
# ---------------------------------------------------------------------
@router.patch("/{booking_id}/cancel", response_model=BookingOut)
def cancel_booking(
    booking_id: int,
    principal: User = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return BookingOut.from_booking(reconciliation.cancel_booking(db, booking_id, principal))


# ---------------------------------------------------------------------
# ADMIN: MARK TRAVEL COMPLETED
# ---------------------------------------------------------------------
@router.patch("/{booking_id}/complete", response_model=BookingOut)
def complete_booking(
    booking_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return BookingOut.from_booking(reconciliation.complete_booking(db, booking_id))
