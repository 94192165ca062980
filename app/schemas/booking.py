from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, EmailStr, Field


class PassengerIn(BaseModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: EmailStr
    phone: str | None = None
    date_of_birth: date | None = None
    passport_number: str | None = None
    passport_expiry: date | None = None
    nationality: str | None = None


class BookingCreate(BaseModel):
    flight_offer: dict[str, Any]
    passengers: list[PassengerIn] = Field(min_length=1)


class PricingOut(BaseModel):
    base_price: float
    taxes: float
    total: float
    currency: str


class BookingOut(BaseModel):
    id: int
    booking_reference: str
    owner_id: int
    itinerary: dict[str, Any]
    passengers: list[dict[str, Any]]
    pricing: PricingOut
    status: str
    payment_status: str
    payment_reference: str | None
    paid_at: datetime | None
    payment_anomaly: str | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_booking(cls, booking) -> "BookingOut":
        return cls(
            id=booking.id,
            booking_reference=booking.booking_reference,
            owner_id=booking.owner_id,
            itinerary=booking.itinerary,
            passengers=booking.passengers,
            pricing=PricingOut(
                base_price=booking.base_price,
                taxes=booking.taxes,
                total=booking.total_price,
                currency=booking.currency,
            ),
            status=booking.status,
            payment_status=booking.payment_status,
            payment_reference=booking.payment_reference,
            paid_at=booking.paid_at,
            payment_anomaly=booking.payment_anomaly,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )
