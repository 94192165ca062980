from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship

from app.db.session import Base
from app.models.enums import BookingStatus, BookingPaymentStatus
from app.utils.timeutils import utcnow


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    booking_reference = Column(String(40), unique=True, index=True, nullable=False)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Summary extracted from the offer at creation, plus the offer itself verbatim
    itinerary = Column(JSON, nullable=False)
    flight_offer = Column(JSON, nullable=False)
    passengers = Column(JSON, nullable=False)

    # PRICING (immutable once set)
    base_price = Column(Float, nullable=False)
    taxes = Column(Float, nullable=False, default=0.0)
    total_price = Column(Float, nullable=False)
    currency = Column(String(3), nullable=False, default="NGN")

    status = Column(String, nullable=False, default=BookingStatus.PENDING.value)
    payment_status = Column(String, nullable=False, default=BookingPaymentStatus.PENDING.value)
    payment_reference = Column(String, nullable=True, index=True)
    paid_at = Column(DateTime, nullable=True)
    payment_anomaly = Column(String, nullable=True)

    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    owner = relationship("User", back_populates="bookings")
    payments = relationship("Payment", back_populates="booking", order_by="Payment.id")

    # Every UPDATE is issued as "... WHERE id = ? AND version = ?"
    __mapper_args__ = {"version_id_col": version}
