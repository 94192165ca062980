from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.db.session import Base
from app.models.enums import PaymentStatus
from app.utils.timeutils import utcnow


class Payment(Base):
    """One row per initialize attempt; never deleted."""
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)

    amount = Column(Float, nullable=False)
    currency = Column(String(3), nullable=False)

    gateway_reference = Column(String, unique=True, index=True, nullable=False)
    status = Column(String, nullable=False, default=PaymentStatus.PENDING.value)
    transaction_id = Column(String, nullable=True)
    gateway_channel = Column(String, nullable=True)
    anomaly = Column(String, nullable=True)

    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    booking = relationship("Booking", back_populates="payments")

    __mapper_args__ = {"version_id_col": version}
