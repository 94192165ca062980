from enum import Enum


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class BookingPaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


# Operator-facing markers for outcomes that were recorded but not reconciled
class BookingAnomaly(str, Enum):
    PAID_AFTER_CANCELLATION = "paid_after_cancellation"


class PaymentAnomaly(str, Enum):
    DUPLICATE_CHARGE = "duplicate_charge"


TERMINAL_BOOKING_STATUSES = (BookingStatus.CANCELLED.value, BookingStatus.COMPLETED.value)
