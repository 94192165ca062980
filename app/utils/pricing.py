from app.core.errors import ValidationError

DEFAULT_CURRENCY = "NGN"


def _as_amount(value, field: str) -> float:
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Flight offer price.{field} must be a number")
    if amount < 0:
        raise ValidationError(f"Flight offer price.{field} cannot be negative")
    return amount


def calculate_booking_price(offer: dict):
    """Pricing block for a booking, copied from the offer's price section.

    Taxes are whatever separates the quoted total from the base fare.
    """
    price = offer.get("price") if isinstance(offer, dict) else None
    if not isinstance(price, dict):
        raise ValidationError("Flight offer is missing its price")

    base = _as_amount(price.get("base"), "base")
    total = _as_amount(price.get("total"), "total")

    if total <= 0:
        raise ValidationError("Flight offer total must be greater than 0")
    if base > total:
        raise ValidationError("Flight offer base price exceeds its total")

    return {
        "base_price": round(base, 2),
        "taxes": round(total - base, 2),
        "total_price": round(total, 2),
        "currency": (price.get("currency") or DEFAULT_CURRENCY).upper(),
    }


def to_minor_units(amount: float) -> int:
    # kobo / cents
    return int(round(amount * 100))


def from_minor_units(amount) -> float | None:
    if amount is None:
        return None
    return round(int(amount) / 100.0, 2)
