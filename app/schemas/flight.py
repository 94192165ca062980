from typing import Any

from pydantic import BaseModel


class FlightPriceRequest(BaseModel):
    flight_offer: dict[str, Any] | list[dict[str, Any]]
