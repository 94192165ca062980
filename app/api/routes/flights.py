from fastapi import APIRouter, Depends, Query

from app.core.dependencies import get_flight_client
from app.core.errors import ValidationError
from app.schemas.flight import FlightPriceRequest

router = APIRouter(prefix="/flights", tags=["Flights"])


@router.get("/search")
def search_flights(
    origin: str,
    destination: str,
    departure_date: str,
    return_date: str | None = None,
    adults: int = Query(1, ge=1),
    children: int | None = Query(None, ge=0),
    travel_class: str | None = None,
    currency: str = "NGN",
    non_stop: bool | None = None,
    client=Depends(get_flight_client),
):
    return client.search_flights(
        origin=origin.upper(),
        destination=destination.upper(),
        departure_date=departure_date,
        return_date=return_date,
        adults=adults,
        children=children,
        travel_class=travel_class,
        currency=currency,
        non_stop=non_stop,
    )


@router.post("/price")
def price_flight(data: FlightPriceRequest, client=Depends(get_flight_client)):
    return client.price_offer(data.flight_offer)


@router.get("/airports")
def search_airports(keyword: str, client=Depends(get_flight_client)):
    if len(keyword.strip()) < 3:
        raise ValidationError("Keyword must be at least 3 characters")
    return client.search_airports(keyword.strip())
