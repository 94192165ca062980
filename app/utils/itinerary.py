from app.core.errors import ValidationError


def extract_itinerary(offer: dict) -> dict:
    """Summarise an upstream flight offer into the fields a booking keeps.

    Only the outbound itinerary's first and last segments are read; a second
    itinerary, when present, supplies the return date.
    """
    try:
        outbound = offer["itineraries"][0]
        segments = outbound["segments"]
        first_segment = segments[0]
        last_segment = segments[-1]
    except (KeyError, IndexError, TypeError):
        raise ValidationError("Flight offer has no itinerary segments")

    itineraries = offer.get("itineraries") or []
    return_date = None
    if len(itineraries) > 1:
        try:
            return_date = itineraries[1]["segments"][0]["departure"]["at"]
        except (KeyError, IndexError, TypeError):
            return_date = None

    cabin = None
    try:
        cabin = offer["travelerPricings"][0]["fareDetailsBySegment"][0]["cabin"]
    except (KeyError, IndexError, TypeError):
        pass

    airlines = offer.get("validatingAirlineCodes") or []

    return {
        "origin": (first_segment.get("departure") or {}).get("iataCode"),
        "destination": (last_segment.get("arrival") or {}).get("iataCode"),
        "departure_date": (first_segment.get("departure") or {}).get("at"),
        "return_date": return_date,
        "airline": airlines[0] if airlines else first_segment.get("carrierCode"),
        "flight_number": first_segment.get("number"),
        "cabin_class": cabin,
        "duration": outbound.get("duration"),
    }
