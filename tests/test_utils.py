import threading
import time
from datetime import datetime

import pytest

from app.core.errors import AuthenticationFailed, ValidationError
from app.services.locks import KeyedLock
from app.services.webhook_auth import compute_signature, verify_signature
from app.utils.itinerary import extract_itinerary
from app.utils.pricing import calculate_booking_price, from_minor_units, to_minor_units
from app.utils.references import generate_booking_reference, generate_gateway_reference
from app.utils.timeutils import parse_gateway_timestamp


# ---------------------------------------------------------------------
# PRICING
# ---------------------------------------------------------------------
def test_taxes_are_total_minus_base(flight_offer):
    assert calculate_booking_price(flight_offer) == {
        "base_price": 42000.0,
        "taxes": 8000.0,
        "total_price": 50000.0,
        "currency": "NGN",
    }


def test_currency_defaults_and_is_uppercased():
    assert calculate_booking_price({"price": {"total": "120.50", "base": "100"}})["currency"] == "NGN"
    assert calculate_booking_price({"price": {"total": 10, "base": 10, "currency": "usd"}})["currency"] == "USD"


@pytest.mark.parametrize("price", [
    None,
    {"total": "abc", "base": "1"},
    {"total": "0", "base": "0"},
    {"total": "100", "base": "-5"},
    {"total": "100", "base": "150"},
])
def test_invalid_prices(price):
    with pytest.raises(ValidationError):
        calculate_booking_price({"price": price})


def test_minor_units():
    assert to_minor_units(50000.0) == 5000000
    assert to_minor_units(19.99) == 1999
    assert from_minor_units(5000000) == 50000.0
    assert from_minor_units(None) is None


# ---------------------------------------------------------------------
# ITINERARY
# ---------------------------------------------------------------------
def test_extract_itinerary(flight_offer):
    assert extract_itinerary(flight_offer) == {
        "origin": "LOS",
        "destination": "LHR",
        "departure_date": "2025-12-20T23:10:00",
        "return_date": None,
        "airline": "BA",
        "flight_number": "74",
        "cabin_class": "ECONOMY",
        "duration": "PT6H30M",
    }


def test_extract_itinerary_round_trip(flight_offer):
    flight_offer["itineraries"].append({
        "segments": [{"departure": {"iataCode": "LHR", "at": "2026-01-05T10:00:00"},
                      "arrival": {"iataCode": "LOS", "at": "2026-01-05T16:20:00"}}],
    })

    assert extract_itinerary(flight_offer)["return_date"] == "2026-01-05T10:00:00"


def test_extract_itinerary_without_segments():
    with pytest.raises(ValidationError):
        extract_itinerary({"itineraries": [{"segments": []}]})


# ---------------------------------------------------------------------
# REFERENCES / TIME
# ---------------------------------------------------------------------
def test_booking_reference_format():
    reference = generate_booking_reference()

    assert reference.startswith("KND")
    assert reference[3:-6].isdigit()
    assert reference[-6:].isalnum() and reference[-6:].upper() == reference[-6:]
    assert len({generate_booking_reference() for _ in range(200)}) == 200


def test_gateway_reference_carries_booking_reference():
    reference = generate_gateway_reference("KND1700000000000ABC123")

    assert reference.startswith("KND1700000000000ABC123_")
    assert generate_gateway_reference("KND1") != generate_gateway_reference("KND1")


def test_parse_gateway_timestamp():
    assert parse_gateway_timestamp("2025-01-10T09:30:00.000Z") == datetime(2025, 1, 10, 9, 30)
    assert parse_gateway_timestamp("2025-01-10T10:30:00+01:00") == datetime(2025, 1, 10, 9, 30)
    assert parse_gateway_timestamp("yesterday") is None
    assert parse_gateway_timestamp(None) is None


# ---------------------------------------------------------------------
# WEBHOOK SIGNATURE
# ---------------------------------------------------------------------
def test_verify_signature_accepts_matching_digest():
    body = b'{"event":"charge.success","data":{"reference":"R1"}}'
    signature = compute_signature(body, "whsec")

    verify_signature(body, signature, "whsec")
    verify_signature(body, signature.upper(), "whsec")


@pytest.mark.parametrize("body,signature,secret", [
    (b'{"a":1}', None, "whsec"),
    (b'{"a":1}', "", "whsec"),
    (b'{"a":2}', compute_signature(b'{"a":1}', "whsec"), "whsec"),
    (b'{"a":1}', compute_signature(b'{"a":1}', "other"), "whsec"),
    (b'{"a":1}', compute_signature(b'{"a":1}', "whsec"), ""),
])
def test_verify_signature_rejects(body, signature, secret):
    with pytest.raises(AuthenticationFailed):
        verify_signature(body, signature, secret)


# ---------------------------------------------------------------------
# KEYED LOCK
# ---------------------------------------------------------------------
def test_keyed_lock_serializes_same_key():
    locks = KeyedLock()
    events = []

    def worker(name):
        with locks.hold("R1"):
            events.append(f"{name}-in")
            time.sleep(0.05)
            events.append(f"{name}-out")

    threads = [threading.Thread(target=worker, args=(n,)) for n in ("a", "b", "c")]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    for i in range(0, len(events), 2):
        assert events[i].endswith("-in")
        assert events[i + 1] == events[i].replace("-in", "-out")
    assert len(locks) == 0


def test_keyed_lock_does_not_block_other_keys():
    locks = KeyedLock()

    with locks.hold("R1"):
        acquired = threading.Event()

        def other():
            with locks.hold("R2"):
                acquired.set()

        t = threading.Thread(target=other)
        t.start()
        assert acquired.wait(timeout=2)
        t.join()
        assert len(locks) == 1

    assert len(locks) == 0
