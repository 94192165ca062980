import json
import os
import tempfile
from datetime import datetime

# Settings are read at import time, so the environment has to be ready first
_TMP = tempfile.mkdtemp(prefix="travel-booking-tests-")
os.environ["APP_ENV"] = "test"
os.environ["LOG_DIR"] = os.path.join(_TMP, "logs")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'import.db')}"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["PAYSTACK_SECRET_KEY"] = "sk_test_secret"
os.environ["PAYSTACK_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["REDIS_URL"] = ""
os.environ["FRONTEND_URL"] = "http://frontend.local"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.config import settings
from app.core.dependencies import get_db, get_payment_gateway
from app.core.jwt import create_access_token
from app.core.security import hash_password
from app.db.session import Base
from app.main import app
from app.models.enums import UserRole
from app.models.user import User
from app.schemas.booking import BookingCreate
from app.services import booking_store
from app.services.gateway_client import InitializedTransaction, VerifiedTransaction
from app.services.webhook_auth import compute_signature


class FakeGateway:
    """Scripted stand-in for ``PaystackClient``.

    ``references`` are handed out by ``initialize_transaction`` in order;
    ``settle`` decides what ``verify_transaction`` reports for a reference.
    """

    def __init__(self):
        self.references = []
        self.transactions = {}
        self.initialize_error = None
        self.initialized = []
        self.verified = []

    def initialize_transaction(self, amount, currency, reference, callback_url, email, metadata=None):
        if self.initialize_error is not None:
            raise self.initialize_error
        if self.references:
            reference = self.references.pop(0)
        self.initialized.append({
            "amount": amount,
            "currency": currency,
            "reference": reference,
            "callback_url": callback_url,
            "email": email,
            "metadata": metadata,
        })
        return InitializedTransaction(
            authorization_url=f"https://checkout.paystack.com/{reference}",
            access_code=f"AC_{reference}",
            reference=reference,
        )

    def settle(self, reference, status="success", amount=50000.0, currency="NGN",
               paid_at=datetime(2025, 1, 10, 9, 30), transaction_id="4099260516"):
        self.transactions[reference] = VerifiedTransaction(
            reference=reference,
            status=status,
            amount=amount,
            currency=currency,
            paid_at=paid_at if status == "success" else None,
            channel="card",
            transaction_id=transaction_id,
            gateway_response="Approved" if status == "success" else "Declined",
        )

    def verify_transaction(self, reference):
        self.verified.append(reference)
        if reference in self.transactions:
            return self.transactions[reference]
        return VerifiedTransaction(
            reference=reference, status="ongoing", amount=None, currency=None, paid_at=None
        )


# ---------------------------------------------------------------------
# DATABASE
# ---------------------------------------------------------------------
@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


# ---------------------------------------------------------------------
# APP
# ---------------------------------------------------------------------
@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(session_factory, gateway):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------
# USERS
# ---------------------------------------------------------------------
def _make_user(db, name, email, role=UserRole.USER.value):
    user = User(name=name, email=email, password_hash=hash_password("secret123"), role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def user(db):
    return _make_user(db, "Ada Obi", "ada@example.com")


@pytest.fixture
def other_user(db):
    return _make_user(db, "Bola Ade", "bola@example.com")


@pytest.fixture
def admin(db):
    return _make_user(db, "Ops Admin", "admin@example.com", role=UserRole.ADMIN.value)


@pytest.fixture
def auth_headers():
    def _headers(user):
        token = create_access_token(user.email, user.role)
        return {"Authorization": f"Bearer {token}"}
    return _headers


# ---------------------------------------------------------------------
# BOOKINGS
# ---------------------------------------------------------------------
@pytest.fixture
def flight_offer():
    return {
        "type": "flight-offer",
        "id": "1",
        "source": "GDS",
        "itineraries": [
            {
                "duration": "PT6H30M",
                "segments": [
                    {
                        "departure": {"iataCode": "LOS", "at": "2025-12-20T23:10:00"},
                        "arrival": {"iataCode": "LHR", "at": "2025-12-21T05:40:00"},
                        "carrierCode": "BA",
                        "number": "74",
                    }
                ],
            }
        ],
        "price": {"currency": "NGN", "total": "50000.00", "base": "42000.00"},
        "validatingAirlineCodes": ["BA"],
        "travelerPricings": [{"fareDetailsBySegment": [{"segmentId": "1", "cabin": "ECONOMY"}]}],
    }


@pytest.fixture
def booking_payload(flight_offer):
    return {
        "flight_offer": flight_offer,
        "passengers": [
            {"first_name": "Ada", "last_name": "Obi", "email": "ada@example.com"},
        ],
    }


@pytest.fixture
def booking(db, user, booking_payload):
    return booking_store.create_booking(db, user, BookingCreate(**booking_payload))


# ---------------------------------------------------------------------
# WEBHOOKS
# ---------------------------------------------------------------------
@pytest.fixture
def send_webhook(client):
    def _send(event, signature=None, raw=None):
        body = raw if raw is not None else json.dumps(event).encode()
        if signature is None:
            signature = compute_signature(body, settings.PAYSTACK_WEBHOOK_SECRET)
        return client.post(
            "/payments/webhook",
            content=body,
            headers={"x-paystack-signature": signature, "Content-Type": "application/json"},
        )
    return _send


@pytest.fixture
def charge_event():
    def _event(reference, event="charge.success", paid_at="2025-01-10T09:30:00.000Z"):
        return {
            "event": event,
            "data": {
                "id": 4099260516,
                "status": "success" if event == "charge.success" else "failed",
                "reference": reference,
                "amount": 5000000,
                "currency": "NGN",
                "channel": "card",
                "paid_at": paid_at if event == "charge.success" else None,
            },
        }
    return _event
