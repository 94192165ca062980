"""
Paystack REST adapter.

Both operations are plain request/response calls. Failures are folded into two
kinds the rest of the app branches on: ``GatewayUnavailable`` (timeouts,
connection errors, 5xx: safe to retry) and ``GatewayRejected`` (4xx or a
malformed answer). The upstream ``message`` travels with the exception as-is.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import httpx

from app.core.errors import GatewayRejected, GatewayUnavailable
from app.core.logging_config import get_logger
from app.utils.pricing import from_minor_units, to_minor_units
from app.utils.timeutils import parse_gateway_timestamp

logger = get_logger("payment")


@dataclass
class InitializedTransaction:
    authorization_url: str
    access_code: str | None
    reference: str


@dataclass
class VerifiedTransaction:
    reference: str
    status: str
    amount: float | None
    currency: str | None
    paid_at: datetime | None
    channel: str | None = None
    transaction_id: str | None = None
    gateway_response: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)


def _json_or_none(response: httpx.Response):
    try:
        return response.json()
    except ValueError:
        return None


class PaystackClient:
    def __init__(
        self,
        secret_key: str,
        base_url: str = "https://api.paystack.co",
        timeout: float = 15.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self._client = httpx.Client(
            base_url=base_url,
            timeout=timeout,
            headers={
                "Authorization": f"Bearer {secret_key}",
                "Content-Type": "application/json",
            },
            transport=transport,
        )

    def close(self):
        self._client.close()

    def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.TimeoutException:
            logger.error(f"Paystack timeout | {method} {path}")
            raise GatewayUnavailable("Payment gateway timed out, please retry")
        except httpx.RequestError as e:
            logger.error(f"Paystack connection error | {method} {path} | {e}")
            raise GatewayUnavailable()

        body = _json_or_none(response)
        message = body.get("message") if isinstance(body, dict) else None

        if response.status_code >= 500:
            logger.error(f"Paystack {response.status_code} | {method} {path} | {body}")
            raise GatewayUnavailable(message, upstream_status=response.status_code)

        if response.status_code >= 400:
            logger.warning(f"Paystack rejected | {response.status_code} | {method} {path} | {body}")
            raise GatewayRejected(message, upstream_status=response.status_code)

        if not isinstance(body, dict) or not body.get("status") or not isinstance(body.get("data"), dict):
            logger.error(f"Paystack unexpected body | {method} {path} | {body}")
            raise GatewayRejected(message or "Unexpected response from payment gateway")

        return body["data"]

    def initialize_transaction(
        self,
        amount: float,
        currency: str,
        reference: str,
        callback_url: str,
        email: str,
        metadata: dict | None = None,
    ) -> InitializedTransaction:
        data = self._request(
            "POST",
            "/transaction/initialize",
            json={
                "email": email,
                "amount": to_minor_units(amount),
                "currency": currency,
                "reference": reference,
                "callback_url": callback_url,
                "metadata": metadata or {},
            },
        )

        if not data.get("authorization_url"):
            raise GatewayRejected("Payment gateway did not return an authorization URL")

        return InitializedTransaction(
            authorization_url=data["authorization_url"],
            access_code=data.get("access_code"),
            reference=data.get("reference") or reference,
        )

    def verify_transaction(self, reference: str) -> VerifiedTransaction:
        data = self._request("GET", f"/transaction/verify/{reference}")

        transaction_id = data.get("id")
        return VerifiedTransaction(
            reference=data.get("reference") or reference,
            status=str(data.get("status") or "unknown").lower(),
            amount=from_minor_units(data.get("amount")),
            currency=data.get("currency"),
            paid_at=parse_gateway_timestamp(data.get("paid_at") or data.get("paidAt")),
            channel=data.get("channel"),
            transaction_id=str(transaction_id) if transaction_id is not None else None,
            gateway_response=data.get("gateway_response"),
            raw=data,
        )
