"""
Amadeus flight API passthrough: search, pricing and airport lookup.

The OAuth2 client-credentials token lives in a ``TokenCache`` owned by each
client instance. Lookups that are safe to reuse are cached in redis when it
is configured.
"""
import hashlib
import json
import threading
import time

import httpx

from app.core.errors import GatewayRejected, GatewayUnavailable
from app.core.logging_config import get_logger
from app.core.redis import get_cache, set_cache

logger = get_logger("flight")

# Amadeus issues 30 minute tokens; refresh a minute early
TOKEN_TTL_SECONDS = 29 * 60


class TokenCache:
    def __init__(self, fetch, ttl_seconds: float = TOKEN_TTL_SECONDS, clock=time.monotonic):
        self._fetch = fetch
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._token: str | None = None
        self._expires_at = 0.0

    def get(self) -> str:
        with self._lock:
            if self._token is None or self._clock() >= self._expires_at:
                self._token = self._fetch()
                self._expires_at = self._clock() + self._ttl
            return self._token

    def invalidate(self):
        with self._lock:
            self._token = None
            self._expires_at = 0.0


def _json_or_none(response: httpx.Response):
    try:
        return response.json()
    except ValueError:
        return None


def _upstream_detail(response: httpx.Response) -> str | None:
    body = _json_or_none(response)
    if not isinstance(body, dict):
        return None
    errors = body.get("errors") or []
    if errors and isinstance(errors[0], dict):
        return errors[0].get("detail") or errors[0].get("title")
    return body.get("error_description") or body.get("message")


class AmadeusClient:
    def __init__(
        self,
        api_key: str,
        api_secret: str,
        base_url: str = "https://test.api.amadeus.com",
        timeout: float = 15.0,
        cache_ttl: int = 300,
        transport: httpx.BaseTransport | None = None,
    ):
        self._api_key = api_key
        self._api_secret = api_secret
        self._cache_ttl = cache_ttl
        self._client = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)
        self.tokens = TokenCache(self._fetch_token)

    def close(self):
        self._client.close()

    def _fetch_token(self) -> str:
        try:
            response = self._client.post(
                "/v1/security/oauth2/token",
                data={
                    "grant_type": "client_credentials",
                    "client_id": self._api_key,
                    "client_secret": self._api_secret,
                },
            )
        except httpx.RequestError as e:
            logger.error(f"Amadeus auth request failed: {e}")
            raise GatewayUnavailable("Failed to authenticate with flight API")

        if response.status_code >= 400:
            logger.error(f"Amadeus auth error | {response.status_code} | {response.text[:300]}")
            raise GatewayUnavailable("Failed to authenticate with flight API", upstream_status=response.status_code)

        body = _json_or_none(response)
        token = body.get("access_token") if isinstance(body, dict) else None
        if not token:
            logger.error(f"Amadeus auth returned no token | {response.text[:300]}")
            raise GatewayRejected("Flight API returned no access token")
        return token

    def _request(self, method: str, path: str, fallback_message: str, **kwargs) -> dict:
        token = self.tokens.get()
        try:
            response = self._client.request(
                method, path, headers={"Authorization": f"Bearer {token}"}, **kwargs
            )
        except httpx.TimeoutException:
            logger.error(f"Amadeus timeout | {method} {path}")
            raise GatewayUnavailable("Flight API timed out, please retry")
        except httpx.RequestError as e:
            logger.error(f"Amadeus connection error | {method} {path} | {e}")
            raise GatewayUnavailable(fallback_message)

        if response.status_code == 401:
            # Token revoked early; next call fetches a fresh one
            self.tokens.invalidate()

        if response.status_code >= 500:
            logger.error(f"Amadeus {response.status_code} | {method} {path} | {response.text[:300]}")
            raise GatewayUnavailable(_upstream_detail(response) or fallback_message, upstream_status=response.status_code)

        if response.status_code >= 400:
            logger.warning(f"Amadeus rejected | {response.status_code} | {method} {path} | {response.text[:300]}")
            raise GatewayRejected(_upstream_detail(response) or fallback_message, upstream_status=response.status_code)

        body = _json_or_none(response)
        if not isinstance(body, dict):
            logger.error(f"Amadeus unexpected body | {method} {path} | {response.text[:300]}")
            raise GatewayRejected(fallback_message)
        return body

    def search_flights(
        self,
        origin: str,
        destination: str,
        departure_date: str,
        return_date: str | None = None,
        adults: int = 1,
        children: int | None = None,
        travel_class: str | None = None,
        currency: str = "NGN",
        non_stop: bool | None = None,
        max_results: int = 50,
    ) -> dict:
        params = {
            "originLocationCode": origin,
            "destinationLocationCode": destination,
            "departureDate": departure_date,
            "adults": adults,
            "currencyCode": currency,
            "max": max_results,
        }
        if return_date:
            params["returnDate"] = return_date
        if children:
            params["children"] = children
        if travel_class:
            params["travelClass"] = travel_class  # ECONOMY, PREMIUM_ECONOMY, BUSINESS, FIRST
        if non_stop is not None:
            params["nonStop"] = "true" if non_stop else "false"

        cache_key = "flights:search:" + hashlib.sha1(
            json.dumps(params, sort_keys=True).encode()
        ).hexdigest()
        cached = get_cache(cache_key)
        if cached is not None:
            return cached

        body = self._request("GET", "/v2/shopping/flight-offers", "Failed to search flights", params=params)
        result = {
            "success": True,
            "data": body.get("data", []),
            "meta": body.get("meta"),
            "dictionaries": body.get("dictionaries"),
        }
        set_cache(cache_key, result, ttl=self._cache_ttl)
        logger.info(f"Flight search | {origin}->{destination} | {departure_date} | Results={len(result['data'])}")
        return result

    def price_offer(self, flight_offers) -> dict:
        offers = flight_offers if isinstance(flight_offers, list) else [flight_offers]
        body = self._request(
            "POST",
            "/v1/shopping/flight-offers/pricing",
            "Failed to get flight price",
            json={"data": {"type": "flight-offers-pricing", "flightOffers": offers}},
        )
        return {"success": True, "data": body.get("data")}

    def search_airports(self, keyword: str) -> dict:
        cache_key = f"flights:airports:{keyword.lower()}"
        cached = get_cache(cache_key)
        if cached is not None:
            return cached

        body = self._request(
            "GET",
            "/v1/reference-data/locations",
            "Failed to search airports",
            params={"keyword": keyword, "subType": "AIRPORT,CITY"},
        )
        result = {"success": True, "data": body.get("data", [])}
        set_cache(cache_key, result, ttl=self._cache_ttl)
        return result
