from functools import lru_cache

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.db.session import SessionLocal
from app.core.auth_utils import decode_token
from app.core.config import settings
from app.models.user import User
from app.services.flight_client import AmadeusClient
from app.services.gateway_client import PaystackClient

security = HTTPBearer()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_principal(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    token = credentials.credentials  # Extract JWT token

    payload = decode_token(token)

    user = db.query(User).filter(User.email == payload["sub"]).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    # The token's role must still match the stored role
    if user.role != payload["role"]:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid role"
        )

    return user


def require_admin(principal: User = Depends(get_current_principal)) -> User:
    if not principal.is_admin:
        raise HTTPException(status_code=403, detail="Admins only")
    return principal


@lru_cache
def get_payment_gateway() -> PaystackClient:
    return PaystackClient(
        secret_key=settings.PAYSTACK_SECRET_KEY,
        base_url=settings.PAYSTACK_BASE_URL,
        timeout=settings.GATEWAY_TIMEOUT_SECONDS,
    )


@lru_cache
def get_flight_client() -> AmadeusClient:
    return AmadeusClient(
        api_key=settings.AMADEUS_API_KEY,
        api_secret=settings.AMADEUS_API_SECRET,
        base_url=settings.AMADEUS_BASE_URL,
        timeout=settings.GATEWAY_TIMEOUT_SECONDS,
        cache_ttl=settings.FLIGHT_CACHE_TTL,
    )
