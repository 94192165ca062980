"""
Application configuration and settings
"""
import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    PROJECT_NAME: str = "Travel Booking API"
    VERSION: str = "1.0.0"

    def __init__(self):
        self.APP_ENV = os.getenv("APP_ENV", "development")
        self.LOG_DIR = os.getenv("LOG_DIR", "logs")

        # Database
        self.DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./travel_booking.db")

        # JWT
        self.JWT_SECRET = os.getenv("JWT_SECRET", "change-me")
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60))

        # Payment gateway (Paystack)
        self.PAYSTACK_SECRET_KEY = os.getenv("PAYSTACK_SECRET_KEY", "")
        self.PAYSTACK_WEBHOOK_SECRET = os.getenv("PAYSTACK_WEBHOOK_SECRET") or self.PAYSTACK_SECRET_KEY
        self.PAYSTACK_BASE_URL = os.getenv("PAYSTACK_BASE_URL", "https://api.paystack.co")
        self.GATEWAY_TIMEOUT_SECONDS = float(os.getenv("GATEWAY_TIMEOUT_SECONDS", 15))
        self.FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

        # Flight API (Amadeus)
        self.AMADEUS_API_KEY = os.getenv("AMADEUS_API_KEY", "")
        self.AMADEUS_API_SECRET = os.getenv("AMADEUS_API_SECRET", "")
        self.AMADEUS_BASE_URL = os.getenv("AMADEUS_BASE_URL", "https://test.api.amadeus.com")

        # Redis (optional, flight lookups only)
        self.REDIS_URL = os.getenv("REDIS_URL", "")
        self.FLIGHT_CACHE_TTL = int(os.getenv("FLIGHT_CACHE_TTL", 300))

    @property
    def is_production(self) -> bool:
        return self.APP_ENV.lower() == "production"

    @property
    def payment_callback_url(self) -> str:
        return f"{self.FRONTEND_URL.rstrip('/')}/payment/callback"


settings = Settings()
