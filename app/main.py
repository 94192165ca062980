import time
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import auth, bookings, payments, flights
from app.core.config import settings
from app.core.errors import AppError, GatewayError

# ⭐ Import logging system
from app.core.logging_config import get_logger

logger = get_logger()
STARTED_AT = time.monotonic()

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="Flight bookings, Paystack payments and payment reconciliation"
)


# ⭐ Request Logging Middleware
@app.middleware("http")
async def log_requests(request, call_next):
    logger.info(f"REQUEST: {request.method} {request.url.path}")

    try:
        response = await call_next(request)
        logger.info(f"RESPONSE: {response.status_code} {request.url.path}")
        return response

    except Exception as e:
        logger.error(f"ERROR: {request.url.path} -> {str(e)}")
        raise e


# ⭐ Error handlers
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if isinstance(exc, GatewayError) or exc.status_code >= 500:
        logger.error(f"{exc.kind}: {request.method} {request.url.path} -> {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message, "kind": exc.kind},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.opt(exception=exc).error(f"Unhandled error: {request.method} {request.url.path}")

    content = {"success": False, "message": "Internal server error", "kind": "internal_error"}
    if not settings.is_production:
        content["error"] = repr(exc)
    return JSONResponse(status_code=500, content=content)


# ⭐ CORS (important for frontend)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],   # Can restrict later for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -------- ROUTERS --------
app.include_router(auth.router)
app.include_router(flights.router)
app.include_router(bookings.router)
app.include_router(payments.router)


@app.get("/", tags=["Root"])
def root():
    return {"message": "Travel Booking API", "documentation": "/docs", "version": settings.VERSION}


@app.get("/health", tags=["Root"])
def health():
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - STARTED_AT, 2),
    }
