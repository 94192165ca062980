from loguru import logger
import sys
import os

from app.core.config import settings

LOG_DIR = settings.LOG_DIR

# Create folder if missing
if not os.path.exists(LOG_DIR):
    os.makedirs(LOG_DIR)

# Remove default handler
logger.remove()

# Console output for uvicorn / docker logs
logger.add(
    sys.stderr,
    level="INFO",
    format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}"
)

# General application log
logger.add(
    f"{LOG_DIR}/app.log",
    rotation="1 week",
    retention="4 weeks",
    level="INFO",
    enqueue=True,
    format="{time} | {level} | {message}"
)

# One file per channel, selected with logger.bind(log_type=...)
for log_type, filename in (
    ("booking", "bookings.log"),
    ("payment", "payments.log"),
    ("webhook", "webhooks.log"),
    ("flight", "flights.log"),
):
    logger.add(
        f"{LOG_DIR}/{filename}",
        rotation="1 week",
        retention="4 weeks",
        level="INFO",
        enqueue=True,
        filter=lambda record, log_type=log_type: record["extra"].get("log_type") == log_type,
        format="{time} | {level} | {message}"
    )

# Error logs
logger.add(
    f"{LOG_DIR}/errors.log",
    rotation="1 week",
    retention="8 weeks",
    level="ERROR",
    enqueue=True,
)


def get_logger(log_type: str | None = None):
    if log_type:
        return logger.bind(log_type=log_type)
    return logger
