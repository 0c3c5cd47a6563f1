from loguru import logger
import os
import sys

from app.core import config

LOG_DIR = config.LOG_DIR
LOG_FORMAT = "{time} | {level} | {extra[log_type]} | {message}"

# log_type -> file; records are routed with logger.bind(log_type=...)
LOG_STREAMS = {
    "booking": "bookings.log",          # booking / appointment state changes
    "payment": "payments.log",          # gateway callbacks, releases, refunds, payouts
    "admin": "admin.log",               # who did what from the console
    "notification": "notifications.log",
}

# Create folder if missing
os.makedirs(LOG_DIR, exist_ok=True)

logger.remove()
logger.configure(extra={"log_type": "app"})

# Console, for uvicorn / docker logs
logger.add(sys.stderr, level=config.LOG_LEVEL, format=LOG_FORMAT)

# Everything
logger.add(
    f"{LOG_DIR}/app.log",
    rotation="1 week",
    retention="4 weeks",
    level=config.LOG_LEVEL,
    enqueue=True,
    format=LOG_FORMAT,
)


def _only(log_type):
    return lambda record: record["extra"].get("log_type") == log_type


for log_type, filename in LOG_STREAMS.items():
    logger.add(
        f"{LOG_DIR}/{filename}",
        rotation="1 week",
        retention="4 weeks",
        level="INFO",
        enqueue=True,
        filter=_only(log_type),
        format="{time} | {level} | {message}",
    )

# Errors keep their traceback and stay around longer
logger.add(
    f"{LOG_DIR}/errors.log",
    rotation="1 week",
    retention="8 weeks",
    level="ERROR",
    enqueue=True,
    backtrace=True,
    format=LOG_FORMAT,
)


def get_logger():
    return logger
