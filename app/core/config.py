import os
from decimal import Decimal
from dotenv import load_dotenv

load_dotenv()

# -------- DATABASE / CACHE --------
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./sportify.db")
REDIS_URL = os.getenv("REDIS_URL")

# -------- AUTH --------
JWT_SECRET = os.getenv("JWT_SECRET", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60))

# -------- PAYMENT GATEWAY --------
BILLPLZ_X_SIGNATURE_KEY = os.getenv("BILLPLZ_X_SIGNATURE_KEY")

# -------- ESCROW RULES --------
REFUND_CUTOFF_HOURS = int(os.getenv("REFUND_CUTOFF_HOURS", 24))
PLATFORM_FEE_RATE = Decimal(os.getenv("PLATFORM_FEE_RATE", "0.10"))
CURRENCY = os.getenv("CURRENCY", "RM")

# -------- LOGGING --------
LOG_DIR = os.getenv("LOG_DIR", "logs")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# -------- LIVE FEED --------
SSE_HEARTBEAT_SECONDS = float(os.getenv("SSE_HEARTBEAT_SECONDS", 15))
