from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import auth, payments, notifications, admin_payments, admin_sessions
from app.api.routes.admin_panel import router as admin_panel_router

# ⭐ Import logging system
from app.core.logging_config import get_logger
from app.core.redis import get_redis_client

logger = get_logger()

app = FastAPI(
    title="Sportify Payments API",
    version="1.0.0",
    description="Payment callbacks, escrow release/refund and coaching session verification"
)

# ⭐ Request Logging Middleware
@app.middleware("http")
async def log_requests(request, call_next):
    logger.info(f"REQUEST: {request.method} {request.url}")

    try:
        response = await call_next(request)
        logger.info(f"RESPONSE: {response.status_code} {request.url}")
        return response

    except Exception as e:
        logger.error(f"ERROR: {request.url} -> {str(e)}")
        raise e


# ⭐ CORS (admin console runs on its own origin)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -------- ROUTERS REGISTER ORDER MATTERS --------
app.include_router(auth.router)
app.include_router(payments.router)
app.include_router(notifications.router)
app.include_router(admin_payments.router)
app.include_router(admin_sessions.router)
app.include_router(admin_panel_router)

@app.get("/", tags=["Root"])
def root():
    return {"message": "Sportify payments backend running"}


@app.get("/health", tags=["Root"])
def health():
    return {"status": "ok", "redis": get_redis_client() is not None}
