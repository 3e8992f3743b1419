"""
ClientZap backend - accounts, plan limits and Stripe subscription billing
"""

from contextlib import asynccontextmanager
from pathlib import Path
import logging
import traceback

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from auth import auth_router
from routers.billing_router import billing_router, WEBHOOK_PATH
from routers.forms_router import forms_router
from routers.user_router import router as user_router
from utils.rate_limit import RateLimiterMiddleware
from database import init_db
from config import settings, IS_PRODUCTION

# Logging setup - write ALL events to logs/app.log
LOGS_DIR = Path("./logs")
LOGS_DIR.mkdir(exist_ok=True)
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(LOGS_DIR / "app.log"),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)


def check_required_settings():
    """
    The Stripe API key is mandatory; the rest only degrade features.

    Raises:
        RuntimeError: if STRIPE_SECRET_KEY is missing
    """
    if not settings.stripe_secret_key:
        raise RuntimeError("Missing required Stripe secret: STRIPE_SECRET_KEY")

    optional = {
        "STRIPE_WEBHOOK_SECRET": settings.stripe_webhook_secret,
        "STRIPE_MONTHLY_PRICE_ID": settings.stripe_monthly_price_id,
        "STRIPE_YEARLY_PRICE_ID": settings.stripe_yearly_price_id,
        "JWT_SECRET_KEY": settings.jwt_secret_key,
    }
    missing = [key for key, value in optional.items() if not value]
    if missing:
        logger.warning(f"Startup check: Missing environment variables: {', '.join(missing)}")
    else:
        logger.info("Startup check: All billing environment variables are set")


@asynccontextmanager
async def lifespan(app: FastAPI):
    check_required_settings()
    try:
        await init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise
    yield


app = FastAPI(title="ClientZap", lifespan=lifespan)


# Uncaught exception middleware - logs all unhandled exceptions and returns 500
class UncaughtExceptionMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(f"Uncaught exception: {e}\n{traceback.format_exc()}")
            return JSONResponse(
                status_code=500,
                content={"ok": False, "error": "Internal Server Error"}
            )


# Security headers middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses: HSTS, X-Frame-Options, X-Content-Type-Options"""
    async def dispatch(self, request, call_next):
        response = await call_next(request)

        # Only set in production where HTTPS is guaranteed
        if IS_PRODUCTION:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        return response


app.add_middleware(UncaughtExceptionMiddleware)
app.add_middleware(RateLimiterMiddleware, exempt_paths=[WEBHOOK_PATH])
app.add_middleware(SecurityHeadersMiddleware)

# CORS MUST be near the bottom
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================================
# INCLUDE ROUTERS
# ============================================================================
app.include_router(billing_router)
app.include_router(auth_router)
app.include_router(forms_router)
app.include_router(user_router)


@app.get("/health")
async def health():
    return {"ok": True}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
