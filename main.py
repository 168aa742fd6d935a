"""
CoHost Tasks API
Tasks from guest conversations, gated by a Stripe subscription
"""

from pathlib import Path
import logging
import traceback

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from routers.ai_router import ai_router
from routers.billing_router import billing_router
from routers.health_router import router as health_router
from routers.listings_router import listings_router
from routers.tasks_router import tasks_router
from auth import build_identity_resolver
from database import build_engine, build_session_factory, close_db, init_db
from services.billing_service import BillingService
from services.llm_client import TextGenerator
from services.payment_events import PaymentEventVerifier
from utils.errors import register_error_handlers
from utils.rate_limit import RateLimiterMiddleware, build_redis_client
from config.settings import Settings, settings

# ============================================================================
# LOGGING
# ============================================================================


def configure_logging(app_settings: Settings) -> None:
    """Write all events to <LOG_DIR>/app.log and stderr."""
    logs_dir = Path(app_settings.log_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=getattr(logging, app_settings.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(logs_dir / "app.log"),
            logging.StreamHandler()
        ]
    )


configure_logging(settings)
logger = logging.getLogger(__name__)

# ============================================================================
# MIDDLEWARE
# ============================================================================


def _is_render_env(app_settings: Settings) -> bool:
    """Check if running in Render.com environment"""
    return bool(app_settings.render or app_settings.render_external_url or app_settings.render_service_name)


# Uncaught exception middleware - logs all unhandled exceptions and returns 500
class UncaughtExceptionMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(f"Uncaught exception: {e}\n{traceback.format_exc()}")
            return JSONResponse(
                status_code=500,
                content={"error": "Internal Server Error"}
            )


# Security headers middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses: CSP, HSTS, X-Frame-Options, X-Content-Type-Options"""

    def __init__(self, app, enable_hsts: bool = False):
        super().__init__(app)
        self.enable_hsts = enable_hsts

    async def dispatch(self, request, call_next):
        response = await call_next(request)

        # JSON-only API: nothing should be loaded or framed from responses
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"

        # Only set in production (Render environment) where HTTPS is guaranteed
        if self.enable_hsts:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"

        return response


# ============================================================================
# APP FACTORY
# ============================================================================


def create_app(app_settings: Settings = settings) -> FastAPI:
    """
    Build the application. Clients are constructed on startup, stored on
    ``app.state`` and closed again on shutdown.
    """
    app = FastAPI(title="CoHost Tasks API")

    redis_client = build_redis_client(app_settings.redis_url)

    app.add_middleware(UncaughtExceptionMiddleware)
    app.add_middleware(
        RateLimiterMiddleware,
        requests_per_minute=app_settings.rate_limit_per_minute,
        redis_client=redis_client,
    )
    app.add_middleware(SecurityHeadersMiddleware, enable_hsts=_is_render_env(app_settings))

    # CORS MUST be near the bottom
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[app_settings.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    @app.on_event("startup")
    async def start_services():
        missing = [
            name for name, value in {
                "STRIPE_SECRET_KEY": app_settings.stripe_secret_key,
                "STRIPE_WEBHOOK_SECRET": app_settings.stripe_webhook_secret,
                "STRIPE_PRICE_ID": app_settings.stripe_price_id,
                "OPENAI_API_KEY": app_settings.openai_api_key,
            }.items() if not value
        ]
        if missing:
            logger.warning(f"Startup check: Missing environment variables: {', '.join(missing)}")

        engine = build_engine(app_settings.database_url)
        try:
            await init_db(engine)
            logger.info("Database initialized successfully")
        except Exception as e:
            logger.error(f"Database initialization failed: {e}")
            raise

        app.state.engine = engine
        app.state.session_factory = build_session_factory(engine)
        app.state.text_generator = TextGenerator(app_settings.openai_api_key, app_settings.openai_model)
        app.state.payment_verifier = PaymentEventVerifier(
            app_settings.stripe_webhook_secret, app_settings.stripe_webhook_tolerance
        )
        app.state.billing_service = BillingService(
            app_settings.stripe_secret_key, app_settings.stripe_price_id, app_settings.frontend_url
        )
        app.state.identity_resolver = build_identity_resolver(
            app_settings.auth_mode, app_settings.jwt_secret_key, app_settings.default_user_id
        )

    @app.on_event("shutdown")
    async def stop_services():
        text_generator = getattr(app.state, "text_generator", None)
        if text_generator is not None:
            await text_generator.aclose()
        if redis_client is not None:
            await redis_client.aclose()
        engine = getattr(app.state, "engine", None)
        if engine is not None:
            await close_db(engine)
        logger.info("Shutdown complete")

    # ========================================================================
    # INCLUDE ROUTERS
    # ========================================================================
    app.include_router(health_router)
    app.include_router(billing_router)
    app.include_router(tasks_router)
    app.include_router(listings_router)
    app.include_router(ai_router)

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
