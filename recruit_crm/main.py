"""FastAPI application entry point."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text

from recruit_crm.core.config import settings
from recruit_crm.core.rate_limit import limiter
from recruit_crm.db.session import engine
from recruit_crm.routers import candidates, imports

logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _init_error_tracking() -> None:
    """Report unhandled errors to Sentry outside dev when a DSN is configured."""
    if not settings.SENTRY_DSN or settings.ENV == "dev":
        return

    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        release=settings.VERSION,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,
        # CV contents and contact fields stay out of error reports
        send_default_pii=False,
    )
    logger.info("Error tracking enabled for env=%s", settings.ENV)


def create_app() -> FastAPI:
    _configure_logging()
    _init_error_tracking()

    is_dev = settings.ENV == "dev"
    application = FastAPI(
        title="Recruit CRM API",
        description="CV import, duplicate detection and candidate merge",
        version=settings.VERSION,
        docs_url="/docs" if is_dev else None,
        redoc_url="/redoc" if is_dev else None,
    )

    application.state.limiter = limiter
    application.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Session cookies need credentialed CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "X-Requested-With"],
    )

    application.include_router(imports.router)
    application.include_router(candidates.router)
    application.add_api_route("/health", health, methods=["GET"])
    return application


def health():
    """Liveness plus a database round trip."""
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}


app = create_app()
