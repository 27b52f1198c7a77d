import logging
import os
import time
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.middleware.cors import CORSMiddleware

# Load env from founderhq/.env
package_dir = os.path.dirname(os.path.abspath(__file__))
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv(dotenv_path=os.path.join(package_dir, ".env"))

from founderhq.core.config import settings, validate_config
from founderhq.core.database import create_all_tables, get_session_factory
from founderhq.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    unhandled_exception_handler,
)
from founderhq.core.logging import configure_logging
from founderhq.core.middleware.request_id import RequestIdMiddleware
from founderhq.api import billing, entitlements, health, ideas, radar, workspace
from founderhq.features.ai.client import AIClient
from founderhq.features.subscriptions.cache import PlanCache
from founderhq.features.subscriptions.service import SubscriptionResolver


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("founderhq")
    logger.info("Starting FounderHQ backend...")
    app.state.startup_time = time.time()
    try:
        yield
    finally:
        logging.getLogger("founderhq").info("Stopping FounderHQ backend...")


def create_app(
    resolver: Optional[SubscriptionResolver] = None,
    ai_client: Optional[AIClient] = None,
    create_tables: bool = False,
) -> FastAPI:
    """Build the API app. Tests pass their own resolver and AI client."""
    configure_logging(settings.ENV)
    validate_config(strict=getattr(settings, "CONFIG_STRICT", False))

    if create_tables:
        create_all_tables()

    app = FastAPI(title="FounderHQ - Backend", lifespan=lifespan)

    app.state.subscription_resolver = resolver or SubscriptionResolver(
        get_session_factory(),
        PlanCache(ttl_seconds=settings.PLAN_CACHE_TTL_SECONDS),
    )
    app.state.ai_client = ai_client or AIClient()

    # Middlewares
    app.add_middleware(RequestIdMiddleware)

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.CORS_ALLOWED_ORIGINS.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.root_router, tags=["health"])
    app.include_router(entitlements.router, tags=["entitlements"])
    app.include_router(ideas.router, tags=["ideas"])
    app.include_router(workspace.router, tags=["workspace"])
    app.include_router(radar.router, tags=["radar"])
    app.include_router(billing.router, prefix="/api", tags=["billing"])

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app(create_tables=True), host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
