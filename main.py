"""
Main FastAPI application (entrypoint).

Responsibilities:
- Build the ETA engine once, with its travel-time provider, broadcast sink,
  clock and metrics injected, and keep it on app.state
- Wire API routers (members / events)
- Register centralized exception handlers
- Provide middleware: request-id logging, simple rate limiting
- Add health / metrics endpoints

Run:
- uvicorn main:app --host 0.0.0.0 --port 8000
"""
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from api import routes_event, routes_member
from config.eta import ETAConfig
from config.settings import Settings, settings as default_settings
from core.exception_handlers import register_exception_handlers
from core.logging import configure_logging, request_logging_middleware
from core.rate_limiter import RateLimiterMiddleware
from core.response import ok
from services.broadcast_service import build_broadcast_sink
from services.eta_service import ETAService
from services.travel_time_provider import GoogleDirectionsProvider

logger = logging.getLogger(__name__)


def build_eta_service(settings: Settings) -> ETAService:
    provider = GoogleDirectionsProvider(
        api_key=settings.GOOGLE_MAPS_SERVER_KEY,
        base_url=settings.DIRECTIONS_API_URL,
        language=settings.DIRECTIONS_LANGUAGE,
        timeout=settings.PROVIDER_TIMEOUT_SEC,
    )
    if not settings.GOOGLE_MAPS_SERVER_KEY:
        logger.warning("GOOGLE_MAPS_SERVER_KEY not configured; every ETA query will fail over to cache")
    return ETAService(
        provider=provider,
        broadcaster=build_broadcast_sink(settings),
        config=ETAConfig.from_settings(settings),
    )


def create_app(settings: Optional[Settings] = None, eta_service: Optional[ETAService] = None) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(title=settings.API_TITLE, version=settings.API_VERSION)
    app.state.eta_service = eta_service or build_eta_service(settings)

    # CORS - adjust origins for production
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(routes_member.router, prefix="/members", tags=["members"])
    app.include_router(routes_event.router, prefix="/events", tags=["events"])

    register_exception_handlers(app)

    # Add request logging middleware (adds X-Request-ID header and logs)
    app.middleware("http")(request_logging_middleware)

    app.add_middleware(RateLimiterMiddleware, calls=settings.RATE_LIMIT_CALLS, per_seconds=settings.RATE_LIMIT_PERIOD)

    @app.get("/health")
    async def health():
        """Simple health endpoint used by load balancers and orchestrators."""
        return ok({"status": "ok"})

    @app.get("/metrics/eta")
    async def eta_metrics(request: Request):
        """Provider query / failure / cache-hit / broadcast counters."""
        return ok(request.app.state.eta_service.metrics.get_stats())

    @app.on_event("shutdown")
    async def on_shutdown():
        """Flush pending broadcasts and close provider / broker connections."""
        await app.state.eta_service.aclose()

    return app


app = create_app()

if __name__ == "__main__":
    # Run with: python main.py for local dev. For production use uvicorn/gunicorn with one worker:
    # ETA state is process-local.
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
