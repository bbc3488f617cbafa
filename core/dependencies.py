# core/dependencies.py
from datetime import datetime, timezone

from fastapi import Request

from services.eta_service import ETAService


def get_eta_service(request: Request) -> ETAService:
    """The engine is built once in create_app() and lives on app.state."""
    return request.app.state.eta_service


def clock_now(eta_service: ETAService) -> datetime:
    """Engine clock as an aware UTC datetime."""
    return datetime.fromtimestamp(eta_service.clock.now_ms() / 1000.0, tz=timezone.utc)
