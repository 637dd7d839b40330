"""FastAPI application — entry point for the study-session booking service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from quiet_hours.config import Settings, get_settings
from quiet_hours.container import Services, build_services
from quiet_hours.deps import get_current_user, get_services, require_cron_secret
from quiet_hours.domain.models import (
    ScanSummary,
    SessionRequest,
    SessionStatus,
    StudySessionView,
    UpcomingReport,
)
from quiet_hours.errors import QuietHoursError, SessionConflictError, UpstreamServiceError
from quiet_hours.logging_config import configure_logging
from quiet_hours.services import bookings
from quiet_hours.services.reminders import dispatch_reminders, list_upcoming

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Routes ────────────────────────────────────────────────────────────


@router.get("/health")
def health(services: Services = Depends(get_services)) -> dict:
    """Ping the store and report how many sessions it holds."""
    services.store.ping()
    return {
        "status": "healthy",
        "service": services.settings.APP_NAME,
        "document_count": services.store.count(),
    }


@router.get("/sessions", response_model=list[StudySessionView])
def list_study_sessions(
    status: SessionStatus | None = None,
    owner_id: str = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> list[StudySessionView]:
    """Return the caller's sessions, earliest first, optionally by derived status."""
    now = services.now()
    views = [
        StudySessionView.from_session(s, now)
        for s in bookings.list_sessions(services.store, owner_id)
    ]
    if status is not None:
        views = [v for v in views if v.status == status]
    return views


@router.post("/sessions", response_model=StudySessionView, status_code=201)
def create_study_session(
    payload: SessionRequest,
    owner_id: str = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> StudySessionView:
    now = services.now()
    session = bookings.create_session(services.store, owner_id, payload, now)
    return StudySessionView.from_session(session, now)


@router.get("/sessions/{session_id}", response_model=StudySessionView)
def get_study_session(
    session_id: str,
    owner_id: str = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> StudySessionView:
    session = bookings.get_session(services.store, owner_id, session_id)
    return StudySessionView.from_session(session, services.now())


@router.put("/sessions/{session_id}", response_model=StudySessionView)
def update_study_session(
    session_id: str,
    payload: SessionRequest,
    owner_id: str = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> StudySessionView:
    now = services.now()
    session = bookings.update_session(services.store, owner_id, session_id, payload, now)
    return StudySessionView.from_session(session, now)


@router.delete("/sessions/{session_id}")
def delete_study_session(
    session_id: str,
    owner_id: str = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> dict:
    bookings.delete_session(services.store, owner_id, session_id)
    return {"status": "deleted"}


@router.post(
    "/cron/send-reminders",
    response_model=ScanSummary,
    dependencies=[Depends(require_cron_secret)],
)
def send_reminders(services: Services = Depends(get_services)) -> ScanSummary:
    """Send reminders for sessions entering the due window and flag them."""
    summary = dispatch_reminders(
        services.store,
        services.identity,
        services.sender,
        services.now(),
        lead=services.reminder_lead,
        width=services.reminder_window,
    )
    logger.info("Reminder scan finished: %s", summary.model_dump(mode="json"))
    return summary


@router.get(
    "/cron/send-reminders",
    response_model=UpcomingReport,
    dependencies=[Depends(require_cron_secret)],
)
def upcoming_reminders(services: Services = Depends(get_services)) -> UpcomingReport:
    """Inspect upcoming sessions without changing anything."""
    return list_upcoming(
        services.store,
        services.now(),
        lookahead=services.upcoming_lookahead,
        limit=services.settings.UPCOMING_LIMIT,
        lead=services.reminder_lead,
    )


# ── Error handling ────────────────────────────────────────────────────


async def handle_service_error(request: Request, exc: QuietHoursError) -> JSONResponse:
    content: dict = {"detail": exc.message}
    if isinstance(exc, SessionConflictError):
        content["conflicting_session_ids"] = exc.conflicting_ids
    if isinstance(exc, UpstreamServiceError):
        logger.error("Upstream failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content=content)


# ── Application factory ───────────────────────────────────────────────


def create_app(services: Services | None = None, settings: Settings | None = None) -> FastAPI:
    """Build the application.

    With ``services`` given the handles are used as-is and left open; otherwise
    production handles are opened at startup and closed at shutdown.
    """
    settings = settings or (services.settings if services else get_settings())
    configure_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = getattr(app.state, "services", None) is None
        if owned:
            app.state.services = build_services(settings)
        logger.info("🚀 %s started", settings.APP_NAME)
        yield
        if owned:
            app.state.services.close()
        logger.info("%s shutdown complete", settings.APP_NAME)

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    if services is not None:
        app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(QuietHoursError, handle_service_error)
    app.include_router(router)
    return app


app = create_app()
