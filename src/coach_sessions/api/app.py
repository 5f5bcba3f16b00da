"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

from fastapi import FastAPI, Header, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from coach_sessions.api.models import (
    CompletePlannedSessionRequest,
    CreatePlannedSessionRequest,
    CreateSessionRequest,
    PlanSessionResponse,
    RescheduleSessionRequest,
    SessionIdsRequest,
    SessionResponse,
)
from coach_sessions.app_logging import configure_logging
from coach_sessions.containers import AppContainer
from coach_sessions.domain.sessions import NewPlannedSession, NewSession, SessionRecord
from coach_sessions.domain.streams import EnrichmentState


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        state_container: AppContainer = app.state.container
        try:
            await state_container.recalculation_scheduler.drain()
        except Exception:
            logger.exception("Failed to drain pending recalculations")
        await state_container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/sessions", status_code=status.HTTP_201_CREATED)
    async def create_session(
        payload: CreateSessionRequest,
        request: Request,
        x_user_id: UUID = Header(),
    ) -> dict[str, object]:
        """Record a completed session at its chronological position."""
        state_container: AppContainer = request.app.state.container
        record = state_container.session_service.create_session(
            x_user_id,
            NewSession(
                date=payload.date,
                session_type=payload.session_type,
                comments=payload.comments,
            ),
        )
        return _serialize(record)

    @app.patch("/sessions/{session_id}")
    async def reschedule_session(
        session_id: UUID,
        payload: RescheduleSessionRequest,
        request: Request,
        x_user_id: UUID = Header(),
    ) -> dict[str, object]:
        """Move a session to another day."""
        state_container: AppContainer = request.app.state.container
        record = state_container.session_service.reschedule_session(
            x_user_id, session_id, payload.date
        )
        if record is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return _serialize(record)

    @app.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_session(
        session_id: UUID,
        request: Request,
        x_user_id: UUID = Header(),
    ) -> Response:
        """Delete a session; positions are recalculated in the background."""
        state_container: AppContainer = request.app.state.container
        state_container.session_service.delete_session(x_user_id, session_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.post("/sessions/bulk-delete")
    async def bulk_delete_sessions(
        payload: SessionIdsRequest,
        request: Request,
        x_user_id: UUID = Header(),
    ) -> dict[str, int]:
        """Delete several sessions at once."""
        state_container: AppContainer = request.app.state.container
        deleted = state_container.session_service.delete_sessions(
            x_user_id, payload.ids
        )
        return {"deleted": deleted}

    @app.post("/sessions/streams/bulk")
    async def bulk_enrich_streams(
        payload: SessionIdsRequest,
        request: Request,
        x_user_id: UUID = Header(),
    ) -> dict[str, object]:
        """Fetch provider streams for a batch of sessions."""
        state_container: AppContainer = request.app.state.container
        result = await state_container.stream_enrichment_service.enrich(
            x_user_id, payload.ids
        )
        return result.to_dict()

    @app.patch("/sessions/{session_id}/streams")
    async def enrich_session_streams(
        session_id: UUID,
        request: Request,
        x_user_id: UUID = Header(),
    ) -> JSONResponse:
        """Fetch provider streams for one session."""
        state_container: AppContainer = request.app.state.container
        state = await state_container.stream_enrichment_service.enrich_session(
            x_user_id, session_id
        )
        return JSONResponse(
            {"id": str(session_id), "status": state.value},
            status_code=_ENRICHMENT_STATUS_CODES[state],
        )

    @app.post("/plans", status_code=status.HTTP_201_CREATED)
    async def create_planned_session(
        payload: CreatePlannedSessionRequest,
        request: Request,
        x_user_id: UUID = Header(),
    ) -> dict[str, object]:
        """Plan a session after everything already recorded or planned."""
        state_container: AppContainer = request.app.state.container
        plan = state_container.session_service.create_planned_session(
            x_user_id,
            NewPlannedSession(
                planned_date=payload.planned_date,
                session_type=payload.session_type,
                comments=payload.comments,
            ),
        )
        return PlanSessionResponse.from_record(plan).model_dump(
            mode="json", by_alias=True
        )

    @app.post("/plans/{plan_id}/complete")
    async def complete_planned_session(
        plan_id: UUID,
        payload: CompletePlannedSessionRequest,
        request: Request,
        x_user_id: UUID = Header(),
    ) -> dict[str, object]:
        """Record a planned session as done and renumber."""
        state_container: AppContainer = request.app.state.container
        record = state_container.session_service.complete_planned_session(
            x_user_id,
            plan_id,
            payload.date,
            session_type=payload.session_type,
            comments=payload.comments,
        )
        if record is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return _serialize(record)

    return app


_ENRICHMENT_STATUS_CODES = {
    EnrichmentState.ENRICHED: status.HTTP_200_OK,
    EnrichmentState.ALREADY_HAS_STREAMS: status.HTTP_200_OK,
    EnrichmentState.MISSING_STRAVA: status.HTTP_400_BAD_REQUEST,
    EnrichmentState.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    EnrichmentState.FAILED: status.HTTP_502_BAD_GATEWAY,
}


def _serialize(record: SessionRecord) -> dict[str, object]:
    return SessionResponse.from_record(record).model_dump(mode="json", by_alias=True)
