"""Shared test fixtures."""

from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from coach_sessions.adapters.strava_client import StravaClient
from coach_sessions.config import Settings
from coach_sessions.containers import AppContainer
from coach_sessions.domain.sessions import (
    COMPLETED_STATUS,
    PLANNED_STATUS,
    DatedSession,
    NewPlannedSession,
    NewSession,
    PlannedPosition,
    PlanSessionRecord,
    PlanSessionRow,
    PositionUpdate,
    SessionPosition,
    SessionRecord,
    StreamProjection,
)
from coach_sessions.domain.strava import StravaAccount
from coach_sessions.domain.streams import FetchStatus, StreamFetchResult
from coach_sessions.services.positions import PositionRepository, PositionService
from coach_sessions.services.recalculation import RecalculationScheduler
from coach_sessions.services.sessions import SessionRepository, SessionService
from coach_sessions.services.strava import StravaAccountRepository
from coach_sessions.services.streams import (
    BulkStreamEnrichmentService,
    StreamEnrichmentRepository,
    StreamFetcher,
)

BASE_TIME = datetime(2026, 1, 1, tzinfo=UTC)


@dataclass
class InMemorySessionRepository(SessionRepository, PositionRepository):
    """In-memory session store for tests."""

    sessions: dict[UUID, SessionRecord] = field(default_factory=dict)
    plan_links: dict[UUID, UUID] = field(default_factory=dict)
    plans: dict[UUID, dict[str, object]] = field(default_factory=dict)
    writes: list[list[PositionUpdate]] = field(default_factory=list)
    _clock: int = 0

    def _next_created_at(self) -> datetime:
        self._clock += 1
        return BASE_TIME + timedelta(seconds=self._clock)

    def add_session(
        self,
        user_id: UUID,
        day: date | None,
        sequence_number: int = 0,
        week: int | None = None,
        plan_session_id: UUID | None = None,
    ) -> SessionRecord:
        record = SessionRecord(
            id=uuid4(),
            user_id=user_id,
            date=day,
            sequence_number=sequence_number,
            week=week,
            session_type="",
            comments="",
            created_at=self._next_created_at(),
        )
        self.sessions[record.id] = record
        if plan_session_id is not None:
            self.plan_links[record.id] = plan_session_id
        return record

    def add_plan(
        self,
        user_id: UUID,
        status: str,
        planned_date: date | None = None,
        session_type: str = "",
        comments: str = "",
        sequence_number: int = 0,
        week: int | None = None,
    ) -> UUID:
        plan_id = uuid4()
        self.plans[plan_id] = {
            "user_id": user_id,
            "status": status,
            "created_at": self._next_created_at(),
            "planned_date": planned_date,
            "session_type": session_type,
            "comments": comments,
            "session_number": sequence_number,
            "week": week,
        }
        return plan_id

    def create_session(
        self, user_id: UUID, session: NewSession, position: SessionPosition
    ) -> SessionRecord:
        record = SessionRecord(
            id=uuid4(),
            user_id=user_id,
            date=session.date,
            sequence_number=position.sequence_number,
            week=position.week,
            session_type=session.session_type,
            comments=session.comments,
            created_at=self._next_created_at(),
        )
        self.sessions[record.id] = record
        return record

    def get_session(self, user_id: UUID, session_id: UUID) -> SessionRecord | None:
        record = self.sessions.get(session_id)
        if record is None or record.user_id != user_id:
            return None
        return record

    def update_session_date(self, session_id: UUID, new_date: date) -> None:
        self.sessions[session_id] = replace(self.sessions[session_id], date=new_date)

    def delete_sessions(self, user_id: UUID, session_ids: list[UUID]) -> int:
        deleted = 0
        for session_id in session_ids:
            record = self.sessions.get(session_id)
            if record is not None and record.user_id == user_id:
                del self.sessions[session_id]
                deleted += 1
            plan = self.plans.get(session_id)
            if plan is not None and plan["user_id"] == user_id:
                del self.plans[session_id]
                deleted += 1
        return deleted

    def create_plan_session(
        self, user_id: UUID, plan: NewPlannedSession, position: PlannedPosition
    ) -> PlanSessionRecord:
        plan_id = self.add_plan(
            user_id,
            PLANNED_STATUS,
            planned_date=plan.planned_date,
            session_type=plan.session_type,
            comments=plan.comments,
            sequence_number=position.sequence_number,
            week=position.week,
        )
        return self._plan_record(plan_id)

    def get_plan_session(
        self, user_id: UUID, plan_id: UUID
    ) -> PlanSessionRecord | None:
        plan = self.plans.get(plan_id)
        if plan is None or plan["user_id"] != user_id:
            return None
        return self._plan_record(plan_id)

    def complete_plan_session(
        self,
        user_id: UUID,
        plan_id: UUID,
        session: NewSession,
        position: SessionPosition,
    ) -> SessionRecord:
        record = SessionRecord(
            id=plan_id,
            user_id=user_id,
            date=session.date,
            sequence_number=position.sequence_number,
            week=position.week,
            session_type=session.session_type,
            comments=session.comments,
            created_at=self._next_created_at(),
        )
        self.sessions[plan_id] = record
        self.plan_links[plan_id] = plan_id
        self.plans[plan_id]["status"] = COMPLETED_STATUS
        self.plans[plan_id]["session_number"] = position.sequence_number
        return record

    def _plan_record(self, plan_id: UUID) -> PlanSessionRecord:
        plan = self.plans[plan_id]
        return PlanSessionRecord(
            id=plan_id,
            user_id=plan["user_id"],
            planned_date=plan["planned_date"],
            sequence_number=plan["session_number"],
            week=plan["week"],
            session_type=plan["session_type"],
            comments=plan["comments"],
            status=plan["status"],
            created_at=plan["created_at"],
        )

    def list_dated_sessions(self, user_id: UUID) -> list[DatedSession]:
        return [
            DatedSession(
                id=record.id,
                date=record.date,
                created_at=record.created_at,
                plan_session_id=self.plan_links.get(record.id),
            )
            for record in self.sessions.values()
            if record.user_id == user_id and record.date is not None
        ]

    def list_plan_sessions(self, user_id: UUID) -> list[PlanSessionRow]:
        return [
            PlanSessionRow(
                id=plan_id, status=str(plan["status"]), created_at=plan["created_at"]
            )
            for plan_id, plan in self.plans.items()
            if plan["user_id"] == user_id
        ]

    def write_positions(self, user_id: UUID, updates: list[PositionUpdate]) -> None:
        self.writes.append(list(updates))
        for update in updates:
            if update.is_plan:
                self.plans[update.session_id]["session_number"] = (
                    update.sequence_number
                )
                self.plans[update.session_id]["week"] = update.week
                continue
            self.sessions[update.session_id] = replace(
                self.sessions[update.session_id],
                sequence_number=update.sequence_number,
                week=update.week,
            )

    def ordered(self, user_id: UUID) -> list[SessionRecord]:
        return sorted(
            (r for r in self.sessions.values() if r.user_id == user_id),
            key=lambda record: record.sequence_number,
        )


@dataclass
class InMemoryStreamRepository(StreamEnrichmentRepository):
    """In-memory stream enrichment store for tests."""

    projections: dict[UUID, tuple[UUID, StreamProjection]] = field(
        default_factory=dict
    )
    persisted: dict[UUID, dict[str, object]] = field(default_factory=dict)
    marked: list[UUID] = field(default_factory=list)
    lookups: list[list[UUID]] = field(default_factory=list)
    persist_returns_none: bool = False

    def add(self, user_id: UUID, projection: StreamProjection) -> None:
        self.projections[projection.id] = (user_id, projection)

    def find_stream_projections(
        self, user_id: UUID, session_ids: list[UUID]
    ) -> list[StreamProjection]:
        self.lookups.append(list(session_ids))
        return [
            projection
            for owner, projection in self.projections.values()
            if owner == user_id and projection.id in session_ids
        ]

    def persist_stream_payload(
        self, session_id: UUID, user_id: UUID, payload: dict[str, object]
    ) -> UUID | None:
        if self.persist_returns_none:
            return None
        owner, projection = self.projections[session_id]
        self.persisted[session_id] = payload
        self.projections[session_id] = (
            owner,
            replace(projection, stream_count=len(payload)),
        )
        return session_id

    def mark_streamless(self, session_id: UUID, user_id: UUID) -> None:
        self.marked.append(session_id)
        owner, projection = self.projections[session_id]
        activities = tuple(
            replace(activity, source_status="no_streams")
            for activity in projection.external_activities
        )
        self.projections[session_id] = (
            owner,
            replace(projection, external_activities=activities),
        )


@dataclass
class FakeStreamFetcher(StreamFetcher):
    """Fake stream fetcher keyed by external id."""

    results: dict[str, StreamFetchResult | Exception] = field(default_factory=dict)
    calls: list[tuple[str, str, UUID, str]] = field(default_factory=list)

    async def fetch_streams(
        self, source: str, external_id: str, user_id: UUID, call_context: str
    ) -> StreamFetchResult:
        self.calls.append((source, external_id, user_id, call_context))
        result = self.results.get(
            external_id,
            StreamFetchResult(
                status=FetchStatus.OK,
                streams={"time": {"data": [0, 1], "original_size": 2}},
            ),
        )
        if isinstance(result, Exception):
            raise result
        return result


@dataclass
class FakeStravaClient(StravaClient):
    """Fake Strava client returning canned payloads."""

    streams: dict[str, object] = field(default_factory=dict)
    token: dict[str, object] = field(
        default_factory=lambda: {
            "access_token": "fresh-token",
            "refresh_token": "fresh-refresh",
            "expires_at": 1893456000,
        }
    )
    error: Exception | None = None
    stream_calls: list[tuple[str, int]] = field(default_factory=list)
    refresh_calls: list[str] = field(default_factory=list)

    async def get_activity_streams(
        self, access_token: str, activity_id: int
    ) -> dict[str, object]:
        self.stream_calls.append((access_token, activity_id))
        if self.error is not None:
            raise self.error
        return self.streams

    async def refresh_access_token(self, refresh_token: str) -> dict[str, object]:
        self.refresh_calls.append(refresh_token)
        return self.token


@dataclass
class InMemoryStravaAccountRepository(StravaAccountRepository):
    """In-memory Strava account store for tests."""

    accounts: dict[UUID, StravaAccount] = field(default_factory=dict)

    def get_account(self, user_id: UUID) -> StravaAccount | None:
        return self.accounts.get(user_id)

    def save_tokens(
        self,
        user_id: UUID,
        access_token: str,
        refresh_token: str | None,
        expires_at: datetime | None,
    ) -> None:
        self.accounts[user_id] = StravaAccount(
            user_id=user_id,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=expires_at,
        )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        strava_client_id="client-id",
        strava_client_secret="client-secret",
    )


@pytest.fixture
def session_repository() -> InMemorySessionRepository:
    return InMemorySessionRepository()


@pytest.fixture
def stream_repository() -> InMemoryStreamRepository:
    return InMemoryStreamRepository()


@pytest.fixture
def stream_fetcher() -> FakeStreamFetcher:
    return FakeStreamFetcher()


@pytest.fixture
def container(
    settings: Settings,
    session_repository: InMemorySessionRepository,
    stream_repository: InMemoryStreamRepository,
    stream_fetcher: FakeStreamFetcher,
) -> AppContainer:
    position_service = PositionService(session_repository)
    scheduler = RecalculationScheduler(position_service.recalculate)
    session_service = SessionService(
        repository=session_repository,
        positions=position_service,
        scheduler=scheduler,
    )
    stream_enrichment_service = BulkStreamEnrichmentService(
        repository=stream_repository,
        fetcher=stream_fetcher,
        concurrency=settings.stream_enrichment_concurrency,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        position_service=position_service,
        recalculation_scheduler=scheduler,
        session_service=session_service,
        stream_enrichment_service=stream_enrichment_service,
        close_resources=close_resources,
    )
