"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from coach_sessions.adapters.strava_client import HttpxStravaClient
from coach_sessions.adapters.supabase_session_repository import (
    SupabaseSessionRepository,
)
from coach_sessions.adapters.supabase_strava_account_repository import (
    SupabaseStravaAccountRepository,
)
from coach_sessions.adapters.supabase_stream_repository import (
    SupabaseStreamRepository,
)
from coach_sessions.config import Settings, parse_concurrency
from coach_sessions.services.positions import PositionService
from coach_sessions.services.recalculation import RecalculationScheduler
from coach_sessions.services.sessions import SessionService
from coach_sessions.services.strava import StravaStreamFetcher
from coach_sessions.services.streams import BulkStreamEnrichmentService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    position_service: PositionService
    recalculation_scheduler: RecalculationScheduler
    session_service: SessionService
    stream_enrichment_service: BulkStreamEnrichmentService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    session_repository = SupabaseSessionRepository(supabase_client)
    stream_repository = SupabaseStreamRepository(supabase_client)
    account_repository = SupabaseStravaAccountRepository(supabase_client)

    position_service = PositionService(session_repository)
    scheduler = RecalculationScheduler(position_service.recalculate)
    session_service = SessionService(
        repository=session_repository,
        positions=position_service,
        scheduler=scheduler,
    )
    strava_client = HttpxStravaClient.create(
        client_id=resolved_settings.strava_client_id,
        client_secret=resolved_settings.strava_client_secret,
        base_url=resolved_settings.strava_api_base_url,
        token_url=resolved_settings.strava_token_url,
    )
    stream_enrichment_service = BulkStreamEnrichmentService(
        repository=stream_repository,
        fetcher=StravaStreamFetcher(client=strava_client, accounts=account_repository),
        concurrency=parse_concurrency(resolved_settings.stream_enrichment_concurrency),
    )

    async def close_resources() -> None:
        await strava_client.close()

    return AppContainer(
        settings=resolved_settings,
        position_service=position_service,
        recalculation_scheduler=scheduler,
        session_service=session_service,
        stream_enrichment_service=stream_enrichment_service,
        close_resources=close_resources,
    )
