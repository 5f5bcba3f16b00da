"""Bulk enrichment of sessions with provider stream data."""

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from coach_sessions.domain.sessions import NO_STREAMS_STATUS, StreamProjection
from coach_sessions.domain.streams import (
    Classification,
    EnrichmentResult,
    EnrichmentState,
    EnrichmentTask,
    FetchStatus,
    StreamFetchResult,
)
from coach_sessions.services.stream_eligibility import is_likely_streamless

CALL_CONTEXT = "bulk-enrich-streams"
SINGLE_CALL_CONTEXT = "enrich-session-streams"

_logger = logging.getLogger(__name__)


class StreamEnrichmentRepository(Protocol):
    """Persistence interface for stream enrichment."""

    def find_stream_projections(
        self, user_id: UUID, session_ids: list[UUID]
    ) -> list[StreamProjection]:
        """Return projections for the user's sessions among the given ids."""

    def persist_stream_payload(
        self, session_id: UUID, user_id: UUID, payload: dict[str, object]
    ) -> UUID | None:
        """Store streams for a session and return its id, or None."""

    def mark_streamless(self, session_id: UUID, user_id: UUID) -> None:
        """Record that the provider has no streams for a session."""


class StreamFetcher(Protocol):
    """Interface for fetching streams from an external provider."""

    async def fetch_streams(
        self, source: str, external_id: str, user_id: UUID, call_context: str
    ) -> StreamFetchResult:
        """Fetch streams for an external activity."""


Classifier = Callable[[StreamProjection], Classification | None]


def _has_stored_streams(session: StreamProjection) -> Classification | None:
    if session.stream_count > 0:
        return Classification(EnrichmentState.ALREADY_HAS_STREAMS)
    return None


def _lacks_strava_link(session: StreamProjection) -> Classification | None:
    if session.strava_activity() is None:
        return Classification(EnrichmentState.MISSING_STRAVA)
    return None


def _marked_streamless(session: StreamProjection) -> Classification | None:
    activity = session.strava_activity()
    if activity is not None and activity.source_status == NO_STREAMS_STATUS:
        return Classification(EnrichmentState.ALREADY_HAS_STREAMS)
    return None


def _payload_looks_streamless(session: StreamProjection) -> Classification | None:
    activity = session.strava_activity()
    if activity is not None and is_likely_streamless(activity.payload):
        return Classification(
            EnrichmentState.ALREADY_HAS_STREAMS, mark_streamless=True
        )
    return None


CLASSIFIERS: tuple[Classifier, ...] = (
    _has_stored_streams,
    _lacks_strava_link,
    _marked_streamless,
    _payload_looks_streamless,
)


def classify(
    session: StreamProjection, classifiers: Iterable[Classifier] = CLASSIFIERS
) -> Classification | None:
    """Return the first terminal classification, or None when eligible."""
    for classifier in classifiers:
        result = classifier(session)
        if result is not None:
            return result
    return None


def unique_ids(session_ids: Iterable[UUID]) -> list[UUID]:
    """Drop duplicate ids, keeping the first occurrence order."""
    return list(dict.fromkeys(session_id for session_id in session_ids if session_id))


@dataclass
class BulkStreamEnrichmentService:
    """Classifies sessions and fetches streams for the eligible ones."""

    repository: StreamEnrichmentRepository
    fetcher: StreamFetcher
    concurrency: int = 2

    async def enrich(
        self, user_id: UUID, session_ids: Iterable[UUID]
    ) -> EnrichmentResult:
        """Enrich the given sessions and report a state for each id."""
        requested = unique_ids(session_ids)
        if not requested:
            return EnrichmentResult(requested=0)

        sessions = self.repository.find_stream_projections(user_id, requested)
        states, tasks = self._triage(user_id, sessions)

        semaphore = asyncio.Semaphore(max(1, self.concurrency))

        async def run(task: EnrichmentTask) -> None:
            async with semaphore:
                states[task.session_id] = await self._enrich_one(
                    task, user_id, CALL_CONTEXT
                )

        await asyncio.gather(*(run(task) for task in tasks))

        result = EnrichmentResult(requested=len(requested))
        for session_id in requested:
            state = states.get(session_id, EnrichmentState.NOT_FOUND)
            result.ids[state].append(session_id)
        _logger.info(
            "Bulk stream enrichment: user_id=%s requested=%s enriched=%s failed=%s",
            user_id,
            result.requested,
            result.count(EnrichmentState.ENRICHED),
            result.count(EnrichmentState.FAILED),
        )
        return result

    async def enrich_session(self, user_id: UUID, session_id: UUID) -> EnrichmentState:
        """Enrich one session through the same classification and fetch steps."""
        sessions = self.repository.find_stream_projections(user_id, [session_id])
        states, tasks = self._triage(user_id, sessions)
        for task in tasks:
            states[task.session_id] = await self._enrich_one(
                task, user_id, SINGLE_CALL_CONTEXT
            )
        state = states.get(session_id, EnrichmentState.NOT_FOUND)
        _logger.info(
            "Session stream enrichment: user_id=%s session_id=%s state=%s",
            user_id,
            session_id,
            state,
        )
        return state

    def _triage(
        self, user_id: UUID, sessions: Iterable[StreamProjection]
    ) -> tuple[dict[UUID, EnrichmentState], list[EnrichmentTask]]:
        """Settle every session that needs no fetch; queue the rest."""
        states: dict[UUID, EnrichmentState] = {}
        tasks: list[EnrichmentTask] = []
        for session in sessions:
            classification = classify(session)
            if classification is None:
                activity = session.strava_activity()
                if activity is None or activity.external_id is None:
                    states[session.id] = EnrichmentState.MISSING_STRAVA
                    continue
                tasks.append(
                    EnrichmentTask(
                        session_id=session.id,
                        source=activity.source,
                        external_id=activity.external_id,
                    )
                )
                continue
            if classification.mark_streamless:
                self._mark_streamless(session.id, user_id)
            states[session.id] = classification.state
        return states, tasks

    async def _enrich_one(
        self, task: EnrichmentTask, user_id: UUID, call_context: str
    ) -> EnrichmentState:
        try:
            fetched = await self.fetcher.fetch_streams(
                task.source, task.external_id, user_id, call_context
            )
            if fetched.status == FetchStatus.NO_STREAMS:
                self.repository.mark_streamless(task.session_id, user_id)
                return EnrichmentState.ALREADY_HAS_STREAMS
            if fetched.status != FetchStatus.OK or not fetched.streams:
                return EnrichmentState.FAILED
            updated_id = self.repository.persist_stream_payload(
                task.session_id, user_id, fetched.streams
            )
        except Exception as exc:
            _logger.warning(
                "Failed to enrich session streams: session_id=%s error=%s",
                task.session_id,
                exc,
            )
            return EnrichmentState.FAILED
        if updated_id is None:
            return EnrichmentState.FAILED
        return EnrichmentState.ENRICHED

    def _mark_streamless(self, session_id: UUID, user_id: UUID) -> None:
        try:
            self.repository.mark_streamless(session_id, user_id)
        except Exception as exc:
            _logger.warning(
                "Failed to mark session streamless: session_id=%s error=%s",
                session_id,
                exc,
            )
