"""Domain models for stream enrichment."""

from dataclasses import dataclass, field
from enum import StrEnum
from uuid import UUID


class EnrichmentState(StrEnum):
    """Terminal classification of a session in a bulk enrichment call."""

    ENRICHED = "enriched"
    ALREADY_HAS_STREAMS = "alreadyHasStreams"
    MISSING_STRAVA = "missingStrava"
    FAILED = "failed"
    NOT_FOUND = "notFound"


class FetchStatus(StrEnum):
    """Outcome reported by a stream fetcher."""

    OK = "ok"
    NO_STREAMS = "no_streams"
    ERROR = "error"


@dataclass(frozen=True)
class StreamFetchResult:
    """Result of fetching streams for one external activity."""

    status: FetchStatus
    streams: dict[str, object] | None = None


@dataclass(frozen=True)
class EnrichmentTask:
    """An eligible session queued for a network fetch."""

    session_id: UUID
    source: str
    external_id: str


@dataclass(frozen=True)
class Classification:
    """Result of a pre-fetch classifier."""

    state: EnrichmentState
    mark_streamless: bool = False


@dataclass
class EnrichmentResult:
    """Aggregate report of a bulk enrichment call."""

    requested: int
    ids: dict[EnrichmentState, list[UUID]] = field(
        default_factory=lambda: {state: [] for state in EnrichmentState}
    )

    def count(self, state: EnrichmentState) -> int:
        """Return how many sessions ended in a state."""
        return len(self.ids[state])

    def to_dict(self) -> dict[str, object]:
        """Serialize into the summary/ids report shape."""
        summary: dict[str, int] = {"requested": self.requested}
        for state in EnrichmentState:
            summary[state.value] = self.count(state)
        return {
            "summary": summary,
            "ids": {
                state.value: [str(session_id) for session_id in self.ids[state]]
                for state in EnrichmentState
            },
        }
