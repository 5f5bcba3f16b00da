"""Domain models for training sessions."""

from dataclasses import dataclass, field
from datetime import date, datetime
from uuid import UUID

STRAVA_SOURCE = "strava"
NO_STREAMS_STATUS = "no_streams"
PLANNED_STATUS = "planned"
COMPLETED_STATUS = "completed"


@dataclass(frozen=True)
class SessionRecord:
    """Represents a persisted completed training session."""

    id: UUID
    user_id: UUID
    date: date | None
    sequence_number: int
    week: int | None
    session_type: str
    comments: str
    created_at: datetime


@dataclass(frozen=True)
class NewSession:
    """Fields supplied when recording a completed session."""

    date: date
    session_type: str = ""
    comments: str = ""


@dataclass(frozen=True)
class PlanSessionRecord:
    """Represents a persisted planned session."""

    id: UUID
    user_id: UUID
    planned_date: date | None
    sequence_number: int
    week: int | None
    session_type: str
    comments: str
    status: str
    created_at: datetime


@dataclass(frozen=True)
class NewPlannedSession:
    """Fields supplied when planning a session."""

    planned_date: date | None = None
    session_type: str = ""
    comments: str = ""


@dataclass(frozen=True)
class PlannedPosition:
    """Provisional number and week given to a new planned session."""

    sequence_number: int
    week: int | None


@dataclass(frozen=True)
class SessionPosition:
    """Sequence number and training week assigned to a session."""

    sequence_number: int
    week: int


@dataclass(frozen=True)
class DatedSession:
    """Minimal projection used for ordering a user's sessions."""

    id: UUID
    date: date
    created_at: datetime
    plan_session_id: UUID | None = None


@dataclass(frozen=True)
class PlanSessionRow:
    """Minimal projection of a planned session."""

    id: UUID
    status: str
    created_at: datetime


@dataclass(frozen=True)
class PositionUpdate:
    """A sequence/week write-back for one row."""

    session_id: UUID
    sequence_number: int
    week: int | None
    is_plan: bool = False


@dataclass(frozen=True)
class ExternalActivityLink:
    """Provider linkage stored for a session."""

    source: str
    external_id: str | None
    source_status: str | None = None
    payload: dict[str, object] | None = None


@dataclass(frozen=True)
class StreamProjection:
    """Lightweight view of a session used by stream enrichment."""

    id: UUID
    stream_count: int
    external_activities: tuple[ExternalActivityLink, ...] = field(
        default_factory=tuple
    )

    def strava_activity(self) -> ExternalActivityLink | None:
        """Return the Strava link that carries an external id, if any."""
        for activity in self.external_activities:
            if activity.source == STRAVA_SOURCE and activity.external_id:
                return activity
        return None
