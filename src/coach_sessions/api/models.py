"""Request and response models for the sessions API."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field

from coach_sessions.domain.sessions import PlanSessionRecord, SessionRecord


class CreateSessionRequest(BaseModel):
    """Payload for recording a completed session."""

    date: date
    session_type: str = Field(default="", alias="sessionType")
    comments: str = ""

    model_config = {"populate_by_name": True}


class RescheduleSessionRequest(BaseModel):
    """Payload for moving a session to another day."""

    date: date


class SessionIdsRequest(BaseModel):
    """Payload carrying a batch of session ids."""

    ids: list[UUID] = Field(min_length=1)


class SessionResponse(BaseModel):
    """Serialized session with its position."""

    id: UUID
    date: date | None
    session_number: int = Field(serialization_alias="sessionNumber")
    week: int | None
    session_type: str = Field(serialization_alias="sessionType")
    comments: str
    created_at: datetime = Field(serialization_alias="createdAt")

    @classmethod
    def from_record(cls, record: SessionRecord) -> "SessionResponse":
        """Build a response from a domain record."""
        return cls(
            id=record.id,
            date=record.date,
            session_number=record.sequence_number,
            week=record.week,
            session_type=record.session_type,
            comments=record.comments,
            created_at=record.created_at,
        )


class CreatePlannedSessionRequest(BaseModel):
    """Payload for planning a session."""

    planned_date: date | None = Field(default=None, alias="plannedDate")
    session_type: str = Field(default="", alias="sessionType")
    comments: str = ""

    model_config = {"populate_by_name": True}


class CompletePlannedSessionRequest(BaseModel):
    """Payload for completing a planned session; omitted fields keep the plan's."""

    date: date
    session_type: str | None = Field(default=None, alias="sessionType")
    comments: str | None = None

    model_config = {"populate_by_name": True}


class PlanSessionResponse(BaseModel):
    """Serialized planned session."""

    id: UUID
    planned_date: date | None = Field(serialization_alias="plannedDate")
    session_number: int = Field(serialization_alias="sessionNumber")
    week: int | None
    session_type: str = Field(serialization_alias="sessionType")
    comments: str
    status: str
    created_at: datetime = Field(serialization_alias="createdAt")

    @classmethod
    def from_record(cls, record: PlanSessionRecord) -> "PlanSessionResponse":
        """Build a response from a domain record."""
        return cls(
            id=record.id,
            planned_date=record.planned_date,
            session_number=record.sequence_number,
            week=record.week,
            session_type=record.session_type,
            comments=record.comments,
            status=record.status,
            created_at=record.created_at,
        )
