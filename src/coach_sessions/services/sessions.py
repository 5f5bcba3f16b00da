"""Session writes that keep positions consistent."""

from dataclasses import dataclass
from datetime import date
from typing import Protocol
from uuid import UUID

from coach_sessions.domain.sessions import (
    COMPLETED_STATUS,
    NewPlannedSession,
    NewSession,
    PlannedPosition,
    PlanSessionRecord,
    SessionPosition,
    SessionRecord,
)
from coach_sessions.services.positions import PositionService
from coach_sessions.services.recalculation import RecalculationScheduler


class SessionRepository(Protocol):
    """Persistence interface for training sessions."""

    def create_session(
        self, user_id: UUID, session: NewSession, position: SessionPosition
    ) -> SessionRecord:
        """Create a session row and return it."""

    def get_session(self, user_id: UUID, session_id: UUID) -> SessionRecord | None:
        """Return the user's session by id, if present."""

    def update_session_date(self, session_id: UUID, new_date: date) -> None:
        """Change the date of a session."""

    def delete_sessions(self, user_id: UUID, session_ids: list[UUID]) -> int:
        """Delete the user's sessions and plans among the ids; return the count."""

    def create_plan_session(
        self, user_id: UUID, plan: NewPlannedSession, position: PlannedPosition
    ) -> PlanSessionRecord:
        """Create a planned session row and return it."""

    def get_plan_session(
        self, user_id: UUID, plan_id: UUID
    ) -> PlanSessionRecord | None:
        """Return the user's planned session by id, if present."""

    def complete_plan_session(
        self,
        user_id: UUID,
        plan_id: UUID,
        session: NewSession,
        position: SessionPosition,
    ) -> SessionRecord:
        """Record the workout for a plan and mark the plan completed."""


@dataclass
class SessionService:
    """Creates, re-dates and deletes sessions."""

    repository: SessionRepository
    positions: PositionService
    scheduler: RecalculationScheduler

    def create_session(self, user_id: UUID, session: NewSession) -> SessionRecord:
        """Record a completed session at its chronological position."""
        position = self.positions.position_for(user_id, session.date)
        return self.repository.create_session(user_id, session, position)

    def reschedule_session(
        self, user_id: UUID, session_id: UUID, new_date: date
    ) -> SessionRecord | None:
        """Move a session to a new date and renumber the user's sessions."""
        existing = self.repository.get_session(user_id, session_id)
        if existing is None:
            return None
        if existing.date != new_date:
            self.repository.update_session_date(session_id, new_date)
            self.positions.recalculate(user_id)
        return self.repository.get_session(user_id, session_id)

    def create_planned_session(
        self, user_id: UUID, plan: NewPlannedSession
    ) -> PlanSessionRecord:
        """Plan a session after everything already recorded or planned."""
        position = self.positions.planned_position_for(user_id, plan.planned_date)
        return self.repository.create_plan_session(user_id, plan, position)

    def complete_planned_session(
        self,
        user_id: UUID,
        plan_id: UUID,
        completed_on: date,
        session_type: str | None = None,
        comments: str | None = None,
    ) -> SessionRecord | None:
        """Turn a planned session into a completed one and renumber.

        The workout shares the plan's id. Returns None when the plan is unknown
        or already completed.
        """
        plan = self.repository.get_plan_session(user_id, plan_id)
        if plan is None or plan.status == COMPLETED_STATUS:
            return None
        session = NewSession(
            date=completed_on,
            session_type=plan.session_type if session_type is None else session_type,
            comments=plan.comments if comments is None else comments,
        )
        position = self.positions.position_for(user_id, completed_on)
        record = self.repository.complete_plan_session(
            user_id, plan.id, session, position
        )
        self.positions.recalculate(user_id)
        return self.repository.get_session(user_id, record.id)

    def delete_session(self, user_id: UUID, session_id: UUID) -> int:
        """Delete one session and schedule renumbering."""
        return self.delete_sessions(user_id, [session_id])

    def delete_sessions(self, user_id: UUID, session_ids: list[UUID]) -> int:
        """Delete sessions and schedule renumbering in the background."""
        if not session_ids:
            return 0
        deleted = self.repository.delete_sessions(user_id, session_ids)
        self.scheduler.schedule(user_id)
        return deleted
