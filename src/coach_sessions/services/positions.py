"""Sequence number and training week assignment."""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from typing import Protocol
from uuid import UUID

from coach_sessions.domain.sessions import (
    COMPLETED_STATUS,
    DatedSession,
    PlannedPosition,
    PlanSessionRow,
    PositionUpdate,
    SessionPosition,
)
from coach_sessions.domain.weeks import WeekKey, week_key

_logger = logging.getLogger(__name__)


class PositionRepository(Protocol):
    """Persistence interface for session ordering."""

    def list_dated_sessions(self, user_id: UUID) -> list[DatedSession]:
        """Return the user's sessions that have a date."""

    def list_plan_sessions(self, user_id: UUID) -> list[PlanSessionRow]:
        """Return the user's planned sessions ordered by creation."""

    def write_positions(self, user_id: UUID, updates: list[PositionUpdate]) -> None:
        """Persist sequence numbers and weeks in one batch."""


def compute_position(
    existing: Iterable[DatedSession], candidate_date: date
) -> SessionPosition:
    """Return the position a new session dated `candidate_date` takes.

    The candidate is placed after every session on the same day, so same-day
    inserts keep their insertion order.
    """
    candidate_key = week_key(candidate_date)
    keys: set[WeekKey] = {candidate_key}
    sequence_number = 1
    for session in existing:
        keys.add(week_key(session.date))
        if session.date <= candidate_date:
            sequence_number += 1
    week = sorted(keys).index(candidate_key) + 1
    return SessionPosition(sequence_number=sequence_number, week=week)


def planned_position(
    existing: Sequence[DatedSession],
    plans: Iterable[PlanSessionRow],
    planned_date: date | None,
) -> PlannedPosition:
    """Return the provisional position of a new planned session.

    Pending plans are numbered after every dated session, so the new plan
    takes the slot after the existing pending ones. Its week counts whole
    weeks from the user's first session; undated plans have no week.
    """
    pending = sum(1 for plan in plans if plan.status != COMPLETED_STATUS)
    sequence_number = len(existing) + pending + 1
    if planned_date is None:
        return PlannedPosition(sequence_number=sequence_number, week=None)
    if not existing:
        return PlannedPosition(sequence_number=sequence_number, week=1)
    first = min(session.date for session in existing)
    week = abs((planned_date - first).days) // 7 + 1
    return PlannedPosition(sequence_number=sequence_number, week=week)


def rank_sessions(
    sessions: Iterable[DatedSession],
    plans: Iterable[PlanSessionRow] = (),
) -> list[PositionUpdate]:
    """Derive every sequence number and week from scratch.

    Dated sessions are numbered 1..N by (date, created_at). Completed plan
    sessions follow their linked session's number; other plan sessions are
    numbered after the dated ones with no week. Completed plan sessions with
    no linked session are left untouched.
    """
    ordered = sorted(sessions, key=lambda session: (session.date, session.created_at))
    week_ranks = {
        key: rank
        for rank, key in enumerate(
            sorted({week_key(session.date) for session in ordered}), start=1
        )
    }

    updates: list[PositionUpdate] = []
    linked: dict[UUID, PositionUpdate] = {}
    for sequence_number, session in enumerate(ordered, start=1):
        update = PositionUpdate(
            session_id=session.id,
            sequence_number=sequence_number,
            week=week_ranks[week_key(session.date)],
        )
        updates.append(update)
        if session.plan_session_id is not None:
            linked[session.plan_session_id] = update

    next_number = len(ordered) + 1
    for plan in sorted(plans, key=lambda plan: plan.created_at):
        if plan.status == COMPLETED_STATUS:
            workout = linked.get(plan.id)
            if workout is not None:
                updates.append(
                    PositionUpdate(
                        session_id=plan.id,
                        sequence_number=workout.sequence_number,
                        week=workout.week,
                        is_plan=True,
                    )
                )
            continue
        updates.append(
            PositionUpdate(
                session_id=plan.id,
                sequence_number=next_number,
                week=None,
                is_plan=True,
            )
        )
        next_number += 1
    return updates


@dataclass
class PositionService:
    """Reads a user's sessions and assigns positions."""

    repository: PositionRepository

    def position_for(self, user_id: UUID, session_date: date) -> SessionPosition:
        """Compute the position of a session about to be inserted."""
        existing = self.repository.list_dated_sessions(user_id)
        return compute_position(existing, session_date)

    def planned_position_for(
        self, user_id: UUID, planned_date: date | None
    ) -> PlannedPosition:
        """Compute the provisional position of a plan about to be inserted."""
        existing = self.repository.list_dated_sessions(user_id)
        plans = self.repository.list_plan_sessions(user_id)
        return planned_position(existing, plans, planned_date)

    def recalculate(self, user_id: UUID) -> int:
        """Rewrite every position for a user and return the number of rows."""
        sessions = self.repository.list_dated_sessions(user_id)
        plans = self.repository.list_plan_sessions(user_id)
        updates = rank_sessions(sessions, plans)
        if updates:
            self.repository.write_positions(user_id, updates)
        _logger.info(
            "Recalculated session positions: user_id=%s rows=%s", user_id, len(updates)
        )
        return len(updates)
