"""Supabase-backed session repository."""

from dataclasses import dataclass
from datetime import UTC, date, datetime
from uuid import UUID

from supabase import Client

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
)
from coach_sessions.services.positions import PositionRepository
from coach_sessions.services.sessions import SessionRepository

_SESSION_COLUMNS = (
    "id, user_id, date, session_number, week, session_type, comments, created_at"
)
_PLAN_COLUMNS = (
    "id, user_id, planned_date, session_number, week, session_type, comments, "
    "status, created_at"
)


@dataclass
class SupabaseSessionRepository(SessionRepository, PositionRepository):
    """Supabase implementation for workouts and plan sessions."""

    client: Client

    def create_session(
        self, user_id: UUID, session: NewSession, position: SessionPosition
    ) -> SessionRecord:
        """Create a workout row and return it."""
        response = (
            self.client.table("workouts")
            .insert(
                {
                    "user_id": str(user_id),
                    "date": session.date.isoformat(),
                    "status": COMPLETED_STATUS,
                    "session_number": position.sequence_number,
                    "week": position.week,
                    "session_type": session.session_type,
                    "comments": session.comments,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create session")
        return _parse_session(response.data[0])

    def get_session(self, user_id: UUID, session_id: UUID) -> SessionRecord | None:
        """Return a workout by id, scoped to the user."""
        response = (
            self.client.table("workouts")
            .select(_SESSION_COLUMNS)
            .eq("user_id", str(user_id))
            .eq("id", str(session_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_session(response.data[0])

    def update_session_date(self, session_id: UUID, new_date: date) -> None:
        """Update the date of a workout."""
        self.client.table("workouts").update(
            {
                "date": new_date.isoformat(),
                "updated_at": datetime.now(tz=UTC).isoformat(),
            }
        ).eq("id", str(session_id)).execute()

    def delete_sessions(self, user_id: UUID, session_ids: list[UUID]) -> int:
        """Delete workouts and plan sessions among the ids."""
        raw_ids = [str(session_id) for session_id in session_ids]
        deleted = 0
        for table in ("workouts", "plan_sessions"):
            response = (
                self.client.table(table)
                .delete()
                .eq("user_id", str(user_id))
                .in_("id", raw_ids)
                .execute()
            )
            deleted += len(response.data or [])
        return deleted

    def create_plan_session(
        self, user_id: UUID, plan: NewPlannedSession, position: PlannedPosition
    ) -> PlanSessionRecord:
        """Create a plan_sessions row and return it."""
        response = (
            self.client.table("plan_sessions")
            .insert(
                {
                    "user_id": str(user_id),
                    "planned_date": (
                        plan.planned_date.isoformat() if plan.planned_date else None
                    ),
                    "status": PLANNED_STATUS,
                    "session_number": position.sequence_number,
                    "week": position.week,
                    "session_type": plan.session_type,
                    "comments": plan.comments,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create planned session")
        return _parse_plan(response.data[0])

    def get_plan_session(
        self, user_id: UUID, plan_id: UUID
    ) -> PlanSessionRecord | None:
        """Return a plan session by id, scoped to the user."""
        response = (
            self.client.table("plan_sessions")
            .select(_PLAN_COLUMNS)
            .eq("user_id", str(user_id))
            .eq("id", str(plan_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_plan(response.data[0])

    def complete_plan_session(
        self,
        user_id: UUID,
        plan_id: UUID,
        session: NewSession,
        position: SessionPosition,
    ) -> SessionRecord:
        """Insert the plan's workout under the plan id and close the plan."""
        response = (
            self.client.table("workouts")
            .insert(
                {
                    "id": str(plan_id),
                    "user_id": str(user_id),
                    "plan_session_id": str(plan_id),
                    "date": session.date.isoformat(),
                    "status": COMPLETED_STATUS,
                    "session_number": position.sequence_number,
                    "week": position.week,
                    "session_type": session.session_type,
                    "comments": session.comments,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to complete planned session")
        self.client.table("plan_sessions").update(
            {
                "status": COMPLETED_STATUS,
                "session_number": position.sequence_number,
            }
        ).eq("id", str(plan_id)).eq("user_id", str(user_id)).execute()
        return _parse_session(response.data[0])

    def list_dated_sessions(self, user_id: UUID) -> list[DatedSession]:
        """Return the user's dated workouts in chronological order."""
        response = (
            self.client.table("workouts")
            .select("id, date, created_at, plan_session_id")
            .eq("user_id", str(user_id))
            .order("date", desc=False)
            .order("created_at", desc=False)
            .execute()
        )
        return [
            DatedSession(
                id=UUID(row["id"]),
                date=_parse_date(row["date"]),
                created_at=_parse_timestamp(row["created_at"]),
                plan_session_id=(
                    UUID(row["plan_session_id"]) if row.get("plan_session_id") else None
                ),
            )
            for row in response.data or []
            if row.get("date")
        ]

    def list_plan_sessions(self, user_id: UUID) -> list[PlanSessionRow]:
        """Return the user's plan sessions ordered by creation."""
        response = (
            self.client.table("plan_sessions")
            .select("id, status, created_at")
            .eq("user_id", str(user_id))
            .order("created_at", desc=False)
            .execute()
        )
        return [
            PlanSessionRow(
                id=UUID(row["id"]),
                status=str(row.get("status", "")),
                created_at=_parse_timestamp(row["created_at"]),
            )
            for row in response.data or []
        ]

    def write_positions(self, user_id: UUID, updates: list[PositionUpdate]) -> None:
        """Write sequence numbers and weeks row by row."""
        for update in updates:
            table = "plan_sessions" if update.is_plan else "workouts"
            self.client.table(table).update(
                {"session_number": update.sequence_number, "week": update.week}
            ).eq("id", str(update.session_id)).eq("user_id", str(user_id)).execute()


def _parse_date(value: str) -> date:
    return datetime.fromisoformat(value).date()


def _parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value)


def _parse_session(row: dict[str, object]) -> SessionRecord:
    raw_date = row.get("date")
    return SessionRecord(
        id=UUID(str(row["id"])),
        user_id=UUID(str(row["user_id"])),
        date=_parse_date(str(raw_date)) if raw_date else None,
        sequence_number=int(row.get("session_number") or 0),
        week=int(row["week"]) if row.get("week") is not None else None,
        session_type=str(row.get("session_type") or ""),
        comments=str(row.get("comments") or ""),
        created_at=_parse_timestamp(str(row["created_at"])),
    )


def _parse_plan(row: dict[str, object]) -> PlanSessionRecord:
    planned_date = row.get("planned_date")
    return PlanSessionRecord(
        id=UUID(str(row["id"])),
        user_id=UUID(str(row["user_id"])),
        planned_date=_parse_date(str(planned_date)) if planned_date else None,
        sequence_number=int(row.get("session_number") or 0),
        week=int(row["week"]) if row.get("week") is not None else None,
        session_type=str(row.get("session_type") or ""),
        comments=str(row.get("comments") or ""),
        status=str(row.get("status") or PLANNED_STATUS),
        created_at=_parse_timestamp(str(row["created_at"])),
    )
