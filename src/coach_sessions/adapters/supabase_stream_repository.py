"""Supabase repository for session streams."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from coach_sessions.domain.sessions import (
    NO_STREAMS_STATUS,
    STRAVA_SOURCE,
    ExternalActivityLink,
    StreamProjection,
)
from coach_sessions.services.streams import StreamEnrichmentRepository

_PROJECTION_COLUMNS = (
    "id, workout_streams(count), "
    "external_activities(source, external_id, source_status, "
    "external_payloads(payload))"
)


@dataclass
class SupabaseStreamRepository(StreamEnrichmentRepository):
    """Supabase implementation for stream enrichment."""

    client: Client

    def find_stream_projections(
        self, user_id: UUID, session_ids: list[UUID]
    ) -> list[StreamProjection]:
        """Return stream projections for the user's workouts among the ids."""
        response = (
            self.client.table("workouts")
            .select(_PROJECTION_COLUMNS)
            .eq("user_id", str(user_id))
            .in_("id", [str(session_id) for session_id in session_ids])
            .execute()
        )
        return [_parse_projection(row) for row in response.data or []]

    def persist_stream_payload(
        self, session_id: UUID, user_id: UUID, payload: dict[str, object]
    ) -> UUID | None:
        """Replace the stored streams of a workout."""
        if not self._owns(session_id, user_id):
            return None
        self.client.table("workout_streams").delete().eq(
            "workout_id", str(session_id)
        ).execute()

        streams = {
            stream_type: value
            for stream_type, value in payload.items()
            if isinstance(value, dict)
        }
        if not streams:
            return session_id
        response = (
            self.client.table("workout_streams")
            .insert(
                [
                    {
                        "workout_id": str(session_id),
                        "stream_type": stream_type,
                        "resolution": _text(value.get("resolution")),
                        "series_type": _text(value.get("series_type")),
                        "original_size": _number(value.get("original_size")),
                    }
                    for stream_type, value in streams.items()
                ]
            )
            .execute()
        )
        chunks = [
            {
                "workout_stream_id": row["id"],
                "chunk_index": 0,
                "data": streams[row["stream_type"]],
            }
            for row in response.data or []
            if row.get("stream_type") in streams
        ]
        if chunks:
            self.client.table("workout_stream_chunks").insert(chunks).execute()
        return session_id

    def mark_streamless(self, session_id: UUID, user_id: UUID) -> None:
        """Set the no-streams status on the workout's Strava link."""
        if not self._owns(session_id, user_id):
            return
        self.client.table("external_activities").update(
            {"source_status": NO_STREAMS_STATUS}
        ).eq("workout_id", str(session_id)).eq("source", STRAVA_SOURCE).execute()

    def _owns(self, session_id: UUID, user_id: UUID) -> bool:
        response = (
            self.client.table("workouts")
            .select("id")
            .eq("user_id", str(user_id))
            .eq("id", str(session_id))
            .limit(1)
            .execute()
        )
        return bool(response.data)


def _parse_projection(row: dict[str, object]) -> StreamProjection:
    activities = tuple(
        ExternalActivityLink(
            source=str(activity.get("source", "")),
            external_id=(
                str(activity["external_id"]) if activity.get("external_id") else None
            ),
            source_status=activity.get("source_status"),
            payload=_payload(activity.get("external_payloads")),
        )
        for activity in row.get("external_activities") or []
        if isinstance(activity, dict)
    )
    return StreamProjection(
        id=UUID(str(row["id"])),
        stream_count=_stream_count(row.get("workout_streams")),
        external_activities=activities,
    )


def _stream_count(value: object) -> int:
    """Read an embedded PostgREST count, e.g. [{"count": 3}]."""
    if isinstance(value, list) and value and isinstance(value[0], dict):
        return int(value[0].get("count", 0))
    if isinstance(value, dict):
        return int(value.get("count", 0))
    return 0


def _payload(value: object) -> dict[str, object] | None:
    if isinstance(value, list):
        value = value[0] if value else None
    if isinstance(value, dict):
        payload = value.get("payload")
        return payload if isinstance(payload, dict) else None
    return None


def _text(value: object) -> str | None:
    return value if isinstance(value, str) else None


def _number(value: object) -> int | None:
    return int(value) if isinstance(value, int | float) else None
