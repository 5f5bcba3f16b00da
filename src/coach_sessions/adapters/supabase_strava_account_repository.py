"""Supabase repository for Strava credentials."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from coach_sessions.domain.sessions import STRAVA_SOURCE
from coach_sessions.domain.strava import StravaAccount
from coach_sessions.services.strava import StravaAccountRepository


@dataclass
class SupabaseStravaAccountRepository(StravaAccountRepository):
    """Supabase implementation for linked Strava accounts."""

    client: Client

    def get_account(self, user_id: UUID) -> StravaAccount | None:
        """Return the user's Strava account, if present."""
        response = (
            self.client.table("external_accounts")
            .select("user_id, access_token, refresh_token, token_expires_at")
            .eq("user_id", str(user_id))
            .eq("provider", STRAVA_SOURCE)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        expires_at = row.get("token_expires_at")
        return StravaAccount(
            user_id=UUID(row["user_id"]),
            access_token=row.get("access_token"),
            refresh_token=row.get("refresh_token"),
            expires_at=datetime.fromisoformat(expires_at) if expires_at else None,
        )

    def save_tokens(
        self,
        user_id: UUID,
        access_token: str,
        refresh_token: str | None,
        expires_at: datetime | None,
    ) -> None:
        """Store refreshed tokens."""
        payload: dict[str, object] = {
            "access_token": access_token,
            "updated_at": datetime.now(tz=UTC).isoformat(),
        }
        if refresh_token:
            payload["refresh_token"] = refresh_token
        if expires_at:
            payload["token_expires_at"] = expires_at.isoformat()
        self.client.table("external_accounts").update(payload).eq(
            "user_id", str(user_id)
        ).eq("provider", STRAVA_SOURCE).execute()
