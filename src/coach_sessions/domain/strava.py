"""Domain models for Strava accounts."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class StravaAccount:
    """Stored Strava credentials for a user."""

    user_id: UUID
    access_token: str | None
    refresh_token: str | None
    expires_at: datetime | None
