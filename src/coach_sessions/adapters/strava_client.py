"""Strava API client."""

from dataclasses import dataclass
from typing import Protocol

import httpx

DEFAULT_STREAM_KEYS = (
    "velocity_smooth",
    "distance",
    "time",
    "heartrate",
    "cadence",
    "altitude",
)


class StravaClient(Protocol):
    """Interface for Strava API interactions."""

    async def get_activity_streams(
        self, access_token: str, activity_id: int
    ) -> dict[str, object]:
        """Return streams keyed by type; empty when Strava has none."""

    async def refresh_access_token(self, refresh_token: str) -> dict[str, object]:
        """Exchange a refresh token and return the raw token payload."""


@dataclass
class HttpxStravaClient(StravaClient):
    """HTTPX-backed Strava client."""

    client_id: str
    client_secret: str
    base_url: str
    token_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(
        cls, client_id: str, client_secret: str, base_url: str, token_url: str
    ) -> "HttpxStravaClient":
        """Create a Strava client with a managed httpx session."""
        return cls(
            client_id=client_id,
            client_secret=client_secret,
            base_url=base_url,
            token_url=token_url,
            http_client=httpx.AsyncClient(),
        )

    async def get_activity_streams(
        self, access_token: str, activity_id: int
    ) -> dict[str, object]:
        """Fetch streams for an activity; a 404 means it has none."""
        url = f"{self.base_url}/activities/{activity_id}/streams"
        response = await self.http_client.get(
            url,
            params={"keys": ",".join(DEFAULT_STREAM_KEYS), "key_by_type": "true"},
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=30,
        )
        if response.status_code == httpx.codes.NOT_FOUND:
            return {}
        response.raise_for_status()
        data = response.json()
        return data if isinstance(data, dict) else {}

    async def refresh_access_token(self, refresh_token: str) -> dict[str, object]:
        """Exchange a refresh token for a new access token."""
        response = await self.http_client.post(
            self.token_url,
            json={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
            },
            timeout=15,
        )
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
