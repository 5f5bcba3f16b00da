"""Strava stream fetching with token refresh."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol
from uuid import UUID

from coach_sessions.adapters.strava_client import StravaClient
from coach_sessions.domain.sessions import STRAVA_SOURCE
from coach_sessions.domain.strava import StravaAccount
from coach_sessions.domain.streams import FetchStatus, StreamFetchResult

_REFRESH_MARGIN = timedelta(minutes=5)

_logger = logging.getLogger(__name__)


class StravaAccountRepository(Protocol):
    """Persistence interface for Strava credentials."""

    def get_account(self, user_id: UUID) -> StravaAccount | None:
        """Return the user's Strava account, if linked."""

    def save_tokens(
        self,
        user_id: UUID,
        access_token: str,
        refresh_token: str | None,
        expires_at: datetime | None,
    ) -> None:
        """Persist refreshed tokens."""


@dataclass
class StravaStreamFetcher:
    """Fetches activity streams and maps them to a three-way status."""

    client: StravaClient
    accounts: StravaAccountRepository
    _refresh_locks: dict[UUID, asyncio.Lock] = field(
        default_factory=dict, init=False, repr=False
    )

    async def fetch_streams(
        self, source: str, external_id: str, user_id: UUID, call_context: str
    ) -> StreamFetchResult:
        """Fetch streams for a Strava activity on behalf of a user."""
        if source != STRAVA_SOURCE or not external_id.isdigit():
            return StreamFetchResult(status=FetchStatus.ERROR)
        try:
            access_token = await self._access_token(user_id)
            if access_token is None:
                _logger.warning(
                    "No Strava tokens for user: context=%s user_id=%s",
                    call_context,
                    user_id,
                )
                return StreamFetchResult(status=FetchStatus.ERROR)
            streams = await self.client.get_activity_streams(
                access_token, int(external_id)
            )
        except Exception as exc:
            _logger.warning(
                "Strava stream fetch failed: context=%s activity=%s error=%s",
                call_context,
                external_id,
                exc,
            )
            return StreamFetchResult(status=FetchStatus.ERROR)
        if not streams:
            _logger.info("Activity has no streams available: activity=%s", external_id)
            return StreamFetchResult(status=FetchStatus.NO_STREAMS)
        return StreamFetchResult(status=FetchStatus.OK, streams=streams)

    async def _access_token(self, user_id: UUID) -> str | None:
        account = self.accounts.get_account(user_id)
        if account is None or not account.access_token:
            return None
        if not _needs_refresh(account):
            return account.access_token

        lock = self._refresh_locks.setdefault(user_id, asyncio.Lock())
        async with lock:
            # Another fetch for this user may have refreshed while we waited.
            account = self.accounts.get_account(user_id)
            if account is None or not account.access_token:
                return None
            if not _needs_refresh(account):
                return account.access_token
            return await self._refresh(account)

    async def _refresh(self, account: StravaAccount) -> str:
        token = await self.client.refresh_access_token(str(account.refresh_token))
        access_token = str(token["access_token"])
        refresh_token = token.get("refresh_token") or account.refresh_token
        expires_at = account.expires_at
        if isinstance(token.get("expires_at"), int | float):
            expires_at = datetime.fromtimestamp(float(token["expires_at"]), tz=UTC)
        self.accounts.save_tokens(
            account.user_id,
            access_token=access_token,
            refresh_token=str(refresh_token),
            expires_at=expires_at,
        )
        _logger.info("Refreshed Strava token: user_id=%s", account.user_id)
        return access_token


def _needs_refresh(account: StravaAccount) -> bool:
    if account.expires_at is None or not account.refresh_token:
        return False
    return account.expires_at <= datetime.now(tz=UTC) + _REFRESH_MARGIN
