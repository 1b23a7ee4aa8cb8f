"""Sleeper API HTTP client.

Handles raw HTTP requests to the public Sleeper v1 API (no auth).
No data transformation - just fetch and return JSON.
"""

import logging

import httpx

from warroom.providers.http import JSONClient

logger = logging.getLogger(__name__)

SLEEPER_BASE_URL = "https://api.sleeper.app/v1"
SLEEPER_AVATAR_URL = "https://sleepercdn.com/avatars"


class SleeperClient(JSONClient):
    """Low-level Sleeper API client."""

    LOG_TAG = "SLEEPER"

    def __init__(
        self,
        base_url: str = SLEEPER_BASE_URL,
        timeout: float = 10.0,
        retry_count: int = 1,
        rate_limit_retries: int = 3,
        max_connections: int = 20,
        transport: httpx.BaseTransport | None = None,
    ):
        super().__init__(
            timeout=timeout,
            retry_count=retry_count,
            rate_limit_retries=rate_limit_retries,
            max_connections=max_connections,
            transport=transport,
        )
        self._base_url = base_url.rstrip("/")

    def _get(self, path: str) -> dict | list:
        return self._request(f"{self._base_url}{path}")

    def get_user(self, username_or_id: str) -> dict | None:
        """Fetch a user by username or user ID (Sleeper returns null if unknown)."""
        return self._get(f"/user/{username_or_id}")

    def get_user_leagues(self, user_id: str, season: int) -> list:
        return self._get(f"/user/{user_id}/leagues/nfl/{season}") or []

    def get_league(self, league_id: str) -> dict:
        return self._get(f"/league/{league_id}") or {}

    def get_rosters(self, league_id: str) -> list:
        return self._get(f"/league/{league_id}/rosters") or []

    def get_users(self, league_id: str) -> list:
        return self._get(f"/league/{league_id}/users") or []

    def get_matchups(self, league_id: str, week: int) -> list:
        return self._get(f"/league/{league_id}/matchups/{week}") or []

    def get_winners_bracket(self, league_id: str) -> list:
        return self._get(f"/league/{league_id}/winners_bracket") or []

    def get_players(self) -> dict:
        """Full NFL player directory (several MB; fetch sparingly)."""
        return self._get("/players/nfl") or {}

    def get_nfl_state(self) -> dict:
        """Current NFL season state (season, week, season_type)."""
        return self._get("/state/nfl") or {}

    def get_weekly_stats(self, season: int, week: int) -> dict | list:
        return self._get(f"/stats/nfl/regular/{season}/{week}") or {}

    def get_weekly_projections(self, season: int, week: int) -> dict | list:
        return self._get(f"/projections/nfl/regular/{season}/{week}") or {}


def avatar_url(avatar: str | None) -> str | None:
    """Build a CDN URL from a Sleeper avatar ID (full URLs pass through)."""
    if not avatar:
        return None
    if avatar.startswith("http"):
        return avatar
    return f"{SLEEPER_AVATAR_URL}/{avatar}"
