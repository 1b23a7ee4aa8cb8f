"""ESPN API HTTP clients.

Handles raw HTTP requests to ESPN endpoints.
No data transformation - just fetch and return JSON.

ESPNFantasyClient reads private fantasy leagues with the SWID and espn_s2
cookies. ESPNScoreboardClient reads the public NFL scoreboard.
"""

import logging

import httpx

from warroom.providers.http import JSONClient

logger = logging.getLogger(__name__)

ESPN_FANTASY_URL = "https://lm-api-reads.fantasy.espn.com/apis/v3/games/ffl/seasons"
ESPN_BASE_URL = "https://site.api.espn.com/apis/site/v2/sports"

LEAGUE_VIEWS = ("mMatchupScore", "mLiveScoring", "mRoster", "mTeam", "mSettings")


class ESPNFantasyClient(JSONClient):
    """Low-level ESPN fantasy football API client."""

    LOG_TAG = "ESPN"

    def __init__(
        self,
        swid: str | None = None,
        espn_s2: str | None = None,
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
        self._swid = swid
        self._espn_s2 = espn_s2

    def _auth_headers(self) -> dict | None:
        if not (self._swid and self._espn_s2):
            # Public leagues work without cookies
            return None
        return {"Cookie": f"SWID={self._swid}; espn_s2={self._espn_s2}"}

    def get_league(
        self,
        season: int,
        league_id: str,
        week: int | None = None,
        views: tuple[str, ...] = LEAGUE_VIEWS,
    ) -> dict:
        """Fetch a league with the given views.

        Args:
            season: Season year
            league_id: ESPN league ID
            week: Scoring period to load rosters/stats for (None = current)
            views: ESPN view names

        Returns:
            Raw ESPN league payload
        """
        url = f"{ESPN_FANTASY_URL}/{season}/segments/0/leagues/{league_id}"
        params: list[tuple[str, str | int]] = [("view", v) for v in views]
        if week is not None:
            params.append(("scoringPeriodId", week))
        return self._request(url, params=params, headers=self._auth_headers()) or {}


class ESPNScoreboardClient(JSONClient):
    """Public ESPN site API client for NFL game state."""

    LOG_TAG = "ESPN"

    def get_nfl_scoreboard(self, week: int | None = None, season: int | None = None) -> dict:
        """Fetch the NFL scoreboard (current week when week is None)."""
        url = f"{ESPN_BASE_URL}/football/nfl/scoreboard"
        params = {}
        if week is not None:
            params["seasontype"] = 2
            params["week"] = week
        if season is not None:
            params["dates"] = season
        return self._request(url, params=params or None) or {}
