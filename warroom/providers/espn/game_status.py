"""NFL game state from the ESPN scoreboard."""

import logging
import threading

from warroom.core import GameStatus, GameStatusProvider
from warroom.core.types import GAME_IN, GAME_POST, GAME_PRE
from warroom.providers.espn.client import ESPNScoreboardClient
from warroom.providers.espn.constants import STATUS_MAP, TEAM_ALIASES
from warroom.utilities.cache import TTLCache

logger = logging.getLogger(__name__)

CACHE_TTL_SCOREBOARD = 30


def _state_for(status: dict) -> str:
    status_type = status.get("type") or {}
    mapped = STATUS_MAP.get(status_type.get("name") or "")
    if mapped:
        return mapped
    state = status_type.get("state")
    if state in (GAME_PRE, GAME_IN, GAME_POST):
        return state
    return GAME_PRE


def parse_scoreboard(payload: dict) -> dict[str, GameStatus]:
    """Index scoreboard games by each competitor's abbreviation."""
    games: dict[str, GameStatus] = {}
    for event in payload.get("events") or []:
        for competition in event.get("competitions") or []:
            competitors = competition.get("competitors") or []
            home = next((c for c in competitors if c.get("homeAway") == "home"), None)
            away = next((c for c in competitors if c.get("homeAway") == "away"), None)
            if not home or not away:
                continue
            status = competition.get("status") or event.get("status") or {}
            game = GameStatus(
                state=_state_for(status),
                home_score=int(home.get("score") or 0),
                away_score=int(away.get("score") or 0),
                detail=(status.get("type") or {}).get("shortDetail"),
            )
            for competitor in (home, away):
                abbrev = (competitor.get("team") or {}).get("abbreviation")
                if abbrev:
                    games[abbrev.upper()] = game
    return games


class ESPNGameStatusProvider(GameStatusProvider):
    """GameStatusProvider backed by the current-week NFL scoreboard."""

    def __init__(self, client: ESPNScoreboardClient | None = None, ttl: float = CACHE_TTL_SCOREBOARD):
        self._client = client or ESPNScoreboardClient()
        self._cache = TTLCache(default_ttl=ttl)
        self._lock = threading.Lock()

    def _games(self) -> dict[str, GameStatus]:
        games = self._cache.get("scoreboard")
        if games is not None:
            return games
        with self._lock:
            games = self._cache.get("scoreboard")
            if games is None:
                games = parse_scoreboard(self._client.get_nfl_scoreboard())
                self._cache.set("scoreboard", games)
                logger.debug("[ESPN] Scoreboard loaded (%d teams playing)", len(games))
        return games

    def get_status(self, nfl_team: str) -> GameStatus | None:
        if not nfl_team:
            return None
        abbrev = nfl_team.upper()
        return self._games().get(TEAM_ALIASES.get(abbrev, abbrev))
