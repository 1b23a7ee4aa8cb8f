"""Sleeper NFL player directory.

Loaded lazily on first lookup and kept for the process lifetime.
"""

import logging
import threading

from warroom.core import PlayerDirectory, PlayerInfo
from warroom.providers.sleeper.client import SleeperClient

logger = logging.getLogger(__name__)


def _player_name(raw: dict, player_id: str) -> str:
    if raw.get("full_name"):
        return raw["full_name"]
    first = raw.get("first_name") or ""
    last = raw.get("last_name") or ""
    name = f"{first} {last}".strip()
    # Team defenses are keyed by abbreviation ("KC") with no full_name
    return name or player_id


class SleeperPlayerDirectory(PlayerDirectory):
    """PlayerDirectory backed by Sleeper's /players/nfl."""

    def __init__(self, client: SleeperClient | None = None):
        self._client = client or SleeperClient()
        self._raw: dict[str, dict] | None = None
        self._lock = threading.Lock()

    def _players(self) -> dict[str, dict]:
        if self._raw is None:
            with self._lock:
                if self._raw is None:
                    raw = self._client.get_players()
                    self._raw = {str(pid): data or {} for pid, data in raw.items()}
                    logger.info("[SLEEPER] Player directory loaded (%d players)", len(self._raw))
        return self._raw

    def raw_players(self) -> dict[str, dict]:
        """All raw directory rows keyed by Sleeper player ID."""
        return self._players()

    def get(self, player_id: str) -> PlayerInfo | None:
        raw = self._players().get(player_id)
        if raw is None:
            return None
        espn_id = raw.get("espn_id")
        return PlayerInfo(
            player_id=player_id,
            name=_player_name(raw, player_id),
            position=raw.get("position"),
            nfl_team=raw.get("team"),
            injury_status=raw.get("injury_status"),
            sleeper_id=player_id,
            espn_id=str(espn_id) if espn_id else None,
        )
