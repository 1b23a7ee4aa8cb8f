"""Collaborator interfaces.

PlatformClient isolates every platform quirk (schema, identity matching,
format detection) so reconciliation never branches on platform.
"""

from abc import ABC, abstractmethod

from warroom.core.types import (
    BracketMatch,
    GameStatus,
    LeagueDescriptor,
    MatchupRecord,
    Platform,
    PlayerInfo,
    RosterRecord,
    UserRecord,
)

DEFAULT_PLAYOFF_WEEK_START = 15


class PlatformClient(ABC):
    """Fetch adapter for one fantasy platform.

    Every fetch either returns translated records or raises NetworkError.
    Adapters never retry failures.
    """

    # True when matchup records carry league-scored per-player points
    reports_player_points: bool = False

    @property
    @abstractmethod
    def platform(self) -> Platform:
        """Platform served by this adapter."""

    @abstractmethod
    def fetch_leagues(self, identity: str, season: int) -> list[LeagueDescriptor]:
        """Discover the user's leagues for a season."""

    @abstractmethod
    def fetch_league(self, league_id: str, season: int | None = None) -> dict:
        """Fetch full league configuration (raw)."""

    @abstractmethod
    def fetch_rosters(self, league_id: str, week: int | None = None) -> list[RosterRecord]:
        """Fetch all rosters in a league."""

    @abstractmethod
    def fetch_matchups(self, league_id: str, week: int) -> list[MatchupRecord]:
        """Fetch matchup records for a week."""

    @abstractmethod
    def fetch_users(self, league_id: str) -> list[UserRecord]:
        """Fetch league members."""

    @abstractmethod
    def identify_my_team(self, rosters: list[RosterRecord], my_identity: str) -> str | None:
        """Return the roster ID owned by my_identity, or None."""

    def fetch_winners_bracket(self, league_id: str, week: int) -> list[BracketMatch]:
        """Winners-bracket games played so far. Empty when unsupported."""
        return []

    def is_elimination_format(self, settings: dict) -> bool | None:
        """Decide elimination format from league settings.

        Returns None when the settings are ambiguous and the full league
        config must be consulted.
        """
        return False

    def playoff_week_start(self, descriptor: LeagueDescriptor) -> int:
        return DEFAULT_PLAYOFF_WEEK_START

    def close(self) -> None:
        """Release HTTP resources."""


class StatsProvider(ABC):
    """Per-player weekly stat lines."""

    @abstractmethod
    def get_player_stats(self, player_id: str, week: int, year: int) -> dict[str, float] | None:
        """Stat name -> value for the week, or None when unavailable."""

    def get_player_projection(
        self, player_id: str, week: int, year: int
    ) -> dict[str, float] | None:
        return None


class GameStatusProvider(ABC):
    """NFL game state by team abbreviation."""

    @abstractmethod
    def get_status(self, nfl_team: str) -> GameStatus | None:
        """Current game for the team, or None on a bye or unknown team."""


class PlayerDirectory(ABC):
    """Player metadata lookup."""

    @abstractmethod
    def get(self, player_id: str) -> PlayerInfo | None:
        """Metadata for a player, or None when unknown."""
