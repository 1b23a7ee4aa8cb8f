"""Core data types.

Raw records are what platform adapters return after schema translation.
Snapshots are the normalized, immutable values handed to consumers.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Platform(str, Enum):
    """Supported fantasy platforms."""

    SLEEPER = "sleeper"
    ESPN = "espn"


class MatchupStatus(str, Enum):
    """Lifecycle of a head-to-head matchup."""

    UPCOMING = "upcoming"
    LIVE = "live"
    COMPLETE = "complete"


class EliminationStatus(str, Enum):
    """Standing of a team in an elimination-format league."""

    CHAMPION = "champion"
    SAFE = "safe"
    WARNING = "warning"
    DANGER = "danger"
    CRITICAL = "critical"
    ELIMINATED = "eliminated"


# Game states reported by a GameStatusProvider
GAME_PRE = "pre"
GAME_IN = "in"
GAME_POST = "post"


# =============================================================================
# League identity
# =============================================================================


@dataclass(frozen=True)
class LeagueDescriptor:
    """A league discovered for the user."""

    id: str
    name: str
    platform: Platform
    season_year: int
    total_teams: int
    settings: dict = field(default_factory=dict, compare=False, hash=False)
    scoring_settings: dict = field(default_factory=dict, compare=False, hash=False)

    @property
    def league_key(self) -> tuple[Platform, str]:
        return (self.platform, self.id)


@dataclass(frozen=True)
class CacheKey:
    """One hydration unit: a league at a given season and week."""

    league_id: str
    platform: Platform
    season_year: int
    week: int

    @property
    def league_key(self) -> tuple[Platform, str]:
        return (self.platform, self.league_id)

    def __str__(self) -> str:
        return f"{self.platform.value}:{self.league_id}:{self.season_year}:w{self.week}"


# =============================================================================
# Raw records (adapter output)
# =============================================================================


@dataclass(frozen=True)
class PlayerInfo:
    """Directory metadata for a player."""

    player_id: str
    name: str
    position: str | None = None
    nfl_team: str | None = None
    injury_status: str | None = None
    sleeper_id: str | None = None
    espn_id: str | None = None


@dataclass(frozen=True)
class RosterRecord:
    """A team roster as reported by a platform."""

    roster_id: str
    owner_id: str | None = None
    owner_ids: tuple[str, ...] = ()
    players: tuple[str, ...] = ()
    starters: tuple[str, ...] = ()
    wins: int = 0
    losses: int = 0
    ties: int = 0
    team_name: str | None = None
    owner_name: str | None = None
    avatar_url: str | None = None
    # Inline player metadata and lineup slots for platforms that embed them
    player_info: dict[str, PlayerInfo] = field(default_factory=dict, compare=False, hash=False)
    slots: dict[str, str] = field(default_factory=dict, compare=False, hash=False)

    @property
    def record(self) -> str | None:
        if not (self.wins or self.losses or self.ties):
            return None
        if self.ties:
            return f"{self.wins}-{self.losses}-{self.ties}"
        return f"{self.wins}-{self.losses}"


@dataclass(frozen=True)
class MatchupRecord:
    """One side of a weekly matchup."""

    roster_id: str
    matchup_id: str | None
    points: float = 0.0
    projected_points: float | None = None
    starters: tuple[str, ...] = ()
    players: tuple[str, ...] = ()
    # Platform-scored per-player points (ESPN appliedTotal, Sleeper players_points)
    player_points: dict[str, float] = field(default_factory=dict, compare=False, hash=False)
    player_projections: dict[str, float] = field(
        default_factory=dict, compare=False, hash=False
    )
    slots: dict[str, str] = field(default_factory=dict, compare=False, hash=False)


@dataclass(frozen=True)
class UserRecord:
    """A league member."""

    user_id: str
    display_name: str | None = None
    avatar: str | None = None
    team_name: str | None = None


@dataclass(frozen=True)
class BracketMatch:
    """A winners-bracket game (r, t1, t2, w, l in Sleeper terms)."""

    round: int
    team1: str | None
    team2: str | None
    winner: str | None = None
    loser: str | None = None

    def involves(self, roster_id: str) -> bool:
        return roster_id in (self.team1, self.team2)


@dataclass(frozen=True)
class GameStatus:
    """Live state of an NFL game."""

    state: str  # pre, in, post
    home_score: int = 0
    away_score: int = 0
    detail: str | None = None


# =============================================================================
# Snapshots (consumer-facing, immutable)
# =============================================================================


@dataclass(frozen=True)
class PlayerSnapshot:
    """A player's state within one team for one week."""

    player_id: str
    name: str
    position: str | None
    nfl_team: str | None
    lineup_slot: str | None
    is_starter: bool
    current_score: float = 0.0
    projected_score: float = 0.0
    game_status: str | None = None
    injury_status: str | None = None
    sleeper_id: str | None = None
    espn_id: str | None = None


@dataclass(frozen=True)
class TeamSnapshot:
    """A fantasy team within one matchup or ranking."""

    team_id: str
    name: str
    owner_name: str
    avatar_url: str | None
    record: str | None
    current_score: float
    projected_score: float
    roster: tuple[PlayerSnapshot, ...] = ()

    @property
    def starters(self) -> tuple[PlayerSnapshot, ...]:
        return tuple(p for p in self.roster if p.is_starter)


@dataclass(frozen=True)
class MatchupSnapshot:
    """Head-to-head matchup for one league week."""

    key: CacheKey
    matchup_id: str
    league_name: str
    my_team: TeamSnapshot
    opponent_team: TeamSnapshot | None
    status: MatchupStatus
    last_updated: datetime
    is_eliminated: bool = False  # knocked out of the winners bracket


@dataclass(frozen=True)
class TeamRanking:
    """A team's position in an elimination-format league week."""

    team: TeamSnapshot
    rank: int
    weekly_score: float
    elimination_status: EliminationStatus
    survival_probability: float
    points_from_safety: float
    in_elimination_zone: bool = False


@dataclass(frozen=True)
class EliminationEvent:
    """A team already removed from an elimination-format league."""

    team: TeamSnapshot
    week: int
    score: float


@dataclass(frozen=True)
class LeagueRanking:
    """Full-league standings for an elimination-format league week."""

    key: CacheKey
    league_name: str
    rankings: tuple[TeamRanking, ...]
    elimination_history: tuple[EliminationEvent, ...]
    elimination_zone_size: int
    my_team_id: str | None
    last_updated: datetime

    @property
    def my_ranking(self) -> TeamRanking | None:
        for ranking in self.rankings:
            if ranking.team.team_id == self.my_team_id:
                return ranking
        return None

    @property
    def my_team_eliminated(self) -> bool:
        return any(e.team.team_id == self.my_team_id for e in self.elimination_history)

    @property
    def cutoff_score(self) -> float:
        """Lowest active score (the line teams must clear)."""
        return min((r.weekly_score for r in self.rankings), default=0.0)

    @property
    def average_score(self) -> float:
        if not self.rankings:
            return 0.0
        return sum(r.weekly_score for r in self.rankings) / len(self.rankings)

    @property
    def highest_score(self) -> float:
        return max((r.weekly_score for r in self.rankings), default=0.0)


# Either shape can live in a cache entry
Snapshot = MatchupSnapshot | LeagueRanking
