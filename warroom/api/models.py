"""Pydantic models for API responses.

Snapshot models read straight from the core dataclasses
(from_attributes), so routes never hand-copy fields.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from warroom.core import EliminationStatus, MatchupStatus, Platform

# =============================================================================
# Snapshots
# =============================================================================


class CacheKeyModel(BaseModel):
    """Identifies one league week."""

    model_config = ConfigDict(from_attributes=True)

    league_id: str
    platform: Platform
    season_year: int
    week: int


class PlayerModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    player_id: str
    name: str
    position: str | None
    nfl_team: str | None
    lineup_slot: str | None
    is_starter: bool
    current_score: float
    projected_score: float
    game_status: str | None
    injury_status: str | None
    sleeper_id: str | None
    espn_id: str | None


class TeamModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    team_id: str
    name: str
    owner_name: str
    avatar_url: str | None
    record: str | None
    current_score: float
    projected_score: float
    roster: list[PlayerModel] = []


class MatchupModel(BaseModel):
    """Head-to-head matchup for the user's team."""

    model_config = ConfigDict(from_attributes=True)

    key: CacheKeyModel
    matchup_id: str
    league_name: str
    my_team: TeamModel
    opponent_team: TeamModel | None
    status: MatchupStatus
    last_updated: datetime
    is_eliminated: bool


class TeamRankingModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    team: TeamModel
    rank: int
    weekly_score: float
    elimination_status: EliminationStatus
    survival_probability: float
    points_from_safety: float
    in_elimination_zone: bool


class EliminationEventModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    team: TeamModel
    week: int
    score: float


class LeagueRankingModel(BaseModel):
    """Elimination-format standings for one week."""

    model_config = ConfigDict(from_attributes=True)

    key: CacheKeyModel
    league_name: str
    rankings: list[TeamRankingModel]
    elimination_history: list[EliminationEventModel]
    elimination_zone_size: int
    my_team_id: str | None
    last_updated: datetime


class SnapshotResponse(BaseModel):
    """A hydrated league week plus derived state.

    Exactly one of matchup/ranking is set, per format.
    """

    format: str  # head_to_head, elimination
    stale: bool = False
    is_live: bool = False
    is_winning: bool = False
    is_eliminated: bool = False
    win_probability: float | None = None
    matchup: MatchupModel | None = None
    ranking: LeagueRankingModel | None = None


# =============================================================================
# Coordinator
# =============================================================================


class CacheStatusResponse(BaseModel):
    """Coordinator cache statistics."""

    total_entries: int
    pending_count: int
    fresh_count: int
    stale_count: int
    in_flight_count: int
    ttl_seconds: float
    current_week: int | None
    last_refresh: datetime | None
    last_error: str | None
    scheduler_running: bool
    scheduler_paused: bool


class RefreshRequest(BaseModel):
    """Request body for triggering a refresh."""

    league_id: str | None = None
    force: bool = False
