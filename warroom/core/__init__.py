"""Core types and interfaces."""

from warroom.core.errors import (
    IdentityResolutionFailure,
    NetworkError,
    ReconciliationGap,
    WarRoomError,
)
from warroom.core.interfaces import (
    GameStatusProvider,
    PlatformClient,
    PlayerDirectory,
    StatsProvider,
)
from warroom.core.types import (
    BracketMatch,
    CacheKey,
    EliminationEvent,
    EliminationStatus,
    GameStatus,
    LeagueDescriptor,
    LeagueRanking,
    MatchupRecord,
    MatchupSnapshot,
    MatchupStatus,
    Platform,
    PlayerInfo,
    PlayerSnapshot,
    RosterRecord,
    Snapshot,
    TeamRanking,
    TeamSnapshot,
    UserRecord,
)

__all__ = [
    "BracketMatch",
    "CacheKey",
    "EliminationEvent",
    "EliminationStatus",
    "GameStatus",
    "GameStatusProvider",
    "IdentityResolutionFailure",
    "LeagueDescriptor",
    "LeagueRanking",
    "MatchupRecord",
    "MatchupSnapshot",
    "MatchupStatus",
    "NetworkError",
    "Platform",
    "PlatformClient",
    "PlayerDirectory",
    "PlayerInfo",
    "PlayerSnapshot",
    "ReconciliationGap",
    "RosterRecord",
    "Snapshot",
    "StatsProvider",
    "TeamRanking",
    "TeamSnapshot",
    "UserRecord",
    "WarRoomError",
]
