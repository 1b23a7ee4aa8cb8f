"""Team and matchup reconciliation."""

from .elimination import build_ranking, elimination_zone_size, rank_teams
from .head_to_head import build_head_to_head, group_matchups
from .reconciler import LeagueReconciler
from .scoring import DEFAULT_SCORING, score_stats, scoring_weights
from .teams import ScoringContext, TeamBuilder

__all__ = [
    "DEFAULT_SCORING",
    "LeagueReconciler",
    "ScoringContext",
    "TeamBuilder",
    "build_head_to_head",
    "build_ranking",
    "elimination_zone_size",
    "group_matchups",
    "rank_teams",
    "score_stats",
    "scoring_weights",
]
