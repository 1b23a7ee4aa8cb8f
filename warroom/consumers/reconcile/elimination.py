"""Elimination-format ("chopped"/guillotine) league ranking.

Eliminated teams vanish from the weekly matchup feed but keep their roster
slot, so activity is judged from rosters: an active team has an owner,
players, and starters for the week. Everything else is history.
"""

import logging
from datetime import datetime, timezone

from warroom.core import (
    CacheKey,
    EliminationEvent,
    EliminationStatus,
    LeagueRanking,
    TeamRanking,
    TeamSnapshot,
)

logger = logging.getLogger(__name__)

# Leagues this large cut two teams a week
LARGE_LEAGUE_THRESHOLD = 32


def elimination_zone_size(active_count: int) -> int:
    return 2 if active_count >= LARGE_LEAGUE_THRESHOLD else 1


def elimination_status(rank: int, total: int, in_zone: bool) -> EliminationStatus:
    if rank == 1:
        return EliminationStatus.CHAMPION
    if in_zone:
        return EliminationStatus.CRITICAL
    if rank > total * 3 / 4:
        return EliminationStatus.DANGER
    if rank > total / 2:
        return EliminationStatus.WARNING
    return EliminationStatus.SAFE


def _team_sort_key(team: TeamSnapshot) -> tuple:
    tid = team.team_id
    # Score descending, then roster ID ascending
    return (-team.current_score, (0, int(tid), "") if tid.isdigit() else (1, 0, tid))


def rank_teams(active: list[TeamSnapshot]) -> list[TeamRanking]:
    """Rank active teams and assign elimination status and margins."""
    ordered = sorted(active, key=_team_sort_key)
    total = len(ordered)
    zone = elimination_zone_size(total)
    # Highest-ranked team inside the zone
    cutoff_index = total - zone

    rankings = []
    for index, team in enumerate(ordered):
        rank = index + 1
        score = team.current_score
        in_zone = rank > total - zone

        if in_zone:
            # Negative: points needed to pass the team above
            above = ordered[index - 1].current_score if index > 0 else score
            margin = score - above
            survival = 0.0
        else:
            margin = score - ordered[cutoff_index].current_score
            survival = max(0.0, min(1.0, (total - rank) / total))

        rankings.append(
            TeamRanking(
                team=team,
                rank=rank,
                weekly_score=score,
                elimination_status=elimination_status(rank, total, in_zone),
                survival_probability=survival,
                points_from_safety=round(margin, 2),
                in_elimination_zone=in_zone,
            )
        )
    return rankings


def build_ranking(
    key: CacheKey,
    league_name: str,
    active: list[TeamSnapshot],
    eliminated: list[TeamSnapshot],
    my_team_id: str | None,
) -> LeagueRanking:
    """Assemble a LeagueRanking for one week.

    Already-eliminated teams are recorded as eliminated the previous week.
    The exact week is not derivable from a single week of data.
    """
    rankings = rank_teams(active)
    history = tuple(
        EliminationEvent(team=team, week=key.week - 1, score=team.current_score)
        for team in sorted(eliminated, key=_team_sort_key)
    )
    logger.debug(
        "[RECONCILE] League %s week %d: %d active, %d eliminated",
        key.league_id,
        key.week,
        len(rankings),
        len(history),
    )
    return LeagueRanking(
        key=key,
        league_name=league_name,
        rankings=tuple(rankings),
        elimination_history=history,
        elimination_zone_size=elimination_zone_size(len(rankings)),
        my_team_id=my_team_id,
        last_updated=datetime.now(timezone.utc),
    )
