"""Derived competitive state.

Pure functions over hydrated snapshots. No network access, no caching.
"""

from enum import Enum

from warroom.core import LeagueRanking, MatchupSnapshot, PlayerSnapshot, Snapshot, TeamSnapshot
from warroom.core.types import GAME_IN

# Score change smaller than this is noise from float rounding
SCORE_DELTA_EPSILON = 0.01

WIN_PROBABILITY_FLOOR = 0.05
WIN_PROBABILITY_CEILING = 0.95


class SortPreference(str, Enum):
    """Which active group leads in sort_order."""

    WINNING_FIRST = "winning_first"
    LOSING_FIRST = "losing_first"


def is_live(snapshot: Snapshot) -> bool:
    """True iff any starter on either side is in a game in progress.

    Elimination-format rankings have no single opponent, so never live.
    """
    if not isinstance(snapshot, MatchupSnapshot):
        return False
    for team in (snapshot.my_team, snapshot.opponent_team):
        if team is None:
            continue
        if any(p.game_status == GAME_IN for p in team.starters):
            return True
    return False


def is_eliminated(snapshot: Snapshot) -> bool:
    if isinstance(snapshot, LeagueRanking):
        return snapshot.my_team_eliminated or snapshot.my_ranking is None
    return snapshot.is_eliminated


def is_winning(snapshot: Snapshot) -> bool:
    """Head-to-head: my score beats the opponent's.

    Elimination format: my team is outside the elimination zone and not
    already eliminated.
    """
    if isinstance(snapshot, LeagueRanking):
        ranking = snapshot.my_ranking
        if ranking is None or snapshot.my_team_eliminated:
            return False
        return not ranking.in_elimination_zone
    if snapshot.opponent_team is None:
        return False
    return snapshot.my_team.current_score > snapshot.opponent_team.current_score


def my_score(snapshot: Snapshot) -> float:
    if isinstance(snapshot, LeagueRanking):
        ranking = snapshot.my_ranking
        return ranking.weekly_score if ranking else 0.0
    return snapshot.my_team.current_score


def _tiebreak(snapshot: Snapshot) -> tuple[str, str]:
    return (snapshot.league_name.lower(), str(snapshot.key))


def sort_order(
    snapshots: list[Snapshot],
    preference: SortPreference = SortPreference.WINNING_FIRST,
) -> list[Snapshot]:
    """Order snapshots for display.

    Active winning and active losing groups are each sorted by my score
    descending, concatenated per preference. Eliminated snapshots always
    come last, ordered by league name.
    """
    winning, losing, eliminated = [], [], []
    for snapshot in snapshots:
        if is_eliminated(snapshot):
            eliminated.append(snapshot)
        elif is_winning(snapshot):
            winning.append(snapshot)
        else:
            losing.append(snapshot)

    def by_score(s: Snapshot) -> tuple:
        return (-my_score(s), *_tiebreak(s))

    winning.sort(key=by_score)
    losing.sort(key=by_score)
    eliminated.sort(key=_tiebreak)

    if preference == SortPreference.LOSING_FIRST:
        return losing + winning + eliminated
    return winning + losing + eliminated


def win_probability(snapshot: Snapshot) -> float | None:
    """Rough win chance from the current score margin."""
    if not isinstance(snapshot, MatchupSnapshot) or snapshot.opponent_team is None:
        return None
    diff = snapshot.my_team.current_score - snapshot.opponent_team.current_score
    probability = 0.5 + (diff / 100) * 0.3
    return max(WIN_PROBABILITY_FLOOR, min(WIN_PROBABILITY_CEILING, probability))


def _players(snapshot: Snapshot) -> dict[tuple[str, str], PlayerSnapshot]:
    teams: list[TeamSnapshot] = []
    if isinstance(snapshot, LeagueRanking):
        teams = [r.team for r in snapshot.rankings]
    else:
        teams = [t for t in (snapshot.my_team, snapshot.opponent_team) if t is not None]
    return {(team.team_id, p.player_id): p for team in teams for p in team.roster}


def changed_players(old: Snapshot | None, new: Snapshot) -> set[str]:
    """Player IDs whose score or game/injury status changed.

    Every player counts as changed when there is no previous snapshot.
    """
    new_players = _players(new)
    if old is None:
        return {pid for _, pid in new_players}

    old_players = _players(old)
    changed = set()
    for key, player in new_players.items():
        before = old_players.get(key)
        if (
            before is None
            or abs(player.current_score - before.current_score) > SCORE_DELTA_EPSILON
            or player.game_status != before.game_status
            or player.injury_status != before.injury_status
        ):
            changed.add(player.player_id)
    return changed
