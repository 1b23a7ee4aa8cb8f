"""Playoff detection and eliminated-team snapshots.

When a team is knocked out of the winners bracket it has no matchup to
show. An eliminated snapshot pairs its roster with a placeholder opponent
so consumers can still render a historical card.
"""

from datetime import datetime, timezone

from warroom.core import BracketMatch, CacheKey, MatchupSnapshot, MatchupStatus, TeamSnapshot
from warroom.core.interfaces import DEFAULT_PLAYOFF_WEEK_START

ELIMINATED_OPPONENT_NAME = "Eliminated from Playoffs"
PLACEHOLDER_TEAM_ID = "eliminated_placeholder"


def is_playoff_week(week: int, playoff_week_start: int | None = None) -> bool:
    """Week 15 onward is always playoffs; earlier starts come from settings."""
    if week >= DEFAULT_PLAYOFF_WEEK_START:
        return True
    start = playoff_week_start or DEFAULT_PLAYOFF_WEEK_START
    return week >= start


def playoff_round(week: int, playoff_week_start: int | None = None) -> int:
    return week - (playoff_week_start or DEFAULT_PLAYOFF_WEEK_START) + 1


def is_in_winners_bracket(bracket: list[BracketMatch], team_id: str, round_number: int) -> bool:
    """Whether a team is still alive in the winners bracket.

    Alive means no recorded loss and either a game this round or a first
    appearance in a later round (a bye).
    """
    if any(m.involves(team_id) and m.loser == team_id for m in bracket):
        return False
    rounds = [m.round for m in bracket if m.involves(team_id)]
    if round_number in rounds:
        return True
    return bool(rounds) and min(rounds) > round_number


def is_eliminated_from_playoffs(
    bracket: list[BracketMatch], team_id: str, round_number: int
) -> bool:
    """Bracket-confirmed elimination. An empty bracket confirms nothing."""
    if not bracket:
        return False
    return not is_in_winners_bracket(bracket, team_id, round_number)


def placeholder_opponent() -> TeamSnapshot:
    return TeamSnapshot(
        team_id=PLACEHOLDER_TEAM_ID,
        name=ELIMINATED_OPPONENT_NAME,
        owner_name=ELIMINATED_OPPONENT_NAME,
        avatar_url=None,
        record=None,
        current_score=0.0,
        projected_score=0.0,
        roster=(),
    )


def build_eliminated_snapshot(key: CacheKey, league_name: str, my_team: TeamSnapshot) -> MatchupSnapshot:
    """Synthetic matchup for a team knocked out of the playoffs."""
    return MatchupSnapshot(
        key=key,
        matchup_id=f"{key.league_id}_eliminated_{key.week}_{my_team.team_id}",
        league_name=league_name,
        my_team=my_team,
        opponent_team=placeholder_opponent(),
        status=MatchupStatus.COMPLETE,
        last_updated=datetime.now(timezone.utc),
        is_eliminated=True,
    )
