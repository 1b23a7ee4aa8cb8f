"""Head-to-head matchup reconciliation.

Matchup records are grouped by pairing key. A valid group has exactly two
entries; anything else is logged and dropped rather than guessed at.
"""

import logging
from collections import defaultdict
from datetime import datetime, timezone

from warroom.core import (
    CacheKey,
    MatchupRecord,
    MatchupSnapshot,
    ReconciliationGap,
    RosterRecord,
    UserRecord,
)

from .teams import ScoringContext, TeamBuilder, matchup_status

logger = logging.getLogger(__name__)


def _id_sort_key(value: str) -> tuple:
    return (0, int(value), "") if value.isdigit() else (1, 0, value)


def group_matchups(
    records: list[MatchupRecord], league_id: str
) -> list[tuple[str, MatchupRecord, MatchupRecord]]:
    """Pair matchup records by matchup_id.

    Returns:
        (matchup_id, side_a, side_b) tuples ordered by matchup_id, sides
        ordered by roster_id
    """
    groups: dict[str, list[MatchupRecord]] = defaultdict(list)
    for record in records:
        if record.matchup_id is None:
            # No opponent this week (bye, or elimination-format record)
            continue
        groups[record.matchup_id].append(record)

    pairs = []
    for matchup_id in sorted(groups, key=_id_sort_key):
        group = groups[matchup_id]
        if len(group) != 2:
            logger.warning(
                "[RECONCILE] League %s matchup %s has %d entries, skipping",
                league_id,
                matchup_id,
                len(group),
            )
            continue
        side_a, side_b = sorted(group, key=lambda r: _id_sort_key(r.roster_id))
        pairs.append((matchup_id, side_a, side_b))
    return pairs


def build_head_to_head(
    key: CacheKey,
    league_name: str,
    records: list[MatchupRecord],
    rosters: list[RosterRecord],
    users: list[UserRecord],
    builder: TeamBuilder,
    ctx: ScoringContext,
    my_team_id: str | None = None,
) -> list[MatchupSnapshot]:
    """Build every well-formed matchup in a league week.

    The side owned by my_team_id (when present) becomes my_team; otherwise
    the lower roster ID does.
    """
    rosters_by_id = {r.roster_id: r for r in rosters}
    users_by_id = {u.user_id: u for u in users}
    now = datetime.now(timezone.utc)

    snapshots = []
    for matchup_id, side_a, side_b in group_matchups(records, key.league_id):
        if side_b.roster_id == my_team_id:
            side_a, side_b = side_b, side_a
        try:
            teams = []
            for side in (side_a, side_b):
                roster = rosters_by_id.get(side.roster_id)
                if roster is None:
                    raise ReconciliationGap(
                        key.league_id, f"matchup {matchup_id} references unknown roster {side.roster_id}"
                    )
                teams.append(builder.build(ctx, roster, side, users_by_id))
        except ReconciliationGap as e:
            logger.warning("[RECONCILE] %s, skipping", e)
            continue

        my_team, opponent = teams
        snapshots.append(
            MatchupSnapshot(
                key=key,
                matchup_id=matchup_id,
                league_name=league_name,
                my_team=my_team,
                opponent_team=opponent,
                status=matchup_status(my_team, opponent),
                last_updated=now,
            )
        )
    return snapshots
