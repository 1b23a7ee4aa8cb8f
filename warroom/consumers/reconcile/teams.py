"""Team snapshot construction.

Turns a roster plus its weekly matchup record into a TeamSnapshot with
per-player scores. Stat lookups fan out on a bounded pool; a failed lookup
counts as missing stats (0.0).
"""

import logging
from concurrent.futures import Executor, as_completed
from dataclasses import dataclass, field

from warroom.core import (
    GameStatusProvider,
    MatchupRecord,
    MatchupStatus,
    NetworkError,
    PlayerDirectory,
    PlayerInfo,
    PlayerSnapshot,
    RosterRecord,
    StatsProvider,
    TeamSnapshot,
    UserRecord,
)
from warroom.core.types import GAME_IN, GAME_POST, GAME_PRE
from warroom.services.player_ids import PlayerIdMapper

from .names import resolve_avatar, resolve_team_name
from .scoring import score_stats

logger = logging.getLogger(__name__)

BENCH_SLOT = "BN"


@dataclass
class PlayerStatLines:
    """Stat and projection lines fetched for one player."""

    stats: dict | None = None
    projection: dict | None = None


@dataclass
class ScoringContext:
    """Everything needed to score one league week."""

    league_id: str
    week: int
    year: int
    weights: dict[str, float]
    reports_player_points: bool = False
    stat_lines: dict[str, PlayerStatLines] = field(default_factory=dict)


class TeamBuilder:
    """Builds TeamSnapshots for one league week."""

    def __init__(
        self,
        stats_provider: StatsProvider | None = None,
        game_status_provider: GameStatusProvider | None = None,
        player_directory: PlayerDirectory | None = None,
        id_mapper: PlayerIdMapper | None = None,
        executor: Executor | None = None,
    ):
        self._stats = stats_provider
        self._game_status = game_status_provider
        self._directory = player_directory
        self._id_mapper = id_mapper
        self._executor = executor
        self._directory_failed = False
        self._game_status_failed = False

    # -------------------------------------------------------------------------
    # Player metadata
    # -------------------------------------------------------------------------

    def player_info(self, roster: RosterRecord | None, player_id: str) -> PlayerInfo:
        info = roster.player_info.get(player_id) if roster else None
        if info is None and self._directory is not None and not self._directory_failed:
            try:
                info = self._directory.get(player_id)
            except NetworkError as e:
                # Names are cosmetic; keep scoring without them
                logger.warning("[RECONCILE] Player directory unavailable: %s", e)
                self._directory_failed = True
        if info is None:
            info = PlayerInfo(player_id=player_id, name=player_id, sleeper_id=player_id)

        if info.sleeper_id is None and info.espn_id and self._id_mapper is not None:
            try:
                sleeper_id = self._id_mapper.sleeper_id_for(info.espn_id, info.name, info.position)
            except NetworkError as e:
                logger.warning("[RECONCILE] Player ID mapping unavailable: %s", e)
                sleeper_id = None
            if sleeper_id:
                info = PlayerInfo(
                    player_id=info.player_id,
                    name=info.name,
                    position=info.position,
                    nfl_team=info.nfl_team,
                    injury_status=info.injury_status,
                    sleeper_id=sleeper_id,
                    espn_id=info.espn_id,
                )
        return info

    def game_state(self, nfl_team: str | None) -> str | None:
        if not nfl_team or self._game_status is None or self._game_status_failed:
            return None
        try:
            status = self._game_status.get_status(nfl_team)
        except NetworkError as e:
            logger.warning("[RECONCILE] Game status unavailable: %s", e)
            self._game_status_failed = True
            return None
        return status.state if status else None

    # -------------------------------------------------------------------------
    # Stats fan-out
    # -------------------------------------------------------------------------

    def load_stat_lines(self, ctx: ScoringContext, stat_ids: set[str]) -> None:
        """Fetch stats and projections for the given IDs into ctx.stat_lines."""
        if self._stats is None or not stat_ids:
            return

        def lookup(stat_id: str) -> PlayerStatLines:
            return PlayerStatLines(
                stats=self._stats.get_player_stats(stat_id, ctx.week, ctx.year),
                projection=self._stats.get_player_projection(stat_id, ctx.week, ctx.year),
            )

        pending = [sid for sid in stat_ids if sid not in ctx.stat_lines]
        if self._executor is None:
            for stat_id in pending:
                try:
                    ctx.stat_lines[stat_id] = lookup(stat_id)
                except Exception as e:
                    logger.warning("[RECONCILE] Stats lookup failed for %s: %s", stat_id, e)
            return

        futures = {self._executor.submit(lookup, sid): sid for sid in pending}
        failed = 0
        for future in as_completed(futures):
            stat_id = futures[future]
            try:
                ctx.stat_lines[stat_id] = future.result()
            except Exception as e:
                failed += 1
                logger.debug("[RECONCILE] Stats lookup failed for %s: %s", stat_id, e)
        if failed:
            logger.warning(
                "[RECONCILE] League %s: %d/%d stat lookups failed (scored as 0.0)",
                ctx.league_id,
                failed,
                len(futures),
            )

    # -------------------------------------------------------------------------
    # Team assembly
    # -------------------------------------------------------------------------

    def _player_scores(
        self, ctx: ScoringContext, info: PlayerInfo, record: MatchupRecord | None
    ) -> tuple[float, float]:
        pid = info.player_id
        if ctx.reports_player_points and record is not None and pid in record.player_points:
            current = record.player_points[pid]
            projected = record.player_projections.get(pid, 0.0)
            return current, projected

        lines = ctx.stat_lines.get(info.sleeper_id or pid)
        if lines is None:
            return 0.0, 0.0
        return score_stats(lines.stats, ctx.weights), score_stats(lines.projection, ctx.weights)

    def build(
        self,
        ctx: ScoringContext,
        roster: RosterRecord,
        record: MatchupRecord | None,
        users_by_id: dict[str, UserRecord],
    ) -> TeamSnapshot:
        """Build a team snapshot for a roster.

        Players come from the week's matchup record when present, otherwise
        from the roster. A player is a starter iff listed in starters.
        """
        if record is not None:
            player_ids = record.players or record.starters
            starters = set(record.starters)
            slots = record.slots
        else:
            player_ids = roster.players
            starters = set(roster.starters)
            slots = roster.slots

        # Starters listed but missing from players still count
        ordered = list(dict.fromkeys([*[p for p in player_ids if p in starters], *player_ids, *starters]))

        players = []
        for pid in ordered:
            info = self.player_info(roster, pid)
            is_starter = pid in starters
            current, projected = self._player_scores(ctx, info, record)
            players.append(
                PlayerSnapshot(
                    player_id=pid,
                    name=info.name,
                    position=info.position,
                    nfl_team=info.nfl_team,
                    lineup_slot=slots.get(pid) or (info.position if is_starter else BENCH_SLOT),
                    is_starter=is_starter,
                    current_score=current,
                    projected_score=projected,
                    game_status=self.game_state(info.nfl_team),
                    injury_status=info.injury_status,
                    sleeper_id=info.sleeper_id,
                    espn_id=info.espn_id,
                )
            )

        current_total = round(sum(p.current_score for p in players if p.is_starter), 2)
        projected_total = round(sum(p.projected_score for p in players if p.is_starter), 2)
        if not projected_total and record is not None and record.projected_points:
            projected_total = record.projected_points

        name = resolve_team_name(roster, users_by_id)
        owner = users_by_id.get(roster.owner_id) if roster.owner_id else None
        return TeamSnapshot(
            team_id=roster.roster_id,
            name=name,
            owner_name=(owner.display_name if owner and owner.display_name else name),
            avatar_url=resolve_avatar(roster, users_by_id),
            record=roster.record,
            current_score=current_total,
            projected_score=projected_total,
            roster=tuple(players),
        )

    def stat_ids_for(self, roster: RosterRecord | None, record: MatchupRecord | None) -> set[str]:
        """IDs to request from the StatsProvider for one team."""
        if record is not None:
            ids = set(record.players) | set(record.starters)
        elif roster is not None:
            ids = set(roster.players) | set(roster.starters)
        else:
            return set()
        stat_ids = set()
        for pid in ids:
            info = self.player_info(roster, pid)
            stat_ids.add(info.sleeper_id or pid)
        return stat_ids


def matchup_status(*teams: TeamSnapshot | None) -> MatchupStatus:
    """Derive matchup status from starters' game states."""
    states = []
    scored = False
    for team in teams:
        if team is None:
            continue
        scored = scored or team.current_score > 0
        states.extend(p.game_status for p in team.starters if p.game_status)

    if GAME_IN in states:
        return MatchupStatus.LIVE
    if states and all(s == GAME_POST for s in states):
        return MatchupStatus.COMPLETE
    if not scored and all(s == GAME_PRE for s in states):
        return MatchupStatus.UPCOMING
    return MatchupStatus.LIVE
