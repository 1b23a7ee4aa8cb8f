"""League reconciliation.

Fetches raw rosters, matchups and users for one league week through a
PlatformClient and produces either a head-to-head MatchupSnapshot or an
elimination-format LeagueRanking. Platform differences live entirely in
the client.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor

from warroom.core import (
    CacheKey,
    GameStatusProvider,
    IdentityResolutionFailure,
    LeagueDescriptor,
    MatchupRecord,
    PlatformClient,
    PlayerDirectory,
    ReconciliationGap,
    RosterRecord,
    Snapshot,
    StatsProvider,
    TeamSnapshot,
    UserRecord,
)
from warroom.services import playoffs
from warroom.services.player_ids import PlayerIdMapper

from .elimination import build_ranking
from .head_to_head import build_head_to_head
from .scoring import scoring_weights
from .teams import ScoringContext, TeamBuilder

logger = logging.getLogger(__name__)


class LeagueReconciler:
    """Reconciles one platform's raw data into snapshots.

    Usage:
        reconciler = LeagueReconciler(SleeperPlatform(), stats_provider=stats)
        snapshot = reconciler.reconcile(descriptor, week=6, my_identity=user_id)
    """

    # Max parallel player-stat lookups
    MAX_STATS_WORKERS = 3

    def __init__(
        self,
        client: PlatformClient,
        stats_provider: StatsProvider | None = None,
        game_status_provider: GameStatusProvider | None = None,
        player_directory: PlayerDirectory | None = None,
        id_mapper: PlayerIdMapper | None = None,
        stats_workers: int | None = None,
    ):
        self._client = client
        self._stats_provider = stats_provider
        self._game_status_provider = game_status_provider
        self._player_directory = player_directory
        self._id_mapper = id_mapper
        self._stats_pool = ThreadPoolExecutor(
            max_workers=stats_workers or self.MAX_STATS_WORKERS,
            thread_name_prefix=f"{client.platform.value}-stats",
        )
        # Format verdicts and configs fetched to resolve ambiguous settings
        self._format_verdicts: dict[str, bool] = {}
        self._league_configs: dict[str, dict] = {}
        self._lock = threading.Lock()

    @property
    def client(self) -> PlatformClient:
        return self._client

    def _builder(self) -> TeamBuilder:
        return TeamBuilder(
            stats_provider=self._stats_provider,
            game_status_provider=self._game_status_provider,
            player_directory=self._player_directory,
            id_mapper=self._id_mapper,
            executor=self._stats_pool,
        )

    # -------------------------------------------------------------------------
    # League format
    # -------------------------------------------------------------------------

    def is_elimination_format(self, descriptor: LeagueDescriptor) -> bool:
        """Decide the league format.

        Settings decide when they can. Ambiguous settings trigger one fetch
        of the full league config; the verdict is kept for the league's
        lifetime.
        """
        verdict = self._client.is_elimination_format(descriptor.settings)
        if verdict is not None:
            return verdict

        with self._lock:
            if descriptor.id in self._format_verdicts:
                return self._format_verdicts[descriptor.id]

        config = self._client.fetch_league(descriptor.id, descriptor.season_year)
        verdict = bool(self._client.is_elimination_format(config.get("settings") or {}))
        with self._lock:
            self._format_verdicts[descriptor.id] = verdict
            self._league_configs[descriptor.id] = config
        logger.info(
            "[RECONCILE] League %s format resolved from full config: %s",
            descriptor.id,
            "elimination" if verdict else "head-to-head",
        )
        return verdict

    def _scoring_settings(self, descriptor: LeagueDescriptor) -> dict:
        if descriptor.scoring_settings:
            return descriptor.scoring_settings
        with self._lock:
            config = self._league_configs.get(descriptor.id) or {}
        return config.get("scoring_settings") or {}

    def playoff_week_start(self, descriptor: LeagueDescriptor) -> int:
        with self._lock:
            config = self._league_configs.get(descriptor.id)
        if config and not descriptor.settings and config.get("settings"):
            # Descriptor was registered bare; use the fetched settings
            descriptor = LeagueDescriptor(
                id=descriptor.id,
                name=descriptor.name,
                platform=descriptor.platform,
                season_year=descriptor.season_year,
                total_teams=descriptor.total_teams,
                settings=config["settings"],
            )
        return self._client.playoff_week_start(descriptor)

    # -------------------------------------------------------------------------
    # Reconciliation
    # -------------------------------------------------------------------------

    def reconcile(self, descriptor: LeagueDescriptor, week: int, my_identity: str) -> Snapshot:
        """Fetch and reconcile one league week.

        Raises:
            NetworkError: a platform fetch failed
            IdentityResolutionFailure: the user's team is not in the league
            ReconciliationGap: the user's matchup is missing and not explained
                by a playoff elimination
        """
        key = CacheKey(descriptor.id, descriptor.platform, descriptor.season_year, week)
        elimination = self.is_elimination_format(descriptor)

        rosters = self._client.fetch_rosters(descriptor.id, week)
        my_team_id = self._client.identify_my_team(rosters, my_identity)
        if my_team_id is None:
            raise IdentityResolutionFailure(descriptor.id, descriptor.platform.value)

        matchups = self._client.fetch_matchups(descriptor.id, week)
        users = self._client.fetch_users(descriptor.id)

        ctx = ScoringContext(
            league_id=descriptor.id,
            week=week,
            year=descriptor.season_year,
            weights=scoring_weights(self._scoring_settings(descriptor)),
            reports_player_points=self._client.reports_player_points,
        )
        builder = self._builder()
        if not ctx.reports_player_points:
            stat_ids: set[str] = set()
            records_by_roster = {m.roster_id: m for m in matchups}
            for roster in rosters:
                stat_ids |= builder.stat_ids_for(roster, records_by_roster.get(roster.roster_id))
            builder.load_stat_lines(ctx, stat_ids)

        if elimination:
            return self._reconcile_elimination(
                key, descriptor, rosters, matchups, users, my_team_id, builder, ctx
            )
        return self._reconcile_head_to_head(
            key, descriptor, rosters, matchups, users, my_team_id, builder, ctx
        )

    def _reconcile_head_to_head(
        self,
        key: CacheKey,
        descriptor: LeagueDescriptor,
        rosters: list[RosterRecord],
        matchups: list[MatchupRecord],
        users: list[UserRecord],
        my_team_id: str,
        builder: TeamBuilder,
        ctx: ScoringContext,
    ) -> Snapshot:
        snapshots = build_head_to_head(
            key, descriptor.name, matchups, rosters, users, builder, ctx, my_team_id
        )
        for snapshot in snapshots:
            if snapshot.my_team.team_id == my_team_id:
                return snapshot

        start = self.playoff_week_start(descriptor)
        if playoffs.is_playoff_week(key.week, start):
            bracket = self._client.fetch_winners_bracket(descriptor.id, key.week)
            round_number = playoffs.playoff_round(key.week, start)
            if playoffs.is_eliminated_from_playoffs(bracket, my_team_id, round_number):
                logger.info(
                    "[RECONCILE] League %s: team %s eliminated from winners bracket",
                    descriptor.id,
                    my_team_id,
                )
                my_team = self.build_team(rosters, my_team_id, users, builder, ctx)
                return playoffs.build_eliminated_snapshot(key, descriptor.name, my_team)

        raise ReconciliationGap(descriptor.id, f"no matchup for team {my_team_id} in week {key.week}")

    def _reconcile_elimination(
        self,
        key: CacheKey,
        descriptor: LeagueDescriptor,
        rosters: list[RosterRecord],
        matchups: list[MatchupRecord],
        users: list[UserRecord],
        my_team_id: str,
        builder: TeamBuilder,
        ctx: ScoringContext,
    ) -> Snapshot:
        records = {m.roster_id: m for m in matchups}
        users_by_id = {u.user_id: u for u in users}
        active: list[TeamSnapshot] = []
        eliminated: list[TeamSnapshot] = []

        for roster in rosters:
            record = records.get(roster.roster_id)
            team = builder.build(ctx, roster, record, users_by_id)
            has_starters = record is not None and bool(record.starters)
            if roster.owner_id and roster.players and has_starters:
                active.append(team)
            else:
                eliminated.append(team)

        return build_ranking(key, descriptor.name, active, eliminated, my_team_id)

    def build_team(
        self,
        rosters: list[RosterRecord],
        team_id: str,
        users: list[UserRecord],
        builder: TeamBuilder,
        ctx: ScoringContext,
    ) -> TeamSnapshot:
        roster = next((r for r in rosters if r.roster_id == team_id), None)
        if roster is None:
            raise ReconciliationGap(ctx.league_id, f"no roster for team {team_id}")
        return builder.build(ctx, roster, None, {u.user_id: u for u in users})

    def close(self) -> None:
        self._stats_pool.shutdown(wait=False, cancel_futures=True)
        self._client.close()
