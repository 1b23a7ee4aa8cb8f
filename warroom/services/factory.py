"""Process-start wiring.

Builds every collaborator once from Settings and hands them to the
coordinator explicitly. Platforms without an identity are left out.
"""

import logging

from warroom.config import Settings
from warroom.core import NetworkError, Platform
from warroom.consumers.cache import SnapshotCoordinator
from warroom.consumers.reconcile import LeagueReconciler
from warroom.providers.espn import (
    ESPNFantasyClient,
    ESPNGameStatusProvider,
    ESPNPlatform,
    ESPNScoreboardClient,
)
from warroom.providers.sleeper import (
    SleeperClient,
    SleeperPlatform,
    SleeperPlayerDirectory,
    SleeperStatsProvider,
)
from warroom.services.player_ids import PlayerIdMapper

logger = logging.getLogger(__name__)


def _http_kwargs(settings: Settings) -> dict:
    return {
        "timeout": settings.http.timeout,
        "retry_count": settings.http.retry_count,
        "rate_limit_retries": settings.http.rate_limit_retries,
        "max_connections": settings.http.max_connections,
    }


def create_coordinator(settings: Settings) -> SnapshotCoordinator:
    """Build a SnapshotCoordinator with one reconciler per configured platform."""
    credentials = settings.credentials
    http = _http_kwargs(settings)

    sleeper_client = SleeperClient(**http)
    directory = SleeperPlayerDirectory(sleeper_client)
    stats = SleeperStatsProvider(sleeper_client)
    game_status = ESPNGameStatusProvider(ESPNScoreboardClient(**http))

    reconcilers: dict[Platform, LeagueReconciler] = {}
    identities: dict[Platform, str] = {}

    if credentials.sleeper_identity:
        reconcilers[Platform.SLEEPER] = LeagueReconciler(
            SleeperPlatform(sleeper_client),
            stats_provider=stats,
            game_status_provider=game_status,
            player_directory=directory,
            stats_workers=settings.cache.stats_workers,
        )
        identities[Platform.SLEEPER] = credentials.sleeper_identity

    if credentials.espn_swid and credentials.espn_league_ids:
        espn_client = ESPNFantasyClient(credentials.espn_swid, credentials.espn_s2, **http)
        reconcilers[Platform.ESPN] = LeagueReconciler(
            ESPNPlatform(espn_client, season=settings.season, league_ids=credentials.espn_league_ids),
            game_status_provider=game_status,
            player_directory=directory,
            id_mapper=PlayerIdMapper(directory),
            stats_workers=settings.cache.stats_workers,
        )
        identities[Platform.ESPN] = credentials.espn_swid

    if not reconcilers:
        logger.warning("No platform credentials configured; nothing will be tracked")

    return SnapshotCoordinator(
        reconcilers,
        identities,
        live_ttl=settings.cache.live_ttl_seconds,
        idle_ttl=settings.cache.idle_ttl_seconds,
        max_workers=settings.cache.refresh_workers,
    )


def current_week(settings: Settings, client: SleeperClient | None = None) -> int:
    """Week to track: WARROOM_WEEK, else Sleeper's NFL state, else week 1."""
    if settings.week:
        return settings.week
    owned = client is None
    client = client or SleeperClient(**_http_kwargs(settings))
    try:
        state = client.get_nfl_state()
    except NetworkError as e:
        logger.warning("Could not read NFL state, defaulting to week 1: %s", e)
        return 1
    finally:
        if owned:
            client.close()
    return max(1, int(state.get("week") or state.get("display_week") or 1))
