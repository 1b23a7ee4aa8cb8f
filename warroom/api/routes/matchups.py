"""Matchup API endpoints.

Provides endpoints over the snapshot coordinator:
- GET /matchups - Cached snapshots for the current week, display-sorted
- GET /matchups/status - Cache statistics
- GET /matchups/{platform}/{league_id}/{season}/{week} - Hydrate one league week
- POST /matchups/refresh - Trigger a refresh in the background
- POST /matchups/clear - Drop every cache entry
- POST /matchups/pause, /matchups/resume - Suspend/resume auto-refresh
"""

import logging
from concurrent.futures import TimeoutError as FutureTimeoutError

from fastapi import APIRouter, BackgroundTasks, HTTPException, Query, Request

from warroom.api.models import (
    CacheStatusResponse,
    LeagueRankingModel,
    MatchupModel,
    RefreshRequest,
    SnapshotResponse,
)
from warroom.consumers.cache import SnapshotCoordinator
from warroom.consumers.scheduler import RefreshScheduler
from warroom.core import (
    CacheKey,
    IdentityResolutionFailure,
    LeagueRanking,
    NetworkError,
    Platform,
    ReconciliationGap,
    Snapshot,
)
from warroom.services import derived_state
from warroom.services.derived_state import SortPreference

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/matchups")

# Seconds a request waits on a hydrate before giving up (the fetch continues)
HYDRATE_TIMEOUT = 30.0


def _coordinator(request: Request) -> SnapshotCoordinator:
    return request.app.state.coordinator


def _scheduler(request: Request) -> RefreshScheduler | None:
    return getattr(request.app.state, "scheduler", None)


def snapshot_response(snapshot: Snapshot, stale: bool = False) -> SnapshotResponse:
    """Wrap a snapshot with its derived state."""
    response = SnapshotResponse(
        format="elimination" if isinstance(snapshot, LeagueRanking) else "head_to_head",
        stale=stale,
        is_live=derived_state.is_live(snapshot),
        is_winning=derived_state.is_winning(snapshot),
        is_eliminated=derived_state.is_eliminated(snapshot),
        win_probability=derived_state.win_probability(snapshot),
    )
    if isinstance(snapshot, LeagueRanking):
        response.ranking = LeagueRankingModel.model_validate(snapshot)
    else:
        response.matchup = MatchupModel.model_validate(snapshot)
    return response


@router.get("")
def list_matchups(
    request: Request,
    preference: SortPreference = Query(SortPreference.WINNING_FIRST),
) -> list[SnapshotResponse]:
    """Cached snapshots for every warmed league, without fetching.

    Leagues with no data yet are omitted.
    """
    coordinator = _coordinator(request)
    week = coordinator.current_week
    if week is None:
        return []

    snapshots = []
    stale_keys = set()
    for descriptor in coordinator.descriptors():
        key = coordinator.key_for(descriptor, week)
        snapshot = coordinator.cached_snapshot(key)
        if snapshot is None:
            continue
        if coordinator.is_stale(key):
            stale_keys.add(key)
        snapshots.append(snapshot)

    ordered = derived_state.sort_order(snapshots, preference)
    return [snapshot_response(s, stale=s.key in stale_keys) for s in ordered]


@router.get("/status", response_model=CacheStatusResponse)
def get_status(request: Request) -> dict:
    """Cache statistics and scheduler state."""
    stats = _coordinator(request).stats()
    scheduler = _scheduler(request)
    return {
        **stats.to_dict(),
        "scheduler_running": bool(scheduler and scheduler.is_running),
        "scheduler_paused": bool(scheduler and scheduler.is_paused),
    }


@router.get("/{platform}/{league_id}/{season}/{week}")
def get_matchup(
    request: Request,
    platform: Platform,
    league_id: str,
    season: int,
    week: int,
) -> SnapshotResponse:
    """Hydrate one league week, fetching if the cache is not fresh."""
    coordinator = _coordinator(request)
    key = CacheKey(league_id, platform, season, week)

    try:
        snapshot = coordinator.hydrate(key, timeout=HYDRATE_TIMEOUT)
    except IdentityResolutionFailure as e:
        raise HTTPException(status_code=404, detail=str(e)) from None
    except ReconciliationGap as e:
        raise HTTPException(status_code=404, detail=str(e)) from None
    except NetworkError as e:
        raise HTTPException(status_code=502, detail=str(e)) from None
    except FutureTimeoutError:
        raise HTTPException(status_code=504, detail=f"Timed out hydrating {key}") from None

    return snapshot_response(snapshot, stale=coordinator.is_stale(key))


@router.post("/refresh")
def trigger_refresh(
    request: Request,
    background_tasks: BackgroundTasks,
    body: RefreshRequest | None = None,
) -> dict:
    """Refresh warmed leagues in the background.

    Check /matchups/status for the outcome.
    """
    coordinator = _coordinator(request)
    body = body or RefreshRequest()

    def run_refresh():
        result = coordinator.refresh(league_id=body.league_id, force=body.force)
        logger.info(
            "[API] Refresh finished: %d refreshed, %d failed",
            result["refreshed"],
            result["failed"],
        )

    background_tasks.add_task(run_refresh)
    return {
        "status": "started",
        "league_id": body.league_id,
        "force": body.force,
    }


@router.post("/clear")
def clear_caches(request: Request) -> dict:
    """Drop every cache entry (logout)."""
    _coordinator(request).clear_caches()
    return {"status": "cleared"}


@router.post("/pause")
def pause_refresh(request: Request) -> dict:
    """Suspend auto-refresh (client went to background)."""
    scheduler = _scheduler(request)
    if scheduler is None:
        raise HTTPException(status_code=409, detail="Scheduler is disabled")
    scheduler.pause()
    return {"status": "paused"}


@router.post("/resume")
def resume_refresh(request: Request) -> dict:
    """Resume auto-refresh (client back in foreground)."""
    scheduler = _scheduler(request)
    if scheduler is None:
        raise HTTPException(status_code=409, detail="Scheduler is disabled")
    scheduler.resume()
    return {"status": "resumed"}
