"""Application settings.

Settings are organized into logical groups and loaded from environment
variables, so the coordinator and its collaborators can be wired explicitly
at process start.

Environment variables:
    WARROOM_HTTP_TIMEOUT: Request timeout in seconds (default: 10)
    WARROOM_HTTP_RETRY_COUNT: Attempts per request (default: 1, no retries)
    WARROOM_RATE_LIMIT_RETRIES: Retries after HTTP 429 (default: 3)
    WARROOM_MAX_CONNECTIONS: Connection pool size (default: 20)
    WARROOM_LIVE_TTL: Cache TTL in seconds while games are live (default: 90)
    WARROOM_IDLE_TTL: Cache TTL in seconds otherwise (default: 300)
    WARROOM_REFRESH_WORKERS: Concurrent league fetches (default: 3)
    WARROOM_STATS_WORKERS: Concurrent player-stat lookups (default: 3)
    WARROOM_SCHEDULER_ENABLED: Run background auto-refresh (default: true)
    WARROOM_SEASON: Season year (default: current year)
    WARROOM_WEEK: NFL week to track (default: current week from Sleeper)
    WARROOM_SLEEPER_USERNAME / WARROOM_SLEEPER_USER_ID: Sleeper identity
    WARROOM_ESPN_SWID / WARROOM_ESPN_S2: ESPN cookies
    WARROOM_ESPN_LEAGUE_IDS: Comma-separated ESPN league IDs
    WARROOM_LOG_LEVEL: Root log level (default: INFO)
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class HTTPSettings:
    """Upstream HTTP settings."""

    timeout: float = 10.0
    retry_count: int = 1
    rate_limit_retries: int = 3
    max_connections: int = 20


@dataclass
class CacheSettings:
    """Snapshot cache settings."""

    live_ttl_seconds: float = 90.0
    idle_ttl_seconds: float = 300.0
    refresh_workers: int = 3
    stats_workers: int = 3


@dataclass
class SchedulerSettings:
    """Background auto-refresh settings."""

    enabled: bool = True


@dataclass
class CredentialSettings:
    """Per-platform identity."""

    sleeper_username: str | None = None
    sleeper_user_id: str | None = None
    espn_swid: str | None = None
    espn_s2: str | None = None
    espn_league_ids: list[str] = field(default_factory=list)

    @property
    def sleeper_identity(self) -> str | None:
        return self.sleeper_user_id or self.sleeper_username


@dataclass
class Settings:
    """Complete application settings."""

    season: int = field(default_factory=lambda: date.today().year)
    week: int | None = None
    log_level: str = "INFO"
    http: HTTPSettings = field(default_factory=HTTPSettings)
    cache: CacheSettings = field(default_factory=CacheSettings)
    scheduler: SchedulerSettings = field(default_factory=SchedulerSettings)
    credentials: CredentialSettings = field(default_factory=CredentialSettings)


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build Settings from environment variables.

    Args:
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        Settings with defaults for anything unset
    """
    env = os.environ if environ is None else environ
    settings = Settings()

    if "WARROOM_SEASON" in env:
        settings.season = int(env["WARROOM_SEASON"])
    if env.get("WARROOM_WEEK"):
        settings.week = int(env["WARROOM_WEEK"])
    settings.log_level = env.get("WARROOM_LOG_LEVEL", settings.log_level).upper()

    settings.http = HTTPSettings(
        timeout=float(env.get("WARROOM_HTTP_TIMEOUT", 10.0)),
        retry_count=int(env.get("WARROOM_HTTP_RETRY_COUNT", 1)),
        rate_limit_retries=int(env.get("WARROOM_RATE_LIMIT_RETRIES", 3)),
        max_connections=int(env.get("WARROOM_MAX_CONNECTIONS", 20)),
    )
    settings.cache = CacheSettings(
        live_ttl_seconds=float(env.get("WARROOM_LIVE_TTL", 90.0)),
        idle_ttl_seconds=float(env.get("WARROOM_IDLE_TTL", 300.0)),
        refresh_workers=int(env.get("WARROOM_REFRESH_WORKERS", 3)),
        stats_workers=int(env.get("WARROOM_STATS_WORKERS", 3)),
    )
    settings.scheduler = SchedulerSettings(
        enabled=_as_bool(env.get("WARROOM_SCHEDULER_ENABLED", "true")),
    )

    league_ids = env.get("WARROOM_ESPN_LEAGUE_IDS", "")
    settings.credentials = CredentialSettings(
        sleeper_username=env.get("WARROOM_SLEEPER_USERNAME") or None,
        sleeper_user_id=env.get("WARROOM_SLEEPER_USER_ID") or None,
        espn_swid=env.get("WARROOM_ESPN_SWID") or None,
        espn_s2=env.get("WARROOM_ESPN_S2") or None,
        espn_league_ids=[x.strip() for x in league_ids.split(",") if x.strip()],
    )
    return settings


def configure_logging(level: str = "INFO") -> None:
    """Install a root handler at the given level."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
