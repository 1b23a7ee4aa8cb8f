"""Error taxonomy.

NetworkError is recoverable (fallback or "could not refresh").
ReconciliationGap is recovered locally by skipping the affected unit.
IdentityResolutionFailure means the league needs setup; it is never a crash.
"""


class WarRoomError(Exception):
    """Base class for all library errors."""


class NetworkError(WarRoomError):
    """Upstream fetch failed (timeout, HTTP status, transport or decode)."""

    def __init__(
        self,
        url: str,
        reason: str,
        status_code: int | None = None,
        detail: str | None = None,
    ):
        self.url = url
        self.reason = reason  # timeout, http, transport, decode, rate_limited
        self.status_code = status_code
        self.detail = detail
        message = f"{reason} error for {url}"
        if status_code is not None:
            message += f" (HTTP {status_code})"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class ReconciliationGap(WarRoomError):
    """Expected data is missing for one unit (matchup group, roster, team)."""

    def __init__(self, league_id: str, detail: str):
        self.league_id = league_id
        self.detail = detail
        super().__init__(f"League {league_id}: {detail}")


class IdentityResolutionFailure(WarRoomError):
    """The user's team could not be identified in a league."""

    def __init__(self, league_id: str, platform: str):
        self.league_id = league_id
        self.platform = platform
        super().__init__(f"Could not identify user's team in {platform} league {league_id}")
