"""Sleeper platform adapter.

Translates Sleeper JSON into core records. Sleeper identifies the user's
team by owner_id string equality against roster records.
"""

import logging
import threading

from warroom.core import (
    BracketMatch,
    LeagueDescriptor,
    MatchupRecord,
    Platform,
    PlatformClient,
    RosterRecord,
    UserRecord,
)
from warroom.core.interfaces import DEFAULT_PLAYOFF_WEEK_START
from warroom.providers.sleeper.client import SleeperClient, avatar_url

logger = logging.getLogger(__name__)

# Sleeper league settings.type for guillotine ("chopped") leagues
GUILLOTINE_LEAGUE_TYPE = 3
ELIMINATION_SETTING_KEYS = ("type", "is_chopped", "isChoppedLeague")

# Sleeper fills empty lineup slots with "0"
EMPTY_SLOT = "0"


def _ids(values: list | None) -> tuple[str, ...]:
    return tuple(str(v) for v in (values or []) if v is not None and str(v) != EMPTY_SLOT)


def _bracket_team(value) -> str | None:
    # Unresolved slots are {"w": m} / {"l": m} references to earlier games
    if isinstance(value, int | str):
        return str(value)
    return None


class SleeperPlatform(PlatformClient):
    """Sleeper implementation of PlatformClient."""

    def __init__(self, client: SleeperClient | None = None):
        self._client = client or SleeperClient()
        self._user_ids: dict[str, str] = {}
        self._user_lock = threading.Lock()

    @property
    def platform(self) -> Platform:
        return Platform.SLEEPER

    def resolve_user_id(self, identity: str) -> str | None:
        """Resolve a username (or ID) to a Sleeper user_id, cached."""
        with self._user_lock:
            if identity in self._user_ids:
                return self._user_ids[identity]
        user = self._client.get_user(identity)
        if not user or not user.get("user_id"):
            logger.warning("[SLEEPER] Unknown user '%s'", identity)
            return None
        user_id = str(user["user_id"])
        with self._user_lock:
            self._user_ids[identity] = user_id
        return user_id

    def fetch_leagues(self, identity: str, season: int) -> list[LeagueDescriptor]:
        user_id = self.resolve_user_id(identity)
        if not user_id:
            return []

        descriptors = []
        for league in self._client.get_user_leagues(user_id, season):
            league_id = league.get("league_id")
            if not league_id:
                continue
            descriptors.append(
                LeagueDescriptor(
                    id=str(league_id),
                    name=league.get("name") or f"League {league_id}",
                    platform=Platform.SLEEPER,
                    season_year=int(league.get("season") or season),
                    total_teams=int(league.get("total_rosters") or 0),
                    settings=league.get("settings") or {},
                    scoring_settings=league.get("scoring_settings") or {},
                )
            )
        logger.info("[SLEEPER] Found %d leagues for %s (%d)", len(descriptors), identity, season)
        return descriptors

    def fetch_league(self, league_id: str, season: int | None = None) -> dict:
        return self._client.get_league(league_id)

    def fetch_rosters(self, league_id: str, week: int | None = None) -> list[RosterRecord]:
        rosters = []
        for raw in self._client.get_rosters(league_id):
            if raw.get("roster_id") is None:
                continue
            owner_id = str(raw["owner_id"]) if raw.get("owner_id") else None
            co_owners = _ids(raw.get("co_owners"))
            settings = raw.get("settings") or {}
            metadata = raw.get("metadata") or {}
            rosters.append(
                RosterRecord(
                    roster_id=str(raw["roster_id"]),
                    owner_id=owner_id,
                    owner_ids=((owner_id,) if owner_id else ()) + co_owners,
                    players=_ids(raw.get("players")),
                    starters=_ids(raw.get("starters")),
                    wins=int(settings.get("wins") or 0),
                    losses=int(settings.get("losses") or 0),
                    ties=int(settings.get("ties") or 0),
                    team_name=metadata.get("team_name"),
                    owner_name=metadata.get("owner_name"),
                )
            )
        return rosters

    def fetch_matchups(self, league_id: str, week: int) -> list[MatchupRecord]:
        records = []
        for raw in self._client.get_matchups(league_id, week):
            if raw.get("roster_id") is None:
                continue
            matchup_id = raw.get("matchup_id")
            projected = raw.get("projected_points")
            records.append(
                MatchupRecord(
                    roster_id=str(raw["roster_id"]),
                    matchup_id=str(matchup_id) if matchup_id is not None else None,
                    points=float(raw.get("points") or 0.0),
                    projected_points=float(projected) if projected is not None else None,
                    starters=_ids(raw.get("starters")),
                    players=_ids(raw.get("players")),
                )
            )
        return records

    def fetch_users(self, league_id: str) -> list[UserRecord]:
        users = []
        for raw in self._client.get_users(league_id):
            if not raw.get("user_id"):
                continue
            metadata = raw.get("metadata") or {}
            users.append(
                UserRecord(
                    user_id=str(raw["user_id"]),
                    display_name=raw.get("display_name"),
                    avatar=metadata.get("avatar") or avatar_url(raw.get("avatar")),
                    team_name=metadata.get("team_name"),
                )
            )
        return users

    def fetch_winners_bracket(self, league_id: str, week: int) -> list[BracketMatch]:
        matches = []
        for raw in self._client.get_winners_bracket(league_id):
            matches.append(
                BracketMatch(
                    round=int(raw.get("r") or 0),
                    team1=_bracket_team(raw.get("t1")),
                    team2=_bracket_team(raw.get("t2")),
                    winner=_bracket_team(raw.get("w")),
                    loser=_bracket_team(raw.get("l")),
                )
            )
        return matches

    def identify_my_team(self, rosters: list[RosterRecord], my_identity: str) -> str | None:
        for roster in rosters:
            if roster.owner_id == my_identity:
                return roster.roster_id

        # Identity may be a username; resolve once and retry
        user_id = self.resolve_user_id(my_identity)
        if user_id and user_id != my_identity:
            for roster in rosters:
                if roster.owner_id == user_id:
                    return roster.roster_id
        return None

    def is_elimination_format(self, settings: dict) -> bool | None:
        if not any(key in settings for key in ELIMINATION_SETTING_KEYS):
            return None
        return (
            settings.get("type") == GUILLOTINE_LEAGUE_TYPE
            or bool(settings.get("is_chopped"))
            or bool(settings.get("isChoppedLeague"))
        )

    def playoff_week_start(self, descriptor: LeagueDescriptor) -> int:
        return int(descriptor.settings.get("playoff_week_start") or DEFAULT_PLAYOFF_WEEK_START)

    def close(self) -> None:
        self._client.close()
