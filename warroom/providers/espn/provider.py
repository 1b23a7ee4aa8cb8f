"""ESPN platform adapter.

ESPN serves rosters, matchups and members in one league payload, so the
adapter loads the payload once per (league, week) and slices it. The user's
team is the one whose owners list contains the SWID.
"""

import logging

from warroom.core import (
    BracketMatch,
    LeagueDescriptor,
    MatchupRecord,
    Platform,
    PlatformClient,
    PlayerInfo,
    RosterRecord,
    UserRecord,
)
from warroom.providers.espn.client import ESPNFantasyClient
from warroom.providers.espn.constants import (
    BENCH_SLOT,
    LINEUP_SLOTS,
    POSITIONS,
    PRO_TEAMS,
    STARTER_SLOT_IDS,
    STAT_SOURCE_ACTUAL,
    STAT_SOURCE_PROJECTED,
    WINNERS_BRACKET,
)
from warroom.utilities.cache import TTLCache, make_cache_key

logger = logging.getLogger(__name__)

# Rosters, matchups and users for one hydration come from the same payload
CACHE_TTL_LEAGUE_VIEW = 5

# ESPN projections are unavailable for some players; estimate from actuals
PROJECTION_FALLBACK_FACTOR = 1.1


def normalize_swid(swid: str) -> str:
    return swid.strip().strip("{}").upper()


def manager_name(member: dict) -> str | None:
    """Member display name, or None when ESPN only has a placeholder."""
    first = (member.get("firstName") or "").strip()
    last = (member.get("lastName") or "").strip()
    name = f"{first} {last}".strip() if first and last else (member.get("displayName") or "")
    if name.startswith("Manager ") or len(name) <= 4 or name.lower().startswith("espnfan"):
        return None
    return name


def team_name(team: dict) -> str | None:
    name = team.get("name") or " ".join(
        part for part in (team.get("location"), team.get("nickname")) if part
    )
    if not name or name.startswith("Team "):
        return None
    return name


def _week_stat(stats: list, week: int | None, source: int) -> float | None:
    for stat in stats or []:
        if stat.get("statSourceId") != source:
            continue
        if week is not None and stat.get("scoringPeriodId") != week:
            continue
        total = stat.get("appliedTotal")
        if total is not None:
            return float(total)
    return None


class ESPNPlatform(PlatformClient):
    """ESPN implementation of PlatformClient."""

    reports_player_points = True

    def __init__(
        self,
        client: ESPNFantasyClient | None = None,
        season: int | None = None,
        league_ids: list[str] | None = None,
    ):
        self._client = client or ESPNFantasyClient()
        self._season = season
        self._league_ids = list(league_ids or [])
        self._seasons: dict[str, int] = {}
        self._views = TTLCache(default_ttl=CACHE_TTL_LEAGUE_VIEW)

    @property
    def platform(self) -> Platform:
        return Platform.ESPN

    def _season_for(self, league_id: str, season: int | None = None) -> int:
        if season is not None:
            return season
        if league_id in self._seasons:
            return self._seasons[league_id]
        if self._season is None:
            raise ValueError(f"No season known for ESPN league {league_id}")
        return self._season

    def _league_view(self, league_id: str, week: int | None) -> dict:
        season = self._season_for(league_id)
        cache_key = make_cache_key(season, league_id, week)
        cached = self._views.get(cache_key)
        if cached is not None:
            return cached
        payload = self._client.get_league(season, league_id, week=week)
        self._views.set(cache_key, payload)
        return payload

    def fetch_leagues(self, identity: str, season: int) -> list[LeagueDescriptor]:
        """ESPN has no discovery endpoint; describe the configured leagues."""
        descriptors = []
        for league_id in self._league_ids:
            raw = self.fetch_league(league_id, season)
            settings = raw.get("settings") or {}
            teams = raw.get("teams") or []
            descriptors.append(
                LeagueDescriptor(
                    id=str(league_id),
                    name=settings.get("name") or f"ESPN League {league_id}",
                    platform=Platform.ESPN,
                    season_year=season,
                    total_teams=int(settings.get("size") or len(teams)),
                    settings=settings,
                )
            )
        logger.info("[ESPN] Described %d configured leagues (%d)", len(descriptors), season)
        return descriptors

    def fetch_league(self, league_id: str, season: int | None = None) -> dict:
        season = self._season_for(league_id, season)
        self._seasons[league_id] = season
        return self._client.get_league(season, league_id)

    def fetch_rosters(self, league_id: str, week: int | None = None) -> list[RosterRecord]:
        payload = self._league_view(league_id, week)
        rosters = []
        for team in payload.get("teams") or []:
            if team.get("id") is None:
                continue
            rosters.append(self._parse_roster(team, week))
        return rosters

    def _parse_roster(self, team: dict, week: int | None) -> RosterRecord:
        owners = tuple(str(o) for o in team.get("owners") or [])
        players: list[str] = []
        starters: list[str] = []
        slots: dict[str, str] = {}
        player_info: dict[str, PlayerInfo] = {}

        for entry in (team.get("roster") or {}).get("entries") or []:
            player = (entry.get("playerPoolEntry") or {}).get("player") or {}
            if player.get("id") is None:
                continue
            player_id = str(player["id"])
            slot_id = entry.get("lineupSlotId")
            players.append(player_id)
            slots[player_id] = LINEUP_SLOTS.get(slot_id, BENCH_SLOT)
            if slot_id in STARTER_SLOT_IDS:
                starters.append(player_id)
            player_info[player_id] = PlayerInfo(
                player_id=player_id,
                name=player.get("fullName") or player_id,
                position=POSITIONS.get(player.get("defaultPositionId")),
                nfl_team=PRO_TEAMS.get(player.get("proTeamId")),
                injury_status=player.get("injuryStatus"),
                espn_id=player_id,
            )

        overall = (team.get("record") or {}).get("overall") or {}
        return RosterRecord(
            roster_id=str(team["id"]),
            owner_id=owners[0] if owners else None,
            owner_ids=owners,
            players=tuple(players),
            starters=tuple(starters),
            wins=int(overall.get("wins") or 0),
            losses=int(overall.get("losses") or 0),
            ties=int(overall.get("ties") or 0),
            team_name=team_name(team),
            avatar_url=team.get("logo"),
            player_info=player_info,
            slots=slots,
        )

    def fetch_matchups(self, league_id: str, week: int) -> list[MatchupRecord]:
        payload = self._league_view(league_id, week)
        teams = {str(t["id"]): t for t in payload.get("teams") or [] if t.get("id") is not None}

        records = []
        for entry in payload.get("schedule") or []:
            if entry.get("matchupPeriodId") != week:
                continue
            matchup_id = str(entry.get("id"))
            # Bye weeks have no away side and yield a single record
            for side in ("home", "away"):
                half = entry.get(side)
                if not half or half.get("teamId") is None:
                    continue
                team = teams.get(str(half["teamId"]))
                if team is None:
                    logger.debug("[ESPN] Schedule references unknown team %s", half["teamId"])
                    continue
                records.append(self._parse_matchup_side(matchup_id, half, team, week))
        return records

    def _parse_matchup_side(self, matchup_id: str, half: dict, team: dict, week: int) -> MatchupRecord:
        roster = self._parse_roster(team, week)
        points: dict[str, float] = {}
        projections: dict[str, float] = {}
        for entry in (team.get("roster") or {}).get("entries") or []:
            player = (entry.get("playerPoolEntry") or {}).get("player") or {}
            if player.get("id") is None:
                continue
            player_id = str(player["id"])
            stats = player.get("stats") or []
            actual = _week_stat(stats, week, STAT_SOURCE_ACTUAL)
            projected = _week_stat(stats, week, STAT_SOURCE_PROJECTED)
            points[player_id] = actual or 0.0
            if projected is not None:
                projections[player_id] = projected
            else:
                projections[player_id] = round((actual or 0.0) * PROJECTION_FALLBACK_FACTOR, 2)

        total = half.get("totalPointsLive")
        if total is None:
            total = half.get("totalPoints")
        projected_total = half.get("totalProjectedPointsLive")
        return MatchupRecord(
            roster_id=roster.roster_id,
            matchup_id=matchup_id,
            points=float(total or 0.0),
            projected_points=float(projected_total) if projected_total is not None else None,
            starters=roster.starters,
            players=roster.players,
            player_points=points,
            player_projections=projections,
            slots=roster.slots,
        )

    def fetch_users(self, league_id: str) -> list[UserRecord]:
        payload = self._league_view(league_id, None)
        users = []
        for member in payload.get("members") or []:
            if not member.get("id"):
                continue
            users.append(
                UserRecord(
                    user_id=str(member["id"]),
                    display_name=manager_name(member),
                )
            )
        return users

    def fetch_winners_bracket(self, league_id: str, week: int) -> list[BracketMatch]:
        payload = self._league_view(league_id, week)
        playoff_entries = [
            e for e in payload.get("schedule") or [] if e.get("playoffTierType") == WINNERS_BRACKET
        ]
        if not playoff_entries:
            return []

        first_period = min(e.get("matchupPeriodId") or 0 for e in playoff_entries)
        matches = []
        for entry in playoff_entries:
            home = str((entry.get("home") or {}).get("teamId", "")) or None
            away = str((entry.get("away") or {}).get("teamId", "")) or None
            winner = loser = None
            if entry.get("winner") == "HOME":
                winner, loser = home, away
            elif entry.get("winner") == "AWAY":
                winner, loser = away, home
            matches.append(
                BracketMatch(
                    round=(entry.get("matchupPeriodId") or 0) - first_period + 1,
                    team1=home,
                    team2=away,
                    winner=winner,
                    loser=loser,
                )
            )
        return matches

    def identify_my_team(self, rosters: list[RosterRecord], my_identity: str) -> str | None:
        swid = normalize_swid(my_identity)
        for roster in rosters:
            if any(normalize_swid(owner) == swid for owner in roster.owner_ids):
                return roster.roster_id
        return None

    def close(self) -> None:
        self._client.close()
