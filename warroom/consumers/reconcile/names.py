"""Team display-name resolution.

Priority:
1. Display name of the roster owner (user lookup by owner_id)
2. Roster team name, unless it is a generic "Team N"
3. Roster owner name
4. Display name of a co-owner, unless generic
5. "Team {roster_id}"
"""

import re

from warroom.core import RosterRecord, UserRecord

GENERIC_NAME_PATTERN = re.compile(r"^(team|manager)\s*\d+$", re.IGNORECASE)


def is_generic_name(name: str | None) -> bool:
    if not name or not name.strip():
        return True
    return bool(GENERIC_NAME_PATTERN.match(name.strip()))


def fallback_name(roster_id: str) -> str:
    return f"Team {roster_id}"


def resolve_team_name(roster: RosterRecord, users_by_id: dict[str, UserRecord]) -> str:
    """Resolve the best display name for a roster."""
    owner = users_by_id.get(roster.owner_id) if roster.owner_id else None
    if owner and owner.display_name:
        return owner.display_name

    if roster.team_name and not is_generic_name(roster.team_name):
        return roster.team_name

    if roster.owner_name:
        return roster.owner_name

    for owner_id in roster.owner_ids:
        if owner_id == roster.owner_id:
            continue
        co_owner = users_by_id.get(owner_id)
        if co_owner and not is_generic_name(co_owner.display_name):
            return co_owner.display_name

    return fallback_name(roster.roster_id)


def resolve_avatar(roster: RosterRecord, users_by_id: dict[str, UserRecord]) -> str | None:
    if roster.avatar_url:
        return roster.avatar_url
    owner = users_by_id.get(roster.owner_id) if roster.owner_id else None
    return owner.avatar if owner else None
