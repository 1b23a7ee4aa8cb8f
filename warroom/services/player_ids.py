"""Canonical ESPN -> Sleeper player ID mapping.

The Sleeper directory lists an espn_id for most players, but some players
appear more than once (duplicate directory rows with different ESPN IDs).
Duplicates are collapsed onto one canonical Sleeper player. Players with no
directory espn_id fall back to fuzzy name matching within the same position.

Uses rapidfuzz for matching and unidecode for accent folding.
"""

import logging
import re
import threading

from rapidfuzz import fuzz, process
from unidecode import unidecode

from warroom.providers.sleeper.players import SleeperPlayerDirectory

logger = logging.getLogger(__name__)

NAME_SUFFIXES = ("jr", "sr", "ii", "iii", "iv", "v")


def normalize_player_name(name: str) -> str:
    """Fold a player name for comparison.

    "Amon-Ra St. Brown" -> "amonra st brown"
    "Kenneth Walker III" -> "kenneth walker"
    """
    text = unidecode(name or "").lower()
    text = re.sub(r"['’.\-]", "", text)
    text = re.sub(r"[^\w\s]", " ", text)
    words = [w for w in text.split() if w not in NAME_SUFFIXES]
    return " ".join(words)


def _canonical_sort_key(player_id: str, raw: dict) -> tuple:
    # Active first, then better search rank, then has a team, then lowest ID
    is_active = (raw.get("status") or "").lower() == "active"
    search_rank = raw.get("search_rank")
    return (
        not is_active,
        search_rank if isinstance(search_rank, int) else 9999,
        raw.get("team") is None,
        player_id,
    )


class PlayerIdMapper:
    """Maps ESPN player IDs to canonical Sleeper IDs."""

    def __init__(self, directory: SleeperPlayerDirectory, threshold: float = 90.0):
        self._directory = directory
        self.threshold = threshold
        self._mapping: dict[str, str] | None = None
        self._by_position: dict[str, dict[str, str]] = {}
        self._fuzzy_cache: dict[tuple[str, str], str | None] = {}
        self._lock = threading.Lock()

    def _build(self) -> dict[str, str]:
        if self._mapping is not None:
            return self._mapping
        with self._lock:
            if self._mapping is not None:
                return self._mapping

            groups: dict[str, list[tuple[str, dict]]] = {}
            by_position: dict[str, dict[str, str]] = {}
            for player_id, raw in self._directory.raw_players().items():
                name = raw.get("full_name") or ""
                normalized = normalize_player_name(name)
                if not normalized:
                    continue
                position = raw.get("position") or ""
                by_position.setdefault(position, {}).setdefault(normalized, player_id)
                if raw.get("espn_id"):
                    groups.setdefault(normalized, []).append((player_id, raw))

            mapping: dict[str, str] = {}
            duplicates = 0
            for players in groups.values():
                canonical_id, _ = min(players, key=lambda p: _canonical_sort_key(*p))
                if len(players) > 1:
                    duplicates += 1
                for _, raw in players:
                    mapping[str(raw["espn_id"])] = canonical_id

            self._by_position = by_position
            self._mapping = mapping
            logger.info(
                "[IDMAP] Canonical ESPN->Sleeper mapping built (%d entries, %d duplicate names)",
                len(mapping),
                duplicates,
            )
            return mapping

    def sleeper_id_for(
        self,
        espn_id: str,
        name: str | None = None,
        position: str | None = None,
    ) -> str | None:
        """Resolve an ESPN player to a Sleeper ID.

        Args:
            espn_id: ESPN player ID
            name: Player name, used for fuzzy fallback
            position: Player position, narrows the fuzzy search

        Returns:
            Canonical Sleeper ID, or None if unresolved
        """
        mapping = self._build()
        if espn_id in mapping:
            return mapping[espn_id]
        if not name:
            return None

        normalized = normalize_player_name(name)
        cache_key = (normalized, position or "")
        with self._lock:
            if cache_key in self._fuzzy_cache:
                return self._fuzzy_cache[cache_key]

        candidates = self._by_position.get(position or "", {})
        match = None
        if candidates and normalized:
            result = process.extractOne(
                normalized,
                candidates.keys(),
                scorer=fuzz.token_sort_ratio,
                score_cutoff=self.threshold,
            )
            if result:
                match = candidates[result[0]]

        with self._lock:
            self._fuzzy_cache[cache_key] = match
        return match

    def refresh(self) -> None:
        """Drop the mapping so it is rebuilt on next lookup."""
        with self._lock:
            self._mapping = None
            self._by_position = {}
            self._fuzzy_cache = {}
