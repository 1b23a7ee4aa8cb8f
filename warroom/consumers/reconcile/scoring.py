"""Fantasy scoring from raw stat lines."""

import math

# PPR-style fallback used only when a league publishes no scoring settings
DEFAULT_SCORING: dict[str, float] = {
    "pass_yd": 0.04,
    "pass_td": 4.0,
    "pass_int": -1.0,
    "rush_yd": 0.1,
    "rush_td": 6.0,
    "rec": 1.0,
    "rec_yd": 0.1,
    "rec_td": 6.0,
    "fgm": 3.0,
    "xpm": 1.0,
    "def_td": 6.0,
    "def_int": 2.0,
    "def_fr": 2.0,
    "def_sack": 1.0,
    "def_safe": 2.0,
    "fum_lost": -1.0,
}


def scoring_weights(scoring_settings: dict | None) -> dict[str, float]:
    """League weights, or the default table when the league has none."""
    weights = {}
    for stat, value in (scoring_settings or {}).items():
        if isinstance(value, int | float) and not isinstance(value, bool):
            weights[stat] = float(value)
    return weights or dict(DEFAULT_SCORING)


def score_stats(stats: dict | None, weights: dict[str, float]) -> float:
    """Weighted sum of a stat line. Missing or unusable stats score 0.0."""
    if not stats:
        return 0.0
    total = 0.0
    for stat, value in stats.items():
        weight = weights.get(stat)
        if weight is None or not isinstance(value, int | float):
            continue
        contribution = float(value) * weight
        if math.isfinite(contribution):
            total += contribution
    return round(total, 2)
