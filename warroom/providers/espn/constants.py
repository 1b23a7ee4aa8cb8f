"""ESPN provider constants."""

# Map ESPN scoreboard status names to game states (pre, in, post)
STATUS_MAP = {
    "STATUS_SCHEDULED": "pre",
    "STATUS_DELAYED": "pre",
    "STATUS_POSTPONED": "pre",
    "STATUS_IN_PROGRESS": "in",
    "STATUS_HALFTIME": "in",
    "STATUS_END_PERIOD": "in",
    "STATUS_FINAL": "post",
    "STATUS_FINAL_OT": "post",
    "STATUS_CANCELED": "post",
}

# Fantasy lineup slot IDs -> display slot
LINEUP_SLOTS = {
    0: "QB",
    2: "RB",
    3: "RB",
    4: "WR",
    5: "WR",
    6: "TE",
    16: "D/ST",
    17: "K",
    23: "FLEX",
}
BENCH_SLOT = "BN"
STARTER_SLOT_IDS = frozenset({0, 2, 3, 4, 5, 6, 16, 17, 23})

# defaultPositionId -> position
POSITIONS = {
    1: "QB",
    2: "RB",
    3: "WR",
    4: "TE",
    5: "K",
    16: "DEF",
}

# proTeamId -> NFL abbreviation (as used by the ESPN scoreboard)
PRO_TEAMS = {
    1: "ATL",
    2: "BUF",
    3: "CHI",
    4: "CIN",
    5: "CLE",
    6: "DAL",
    7: "DEN",
    8: "DET",
    9: "GB",
    10: "TEN",
    11: "IND",
    12: "KC",
    13: "LV",
    14: "LAR",
    15: "MIA",
    16: "MIN",
    17: "NE",
    18: "NO",
    19: "NYG",
    20: "NYJ",
    21: "PHI",
    22: "ARI",
    23: "PIT",
    24: "LAC",
    25: "SF",
    26: "SEA",
    27: "TB",
    28: "WSH",
    29: "CAR",
    30: "JAX",
    33: "BAL",
    34: "HOU",
}

# Other platforms' abbreviations that differ from ESPN's
TEAM_ALIASES = {
    "WAS": "WSH",
    "JAC": "JAX",
    "LA": "LAR",
    "OAK": "LV",
}

# statSourceId values in player stat entries
STAT_SOURCE_ACTUAL = 0
STAT_SOURCE_PROJECTED = 1

WINNERS_BRACKET = "WINNERS_BRACKET"
