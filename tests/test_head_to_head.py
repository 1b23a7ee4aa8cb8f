"""Tests for head-to-head grouping and matchup assembly."""

from warroom.consumers.reconcile import TeamBuilder, build_head_to_head, group_matchups, scoring_weights
from warroom.consumers.reconcile.teams import ScoringContext, matchup_status
from warroom.core import CacheKey, MatchupRecord, MatchupStatus, Platform, RosterRecord, UserRecord

from tests.fakes import FakeStats, make_player, make_team

KEY = CacheKey("L1", Platform.SLEEPER, 2025, 6)


def record(roster_id: str, matchup_id: str | None, starters=("p1",)) -> MatchupRecord:
    return MatchupRecord(roster_id=roster_id, matchup_id=matchup_id, starters=starters, players=starters)


def context(**kwargs) -> ScoringContext:
    return ScoringContext(league_id="L1", week=6, year=2025, weights=scoring_weights(None), **kwargs)


class TestGroupMatchups:
    def test_pairs_by_matchup_id(self):
        pairs = group_matchups(
            [record("4", "2"), record("1", "1"), record("3", "2"), record("2", "1")], "L1"
        )
        assert [(m, a.roster_id, b.roster_id) for m, a, b in pairs] == [
            ("1", "1", "2"),
            ("2", "3", "4"),
        ]

    def test_malformed_group_is_skipped(self, caplog):
        """A three-entry group is dropped with a warning, not guessed at."""
        pairs = group_matchups(
            [record("1", "1"), record("2", "1"), record("3", "1"), record("4", "2"), record("5", "2")],
            "L1",
        )
        assert [m for m, _, _ in pairs] == ["2"]
        assert "has 3 entries" in caplog.text

    def test_records_without_pairing_key_are_ignored(self):
        assert group_matchups([record("1", None), record("2", "1")], "L1") == []


class TestBuildHeadToHead:
    def setup_method(self):
        self.rosters = [
            RosterRecord(roster_id="1", owner_id="u1", players=("a1", "a2"), starters=("a1",)),
            RosterRecord(roster_id="2", owner_id="u2", players=("b1",), starters=("b1",)),
        ]
        self.users = [UserRecord("u1", "alice"), UserRecord("u2", "bob")]
        self.records = [
            MatchupRecord(roster_id="1", matchup_id="1", starters=("a1",), players=("a1", "a2")),
            MatchupRecord(roster_id="2", matchup_id="1", starters=("b1",), players=("b1",)),
        ]
        stats = FakeStats({"a1": {"rec": 5, "rec_yd": 80}, "a2": {"rush_td": 2}, "b1": {"pass_yd": 300}})
        self.builder = TeamBuilder(stats_provider=stats)

    def build(self, my_team_id: str | None = None):
        ctx = context()
        self.builder.load_stat_lines(ctx, {"a1", "a2", "b1"})
        return build_head_to_head(
            KEY, "League", self.records, self.rosters, self.users, self.builder, ctx, my_team_id
        )

    def test_scores_only_starters(self):
        (snapshot,) = self.build()
        assert snapshot.my_team.current_score == 13.0
        assert snapshot.opponent_team.current_score == 12.0
        bench = [p for p in snapshot.my_team.roster if not p.is_starter]
        assert [p.player_id for p in bench] == ["a2"]
        assert bench[0].current_score == 12.0

    def test_my_side_comes_first(self):
        (snapshot,) = self.build(my_team_id="2")
        assert snapshot.my_team.team_id == "2"
        assert snapshot.my_team.name == "bob"

    def test_missing_roster_skips_matchup(self):
        self.rosters = self.rosters[:1]
        assert self.build() == []

    def test_player_without_stats_scores_zero(self):
        self.builder = TeamBuilder(stats_provider=FakeStats({}))
        (snapshot,) = self.build()
        assert snapshot.my_team.current_score == 0.0
        assert all(p.current_score == 0.0 for p in snapshot.my_team.roster)

    def test_failed_stat_lookup_scores_zero(self):
        self.builder = TeamBuilder(stats_provider=FakeStats({"b1": {"pass_yd": 300}}, failing={"a1"}))
        (snapshot,) = self.build()
        assert snapshot.my_team.current_score == 0.0
        assert snapshot.opponent_team.current_score == 12.0


class TestMatchupStatus:
    def test_any_game_in_progress_is_live(self):
        team = make_team("1", 10.0, (make_player("p1", game_status="post"), make_player("p2", game_status="in")))
        assert matchup_status(team) == MatchupStatus.LIVE

    def test_all_games_final_is_complete(self):
        team = make_team("1", 10.0, (make_player("p1", game_status="post"),))
        assert matchup_status(team, None) == MatchupStatus.COMPLETE

    def test_unscored_pregame_is_upcoming(self):
        team = make_team("1", 0.0, (make_player("p1", game_status="pre"),))
        assert matchup_status(team) == MatchupStatus.UPCOMING
