"""Tests for elimination-format ranking."""

from warroom.consumers.reconcile import build_ranking, elimination_zone_size, rank_teams
from warroom.core import CacheKey, EliminationStatus, Platform

from tests.fakes import make_team

KEY = CacheKey("chop", Platform.SLEEPER, 2025, 6)


def teams_with_scores(scores: list[float]):
    return [make_team(str(i + 1), score) for i, score in enumerate(scores)]


class TestZoneSize:
    def test_small_leagues_cut_one(self):
        assert elimination_zone_size(12) == 1
        assert elimination_zone_size(31) == 1

    def test_large_leagues_cut_two(self):
        assert elimination_zone_size(32) == 2
        assert elimination_zone_size(64) == 2


class TestRankTeams:
    def test_ranks_are_dense(self):
        """N active teams get exactly ranks 1..N."""
        rankings = rank_teams(teams_with_scores([50.0, 80.0, 80.0, 12.5, 99.9, 0.0, 64.2]))
        assert sorted(r.rank for r in rankings) == list(range(1, 8))

    def test_ties_break_by_roster_id(self):
        rankings = rank_teams([make_team("7", 80.0), make_team("3", 80.0), make_team("10", 80.0)])
        assert [r.team.team_id for r in rankings] == ["3", "7", "10"]

    def test_twelve_team_scenario(self):
        """Lowest scorer is critical with zero survival chance."""
        scores = [94.2, 88.1, 76.5, 72.0, 70.3, 66.6, 61.0, 58.4, 52.2, 47.9, 44.1, 40.0]
        rankings = rank_teams(teams_with_scores(scores))

        lowest = rankings[-1]
        assert lowest.weekly_score == 40.0
        assert lowest.elimination_status == EliminationStatus.CRITICAL
        assert lowest.survival_probability == 0.0
        assert lowest.in_elimination_zone
        # Points needed to pass the team above
        assert lowest.points_from_safety == -4.1

        second_lowest = rankings[-2]
        assert not second_lowest.in_elimination_zone
        assert second_lowest.points_from_safety == 4.1

        leader = rankings[0]
        assert leader.elimination_status == EliminationStatus.CHAMPION
        assert leader.points_from_safety == round(94.2 - 40.0, 2)

    def test_status_bands(self):
        rankings = rank_teams(teams_with_scores([float(100 - i) for i in range(8)]))
        statuses = [r.elimination_status for r in rankings]
        assert statuses == [
            EliminationStatus.CHAMPION,
            EliminationStatus.SAFE,
            EliminationStatus.SAFE,
            EliminationStatus.SAFE,
            EliminationStatus.WARNING,
            EliminationStatus.WARNING,
            EliminationStatus.DANGER,
            EliminationStatus.CRITICAL,
        ]

    def test_survival_probability_in_unit_range(self):
        rankings = rank_teams(teams_with_scores([float(i) for i in range(40)]))
        assert all(0.0 <= r.survival_probability <= 1.0 for r in rankings)
        assert sum(r.in_elimination_zone for r in rankings) == 2

    def test_survival_probability_by_rank(self):
        scores = [94.2, 88.1, 76.5, 72.0, 70.3, 66.6, 61.0, 58.4, 52.2, 47.9, 44.1, 40.0]
        rankings = rank_teams(teams_with_scores(scores))

        assert rankings[0].survival_probability == 11 / 12
        assert rankings[5].survival_probability == 0.5
        assert rankings[10].survival_probability == 1 / 12

    def test_safe_margin_measured_against_top_of_zone(self):
        # 32 teams put two in the zone; the higher of them is 2.0
        rankings = rank_teams(teams_with_scores([float(i + 1) for i in reversed(range(32))]))

        assert [r.in_elimination_zone for r in rankings[-3:]] == [False, True, True]
        assert rankings[-3].points_from_safety == 1.0
        assert rankings[0].points_from_safety == 30.0
        assert rankings[-1].points_from_safety == -1.0

    def test_empty_league(self):
        assert rank_teams([]) == []


class TestBuildRanking:
    def test_eliminated_teams_go_to_history(self):
        active = teams_with_scores([90.0, 70.0, 50.0])
        eliminated = [make_team("9", 0.0)]

        ranking = build_ranking(KEY, "Chopped", active, eliminated, my_team_id="2")

        assert [e.team.team_id for e in ranking.elimination_history] == ["9"]
        assert ranking.elimination_history[0].week == 5
        assert ranking.my_ranking.rank == 2
        assert not ranking.my_team_eliminated
        assert ranking.cutoff_score == 50.0
        assert ranking.highest_score == 90.0
        assert ranking.average_score == 70.0

    def test_my_team_eliminated(self):
        ranking = build_ranking(KEY, "Chopped", teams_with_scores([90.0]), [make_team("9", 0.0)], "9")
        assert ranking.my_team_eliminated
        assert ranking.my_ranking is None
