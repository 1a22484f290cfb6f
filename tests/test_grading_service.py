"""Tests for persisted grading passes and the leaderboard."""

from app import db
from app.models import Game, Pick, User
from app.services.grading_service import (
    build_leaderboard,
    update_pick_results,
    update_user_total_points,
)


class TestUpdatePickResults:
    def test_grades_final_games_and_totals(self, app, make_user, make_game, make_pick):
        alice = make_user("alice")
        bob = make_user("bob")
        # CIN -3.5 wins 31-27: home covers
        covered = make_game(status="final", home_score=31, away_score=27)
        # Home +3.5 loses by 5: away covers
        not_covered = make_game(
            status="final", home_score=20, away_score=25, home_spread=3.5, away_spread=-3.5
        )
        pending = make_game()

        make_pick(alice, covered, "home", is_best_bet=True)
        make_pick(alice, not_covered, "home")
        make_pick(alice, pending, "away")
        make_pick(bob, covered, "away")
        make_pick(bob, not_covered, "away", is_best_bet=True)

        with app.app_context():
            summary = update_pick_results()

            assert summary["games_graded"] == 2
            assert summary["picks_graded"] == 4
            assert db.session.get(User, alice).total_points == 3
            assert db.session.get(User, bob).total_points == 3

            pending_pick = Pick.query.filter_by(game_id=pending).one()
            assert pending_pick.is_correct is None
            assert pending_pick.points_earned == 0

    def test_totals_match_stored_picks(self, app, make_user, make_game, make_pick):
        users = [make_user(name) for name in ("ann", "ben", "cat")]
        games = [
            make_game(status="final", home_score=home, away_score=away)
            for home, away in ((24, 10), (13, 17), (21, 20))
        ]
        for user in users:
            for index, game in enumerate(games):
                side = "home" if (user + index) % 2 else "away"
                make_pick(user, game, side, is_best_bet=index == 0)

        with app.app_context():
            update_pick_results()
            for user in User.query.all():
                stored = sum(p.points_earned for p in Pick.query.filter_by(user_id=user.id))
                assert user.total_points == stored
                for pick in user.picks:
                    assert pick.points_earned in (0, pick.points)

    def test_second_pass_changes_nothing(self, app, make_user, make_game, make_pick):
        alice = make_user("alice")
        game = make_game(status="final", home_score=17, away_score=10)
        make_pick(alice, game, "home", is_best_bet=True)

        with app.app_context():
            update_pick_results()
            first = [(p.is_correct, p.points_earned) for p in Pick.query.all()]
            update_pick_results()
            second = [(p.is_correct, p.points_earned) for p in Pick.query.all()]

            assert first == second == [(True, 3)]
            assert db.session.get(User, alice).total_points == 3

    def test_final_game_without_scores_is_skipped(self, app, make_user, make_game, make_pick):
        alice = make_user("alice")
        game = make_game(status="final", home_score=None, away_score=None)
        make_pick(alice, game, "home")

        with app.app_context():
            summary = update_pick_results()
            assert summary["games_graded"] == 0
            assert Pick.query.one().is_correct is None


class TestUpdateUserTotalPoints:
    def test_users_without_picks_reset_to_zero(self, app, make_user):
        alice = make_user("alice")
        with app.app_context():
            db.session.get(User, alice).total_points = 42
            db.session.commit()

            assert update_user_total_points() == 1
            assert db.session.get(User, alice).total_points == 0

    def test_deleted_picks_leave_no_stale_total(self, app, make_user, make_game, make_pick):
        alice = make_user("alice")
        game = make_game(status="final", home_score=30, away_score=3)
        make_pick(alice, game, "home", is_best_bet=True)

        with app.app_context():
            update_pick_results()
            assert db.session.get(User, alice).total_points == 3

            Pick.replace_week_picks(alice, 1, 2025, [])
            db.session.commit()
            update_user_total_points()
            assert db.session.get(User, alice).total_points == 0


class TestBuildLeaderboard:
    def test_orders_by_points_then_correct(self, app, make_user, make_game, make_pick):
        alice = make_user("alice")
        bob = make_user("bob")
        make_user("lurker")
        games = [
            make_game(status="final", home_score=28, away_score=7) for _ in range(3)
        ]
        # alice: best bet right, two wrong -> 3 points, 1 correct
        make_pick(alice, games[0], "home", is_best_bet=True)
        make_pick(alice, games[1], "away")
        make_pick(alice, games[2], "away")
        # bob: best bet wrong, two right -> 2 points, 2 correct
        make_pick(bob, games[0], "away", is_best_bet=True)
        make_pick(bob, games[1], "home")
        make_pick(bob, games[2], "home")

        with app.app_context():
            update_pick_results()
            board = build_leaderboard(2025)

        assert [entry["user"]["username"] for entry in board] == ["alice", "bob"]
        assert board[0] == {
            "user": {"id": alice, "username": "alice", "displayName": "Alice"},
            "totalPoints": 3,
            "totalPicks": 3,
            "correctPicks": 1,
            "bestBetsTotal": 1,
            "bestBetsCorrect": 1,
        }
        assert board[1]["totalPoints"] == 2
        assert board[1]["correctPicks"] == 2
        assert board[1]["bestBetsCorrect"] == 0

    def test_full_ties_order_by_username(self, app, make_user, make_game, make_pick):
        zoe = make_user("zoe")
        amy = make_user("amy")
        game = make_game(status="final", home_score=28, away_score=7)
        make_pick(zoe, game, "home", is_best_bet=True)
        make_pick(amy, game, "home", is_best_bet=True)

        with app.app_context():
            update_pick_results()
            board = build_leaderboard(2025)

        assert [entry["user"]["username"] for entry in board] == ["amy", "zoe"]
        assert board[0]["totalPoints"] == board[1]["totalPoints"] == 3

    def test_other_seasons_are_excluded(self, app, make_user, make_game, make_pick):
        alice = make_user("alice")
        make_pick(alice, make_game(season=2024), "home")

        with app.app_context():
            assert build_leaderboard(2025) == []
            assert len(build_leaderboard(2024)) == 1

    def test_game_rows_untouched(self, app, make_game):
        game_id = make_game(status="final", home_score=3, away_score=0)
        with app.app_context():
            update_pick_results()
            assert db.session.get(Game, game_id).home_score == 3
