"""Tests for the games endpoints."""

from unittest.mock import patch

from conftest import SEASON

from app import db
from app.models import Game, Pick, Team, User


class TestReadGames:
    def test_week_games(self, user_client, make_game):
        make_game(week=1)
        make_game(week=1)
        make_game(week=2)

        games = user_client.get(f"/api/games/week/1?season={SEASON}").get_json()
        assert len(games) == 2
        assert games[0]["homeSpread"] == -3.5
        assert games[0]["publicConsensus"] == {"home": 0.0, "away": 0.0}

    def test_week_games_requires_login(self, client):
        assert client.get("/api/games/week/1").status_code == 401

    def test_current_week(self, user_client):
        response = user_client.get("/api/games/current")
        assert response.status_code == 200
        assert 1 <= response.get_json()["week"] <= 18

    def test_game_detail(self, user_client, make_game):
        game_id = make_game()
        assert user_client.get(f"/api/games/{game_id}").get_json()["id"] == game_id
        assert user_client.get("/api/games/9999").status_code == 404


class TestUpdateSpread:
    def test_sets_both_sides(self, app, admin_client, make_game):
        game_id = make_game()
        response = admin_client.put(
            "/api/games/admin/update-spread",
            json={"gameId": game_id, "homeSpread": 2.5, "awaySpread": -2.5, "isLocked": True},
        )
        assert response.status_code == 200
        body = response.get_json()["game"]
        assert (body["homeSpread"], body["awaySpread"]) == (2.5, -2.5)
        assert body["isSpreadLocked"] is True

    def test_zero_spread_is_accepted(self, admin_client, make_game):
        game_id = make_game()
        response = admin_client.put(
            "/api/games/admin/update-spread",
            json={"gameId": game_id, "homeSpread": 0, "awaySpread": 0},
        )
        assert response.status_code == 200

    def test_missing_fields(self, admin_client, make_game):
        response = admin_client.put(
            "/api/games/admin/update-spread", json={"gameId": make_game(), "homeSpread": -3}
        )
        assert response.status_code == 400

    def test_unknown_game(self, admin_client):
        response = admin_client.put(
            "/api/games/admin/update-spread",
            json={"gameId": 9999, "homeSpread": -3, "awaySpread": 3},
        )
        assert response.status_code == 404

    def test_regrades_final_game(self, app, admin_client, make_user, make_game, make_pick):
        alice = make_user("alice")
        game_id = make_game(status="final", home_score=24, away_score=20)
        make_pick(alice, game_id, "home", is_best_bet=True)
        admin_client.post("/api/picks/admin/recalculate-all")

        with app.app_context():
            assert db.session.get(User, alice).total_points == 3

        admin_client.put(
            "/api/games/admin/update-spread",
            json={"gameId": game_id, "homeSpread": -6.5, "awaySpread": 6.5},
        )
        with app.app_context():
            assert db.session.get(User, alice).total_points == 0

    def test_non_finite_spread_rejected(self, app, admin_client, make_game):
        game_id = make_game()
        response = admin_client.put(
            "/api/games/admin/update-spread",
            json={"gameId": game_id, "homeSpread": "nan", "awaySpread": "inf"},
        )
        assert response.status_code == 400
        with app.app_context():
            assert db.session.get(Game, game_id).home_spread == -3.5

    def test_string_lock_flag_rejected(self, app, admin_client, make_game):
        game_id = make_game()
        response = admin_client.put(
            "/api/games/admin/update-spread",
            json={"gameId": game_id, "homeSpread": -3, "awaySpread": 3, "isLocked": "false"},
        )
        assert response.status_code == 400
        assert response.get_json()["message"] == "isLocked must be true or false"
        with app.app_context():
            assert db.session.get(Game, game_id).is_spread_locked is False

    def test_omitted_lock_flag_keeps_lock(self, admin_client, make_game):
        game_id = make_game()
        admin_client.put(
            "/api/games/admin/update-spread",
            json={"gameId": game_id, "homeSpread": -3, "awaySpread": 3, "isLocked": True},
        )
        response = admin_client.put(
            "/api/games/admin/update-spread",
            json={"gameId": game_id, "homeSpread": -4, "awaySpread": 4},
        )
        body = response.get_json()["game"]
        assert (body["homeSpread"], body["isSpreadLocked"]) == (-4, True)

    def test_regular_user_forbidden(self, user_client, make_game):
        response = user_client.put(
            "/api/games/admin/update-spread",
            json={"gameId": make_game(), "homeSpread": -3, "awaySpread": 3},
        )
        assert response.status_code == 403


class TestLockSpreads:
    def test_locks_week(self, app, admin_client, make_game):
        make_game(week=4)
        make_game(week=4)
        make_game(week=5)

        response = admin_client.put(
            "/api/games/admin/lock-spreads", json={"week": 4, "season": SEASON, "isLocked": True}
        )
        assert response.get_json()["gamesUpdated"] == 2
        with app.app_context():
            assert Game.query.filter_by(is_spread_locked=True).count() == 2


class TestUpdateScore:
    def test_final_score_grades_picks(self, app, admin_client, make_user, make_game, make_pick):
        alice = make_user("alice")
        game_id = make_game()
        make_pick(alice, game_id, "away")

        response = admin_client.put(
            "/api/games/admin/update-score",
            json={"gameId": game_id, "homeScore": 20, "awayScore": 17, "status": "final"},
        )
        assert response.status_code == 200
        assert response.get_json()["grading"]["games_graded"] == 1

        with app.app_context():
            pick = Pick.query.one()
            # home -3.5 wins by exactly 3: away covers
            assert (pick.is_correct, pick.points_earned) == (True, 1)
            assert db.session.get(User, alice).total_points == 1

    def test_reopening_clears_results(self, app, admin_client, make_user, make_game, make_pick):
        alice = make_user("alice")
        game_id = make_game(status="final", home_score=20, away_score=17)
        make_pick(alice, game_id, "away")
        admin_client.post("/api/picks/admin/recalculate-all")

        admin_client.put(
            "/api/games/admin/update-score",
            json={"gameId": game_id, "homeScore": 20, "awayScore": 17, "status": "live"},
        )
        with app.app_context():
            assert Pick.query.one().is_correct is None
            assert db.session.get(User, alice).total_points == 0

    def test_final_needs_scores(self, admin_client, make_game):
        response = admin_client.put(
            "/api/games/admin/update-score",
            json={"gameId": make_game(), "status": "final"},
        )
        assert response.status_code == 400

    def test_bad_status(self, admin_client, make_game):
        response = admin_client.put(
            "/api/games/admin/update-score",
            json={"gameId": make_game(), "homeScore": 1, "awayScore": 0, "status": "done"},
        )
        assert response.status_code == 400


class TestSyncEndpoints:
    def test_sync_without_key(self, admin_client):
        response = admin_client.post("/api/games/admin/sync")
        assert response.status_code == 502
        assert response.get_json()["message"] == "API_SPORTS_KEY is not configured"

    def test_sync_success(self, admin_client):
        with patch(
            "app.routes.games.routes.DataSync.update_games_data",
            return_value=(True, "Synced 0 games for week 1"),
        ):
            response = admin_client.post("/api/games/admin/sync", json={"week": 1})
        assert response.status_code == 200
        assert response.get_json()["success"] is True

    def test_seed_teams(self, app, admin_client):
        response = admin_client.post("/api/games/admin/seed-teams")
        assert response.get_json()["teamsSeeded"] == 32
        with app.app_context():
            assert Team.get_by_abbreviation("cin").name == "Cincinnati Bengals"

    def test_scheduler_status(self, admin_client):
        body = admin_client.get("/api/games/admin/scheduler").get_json()
        assert body["is_running"] is False
        assert body["jobs"] == []


class TestHealth:
    def test_health(self, client):
        body = client.get("/api/health").get_json()
        assert body["status"] == "OK"
        assert "timestamp" in body
