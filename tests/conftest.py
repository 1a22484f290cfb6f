"""Pytest fixtures for app, client and database rows."""

import itertools
from datetime import datetime, timedelta, timezone

import pytest

from app import create_app, db
from app.models import Game, Pick, Team, User

SEASON = 2025

_team_ids = itertools.count(1000)


@pytest.fixture
def app():
    """Fresh app with an empty in-memory database."""
    app = create_app("testing")
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    """Create a user and return its id."""

    def _make(username="alice", password="secret123", role="user", display_name=None):
        with app.app_context():
            user = User(
                username=username,
                display_name=display_name or username.title(),
                role=role,
            )
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
            return user.id

    return _make


@pytest.fixture
def make_game(app):
    """Create a game between two fresh teams and return its id."""

    def _make(
        week=1,
        season=SEASON,
        home_spread=-3.5,
        away_spread=3.5,
        status="scheduled",
        home_score=None,
        away_score=None,
    ):
        with app.app_context():
            teams = []
            for _ in range(2):
                number = next(_team_ids)
                team = Team(
                    api_id=str(number),
                    name=f"Team {number}",
                    city=f"City {number}",
                    abbreviation=f"T{number}",
                )
                db.session.add(team)
                teams.append(team)
            db.session.flush()

            game = Game(
                api_id=f"g{next(_team_ids)}",
                season=season,
                week=week,
                home_team_id=teams[0].id,
                away_team_id=teams[1].id,
                game_time=datetime.now(timezone.utc) + timedelta(days=1),
                home_spread=home_spread,
                away_spread=away_spread,
                status=status,
                home_score=home_score,
                away_score=away_score,
            )
            db.session.add(game)
            db.session.commit()
            return game.id

    return _make


@pytest.fixture
def make_pick(app):
    """Store a pick directly and return its id."""

    def _make(user_id, game_id, team_picked="home", is_best_bet=False):
        with app.app_context():
            game = db.session.get(Game, game_id)
            pick = Pick(
                user_id=user_id,
                game_id=game_id,
                week=game.week,
                season=game.season,
                team_picked=team_picked,
                points=Pick.points_for(is_best_bet),
                is_best_bet=is_best_bet,
            )
            db.session.add(pick)
            db.session.commit()
            return pick.id

    return _make


def login(client, username, password="secret123"):
    return client.post(
        "/api/auth/login", json={"username": username, "password": password}
    )


@pytest.fixture
def user_client(client, make_user):
    """Client logged in as a regular user; the user id is on client.user_id."""
    client.user_id = make_user("alice")
    login(client, "alice")
    return client


@pytest.fixture
def admin_client(app, make_user):
    """Separate client logged in as an admin."""
    admin = app.test_client()
    admin.user_id = make_user("boss", role="admin")
    login(admin, "boss")
    return admin


@pytest.fixture
def week_games(make_game):
    """Three scheduled week 1 games."""
    return [make_game() for _ in range(3)]


def submission(game_ids, week=1, season=SEASON, sides=("home", "away", "home"), best=0):
    return {
        "week": week,
        "season": season,
        "picks": [
            {"gameId": game_id, "teamPicked": side, "isBestBet": index == best}
            for index, (game_id, side) in enumerate(zip(game_ids, sides))
        ],
    }
