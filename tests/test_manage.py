"""Tests for the management CLI."""

from click.testing import CliRunner

from app.models import Team, User
from manage import cli


def run(app, *args):
    with app.app_context():
        return CliRunner().invoke(cli, list(args))


class TestManageCli:
    def test_create_admin(self, app):
        result = run(app, "user", "create-admin", "Commish", "secret123")
        assert result.exit_code == 0
        with app.app_context():
            assert User.get_by_username("commish").is_admin

    def test_create_admin_twice(self, app, make_user):
        make_user("commish")
        result = run(app, "user", "create-admin", "commish", "secret123")
        assert "already exists" in result.output

    def test_sync_teams(self, app):
        result = run(app, "sync", "teams")
        assert "Seeded 32 teams" in result.output
        with app.app_context():
            assert Team.query.count() == 32

    def test_recalculate(self, app, make_user, make_game, make_pick):
        make_pick(make_user("alice"), make_game(status="final", home_score=3, away_score=0), "away")
        result = run(app, "grade", "recalculate")
        assert "Graded 1 games (1 picks)" in result.output

    def test_generate_secret(self):
        result = CliRunner().invoke(cli, ["generate-secret"])
        assert result.output.startswith("SECRET_KEY=")

    def test_status(self, app):
        result = run(app, "status")
        assert result.exit_code == 0
        assert "Database: Connected" in result.output
