#!/usr/bin/env python3
"""
Spread Pick'em Management CLI

Command-line management for the Spread Pick'em application: database setup,
data sync, grading and user administration.
"""

import logging
import os
import secrets

import click
from flask.cli import with_appcontext
from flask_migrate import downgrade, init, migrate, upgrade
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app import create_app, db
from app.models import Game, Pick, User
from app.services.grading_service import update_pick_results, update_user_total_points
from app.utils.data_sync import DataSync, get_current_season, get_current_week, seed_teams

logger = logging.getLogger(__name__)


@click.group()
def cli():
    """Spread Pick'em Management CLI"""
    pass


@cli.command("generate-secret")
def generate_secret():
    """Print a random SECRET_KEY for the .env file"""
    click.echo(f"SECRET_KEY={secrets.token_urlsafe(32)}")
    click.echo("Copy this value to your .env file and keep it out of version control.")


# Data Sync Commands
@cli.group()
def sync():
    """Data synchronization commands"""
    pass


@sync.command()
@with_appcontext
def teams():
    """Create or update the 32 NFL teams"""
    try:
        seeded = seed_teams()
        click.echo(f"✅ Seeded {len(seeded)} teams")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error seeding teams: {str(e)}")
        logger.error(f"Team seeding failed: {e}")


@sync.command()
@click.option("--season", type=int, help="Season year (default: current season)")
@click.option("--week", type=int, help="Week number (default: current week)")
@with_appcontext
def games(season, week):
    """Sync games, scores and spreads for a week, then regrade"""
    click.echo("Syncing games...")
    success, message = DataSync().update_games_data(season=season, week=week)

    if success:
        click.echo(f"✅ {message}")
    else:
        click.echo(f"❌ {message}")


# Grading Commands
@cli.group()
def grade():
    """Grading commands"""
    pass


@grade.command()
@with_appcontext
def recalculate():
    """Regrade every final game and rebuild user totals"""
    try:
        summary = update_pick_results()
    except SQLAlchemyError as e:
        click.echo(f"❌ Error recalculating pick results: {str(e)}")
        return

    click.echo(
        f"✅ Graded {summary['games_graded']} games "
        f"({summary['picks_graded']} picks), "
        f"updated {summary['users_updated']} users"
    )


@grade.command()
@with_appcontext
def totals():
    """Rebuild user totals from stored pick results"""
    try:
        count = update_user_total_points()
    except SQLAlchemyError as e:
        click.echo(f"❌ Error updating totals: {str(e)}")
        return

    click.echo(f"✅ Updated totals for {count} users")


# User Management Commands
@cli.group()
def user():
    """User management commands"""
    pass


@user.command("create-admin")
@click.argument("username")
@click.argument("password")
@click.option("--display-name", help="Display name (default: username)")
@with_appcontext
def create_admin(username, password, display_name):
    """Create an admin user"""
    if User.get_by_username(username):
        click.echo(f"❌ User '{username}' already exists!")
        return

    try:
        admin = User(
            username=User.normalize_username(username),
            display_name=display_name or username,
            role="admin",
        )
        admin.set_password(password)

        db.session.add(admin)
        db.session.commit()
        click.echo(f"✅ Created admin user '{admin.username}'")

    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Error creating user: {str(e)}")


@user.command("promote")
@click.argument("username")
@with_appcontext
def promote(username):
    """Give an existing user the admin role"""
    existing = User.get_by_username(username)
    if not existing:
        click.echo(f"❌ User '{username}' not found!")
        return

    existing.role = "admin"
    db.session.commit()
    click.echo(f"✅ {existing.username} is now an admin")


@user.command("list")
@with_appcontext
def list_users():
    """List all users"""
    users = User.query.order_by(User.total_points.desc(), User.username).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("Users:")
    for u in users:
        badge = "👑" if u.is_admin else "  "
        click.echo(f"  {badge} {u.username} ({u.display_name}) - {u.total_points} pts")


# Database Commands
@cli.group("db")
def db_cmd():
    """Database commands"""
    pass


@db_cmd.command("init")
@with_appcontext
def init_db():
    """Initialize database tables"""
    try:
        db.create_all()
        click.echo("✅ Database tables created successfully!")
    except SQLAlchemyError as e:
        click.echo(f"❌ Error initializing database: {str(e)}")


@db_cmd.command()
@with_appcontext
def reset():
    """⚠️  DANGER: Drop and recreate all tables"""
    if not click.confirm("This will DELETE ALL DATA. Are you sure?"):
        click.echo("Cancelled.")
        return

    try:
        db.drop_all()
        db.create_all()
        click.echo("✅ Database reset successfully!")
    except SQLAlchemyError as e:
        click.echo(f"❌ Error resetting database: {str(e)}")


@db_cmd.command("init-migrations")
@with_appcontext
def init_migrations():
    """Initialize migrations repository"""
    if os.path.exists("migrations"):
        click.echo("❌ Migrations directory already exists!")
        return

    init()
    click.echo("✅ Migrations repository initialized!")


@db_cmd.command("migrate")
@click.option("-m", "--message", required=True, help="Migration message")
@with_appcontext
def create_migration(message):
    """Create a new migration"""
    migrate(message=message)
    click.echo(f"✅ Migration created: {message}")


@db_cmd.command("upgrade")
@click.option("--revision", default="head", help="Revision to upgrade to")
@with_appcontext
def apply_migrations(revision):
    """Apply migrations to database"""
    upgrade(revision=revision)
    click.echo(f"✅ Migrations applied to {revision}")


@db_cmd.command("downgrade")
@click.option("--revision", required=True, help="Revision to downgrade to")
@with_appcontext
def rollback_migration(revision):
    """Rollback migrations to specific revision"""
    downgrade(revision=revision)
    click.echo(f"✅ Rolled back to {revision}")


@cli.command()
@with_appcontext
def status():
    """Show application status"""
    click.echo("🏈 Spread Pick'em Application Status")
    click.echo("=" * 40)

    # Database connection
    try:
        db.session.execute(text("SELECT 1"))
        click.echo("✅ Database: Connected")
    except SQLAlchemyError as e:
        click.echo(f"❌ Database: Error - {str(e)}")
        return

    season = get_current_season()
    week = get_current_week()
    click.echo(f"📅 Season {season}, Week {week}")

    click.echo(f"👥 Users: {User.query.count()}")

    game_count = Game.query.filter_by(season=season).count()
    final_count = Game.query.filter_by(season=season, status="final").count()
    click.echo(f"🏈 Games: {final_count}/{game_count} final")

    ungraded = (
        Pick.query.join(Game)
        .filter(Game.status == "final", Pick.is_correct.is_(None))
        .count()
    )
    if ungraded:
        click.echo(f"⚠️  {ungraded} picks on final games are ungraded")
    else:
        click.echo("✅ All picks on final games are graded")


if __name__ == "__main__":
    app = create_app()
    with app.app_context():
        cli()
