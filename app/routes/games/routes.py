import logging

from flask import current_app, jsonify, request
from flask_login import current_user, login_required
from sqlalchemy.exc import SQLAlchemyError

from app import db
from app.models import Game
from app.routes.games import bp
from app.services.grading_service import update_pick_results
from app.services.scheduler_service import scheduler_service
from app.utils.data_sync import DataSync, get_current_season, get_current_week, seed_teams
from app.utils.decorators import admin_required
from app.utils.validation import parse_number

logger = logging.getLogger(__name__)


def _season_arg():
    return request.args.get("season", type=int) or get_current_season()


@bp.route("/week/<int:week>")
@login_required
def week_games(week):
    """Get games for a specific week"""
    games = Game.get_games_for_week(_season_arg(), week)
    return jsonify([game.to_dict() for game in games])


@bp.route("/current")
@login_required
def current_games():
    """Get the current week's games"""
    week = get_current_week(max_week=current_app.config.get("MAX_WEEK", 18))
    games = Game.get_games_for_week(get_current_season(), week)
    return jsonify({"week": week, "games": [game.to_dict() for game in games]})


@bp.route("/<int:game_id>")
@login_required
def game_detail(game_id):
    game = db.get_or_404(Game, game_id)
    return jsonify(game.to_dict())


@bp.route("/admin/update-spread", methods=["PUT"])
@login_required
@admin_required
def update_spread():
    """Set a game's spreads; regrades when the game is already final"""
    data = request.get_json(silent=True) or {}
    game_id = parse_number(data.get("gameId"), int)
    home_spread = parse_number(data.get("homeSpread"))
    away_spread = parse_number(data.get("awaySpread"))

    if game_id is None or home_spread is None or away_spread is None:
        return jsonify(
            {"message": "gameId, homeSpread, and awaySpread are required"}
        ), 400

    # Omitted isLocked keeps the current lock
    is_locked = data.get("isLocked")
    if is_locked is not None and not isinstance(is_locked, bool):
        return jsonify({"message": "isLocked must be true or false"}), 400

    game = db.session.get(Game, game_id)
    if not game:
        return jsonify({"message": "Game not found"}), 404

    try:
        game.update_spread(home_spread, away_spread, is_locked)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Failed to update spread for game {game_id}: {e}")
        return jsonify({"message": "Server error"}), 500

    logger.info(
        f"Admin {current_user.username} set spread for {game.matchup}: "
        f"{home_spread:+g}/{away_spread:+g}"
    )

    if game.is_final:
        update_pick_results()

    return jsonify(
        {
            "message": "Spread updated successfully",
            "game": {
                "id": game.id,
                "matchup": game.matchup,
                "homeSpread": game.home_spread,
                "awaySpread": game.away_spread,
                "isSpreadLocked": game.is_spread_locked,
            },
        }
    )


@bp.route("/admin/lock-spreads", methods=["PUT"])
@login_required
@admin_required
def lock_spreads():
    """Lock or unlock every spread in a week"""
    data = request.get_json(silent=True) or {}
    week = parse_number(data.get("week"), int)
    season = parse_number(data.get("season"), int)
    is_locked = data.get("isLocked")

    if week is None or season is None or not isinstance(is_locked, bool):
        return jsonify({"message": "week, season, and isLocked are required"}), 400

    games_updated = Game.query.filter_by(week=week, season=season).update(
        {"is_spread_locked": is_locked}
    )
    db.session.commit()

    return jsonify(
        {
            "message": f"Spreads {'locked' if is_locked else 'unlocked'} for Week {week}",
            "gamesUpdated": games_updated,
        }
    )


@bp.route("/admin/update-score", methods=["PUT"])
@login_required
@admin_required
def update_score():
    """Correct a game's score or status by hand; regrades the league"""
    data = request.get_json(silent=True) or {}
    game_id = parse_number(data.get("gameId"), int)
    status = data.get("status")

    if game_id is None or status not in ("scheduled", "live", "final"):
        return jsonify(
            {"message": "gameId and status (scheduled, live or final) are required"}
        ), 400

    home_score = parse_number(data.get("homeScore"), int)
    away_score = parse_number(data.get("awayScore"), int)
    if status == "final" and (home_score is None or away_score is None):
        return jsonify({"message": "A final game needs both scores"}), 400

    game = db.session.get(Game, game_id)
    if not game:
        return jsonify({"message": "Game not found"}), 404

    game.update_score(home_score, away_score, status=status)
    db.session.commit()
    logger.info(
        f"Admin {current_user.username} set {game.matchup} to {status} "
        f"{away_score}-{home_score}"
    )

    # Picks on a game that is no longer final carry no result
    if not game.is_final:
        for pick in game.picks.all():
            pick.is_correct = None
            pick.points_earned = 0
        db.session.commit()
    summary = update_pick_results()

    return jsonify({"message": "Score updated", "game": game.to_dict(), "grading": summary})


@bp.route("/admin/sync", methods=["POST"])
@login_required
@admin_required
def sync_games():
    """Pull the current week from the data providers and regrade"""
    data = request.get_json(silent=True) or {}
    success, message = DataSync().update_games_data(
        season=parse_number(data.get("season"), int),
        week=parse_number(data.get("week"), int),
    )
    if success:
        return jsonify({"message": message, "success": True})
    return jsonify({"message": message, "success": False}), 502


@bp.route("/admin/seed-teams", methods=["POST"])
@login_required
@admin_required
def seed_all_teams():
    teams = seed_teams()
    return jsonify({"message": f"Seeded {len(teams)} teams", "teamsSeeded": len(teams)})


@bp.route("/admin/scheduler")
@login_required
@admin_required
def scheduler_status():
    return jsonify(scheduler_service.get_status())
