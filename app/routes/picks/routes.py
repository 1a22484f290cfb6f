import logging
from datetime import datetime, timezone

from flask import jsonify, request
from flask_login import current_user, login_required
from sqlalchemy.exc import SQLAlchemyError

from app import db
from app.models import Game, Pick, User, WeekSettings
from app.routes.picks import bp
from app.services.grading_service import (
    build_leaderboard,
    update_pick_results,
    update_user_total_points,
)
from app.utils.cache_utils import LEADERBOARD_PREFIX, cached_route, invalidate_leaderboard_cache
from app.utils.data_sync import get_current_season
from app.utils.decorators import admin_required
from app.utils.validation import is_week_open, parse_number, validate_pick_submission

logger = logging.getLogger(__name__)


def _week_and_season(data):
    return parse_number(data.get("week"), int), parse_number(data.get("season"), int)


def _check_games(picks, week, season):
    """Every picked game must exist and belong to the submitted week"""
    game_ids = {parse_number(pick["gameId"], int) for pick in picks}
    if None in game_ids:
        return "gameId must be a number"

    games = Game.query.filter(Game.id.in_(game_ids)).all()
    if len(games) != len(game_ids):
        return "Game not found"
    if any(game.week != week or game.season != season for game in games):
        return "All picks must be for games in the submitted week"
    return None


@cached_route(timeout=300, key_prefix=LEADERBOARD_PREFIX)
def _leaderboard_data(season):
    return build_leaderboard(season)


@bp.route("/week/<int:week>")
@login_required
def week_picks(week):
    """Get the current user's picks for a week"""
    season = request.args.get("season", type=int) or get_current_season()
    picks = current_user.get_picks_for_week(week, season)
    return jsonify([pick.to_dict(include_game=True) for pick in picks])


@bp.route("/submit", methods=["POST"])
@login_required
def submit_picks():
    """Replace the current user's picks for a week"""
    data = request.get_json(silent=True) or {}
    week, season = _week_and_season(data)
    picks = data.get("picks")

    if week is None or season is None:
        return jsonify({"message": "week and season are required"}), 400

    is_open, message = is_week_open(WeekSettings.get(week, season))
    if not is_open:
        return jsonify({"message": message}), 400

    is_valid, message = validate_pick_submission(picks)
    if not is_valid:
        return jsonify({"message": message}), 400

    error = _check_games(picks, week, season)
    if error:
        return jsonify({"message": error}), 400

    try:
        new_picks = Pick.replace_week_picks(current_user.id, week, season, picks)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Failed to save picks for {current_user.username}: {e}")
        return jsonify({"message": "Server error"}), 500

    invalidate_leaderboard_cache()
    logger.info(f"{current_user.username} submitted picks for {season} week {week}")

    return jsonify([pick.to_dict() for pick in new_picks])


@bp.route("/leaderboard")
@login_required
def leaderboard():
    season = request.args.get("season", type=int) or get_current_season()
    return jsonify(_leaderboard_data(season))


@bp.route("/public-leaderboard")
def public_leaderboard():
    """Season standings, no login required"""
    season = request.args.get("season", type=int) or get_current_season()
    return jsonify(_leaderboard_data(season))


@bp.route("/admin/lock-week", methods=["POST"])
@login_required
@admin_required
def lock_week():
    data = request.get_json(silent=True) or {}
    week, season = _week_and_season(data)
    is_locked = data.get("isLocked")

    if week is None or season is None or not isinstance(is_locked, bool):
        return jsonify({"message": "week, season, and isLocked are required"}), 400

    settings = WeekSettings.get_or_create(week, season)
    settings.is_locked = is_locked
    db.session.commit()
    logger.info(
        f"Admin {current_user.username} {'locked' if is_locked else 'unlocked'} "
        f"{season} week {week}"
    )

    return jsonify(settings.to_dict())


@bp.route("/admin/deadline", methods=["POST"])
@login_required
@admin_required
def set_deadline():
    """Set the pick deadline for a week (ISO 8601, UTC when no offset)"""
    data = request.get_json(silent=True) or {}
    week, season = _week_and_season(data)

    try:
        deadline = datetime.fromisoformat(str(data.get("deadline")).replace("Z", "+00:00"))
    except ValueError:
        deadline = None

    if week is None or season is None or deadline is None:
        return jsonify({"message": "week, season, and a valid deadline are required"}), 400

    if deadline.tzinfo is None:
        deadline = deadline.replace(tzinfo=timezone.utc)

    settings = WeekSettings.get_or_create(week, season)
    settings.deadline = deadline.astimezone(timezone.utc)
    db.session.commit()

    return jsonify(settings.to_dict())


@bp.route("/admin/update-pick-result", methods=["PUT"])
@login_required
@admin_required
def update_pick_result():
    """Override one pick's result by hand"""
    data = request.get_json(silent=True) or {}
    pick_id = parse_number(data.get("pickId"), int)
    is_correct = data.get("isCorrect")
    points_earned = parse_number(data.get("pointsEarned"), int)

    if pick_id is None or not isinstance(is_correct, bool) or points_earned is None:
        return jsonify(
            {
                "message": "pickId, isCorrect (boolean), and pointsEarned (number) are required"
            }
        ), 400

    pick = db.session.get(Pick, pick_id)
    if not pick:
        return jsonify({"message": "Pick not found"}), 404

    pick.is_correct = is_correct
    pick.points_earned = points_earned
    db.session.commit()
    update_user_total_points()

    return jsonify(
        {
            "message": "Pick result updated successfully",
            "pick": {
                "id": pick.id,
                "isCorrect": pick.is_correct,
                "pointsEarned": pick.points_earned,
            },
        }
    )


@bp.route("/admin/submit-for-user", methods=["POST"])
@login_required
@admin_required
def submit_for_user():
    """Enter a week's picks on behalf of a user, ignoring locks and deadlines"""
    data = request.get_json(silent=True) or {}
    user_id = parse_number(data.get("userId"), int)
    week, season = _week_and_season(data)
    picks = data.get("picks")

    if user_id is None or week is None or season is None or not isinstance(picks, list):
        return jsonify(
            {"message": "userId, week, season, and picks array are required"}
        ), 400

    user = db.session.get(User, user_id)
    if not user:
        return jsonify({"message": "User not found"}), 404

    is_valid, message = validate_pick_submission(picks)
    if not is_valid:
        return jsonify({"message": message}), 400

    error = _check_games(picks, week, season)
    if error:
        return jsonify({"message": error}), 400

    try:
        new_picks = Pick.replace_week_picks(user.id, week, season, picks)
        db.session.commit()
        summary = update_pick_results()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Failed to submit picks for user {user_id}: {e}")
        return jsonify({"message": "Server error"}), 500

    logger.info(
        f"Admin {current_user.username} submitted {season} week {week} picks "
        f"for {user.username}"
    )

    return jsonify(
        {
            "message": "Picks submitted successfully for user",
            "picks": [pick.to_dict() for pick in new_picks],
            "grading": summary,
        }
    )


@bp.route("/admin/recalculate-all", methods=["POST"])
@login_required
@admin_required
def recalculate_all():
    try:
        summary = update_pick_results()
    except SQLAlchemyError:
        return jsonify({"message": "Failed to recalculate pick results"}), 500

    return jsonify(
        {"message": "All pick results recalculated successfully", "grading": summary}
    )


@bp.route("/admin/update-user-points", methods=["POST"])
@login_required
@admin_required
def update_user_points():
    try:
        users_updated = update_user_total_points()
    except SQLAlchemyError:
        return jsonify({"message": "Failed to update user total points"}), 500

    return jsonify(
        {
            "message": "User total points updated successfully",
            "usersUpdated": users_updated,
        }
    )
