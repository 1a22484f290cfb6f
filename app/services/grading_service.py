"""
Grading pass for Spread Pick'em

Loads finished games and their picks from the database, runs the pure
grading engine over them, persists the results and rebuilds every user's
total points. Triggered by the background refresh, by admin actions that
change scores, spreads or picks, and by manual recalculation requests.

Overlapping passes are safe: grading is deterministic, so concurrent passes
write identical values and the last writer wins per pick.
"""

import logging
from collections import defaultdict

from sqlalchemy import case, func
from sqlalchemy.exc import SQLAlchemyError

from app import db
from app.models import Game, Pick, User
from app.utils.cache_utils import invalidate_leaderboard_cache
from app.utils.scoring import grade_all_final_games, recompute_user_totals

logger = logging.getLogger(__name__)


def update_pick_results():
    """
    Grade every final game and persist pick results and user totals.

    Returns:
        dict with games_graded, picks_graded and users_updated counts
    """
    try:
        games = Game.get_gradable_games()
        game_ids = [game.id for game in games]

        picks_by_game = defaultdict(list)
        if game_ids:
            for pick in Pick.query.filter(Pick.game_id.in_(game_ids)).all():
                picks_by_game[pick.game_id].append(pick)

        graded = grade_all_final_games(games, picks_by_game)
        picks_graded = sum(len(picks_by_game.get(game.id, [])) for game, _ in graded)

        db.session.commit()
        logger.info(f"Graded {len(graded)} final games ({picks_graded} picks)")

    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error updating pick results: {e}", exc_info=True)
        raise

    users_updated = update_user_total_points()

    return {
        "games_graded": len(graded),
        "picks_graded": picks_graded,
        "users_updated": users_updated,
    }


def update_user_total_points():
    """
    Rebuild total_points for every user from all stored picks.

    Users without any picks are reset to 0 so that a deleted week can never
    leave a stale total behind.

    Returns:
        int: number of users whose total was written
    """
    try:
        totals = recompute_user_totals(Pick.query.all())

        users = User.query.all()
        for user in users:
            user.total_points = totals.get(user.id, 0)

        db.session.commit()
        invalidate_leaderboard_cache()
        logger.info(f"Recomputed total points for {len(users)} users")
        return len(users)

    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error updating user total points: {e}", exc_info=True)
        raise


def build_leaderboard(season):
    """
    Season leaderboard aggregated from stored picks.

    Only users with at least one pick in the season appear. Sorted by points,
    then by number of correct picks, then by username.

    Returns:
        list of dicts ready for JSON serialization
    """
    correct = case((Pick.is_correct.is_(True), 1), else_=0)
    best_bet = case((Pick.is_best_bet.is_(True), 1), else_=0)
    best_bet_correct = case(
        ((Pick.is_best_bet.is_(True)) & (Pick.is_correct.is_(True)), 1), else_=0
    )

    rows = (
        db.session.query(
            User,
            func.coalesce(func.sum(Pick.points_earned), 0).label("total_points"),
            func.count(Pick.id).label("total_picks"),
            func.sum(correct).label("correct_picks"),
            func.sum(best_bet).label("best_bets_total"),
            func.sum(best_bet_correct).label("best_bets_correct"),
        )
        .join(Pick, Pick.user_id == User.id)
        .filter(Pick.season == season)
        .group_by(User.id)
        .all()
    )

    leaderboard = [
        {
            "user": {
                "id": user.id,
                "username": user.username,
                "displayName": user.display_name,
            },
            "totalPoints": int(total_points or 0),
            "totalPicks": int(total_picks or 0),
            "correctPicks": int(correct_picks or 0),
            "bestBetsTotal": int(best_bets_total or 0),
            "bestBetsCorrect": int(best_bets_correct or 0),
        }
        for user, total_points, total_picks, correct_picks, best_bets_total, best_bets_correct in rows
    ]

    leaderboard.sort(
        key=lambda entry: (
            -entry["totalPoints"],
            -entry["correctPicks"],
            entry["user"]["username"],
        )
    )
    return leaderboard
