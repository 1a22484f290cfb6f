"""
Spread grading engine for Spread Pick'em

Decides which side of a finished game covered the posted spread and turns
that into correctness and points for every pick on the game. Also rebuilds
per-user point totals from graded picks.

Everything here is pure: no database access, no I/O. Games and picks are
duck-typed, so ORM rows and plain objects both work as long as they expose
the attribute names used below. Persistence lives in
app/services/grading_service.py.
"""

import logging
import math
from collections import defaultdict, namedtuple

logger = logging.getLogger(__name__)

CoverResult = namedtuple("CoverResult", ["home_covers", "away_covers"])


class IncompleteGameError(ValueError):
    """Raised when a game without both final scores is passed for grading"""


class InvalidSpreadError(ValueError):
    """Raised when a spread is missing or not a finite number"""


def grade_game(home_score, away_score, home_spread, away_spread):
    """
    Decide which side covered the spread.

    The branch is picked by the sign of home_spread alone. A negative home
    spread means the home team is favored; anything else (including a 0/0
    pick'em line) is treated as the away team being favored. Comparisons are
    strict, so a margin landing exactly on the spread goes to the side that
    was not favored. There is no push result: exactly one side covers.

    Args:
        home_score: final home score
        away_score: final away score
        home_spread: spread posted for the home side (negative = favorite)
        away_spread: spread posted for the away side, read independently

    Returns:
        CoverResult(home_covers, away_covers)

    Raises:
        IncompleteGameError: if either score is missing
        InvalidSpreadError: if either spread is missing, NaN or infinite
    """
    if home_score is None or away_score is None:
        raise IncompleteGameError("Cannot grade a game without both final scores")
    for spread in (home_spread, away_spread):
        if spread is None or not math.isfinite(spread):
            raise InvalidSpreadError(f"Cannot grade against spread {spread!r}")

    actual_margin = home_score - away_score

    if home_spread < 0:
        home_covers = actual_margin > abs(home_spread)
        away_covers = not home_covers
    else:
        away_covers = actual_margin < away_spread
        home_covers = not away_covers

    return CoverResult(home_covers, away_covers)


def grade_game_record(game):
    """grade_game() for an object exposing score and spread attributes"""
    return grade_game(game.home_score, game.away_score, game.home_spread, game.away_spread)


def grade_pick(pick, result):
    """
    Score one pick against a game's cover result.

    Returns:
        (is_correct, points_earned) where points_earned is pick.points when
        correct and 0 otherwise
    """
    is_correct = (pick.team_picked == "home" and result.home_covers) or (
        pick.team_picked == "away" and result.away_covers
    )
    return is_correct, pick.points if is_correct else 0


def grade_picks_for_game(game, picks, result=None):
    """
    Write is_correct and points_earned onto every pick for a finished game.

    Args:
        game: finished game (both scores present)
        picks: picks referencing the game; may be empty
        result: precomputed CoverResult, graded from the game when omitted

    Returns:
        list of the updated picks
    """
    if result is None:
        result = grade_game_record(game)

    graded = []
    for pick in picks:
        pick.is_correct, pick.points_earned = grade_pick(pick, result)
        graded.append(pick)

    return graded


def grade_all_final_games(games, picks_by_game):
    """
    Grade every finished game and the picks placed on it.

    Games are independent of each other, so order does not matter and
    re-running with unchanged inputs leaves every pick unchanged. A game
    marked final without both scores, or with a spread that is not a finite
    number, is skipped and logged rather than graded on bad data.

    Args:
        games: iterable of games; anything not final is ignored
        picks_by_game: mapping of game id -> list of picks on that game

    Returns:
        list of (game, CoverResult) for the games that were graded
    """
    graded = []

    for game in games:
        if getattr(game, "status", "final") != "final":
            continue

        try:
            result = grade_game_record(game)
        except (IncompleteGameError, InvalidSpreadError) as e:
            logger.warning(f"Skipping game {game.id}: {e}")
            continue

        grade_picks_for_game(game, picks_by_game.get(game.id, []), result)
        graded.append((game, result))

    return graded


def recompute_user_totals(picks):
    """
    Sum points_earned per user across every pick given.

    This is a full recomputation, not an increment: the result replaces
    whatever total a user had before. Picks that were replaced or deleted
    must be gone from storage before their owners' totals are rebuilt.

    Returns:
        dict of user_id -> total points
    """
    totals = defaultdict(int)
    for pick in picks:
        totals[pick.user_id] += pick.points_earned or 0
    return dict(totals)
