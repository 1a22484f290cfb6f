"""
Validation for weekly pick submissions.

A submission is exactly three picks on three different games: one best bet
worth 3 points and two standard picks worth 1 point each.
"""

import math
from datetime import datetime, timezone

PICKS_PER_WEEK = 3
BEST_BETS_PER_WEEK = 1
VALID_SIDES = ("home", "away")


def validate_pick_submission(picks):
    """
    Validate a week's submission.

    Args:
        picks: list of dicts with gameId, teamPicked, isBestBet

    Returns:
        tuple: (is_valid, message)
    """
    if not isinstance(picks, list) or len(picks) != PICKS_PER_WEEK:
        return False, "Must submit exactly 3 picks"

    for pick in picks:
        if not isinstance(pick, dict) or pick.get("gameId") in (None, ""):
            return False, "Every pick needs a gameId"
        if parse_number(pick["gameId"], int) is None:
            return False, "gameId must be a whole number"
        if pick.get("teamPicked") not in VALID_SIDES:
            return False, "teamPicked must be 'home' or 'away'"

    best_bets = [pick for pick in picks if pick.get("isBestBet") is True]
    if len(best_bets) != BEST_BETS_PER_WEEK:
        return False, "Must have exactly 1 best bet (3 points)"

    if len(picks) - len(best_bets) != PICKS_PER_WEEK - BEST_BETS_PER_WEEK:
        return False, "Must have exactly 2 one-point picks"

    game_ids = [parse_number(pick["gameId"], int) for pick in picks]
    if len(set(game_ids)) != len(game_ids):
        return False, "Only one pick per game is allowed"

    return True, "Valid submission"


def is_week_open(week_settings, now=None):
    """
    Check whether picks can still be submitted for a week.

    Args:
        week_settings: WeekSettings row or None (no settings = open)
        now: aware datetime, defaults to the current UTC time

    Returns:
        tuple: (is_open, message)
    """
    if week_settings is None:
        return True, "Week is open"

    if week_settings.is_locked:
        return False, "This week is locked for picks"

    deadline = week_settings.deadline_utc
    now = now or datetime.now(timezone.utc)
    if deadline is not None and now > deadline:
        return False, "Deadline has passed for this week"

    return True, "Week is open"


def parse_number(value, cast=float):
    """
    Coerce a JSON value to a finite number.

    Booleans, missing values, NaN and infinities are rejected, and so are
    fractional values when cast is int. Returns None when the value cannot
    be converted.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    if cast is int:
        return int(number) if number.is_integer() else None
    return cast(number)
