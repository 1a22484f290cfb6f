from app import db  # noqa: F401 - imported for model imports

from .game import Game
from .pick import Pick
from .team import Team
from .user import User
from .week_settings import WeekSettings

__all__ = [
    "User",
    "Team",
    "Game",
    "Pick",
    "WeekSettings",
]
