from flask import Blueprint

bp = Blueprint("games", __name__)

from app.routes.games import routes  # noqa: F401, E402
