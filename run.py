from app import create_app, db
from app.models import Game, Pick, Team, User, WeekSettings

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "User": User,
        "Game": Game,
        "Pick": Pick,
        "Team": Team,
        "WeekSettings": WeekSettings,
    }


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=app.config.get("DEBUG", False))
