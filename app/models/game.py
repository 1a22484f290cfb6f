from datetime import datetime, timezone

from app import db

GAME_STATUSES = ("scheduled", "live", "final")


class Game(db.Model):
    __tablename__ = "games"

    id = db.Column(db.Integer, primary_key=True)

    # External ID for API integration
    api_id = db.Column(db.String(50), unique=True, nullable=False, index=True)

    # Game identification
    season = db.Column(db.Integer, nullable=False)
    week = db.Column(db.Integer, nullable=False)

    # Teams
    home_team_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=False)
    away_team_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=False)

    # Game timing
    game_time = db.Column(db.DateTime, nullable=False)

    # Point spreads (negative = favorite). Stored per side, never derived.
    home_spread = db.Column(db.Float, nullable=False, default=0.0)
    away_spread = db.Column(db.Float, nullable=False, default=0.0)
    is_spread_locked = db.Column(db.Boolean, nullable=False, default=False)

    # Public consensus percentages
    consensus_home = db.Column(db.Float, default=0.0)
    consensus_away = db.Column(db.Float, default=0.0)

    # Game status and scores (scores are set once the game is underway)
    status = db.Column(db.String(10), nullable=False, default="scheduled")
    home_score = db.Column(db.Integer)
    away_score = db.Column(db.Integer)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    picks = db.relationship(
        "Pick", backref="game", lazy="dynamic", cascade="all, delete-orphan"
    )

    # Indexes
    __table_args__ = (
        db.Index("idx_game_season_week", "season", "week"),
        db.Index("idx_game_time", "game_time"),
        db.CheckConstraint("home_team_id != away_team_id", name="different_teams"),
        db.CheckConstraint(
            "status IN ('scheduled', 'live', 'final')", name="valid_game_status"
        ),
    )

    def __repr__(self):
        return f"<Game {self.matchup} Week {self.week}>"

    @property
    def matchup(self):
        away = self.away_team.abbreviation if self.away_team else "TBD"
        home = self.home_team.abbreviation if self.home_team else "TBD"
        return f"{away} @ {home}"

    @property
    def is_final(self):
        return self.status == "final"

    @property
    def is_gradable(self):
        """A game is graded only once it is final and both scores are known"""
        return (
            self.is_final and self.home_score is not None and self.away_score is not None
        )

    def update_spread(self, home_spread, away_spread, is_locked=None):
        """Set both sides' spreads; the two are kept independently"""
        self.home_spread = float(home_spread)
        self.away_spread = float(away_spread)
        if is_locked is not None:
            self.is_spread_locked = bool(is_locked)

    def update_score(self, home_score, away_score, status=None):
        """Update game score. Grading is left to the grading service."""
        self.home_score = home_score
        self.away_score = away_score
        if status is not None:
            self.status = status

    @staticmethod
    def get_games_for_week(season, week):
        """Get all games for a specific week with eager loading"""
        from sqlalchemy.orm import joinedload

        return (
            Game.query.filter_by(season=season, week=week)
            .options(joinedload(Game.home_team), joinedload(Game.away_team))
            .order_by(Game.game_time)
            .all()
        )

    @staticmethod
    def get_gradable_games():
        """All final games that carry both scores"""
        return Game.query.filter(
            Game.status == "final",
            Game.home_score.isnot(None),
            Game.away_score.isnot(None),
        ).all()

    def to_dict(self):
        """Convert game to dictionary for API responses"""
        return {
            "id": self.id,
            "apiId": self.api_id,
            "season": self.season,
            "week": self.week,
            "gameTime": self.game_time.isoformat() if self.game_time else None,
            "homeTeam": self.home_team.to_dict() if self.home_team else None,
            "awayTeam": self.away_team.to_dict() if self.away_team else None,
            "homeSpread": self.home_spread,
            "awaySpread": self.away_spread,
            "isSpreadLocked": self.is_spread_locked,
            "publicConsensus": {
                "home": self.consensus_home,
                "away": self.consensus_away,
            },
            "status": self.status,
            "homeScore": self.home_score,
            "awayScore": self.away_score,
        }
