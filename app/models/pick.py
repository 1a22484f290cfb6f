from datetime import datetime, timezone

from app import db
from app.utils.validation import parse_number

BEST_BET_POINTS = 3
STANDARD_POINTS = 1


class Pick(db.Model):
    __tablename__ = "picks"

    id = db.Column(db.Integer, primary_key=True)

    # Pick identification
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    game_id = db.Column(db.Integer, db.ForeignKey("games.id"), nullable=False)
    week = db.Column(db.Integer, nullable=False)
    season = db.Column(db.Integer, nullable=False)

    # Pick details
    team_picked = db.Column(db.String(4), nullable=False)  # 'home' or 'away'
    points = db.Column(db.Integer, nullable=False, default=STANDARD_POINTS)
    is_best_bet = db.Column(db.Boolean, nullable=False, default=False)

    # Results (written by the grading engine)
    is_correct = db.Column(db.Boolean)
    points_earned = db.Column(db.Integer, nullable=False, default=0)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Constraints and indexes
    __table_args__ = (
        db.UniqueConstraint("user_id", "game_id", name="unique_user_game_pick"),
        db.Index("idx_pick_user_week_season", "user_id", "week", "season"),
        db.Index("idx_pick_week_season", "week", "season"),
        db.Index("idx_pick_game", "game_id"),
        db.CheckConstraint("team_picked IN ('home', 'away')", name="valid_team_picked"),
        db.CheckConstraint("points IN (1, 3)", name="valid_pick_points"),
    )

    def __repr__(self):
        return f"<Pick user_id={self.user_id} game_id={self.game_id} team={self.team_picked} points={self.points}>"

    @staticmethod
    def points_for(is_best_bet):
        return BEST_BET_POINTS if is_best_bet else STANDARD_POINTS

    @staticmethod
    def replace_week_picks(user_id, week, season, picks):
        """
        Replace a user's picks for a week.

        The old picks are deleted and flushed before the new ones are added so
        that a later total-points recomputation never sees them.

        Args:
            picks: iterable of dicts with gameId, teamPicked, isBestBet
        """
        Pick.query.filter_by(user_id=user_id, week=week, season=season).delete(
            synchronize_session="fetch"
        )
        db.session.flush()

        new_picks = []
        for pick_data in picks:
            is_best_bet = bool(pick_data.get("isBestBet"))
            pick = Pick(
                user_id=user_id,
                game_id=parse_number(pick_data["gameId"], int),
                week=week,
                season=season,
                team_picked=pick_data["teamPicked"],
                points=Pick.points_for(is_best_bet),
                is_best_bet=is_best_bet,
            )
            db.session.add(pick)
            new_picks.append(pick)

        return new_picks

    def to_dict(self, include_game=False):
        """Convert pick to dictionary for API responses"""
        data = {
            "id": self.id,
            "userId": self.user_id,
            "gameId": self.game_id,
            "week": self.week,
            "season": self.season,
            "teamPicked": self.team_picked,
            "points": self.points,
            "isBestBet": self.is_best_bet,
            "isCorrect": self.is_correct,
            "pointsEarned": self.points_earned,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

        if include_game:
            data["game"] = self.game.to_dict() if self.game else None

        return data
