from datetime import datetime, timezone

from app import db


class WeekSettings(db.Model):
    __tablename__ = "week_settings"

    id = db.Column(db.Integer, primary_key=True)
    week = db.Column(db.Integer, nullable=False)
    season = db.Column(db.Integer, nullable=False)

    # Pick submission window
    deadline = db.Column(db.DateTime(timezone=True), nullable=True)
    is_locked = db.Column(db.Boolean, nullable=False, default=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint("week", "season", name="unique_week_season_settings"),
    )

    def __repr__(self):
        return f"<WeekSettings {self.season} week {self.week} locked={self.is_locked}>"

    @staticmethod
    def get(week, season):
        return WeekSettings.query.filter_by(week=week, season=season).first()

    @staticmethod
    def get_or_create(week, season):
        """Fetch the settings row for a week, creating it if missing"""
        settings = WeekSettings.get(week, season)
        if not settings:
            settings = WeekSettings(week=week, season=season)
            db.session.add(settings)
        return settings

    @property
    def deadline_utc(self):
        """Deadline as an aware UTC datetime (SQLite drops tzinfo)"""
        if self.deadline is None:
            return None
        if self.deadline.tzinfo is None:
            return self.deadline.replace(tzinfo=timezone.utc)
        return self.deadline

    def to_dict(self):
        return {
            "id": self.id,
            "week": self.week,
            "season": self.season,
            "deadline": self.deadline_utc.isoformat() if self.deadline else None,
            "isLocked": self.is_locked,
        }
