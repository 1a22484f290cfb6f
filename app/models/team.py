from datetime import datetime, timezone

from app import db


class Team(db.Model):
    __tablename__ = "teams"

    id = db.Column(db.Integer, primary_key=True)

    # External ID for API integration
    api_id = db.Column(db.String(50), unique=True, nullable=False, index=True)

    # Team identification
    name = db.Column(db.String(100), nullable=False)
    city = db.Column(db.String(100), nullable=False)
    abbreviation = db.Column(db.String(10), nullable=False, index=True)

    # Visual elements
    logo_url = db.Column(db.String(500))

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    home_games = db.relationship(
        "Game",
        foreign_keys="Game.home_team_id",
        backref=db.backref("home_team", lazy="joined"),
        lazy="dynamic",
    )
    away_games = db.relationship(
        "Game",
        foreign_keys="Game.away_team_id",
        backref=db.backref("away_team", lazy="joined"),
        lazy="dynamic",
    )

    def __repr__(self):
        return f"<Team {self.abbreviation}>"

    @property
    def full_name(self):
        """Return full team name"""
        return self.name if self.name.startswith(self.city) else f"{self.city} {self.name}"

    @staticmethod
    def get_by_abbreviation(abbreviation):
        """Get team by abbreviation"""
        return Team.query.filter_by(abbreviation=abbreviation.upper()).first()

    @staticmethod
    def upsert(api_id, **fields):
        """Create or update a team keyed by its external ID"""
        team = Team.query.filter_by(api_id=str(api_id)).first()
        if not team:
            team = Team(api_id=str(api_id))
            db.session.add(team)

        for key, value in fields.items():
            if key == "abbreviation" and value:
                value = value.upper()
            setattr(team, key, value)

        return team

    def to_dict(self):
        """Convert team to dictionary for API responses"""
        return {
            "id": self.id,
            "name": self.name,
            "city": self.city,
            "abbreviation": self.abbreviation,
            "logo": self.logo_url,
        }
