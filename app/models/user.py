from datetime import datetime, timezone

from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

from app import db

ROLES = ("user", "admin")


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    display_name = db.Column(db.String(100), nullable=False)

    # Site-wide role: 'user' or 'admin'
    role = db.Column(db.String(10), nullable=False, default="user")

    # Sum of points_earned over every stored pick, recomputed after grading
    total_points = db.Column(db.Integer, nullable=False, default=0)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    picks = db.relationship(
        "Pick", backref="user", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.CheckConstraint("role IN ('user', 'admin')", name="valid_user_role"),
    )

    def __repr__(self):
        return f"<User {self.username}>"

    @staticmethod
    def normalize_username(username):
        """Usernames are case-insensitive and stored lower-case"""
        return (username or "").strip().lower()

    @staticmethod
    def get_by_username(username):
        return User.query.filter_by(username=User.normalize_username(username)).first()

    def set_password(self, password):
        """Set password hash"""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Check password against hash"""
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self):
        return self.role == "admin"

    def get_picks_for_week(self, week, season):
        """Get this user's picks for a week, best bet first"""
        from .pick import Pick

        return (
            self.picks.filter_by(week=week, season=season)
            .order_by(Pick.points.desc(), Pick.id)
            .all()
        )

    def to_dict(self):
        """Convert user to dictionary for API responses"""
        return {
            "id": self.id,
            "username": self.username,
            "displayName": self.display_name,
            "role": self.role,
            "totalPoints": self.total_points,
        }
