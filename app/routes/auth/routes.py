import logging

from flask import current_app, jsonify
from flask_login import current_user, login_required, login_user, logout_user
from flask_wtf.csrf import generate_csrf
from sqlalchemy.exc import SQLAlchemyError

from app import db, limiter, login_manager
from app.forms.auth import LoginForm, RegistrationForm, UpdateRoleForm, first_error, sanitize_input
from app.models import User
from app.routes.auth import bp
from app.services.grading_service import update_user_total_points
from app.utils.decorators import admin_required

logger = logging.getLogger(__name__)


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))


@bp.route("/csrf-token")
def csrf_token():
    """CSRF token for the frontend to echo back in X-CSRFToken"""
    return jsonify({"csrfToken": generate_csrf()})


@bp.route("/register", methods=["POST"])
@limiter.limit("5 per hour")
def register():
    form = RegistrationForm()
    if not form.validate_on_submit():
        return jsonify({"message": first_error(form)}), 400

    try:
        user = User(
            username=User.normalize_username(form.username.data),
            display_name=sanitize_input(form.displayName.data),
        )
        user.set_password(form.password.data)

        db.session.add(user)
        db.session.commit()

    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Registration failed: {e}")
        return jsonify({"message": "Server error"}), 500

    login_user(user, remember=True)
    logger.info(f"Registered user {user.username}")

    return jsonify({"user": user.to_dict()}), 201


@bp.route("/login", methods=["POST"])
@limiter.limit("10 per minute")
def login():
    form = LoginForm()
    if not form.validate_on_submit():
        return jsonify({"message": first_error(form)}), 400

    user = User.get_by_username(form.username.data)
    if not user or not user.check_password(form.password.data):
        return jsonify({"message": "Invalid credentials"}), 400

    login_user(user, remember=True)
    return jsonify({"user": user.to_dict()})


@bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return jsonify({"message": "Logged out"})


@bp.route("/me")
@login_required
def me():
    return jsonify({"user": current_user.to_dict()})


@bp.route("/make-admin", methods=["PUT"])
@login_required
def make_admin():
    """Promote the current user while the league is being set up"""
    if not current_app.config.get("ALLOW_SELF_ADMIN"):
        return jsonify({"message": "Self-promotion is disabled"}), 403

    current_user.role = "admin"
    db.session.commit()
    logger.warning(f"User {current_user.username} promoted themselves to admin")

    return jsonify(
        {
            "message": "User role updated to admin successfully",
            "user": current_user.to_dict(),
        }
    )


@bp.route("/users")
@login_required
@admin_required
def users():
    """List every user, ordered by display name"""
    all_users = User.query.order_by(User.display_name).all()
    return jsonify([user.to_dict() for user in all_users])


@bp.route("/users/<int:user_id>", methods=["DELETE"])
@login_required
@admin_required
def delete_user(user_id):
    """Delete a user and their picks"""
    user = db.session.get(User, user_id)
    if not user:
        return jsonify({"message": "User not found"}), 404

    deleted = user.to_dict()
    try:
        db.session.delete(user)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Failed to delete user {user_id}: {e}")
        return jsonify({"message": "Server error"}), 500

    # Leaderboard totals no longer include the removed picks
    update_user_total_points()
    logger.info(f"Admin {current_user.username} deleted user {deleted['username']}")

    return jsonify({"message": "User deleted successfully", "deletedUser": deleted})


@bp.route("/update-role", methods=["PUT"])
@login_required
@admin_required
def update_role():
    form = UpdateRoleForm()
    if not form.validate_on_submit():
        return jsonify({"message": first_error(form)}), 400

    try:
        user = db.session.get(User, int(form.userId.data))
    except (TypeError, ValueError):
        user = None
    if not user:
        return jsonify({"message": "User not found"}), 404

    user.role = form.role.data
    db.session.commit()

    return jsonify(
        {"message": "User role updated successfully", "user": user.to_dict()}
    )
