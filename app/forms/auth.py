import html

from flask_wtf import FlaskForm
from wtforms import PasswordField, StringField
from wtforms.validators import DataRequired, Length, Regexp, ValidationError

from app.models.user import ROLES, User


def sanitize_input(text):
    """Sanitize user input to prevent XSS"""
    if not text:
        return text
    return html.escape(text.strip())


def first_error(form):
    """First validation message of a form, for JSON error responses"""
    for errors in form.errors.values():
        if errors:
            return errors[0]
    return "Invalid request"


# Field names match the JSON keys sent by the frontend; Flask-WTF reads JSON
# request bodies as form data.


class LoginForm(FlaskForm):
    username = StringField("Username", validators=[DataRequired(), Length(max=80)])
    password = PasswordField("Password", validators=[DataRequired()])


class RegistrationForm(FlaskForm):
    username = StringField(
        "Username",
        validators=[
            DataRequired(),
            Length(
                min=3, max=80, message="Username must be between 3 and 80 characters"
            ),
            Regexp(
                r"^\s*[a-zA-Z0-9_.-]+\s*$",
                message="Username can only contain letters, numbers, dots, underscores, and hyphens",
            ),
        ],
    )
    displayName = StringField(
        "Display Name",
        validators=[
            DataRequired(message="Display name is required"),
            Length(max=100),
        ],
    )
    password = PasswordField(
        "Password",
        validators=[
            DataRequired(),
            Length(min=6, message="Password must be at least 6 characters long"),
        ],
    )

    def validate_username(self, username):
        if User.get_by_username(username.data):
            raise ValidationError("Username already exists")


class UpdateRoleForm(FlaskForm):
    userId = StringField("User", validators=[DataRequired()])
    role = StringField(
        "Role",
        validators=[DataRequired()],
    )

    def validate_role(self, role):
        if role.data not in ROLES:
            raise ValidationError('Role must be "user" or "admin"')
