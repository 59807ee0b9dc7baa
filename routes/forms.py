"""Request forms shared by the API blueprints.

Forms read JSON bodies as well as multipart/form-encoded ones. CSRF is off:
every authorized call carries a bearer token instead of a session cookie.
"""
from flask import jsonify
from flask_wtf import FlaskForm
from flask_wtf.file import FileField, MultipleFileField
from wtforms import FloatField, PasswordField, StringField
from wtforms.validators import AnyOf, DataRequired, Email, EqualTo, Length, Optional

from models import ROLE_NAMES


class ApiForm(FlaskForm):
    class Meta:
        csrf = False


def form_error_response(form: FlaskForm):
    return jsonify({"error": "Invalid input", "errors": form.errors}), 400


class SignupForm(ApiForm):
    fullname = StringField("Full name", validators=[DataRequired(), Length(max=150)])
    username = StringField("Username", validators=[Optional(), Length(min=3, max=80)])
    email = StringField("Email", validators=[DataRequired(), Email(), Length(max=255)])
    telephone = StringField("Telephone", validators=[Optional(), Length(max=30)])
    password = PasswordField("Password", validators=[DataRequired(), Length(min=8, max=128)])


class LoginForm(ApiForm):
    email = StringField("Email", validators=[DataRequired(), Email(), Length(max=255)])
    password = PasswordField("Password", validators=[DataRequired()])
    expo_push_token = StringField("Push token", validators=[Optional(), Length(max=255)])


class SocialTokenForm(ApiForm):
    access_token = StringField("Provider access token", validators=[DataRequired(), Length(max=4096)])
    expo_push_token = StringField("Push token", validators=[Optional(), Length(max=255)])


class RefreshForm(ApiForm):
    refresh_token = StringField("Refresh token", validators=[DataRequired()])


class ForgotPasswordForm(ApiForm):
    email = StringField("Email", validators=[DataRequired(), Email(), Length(max=255)])


class ResetPasswordForm(ApiForm):
    password = PasswordField("Password", validators=[DataRequired(), Length(min=8, max=128)])
    confirm_password = PasswordField(
        "Confirm password", validators=[DataRequired(), EqualTo("password", message="Passwords must match.")]
    )


class ProfileForm(ApiForm):
    fullname = StringField("Full name", validators=[Optional(), Length(max=150)])
    username = StringField("Username", validators=[Optional(), Length(min=3, max=80)])
    telephone = StringField("Telephone", validators=[Optional(), Length(max=30)])


class PushTokenForm(ApiForm):
    token = StringField("Push token", validators=[DataRequired(), Length(max=255)])


class ReportForm(ApiForm):
    description = StringField("Description", validators=[Optional(), Length(max=5000)])
    latitude = FloatField("Latitude", validators=[Optional()])
    longitude = FloatField("Longitude", validators=[Optional()])
    category = StringField("Category", validators=[Optional(), Length(max=120)])
    state_name = StringField("State", validators=[Optional(), Length(max=120)])
    lga_name = StringField("LGA", validators=[Optional(), Length(max=120)])
    landmark = StringField("Landmark", validators=[Optional(), Length(max=255)])
    report_type = StringField("Report type", validators=[Optional(), Length(max=120)])
    sub_report_type = StringField("Sub report type", validators=[Optional(), Length(max=120)])
    rating = StringField("Rating", validators=[Optional(), Length(max=30)])
    date_of_incidence = StringField("Date of incidence", validators=[Optional(), Length(max=50)])
    media_files = MultipleFileField("Media", name="mediaFiles")


class MediaUploadForm(ApiForm):
    media_files = MultipleFileField("Media", name="mediaFiles")


class FollowForm(ApiForm):
    follow_text = StringField("Follow text", validators=[DataRequired(), Length(max=2000)])
    follow_media = FileField("Follow media")


class PostForm(ApiForm):
    title = StringField("Title", validators=[DataRequired(), Length(max=255)])
    post_category = StringField("Category", validators=[DataRequired(), Length(max=120)])
    post_description = StringField("Description", validators=[DataRequired(), Length(max=10000)])
    image = FileField("Image")


class RoleForm(ApiForm):
    role = StringField("Role", validators=[DataRequired(), AnyOf(ROLE_NAMES)])
