"""Core data models for accounts, incident reports, media, rewards, and engagement."""
import uuid
from datetime import datetime

from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

from extensions import db


def generate_uuid() -> str:
	return str(uuid.uuid4())


ROLE_NAMES: tuple[str, ...] = (
	"User",
	"Admin",
)

REPORT_STATUSES: tuple[str, ...] = (
	"pending",
	"approved",
	"rejected",
	"accepted",
)

VOTE_TYPES: tuple[str, ...] = (
	"upvote",
	"downvote",
)

MEDIA_CATEGORIES: tuple[str, ...] = (
	"image",
	"video",
	"audio",
)

REWARD_TYPES: tuple[str, ...] = (
	"New entry",
	"Another entry",
	"Report approved",
	"Adjustment",
)


class Role(db.Model):
	__tablename__ = "roles"

	id = db.Column(db.Integer, primary_key=True)
	name = db.Column(db.String(50), unique=True, nullable=False, index=True)
	description = db.Column(db.String(255), nullable=True)

	users = db.relationship("User", back_populates="role", lazy="dynamic")

	@staticmethod
	def get_or_create(name: str, description: str = ""):
		role = Role.query.filter_by(name=name).first()
		if role:
			return role
		role = Role(name=name, description=description)
		db.session.add(role)
		db.session.commit()
		return role


class User(UserMixin, db.Model):
	__tablename__ = "users"

	id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
	fullname = db.Column(db.String(150), nullable=False)
	username = db.Column(db.String(80), unique=True, nullable=False, index=True)
	telephone = db.Column(db.String(30), unique=True, nullable=True, index=True)
	email = db.Column(db.String(255), unique=True, nullable=False, index=True)
	password_hash = db.Column(db.String(255), nullable=False)
	role_id = db.Column(db.Integer, db.ForeignKey("roles.id"), nullable=False)
	thumbnail_url = db.Column(db.String(1024), nullable=True)
	expo_push_token = db.Column(db.String(255), nullable=True)
	reset_token_hash = db.Column(db.String(128), nullable=True, index=True)
	is_social = db.Column(db.Boolean, default=False, nullable=False)
	is_verified = db.Column(db.Boolean, default=False, nullable=False)
	is_queried = db.Column(db.Boolean, default=False, nullable=False, index=True)
	is_blocked = db.Column(db.Boolean, default=False, nullable=False, index=True)
	is_online = db.Column(db.Boolean, default=False, nullable=False, index=True)
	created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
	last_login_at = db.Column(db.DateTime, nullable=True)

	role = db.relationship("Role", back_populates="users")
	audit_logs = db.relationship("AuditLog", back_populates="user", lazy="dynamic", cascade="all, delete-orphan")
	reports = db.relationship("IncidentReport", back_populates="user", lazy="dynamic", cascade="all, delete-orphan")
	reward = db.relationship("Reward", back_populates="user", uselist=False, cascade="all, delete-orphan")

	def set_password(self, password: str) -> None:
		self.password_hash = generate_password_hash(password, method="pbkdf2:sha256", salt_length=16)

	def check_password(self, password: str) -> bool:
		return check_password_hash(self.password_hash, password)

	@property
	def is_admin(self) -> bool:
		return bool(self.role and self.role.name.lower() == "admin")

	@property
	def role_name(self) -> str:
		return self.role.name if self.role else ""

	@property
	def is_active(self) -> bool:  # Flask-Login: blocked accounts cannot authenticate
		return not self.is_blocked

	def public_payload(self) -> dict:
		return {
			"id": self.id,
			"fullname": self.fullname,
			"username": self.username,
			"email": self.email,
			"telephone": self.telephone,
			"role": self.role_name,
			"profile_image": self.thumbnail_url,
			"is_verified": self.is_verified,
			"is_online": self.is_online,
		}


class Blacklist(db.Model):
	__tablename__ = "blacklist"

	id = db.Column(db.Integer, primary_key=True)
	token_hash = db.Column(db.String(128), unique=True, nullable=False, index=True)
	created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)


class AuditLog(db.Model):
	__tablename__ = "audit_logs"

	id = db.Column(db.Integer, primary_key=True)
	user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True)
	action_type = db.Column(db.String(50), nullable=False)
	ip_address = db.Column(db.String(64), nullable=True)
	user_agent = db.Column(db.String(255), nullable=True)
	context_entity = db.Column(db.String(120), nullable=True)
	timestamp = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

	user = db.relationship("User", back_populates="audit_logs")


class IncidentReport(db.Model):
	__tablename__ = "incident_reports"

	id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
	user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
	user_username = db.Column(db.String(80), nullable=True)
	user_fullname = db.Column(db.String(150), nullable=True)
	description = db.Column(db.Text, nullable=True)
	latitude = db.Column(db.Float, nullable=True)
	longitude = db.Column(db.Float, nullable=True)
	category = db.Column(db.String(120), nullable=True, index=True)
	state_name = db.Column(db.String(120), nullable=True, index=True)
	lga_name = db.Column(db.String(120), nullable=True, index=True)
	landmark = db.Column(db.String(255), nullable=True)
	report_type_name = db.Column(db.String(120), nullable=True, index=True)
	sub_report_type = db.Column(db.String(120), nullable=True)
	rating = db.Column(db.String(30), nullable=True)
	date_of_incidence = db.Column(db.String(50), nullable=True)
	time_of_incidence = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
	details = db.Column(db.JSON, nullable=False, default=dict)
	feed_urls = db.Column(db.Text, nullable=True)
	thumbnail_urls = db.Column(db.Text, nullable=True)
	full_size_urls = db.Column(db.Text, nullable=True)
	report_status = db.Column(db.String(20), nullable=False, default="pending", index=True)
	reward_point = db.Column(db.Integer, nullable=False, default=0)
	upvote_count = db.Column(db.Integer, nullable=False, default=0)
	downvote_count = db.Column(db.Integer, nullable=False, default=0)
	block_request = db.Column(db.Boolean, nullable=False, default=False)
	created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
	updated_at = db.Column(
		db.DateTime,
		default=datetime.utcnow,
		onupdate=datetime.utcnow,
		nullable=False,
	)

	__table_args__ = (
		db.CheckConstraint(
			"report_status IN ('pending','approved','rejected','accepted')",
			name="ck_incident_report_status",
		),
	)

	user = db.relationship("User", back_populates="reports")
	media = db.relationship("Media", back_populates="report", cascade="all, delete-orphan")
	media_count = db.relationship("MediaCount", back_populates="report", uselist=False, cascade="all, delete-orphan")
	report_type = db.relationship("ReportType", back_populates="report", uselist=False, cascade="all, delete-orphan")
	states = db.relationship("State", back_populates="report", cascade="all, delete-orphan")
	lgas = db.relationship("LGA", back_populates="report", cascade="all, delete-orphan")
	votes = db.relationship("Vote", back_populates="report", cascade="all, delete-orphan")
	bookmarks = db.relationship("Bookmark", back_populates="report", cascade="all, delete-orphan")
	follows = db.relationship("Follow", back_populates="report", cascade="all, delete-orphan")

	def public_payload(self) -> dict:
		return {
			"id": self.id,
			"user_id": self.user_id,
			"username": self.user_username,
			"fullname": self.user_fullname,
			"profile_image": self.user.thumbnail_url if self.user else None,
			"description": self.description,
			"latitude": self.latitude,
			"longitude": self.longitude,
			"category": self.category,
			"state_name": self.state_name,
			"lga_name": self.lga_name,
			"landmark": self.landmark,
			"report_type": self.report_type_name,
			"sub_report_type": self.sub_report_type,
			"rating": self.rating,
			"date_of_incidence": self.date_of_incidence,
			"time_of_incidence": self.time_of_incidence.isoformat() if self.time_of_incidence else None,
			"details": self.details or {},
			"feed_urls": self.feed_urls or "",
			"thumbnail_urls": self.thumbnail_urls or "",
			"full_size_urls": self.full_size_urls or "",
			"report_status": self.report_status,
			"reward_point": self.reward_point,
			"upvote_count": self.upvote_count,
			"downvote_count": self.downvote_count,
			"block_request": self.block_request,
			"created_at": self.created_at.isoformat() if self.created_at else None,
		}


class ReportType(db.Model):
	__tablename__ = "report_types"

	id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
	user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
	report_id = db.Column(db.String(36), db.ForeignKey("incident_reports.id"), nullable=False, index=True)
	category = db.Column(db.String(120), nullable=True, index=True)
	state_name = db.Column(db.String(120), nullable=True)
	lga_name = db.Column(db.String(120), nullable=True)
	incident_report_rating = db.Column(db.String(30), nullable=True)
	date_of_incidence = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

	report = db.relationship("IncidentReport", back_populates="report_type")
	sub_reports = db.relationship("SubReport", back_populates="report_type", cascade="all, delete-orphan")


class SubReport(db.Model):
	__tablename__ = "sub_reports"

	id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
	report_type_id = db.Column(db.String(36), db.ForeignKey("report_types.id"), nullable=False, index=True)
	sub_report_type = db.Column(db.String(120), nullable=False)

	report_type = db.relationship("ReportType", back_populates="sub_reports")


class State(db.Model):
	__tablename__ = "states"

	id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
	name = db.Column(db.String(120), nullable=False, index=True)
	report_id = db.Column(db.String(36), db.ForeignKey("incident_reports.id"), nullable=True, index=True)

	report = db.relationship("IncidentReport", back_populates="states")


class LGA(db.Model):
	__tablename__ = "lgas"

	id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
	name = db.Column(db.String(120), nullable=False, index=True)
	state_name = db.Column(db.String(120), nullable=True, index=True)
	report_id = db.Column(db.String(36), db.ForeignKey("incident_reports.id"), nullable=True, index=True)

	report = db.relationship("IncidentReport", back_populates="lgas")


class Reward(db.Model):
	__tablename__ = "rewards"

	id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
	user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, unique=True, index=True)
	incident_report_id = db.Column(db.String(36), db.ForeignKey("incident_reports.id", ondelete="SET NULL"), nullable=True)
	reward_type = db.Column(db.String(40), nullable=False)
	point = db.Column(db.Integer, nullable=False, default=0)
	balance = db.Column(db.Integer, nullable=False, default=0)
	created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
	updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

	__table_args__ = (
		db.CheckConstraint(
			"reward_type IN ('New entry','Another entry','Report approved','Adjustment')",
			name="ck_reward_type",
		),
		db.CheckConstraint("balance >= 0", name="ck_reward_balance_non_negative"),
	)

	user = db.relationship("User", back_populates="reward")

	def public_payload(self) -> dict:
		return {
			"id": self.id,
			"user_id": self.user_id,
			"incident_report_id": self.incident_report_id,
			"reward_type": self.reward_type,
			"point": self.point,
			"balance": self.balance,
			"updated_at": self.updated_at.isoformat() if self.updated_at else None,
		}


class Vote(db.Model):
	__tablename__ = "votes"

	id = db.Column(db.Integer, primary_key=True)
	user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
	report_id = db.Column(db.String(36), db.ForeignKey("incident_reports.id"), nullable=False, index=True)
	vote_type = db.Column(db.String(10), nullable=False)
	created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

	__table_args__ = (
		db.UniqueConstraint("user_id", "report_id", "vote_type", name="uq_vote_user_report_type"),
		db.CheckConstraint("vote_type IN ('upvote','downvote')", name="ck_vote_type"),
	)

	report = db.relationship("IncidentReport", back_populates="votes")


class Media(db.Model):
	__tablename__ = "media"

	id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
	user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
	incident_report_id = db.Column(db.String(36), db.ForeignKey("incident_reports.id"), nullable=False, index=True)
	file_type = db.Column(db.String(20), nullable=False)
	mime_type = db.Column(db.String(60), nullable=False)
	file_size = db.Column(db.Integer, nullable=False, default=0)
	filename = db.Column(db.String(255), nullable=False)
	width = db.Column(db.Integer, nullable=True)
	height = db.Column(db.Integer, nullable=True)
	feed_url = db.Column(db.String(1024), nullable=True)
	thumbnail_url = db.Column(db.String(1024), nullable=True)
	full_size_url = db.Column(db.String(1024), nullable=True)
	points = db.Column(db.Integer, nullable=False, default=0)
	created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

	__table_args__ = (
		db.CheckConstraint("file_type IN ('image','video','audio')", name="ck_media_file_type"),
	)

	report = db.relationship("IncidentReport", back_populates="media")

	def public_payload(self) -> dict:
		return {
			"id": self.id,
			"file_type": self.file_type,
			"mime_type": self.mime_type,
			"filename": self.filename,
			"width": self.width,
			"height": self.height,
			"feed_url": self.feed_url,
			"thumbnail_url": self.thumbnail_url,
			"full_size_url": self.full_size_url,
		}


class MediaCount(db.Model):
	__tablename__ = "media_counts"

	id = db.Column(db.Integer, primary_key=True)
	user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
	incident_report_id = db.Column(db.String(36), db.ForeignKey("incident_reports.id"), nullable=False, unique=True)
	images = db.Column(db.Integer, nullable=False, default=0)
	videos = db.Column(db.Integer, nullable=False, default=0)
	audios = db.Column(db.Integer, nullable=False, default=0)

	report = db.relationship("IncidentReport", back_populates="media_count")

	@property
	def total(self) -> int:
		return (self.images or 0) + (self.videos or 0) + (self.audios or 0)


class Bookmark(db.Model):
	__tablename__ = "bookmarks"

	id = db.Column(db.Integer, primary_key=True)
	user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
	report_id = db.Column(db.String(36), db.ForeignKey("incident_reports.id"), nullable=False, index=True)
	created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

	__table_args__ = (db.UniqueConstraint("user_id", "report_id", name="uq_bookmark_user_report"),)

	report = db.relationship("IncidentReport", back_populates="bookmarks")


class Follow(db.Model):
	__tablename__ = "follows"

	id = db.Column(db.Integer, primary_key=True)
	user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
	report_id = db.Column(db.String(36), db.ForeignKey("incident_reports.id"), nullable=False, index=True)
	follow_text = db.Column(db.Text, nullable=False)
	follow_media = db.Column(db.String(1024), nullable=True)
	created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

	report = db.relationship("IncidentReport", back_populates="follows")
	user = db.relationship("User")


class Post(db.Model):
	__tablename__ = "posts"

	id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
	user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
	title = db.Column(db.String(255), nullable=False)
	post_category = db.Column(db.String(120), nullable=False, index=True)
	image = db.Column(db.String(1024), nullable=True)
	post_description = db.Column(db.Text, nullable=False)
	created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

	def public_payload(self) -> dict:
		return {
			"id": self.id,
			"user_id": self.user_id,
			"title": self.title,
			"post_category": self.post_category,
			"image": self.image,
			"post_description": self.post_description,
			"created_at": self.created_at.isoformat() if self.created_at else None,
		}


class Notification(db.Model):
	__tablename__ = "notifications"

	id = db.Column(db.Integer, primary_key=True)
	user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
	title = db.Column(db.String(255), nullable=False)
	body = db.Column(db.Text, nullable=False)
	data = db.Column(db.JSON, nullable=False, default=dict)
	delivered = db.Column(db.Boolean, nullable=False, default=False)
	created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
