from sqlalchemy import func

from extensions import db
from models import AuditLog, Blacklist, Role, User
from utils.security import hash_value


def find_by_id(user_id: str) -> User | None:
    if not user_id:
        return None
    return db.session.get(User, str(user_id))


def find_by_email(email: str) -> User | None:
    if not email:
        return None
    return User.query.filter(func.lower(User.email) == email.lower().strip()).first()


def find_by_username(username: str) -> User | None:
    return User.query.filter_by(username=username).first()


def email_exists(email: str) -> bool:
    return find_by_email(email) is not None


def telephone_exists(telephone: str) -> bool:
    if not telephone:
        return False
    return User.query.filter_by(telephone=telephone).first() is not None


def unique_username(base: str) -> str:
    """Return ``base`` or ``base<N>`` with the smallest free numeric suffix."""
    base = (base or "user").strip().lower() or "user"
    candidate = base
    suffix = 0
    while find_by_username(candidate) is not None:
        suffix += 1
        candidate = f"{base}{suffix}"
    return candidate


def find_role(name: str) -> Role | None:
    return Role.query.filter_by(name=name).first()


def add_user(user: User) -> User:
    db.session.add(user)
    db.session.flush()
    return user


def list_all() -> list[User]:
    return User.query.order_by(User.created_at.desc()).all()


def count_online() -> int:
    return User.query.filter_by(is_online=True).count()


def find_by_reset_token(token: str) -> User | None:
    return User.query.filter_by(reset_token_hash=hash_value(token)).first()


def blacklist_token(token: str) -> Blacklist:
    digest = hash_value(token)
    entry = Blacklist.query.filter_by(token_hash=digest).first()
    if entry:
        return entry
    entry = Blacklist(token_hash=digest)
    db.session.add(entry)
    return entry


def is_blacklisted(token: str) -> bool:
    return Blacklist.query.filter_by(token_hash=hash_value(token)).first() is not None


def record_audit(user_id: str | None, action_type: str, ip_address: str | None = None, user_agent: str | None = None, context_entity: str | None = None) -> AuditLog:
    entry = AuditLog(
        user_id=user_id,
        action_type=action_type,
        ip_address=ip_address,
        user_agent=(user_agent or "unknown")[:255],
        context_entity=context_entity,
    )
    db.session.add(entry)
    return entry
