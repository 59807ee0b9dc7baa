from extensions import db
from models import Notification, Post


def create_post(post: Post) -> Post:
    db.session.add(post)
    db.session.flush()
    return post


def posts_by_user(user_id: str) -> list[Post]:
    return Post.query.filter_by(user_id=user_id).order_by(Post.created_at.desc()).all()


def all_posts() -> list[Post]:
    return Post.query.order_by(Post.created_at.desc()).all()


def get_post(post_id: str) -> Post | None:
    return db.session.get(Post, str(post_id))


def add_notification(user_id: str, title: str, body: str, data: dict | None = None, delivered: bool = False) -> Notification:
    notification = Notification(user_id=user_id, title=title, body=body, data=data or {}, delivered=delivered)
    db.session.add(notification)
    return notification


def delete_for_user(user_id: str) -> None:
    Post.query.filter_by(user_id=user_id).delete(synchronize_session=False)
    Notification.query.filter_by(user_id=user_id).delete(synchronize_session=False)
