"""Posts authored by users and exposed publicly as publications."""
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.datastructures import FileStorage

from extensions import db
from models import Post, User
from repositories import posts as post_repo
from services import NotFoundError, ServiceError
from services.media_service import process_uploads
from utils.media import UnsupportedMediaError


def create_post(user: User, title: str, post_category: str, post_description: str, image: FileStorage | None = None) -> Post:
    image_url = None
    if image is not None and (image.filename or "").strip():
        processed = process_uploads([image])[0]
        if processed["file_type"] != "image":
            raise UnsupportedMediaError("post attachments must be images")
        image_url = processed["full_size_url"]

    post = Post(
        user_id=user.id,
        title=title.strip(),
        post_category=post_category.strip(),
        post_description=post_description.strip(),
        image=image_url,
    )
    try:
        post_repo.create_post(post)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("post_create_failed", extra={"user_id": user.id})
        raise ServiceError("unable to create post", 500) from exc
    current_app.logger.info("post_created", extra={"user_id": user.id, "post_id": post.id})
    return post


def posts_by_user(user_id: str) -> list[Post]:
    return post_repo.posts_by_user(user_id)


def all_publications() -> list[Post]:
    return post_repo.all_posts()


def get_publication(post_id: str) -> Post:
    post = post_repo.get_post(post_id)
    if post is None:
        raise NotFoundError("publication not found")
    return post
