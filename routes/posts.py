from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from services import post_service
from .forms import PostForm, form_error_response

posts_bp = Blueprint("posts", __name__)


@posts_bp.route("/posts/create", methods=["POST"])
@login_required
def create_post():
    form = PostForm()
    if not form.validate_on_submit():
        return form_error_response(form)
    post = post_service.create_post(
        current_user,
        form.title.data,
        form.post_category.data,
        form.post_description.data,
        form.image.data,
    )
    return jsonify({"message": "post created", "post": post.public_payload()}), 201


@posts_bp.route("/all/posts/<user_id>", methods=["GET"])
@login_required
def user_posts(user_id):
    return jsonify({"posts": [p.public_payload() for p in post_service.posts_by_user(user_id)]})


@posts_bp.route("/all/publications", methods=["GET"])
def publications():
    return jsonify({"publications": [p.public_payload() for p in post_service.all_publications()]})


@posts_bp.route("/publication/<post_id>", methods=["GET"])
def publication(post_id):
    return jsonify({"publication": post_service.get_publication(post_id).public_payload()})
