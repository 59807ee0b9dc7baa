"""Role checks layered on top of bearer-token authentication."""
from functools import wraps

from flask import abort, current_app, request
from flask_login import current_user, login_required

from extensions import db
from repositories.users import record_audit


def roles_required(*roles):
    """Let the view run only for users holding one of ``roles`` (case-insensitive).

    Denials are audited and answered with 403; anonymous callers get the 401
    from ``login_required`` first.
    """
    allowed = {r.lower() for r in roles}

    def decorator(view_func):
        @wraps(view_func)
        @login_required
        def wrapped(*args, **kwargs):
            if current_user.role_name.lower() not in allowed:
                current_app.logger.warning(
                    "role_denied",
                    extra={"user_id": current_user.id, "required": sorted(allowed), "path": request.path},
                )
                record_audit(
                    current_user.id,
                    "UNAUTHORIZED_ACCESS",
                    request.remote_addr,
                    request.headers.get("User-Agent"),
                    request.path[:120],
                )
                db.session.commit()
                abort(403)
            return view_func(*args, **kwargs)

        return wrapped

    return decorator


admin_required = roles_required("Admin")
