import logging
from functools import wraps

from flask import redirect, request, url_for
from flask_login import current_user

from extensions import login_manager

logger = logging.getLogger(__name__)


def is_logged_in():
    return current_user.is_authenticated


def get_current_user_id():
    return current_user.user_id if current_user.is_authenticated else None


def get_current_user_role():
    return current_user.role_name if current_user.is_authenticated else None


def _check_role(roles):
    """Return a response when the current user may not continue, else None."""
    # 1. Not logged in: Flask-Login sends them to the login page with ?next=
    if not current_user.is_authenticated:
        return login_manager.unauthorized()

    # 2. Logged in with the wrong role
    if current_user.role_name not in roles:
        logger.warning(
            "User %s (%s) denied access to %s",
            current_user.user_id, current_user.role_name, request.path
        )
        return redirect(url_for("auth.unauthorized"))

    return None


def role_required(*roles):
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            denied = _check_role(roles)
            if denied is not None:
                return denied
            return func(*args, **kwargs)
        return wrapper
    return decorator


def guard_blueprint(blueprint, *roles):
    """Apply the role policy to every route of ``blueprint`` before its handlers run."""
    @blueprint.before_request
    def _require_role():
        return _check_role(roles)

    return blueprint
