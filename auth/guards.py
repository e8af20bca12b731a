from functools import wraps

from flask import abort
from flask_login import current_user

from extensions import login_manager


def admin_required(view):
    """Like login_required, plus a stored role of 'admin'."""

    @wraps(view)
    def wrapped(*args, **kwargs):
        if not current_user.is_authenticated:
            return login_manager.unauthorized()
        if not current_user.is_admin:
            abort(403)
        return view(*args, **kwargs)

    return wrapped
