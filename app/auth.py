"""Authentication and role gates for views.

``authenticate`` walks a request through

    token extracted -> token verified -> user loaded -> password fresh

and stops at the first failing step. ``protect`` and ``restrict_to`` are the
view decorators built on it; ``is_logged_in`` is the never-failing variant used
by rendered pages.
"""
import logging
from functools import wraps

from flask import g, request

from app.errors import AppError, ForbiddenError, UnauthorizedError
from app.models import User
from app.services.session import extract_token
from app.services.tokens import verify_token

logger = logging.getLogger(__name__)


def authenticate(req):
    """Return the active, fresh user behind the request's session token."""
    token = extract_token(req)
    if not token:
        raise UnauthorizedError('You are not logged in! Please log in to get access.')

    claims = verify_token(token)

    user = User.find_by_id(claims.user_id)
    if user is None:
        raise UnauthorizedError('The user belonging to this token no longer exist.')

    if user.changed_password_after(claims.issued_at):
        raise UnauthorizedError('User recently changed password! Please log in again.')

    return user


def authorize(user, allowed_roles):
    """Raise ``ForbiddenError`` unless ``user`` holds one of ``allowed_roles``."""
    if user is None or user.role not in allowed_roles:
        raise ForbiddenError('You do not have permission to perform this action')
    return user


def is_logged_in():
    """Bind ``g.user`` when the request carries a valid session; never raises."""
    g.user = None
    try:
        g.user = authenticate(request)
    except AppError as exc:
        logger.debug('Anonymous request to %s: %s', request.path, exc.message)
    return g.user


# ==================== Decorators ====================

def protect(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.user = authenticate(request)
        return f(*args, **kwargs)
    return decorated_function


def restrict_to(*roles):
    """Authenticate, then gate on role; the user checked is the one just loaded."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = authenticate(request)
            g.user = authorize(user, roles)
            return f(*args, **kwargs)
        return decorated_function
    return decorator
