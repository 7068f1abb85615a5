"""Carry session tokens in cookies and the Authorization header."""
from datetime import timedelta

from flask import current_app, jsonify

from app.models.base import utcnow
from app.services.tokens import issue_token

LOGGED_OUT = 'loggedout'


def _cookie_name():
    return current_app.config.get('JWT_COOKIE_NAME', 'jwt')


def attach_token(response, token):
    days = current_app.config['JWT_COOKIE_EXPIRES_IN']
    response.set_cookie(
        _cookie_name(),
        token,
        expires=utcnow() + timedelta(days=days),
        httponly=True,
        secure=current_app.config.get('ENV_NAME') == 'production',
    )
    return response


def clear_token(response):
    """Overwrite the session cookie with a short-lived placeholder."""
    response.set_cookie(
        _cookie_name(),
        LOGGED_OUT,
        expires=utcnow() + timedelta(seconds=10),
        httponly=True,
    )
    return response


def extract_token(request):
    """Bearer header first, then the session cookie; ``None`` when neither."""
    authorization = request.headers.get('Authorization', '')
    if authorization.startswith('Bearer'):
        parts = authorization.split()
        if len(parts) == 2:
            return parts[1]
    token = request.cookies.get(_cookie_name())
    if token and token != LOGGED_OUT:
        return token
    return None


def create_send_token(user, status_code):
    """Log ``user`` in: JSON body with the token plus the session cookie."""
    token = issue_token(user.id)
    response = jsonify({
        'status': 'success',
        'token': token,
        'data': {'user': user.to_dict()},
    })
    response.status_code = status_code
    return attach_token(response, token)
