"""Password reset and password change flows.

Reset state per user: no reset pending -> token issued -> consumed or expired.
Only the SHA-256 digest of the emailed token is stored, next to its expiry;
both fields are cleared once the token is used or the email cannot be sent.
"""
import logging

from flask import current_app

from app.errors import (
    EmailDeliveryError,
    InvalidResetTokenError,
    NotFoundError,
    UnauthorizedError,
)
from app.models import User
from app.models.base import utcnow
from app.security import digest_token
from app.services.email import send_email

logger = logging.getLogger(__name__)


def request_reset(email, reset_url_for):
    """Store a reset digest for ``email`` and mail the plaintext token.

    ``reset_url_for(token)`` builds the link sent to the user. Unknown emails
    raise ``NotFoundError`` before anything is written or sent.
    """
    user = User.find_by_email(email)
    if user is None:
        raise NotFoundError('There is no user with email address.')

    token = user.create_password_reset_token()
    user.save(validate=False)

    reset_url = reset_url_for(token)
    minutes = current_app.config['PASSWORD_RESET_EXPIRES_MINUTES']
    message = (
        f'Forgot your password? Submit a PATCH request with your new password and '
        f'passwordConfirm to: {reset_url}\n'
        f"If you didn't forget your password, please ignore this email!"
    )
    try:
        send_email(
            recipient=user.email,
            subject=f'Your password reset token (valid for {minutes} min)',
            body=message,
        )
    except EmailDeliveryError:
        user.clear_password_reset()
        user.save(validate=False)
        logger.warning('Password reset for user %s rolled back after failed email', user.id)
        raise
    return user


def perform_reset(token, password, password_confirm):
    """Swap a valid, unexpired reset token for a new password."""
    if not isinstance(token, str) or not token:
        raise InvalidResetTokenError()

    user = User.query_active().filter(
        User.password_reset_token == digest_token(token),
        User.password_reset_expires > utcnow(),
    ).first()
    if user is None:
        raise InvalidResetTokenError()

    user.set_password(password, password_confirm)
    user.clear_password_reset()
    user.save()
    return user


def update_password(current_user, password_current, password, password_confirm):
    """Change the password of an authenticated user after re-checking the old one."""
    user = User.find_by_id(current_user.id)
    if user is None or not user.correct_password(password_current):
        raise UnauthorizedError('Your current password is wrong.')

    user.set_password(password, password_confirm)
    user.save()
    return user
