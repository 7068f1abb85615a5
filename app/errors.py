"""Application errors and the global error normalizer.

Every view raises ``AppError`` subclasses (or lets framework/database errors
propagate); Flask forwards them to the single handler registered here, which
answers with JSON for ``/api`` routes and with the rendered error page for
everything else.
"""
import traceback

from flask import current_app, jsonify, render_template, request
from flask_babel import gettext as _
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from app.extensions import db


class AppError(Exception):
    """An expected (operational) failure with an HTTP status code."""

    status_code = 500
    default_message = 'Something went very wrong!'

    def __init__(self, message=None, status_code=None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.is_operational = True
        super().__init__(self.message)

    @property
    def status(self):
        return 'fail' if 400 <= self.status_code < 500 else 'error'


class ValidationError(AppError):
    status_code = 400
    default_message = 'Invalid input data.'


class InvalidResetTokenError(AppError):
    status_code = 400
    default_message = 'Token is invalid or has expired'


class UnauthorizedError(AppError):
    status_code = 401
    default_message = 'You are not logged in! Please log in to get access.'


class InvalidTokenError(UnauthorizedError):
    default_message = 'Invalid token. Please log in again!'


class TokenExpiredError(UnauthorizedError):
    default_message = 'Your token has expired! Please log in again.'


class ForbiddenError(AppError):
    status_code = 403
    default_message = 'You do not have permission to perform this action'


class NotFoundError(AppError):
    status_code = 404
    default_message = 'No document found with that ID'


class RateLimitError(AppError):
    status_code = 429
    default_message = 'Too many requests from this IP, please try again in an hour!'


class EmailDeliveryError(AppError):
    status_code = 500
    default_message = 'There was an error sending the email. Try again later!'


class InternalError(AppError):
    status_code = 500


# ==================== Normalization ====================

def _from_http_exception(exc):
    if exc.code == 404:
        return NotFoundError(f"Can't find {request.path} on this server!")
    if exc.code == 413:
        return AppError('Request body is too large', 413)
    return AppError(exc.description, exc.code or 500)


def normalize_error(exc):
    """Map any exception to an ``AppError``; unknown errors stay non-operational."""
    if isinstance(exc, AppError):
        return exc
    if isinstance(exc, HTTPException):
        return _from_http_exception(exc)
    if isinstance(exc, IntegrityError):
        db.session.rollback()
        return ValidationError('Duplicate field value. Please use another value!')

    error = InternalError()
    error.is_operational = False
    return error


def _is_production():
    return current_app.config.get('ENV_NAME') == 'production'


def _api_response(error, original):
    if not _is_production():
        body = {
            'status': error.status,
            'message': str(original) if not error.is_operational else error.message,
            'error': {
                'name': type(original).__name__,
                'statusCode': error.status_code,
            },
            'stack': ''.join(traceback.format_exception(type(original), original, original.__traceback__)),
        }
        return jsonify(body), error.status_code

    if error.is_operational:
        return jsonify({'status': error.status, 'message': error.message}), error.status_code
    return jsonify({'status': 'error', 'message': 'Something went very wrong!'}), 500


def _rendered_response(error, original):
    if not _is_production():
        message = error.message if error.is_operational else str(original)
    elif error.is_operational:
        message = error.message
    else:
        message = _('Please try again later.')
    html = render_template('error.html', title=_('Something went wrong!'), msg=message)
    return html, error.status_code


def handle_error(exc):
    error = normalize_error(exc)
    if not error.is_operational:
        current_app.logger.exception('Unhandled error on %s %s', request.method, request.path, exc_info=exc)
    elif error.status_code >= 500:
        current_app.logger.error('%s on %s: %s', type(error).__name__, request.path, error.message)

    if request.path.startswith('/api'):
        return _api_response(error, exc)
    return _rendered_response(error, exc)


def register_error_handlers(app):
    """Register the single error collector for every exception type."""
    app.register_error_handler(Exception, handle_error)
