"""User resource API - the current user's account and admin management."""
from flask import Blueprint, g, jsonify, request

from app.auth import protect, restrict_to
from app.errors import AppError, ValidationError
from app.models import User, VALID_ROLES
from app.routes.factory import deleted_response, get_or_404, json_body, list_response, one_response

users_bp = Blueprint('users', __name__, url_prefix='/api/v1/users')

PASSWORD_FIELDS = ('password', 'passwordConfirm', 'passwordCurrent')


def _reject_password_fields(data, message):
    if any(field in data for field in PASSWORD_FIELDS):
        raise ValidationError(message)


# ==================== Current user ====================

@users_bp.route('/me', methods=['GET'])
@protect
def get_me():
    return one_response(g.user)


@users_bp.route('/updateMe', methods=['PATCH'])
@protect
def update_me():
    data = json_body(request)
    _reject_password_fields(data, 'This route is not for password updates. Please use /updateMyPassword.')

    user = g.user.update_from(data, ('name', 'email'))
    user.save()
    return jsonify({'status': 'success', 'data': {'user': user.to_dict()}})


@users_bp.route('/deleteMe', methods=['DELETE'])
@protect
def delete_me():
    g.user.active = False
    g.user.save(validate=False)
    return deleted_response()


# ==================== Admin ====================

@users_bp.route('/', methods=['GET'], strict_slashes=False)
@restrict_to('admin')
def get_all_users():
    return list_response(User, User.query_active())


@users_bp.route('/', methods=['POST'], strict_slashes=False)
@restrict_to('admin')
def create_user():
    raise AppError('This route is not defined! Please use /signup instead', 500)


@users_bp.route('/<int:user_id>', methods=['GET'])
@restrict_to('admin')
def get_user(user_id):
    return one_response(get_or_404(User, user_id, User.query_active()))


@users_bp.route('/<int:user_id>', methods=['PATCH'])
@restrict_to('admin')
def update_user(user_id):
    user = get_or_404(User, user_id, User.query_active())
    data = json_body(request)
    _reject_password_fields(data, 'This route is not for password updates.')
    if 'role' in data and data['role'] not in VALID_ROLES:
        raise ValidationError(f'Role is either: {", ".join(VALID_ROLES)}')

    user.update_from(data, ('name', 'email', 'role', 'photo'))
    user.save()
    return one_response(user)


@users_bp.route('/<int:user_id>', methods=['DELETE'])
@restrict_to('admin')
def delete_user(user_id):
    get_or_404(User, user_id).delete()
    return deleted_response()
