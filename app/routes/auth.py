"""Authentication API - signup, login, logout and password flows."""
from flask import Blueprint, g, jsonify, request, url_for

from app.auth import protect
from app.errors import UnauthorizedError, ValidationError
from app.models import User
from app.routes.factory import json_body
from app.services import passwords
from app.services.session import clear_token, create_send_token

auth_bp = Blueprint('auth', __name__, url_prefix='/api/v1/users')


@auth_bp.route('/signup', methods=['POST'])
def signup():
    data = json_body(request)
    user = User(
        name=data.get('name'),
        email=data.get('email'),
        password=data.get('password'),
        password_confirm=data.get('passwordConfirm'),
    )
    user.save()
    return create_send_token(user, 201)


@auth_bp.route('/login', methods=['POST'])
def login():
    data = json_body(request)
    email = data.get('email')
    password = data.get('password')

    if not email or not password:
        raise ValidationError('Please provide email and password!')

    user = User.find_by_email(email)
    if user is None or not user.correct_password(password):
        raise UnauthorizedError('Incorrect email or password')

    return create_send_token(user, 200)


@auth_bp.route('/logout', methods=['GET'])
def logout():
    return clear_token(jsonify({'status': 'success'}))


@auth_bp.route('/forgotPassword', methods=['POST'])
def forgot_password():
    data = json_body(request)
    passwords.request_reset(
        data.get('email'),
        lambda token: url_for('auth.reset_password', token=token, _external=True),
    )
    return jsonify({'status': 'success', 'message': 'Token sent to email!'})


@auth_bp.route('/resetPassword/<token>', methods=['PATCH'])
def reset_password(token):
    data = json_body(request)
    user = passwords.perform_reset(token, data.get('password'), data.get('passwordConfirm'))
    return create_send_token(user, 200)


@auth_bp.route('/updateMyPassword', methods=['PATCH'])
@protect
def update_my_password():
    data = json_body(request)
    user = passwords.update_password(
        g.user,
        data.get('passwordCurrent'),
        data.get('password'),
        data.get('passwordConfirm'),
    )
    return create_send_token(user, 200)
