# File: tests/test_auth.py

import pytest

from app.auth import authenticate, authorize
from app.errors import ForbiddenError, UnauthorizedError
from app.extensions import db
from app.models import User
from conftest import PASSWORD, bearer


def login(client, email='a@x.com', password=PASSWORD):
    return client.post('/api/v1/users/login', json={'email': email, 'password': password})


def test_signup_returns_token_and_user_without_password(client):
    resp = client.post('/api/v1/users/signup', json={
        'name': 'A',
        'email': 'a@x.com',
        'password': 'secret123',
        'passwordConfirm': 'secret123',
    })
    assert resp.status_code == 201
    body = resp.get_json()
    assert body['status'] == 'success'
    assert body['token']
    user = body['data']['user']
    assert user['email'] == 'a@x.com'
    assert user['role'] == 'user'
    assert 'password' not in user
    assert 'password_hash' not in user
    assert 'passwordHash' not in user


def test_signup_ignores_requested_role(client):
    resp = client.post('/api/v1/users/signup', json={
        'name': 'Mallory',
        'email': 'm@x.com',
        'password': 'secret123',
        'passwordConfirm': 'secret123',
        'role': 'admin',
    })
    assert resp.status_code == 201
    assert resp.get_json()['data']['user']['role'] == 'user'


def test_signup_rejects_mismatched_confirmation(client):
    resp = client.post('/api/v1/users/signup', json={
        'name': 'A',
        'email': 'a@x.com',
        'password': 'secret123',
        'passwordConfirm': 'secret124',
    })
    assert resp.status_code == 400
    body = resp.get_json()
    assert body['status'] == 'fail'
    assert 'Passwords are not the same!' in body['message']


def test_signup_rejects_short_password(client):
    resp = client.post('/api/v1/users/signup', json={
        'name': 'A', 'email': 'a@x.com', 'password': 'short', 'passwordConfirm': 'short',
    })
    assert resp.status_code == 400
    assert 'at least 8 characters' in resp.get_json()['message']


def test_login_then_protect_binds_matching_user(client, make_user):
    make_user(email='a@x.com', name='A')
    make_user(email='b@x.com', name='B')

    resp = login(client)
    assert resp.status_code == 200
    token = resp.get_json()['token']

    me = client.get('/api/v1/users/me', headers=bearer(token))
    assert me.status_code == 200
    assert me.get_json()['data']['data']['email'] == 'a@x.com'


def test_login_sets_http_only_cookie_usable_by_protect(client, make_user):
    make_user()
    resp = login(client)
    cookies = resp.headers.getlist('Set-Cookie')
    assert any(c.startswith('jwt=') and 'HttpOnly' in c for c in cookies)
    assert not any('; Secure' in c for c in cookies)

    # The test client replays the cookie
    assert client.get('/api/v1/users/me').status_code == 200


def test_login_requires_email_and_password(client):
    resp = client.post('/api/v1/users/login', json={'email': 'a@x.com'})
    assert resp.status_code == 400
    assert resp.get_json()['message'] == 'Please provide email and password!'


@pytest.mark.parametrize('email,password', [('a@x.com', 'wrongpass1'), ('nobody@x.com', PASSWORD)])
def test_login_rejects_bad_credentials(client, make_user, email, password):
    make_user()
    resp = login(client, email, password)
    assert resp.status_code == 401
    assert resp.get_json()['message'] == 'Incorrect email or password'


def test_protect_without_token(client):
    resp = client.get('/api/v1/users/me')
    assert resp.status_code == 401
    assert resp.get_json()['message'] == 'You are not logged in! Please log in to get access.'


def test_protect_with_garbage_token(client):
    resp = client.get('/api/v1/users/me', headers=bearer('not.a.jwt'))
    assert resp.status_code == 401
    assert resp.get_json()['message'] == 'Invalid token. Please log in again!'


def test_protect_with_expired_token(client, make_user, token_for):
    user_id = make_user()
    token = token_for(user_id, age=2 * 60 * 60)  # testing tokens live 1h
    resp = client.get('/api/v1/users/me', headers=bearer(token))
    assert resp.status_code == 401
    assert resp.get_json()['message'] == 'Your token has expired! Please log in again.'


def test_protect_rejects_token_of_deleted_user(app, client, make_user, token_for):
    user_id = make_user()
    token = token_for(user_id)
    with app.app_context():
        db.session.delete(db.session.get(User, user_id))
        db.session.commit()

    resp = client.get('/api/v1/users/me', headers=bearer(token))
    assert resp.status_code == 401
    assert resp.get_json()['message'] == 'The user belonging to this token no longer exist.'


def test_token_issued_before_password_change_is_rejected(app, client, make_user, token_for):
    user_id = make_user()
    old_token = token_for(user_id, age=60)
    assert client.get('/api/v1/users/me', headers=bearer(old_token)).status_code == 200

    with app.app_context():
        user = db.session.get(User, user_id)
        user.set_password('newsecret123', 'newsecret123')
        user.save()

    resp = client.get('/api/v1/users/me', headers=bearer(old_token))
    assert resp.status_code == 401
    assert resp.get_json()['message'] == 'User recently changed password! Please log in again.'

    fresh = login(client, password='newsecret123').get_json()['token']
    assert client.get('/api/v1/users/me', headers=bearer(fresh)).status_code == 200


def test_bearer_header_wins_over_cookie(client, make_user, token_for):
    first = make_user(email='a@x.com')
    second = make_user(email='b@x.com')
    client.set_cookie('jwt', token_for(first))

    resp = client.get('/api/v1/users/me', headers=bearer(token_for(second)))
    assert resp.get_json()['data']['data']['email'] == 'b@x.com'


def test_authenticate_returns_user(app, make_user, token_for):
    user_id = make_user()
    token = token_for(user_id)
    with app.test_request_context(headers=bearer(token)):
        from flask import request
        assert authenticate(request).id == user_id


# ==================== restrict_to / authorize ====================

def test_authorize_denies_other_roles():
    with pytest.raises(ForbiddenError):
        authorize(User(role='user'), {'admin'})


def test_authorize_allows_listed_role():
    user = User(role='admin')
    assert authorize(user, {'admin'}) is user


def test_authorize_without_user_is_forbidden():
    with pytest.raises(ForbiddenError):
        authorize(None, {'admin'})


def test_restrict_to_admin_route(client, make_user, token_for):
    user_token = token_for(make_user(email='u@x.com', role='user'))
    admin_token = token_for(make_user(email='admin@x.com', role='admin'))

    denied = client.get('/api/v1/users/', headers=bearer(user_token))
    assert denied.status_code == 403
    assert denied.get_json()['message'] == 'You do not have permission to perform this action'

    allowed = client.get('/api/v1/users/', headers=bearer(admin_token))
    assert allowed.status_code == 200
    assert allowed.get_json()['results'] == 2


def test_restrict_to_authenticates_before_checking_role(client):
    # No session at all: the role gate never runs, authentication fails first
    resp = client.get('/api/v1/users/')
    assert resp.status_code == 401


def test_unauthorized_error_is_fail_status():
    assert UnauthorizedError().status == 'fail'
