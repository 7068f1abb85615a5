# File: tests/conftest.py

import time

import pytest

from app import create_app
from app.errors import EmailDeliveryError
from app.extensions import db
from app.models import Tour, User
from app.services.tokens import issue_token

PASSWORD = 'secret123'


class FakeMailer:
    """Records outgoing mail instead of talking to SMTP."""

    def __init__(self):
        self.outbox = []
        self.fail = False

    def send(self, recipient, subject, body):
        if self.fail:
            raise EmailDeliveryError()
        self.outbox.append({'recipient': recipient, 'subject': subject, 'body': body})


@pytest.fixture
def app():
    app = create_app('testing')
    app.extensions['mailer'] = FakeMailer()
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def mailer(app):
    return app.extensions['mailer']


@pytest.fixture
def make_user(app):
    """Create a user and return its id."""
    def _make_user(email='a@x.com', name='A', role='user', password=PASSWORD):
        with app.app_context():
            user = User(name=name, email=email, role=role,
                        password=password, password_confirm=password)
            user.save()
            return user.id
    return _make_user


@pytest.fixture
def token_for(app):
    """Sign a session token, optionally back-dated by ``age`` seconds."""
    def _token_for(user_id, age=0):
        with app.app_context():
            return issue_token(user_id, now=time.time() - age)
    return _token_for


@pytest.fixture
def make_tour(app):
    def _make_tour(name='The Forest Hiker', **overrides):
        data = {
            'name': name,
            'duration': 5,
            'maxGroupSize': 25,
            'difficulty': 'easy',
            'price': 397,
            'summary': 'Breathtaking hike through the Canadian Banff National Park',
            'imageCover': 'tour-1-cover.jpg',
            'startDates': ['2021-04-25T09:00:00', '2021-07-20T09:00:00', '2021-10-05T09:00:00'],
        }
        data.update(overrides)
        with app.app_context():
            tour = Tour().apply_api_data(data)
            tour.save()
            return tour.id
    return _make_tour


def bearer(token):
    return {'Authorization': f'Bearer {token}'}
