# File: tests/test_reviews.py

import pytest

from app.extensions import db
from app.models import Tour
from conftest import bearer


@pytest.fixture
def tour_id(make_tour):
    return make_tour()


@pytest.fixture
def user_token(make_user, token_for):
    return token_for(make_user(email='u@x.com', name='Reviewer'))


def post_review(client, tour_id, token, rating=4, text='Great tour!'):
    return client.post(f'/api/v1/tours/{tour_id}/reviews', headers=bearer(token),
                       json={'review': text, 'rating': rating})


def tour_ratings(app, tour_id):
    with app.app_context():
        tour = db.session.get(Tour, tour_id)
        return tour.ratings_average, tour.ratings_quantity


def test_listing_reviews_requires_login(client, tour_id):
    assert client.get('/api/v1/reviews/').status_code == 401


def test_nested_create_updates_tour_ratings(app, client, tour_id, make_user, token_for, user_token):
    resp = post_review(client, tour_id, user_token, rating=4)
    assert resp.status_code == 201
    review = resp.get_json()['data']['data']
    assert review['tour'] == tour_id
    assert review['user']['name'] == 'Reviewer'

    other = token_for(make_user(email='v@x.com'))
    post_review(client, tour_id, other, rating=5)
    assert tour_ratings(app, tour_id) == (4.5, 2)

    nested = client.get(f'/api/v1/tours/{tour_id}/reviews', headers=bearer(user_token))
    assert nested.get_json()['results'] == 2


def test_only_users_can_write_reviews(client, tour_id, make_user, token_for):
    admin = token_for(make_user(email='admin@x.com', role='admin'))
    assert post_review(client, tour_id, admin).status_code == 403


def test_review_for_unknown_tour(client, user_token):
    resp = post_review(client, 9999, user_token)
    assert resp.status_code == 404
    assert resp.get_json()['message'] == 'No tour found with that ID'


def test_one_review_per_tour_and_user(client, tour_id, user_token):
    assert post_review(client, tour_id, user_token).status_code == 201
    duplicate = post_review(client, tour_id, user_token)
    assert duplicate.status_code == 400
    assert duplicate.get_json()['message'] == 'Duplicate field value. Please use another value!'


def test_rating_out_of_range(client, tour_id, user_token):
    resp = post_review(client, tour_id, user_token, rating=6)
    assert resp.status_code == 400
    assert 'Rating must be between 1 and 5' in resp.get_json()['message']


def test_only_author_or_admin_may_edit(client, tour_id, make_user, token_for, user_token):
    review_id = post_review(client, tour_id, user_token).get_json()['data']['data']['id']

    stranger = token_for(make_user(email='s@x.com'))
    resp = client.patch(f'/api/v1/reviews/{review_id}', headers=bearer(stranger), json={'rating': 1})
    assert resp.status_code == 403

    resp = client.patch(f'/api/v1/reviews/{review_id}', headers=bearer(user_token), json={'rating': 3})
    assert resp.status_code == 200
    assert resp.get_json()['data']['data']['rating'] == 3

    admin = token_for(make_user(email='admin@x.com', role='admin'))
    resp = client.patch(f'/api/v1/reviews/{review_id}', headers=bearer(admin), json={'review': 'Edited'})
    assert resp.status_code == 200


def test_deleting_last_review_resets_tour_ratings(app, client, tour_id, user_token):
    review_id = post_review(client, tour_id, user_token, rating=2).get_json()['data']['data']['id']
    assert tour_ratings(app, tour_id) == (2.0, 1)

    resp = client.delete(f'/api/v1/reviews/{review_id}', headers=bearer(user_token))
    assert resp.status_code == 204
    assert tour_ratings(app, tour_id) == (4.5, 0)
