"""Review resource API, also mounted under ``/api/v1/tours/<tour_id>/reviews``."""
from flask import Blueprint, g, request

from app.auth import protect, restrict_to
from app.errors import ForbiddenError, NotFoundError
from app.extensions import db
from app.models import Review, Tour
from app.routes.factory import deleted_response, get_or_404, json_body, list_response, one_response

reviews_bp = Blueprint('reviews', __name__)


def _own_review_or_admin(review):
    if g.user.role != 'admin' and review.user_id != g.user.id:
        raise ForbiddenError('You can only change your own reviews')


@reviews_bp.route('/api/v1/reviews/', methods=['GET'], strict_slashes=False)
@reviews_bp.route('/api/v1/tours/<int:tour_id>/reviews', methods=['GET'])
@protect
def get_all_reviews(tour_id=None):
    query = Review.query
    if tour_id is not None:
        query = query.filter(Review.tour_id == tour_id)
    return list_response(Review, query)


@reviews_bp.route('/api/v1/reviews/', methods=['POST'], strict_slashes=False)
@reviews_bp.route('/api/v1/tours/<int:tour_id>/reviews', methods=['POST'])
@restrict_to('user')
def create_review(tour_id=None):
    data = json_body(request)
    tour_id = tour_id or data.get('tour')
    if tour_id is None or db.session.get(Tour, tour_id) is None:
        raise NotFoundError('No tour found with that ID')

    review = Review(
        review=data.get('review'),
        rating=data.get('rating'),
        tour_id=tour_id,
        user_id=g.user.id,
    )
    review.save()
    return one_response(review, 201)


@reviews_bp.route('/api/v1/reviews/<int:review_id>', methods=['GET'])
@protect
def get_review(review_id):
    return one_response(get_or_404(Review, review_id))


@reviews_bp.route('/api/v1/reviews/<int:review_id>', methods=['PATCH'])
@restrict_to('user', 'admin')
def update_review(review_id):
    review = get_or_404(Review, review_id)
    _own_review_or_admin(review)
    review.update_from(json_body(request), Review.WRITABLE_FIELDS)
    review.save()
    return one_response(review)


@reviews_bp.route('/api/v1/reviews/<int:review_id>', methods=['DELETE'])
@restrict_to('user', 'admin')
def delete_review(review_id):
    review = get_or_404(Review, review_id)
    _own_review_or_admin(review)
    review.delete()
    return deleted_response()
