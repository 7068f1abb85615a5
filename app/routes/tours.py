"""Tour resource API."""
from collections import defaultdict
from datetime import datetime

from flask import Blueprint, g, jsonify, request

from app.auth import restrict_to
from app.errors import ValidationError
from app.models import Tour, User
from app.routes.factory import deleted_response, get_or_404, json_body, list_response, one_response

tours_bp = Blueprint('tours', __name__, url_prefix='/api/v1/tours')

TOP_CHEAP_PARAMS = {
    'limit': '5',
    'sort': '-ratingsAverage,price',
    'fields': 'name,price,ratingsAverage,summary,difficulty',
}


def _set_guides(tour, data):
    if 'guides' not in data:
        return
    guide_ids = data['guides'] or []
    if not isinstance(guide_ids, list):
        raise ValidationError('guides must be a list of user ids')
    guides = User.query_active().filter(User.id.in_(guide_ids)).all()
    if len(guides) != len(set(guide_ids)):
        raise ValidationError('Every guide must be an existing user')
    tour.guides = guides


@tours_bp.route('/', methods=['GET'], strict_slashes=False)
def get_all_tours():
    return list_response(Tour, Tour.query_visible())


@tours_bp.route('/top-5-cheap', methods=['GET'])
def top_tours():
    params = dict(g.get('query', {}))
    params.update(TOP_CHEAP_PARAMS)
    return list_response(Tour, Tour.query_visible(), params)


@tours_bp.route('/tour-stats', methods=['GET'])
def tour_stats():
    """Per-difficulty aggregates over tours rated 4.5 or better."""
    tours = Tour.query_visible().filter(Tour.ratings_average >= 4.5).all()
    groups = defaultdict(list)
    for tour in tours:
        groups[tour.difficulty].append(tour)

    stats = []
    for difficulty, group in groups.items():
        prices = [tour.price for tour in group]
        stats.append({
            '_id': difficulty.upper(),
            'numTours': len(group),
            'numRatings': sum(tour.ratings_quantity or 0 for tour in group),
            'avgRating': round(sum(tour.ratings_average for tour in group) / len(group), 2),
            'avgPrice': round(sum(prices) / len(prices), 2),
            'minPrice': min(prices),
            'maxPrice': max(prices),
        })
    stats.sort(key=lambda item: item['avgPrice'])
    return jsonify({'status': 'success', 'data': {'stats': stats}})


@tours_bp.route('/monthly-plan/<int:year>', methods=['GET'])
@restrict_to('admin', 'lead-guide', 'guide')
def monthly_plan(year):
    """Tours starting in each month of ``year``, busiest month first."""
    months = defaultdict(list)
    for tour in Tour.query_visible().all():
        for value in tour.start_dates or []:
            try:
                start = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
            except ValueError:
                continue
            if start.year == year:
                months[start.month].append(tour.name)

    plan = [
        {'month': month, 'numTourStarts': len(names), 'tours': names}
        for month, names in months.items()
    ]
    plan.sort(key=lambda item: (-item['numTourStarts'], item['month']))
    return jsonify({'status': 'success', 'data': {'plan': plan[:12]}})


@tours_bp.route('/<int:tour_id>', methods=['GET'])
def get_tour(tour_id):
    return one_response(get_or_404(Tour, tour_id, Tour.query_visible()))


@tours_bp.route('/', methods=['POST'], strict_slashes=False)
@restrict_to('admin', 'lead-guide')
def create_tour():
    data = json_body(request)
    tour = Tour().apply_api_data(data)
    _set_guides(tour, data)
    tour.save()
    return one_response(tour, 201)


@tours_bp.route('/<int:tour_id>', methods=['PATCH'])
@restrict_to('admin', 'lead-guide')
def update_tour(tour_id):
    tour = get_or_404(Tour, tour_id)
    data = json_body(request)
    tour.apply_api_data(data)
    _set_guides(tour, data)
    tour.save()
    return one_response(tour)


@tours_bp.route('/<int:tour_id>', methods=['DELETE'])
@restrict_to('admin', 'lead-guide')
def delete_tour(tour_id):
    get_or_404(Tour, tour_id).delete()
    return deleted_response()
