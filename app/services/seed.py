"""Bulk import and wipe of development data."""
import logging

from app.extensions import db
from app.models import Review, Tour, User
from app.models.tour import tour_guides, slugify

logger = logging.getLogger(__name__)


def import_data(data):
    """Load ``{"users": [...], "tours": [...], "reviews": [...]}``.

    Records may carry their own ``id`` (any JSON scalar); tours reference users
    through ``guides`` and reviews reference ``tour``/``user`` by those ids.
    Users carry a plaintext ``password`` or an already hashed ``passwordHash``
    and skip validation.
    """
    users_by_ref = {}
    for item in data.get('users', []):
        user = User(
            name=item.get('name'),
            email=item.get('email'),
            role=item.get('role', 'user'),
            photo=item.get('photo', 'default.jpg'),
            active=item.get('active', True),
        )
        if item.get('passwordHash'):
            user.password_hash = item['passwordHash']
        else:
            user.set_password(item.get('password'), item.get('password'))
        user.before_save()
        db.session.add(user)
        users_by_ref[item.get('id', item.get('email'))] = user

    tours_by_ref = {}
    for item in data.get('tours', []):
        tour = Tour().apply_api_data(item)
        tour.slug = slugify(tour.name)
        tour.guides = [users_by_ref[ref] for ref in item.get('guides', []) if ref in users_by_ref]
        db.session.add(tour)
        tours_by_ref[item.get('id', item.get('name'))] = tour
    db.session.flush()

    reviews = 0
    reviewed_tours = set()
    for item in data.get('reviews', []):
        tour = tours_by_ref.get(item.get('tour'))
        user = users_by_ref.get(item.get('user'))
        if tour is None or user is None:
            logger.warning('Skipping review with unknown tour/user: %s', item)
            continue
        db.session.add(Review(review=item.get('review'), rating=item.get('rating'),
                              tour_id=tour.id, user_id=user.id))
        reviewed_tours.add(tour.id)
        reviews += 1
    db.session.commit()

    for tour_id in reviewed_tours:
        Review.calc_average_ratings(tour_id)

    return {'users': len(users_by_ref), 'tours': len(tours_by_ref), 'reviews': reviews}


def delete_data():
    Review.query.delete()
    db.session.execute(tour_guides.delete())
    Tour.query.delete()
    User.query.delete()
    db.session.commit()
