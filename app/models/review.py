"""Review model."""
from sqlalchemy import func

from app.extensions import db
from app.models.base import CRUDMixin, is_number, pick_fields, utcnow


class Review(CRUDMixin, db.Model):
    __tablename__ = 'reviews'
    __table_args__ = (db.UniqueConstraint('tour_id', 'user_id', name='uq_review_tour_user'),)

    id = db.Column(db.Integer, primary_key=True)
    review = db.Column(db.Text, nullable=False)
    rating = db.Column(db.Float)
    created_at = db.Column(db.DateTime, default=utcnow)
    tour_id = db.Column(db.Integer, db.ForeignKey('tours.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)

    user = db.relationship('User', lazy='joined')

    API_FIELDS = {
        'id': 'id',
        'review': 'review',
        'rating': 'rating',
        'createdAt': 'created_at',
        'tour': 'tour_id',
        'user': 'user_id',
    }
    WRITABLE_FIELDS = ['review', 'rating']

    def validate(self):
        errors = []
        if not self.review or not str(self.review).strip():
            errors.append('Review can not be empty!')
        if self.rating is not None and (not is_number(self.rating) or not 1 <= self.rating <= 5):
            errors.append('Rating must be between 1 and 5')
        if not self.tour_id:
            errors.append('Review must belong to a tour.')
        if not self.user_id:
            errors.append('Review must belong to a user')
        return errors

    def save(self, validate=True):
        super().save(validate=validate)
        Review.calc_average_ratings(self.tour_id)
        return self

    def delete(self):
        tour_id = self.tour_id
        super().delete()
        Review.calc_average_ratings(tour_id)

    @staticmethod
    def calc_average_ratings(tour_id):
        """Store the review count and mean rating on the tour."""
        from app.models.tour import Tour

        count, average = db.session.query(func.count(Review.id), func.avg(Review.rating)).filter(
            Review.tour_id == tour_id
        ).one()
        tour = db.session.get(Tour, tour_id)
        if tour is None:
            return
        if count:
            tour.ratings_quantity = count
            tour.ratings_average = round((average or 0) * 10) / 10
        else:
            tour.ratings_quantity = 0
            tour.ratings_average = 4.5
        db.session.commit()

    def to_dict(self, fields=None):
        data = {
            'id': self.id,
            'review': self.review,
            'rating': self.rating,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'tour': self.tour_id,
            'user': {'id': self.user.id, 'name': self.user.name, 'photo': self.user.photo} if self.user else None,
        }
        return pick_fields(data, fields)
