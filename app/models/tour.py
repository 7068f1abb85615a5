"""Tour model."""
import re

from app.extensions import db
from app.models.base import CRUDMixin, is_number, pick_fields, utcnow

DIFFICULTIES = ['easy', 'medium', 'difficult']

tour_guides = db.Table(
    'tour_guides',
    db.Column('tour_id', db.Integer, db.ForeignKey('tours.id', ondelete='CASCADE'), primary_key=True),
    db.Column('user_id', db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
)


def slugify(value):
    value = re.sub(r'[^\w\s-]', '', value or '').strip().lower()
    return re.sub(r'[-\s_]+', '-', value)


class Tour(CRUDMixin, db.Model):
    __tablename__ = 'tours'

    # API (camelCase) name -> column attribute
    API_FIELDS = {
        'id': 'id',
        'name': 'name',
        'slug': 'slug',
        'duration': 'duration',
        'maxGroupSize': 'max_group_size',
        'difficulty': 'difficulty',
        'ratingsAverage': 'ratings_average',
        'ratingsQuantity': 'ratings_quantity',
        'price': 'price',
        'priceDiscount': 'price_discount',
        'summary': 'summary',
        'description': 'description',
        'imageCover': 'image_cover',
        'images': 'images',
        'startDates': 'start_dates',
        'createdAt': 'created_at',
    }
    WRITABLE_FIELDS = [
        'name', 'duration', 'maxGroupSize', 'difficulty', 'ratingsAverage', 'ratingsQuantity',
        'price', 'priceDiscount', 'summary', 'description', 'imageCover', 'images', 'startDates',
        'secretTour',
    ]

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(40), unique=True, nullable=False)
    slug = db.Column(db.String(60), index=True)
    duration = db.Column(db.Integer, nullable=False)
    max_group_size = db.Column(db.Integer, nullable=False)
    difficulty = db.Column(db.String(20), nullable=False)
    ratings_average = db.Column(db.Float, default=4.5)
    ratings_quantity = db.Column(db.Integer, default=0)
    price = db.Column(db.Float, nullable=False)
    price_discount = db.Column(db.Float)
    summary = db.Column(db.String(500), nullable=False)
    description = db.Column(db.Text)
    image_cover = db.Column(db.String(200), nullable=False)
    images = db.Column(db.JSON, default=list)
    start_dates = db.Column(db.JSON, default=list)  # ISO-8601 strings
    secret_tour = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    guides = db.relationship('User', secondary=tour_guides, lazy='selectin')
    reviews = db.relationship('Review', backref='tour', lazy=True, cascade='all, delete-orphan')

    @classmethod
    def query_visible(cls):
        """Secret tours never show up in listings."""
        return cls.query.filter(cls.secret_tour.is_(False))

    @property
    def duration_weeks(self):
        return round(self.duration / 7, 2) if self.duration else None

    def apply_api_data(self, data):
        for key in self.WRITABLE_FIELDS:
            if key not in data:
                continue
            attr = 'secret_tour' if key == 'secretTour' else self.API_FIELDS[key]
            setattr(self, attr, data[key])
        return self

    def validate(self):
        errors = []
        if not self.name or not isinstance(self.name, str):
            errors.append('A tour must have a name')
        elif not 10 <= len(self.name) <= 40:
            errors.append('A tour name must have between 10 and 40 characters')
        if not is_number(self.duration):
            errors.append('A tour must have a duration')
        if not is_number(self.max_group_size):
            errors.append('A tour must have a group size')
        if self.difficulty not in DIFFICULTIES:
            errors.append('Difficulty is either: easy, medium, difficult')
        if self.ratings_average is not None and not is_number(self.ratings_average):
            errors.append('Rating must be a number')
        elif self.ratings_average is not None and not 1 <= self.ratings_average <= 5:
            errors.append('Rating must be between 1.0 and 5.0')
        if not is_number(self.price):
            errors.append('A tour must have a price')
        elif self.price_discount is not None and (not is_number(self.price_discount) or self.price_discount >= self.price):
            errors.append(f'Discount price ({self.price_discount}) should be below regular price')
        if not self.summary:
            errors.append('A tour must have a summary')
        if not self.image_cover:
            errors.append('A tour must have a cover image')
        return errors

    def before_save(self):
        self.slug = slugify(self.name)
        if self.ratings_average is not None:
            self.ratings_average = round(self.ratings_average * 10) / 10

    def to_dict(self, fields=None):
        data = {api: getattr(self, attr) for api, attr in self.API_FIELDS.items()}
        data['createdAt'] = self.created_at.isoformat() if self.created_at else None
        data['durationWeeks'] = self.duration_weeks
        data['guides'] = [guide.to_dict() for guide in self.guides]
        return pick_fields(data, fields)
