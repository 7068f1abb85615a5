"""Shared model helpers."""
from datetime import datetime, timezone

from app.errors import ValidationError
from app.extensions import db


def utcnow():
    """Naive UTC now, matching what the database hands back."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class CRUDMixin:
    """``save``/``delete`` with optional validation before writing."""

    def validate(self):
        """Return a list of validation messages; empty when valid."""
        return []

    def before_save(self):
        pass

    def save(self, validate=True):
        if validate:
            errors = self.validate()
            if errors:
                db.session.rollback()
                raise ValidationError(f"Invalid input data. {'. '.join(errors)}")
        self.before_save()
        db.session.add(self)
        db.session.commit()
        return self

    def delete(self):
        db.session.delete(self)
        db.session.commit()

    def update_from(self, data, allowed):
        """Copy ``allowed`` keys present in ``data`` onto the instance."""
        for key in allowed:
            if key in data:
                setattr(self, key, data[key])
        return self


def pick_fields(data, fields):
    """Keep only ``fields`` (plus ``id``) of a serialized document."""
    if not fields:
        return data
    return {key: value for key, value in data.items() if key in fields or key == 'id'}
