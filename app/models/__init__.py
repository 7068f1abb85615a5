"""Models package - Re-exports all models for convenient importing."""
from app.extensions import db
from app.models.user import User, VALID_ROLES
from app.models.tour import Tour, DIFFICULTIES
from app.models.review import Review

__all__ = ['db', 'User', 'VALID_ROLES', 'Tour', 'DIFFICULTIES', 'Review']
