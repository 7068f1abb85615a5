"""User model."""
import calendar
import re
from datetime import timedelta

from flask import current_app

from app.extensions import db
from app.models.base import CRUDMixin, pick_fields, utcnow
from app.security import create_reset_token, hash_password, verify_password

VALID_ROLES = ['user', 'guide', 'lead-guide', 'admin']

EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
MIN_PASSWORD_LENGTH = 8


class User(CRUDMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    photo = db.Column(db.String(200), default='default.jpg')
    role = db.Column(db.String(20), default='user', nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    password_changed_at = db.Column(db.DateTime)
    password_reset_token = db.Column(db.String(64), index=True)  # SHA-256 digest, never the token
    password_reset_expires = db.Column(db.DateTime)
    active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    API_FIELDS = {
        'id': 'id',
        'name': 'name',
        'email': 'email',
        'role': 'role',
        'photo': 'photo',
        'createdAt': 'created_at',
    }

    # Staged plaintext, hashed by save(); never persisted
    _new_password = None
    _new_password_confirm = None

    def __init__(self, password=None, password_confirm=None, **kwargs):
        super().__init__(**kwargs)
        if password is not None or password_confirm is not None:
            self.set_password(password, password_confirm)

    @classmethod
    def query_active(cls):
        """Inactive (self-deleted) users are invisible to every lookup."""
        return cls.query.filter(cls.active.is_(True))

    @classmethod
    def find_by_id(cls, user_id):
        return cls.query_active().filter(cls.id == user_id).first()

    @classmethod
    def find_by_email(cls, email):
        if not isinstance(email, str):
            return None
        return cls.query_active().filter(cls.email == email.strip().lower()).first()

    # ==================== Passwords ====================

    def set_password(self, password, password_confirm):
        self._new_password = password
        self._new_password_confirm = password_confirm

    def correct_password(self, candidate):
        return verify_password(candidate, self.password_hash)

    def changed_password_after(self, jwt_timestamp):
        """True when the password changed after a token issued at ``jwt_timestamp``."""
        if self.password_changed_at is None:
            return False
        changed_timestamp = calendar.timegm(self.password_changed_at.utctimetuple())
        return jwt_timestamp < changed_timestamp

    def create_password_reset_token(self):
        token, digest = create_reset_token()
        minutes = current_app.config['PASSWORD_RESET_EXPIRES_MINUTES']
        self.password_reset_token = digest
        self.password_reset_expires = utcnow() + timedelta(minutes=minutes)
        return token

    def clear_password_reset(self):
        self.password_reset_token = None
        self.password_reset_expires = None

    # ==================== Persistence ====================

    def validate(self):
        errors = []
        if not self.name or not str(self.name).strip():
            errors.append('Please tell us your name!')
        if not self.email or not isinstance(self.email, str):
            errors.append('Please provide your email')
        elif not EMAIL_RE.match(self.email.strip()):
            errors.append('Please provide a valid email')
        if self.role not in VALID_ROLES and self.role is not None:
            errors.append(f'Role is either: {", ".join(VALID_ROLES)}')

        if self._new_password is not None or self.password_hash is None:
            password = self._new_password
            if not password or not isinstance(password, str):
                errors.append('Please provide a password')
            elif len(password) < MIN_PASSWORD_LENGTH:
                errors.append(f'Password must have at least {MIN_PASSWORD_LENGTH} characters')
            if self._new_password_confirm != password:
                errors.append('Passwords are not the same!')
        return errors

    def before_save(self):
        if isinstance(self.email, str):
            self.email = self.email.strip().lower()
        if self._new_password is None:
            return
        is_new = self.id is None
        self.password_hash = hash_password(self._new_password)
        if not is_new:
            # Back-dated so a token issued right after this save stays valid
            self.password_changed_at = utcnow() - timedelta(seconds=1)
        self._new_password = None
        self._new_password_confirm = None

    def to_dict(self, fields=None):
        data = {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'photo': self.photo,
            'role': self.role,
        }
        return pick_fields(data, fields)
