"""Password hashing and reset-token digests."""
import hashlib
import secrets

from flask import current_app
from werkzeug.security import check_password_hash, generate_password_hash


def hash_password(password):
    method = current_app.config.get('PASSWORD_HASH_METHOD', 'scrypt')
    return generate_password_hash(password, method=method)


def verify_password(password, password_hash):
    if not password or not password_hash:
        return False
    return check_password_hash(password_hash, password)


def digest_token(token):
    """SHA-256 hex digest of a plaintext reset token."""
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_reset_token():
    """Return ``(plaintext, digest)``; only the digest is ever stored."""
    token = secrets.token_hex(32)
    return token, digest_token(token)
