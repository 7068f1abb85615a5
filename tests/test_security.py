# File: tests/test_security.py

from app.security import create_reset_token, digest_token, hash_password, verify_password


def test_hash_and_verify(app):
    with app.app_context():
        hashed = hash_password('secret123')
    assert hashed != 'secret123'
    assert verify_password('secret123', hashed)
    assert not verify_password('secret124', hashed)


def test_verify_password_with_missing_values():
    assert not verify_password('', 'pbkdf2:sha256:1000$salt$hash')
    assert not verify_password('secret123', None)


def test_reset_token_digest():
    token, digest = create_reset_token()
    assert len(token) == 64
    assert digest == digest_token(token)
    assert digest != token
    assert create_reset_token()[0] != token
