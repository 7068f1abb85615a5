"""Signed, time-limited session tokens (HS256 JWT)."""
import re
import time
from dataclasses import dataclass

import jwt
from flask import current_app

from app.errors import InvalidTokenError, TokenExpiredError

ALGORITHM = 'HS256'

_DURATION_RE = re.compile(r'^\s*(\d+)\s*([smhd]?)\s*$')
_UNIT_SECONDS = {'': 1, 's': 1, 'm': 60, 'h': 60 * 60, 'd': 24 * 60 * 60}


@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    issued_at: int


def parse_duration(value):
    """Seconds for ``90d`` / ``12h`` / ``30m`` / ``45s`` / ``3600``."""
    if isinstance(value, int):
        return value
    match = _DURATION_RE.match(str(value))
    if not match:
        raise ValueError(f'Invalid duration: {value!r}')
    amount, unit = match.groups()
    return int(amount) * _UNIT_SECONDS[unit]


def issue_token(user_id, now=None):
    """Sign a token for ``user_id``; ``now`` (epoch seconds) defaults to the clock."""
    issued_at = int(now if now is not None else time.time())
    expires_in = parse_duration(current_app.config['JWT_EXPIRES_IN'])
    payload = {
        'sub': str(user_id),
        'iat': issued_at,
        'exp': issued_at + expires_in,
    }
    return jwt.encode(payload, current_app.config['JWT_SECRET'], algorithm=ALGORITHM)


def verify_token(token):
    try:
        payload = jwt.decode(
            token,
            current_app.config['JWT_SECRET'],
            algorithms=[ALGORITHM],
            options={'require': ['sub', 'iat', 'exp']},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError()
    except jwt.InvalidTokenError:
        raise InvalidTokenError()

    try:
        user_id = int(payload['sub'])
    except (TypeError, ValueError):
        raise InvalidTokenError()
    return TokenClaims(user_id=user_id, issued_at=int(payload['iat']))
