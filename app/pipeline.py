"""Global request pipeline.

The stages below run in the order listed, for every request, before routing
(``before``) and after the view returns (``after``). A ``before`` hook that
raises short-circuits the remaining stages and the view; the error then goes to
the error normalizer like any other failure.

    request_time -> request_logging -> rate_limit -> body_parser -> sanitize
    -> parameter_pollution -> [route] -> security_headers

Unknown routes and the error normalizer come after the stages (see
``app.errors``).
"""
import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from flask import current_app, g, request

from app.errors import AppError, RateLimitError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Stage:
    name: str
    before: Optional[Callable[[], None]] = None
    after: Optional[Callable] = None
    prefix: Optional[str] = None  # only paths under this prefix
    description: str = ''

    def applies(self, path):
        return self.prefix is None or path.startswith(self.prefix)


# ==================== request_time ====================

def stamp_request_time():
    """Post: ``g.request_time`` holds the ISO-8601 UTC arrival time."""
    g.request_time = datetime.now(timezone.utc).isoformat()
    g.request_started = time.perf_counter()


# ==================== request_logging ====================

def log_request(response):
    """Development only: one line per request with status and duration."""
    if current_app.config.get('ENV_NAME') != 'development' or not current_app.debug:
        return response
    elapsed = (time.perf_counter() - g.get('request_started', time.perf_counter())) * 1000
    logger.info('%s %s %s - %.1f ms', request.method, request.full_path.rstrip('?'),
                response.status_code, elapsed)
    return response


# ==================== rate_limit ====================

class RateLimiter:
    """Sliding-window request counter per client key."""

    def __init__(self):
        self._hits = {}
        self._last_sweep = None
        self._lock = threading.Lock()

    def __len__(self):
        return len(self._hits)

    def _sweep(self, now, window):
        """Forget keys whose every hit has left the window."""
        for key in [key for key, hits in self._hits.items() if not hits or hits[-1] <= now - window]:
            del self._hits[key]
        self._last_sweep = now

    def hit(self, key, limit, window, now=None):
        """Record a request; return the remaining allowance or -1 when over the limit."""
        now = time.monotonic() if now is None else now
        with self._lock:
            if self._last_sweep is None or now - self._last_sweep >= window:
                self._sweep(now, window)
            hits = self._hits.setdefault(key, deque())
            while hits and hits[0] <= now - window:
                hits.popleft()
            if len(hits) >= limit:
                return -1
            hits.append(now)
            return limit - len(hits)

    def reset(self):
        with self._lock:
            self._hits.clear()


def limit_requests():
    """Pre: API request. Post: at most RATE_LIMIT_MAX per window per IP, else 429."""
    limiter = current_app.extensions['rate_limiter']
    remaining = limiter.hit(
        request.remote_addr or 'unknown',
        current_app.config['RATE_LIMIT_MAX'],
        current_app.config['RATE_LIMIT_WINDOW'],
    )
    if remaining < 0:
        raise RateLimitError()
    g.rate_limit_remaining = remaining


def add_rate_limit_headers(response):
    if 'rate_limit_remaining' in g:
        response.headers['X-RateLimit-Limit'] = str(current_app.config['RATE_LIMIT_MAX'])
        response.headers['X-RateLimit-Remaining'] = str(g.rate_limit_remaining)
    return response


# ==================== body_parser ====================

def parse_body():
    """Post: a JSON body is at most MAX_BODY_SIZE bytes and parsed into the request cache."""
    if request.method not in ('POST', 'PUT', 'PATCH', 'DELETE'):
        return
    limit = current_app.config['MAX_BODY_SIZE']
    if request.content_length is not None and request.content_length > limit:
        raise AppError('Request body is too large', 413)
    if request.is_json:
        if len(request.get_data(cache=True)) > limit:
            raise AppError('Request body is too large', 413)
        if request.get_json(silent=True) is None and request.get_data(cache=True):
            raise ValidationError('Malformed JSON body')


# ==================== sanitize ====================

# Credentials and addresses are compared and hashed verbatim, never rewritten
VERBATIM_KEYS = frozenset(['email', 'password', 'passwordConfirm', 'passwordCurrent'])

HTML_REPLACEMENTS = {
    '<': '&lt;',
    '>': '&gt;',
}


def neutralize_html(text):
    """Break tags apart; quotes, ampersands and apostrophes stay as typed."""
    for char, escaped in HTML_REPLACEMENTS.items():
        text = text.replace(char, escaped)
    return text


def clean_value(value, key=None):
    """Drop ``$``-prefixed keys and neutralize markup in strings, recursively."""
    if isinstance(value, dict):
        return {
            name: clean_value(item, name)
            for name, item in value.items()
            if not str(name).startswith('$')
        }
    if isinstance(value, list):
        return [clean_value(item, key) for item in value]
    if isinstance(value, str) and key not in VERBATIM_KEYS:
        return neutralize_html(value)
    return value


def sanitize_body():
    """Pre: body parsed. Post: the cached JSON body holds only cleaned values."""
    if not request.is_json:
        return
    body = request.get_json(silent=True)
    if isinstance(body, dict):
        cleaned = clean_value(body)
        body.clear()
        body.update(cleaned)
    elif isinstance(body, list):
        body[:] = clean_value(body)


# ==================== parameter_pollution ====================

def dedupe_query():
    """Post: ``g.query`` maps each param to its last value, or a list for whitelisted params."""
    whitelist = current_app.config.get('QUERY_WHITELIST', [])
    query = {}
    for key in request.args:
        values = request.args.getlist(key)
        if key in whitelist and len(values) > 1:
            query[key] = values
        else:
            query[key] = values[-1]
    g.query = query


# ==================== security_headers ====================

def set_security_headers(response):
    headers = response.headers
    headers.setdefault('X-Content-Type-Options', 'nosniff')
    headers.setdefault('X-Frame-Options', 'SAMEORIGIN')
    headers.setdefault('Referrer-Policy', 'no-referrer')
    headers.setdefault('X-DNS-Prefetch-Control', 'off')
    headers.setdefault('Cross-Origin-Opener-Policy', 'same-origin')
    headers.setdefault(
        'Content-Security-Policy',
        "default-src 'self'; script-src 'self'; style-src 'self' 'unsafe-inline' "
        "https://fonts.googleapis.com; font-src 'self' https://fonts.gstatic.com; "
        "img-src 'self' data:; object-src 'none'; frame-ancestors 'self'",
    )
    if current_app.config.get('ENV_NAME') == 'production':
        headers.setdefault('Strict-Transport-Security', 'max-age=15552000; includeSubDomains')
    return response


STAGES = (
    Stage('request_time', before=stamp_request_time,
          description='stamp arrival time'),
    Stage('request_logging', after=log_request,
          description='development access log'),
    Stage('rate_limit', before=limit_requests, after=add_rate_limit_headers, prefix='/api',
          description='per-IP request cap on the API'),
    Stage('body_parser', before=parse_body,
          description='size-capped JSON parsing'),
    Stage('sanitize', before=sanitize_body,
          description='strip query operators and neutralize HTML tags in bodies'),
    Stage('parameter_pollution', before=dedupe_query,
          description='collapse duplicated query params'),
    Stage('security_headers', after=set_security_headers,
          description='security response headers'),
)


def install_pipeline(app, stages=STAGES):
    """Run ``stages`` in order around every request of ``app``."""
    app.extensions['rate_limiter'] = RateLimiter()
    app.extensions['pipeline'] = tuple(stages)

    @app.before_request
    def run_before_stages():
        for stage in app.extensions['pipeline']:
            if stage.before is not None and stage.applies(request.path):
                stage.before()

    @app.after_request
    def run_after_stages(response):
        for stage in app.extensions['pipeline']:
            if stage.after is not None and stage.applies(request.path):
                response = stage.after(response)
        return response
