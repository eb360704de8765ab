import hmac
import re
from functools import wraps

from flask import current_app, request

from .errors import Unauthorized

_BEARER = re.compile(r'^Bearer\s+', re.IGNORECASE)


def check_api_key(provided, expected):
    if not isinstance(provided, str) or not provided or not expected:
        return False
    clean = _BEARER.sub('', provided.strip())
    return hmac.compare_digest(clean.encode('utf-8'), expected.encode('utf-8'))


def require_api_key(view):
    """Reject the request with 401 unless it carries the shared API key."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        if not check_api_key(request.headers.get('Authorization'), current_app.config['API_KEY']):
            raise Unauthorized("Unauthorized")
        return view(*args, **kwargs)
    return wrapper
