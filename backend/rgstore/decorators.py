# Overview: Request decorators for API routes.

import hmac
from functools import wraps
from flask import request, jsonify

from .config import get_settings


def _presented_key() -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1].strip()
    return request.headers.get("X-API-Key")


def require_api_key(f):
    """
    Require the shared API key when one is configured.

    With no RGSTORE_API_KEY set the route is open; identity and credentials
    are handled in front of this service.

    SECURITY: Returns 401 if:
    - a key is configured and no key is presented
    - the presented key does not match
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected = get_settings().api_key
        if expected is None:
            return f(*args, **kwargs)

        presented = _presented_key()
        if not presented:
            return jsonify({"error": "Authentication required"}), 401
        if not hmac.compare_digest(presented.encode(), expected.encode()):
            return jsonify({"error": "Invalid API key"}), 401

        return f(*args, **kwargs)

    return decorated_function
