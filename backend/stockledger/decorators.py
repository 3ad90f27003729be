# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .schemas import Actor
from .validation import ValidationError


def require_actor(f):
    """
    Require an acting-user descriptor and expose it as g.actor.

    The caller identifies the user in the `X-User-Info` header as JSON:
    {"id": "...", "username": "..."}. There is no session behind it; the
    value is recorded on ledger rows as-is.

    Returns 400 if the header is missing or malformed.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            g.actor = Actor.from_header(request.headers.get("X-User-Info"))
        except ValidationError as e:
            return jsonify(e.to_dict()), e.status_code
        return f(*args, **kwargs)

    return decorated_function
