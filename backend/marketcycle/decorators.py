# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

ACTOR_HEADER = "X-Actor"


def require_actor(f):
    """
    Require a caller identity on write routes.

    Sets g.actor from the X-Actor header; services stamp it into
    updated_by / published_by. The identity is never read from the body.

    Returns 401 if the header is missing or blank.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        actor = (request.headers.get(ACTOR_HEADER) or "").strip()
        if not actor:
            return jsonify({"error": f"{ACTOR_HEADER} header required"}), 401

        g.actor = actor
        return f(*args, **kwargs)

    return decorated_function
