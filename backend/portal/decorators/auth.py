from functools import wraps
from flask import g
from flask_jwt_extended import verify_jwt_in_request
from portal.services.policy import actor_from_claims


def require_actor(fn):
    """Verify the bearer token and expose the resolved Actor as ``g.actor``.

    A token lacking a usable role raises InvalidActorContext (400).
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        verify_jwt_in_request()
        g.actor = actor_from_claims()
        return fn(*args, **kwargs)
    return wrapper
