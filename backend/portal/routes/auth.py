from __future__ import annotations
from flask import Blueprint
from portal.decorators.auth import require_actor
from portal.services.policy import current_actor

auth_bp = Blueprint('auth', __name__)


@auth_bp.get('/me')
@require_actor
def me():
    # Tokens are issued by the external identity service; this only echoes the verified actor
    return current_actor().to_dict()
