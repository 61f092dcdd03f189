from __future__ import annotations
from flask import abort, current_app, g
from flask_jwt_extended import get_jwt, get_jwt_identity
from sqlalchemy import select
from portal.models.event import Event
from portal.workflow.records import Actor
from portal.workflow.states import ActorRole, EventStatus

# Feature flag names (must align with portal.config.settings)
FLAG_BRANCH_SCOPE = 'EVENTS_ENFORCE_BRANCH_SCOPE'

# Roles confined to their own branch when branch scope is enforced
BRANCH_SCOPED_ROLES = frozenset({ActorRole.SALES_MANAGER, ActorRole.GENERAL_MANAGER})


def actor_from_claims() -> Actor:
    """Resolve the acting user from the verified JWT (identity + role/branch_id claims)."""
    claims = get_jwt()
    return Actor.build(get_jwt_identity(), claims.get('role'), claims.get('branch_id'))


def current_actor() -> Actor:
    actor = g.get('actor')
    if actor is None:
        actor = actor_from_claims()
        g.actor = actor
    return actor


def enforce_branch_scope_enabled(app_config=None) -> bool:
    cfg = app_config if app_config is not None else current_app.config
    return bool(cfg.get(FLAG_BRANCH_SCOPE, False))


def is_branch_scoped(actor: Actor) -> bool:
    return enforce_branch_scope_enabled() and actor.role in BRANCH_SCOPED_ROLES


def filter_query_by_actor_scope(query, actor: Actor):
    """Restrict a select() over Event to what ``actor`` may see."""
    if not is_branch_scoped(actor):
        return query
    if actor.branch_id is None:
        # scoped user without a branch only sees their own events
        return query.where(Event.creator_id == actor.id)
    return query.where((Event.branch_id == actor.branch_id) | (Event.creator_id == actor.id))


def assert_branch_access(actor: Actor, branch_id: int, creator_id: int = None):
    if not is_branch_scoped(actor):
        return
    if creator_id is not None and creator_id == actor.id:
        return
    if actor.branch_id is None or branch_id != actor.branch_id:
        abort(403, description='Branch access denied')


def pending_approvals_query(actor: Actor):
    """Events waiting on ``actor``'s decision, or None when the role has no queue."""
    q = select(Event)
    if actor.role == ActorRole.GENERAL_MANAGER:
        if actor.branch_id is None:
            return None
        return q.where(Event.status == EventStatus.PENDING_GM.value, Event.branch_id == actor.branch_id)
    if actor.role == ActorRole.MARKETING_HEAD:
        return q.where(Event.status == EventStatus.PENDING_MARKETING.value)
    return None
