"""Permission Evaluator: what an actor may do to an event right now.

Independent of any transition request. Routes use the ``*_decision`` helpers to
enforce and to explain refusals; clients use ``permission_summary`` to decide
which controls to render.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from .engine import (
    available_actions,
    get_missing_actual_values,
    is_creator,
    is_same_branch,
)
from .records import Actor, EventRecord, StatusAction, require_actor_context
from .states import ActorRole, EventStatus, METRICS_WRITABLE_STATUSES, POST_APPROVAL_STATUSES

S = EventStatus
R = ActorRole

SALES_EDIT_STATUSES = frozenset({S.DRAFT, S.REJECTED, S.PENDING_GM})
GM_EDIT_STATUSES = frozenset({S.DRAFT, S.PENDING_GM})
DELETABLE_STATUSES = frozenset({S.DRAFT, S.PENDING_GM, S.REJECTED})


@dataclass(frozen=True)
class Decision:
    allowed: bool
    message: str

    def __bool__(self) -> bool:
        return self.allowed


def _allow(message: str) -> Decision:
    return Decision(True, message)


def _deny(message: str) -> Decision:
    return Decision(False, message)


def edit_decision(event: EventRecord, actor: Actor) -> Decision:
    require_actor_context(actor)
    if actor.is_admin:
        return _allow('Admin access')
    status = event.status
    if actor.role == R.SALES_MANAGER:
        if not is_creator(event, actor):
            return _deny('Sales managers can only edit events they created')
        if status in SALES_EDIT_STATUSES:
            return _allow('Creator can edit in draft, rejected or pending GM status')
        return _deny('Events cannot be edited after GM approval')
    if actor.role == R.GENERAL_MANAGER:
        if not (is_same_branch(event, actor) or is_creator(event, actor)):
            if actor.branch_id is None:
                return _deny('GM has no branch assigned. Please contact admin.')
            return _deny('GMs can only edit events from their branch or events they created')
        if status in GM_EDIT_STATUSES:
            return _allow('GM can edit events in their branch pending approval')
        return _deny('Events cannot be edited after GM approval')
    if actor.role == R.MARKETING_HEAD:
        if status == S.PENDING_MARKETING:
            return _allow('Marketing Head can edit events pending final approval')
        return _deny('Marketing Head can only edit events pending final approval')
    return _deny('You do not have permission to edit this event')


def can_edit_details(event: EventRecord, actor: Actor) -> bool:
    return edit_decision(event, actor).allowed


def delete_decision(event: EventRecord, actor: Actor) -> Decision:
    require_actor_context(actor)
    # Approved and completed records are kept for every role, admin included.
    if event.status in POST_APPROVAL_STATUSES:
        return _deny('Cannot delete approved or completed events')
    if actor.is_admin:
        return _allow('Admin access')
    status = event.status
    if actor.role == R.SALES_MANAGER and is_creator(event, actor):
        if status in DELETABLE_STATUSES:
            return _allow('Creator can delete before final approval')
        return _deny('Cannot delete events after submission to Marketing')
    if actor.role == R.GENERAL_MANAGER and (is_same_branch(event, actor) or is_creator(event, actor)):
        if status in DELETABLE_STATUSES:
            return _allow('GM can delete events in their branch before final approval')
        return _deny('Cannot delete events after submission to Marketing')
    if actor.role == R.MARKETING_HEAD and status == S.PENDING_MARKETING:
        return _allow('Marketing Head can delete events pending their approval')
    return _deny('You do not have permission to delete this event')


def can_delete(event: EventRecord, actor: Actor) -> bool:
    return delete_decision(event, actor).allowed


def can_edit_metrics(event: EventRecord, actor: Actor) -> bool:
    require_actor_context(actor)
    if actor.is_admin:
        return True
    if event.status not in METRICS_WRITABLE_STATUSES:
        return False
    if actor.role == R.MARKETING_MANAGER:
        return True
    return actor.role == R.SALES_MANAGER and is_creator(event, actor)


def metrics_decision(event: EventRecord, actor: Actor) -> Decision:
    """Gate for writing actual values. Unlike ``can_edit_metrics`` the status
    window applies to admin as well."""
    if event.status not in METRICS_WRITABLE_STATUSES:
        require_actor_context(actor)
        return _deny('Actual values can only be recorded once the event is approved')
    if can_edit_metrics(event, actor):
        return _allow('Actual values may be recorded')
    return _deny('Only Marketing Manager or the event creator can record actual values')


def edit_permission_message(event: EventRecord, actor: Actor) -> str:
    """Explanation shown next to the edit controls. Guidance only."""
    require_actor_context(actor)
    status = event.status
    creator = is_creator(event, actor)
    if actor.is_admin:
        return 'Admin: You have full edit access to all events.'
    if actor.role == R.SALES_MANAGER:
        if not creator:
            return 'You can only edit events that you created.'
        if status in SALES_EDIT_STATUSES:
            return 'You can edit this event. After GM approval, editing will be locked.'
        if status in POST_APPROVAL_STATUSES:
            return 'Event details are locked after approval. You can only edit post-event metrics.'
        return 'This event cannot be edited in its current status.'
    if actor.role == R.GENERAL_MANAGER:
        if not creator and not is_same_branch(event, actor):
            return 'You can only edit events from your branch or events you created.'
        if status in GM_EDIT_STATUSES:
            return 'You can edit events in your branch pending approval.'
        if status in POST_APPROVAL_STATUSES:
            return 'Event details are locked after approval.'
        return 'This event cannot be edited in its current status.'
    if actor.role == R.MARKETING_HEAD:
        if status == S.PENDING_MARKETING:
            return 'You can edit events pending your final approval.'
        return 'You can only edit events pending your approval.'
    if actor.role == R.MARKETING_MANAGER:
        if status in METRICS_WRITABLE_STATUSES:
            return 'You can edit final costs and post-event metrics for approved events.'
        return 'You can only edit final costs and metrics after the event is approved.'
    return 'You do not have permission to edit this event.'


@dataclass(frozen=True)
class EventPermissions:
    can_edit_details: bool
    can_delete: bool
    can_edit_metrics: bool
    message: str
    ready_for_completion: bool
    missing_actuals: Tuple[str, ...] = ()
    actions: Tuple[StatusAction, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'can_edit_details': self.can_edit_details,
            'can_delete': self.can_delete,
            'can_edit_metrics': self.can_edit_metrics,
            'message': self.message,
            'ready_for_completion': self.ready_for_completion,
            'missing_actuals': list(self.missing_actuals),
            'actions': [a.to_dict() for a in self.actions],
        }


def permission_summary(event: EventRecord, actor: Actor) -> EventPermissions:
    missing: List[str] = get_missing_actual_values(event)
    return EventPermissions(
        can_edit_details=can_edit_details(event, actor),
        can_delete=can_delete(event, actor),
        can_edit_metrics=can_edit_metrics(event, actor),
        message=edit_permission_message(event, actor),
        ready_for_completion=not missing,
        missing_actuals=tuple(missing),
        actions=tuple(available_actions(event, actor)),
    )


__all__ = [
    'Decision', 'EventPermissions',
    'edit_decision', 'can_edit_details', 'delete_decision', 'can_delete',
    'can_edit_metrics', 'metrics_decision', 'edit_permission_message',
    'permission_summary',
]
