"""Pure event approval workflow: states, transition table and permission matrix.

Nothing in this package touches Flask, the database or the clock (beyond a
default timestamp); the HTTP layer loads records, calls in and persists results.
"""
from .states import ActorRole, EventStatus, INITIAL_STATUS, TERMINAL_STATUSES
from .errors import InvalidActorContext, TransitionDenied, WorkflowError
from .records import Actor, AuditComment, CommentKind, EventRecord, StatusAction
from .engine import (
    TRANSITIONS,
    TransitionResult,
    apply_transition,
    available_actions,
    get_missing_actual_values,
    is_ready_for_completion,
)
from .permissions import (
    Decision,
    EventPermissions,
    can_delete,
    can_edit_details,
    can_edit_metrics,
    edit_permission_message,
    permission_summary,
)

__all__ = [
    'ActorRole', 'EventStatus', 'INITIAL_STATUS', 'TERMINAL_STATUSES',
    'InvalidActorContext', 'TransitionDenied', 'WorkflowError',
    'Actor', 'AuditComment', 'CommentKind', 'EventRecord', 'StatusAction',
    'TRANSITIONS', 'TransitionResult', 'apply_transition', 'available_actions',
    'get_missing_actual_values', 'is_ready_for_completion',
    'Decision', 'EventPermissions', 'can_delete', 'can_edit_details',
    'can_edit_metrics', 'edit_permission_message', 'permission_summary',
]
