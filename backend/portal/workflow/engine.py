"""Event approval workflow engine.

The whole lifecycle lives in ``TRANSITIONS``: a mapping from the current status
to the ordered edges leaving it. Each edge carries the predicate deciding who may
take it, its presentation metadata and the message shown when it is refused.
Every caller (HTTP routes, permission summary, OpenAPI document, the structural
validator in ``portal.utils.fsm``) reads this table; nothing re-encodes it.

All functions here are pure: no I/O, no clock reads unless ``now`` is omitted,
and inputs are never mutated.
"""
from __future__ import annotations
import dataclasses
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, FrozenSet, List, NamedTuple, Optional, Tuple, Union

from .errors import (
    DENIED_BRANCH,
    DENIED_CREATOR,
    DENIED_ROLE,
    NO_SUCH_TRANSITION,
    NOT_PERMITTED,
    NOT_READY,
    TransitionDenied,
)
from .records import (
    Actor,
    AuditComment,
    EventRecord,
    StatusAction,
    comment_kind_for,
    require_actor_context,
)
from .states import ActorRole, EventStatus, coerce_status

S = EventStatus
R = ActorRole

MISSING_ACTUAL_BUDGET = 'Actual Cost'
MISSING_ACTUAL_ENQUIRIES = 'Actual Enquiries'
MISSING_ACTUAL_ORDERS = 'Actual Orders'

BLOCKED_COMPLETION_LABEL = 'Complete (Missing Data)'


def is_creator(event: EventRecord, actor: Actor) -> bool:
    return actor.id is not None and actor.id == event.creator_id


def is_same_branch(event: EventRecord, actor: Actor) -> bool:
    # An actor without a branch is never in anybody's branch.
    return actor.branch_id is not None and actor.branch_id == event.branch_id


@dataclass(frozen=True)
class Rule:
    """Conjunction of a role set with optional ownership and branch checks."""
    roles: FrozenSet[ActorRole]
    creator: bool = False
    same_branch: bool = False

    def denial(self, event: EventRecord, actor: Actor) -> Optional[str]:
        """Return which check refused ``actor`` or None when the rule holds."""
        if actor.role not in self.roles:
            return DENIED_ROLE
        if self.creator and not is_creator(event, actor):
            return DENIED_CREATOR
        if self.same_branch and not is_same_branch(event, actor):
            return DENIED_BRANCH
        return None


@dataclass(frozen=True)
class AnyOf:
    rules: Tuple[Rule, ...]

    def denial(self, event: EventRecord, actor: Actor) -> Optional[str]:
        reasons = []
        for rule in self.rules:
            reason = rule.denial(event, actor)
            if reason is None:
                return None
            reasons.append(reason)
        # Report the most specific failure: a role that matched but failed ownership.
        for reason in reasons:
            if reason != DENIED_ROLE:
                return reason
        return DENIED_ROLE


def only(*roles: ActorRole, creator: bool = False, same_branch: bool = False) -> Rule:
    return Rule(frozenset(roles), creator=creator, same_branch=same_branch)


@dataclass(frozen=True)
class Edge:
    from_status: EventStatus
    to_status: EventStatus
    rule: Union[Rule, AnyOf]
    label: str
    denied_message: str
    color: str = 'primary'
    icon: str = ''
    requires_comment: bool = False
    requires_ready: bool = False

    def to_action(self) -> StatusAction:
        return StatusAction(
            from_status=self.from_status,
            to_status=self.to_status,
            label=self.label,
            color=self.color,
            icon=self.icon,
            requires_comment=self.requires_comment,
        )


_EDGES: Tuple[Edge, ...] = (
    Edge(S.DRAFT, S.PENDING_GM, only(R.SALES_MANAGER, creator=True),
         'Submit to GM', 'Only the event creator (Sales Manager) can submit for GM approval',
         icon='send'),
    Edge(S.DRAFT, S.PENDING_MARKETING, only(R.GENERAL_MANAGER, creator=True, same_branch=True),
         'Submit to Marketing', 'Only the event creator (General Manager) can submit to Marketing',
         icon='send'),
    Edge(S.PENDING_GM, S.PENDING_MARKETING, only(R.GENERAL_MANAGER, same_branch=True),
         'Approve', 'Only General Manager can approve and forward to Marketing Head',
         color='success', icon='check'),
    Edge(S.PENDING_GM, S.REJECTED, only(R.GENERAL_MANAGER, same_branch=True),
         'Reject', 'Only General Manager can reject events',
         color='error', icon='close', requires_comment=True),
    Edge(S.PENDING_GM, S.DRAFT, only(R.GENERAL_MANAGER, same_branch=True),
         'Back to Draft', 'Only General Manager can send back to draft',
         color='secondary', icon='edit', requires_comment=True),
    Edge(S.PENDING_MARKETING, S.APPROVED, only(R.MARKETING_HEAD),
         'Final Approval', 'Only Marketing Head can give final approval',
         color='success', icon='check'),
    Edge(S.PENDING_MARKETING, S.REJECTED, only(R.MARKETING_HEAD),
         'Reject', 'Only Marketing Head can reject events',
         color='error', icon='close', requires_comment=True),
    Edge(S.PENDING_MARKETING, S.PENDING_GM, only(R.MARKETING_HEAD),
         'Back to GM', 'Only Marketing Head can send back to GM',
         color='warning', icon='arrow_back', requires_comment=True),
    Edge(S.APPROVED, S.COMPLETED,
         AnyOf((only(R.MARKETING_MANAGER),
                only(R.SALES_MANAGER, R.GENERAL_MANAGER, creator=True))),
         'Mark Complete', 'Only Marketing Manager or the event creator can mark the event complete',
         color='success', icon='celebration', requires_ready=True),
    Edge(S.REJECTED, S.DRAFT, only(R.SALES_MANAGER, R.GENERAL_MANAGER, creator=True),
         'Revise & Resubmit', 'Only the event creator can revise rejected events',
         color='secondary', icon='edit'),
)


def _build_table(edges) -> Dict[EventStatus, Tuple[Edge, ...]]:
    table: Dict[EventStatus, List[Edge]] = {status: [] for status in EventStatus}
    for edge in edges:
        table[edge.from_status].append(edge)
    return {status: tuple(items) for status, items in table.items()}


TRANSITIONS: Dict[EventStatus, Tuple[Edge, ...]] = _build_table(_EDGES)


def transition_graph() -> Dict[str, FrozenSet[str]]:
    """Structural view of the table: status value -> reachable status values."""
    return {
        status.value: frozenset(edge.to_status.value for edge in edges)
        for status, edges in TRANSITIONS.items()
    }


def find_edge(from_status: EventStatus, to_status: EventStatus) -> Optional[Edge]:
    for edge in TRANSITIONS.get(from_status, ()):
        if edge.to_status == to_status:
            return edge
    return None


def get_missing_actual_values(event: EventRecord) -> List[str]:
    missing = []
    if event.actual_budget is None or event.actual_budget <= 0:
        missing.append(MISSING_ACTUAL_BUDGET)
    if event.actual_enquiries is None:
        missing.append(MISSING_ACTUAL_ENQUIRIES)
    if event.actual_orders is None:
        missing.append(MISSING_ACTUAL_ORDERS)
    return missing


def is_ready_for_completion(event: EventRecord) -> bool:
    """Budget must be strictly positive; zero enquiries or orders is a recorded value."""
    return not get_missing_actual_values(event)


def _denial(edge: Edge, event: EventRecord, actor: Actor) -> Optional[str]:
    if actor.is_admin:
        return None
    return edge.rule.denial(event, actor)


def blocked_completion_action(event: EventRecord, missing=None) -> StatusAction:
    return StatusAction(
        from_status=event.status,
        to_status=None,
        label=BLOCKED_COMPLETION_LABEL,
        color='warning',
        icon='warning',
        missing=tuple(missing if missing is not None else get_missing_actual_values(event)),
    )


def available_actions(event: EventRecord, actor: Actor) -> List[StatusAction]:
    """Actions ``actor`` may take on ``event``, in table declaration order.

    Completion is never silently dropped for an otherwise eligible actor: when
    actual values are missing a blocked pseudo-action listing them takes its place.
    """
    require_actor_context(actor)
    actions = []
    for edge in TRANSITIONS.get(event.status, ()):
        if _denial(edge, event, actor) is not None:
            continue
        if edge.requires_ready:
            missing = get_missing_actual_values(event)
            if missing:
                actions.append(blocked_completion_action(event, missing))
                continue
        actions.append(edge.to_action())
    return actions


class TransitionResult(NamedTuple):
    event: EventRecord
    comment: AuditComment


def _coerce_target(event: EventRecord, to_status) -> EventStatus:
    try:
        return coerce_status(to_status)
    except ValueError:
        raise TransitionDenied(
            f'Unknown status {to_status!r}',
            reason=NO_SUCH_TRANSITION,
            from_status=event.status.value,
            to_status=str(to_status),
        )


def check_transition(event: EventRecord, actor: Actor, to_status) -> Edge:
    """Return the edge ``actor`` would take or raise TransitionDenied.

    Checks run in order: the edge must exist, the actor must satisfy its
    predicate, and completion must be ready.
    """
    require_actor_context(actor)
    target = _coerce_target(event, to_status)
    edge = find_edge(event.status, target)
    if edge is None:
        raise TransitionDenied(
            f'Invalid status transition {event.status.value} -> {target.value}',
            reason=NO_SUCH_TRANSITION,
            from_status=event.status.value,
            to_status=target.value,
        )
    denied_by = _denial(edge, event, actor)
    if denied_by is not None:
        raise TransitionDenied(
            edge.denied_message,
            reason=NOT_PERMITTED,
            from_status=event.status.value,
            to_status=target.value,
            denied_by=denied_by,
        )
    if edge.requires_ready:
        missing = get_missing_actual_values(event)
        if missing:
            raise TransitionDenied(
                f"Cannot complete event. Missing: {', '.join(missing)}",
                reason=NOT_READY,
                from_status=event.status.value,
                to_status=target.value,
                missing=missing,
            )
    return edge


def apply_transition(
    event: EventRecord,
    actor: Actor,
    to_status,
    comment: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> TransitionResult:
    """Validate and compute the next state plus the audit comment to append.

    Nothing is persisted; the caller writes both artifacts in one transaction.
    """
    edge = check_transition(event, actor, to_status)
    text = comment.strip() if isinstance(comment, str) else None
    audit = AuditComment(
        event_id=event.id,
        author_id=actor.id,
        text=text or None,
        status_from=edge.from_status,
        status_to=edge.to_status,
        created_at=now or datetime.now(timezone.utc),
        kind=comment_kind_for(edge.to_status),
    )
    return TransitionResult(dataclasses.replace(event, status=edge.to_status), audit)


__all__ = [
    'Rule', 'AnyOf', 'Edge', 'TRANSITIONS', 'TransitionResult',
    'available_actions', 'apply_transition', 'check_transition', 'find_edge',
    'is_ready_for_completion', 'get_missing_actual_values', 'transition_graph',
    'blocked_completion_action', 'is_creator', 'is_same_branch',
    'MISSING_ACTUAL_BUDGET', 'MISSING_ACTUAL_ENQUIRIES', 'MISSING_ACTUAL_ORDERS',
    'BLOCKED_COMPLETION_LABEL',
]
