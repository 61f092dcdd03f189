"""In-memory records exchanged with the workflow core.

These are plain frozen dataclasses: the engine never mutates them, it returns
new instances. Serialization to and from the database or HTTP payloads happens
outside the core (see ``portal.models`` and ``portal.routes``).
"""
from __future__ import annotations
import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from .errors import InvalidActorContext
from .states import ActorRole, EventStatus

BLOCKED_COMPLETION_CODE = 'completion_blocked'


class CommentKind(str, enum.Enum):
    FEEDBACK = 'feedback'
    APPROVAL = 'approval'
    REJECTION = 'rejection'
    GENERAL = 'general'


def comment_kind_for(target: Optional[EventStatus]) -> CommentKind:
    if target in (EventStatus.APPROVED, EventStatus.PENDING_MARKETING):
        return CommentKind.APPROVAL
    if target == EventStatus.REJECTED:
        return CommentKind.REJECTION
    if target == EventStatus.DRAFT:
        return CommentKind.FEEDBACK
    return CommentKind.GENERAL


@dataclass(frozen=True)
class Actor:
    id: Optional[int]
    role: Optional[ActorRole]
    branch_id: Optional[int] = None

    @classmethod
    def build(cls, id: Any, role: Any, branch_id: Any = None) -> 'Actor':
        """Build an actor from loosely typed values (token claims, form data).

        Raises InvalidActorContext when the id or role is absent or unusable.
        """
        missing = []
        if id is None or id == '':
            missing.append('id')
        if role is None or role == '':
            missing.append('role')
        if missing:
            raise InvalidActorContext(f"Actor context missing {', '.join(missing)}", missing)
        try:
            actor_id = int(id)
        except (TypeError, ValueError):
            raise InvalidActorContext(f'Actor id {id!r} is not an integer', ['id'])
        try:
            actor_role = ActorRole(str(role).strip().lower())
        except ValueError:
            raise InvalidActorContext(f'Unknown actor role {role!r}', ['role'])
        branch = None
        if branch_id is not None and branch_id != '':
            try:
                branch = int(branch_id)
            except (TypeError, ValueError):
                raise InvalidActorContext(f'Actor branch {branch_id!r} is not an integer', ['branch_id'])
        return cls(id=actor_id, role=actor_role, branch_id=branch)

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'role': self.role.value if self.role else None,
            'branch_id': self.branch_id,
        }


def require_actor_context(actor: Actor) -> Actor:
    """Return ``actor`` unchanged if every predicate can be evaluated against it."""
    if actor is None:
        raise InvalidActorContext('No actor supplied', ['id', 'role'])
    missing = []
    if actor.id is None:
        missing.append('id')
    if not isinstance(actor.role, ActorRole):
        missing.append('role')
    if missing:
        raise InvalidActorContext(f"Actor context missing {', '.join(missing)}", missing)
    return actor


@dataclass(frozen=True)
class EventRecord:
    id: Optional[int]
    status: EventStatus
    creator_id: int
    branch_id: int
    budget: float = 0
    planned_budget: Optional[float] = None
    planned_enquiries: Optional[int] = None
    planned_orders: Optional[int] = None
    # None means "not recorded yet"; zero is a recorded value.
    actual_budget: Optional[float] = None
    actual_enquiries: Optional[int] = None
    actual_orders: Optional[int] = None


@dataclass(frozen=True)
class StatusAction:
    """One affordance offered to an actor for an event.

    ``to_status`` is None for the blocked-completion pseudo-action, in which case
    ``missing`` lists the actual values that still have to be recorded.
    """
    from_status: EventStatus
    to_status: Optional[EventStatus]
    label: str
    color: str = 'primary'
    icon: str = ''
    requires_comment: bool = False
    missing: Tuple[str, ...] = ()

    @property
    def is_blocked(self) -> bool:
        return self.to_status is None

    @property
    def code(self) -> str:
        return self.to_status.value if self.to_status else BLOCKED_COMPLETION_CODE

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'code': self.code,
            'from_status': self.from_status.value,
            'to_status': self.to_status.value if self.to_status else None,
            'label': self.label,
            'color': self.color,
            'icon': self.icon,
            'requires_comment': self.requires_comment,
            'blocked': self.is_blocked,
        }
        if self.missing:
            data['missing'] = list(self.missing)
        return data


@dataclass(frozen=True)
class AuditComment:
    event_id: Optional[int]
    author_id: int
    text: Optional[str]
    status_from: Optional[EventStatus]
    status_to: Optional[EventStatus]
    created_at: datetime
    kind: CommentKind = field(default=CommentKind.GENERAL)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'event_id': self.event_id,
            'author_id': self.author_id,
            'text': self.text,
            'status_from': self.status_from.value if self.status_from else None,
            'status_to': self.status_to.value if self.status_to else None,
            'kind': self.kind.value,
            'created_at': self.created_at.isoformat(),
        }


__all__ = [
    'Actor', 'EventRecord', 'StatusAction', 'AuditComment', 'CommentKind',
    'comment_kind_for', 'require_actor_context', 'BLOCKED_COMPLETION_CODE',
]
