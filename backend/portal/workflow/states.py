from __future__ import annotations
"""Closed vocabularies for the event approval workflow.

Status and role values travel as plain strings on the wire and in the
database; inside the workflow they are always one of these enums so that an
unknown value can never slip past the transition table.
"""
import enum
from typing import FrozenSet


class EventStatus(str, enum.Enum):
    DRAFT = 'draft'
    PENDING_GM = 'pending_gm'
    PENDING_MARKETING = 'pending_marketing'
    APPROVED = 'approved'
    REJECTED = 'rejected'
    COMPLETED = 'completed'


class ActorRole(str, enum.Enum):
    SALES_MANAGER = 'sales_manager'
    GENERAL_MANAGER = 'general_manager'
    MARKETING_MANAGER = 'marketing_manager'
    MARKETING_HEAD = 'marketing_head'
    ADMIN = 'admin'


INITIAL_STATUS = EventStatus.DRAFT
TERMINAL_STATUSES: FrozenSet[EventStatus] = frozenset({EventStatus.COMPLETED})

# Structural fields freeze once an event reaches these states; only outcome
# metrics stay writable and the record can no longer be deleted.
POST_APPROVAL_STATUSES: FrozenSet[EventStatus] = frozenset({EventStatus.APPROVED, EventStatus.COMPLETED})
METRICS_WRITABLE_STATUSES = POST_APPROVAL_STATUSES

ALL_STATUS_VALUES = tuple(s.value for s in EventStatus)
ALL_ROLE_VALUES = tuple(r.value for r in ActorRole)


def coerce_status(value) -> EventStatus:
    """Return ``value`` as an EventStatus; raises ValueError for unknown values."""
    if isinstance(value, EventStatus):
        return value
    return EventStatus(str(value).strip().lower())


__all__ = [
    'EventStatus', 'ActorRole', 'INITIAL_STATUS', 'TERMINAL_STATUSES',
    'POST_APPROVAL_STATUSES', 'METRICS_WRITABLE_STATUSES', 'ALL_STATUS_VALUES',
    'ALL_ROLE_VALUES', 'coerce_status',
]
