"""Errors raised by the workflow core.

Only two kinds exist. ``TransitionDenied`` is a business-rule outcome the caller
is expected to recover from (re-render the available actions, show the missing
fields). ``InvalidActorContext`` means the caller handed over an actor that
cannot be evaluated at all and is treated as a programming error.
"""
from __future__ import annotations
from typing import Any, Dict, Iterable, Optional, Tuple

# TransitionDenied.reason values
NO_SUCH_TRANSITION = 'no_such_transition'
NOT_PERMITTED = 'not_permitted'
NOT_READY = 'not_ready'

# TransitionDenied.denied_by values (which predicate rejected the actor)
DENIED_ROLE = 'role'
DENIED_CREATOR = 'creator'
DENIED_BRANCH = 'branch'


class WorkflowError(Exception):
    """Base class for workflow core errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TransitionDenied(WorkflowError):
    def __init__(
        self,
        message: str,
        *,
        reason: str,
        from_status: Optional[str] = None,
        to_status: Optional[str] = None,
        denied_by: Optional[str] = None,
        missing: Iterable[str] = (),
    ):
        super().__init__(message)
        self.reason = reason
        self.from_status = from_status
        self.to_status = to_status
        self.denied_by = denied_by
        self.missing: Tuple[str, ...] = tuple(missing)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'reason': self.reason,
            'from_status': self.from_status,
            'to_status': self.to_status,
        }
        if self.denied_by:
            data['denied_by'] = self.denied_by
        if self.missing:
            data['missing'] = list(self.missing)
        return data


class InvalidActorContext(WorkflowError):
    def __init__(self, message: str, missing: Iterable[str] = ()):
        super().__init__(message)
        self.missing: Tuple[str, ...] = tuple(missing)

    def to_dict(self) -> Dict[str, Any]:
        return {'missing': list(self.missing)}


__all__ = [
    'WorkflowError', 'TransitionDenied', 'InvalidActorContext',
    'NO_SUCH_TRANSITION', 'NOT_PERMITTED', 'NOT_READY',
    'DENIED_ROLE', 'DENIED_CREATOR', 'DENIED_BRANCH',
]
