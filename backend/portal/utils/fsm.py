"""Structural status graph check.

Answers only "does this edge exist", never "who may take it"; actor rules live in
``portal.workflow.engine``. The event graph is derived from the engine's table so
the two cannot drift:

    from portal.utils.fsm import EVENT_FSM
    EVENT_FSM.assert_can_transition('draft', 'pending_gm')

Raises TransitionDenied (reason ``no_such_transition``) if the edge is absent.
"""
from __future__ import annotations
from typing import Dict, Iterable, Set
from portal.workflow.engine import transition_graph
from portal.workflow.errors import NO_SUCH_TRANSITION, TransitionDenied


class TransitionValidator:
    def __init__(self, graph: Dict[str, Iterable[str]], field_name: str = 'status'):
        self.graph: Dict[str, Set[str]] = {k: set(v) for k, v in graph.items()}
        self.field_name = field_name

    def targets(self, current: str) -> Set[str]:
        return set(self.graph.get(current, set()))

    def can_transition(self, current: str, target: str) -> bool:
        return target in self.graph.get(current, set())

    def assert_can_transition(self, current: str, target: str):
        if not self.can_transition(current, target):
            raise TransitionDenied(
                f"Invalid {self.field_name} transition {current} -> {target}",
                reason=NO_SUCH_TRANSITION,
                from_status=current,
                to_status=target,
            )
        return True

    def terminal_states(self) -> Set[str]:
        return {state for state, targets in self.graph.items() if not targets}


EVENT_FSM = TransitionValidator(transition_graph())

__all__ = ['TransitionValidator', 'EVENT_FSM']
