"""
Canonical workflow types (``fieldsales_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for state machines.  Guard, Transition and Workflow are
defined once here; the worker booking pipeline declares its table with them
in ``fieldsales_kernel.domain.transitions``.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``storage/``, ``services/``, or outer layers.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* Terminal states are left only through ``Workflow.exit_actions``; other
  actions on a terminal state must be self-loops.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Guard:
    """A condition that must be satisfied before a transition fires.

    Contract: frozen, descriptive only.
    Non-goals: does not evaluate the condition -- the transition function does.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow.

    ``automatic=True`` marks transitions fired by the day-advance rather than
    by an operator.
    """
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None
    automatic: bool = False


@dataclass(frozen=True)
class Workflow:
    """A state machine definition.

    Contract: frozen; ``transitions`` reference only states in ``states``.
    ``terminal_states`` are left only through ``exit_actions``.
    """
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()
    exit_actions: tuple[str, ...] = ()

    def __post_init__(self):
        if self.initial_state not in self.states:
            raise ValueError(f"initial state {self.initial_state!r} not in states")
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"transition {t.action!r} references unknown state "
                    f"({t.from_state!r} -> {t.to_state!r})"
                )
            leaves_terminal = t.from_state in self.terminal_states and t.to_state != t.from_state
            if leaves_terminal and t.action not in self.exit_actions:
                raise ValueError(
                    f"terminal state {t.from_state!r} cannot be left by {t.action!r}"
                )

    def find(self, from_state: str, action: str) -> tuple[Transition, ...]:
        """All transitions for ``action`` out of ``from_state``."""
        return tuple(
            t for t in self.transitions
            if t.from_state == from_state and t.action == action
        )

    def allows(self, from_state: str, action: str, to_state: str | None = None) -> bool:
        return any(
            to_state is None or t.to_state == to_state
            for t in self.find(from_state, action)
        )

    def actions_from(self, from_state: str, include_automatic: bool = False) -> tuple[str, ...]:
        seen: list[str] = []
        for t in self.transitions:
            if t.from_state != from_state or (t.automatic and not include_automatic):
                continue
            if t.action not in seen:
                seen.append(t.action)
        return tuple(seen)
