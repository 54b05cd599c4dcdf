"""Allowed delivery status transitions.

Shared by the tracked send, the retry pass and webhook ingestion so all
three agree on what may follow what.

    PENDING   -> SENT | FAILED
    FAILED    -> SENT | FAILED | DEAD_LETTERED
    SENT      -> DELIVERED | OPENED | CLICKED | BOUNCED | COMPLAINT
    DELIVERED -> OPENED | CLICKED | BOUNCED | COMPLAINT
    OPENED    -> CLICKED | COMPLAINT
    CLICKED, BOUNCED, COMPLAINT, DEAD_LETTERED are terminal.
"""

from __future__ import annotations

from delivery_service.features.delivery.models import DeliveryStatus

_S = DeliveryStatus

TRANSITIONS: dict[DeliveryStatus, frozenset[DeliveryStatus]] = {
    _S.PENDING: frozenset({_S.SENT, _S.FAILED}),
    _S.FAILED: frozenset({_S.SENT, _S.FAILED, _S.DEAD_LETTERED}),
    _S.SENT: frozenset({_S.DELIVERED, _S.OPENED, _S.CLICKED, _S.BOUNCED, _S.COMPLAINT}),
    _S.DELIVERED: frozenset({_S.OPENED, _S.CLICKED, _S.BOUNCED, _S.COMPLAINT}),
    _S.OPENED: frozenset({_S.CLICKED, _S.COMPLAINT}),
    _S.CLICKED: frozenset(),
    _S.BOUNCED: frozenset(),
    _S.COMPLAINT: frozenset(),
    _S.DEAD_LETTERED: frozenset(),
}

TERMINAL_STATUSES = frozenset(status for status, targets in TRANSITIONS.items() if not targets)


class InvalidTransitionError(Exception):
    """Raised by ``require_transition`` for an edge not in the graph."""

    def __init__(self, current: DeliveryStatus, target: DeliveryStatus) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Invalid delivery transition {current.value} -> {target.value}")


def can_transition(current: DeliveryStatus | str, target: DeliveryStatus | str) -> bool:
    """True only for edges of the transition graph.

    FAILED -> FAILED is an edge (a failed retry), every other self-loop is not.
    """
    return DeliveryStatus(target) in TRANSITIONS[DeliveryStatus(current)]


def is_noop(current: DeliveryStatus | str, target: DeliveryStatus | str) -> bool:
    """A same-status update that should be acknowledged without writing."""
    return DeliveryStatus(current) == DeliveryStatus(target) and not can_transition(current, target)


def is_terminal(status: DeliveryStatus | str) -> bool:
    return DeliveryStatus(status) in TERMINAL_STATUSES


def require_transition(current: DeliveryStatus | str, target: DeliveryStatus | str) -> None:
    """Raise ``InvalidTransitionError`` unless current -> target is allowed."""
    if not can_transition(current, target):
        raise InvalidTransitionError(DeliveryStatus(current), DeliveryStatus(target))


__all__ = [
    "TERMINAL_STATUSES",
    "TRANSITIONS",
    "InvalidTransitionError",
    "can_transition",
    "is_noop",
    "is_terminal",
    "require_transition",
]
