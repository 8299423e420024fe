"""
Confirmation gates for destructive or unusual operations.

CancelConfirmationGate
    Two-step confirmation in front of checkout cancellation, kept apart
    from any UI so it can be tested on its own:

        IDLE --request()--> CONFIRM_REQUESTED --confirm()-->
        FINAL_CONFIRM_REQUESTED --confirm_final()--> EXECUTING
            --complete()--> IDLE

    ``abort()`` returns to IDLE from any state before EXECUTING.  Once
    execution starts it runs to completion (or partial completion); there
    is no abort of an executing cancel.

OverReceivePolicy
    What the operator decided when a receipt exceeds the remaining amount
    on a line item.
"""

from __future__ import annotations

import threading
from enum import Enum

from inventory_kernel.exceptions import ConfirmationRequiredError


class GateState(str, Enum):
    IDLE = "idle"
    CONFIRM_REQUESTED = "confirm_requested"
    FINAL_CONFIRM_REQUESTED = "final_confirm_requested"
    EXECUTING = "executing"


_NEXT = {
    GateState.IDLE: GateState.CONFIRM_REQUESTED,
    GateState.CONFIRM_REQUESTED: GateState.FINAL_CONFIRM_REQUESTED,
    GateState.FINAL_CONFIRM_REQUESTED: GateState.EXECUTING,
}


class CancelConfirmationGate:
    """Per-session confirmation state machine."""

    OPERATION = "Cancel checkout"

    def __init__(self, session_id: str | None = None):
        self.session_id = session_id
        self._state = GateState.IDLE
        self._lock = threading.Lock()

    @property
    def state(self) -> GateState:
        return self._state

    def _step(self, expected: GateState) -> GateState:
        with self._lock:
            if self._state != expected:
                raise ConfirmationRequiredError(self.OPERATION, self._state.value)
            self._state = _NEXT[expected]
            return self._state

    def request(self) -> GateState:
        """First prompt: "are you sure?"."""
        return self._step(GateState.IDLE)

    def confirm(self) -> GateState:
        """Operator accepted the first prompt; ask the final question."""
        return self._step(GateState.CONFIRM_REQUESTED)

    def confirm_final(self) -> GateState:
        """Operator accepted the irreversible final prompt."""
        return self._step(GateState.FINAL_CONFIRM_REQUESTED)

    def require_executing(self) -> None:
        if self._state != GateState.EXECUTING:
            raise ConfirmationRequiredError(self.OPERATION, self._state.value)

    def abort(self) -> GateState:
        with self._lock:
            if self._state == GateState.EXECUTING:
                raise ConfirmationRequiredError(self.OPERATION, self._state.value)
            self._state = GateState.IDLE
            return self._state

    def complete(self) -> GateState:
        with self._lock:
            self._state = GateState.IDLE
            return self._state


class OverReceivePolicy(str, Enum):
    """
    CONFIRM     raise OverReceiveConfirmationRequired and write nothing.
    CLAMP       receive only what remains on the line item.
    ACCEPT_ALL  receive the full amount (explicitly confirmed over-receipt).
    """

    CONFIRM = "confirm"
    CLAMP = "clamp"
    ACCEPT_ALL = "accept_all"


def accepted_quantity(requested: int, remaining: int, policy: OverReceivePolicy) -> int | None:
    """
    Quantity to receive under ``policy``; None means confirmation is needed.
    """
    if requested <= remaining:
        return requested
    if policy == OverReceivePolicy.CLAMP:
        return remaining
    if policy == OverReceivePolicy.ACCEPT_ALL:
        return requested
    return None
