#promotion_engine\core\state_machine.py

from enum import Enum


class ConvergenceState(Enum):
    """Convergence wait state machine."""

    POLLING = "POLLING"
    CONVERGED = "CONVERGED"
    TIMED_OUT = "TIMED_OUT"
    CANCELLED = "CANCELLED"
    PLATFORM_FAILED = "PLATFORM_FAILED"


TERMINAL_STATES = frozenset({
    ConvergenceState.CONVERGED,
    ConvergenceState.TIMED_OUT,
    ConvergenceState.CANCELLED,
    ConvergenceState.PLATFORM_FAILED,
})

ALLOWED_TRANSITIONS = {
    ConvergenceState.POLLING: {
        ConvergenceState.POLLING,
        ConvergenceState.CONVERGED,
        ConvergenceState.TIMED_OUT,
        ConvergenceState.CANCELLED,
        ConvergenceState.PLATFORM_FAILED,
    },
}


class InvalidStateTransition(Exception):
    pass


class ConvergenceStateMachine:
    def __init__(self):
        self.state = ConvergenceState.POLLING
        self.polls = 0
        self.reason: str | None = None

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES

    def transition(self, new_state: ConvergenceState, reason: str | None = None) -> ConvergenceState:
        allowed = ALLOWED_TRANSITIONS.get(self.state, set())
        if new_state not in allowed:
            raise InvalidStateTransition(
                f"Cannot transition from {self.state} to {new_state}"
            )

        if new_state == ConvergenceState.POLLING:
            self.polls += 1

        self.state = new_state
        if reason is not None:
            self.reason = reason
        return self.state
