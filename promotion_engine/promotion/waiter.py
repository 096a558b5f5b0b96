# promotion_engine/promotion/waiter.py
"""
Convergence waiter - observes a service until it settles on a revision.

The wait is a cancellable timed-retry loop. Cancelling stops observation
only; the service update that preceded the wait is not reverted.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from promotion_engine.core.errors import (
    ConvergenceCancelledError,
    ConvergencePlatformError,
    ConvergenceTimeoutError,
    PlatformError,
    PlatformUnavailableError,
)
from promotion_engine.core.models import ServiceRuntimeState
from promotion_engine.core.platform import OrchestrationPlatform
from promotion_engine.core.state_machine import ConvergenceState, ConvergenceStateMachine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConvergenceResult:
    state: ConvergenceState
    polls: int
    elapsed_seconds: float
    last_observed: Optional[ServiceRuntimeState] = None


def is_converged(state: ServiceRuntimeState, target_revision_ref: str) -> bool:
    """Single deployment, on the target revision, with every desired task running."""
    if state.deployment_count != 1:
        return False
    if state.active_revision_ref != target_revision_ref:
        return False
    if state.running_count is not None and state.desired_count is not None:
        return state.running_count == state.desired_count
    return True


class ConvergenceWaiter:
    """Polls the platform until convergence, failure, timeout or cancellation."""

    def __init__(
        self,
        platform: OrchestrationPlatform,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._platform = platform
        self._clock = clock

    def wait(
        self,
        cluster: str,
        service_name: str,
        target_revision_ref: str,
        *,
        poll_interval: float,
        timeout: float,
        cancel_event: Optional[threading.Event] = None,
    ) -> ConvergenceResult:
        """
        Block until the service converges on `target_revision_ref`.

        Args:
            cluster: Cluster name
            service_name: Service name
            target_revision_ref: Revision the service was pointed at
            poll_interval: Seconds between polls
            timeout: Overall budget in seconds
            cancel_event: Set it from another thread (signal handler) to abort

        Returns:
            ConvergenceResult in CONVERGED state

        Raises:
            ConvergenceTimeoutError: Target state not observed within `timeout`
            ConvergenceCancelledError: `cancel_event` was set
            ConvergencePlatformError: Definitive platform error or failed rollout
        """
        cancel_event = cancel_event or threading.Event()
        machine = ConvergenceStateMachine()
        tag = f"[{cluster}/{service_name}]"
        started = self._clock()
        deadline = started + timeout
        last_observed: Optional[ServiceRuntimeState] = None

        logger.info(f"{tag} Waiting for convergence on {target_revision_ref} (timeout {timeout}s)")

        while not machine.finished:
            if cancel_event.is_set():
                machine.transition(ConvergenceState.CANCELLED, "cancelled by operator")
                break

            machine.transition(ConvergenceState.POLLING)

            try:
                observed = self._platform.describe_service(cluster, service_name)
            except PlatformUnavailableError as e:
                logger.warning(f"{tag} Poll {machine.polls} failed, will retry: {e}")
            except PlatformError as e:
                machine.transition(ConvergenceState.PLATFORM_FAILED, str(e))
                break
            else:
                last_observed = observed

                if observed.rollout_failed:
                    machine.transition(
                        ConvergenceState.PLATFORM_FAILED,
                        observed.rollout_reason or "rollout failed",
                    )
                    break

                if is_converged(observed, target_revision_ref):
                    machine.transition(ConvergenceState.CONVERGED)
                    break

                logger.info(
                    f"{tag} Poll {machine.polls}: {observed.deployment_count} deployment(s), "
                    f"active {observed.active_revision_ref}"
                )

            remaining = deadline - self._clock()
            if remaining <= 0:
                machine.transition(
                    ConvergenceState.TIMED_OUT,
                    f"service did not converge within {timeout}s",
                )
                break

            if cancel_event.wait(min(poll_interval, remaining)):
                machine.transition(ConvergenceState.CANCELLED, "cancelled by operator")
                break

        result = ConvergenceResult(
            state=machine.state,
            polls=machine.polls,
            elapsed_seconds=self._clock() - started,
            last_observed=last_observed,
        )
        return self._finish(tag, machine, result)

    def _finish(
        self,
        tag: str,
        machine: ConvergenceStateMachine,
        result: ConvergenceResult,
    ) -> ConvergenceResult:
        if machine.state == ConvergenceState.CONVERGED:
            logger.info(f"{tag} ✅ Converged after {result.polls} poll(s)")
            return result

        logger.error(f"{tag} ❌ Convergence wait ended in {machine.state.value}: {machine.reason}")

        if machine.state == ConvergenceState.TIMED_OUT:
            raise ConvergenceTimeoutError(f"{tag} {machine.reason}")
        if machine.state == ConvergenceState.CANCELLED:
            raise ConvergenceCancelledError(f"{tag} {machine.reason}")
        raise ConvergencePlatformError(f"{tag} {machine.reason}")
