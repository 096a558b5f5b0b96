# promotion_engine/promotion/pipeline.py
"""Promotion pipeline - coordinates one deployment attempt end to end."""

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence

from promotion_engine.core.errors import (
    ConvergenceCancelledError,
    DeploymentInProgressError,
    PromotionCancelledError,
)
from promotion_engine.core.factory import AttemptFactory
from promotion_engine.core.models import DeploymentAttempt, ImageOption, PromotionStage
from promotion_engine.core.notifications import NotificationSink, Severity
from promotion_engine.core.platform import OrchestrationPlatform
from promotion_engine.core.revision import RevisionSelector
from promotion_engine.core.transformer import SpecTransformer
from promotion_engine.promotion.config import PipelineConfig
from promotion_engine.promotion.history import DeploymentHistoryStore
from promotion_engine.promotion.registrar import SpecRegistrar
from promotion_engine.promotion.retagger import RegistryRetagger
from promotion_engine.promotion.updater import ServiceUpdater
from promotion_engine.promotion.waiter import ConvergenceWaiter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PromotionRequest:
    cluster: str
    service: str
    image_options: Sequence[ImageOption]
    revision: RevisionSelector = field(default_factory=RevisionSelector.latest)

    def options_by_repository(self) -> Dict[str, ImageOption]:
        """First option given for a repository wins."""
        options: Dict[str, ImageOption] = {}
        for option in self.image_options:
            options.setdefault(option.repository_name, option)
        return options


class PromotionPipeline:
    """
    Promotes a new image set into a running service.

    Flow:
    1. Precheck: refuse when the service already has overlapping deployments
    2. Resolve the baseline revision and fetch its spec
    3. Transform the spec and plan retags (pure, no side effects)
    4. Retag every in-scope image under the attempt's unique ID
    5. Register the new spec as a new revision
    6. Point the service at the new revision
    7. Wait for convergence
    8. Append the transition to the deployment history

    Every stage entry is reported to the notifier. An interrupt stops the
    attempt at the next stage boundary up to the update; after that it only
    stops the convergence wait. Any failure stops the attempt; nothing is
    rolled back automatically.
    """

    def __init__(
        self,
        *,
        platform: OrchestrationPlatform,
        transformer: SpecTransformer,
        retagger: RegistryRetagger,
        registrar: SpecRegistrar,
        updater: ServiceUpdater,
        waiter: ConvergenceWaiter,
        history: DeploymentHistoryStore,
        notifier: NotificationSink,
        config: PipelineConfig = PipelineConfig(),
    ):
        self._platform = platform
        self._transformer = transformer
        self._retagger = retagger
        self._registrar = registrar
        self._updater = updater
        self._waiter = waiter
        self._history = history
        self._notifier = notifier
        self._config = config

    def run(
        self,
        request: PromotionRequest,
        cancel_event: Optional[threading.Event] = None,
    ) -> DeploymentAttempt:
        """
        Execute one deployment attempt.

        Returns:
            The finished DeploymentAttempt (outcome SUCCEEDED)

        Raises:
            PromotionEngineError subclasses from whichever stage failed
        """
        attempt = AttemptFactory.create(cluster=request.cluster, service=request.service)

        logger.info("=" * 60)
        logger.info(f"[{attempt.cluster}/{attempt.service}] 🚀 Deployment attempt {attempt.unique_id}")
        logger.info("=" * 60)

        try:
            self._execute(attempt, request, cancel_event)
        except (PromotionCancelledError, ConvergenceCancelledError) as e:
            attempt.cancel(str(e))
            self._report_failure(attempt, e)
            raise
        except Exception as e:
            attempt.fail(str(e))
            self._report_failure(attempt, e)
            raise

        attempt.succeed()
        self._notify("successfully updated\n", Severity.GOOD)
        return attempt

    # -------------------------
    # STAGES
    # -------------------------

    def _execute(
        self,
        attempt: DeploymentAttempt,
        request: PromotionRequest,
        cancel_event: Optional[threading.Event],
    ) -> None:
        tag = f"[{attempt.cluster}/{attempt.service}]"

        # 1. Precheck
        self._enter(attempt, PromotionStage.PRECHECK, cancel_event,
                    f"precheck: cluster: {attempt.cluster}, serviceName: {attempt.service}\n")
        runtime = self._check_not_deploying(attempt)

        # 2. Resolve baseline
        self._enter(attempt, PromotionStage.RESOLVE, cancel_event,
                    f"resolving baseline revision ({request.revision.describe()})\n")
        baseline_ref = request.revision.resolve(runtime.active_revision_ref)
        baseline = self._platform.describe_spec(baseline_ref)
        attempt.baseline_revision = baseline.revision
        logger.info(f"{tag} Baseline: {baseline.arn} (selected {request.revision.describe()})")

        # 3. Transform
        self._enter(attempt, PromotionStage.TRANSFORM, cancel_event,
                    f"transforming revision {attempt.baseline_revision}\n")
        options = request.options_by_repository()
        new_spec = self._transformer.transform(baseline.spec, attempt.unique_id, options)
        attempt.retag_map = self._transformer.retag_plan(baseline.spec, attempt.unique_id, options)

        # 4. Retag
        self._enter(attempt, PromotionStage.RETAG, cancel_event,
                    f"retagging {len(attempt.retag_map)} image(s) as {attempt.unique_id}\n")
        self._retagger.retag_all(attempt.retag_map.values())

        # 5. Register
        self._enter(attempt, PromotionStage.REGISTER, cancel_event, "registering new revision\n")
        registered = self._registrar.register(new_spec)
        attempt.target_revision = registered.revision
        attempt.target_revision_ref = registered.arn

        self._notify(
            f"deploy: revision {attempt.baseline_revision} -> {attempt.target_revision}\n",
            Severity.NORMAL,
        )

        # 6. Update (last point where an interrupt stops the attempt)
        self._enter(attempt, PromotionStage.UPDATE, cancel_event, "service updating\n")
        self._updater.update_service(attempt.cluster, attempt.service, registered.arn)

        # 7. Converge (the waiter observes cancel_event itself)
        self._enter(attempt, PromotionStage.CONVERGE, None, "waiting for service to converge\n")
        self._waiter.wait(
            attempt.cluster,
            attempt.service,
            registered.arn,
            poll_interval=self._config.poll_interval_seconds,
            timeout=self._config.convergence_timeout_seconds,
            cancel_event=cancel_event,
        )

        # 8. Record
        self._enter(attempt, PromotionStage.RECORD, None,
                    f"recording revision {registered.revision} in history\n")
        self._history.push_state(
            attempt.cluster,
            attempt.service,
            registered.revision,
            attempt.history_message(),
        )

    def _enter(
        self,
        attempt: DeploymentAttempt,
        stage: PromotionStage,
        cancel_event: Optional[threading.Event],
        message: str,
    ) -> None:
        """Move the attempt to `stage` and report it; an interrupt stops the attempt here."""
        if cancel_event is not None and cancel_event.is_set():
            raise PromotionCancelledError(
                f"[{attempt.cluster}/{attempt.service}] cancelled before {stage.value}"
            )
        attempt.enter(stage)
        logger.info(f"[{attempt.cluster}/{attempt.service}] {message.rstrip()}")
        self._notify(message, Severity.NORMAL)

    def _check_not_deploying(self, attempt: DeploymentAttempt):
        """
        Refuse to start while another deployment is in flight.

        Known limitation: this reads shared platform state without a lock, so
        two attempts started at the same moment can both pass the check.
        """
        runtime = self._platform.describe_service(attempt.cluster, attempt.service)
        if runtime.deploying:
            raise DeploymentInProgressError(f"{attempt.service} is currently deploying")
        return runtime

    # -------------------------
    # REPORTING
    # -------------------------

    def _report_failure(self, attempt: DeploymentAttempt, error: Exception) -> None:
        msg = (
            f"failed to deploy. cluster: {attempt.cluster}, serviceName: {attempt.service}, "
            f"stage: {attempt.stage.value}, error: {error}\n"
        )
        logger.error(msg.rstrip("\n"))
        self._notify(msg, Severity.DANGER)

    def _notify(self, message: str, severity: Severity) -> None:
        """Best effort: a broken sink never fails the attempt."""
        try:
            self._notifier.notify(message, severity)
        except Exception as e:
            logger.warning(f"Notification delivery failed: {e}")
