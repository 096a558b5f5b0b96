# promotion_engine/run_deploy.py
"""Promote a new image set into a running service."""

import argparse
import logging
import signal
import sys
import threading
from typing import List, Optional

from promotion_engine.config import PromotionSettings, settings
from promotion_engine.container import build_pipeline
from promotion_engine.core.errors import PromotionEngineError
from promotion_engine.core.image_reference import parse_image_option
from promotion_engine.core.revision import RevisionSelector
from promotion_engine.core.transformer import ExternalContainerPolicy
from promotion_engine.promotion.pipeline import PromotionRequest

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)

cancel_event = threading.Event()


def signal_handler(sig, frame):
    """Stop the attempt before the service update, or stop waiting after it."""
    logger.info("🛑 Cancelling deployment...")
    cancel_event.set()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="promotion-deploy",
        description="Deploy a new revision of a service from retagged images.",
    )
    parser.add_argument("--cluster", required=True, help="cluster name")
    parser.add_argument("--service-name", required=True, help="service name")
    parser.add_argument(
        "--revision",
        type=int,
        default=0,
        help="revision to promote from (0 = the service's current revision)",
    )
    parser.add_argument(
        "--image",
        dest="images",
        action="append",
        required=True,
        metavar="REPOSITORY:TAG",
        help="source tag for an in-scope repository (repeatable)",
    )
    parser.add_argument(
        "--backend",
        choices=["ssm", "postgres", "memory"],
        default=None,
        help="history backend (default: HISTORY_BACKEND or ssm)",
    )
    parser.add_argument("--slack-webhook-url", default=None, help="Slack incoming webhook URL")
    parser.add_argument("--poll-interval", type=float, default=None, help="seconds between polls")
    parser.add_argument("--timeout", type=float, default=None, help="convergence timeout in seconds")
    parser.add_argument(
        "--keep-external-containers",
        action="store_true",
        help="keep containers from other registries instead of dropping them",
    )
    return parser


def settings_from_args(args: argparse.Namespace, base: PromotionSettings = settings) -> PromotionSettings:
    overrides = {}
    if args.backend:
        overrides["history_backend"] = args.backend
    if args.slack_webhook_url:
        overrides["slack_webhook_url"] = args.slack_webhook_url
    if args.poll_interval is not None:
        overrides["poll_interval_seconds"] = args.poll_interval
    if args.timeout is not None:
        overrides["convergence_timeout_seconds"] = args.timeout
    if args.keep_external_containers:
        overrides["external_container_policy"] = ExternalContainerPolicy.PASS_THROUGH
    return base.model_copy(update=overrides)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        options = [parse_image_option(value) for value in args.images]
        revision = RevisionSelector.from_flag(args.revision)
    except PromotionEngineError as e:
        logger.error(f"❌ {e}")
        return 1

    config = settings_from_args(args)

    # Register signal handler
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    logger.info("=" * 80)
    logger.info("🚀 REVISION PROMOTION")
    logger.info("=" * 80)
    logger.info(f"Cluster: {args.cluster}")
    logger.info(f"Service: {args.service_name}")
    logger.info(f"Revision: {revision.describe()}")
    logger.info(f"Images: {', '.join(args.images)}")
    logger.info("=" * 80)

    try:
        pipeline = build_pipeline(args.cluster, args.service_name, config)
        attempt = pipeline.run(
            PromotionRequest(
                cluster=args.cluster,
                service=args.service_name,
                image_options=options,
                revision=revision,
            ),
            cancel_event=cancel_event,
        )
    except PromotionEngineError as e:
        logger.error(f"❌ Deployment failed: {e}")
        return 1

    logger.info(
        f"✅ {args.service_name} now on revision {attempt.target_revision} "
        f"(attempt {attempt.unique_id})"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
