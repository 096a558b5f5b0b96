#promotion_engine\container.py

"""Dependency injection container - wires all services together."""

import logging
from functools import lru_cache
from typing import Optional

import boto3

from promotion_engine.config import PromotionSettings, settings
from promotion_engine.core.errors import PromotionEngineError
from promotion_engine.core.image_reference import RegistryHostMatcher
from promotion_engine.core.notifications import (
    LogNotificationSink,
    MultiNotificationSink,
    NotificationSink,
)
from promotion_engine.core.repository import HistoryRepository
from promotion_engine.core.transformer import SpecTransformer
from promotion_engine.infrastructure.aws.ecr_registry import EcrRegistry
from promotion_engine.infrastructure.aws.ecs_platform import EcsPlatform
from promotion_engine.infrastructure.aws.ssm_repository import SsmHistoryRepository
from promotion_engine.infrastructure.memory.repository import InMemoryHistoryRepository
from promotion_engine.infrastructure.postgres.repository import PostgresHistoryRepository
from promotion_engine.infrastructure.slack.notifier import SlackNotificationSink
from promotion_engine.promotion.config import PipelineConfig
from promotion_engine.promotion.history import DeploymentHistoryStore
from promotion_engine.promotion.pipeline import PromotionPipeline
from promotion_engine.promotion.registrar import SpecRegistrar
from promotion_engine.promotion.retagger import RegistryRetagger
from promotion_engine.promotion.updater import ServiceUpdater
from promotion_engine.promotion.waiter import ConvergenceWaiter

logger = logging.getLogger(__name__)


# ============================================
# AWS
# ============================================

def build_session(config: PromotionSettings = settings) -> boto3.session.Session:
    if not config.aws_region:
        raise PromotionEngineError("AWS region is not set (AWS_REGION or AWS_DEFAULT_REGION)")
    return boto3.session.Session(region_name=config.aws_region)


# ============================================
# REPOSITORIES
# ============================================

def build_history_repository(
    config: PromotionSettings = settings,
    session: Optional[boto3.session.Session] = None,
) -> HistoryRepository:
    backend = config.history_backend

    if backend == "memory":
        return InMemoryHistoryRepository()

    if backend == "postgres":
        return PostgresHistoryRepository()

    if backend == "ssm":
        session = session or build_session(config)
        return SsmHistoryRepository(
            session.client("ssm"),
            parameter_prefix=config.ssm_parameter_prefix,
            max_entries=config.history_max_entries,
        )

    raise PromotionEngineError(f"unsupported history backend {backend}")


# ============================================
# NOTIFICATIONS
# ============================================

def build_notifier(
    cluster: str,
    service: str,
    config: PromotionSettings = settings,
) -> NotificationSink:
    sinks = [LogNotificationSink()]
    if config.slack_webhook_url:
        sinks.append(SlackNotificationSink(config.slack_webhook_url, cluster, service))
    return MultiNotificationSink(sinks)


# ============================================
# SERVICES
# ============================================

def pipeline_config_from(config: PromotionSettings) -> PipelineConfig:
    return PipelineConfig(
        poll_interval_seconds=config.poll_interval_seconds,
        convergence_timeout_seconds=config.convergence_timeout_seconds,
        retag_max_workers=config.retag_max_workers,
        external_container_policy=config.external_container_policy,
    )


def build_pipeline(
    cluster: str,
    service: str,
    config: PromotionSettings = settings,
) -> PromotionPipeline:
    session = build_session(config)
    pipeline_config = pipeline_config_from(config)

    platform = EcsPlatform(session.client("ecs"))
    registry = EcrRegistry(session.client("ecr"))

    logger.info(
        f"Wiring pipeline: backend={config.history_backend}, "
        f"policy={pipeline_config.external_container_policy.value}, "
        f"slack={'on' if config.slack_webhook_url else 'off'}"
    )

    return PromotionPipeline(
        platform=platform,
        transformer=SpecTransformer(
            RegistryHostMatcher(config.registry_host_pattern),
            external_policy=pipeline_config.external_container_policy,
        ),
        retagger=RegistryRetagger(registry, max_workers=pipeline_config.retag_max_workers),
        registrar=SpecRegistrar(platform),
        updater=ServiceUpdater(platform),
        waiter=ConvergenceWaiter(platform),
        history=DeploymentHistoryStore(build_history_repository(config, session)),
        notifier=build_notifier(cluster, service, config),
        config=pipeline_config,
    )


@lru_cache
def get_history_store() -> DeploymentHistoryStore:
    """Process-wide history store for the read API."""
    return DeploymentHistoryStore(build_history_repository(settings))
