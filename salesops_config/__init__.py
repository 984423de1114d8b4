"""
salesops_config -- tenant pipeline configuration.

Responsibility:
    Supplies each tenant's ordered list of pipeline stages (with target
    durations) to the scheduler, SLA evaluator and forecast engine.  The
    packaged default is the 6-stage Site Survey -> Design -> Permitting ->
    Install -> Inspection -> PTO pipeline with {3, 7, 5, 14, 7, 10} day
    targets.

Architecture position:
    Configuration -- sits above ``salesops_kernel`` and below
    ``salesops_engines`` / ``salesops_services``.  The kernel MUST NEVER
    import from ``salesops_config``.

Audit relevance:
    Every ``load_pipeline()`` call emits a ``SALESOPS_CONFIG_TRACE`` log
    entry with the tenant, source and checksum of the configuration used.
"""

from __future__ import annotations

import logging

from salesops_config.loader import (
    build_pipeline,
    load_default_pipeline,
    load_pipeline_file,
    parse_pipeline,
)
from salesops_config.schema import (
    DEFAULT_AT_RISK_WINDOW_DAYS,
    DEFAULT_TARGET_DAYS,
    PipelineConfiguration,
    StageConfig,
)
from salesops_config.store import PipelineConfigStore

_logger = logging.getLogger("salesops.config")

_default_store = PipelineConfigStore()


def default_store() -> PipelineConfigStore:
    """Process-wide store used when callers do not supply their own."""
    return _default_store


def load_pipeline(
    tenant_id: str,
    store: PipelineConfigStore | None = None,
) -> PipelineConfiguration:
    """Resolve the full pipeline configuration for a tenant."""
    pipeline = (store or _default_store).load_pipeline(tenant_id)
    _logger.info(
        "SALESOPS_CONFIG_TRACE",
        extra={
            "trace_type": "SALESOPS_CONFIG_TRACE",
            "tenant_id": tenant_id,
            "source": pipeline.source,
            "checksum": pipeline.checksum,
            "stage_count": len(pipeline.stages),
        },
    )
    return pipeline


def get_pipeline_stages(
    tenant_id: str,
    store: PipelineConfigStore | None = None,
) -> tuple[StageConfig, ...]:
    """Ordered stages for a tenant (ascending ``order``, unique ids)."""
    return load_pipeline(tenant_id, store).stages


__all__ = [
    "DEFAULT_AT_RISK_WINDOW_DAYS",
    "DEFAULT_TARGET_DAYS",
    "PipelineConfigStore",
    "PipelineConfiguration",
    "StageConfig",
    "build_pipeline",
    "default_store",
    "get_pipeline_stages",
    "load_default_pipeline",
    "load_pipeline",
    "load_pipeline_file",
    "parse_pipeline",
]
