"""
Pipeline Configuration Loader (``salesops_config.loader``).

Responsibility
--------------
Loads pipeline YAML files and parses them into typed
``salesops_config.schema`` dataclass instances, validating stage
structure on the way in.  Runtime callers go through
``salesops_config.get_pipeline_stages()`` or a ``PipelineConfigStore``.

Invariants enforced
-------------------
* Stages come out sorted ascending by ``order`` (ties keep file order).
* Stage ids are unique; a pipeline has at least one stage.
* ``target_days`` is optional but never negative.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing stage ``id``  -> ``InvalidPipelineError``.
* Empty stage list  -> ``EmptyPipelineError``.
* Duplicate stage id  -> ``DuplicateStageError``.
"""

from __future__ import annotations

import hashlib
import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable

import yaml

from salesops_config.schema import (
    DEFAULT_AT_RISK_WINDOW_DAYS,
    PipelineConfiguration,
    StageConfig,
)
from salesops_kernel.exceptions import (
    DuplicateStageError,
    EmptyPipelineError,
    InvalidPipelineError,
)

DEFAULT_PIPELINE_PATH = Path(__file__).parent / "defaults" / "pipeline.yaml"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _optional_int(value: Any, field_name: str, tenant_id: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidPipelineError(
            tenant_id, f"{field_name} must be an integer, got {value!r}"
        ) from None


def parse_stage(
    data: dict[str, Any],
    position: int,
    tenant_id: str | None = None,
) -> StageConfig:
    """
    Parse a ``StageConfig`` from a dict.

    ``name`` defaults to the id and ``order`` to the stage's position in
    the list.
    """
    stage_id = data.get("id") or data.get("stage_id")
    if not stage_id:
        raise InvalidPipelineError(tenant_id, f"stage at position {position} has no id")

    target_days = _optional_int(data.get("target_days"), "target_days", tenant_id)
    if target_days is not None and target_days < 0:
        raise InvalidPipelineError(
            tenant_id, f"stage {stage_id!r} has negative target_days"
        )

    order = _optional_int(data.get("order"), "order", tenant_id)
    return StageConfig(
        stage_id=str(stage_id),
        name=str(data.get("name") or stage_id),
        order=position if order is None else order,
        target_days=target_days,
        color=data.get("color"),
        description=data.get("description"),
    )


def validate_stages(stages: Iterable[StageConfig], tenant_id: str | None = None) -> None:
    """
    Structural validation of a stage list.

    Raises:
        EmptyPipelineError: no stages.
        DuplicateStageError: a stage id appears twice.
    """
    seen: set[str] = set()
    count = 0
    for stage in stages:
        count += 1
        if stage.stage_id in seen:
            raise DuplicateStageError(tenant_id, stage.stage_id)
        seen.add(stage.stage_id)
    if count == 0:
        raise EmptyPipelineError(tenant_id)


def compute_checksum(stages: Iterable[StageConfig], at_risk_window_days: int) -> str:
    """Deterministic SHA-256 of the canonical stage list."""
    canonical = json.dumps(
        {
            "at_risk_window_days": at_risk_window_days,
            "stages": [
                [s.stage_id, s.name, s.order, s.target_days]
                for s in stages
            ],
        },
        sort_keys=True,
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def build_pipeline(
    stages: Iterable[StageConfig],
    tenant_id: str | None,
    at_risk_window_days: int = DEFAULT_AT_RISK_WINDOW_DAYS,
    source: str = "custom",
) -> PipelineConfiguration:
    """Validate, sort and fingerprint a stage list."""
    ordered = tuple(sorted(stages, key=lambda s: s.order))
    validate_stages(ordered, tenant_id)
    if at_risk_window_days < 0:
        raise InvalidPipelineError(tenant_id, "at_risk_window_days cannot be negative")
    return PipelineConfiguration(
        tenant_id=tenant_id,
        stages=ordered,
        at_risk_window_days=at_risk_window_days,
        checksum=compute_checksum(ordered, at_risk_window_days),
        source=source,
    )


def parse_pipeline(
    data: dict[str, Any],
    tenant_id: str | None = None,
    source: str = "custom",
) -> PipelineConfiguration:
    """Parse a full pipeline document (``stages`` list + options)."""
    raw_stages = data.get("stages") or []
    if not isinstance(raw_stages, list):
        raise InvalidPipelineError(tenant_id, "stages must be a list")
    window = _optional_int(data.get("at_risk_window_days"), "at_risk_window_days", tenant_id)
    return build_pipeline(
        (parse_stage(item, i, tenant_id) for i, item in enumerate(raw_stages)),
        tenant_id=tenant_id,
        at_risk_window_days=DEFAULT_AT_RISK_WINDOW_DAYS if window is None else window,
        source=source,
    )


def load_pipeline_file(path: Path, tenant_id: str | None = None) -> PipelineConfiguration:
    """Load and parse one pipeline YAML file."""
    return parse_pipeline(load_yaml_file(path), tenant_id=tenant_id, source=str(path))


@lru_cache(maxsize=1)
def load_default_pipeline() -> PipelineConfiguration:
    """The packaged default 6-stage pipeline (parsed once)."""
    return parse_pipeline(load_yaml_file(DEFAULT_PIPELINE_PATH), source="default")
