"""
PipelineConfigStore -- tenant-scoped pipeline configuration.

Responsibility:
    Resolves the pipeline for a tenant and supports the editing operations
    an admin console needs (add, remove, rename, reorder, retarget, reset).
    Edits are validated before they replace the current configuration.

Resolution order for ``load_pipeline(tenant_id)``:
    1. a configuration saved through this store,
    2. ``<config_dir>/<tenant_id>.yaml`` when a config directory is set,
    3. the packaged default pipeline.

Concurrency:
    Edits for one tenant are serialized by a per-tenant lock; reads take
    the same lock so they never observe a half-applied edit.
"""

from __future__ import annotations

import re
import threading
from dataclasses import replace
from pathlib import Path
from typing import Iterable

from salesops_config.loader import (
    build_pipeline,
    load_default_pipeline,
    load_pipeline_file,
)
from salesops_config.schema import PipelineConfiguration, StageConfig, stage_index
from salesops_kernel.exceptions import StageNotFoundError
from salesops_kernel.logging_config import get_logger

logger = get_logger("config.store")

_SAFE_TENANT_ID = re.compile(r"^[A-Za-z0-9_-][A-Za-z0-9_.-]*$")


def stage_id_from_name(name: str) -> str:
    """``"Battery Install"`` -> ``"BATTERY_INSTALL"``."""
    return re.sub(r"\s+", "_", name.strip()).upper()


class PipelineConfigStore:
    """
    Per-tenant pipeline configuration with validated edits.

    Contract:
        ``load_pipeline`` always returns a valid, ordered configuration.
        Edit operations raise ``InvalidPipelineError`` subclasses (and leave
        the stored configuration untouched) when the result would be
        invalid.
    """

    def __init__(self, config_dir: Path | None = None):
        self._config_dir = config_dir
        self._overrides: dict[str, PipelineConfiguration] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, tenant_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(tenant_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[tenant_id] = lock
            return lock

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def load_pipeline(self, tenant_id: str) -> PipelineConfiguration:
        with self._lock_for(tenant_id):
            return self._resolve(tenant_id)

    def get_stages(self, tenant_id: str) -> tuple[StageConfig, ...]:
        return self.load_pipeline(tenant_id).stages

    def _resolve(self, tenant_id: str) -> PipelineConfiguration:
        override = self._overrides.get(tenant_id)
        if override is not None:
            return override

        tenant_file = self._tenant_file(tenant_id)
        if tenant_file is not None:
            pipeline = load_pipeline_file(tenant_file, tenant_id=tenant_id)
            logger.debug("pipeline_loaded_from_file", extra={
                "tenant_id": tenant_id,
                "path": str(tenant_file),
                "stage_count": len(pipeline.stages),
            })
            return pipeline

        return replace(load_default_pipeline(), tenant_id=tenant_id)

    def _tenant_file(self, tenant_id: str) -> Path | None:
        if self._config_dir is None or not _SAFE_TENANT_ID.match(tenant_id):
            return None
        path = self._config_dir / f"{tenant_id}.yaml"
        return path if path.is_file() else None

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def save_pipeline(
        self,
        tenant_id: str,
        stages: Iterable[StageConfig],
        at_risk_window_days: int | None = None,
    ) -> PipelineConfiguration:
        """Validate and store a complete stage list for a tenant."""
        with self._lock_for(tenant_id):
            return self._save(tenant_id, stages, at_risk_window_days)

    def _save(
        self,
        tenant_id: str,
        stages: Iterable[StageConfig],
        at_risk_window_days: int | None = None,
    ) -> PipelineConfiguration:
        if at_risk_window_days is None:
            at_risk_window_days = self._resolve(tenant_id).at_risk_window_days
        pipeline = build_pipeline(
            stages,
            tenant_id=tenant_id,
            at_risk_window_days=at_risk_window_days,
        )
        self._overrides[tenant_id] = pipeline
        logger.info("pipeline_saved", extra={
            "tenant_id": tenant_id,
            "stage_ids": list(pipeline.stage_ids),
            "checksum": pipeline.checksum,
        })
        return pipeline

    def add_stage(
        self,
        tenant_id: str,
        name: str,
        target_days: int | None = None,
        color: str | None = None,
    ) -> StageConfig:
        """Append a stage named ``name``; its id is the upper-snake name."""
        with self._lock_for(tenant_id):
            current = self._resolve(tenant_id).stages
            order = max((s.order for s in current), default=-1) + 1
            stage = StageConfig(
                stage_id=stage_id_from_name(name),
                name=name,
                order=order,
                target_days=target_days,
                color=color,
            )
            self._save(tenant_id, current + (stage,))
            return stage

    def remove_stage(self, tenant_id: str, stage_id: str) -> bool:
        """Remove a stage and renumber the rest; False if it was not there."""
        with self._lock_for(tenant_id):
            current = self._resolve(tenant_id).stages
            if stage_index(current, stage_id) == -1:
                return False
            remaining = [s for s in current if s.stage_id != stage_id]
            self._save(
                tenant_id,
                [replace(s, order=i) for i, s in enumerate(remaining)],
            )
            return True

    def rename_stage(self, tenant_id: str, stage_id: str, new_name: str) -> StageConfig:
        return self._update_stage(tenant_id, stage_id, name=new_name)

    def update_target_days(
        self,
        tenant_id: str,
        stage_id: str,
        target_days: int | None,
    ) -> StageConfig:
        """Change one stage's SLA target duration (None = 7-day fallback)."""
        return self._update_stage(tenant_id, stage_id, target_days=target_days)

    def _update_stage(self, tenant_id: str, stage_id: str, **changes) -> StageConfig:
        with self._lock_for(tenant_id):
            current = self._resolve(tenant_id).stages
            index = stage_index(current, stage_id)
            if index == -1:
                raise StageNotFoundError(tenant_id, stage_id)
            updated = replace(current[index], **changes)
            stages = list(current)
            stages[index] = updated
            self._save(tenant_id, stages)
            return updated

    def reorder_stages(self, tenant_id: str, ordered_ids: list[str]) -> PipelineConfiguration:
        """
        Reorder to ``ordered_ids``.

        Ids not in the current pipeline are ignored; stages whose ids are
        not listed are dropped.
        """
        with self._lock_for(tenant_id):
            by_id = {s.stage_id: s for s in self._resolve(tenant_id).stages}
            reordered = [
                replace(by_id[sid], order=i)
                for i, sid in enumerate(sid for sid in ordered_ids if sid in by_id)
            ]
            return self._save(tenant_id, reordered)

    def reset_to_defaults(self, tenant_id: str) -> PipelineConfiguration:
        """Forget saved edits; the tenant falls back to file or default config."""
        with self._lock_for(tenant_id):
            self._overrides.pop(tenant_id, None)
            logger.info("pipeline_reset", extra={"tenant_id": tenant_id})
            return self._resolve(tenant_id)
