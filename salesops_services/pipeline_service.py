"""
salesops_services.pipeline_service -- Public facade over the sales-ops core.

Responsibility:
    One entry point per user-facing operation: forecast, SLA evaluation,
    schedule initialization, stage advancement, pipeline lookup and the
    SLA alert pass.  Resolves the tenant's pipeline configuration, reads
    "today" from the injected clock and binds the tenant into the log
    context for every call.

Architecture position:
    Services -- composes salesops_config (tenant pipelines), the pure
    engines and SLAAlertService.  Holds no business state of its own.

Usage:
    service = PipelineService(clock=DeterministicClock())
    project = service.initialize_schedule(project, tenant_id="acme")
    project = service.advance_stage(project, tenant_id="acme")
    forecast = service.compute_forecast(leads, projects, commissions, "acme")
"""

from __future__ import annotations

from typing import Any, Sequence

from salesops_config import PipelineConfigStore, default_store, load_pipeline
from salesops_config.schema import PipelineConfiguration, StageConfig
from salesops_engines.forecast import ForecastResult, RevenueForecastEngine
from salesops_engines.scheduling import StageScheduler
from salesops_engines.sla import SLAEvaluator, SLAHealth, SLAObservation
from salesops_kernel.domain.clock import Clock, SystemClock
from salesops_kernel.domain.records import Commission, Lead, Project, SLAStatus
from salesops_kernel.logging_config import LogContext, get_logger
from salesops_services.alerting import SLAAlertService, SLAPassResult

logger = get_logger("services.pipeline")

DEFAULT_TENANT_ID = "default"


class PipelineService:
    """
    Tenant-aware facade.

    Contract:
        Only configuration lookups can raise (typed ``ConfigurationError``
        subclasses or YAML/IO errors from a tenant file).  The calculations
        themselves are total.
    """

    def __init__(
        self,
        config_store: PipelineConfigStore | None = None,
        clock: Clock | None = None,
        alert_service: SLAAlertService | None = None,
    ):
        self._config_store = config_store or default_store()
        self._clock = clock or SystemClock()
        self._alert_service = alert_service or SLAAlertService(clock=self._clock)
        self._evaluator = SLAEvaluator()
        self._forecast_engine = RevenueForecastEngine()

    @property
    def config_store(self) -> PipelineConfigStore:
        return self._config_store

    @property
    def alert_service(self) -> SLAAlertService:
        return self._alert_service

    def _pipeline(self, tenant_id: str) -> PipelineConfiguration:
        return load_pipeline(tenant_id, self._config_store)

    def _scheduler(self, pipeline: PipelineConfiguration) -> StageScheduler:
        return StageScheduler(self._evaluator, pipeline.at_risk_window_days)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def get_pipeline_stages(self, tenant_id: str) -> tuple[StageConfig, ...]:
        with LogContext.bind(tenant_id=tenant_id):
            return self._pipeline(tenant_id).stages

    # ------------------------------------------------------------------
    # SLA
    # ------------------------------------------------------------------

    def evaluate_sla(
        self,
        stage_id: Any,
        days_elapsed_in_stage: Any,
        tenant_id: str = DEFAULT_TENANT_ID,
    ) -> SLAStatus:
        with LogContext.bind(tenant_id=tenant_id):
            pipeline = self._pipeline(tenant_id)
            return self._evaluator.evaluate(
                stage_id,
                days_elapsed_in_stage,
                pipeline.stages,
                pipeline.at_risk_window_days,
            )

    def observe_project(
        self,
        project: Project,
        tenant_id: str = DEFAULT_TENANT_ID,
    ) -> SLAObservation:
        with LogContext.bind(tenant_id=tenant_id, project_id=project.project_id):
            pipeline = self._pipeline(tenant_id)
            return self._scheduler(pipeline).observe(
                project, pipeline.stages, self._clock.today()
            )

    def pipeline_health(
        self,
        projects: Sequence[Project],
        tenant_id: str = DEFAULT_TENANT_ID,
    ) -> SLAHealth:
        """Health score over the freshly computed status of each project."""
        with LogContext.bind(tenant_id=tenant_id):
            pipeline = self._pipeline(tenant_id)
            scheduler = self._scheduler(pipeline)
            today = self._clock.today()
            return self._evaluator.pipeline_health(
                scheduler.observe(p, pipeline.stages, today).status
                for p in projects
            )

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def initialize_schedule(
        self,
        project: Project,
        tenant_id: str = DEFAULT_TENANT_ID,
    ) -> Project:
        with LogContext.bind(tenant_id=tenant_id, project_id=project.project_id):
            pipeline = self._pipeline(tenant_id)
            return self._scheduler(pipeline).initialize(
                project, pipeline.stages, self._clock.today()
            )

    def advance_stage(
        self,
        project: Project,
        tenant_id: str = DEFAULT_TENANT_ID,
    ) -> Project:
        with LogContext.bind(tenant_id=tenant_id, project_id=project.project_id):
            pipeline = self._pipeline(tenant_id)
            return self._scheduler(pipeline).advance(
                project, pipeline.stages, self._clock.today()
            )

    def refresh_sla(
        self,
        project: Project,
        tenant_id: str = DEFAULT_TENANT_ID,
    ) -> Project:
        with LogContext.bind(tenant_id=tenant_id, project_id=project.project_id):
            pipeline = self._pipeline(tenant_id)
            return self._scheduler(pipeline).refresh_sla(
                project, pipeline.stages, self._clock.today()
            )

    # ------------------------------------------------------------------
    # Forecast
    # ------------------------------------------------------------------

    def compute_forecast(
        self,
        leads: Sequence[Lead],
        projects: Sequence[Project],
        commissions: Sequence[Commission],
        tenant_id: str | None = None,
    ) -> ForecastResult:
        tenant = tenant_id or DEFAULT_TENANT_ID
        with LogContext.bind(tenant_id=tenant):
            stages = self._pipeline(tenant).stages
            return self._forecast_engine.compute(
                leads=list(leads),
                projects=list(projects),
                commissions=list(commissions),
                stages=stages,
            )

    # ------------------------------------------------------------------
    # Alerts
    # ------------------------------------------------------------------

    def run_sla_pass(
        self,
        projects: Sequence[Project],
        tenant_id: str = DEFAULT_TENANT_ID,
    ) -> SLAPassResult:
        with LogContext.bind(tenant_id=tenant_id):
            pipeline = self._pipeline(tenant_id)
            return self._alert_service.run_pass(
                tenant_id,
                projects,
                pipeline.stages,
                as_of=self._clock.today(),
                at_risk_window=pipeline.at_risk_window_days,
            )
