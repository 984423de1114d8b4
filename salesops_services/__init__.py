"""
Stateful orchestration over the pure engines.

Clock injection, tenant configuration lookup, alert-state persistence and
notification delivery live here.
"""

from salesops_services.alert_state import (
    AlertStateStore,
    InMemoryAlertStateStore,
    SqlAlchemyAlertStateStore,
)
from salesops_services.alerting import SLAAlertService, SLAPassResult
from salesops_services.notifications import (
    InMemoryNotificationSink,
    NotificationSink,
    notify_project_at_risk,
    notify_project_late,
)
from salesops_services.pipeline_service import PipelineService

__all__ = [
    "AlertStateStore",
    "InMemoryAlertStateStore",
    "InMemoryNotificationSink",
    "NotificationSink",
    "PipelineService",
    "SLAAlertService",
    "SLAPassResult",
    "SqlAlchemyAlertStateStore",
    "notify_project_at_risk",
    "notify_project_late",
]
