"""ORM models for the sales-ops kernel."""

from salesops_kernel.models.sla_alert_state import SLAAlertState

__all__ = ["SLAAlertState"]
