"""
Module: salesops_kernel.models.sla_alert_state
Responsibility: ORM persistence for the Notification Bridge's last-observed
    SLA status per project.  One row per (tenant, project) that is currently
    in a non-healthy state; a project returning to onTrack deletes its row.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - At most one row per (tenant_id, project_id) (uq_sla_alert_state).
    - status is one of the SLAStatus values other than onTrack.

Failure modes:
    - IntegrityError on a duplicate (tenant_id, project_id) insert.
"""

from sqlalchemy import Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from salesops_kernel.db.base import TrackedBase


class SLAAlertState(TrackedBase):
    """
    Last SLA status an alert was evaluated against, for edge detection.

    Losing these rows costs at most a duplicate or missed alert after a
    restart; it never affects forecast or SLA computation.
    """

    __tablename__ = "sla_alert_states"

    __table_args__ = (
        UniqueConstraint("tenant_id", "project_id", name="uq_sla_alert_state"),
        Index("idx_sla_alert_state_tenant", "tenant_id"),
    )

    tenant_id: Mapped[str] = mapped_column(String(100), nullable=False)
    project_id: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)

    def __repr__(self) -> str:
        return f"<SLAAlertState {self.tenant_id}/{self.project_id}: {self.status}>"
