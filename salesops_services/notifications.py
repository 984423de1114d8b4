"""
salesops_services.notifications -- Notification records and delivery sinks.

Responsibility:
    Builds the SLA notifications ("Project At Risk", "Project Late") and
    hands them to a ``NotificationSink``.  The in-memory sink keeps the
    newest 500 notifications per tenant, newest first, and tracks read
    state.

Architecture position:
    Services -- the only place notifications are created.  Engines decide
    *whether* to alert; this module decides *what* the alert says.
"""

from __future__ import annotations

import threading
from collections import deque
from datetime import datetime
from typing import Any, Iterable, Protocol
from uuid import uuid4

from salesops_engines.alerts import SLAAlert
from salesops_kernel.domain.records import (
    Notification,
    NotificationPriority,
    SLAStatus,
)
from salesops_kernel.logging_config import get_logger

logger = get_logger("services.notifications")

NOTIFICATION_TYPE_SLA = "sla"
MAX_NOTIFICATIONS_PER_TENANT = 500


class NotificationSink(Protocol):
    """Anything that can accept a notification for delivery."""

    def deliver(self, notification: Notification) -> None: ...


def project_action_url(project_id: str) -> str:
    return f"/projects/{project_id}"


def notify_project_at_risk(
    tenant_id: str,
    project_id: str,
    stage: str,
    created_at: datetime,
) -> Notification:
    return Notification(
        notification_id=str(uuid4()),
        tenant_id=tenant_id,
        type=NOTIFICATION_TYPE_SLA,
        title="Project At Risk",
        message=f"Project {project_id} is at-risk in stage: {stage}",
        priority=NotificationPriority.HIGH,
        created_at=created_at,
        data={"projectId": project_id, "stage": stage},
        action_url=project_action_url(project_id),
    )


def notify_project_late(
    tenant_id: str,
    project_id: str,
    stage: str,
    days_late: int,
    created_at: datetime,
) -> Notification:
    return Notification(
        notification_id=str(uuid4()),
        tenant_id=tenant_id,
        type=NOTIFICATION_TYPE_SLA,
        title="Project Late",
        message=f"Project {project_id} is {days_late} days late in stage: {stage}",
        priority=NotificationPriority.URGENT,
        created_at=created_at,
        data={"projectId": project_id, "stage": stage, "daysLate": days_late},
        action_url=project_action_url(project_id),
    )


def notification_for_alert(
    alert: SLAAlert,
    tenant_id: str,
    created_at: datetime,
) -> Notification:
    """Map an alert decision to its tenant-wide notification."""
    if alert.status is SLAStatus.LATE:
        return notify_project_late(
            tenant_id, alert.project_id, alert.stage_id,
            alert.days_over_target, created_at,
        )
    return notify_project_at_risk(
        tenant_id, alert.project_id, alert.stage_id, created_at,
    )


class InMemoryNotificationSink:
    """
    Per-tenant bounded notification list.

    Thread-safe.  When a tenant exceeds ``max_per_tenant`` notifications
    the oldest are discarded together with their read flags.  Read state is
    only kept for notifications the sink still holds.
    """

    def __init__(self, max_per_tenant: int = MAX_NOTIFICATIONS_PER_TENANT):
        self._max = max_per_tenant
        self._by_tenant: dict[str, deque[Notification]] = {}
        self._read: dict[str, set[str]] = {}
        self._held: dict[str, str] = {}  # notification_id -> tenant_id
        self._lock = threading.Lock()

    def deliver(self, notification: Notification) -> None:
        tenant_id = notification.tenant_id
        with self._lock:
            queue = self._by_tenant.setdefault(tenant_id, deque(maxlen=self._max))
            if queue.maxlen is not None and len(queue) == queue.maxlen:
                evicted = queue.pop()
                self._held.pop(evicted.notification_id, None)
                self._read.get(tenant_id, set()).discard(evicted.notification_id)
            queue.appendleft(notification)
            self._held[notification.notification_id] = tenant_id
        logger.info("notification_delivered", extra={
            "notification_id": notification.notification_id,
            "notification_type": notification.type,
            "title": notification.title,
            "priority": notification.priority,
        })

    def get_notifications(
        self,
        tenant_id: str,
        type: str | Iterable[str] | None = None,
        unread_only: bool = False,
        limit: int | None = None,
    ) -> list[Notification]:
        """Notifications for a tenant, newest first."""
        with self._lock:
            items = list(self._by_tenant.get(tenant_id, ()))
            read = set(self._read.get(tenant_id, ()))

        if type is not None:
            types = {type} if isinstance(type, str) else set(type)
            items = [n for n in items if n.type in types]
        if unread_only:
            items = [n for n in items if n.notification_id not in read]
        if limit is not None:
            items = items[:limit]
        return items

    def mark_read(self, notification_id: str) -> bool:
        """Mark a held notification read.  Unknown ids are ignored."""
        with self._lock:
            tenant_id = self._held.get(notification_id)
            if tenant_id is None:
                return False
            self._read.setdefault(tenant_id, set()).add(notification_id)
            return True

    def is_read(self, notification_id: str) -> bool:
        with self._lock:
            tenant_id = self._held.get(notification_id)
            return tenant_id is not None and notification_id in self._read.get(tenant_id, ())

    def unread_count(self, tenant_id: str) -> int:
        return len(self.get_notifications(tenant_id, unread_only=True))

    def clear(self, tenant_id: str) -> None:
        with self._lock:
            removed = self._by_tenant.pop(tenant_id, ())
            self._read.pop(tenant_id, None)
            for notification in removed:
                self._held.pop(notification.notification_id, None)

    def summary(self, tenant_id: str) -> dict[str, Any]:
        """Unread counts by type, for a digest."""
        counts: dict[str, int] = {}
        for notification in self.get_notifications(tenant_id, unread_only=True):
            counts[notification.type] = counts.get(notification.type, 0) + 1
        return {"unread": sum(counts.values()), "by_type": counts}
