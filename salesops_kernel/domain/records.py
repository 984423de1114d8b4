"""
Domain records consumed and produced by the forecasting / SLA core.

Responsibility:
    Immutable snapshots of the business records that external collaborators
    (lead capture, project tracking, commission accounting) hand to the
    core, plus the ``Notification`` record the core hands back.

Architecture position:
    Kernel > Domain.  No ORM, no I/O, no clock.

Invariants:
    - Records are frozen dataclasses; "updates" produce new instances via
      ``dataclasses.replace``.
    - Field values are taken as supplied; the core never validates business
      records (that belongs to the entry points that create them) and
      tolerates missing or malformed values with documented defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any


class LeadStatus(str, Enum):
    """Lead lifecycle status, ordered NEW -> CLOSED_WON, with CLOSED_LOST terminal."""

    NEW = "NEW"
    QUALIFIED = "QUALIFIED"
    PROPOSAL_SENT = "PROPOSAL_SENT"
    CLOSED_WON = "CLOSED_WON"
    CLOSED_LOST = "CLOSED_LOST"


class LeadPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SLAStatus(str, Enum):
    """Timeliness of a project in its current stage."""

    ON_TRACK = "onTrack"
    AT_RISK = "atRisk"
    LATE = "late"


class CommissionStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    PAID = "PAID"


class NotificationPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


DateLike = date | datetime | str


@dataclass(frozen=True)
class Lead:
    """
    A sales prospect.

    ``status`` and ``priority`` accept either the enum members or their raw
    string values, since snapshots usually arrive from JSON.
    """

    lead_id: str
    status: LeadStatus | str
    estimated_bill: Decimal | int | float | None = None
    created_at: DateLike | None = None
    assigned_to: str | None = None
    priority: LeadPriority | str | None = None
    score: int | float | None = None


@dataclass(frozen=True)
class Project:
    """
    A won deal moving through the installation pipeline.

    ``target_dates`` / ``actual_dates`` map stage id to date.  They are
    ``None`` until the stage scheduler initializes them.  ``sla_status`` is
    derived and recomputed on every scheduler call; it is not authoritative.
    """

    project_id: str
    lead_id: str
    stage: str
    kw: Decimal | int | float | None = None
    created_at: DateLike | None = None
    last_updated: DateLike | None = None
    target_dates: dict[str, DateLike] | None = None
    actual_dates: dict[str, DateLike] | None = None
    sla_status: SLAStatus | str | None = None
    installer_name: str | None = None


@dataclass(frozen=True)
class Commission:
    """A scheduled payout tied to a project milestone."""

    commission_id: str
    lead_id: str
    amount_usd: Decimal | int | float | None
    status: CommissionStatus | str
    milestone: str | None = None
    expected_pay_date: DateLike | None = None


@dataclass(frozen=True)
class Notification:
    """
    Record handed to the notification sink.

    Delivery (in-app list, push, email) is owned by the sink.
    """

    notification_id: str
    tenant_id: str
    type: str
    title: str
    message: str
    priority: NotificationPriority
    created_at: datetime
    data: dict[str, Any] = field(default_factory=dict)
    action_url: str | None = None
    user_id: str | None = None  # None = tenant-wide


def enum_value(value: Any) -> Any:
    """Return ``value.value`` for enum members, the value itself otherwise."""
    if isinstance(value, Enum):
        return value.value
    return value
