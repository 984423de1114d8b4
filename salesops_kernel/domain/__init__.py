"""
Pure domain layer.

Records, enums, clock and calendar helpers with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O
"""

from salesops_kernel.domain.clock import (
    Clock,
    DeterministicClock,
    SequentialClock,
    SystemClock,
)
from salesops_kernel.domain.dates import add_days, coerce_date, days_between
from salesops_kernel.domain.records import (
    Commission,
    CommissionStatus,
    Lead,
    LeadPriority,
    LeadStatus,
    Notification,
    NotificationPriority,
    Project,
    SLAStatus,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SequentialClock",
    "SystemClock",
    "add_days",
    "coerce_date",
    "days_between",
    "Commission",
    "CommissionStatus",
    "Lead",
    "LeadPriority",
    "LeadStatus",
    "Notification",
    "NotificationPriority",
    "Project",
    "SLAStatus",
]
