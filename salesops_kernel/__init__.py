"""
Sales-Ops Kernel

Shared foundation for the forecasting and SLA-tracking core:
- Immutable domain records (leads, projects, commissions, notifications)
- Injectable clock for deterministic time
- Typed exception hierarchy
- Structured JSON logging
- SQLAlchemy base and engine for the alert-state store
"""

__version__ = "0.1.0"
