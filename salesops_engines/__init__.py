"""
Pure calculation engines.

SLA classification, stage scheduling, revenue forecasting and alert
transition detection.  No I/O, no clock: "today" is always passed in.
"""

from salesops_engines.alerts import AlertPass, SLAAlert, detect_transitions
from salesops_engines.forecast import (
    ForecastBreakdown,
    ForecastResult,
    RevenueForecastEngine,
    compute_forecast,
    confidence_label,
)
from salesops_engines.scheduling import StageScheduler
from salesops_engines.sla import SLAEvaluator, SLAHealth, SLAObservation
from salesops_engines.tracer import traced_engine

__all__ = [
    "AlertPass",
    "ForecastBreakdown",
    "ForecastResult",
    "RevenueForecastEngine",
    "SLAAlert",
    "SLAEvaluator",
    "SLAHealth",
    "SLAObservation",
    "StageScheduler",
    "compute_forecast",
    "confidence_label",
    "detect_transitions",
    "traced_engine",
]
