"""
Typed Exception Hierarchy for the Sales-Ops core.

===============================================================================
WHERE EXCEPTIONS ARE RAISED
===============================================================================

The analytics core (SLA evaluation, stage scheduling, revenue forecasting,
alert transition detection) never raises for bad or missing business data.
It is a best-effort analytics layer: configuration gaps resolve to fallback
defaults, malformed dates clamp to zero elapsed days, and a terminal-stage
advancement is a no-op.

Exceptions are raised only at configuration entry points (saving or loading
a tenant pipeline) and by the persistence layer of the alert-state store.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    SalesOpsError (base)
    |
    +-- ConfigurationError
    |   +-- InvalidPipelineError
    |   |   +-- EmptyPipelineError
    |   |   +-- DuplicateStageError
    |   +-- StageNotFoundError
    |
    +-- AlertStateError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Configuration   | CONFIGURATION_ERROR         | Generic configuration failure
                | INVALID_PIPELINE            | Stage list fails structural validation
                | EMPTY_PIPELINE              | Stage list has no stages
                | DUPLICATE_STAGE             | Two stages share an id
                | STAGE_NOT_FOUND             | Named stage missing from a pipeline
----------------|-----------------------------|-----------------------------------------
Alert state     | ALERT_STATE_ERROR           | Alert-state store could not be read/written

===============================================================================
HANDLING PATTERNS
===============================================================================

    try:
        store.save_pipeline(tenant_id, stages)
    except DuplicateStageError as e:
        return {"error": e.code, "stage_id": e.stage_id}
    except InvalidPipelineError as e:
        return {"error": e.code, "reason": str(e)}
"""


class SalesOpsError(Exception):
    """
    Base exception for all sales-ops core errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "SALESOPS_ERROR"


# Configuration exceptions


class ConfigurationError(SalesOpsError):
    """Base exception for tenant configuration errors."""

    code: str = "CONFIGURATION_ERROR"


class InvalidPipelineError(ConfigurationError):
    """Pipeline stage list failed structural validation."""

    code: str = "INVALID_PIPELINE"

    def __init__(self, tenant_id: str | None, reason: str):
        self.tenant_id = tenant_id
        self.reason = reason
        super().__init__(f"Invalid pipeline for tenant {tenant_id}: {reason}")


class EmptyPipelineError(InvalidPipelineError):
    """Pipeline has no stages."""

    code: str = "EMPTY_PIPELINE"

    def __init__(self, tenant_id: str | None):
        super().__init__(tenant_id, "pipeline must contain at least one stage")


class DuplicateStageError(InvalidPipelineError):
    """Two stages in a pipeline share the same id."""

    code: str = "DUPLICATE_STAGE"

    def __init__(self, tenant_id: str | None, stage_id: str):
        self.stage_id = stage_id
        super().__init__(tenant_id, f"duplicate stage id {stage_id!r}")


class StageNotFoundError(ConfigurationError):
    """A stage referenced by a configuration edit does not exist."""

    code: str = "STAGE_NOT_FOUND"

    def __init__(self, tenant_id: str | None, stage_id: str):
        self.tenant_id = tenant_id
        self.stage_id = stage_id
        super().__init__(f"Stage {stage_id!r} not found in pipeline for tenant {tenant_id}")


# Alert-state exceptions


class AlertStateError(SalesOpsError):
    """The alert-state store could not be read or written."""

    code: str = "ALERT_STATE_ERROR"

    def __init__(self, tenant_id: str, reason: str):
        self.tenant_id = tenant_id
        self.reason = reason
        super().__init__(f"Alert state unavailable for tenant {tenant_id}: {reason}")
