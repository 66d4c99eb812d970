"""
Labor TS Error Types

Every analytic step raises one of these. The orchestrator maps them to
result statuses so a failing sector never aborts the whole run.
"""


class LaborTSError(Exception):
    """Base class for all labor_ts analysis errors."""


class IrregularSeriesError(LaborTSError):
    """A sector's period sequence has a gap, a duplicate, or a non-finite value."""


class InsufficientLengthError(LaborTSError):
    """Too few observations for the requested operation."""


class InsufficientVarietyError(LaborTSError):
    """Input is too degenerate (e.g. too few distinct values) to cluster."""


class ModelFitFailure(LaborTSError):
    """Numerical non-convergence while fitting a model."""


class FeatureUnavailable(LaborTSError):
    """An optional analytic step could not run; its result is absent."""


class DecompositionUnavailable(FeatureUnavailable):
    """Series too short for a seasonal decomposition."""


__all__ = [
    "LaborTSError",
    "IrregularSeriesError",
    "InsufficientLengthError",
    "InsufficientVarietyError",
    "ModelFitFailure",
    "FeatureUnavailable",
    "DecompositionUnavailable",
]
