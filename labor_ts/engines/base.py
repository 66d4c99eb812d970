"""
Labor TS Engine Base Class

All analysis engines inherit from this base class.
Provides common interface for:
- Configuration access (AnalysisConfig section per engine)
- Error handling: exceptions become an Outcome, never escape a sector
- Run logging

Every engine result is wrapped in an Outcome whose status is one of:
    computed    - the analysis ran as designed
    degraded    - a documented fallback produced the value
    unavailable - no value; `reason` and `error_kind` say why
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Sequence, Union

import numpy as np

from labor_ts.utils.logging import get_logger
from labor_ts.config import AnalysisConfig
from labor_ts.errors import FeatureUnavailable, LaborTSError


logger = get_logger(__name__)


class Status(str, Enum):
    """Result status shown for every per-sector and cross-sector analysis."""
    COMPUTED = "computed"
    DEGRADED = "degraded"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True, eq=False)
class Outcome:
    """Tagged result of one analytic step."""
    status: Status
    value: Any = None
    reason: Optional[str] = None
    error_kind: Optional[str] = None
    runtime_seconds: float = 0.0

    @classmethod
    def computed(cls, value: Any, runtime_seconds: float = 0.0) -> "Outcome":
        return cls(Status.COMPUTED, value, runtime_seconds=runtime_seconds)

    @classmethod
    def degraded(cls, value: Any, reason: str, runtime_seconds: float = 0.0) -> "Outcome":
        return cls(Status.DEGRADED, value, reason=reason, runtime_seconds=runtime_seconds)

    @classmethod
    def unavailable(
        cls,
        reason: str,
        error_kind: Optional[str] = None,
        value: Any = None,
    ) -> "Outcome":
        """
        No usable result.

        `value` stays None except for documented no-ops that hand back an
        empty placeholder (e.g. a disabled changepoint step).
        """
        return cls(Status.UNAVAILABLE, value, reason=reason, error_kind=error_kind)

    @property
    def ok(self) -> bool:
        """True when a usable value is present (computed or degraded)."""
        return self.status is not Status.UNAVAILABLE

    def summary(self) -> str:
        """Human-readable one-liner."""
        line = self.status.value
        if self.reason:
            line += f" ({self.reason})"
        return line


def run_step(step: str, fn: Callable[..., Any], *args, **kwargs) -> Outcome:
    """
    Run fn and wrap its result in an Outcome.

    A returned value with a truthy `degraded` attribute becomes DEGRADED
    (its `degraded_reason`, if any, is carried along). labor_ts errors become
    UNAVAILABLE with the error class name as error_kind; anything else is
    logged with a traceback and also becomes UNAVAILABLE.
    """
    started = time.perf_counter()
    try:
        value = fn(*args, **kwargs)
    except FeatureUnavailable as e:
        logger.info(f"{step}: unavailable - {e}")
        return Outcome.unavailable(str(e), error_kind=type(e).__name__)
    except LaborTSError as e:
        logger.warning(f"{step}: {type(e).__name__} - {e}")
        return Outcome.unavailable(str(e), error_kind=type(e).__name__)
    except Exception as e:
        logger.exception(f"{step} failed: {e}")
        return Outcome.unavailable(str(e), error_kind=type(e).__name__)

    elapsed = time.perf_counter() - started
    if getattr(value, "degraded", False):
        reason = getattr(value, "degraded_reason", None) or "fallback used"
        return Outcome.degraded(value, reason, runtime_seconds=elapsed)
    return Outcome.computed(value, runtime_seconds=elapsed)


class BaseEngine(ABC):
    """
    Abstract base class for all labor_ts analysis engines.

    Subclasses must implement:
        - name: Engine identifier
        - run(): Execute the analysis and return a result object

    Usage:
        class ForecastEngine(BaseEngine):
            name = "forecast"

            def run(self, series):
                ...
                return ForecastResult(...)

        outcome = ForecastEngine(config).execute(series)
    """

    name: str = "base"

    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = config or AnalysisConfig()

    def execute(self, *args, **kwargs) -> Outcome:
        """
        Run the engine with logging and error handling.

        Returns:
            Outcome with status computed / degraded / unavailable
        """
        label = self.name
        target = getattr(args[0], "sector", None) if args else None
        if target is not None:
            label = f"{self.name}[{target}]"
        return run_step(label, self.run, *args, **kwargs)

    @abstractmethod
    def run(self, *args, **kwargs) -> Any:
        """Execute the analysis. Subclasses must implement."""


# -----------------------------------------------------------------------------
# Array helpers shared by engines
# -----------------------------------------------------------------------------

def frozen_array(values: Union[Sequence[float], np.ndarray], dtype=float) -> np.ndarray:
    """Copy values into a read-only numpy array."""
    arr = np.array(values, dtype=dtype, copy=True)
    arr.flags.writeable = False
    return arr


def defined_values(values: Any) -> np.ndarray:
    """
    Finite entries of a growth-like input.

    Accepts a GrowthSeries (anything with `.values`), a pandas Series,
    or a plain sequence.
    """
    raw = getattr(values, "values", values)
    arr = np.asarray(raw, dtype=float).ravel()
    return arr[np.isfinite(arr)]
