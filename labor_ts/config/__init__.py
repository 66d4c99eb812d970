"""
Labor TS Configuration Module

Analysis parameters live in YAML files in the config/ directory at repo
root (config/analysis.yaml). Every parameter has a default equal to the
shipped file, so the engines also work with no file at all.

Usage:
    from labor_ts.config import load_config, Capabilities

    config = load_config()                       # config/analysis.yaml
    config = load_config("my_run.yaml")          # explicit file
    config = AnalysisConfig.from_dict({"forecast": {"horizon": 6}})

    caps = Capabilities(changepoint=True, causality=False)
"""

from dataclasses import dataclass, field, fields, is_dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml

from labor_ts.utils.logging import get_logger

logger = get_logger(__name__)

# Config directory at repo root
REPO_ROOT = Path(__file__).resolve().parents[2]
CONFIG_DIR = REPO_ROOT / "config"
DEFAULT_CONFIG_NAME = "analysis"


class ConfigLoader:
    """
    Cached loader for YAML files in config/.

    One instance per process; loaded files are cached until
    clear_cache() or load(..., reload=True).

    Usage:
        loader = ConfigLoader()
        raw = loader.load("analysis")
        horizon = loader.get_nested("analysis", "forecast", "horizon", default=12)
    """

    _instance: Optional["ConfigLoader"] = None
    _cache: Dict[str, Dict[str, Any]] = {}

    def __new__(cls) -> "ConfigLoader":
        """Singleton pattern - one loader instance per process."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._cache = {}
        return cls._instance

    @property
    def config_dir(self) -> Path:
        """Return the config directory path."""
        return CONFIG_DIR

    def exists(self, name: str) -> bool:
        """Check if a config file exists."""
        return (self.config_dir / f"{name}.yaml").exists()

    def load(self, name: str, reload: bool = False) -> Dict[str, Any]:
        """
        Load a configuration file by name.

        Args:
            name: Config file name without extension (e.g., "analysis")
            reload: Force reload from disk even if cached

        Returns:
            Configuration dictionary

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If the file is not valid YAML
        """
        if not reload and name in self._cache:
            return self._cache[name]

        path = self.config_dir / f"{name}.yaml"
        config = read_yaml(path)
        self._cache[name] = config
        logger.debug(f"Loaded config: {name} ({len(config)} keys)")
        return config

    def get(self, config_name: str, key: str, default: Any = None) -> Any:
        """Top-level value from a config file, or default."""
        try:
            config = self.load(config_name)
        except FileNotFoundError:
            logger.warning(f"Config {config_name} not found, using default for {key}")
            return default
        return config.get(key, default)

    def get_nested(self, config_name: str, *keys: str, default: Any = None) -> Any:
        """
        Nested value from a config file.

        Example:
            loader.get_nested("analysis", "causality", "max_lag")
        """
        try:
            value = self.load(config_name)
        except FileNotFoundError:
            return default

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def clear_cache(self, name: Optional[str] = None) -> None:
        """Clear one cached config, or all of them."""
        if name is None:
            self._cache.clear()
        else:
            self._cache.pop(name, None)


def read_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """Parse a YAML mapping from path."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        with open(path) as f:
            config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse config {path}: {e}")
        raise ValueError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(config, dict):
        raise ValueError(f"Config {path} must contain a mapping, got {type(config).__name__}")
    return config


# =============================================================================
# Typed configuration
# =============================================================================

@dataclass(frozen=True)
class SeriesConfig:
    growth_lag: int = 12


@dataclass(frozen=True)
class DecompositionConfig:
    hp_lambda: float = 1600.0


@dataclass(frozen=True)
class ForecastConfig:
    horizon: int = 12
    max_p: int = 2
    max_q: int = 2
    max_P: int = 1
    max_Q: int = 1
    max_d: int = 2
    kpss_alpha: float = 0.05
    seasonal_strength_threshold: float = 0.64
    maxiter: int = 200


@dataclass(frozen=True)
class ChangepointConfig:
    penalty_beta: float = 3.0
    min_size: int = 2


@dataclass(frozen=True)
class RiskConfig:
    var_levels: Tuple[float, ...] = (0.05, 0.01)


@dataclass(frozen=True)
class RegimeConfig:
    seed: int = 123
    n_init: int = 25
    max_iter: int = 300


@dataclass(frozen=True)
class CausalityConfig:
    max_lag: int = 12
    significance: float = 0.05
    irf_horizon: int = 12
    difference: bool = True
    indicator_lag: int = 3
    ccf_max_lag: int = 12


@dataclass(frozen=True)
class PipelineConfig:
    max_workers: Optional[int] = None
    force_serial: bool = True


@dataclass(frozen=True)
class AnalysisConfig:
    """All analysis parameters, one frozen section per engine."""

    series: SeriesConfig = field(default_factory=SeriesConfig)
    decomposition: DecompositionConfig = field(default_factory=DecompositionConfig)
    forecast: ForecastConfig = field(default_factory=ForecastConfig)
    changepoint: ChangepointConfig = field(default_factory=ChangepointConfig)
    risk: RiskConfig = field(default_factory=RiskConfig)
    regime: RegimeConfig = field(default_factory=RegimeConfig)
    causality: CausalityConfig = field(default_factory=CausalityConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "AnalysisConfig":
        """
        Build a config from a nested mapping, filling in defaults.

        Raises:
            ValueError: On unknown sections or keys
        """
        raw = dict(raw or {})
        raw.pop("capabilities", None)  # handled by Capabilities.from_dict

        config = cls()
        section_types = {f.name: f for f in fields(cls)}
        updates = {}

        for section, values in raw.items():
            if section not in section_types:
                raise ValueError(
                    f"Unknown config section: {section}. Options: {list(section_types)}"
                )
            current = getattr(config, section)
            updates[section] = _update_section(section, current, values or {})

        return replace(config, **updates)


def _update_section(section: str, current: Any, values: Dict[str, Any]) -> Any:
    if not isinstance(values, dict):
        raise ValueError(f"Config section '{section}' must be a mapping")

    known = {f.name for f in fields(current)}
    unknown = set(values) - known
    if unknown:
        raise ValueError(f"Unknown keys in config section '{section}': {sorted(unknown)}")

    coerced = {}
    for key, value in values.items():
        default = getattr(current, key)
        if isinstance(default, tuple) and value is not None:
            value = tuple(value)
        coerced[key] = value
    return replace(current, **coerced)


@dataclass(frozen=True)
class Capabilities:
    """
    Optional analytic steps the caller allows.

    Supplied explicitly by the caller; nothing in the package inspects the
    environment to decide this.
    """

    changepoint: bool = True
    causality: bool = True

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "Capabilities":
        raw = dict(raw or {})
        unknown = set(raw) - {"changepoint", "causality"}
        if unknown:
            raise ValueError(f"Unknown capabilities: {sorted(unknown)}")
        return cls(**{k: bool(v) for k, v in raw.items()})


def load_config(path: Optional[Union[str, Path]] = None) -> AnalysisConfig:
    """
    Load AnalysisConfig from a YAML file.

    Args:
        path: Explicit YAML path. None reads config/analysis.yaml when it
            exists and falls back to built-in defaults otherwise.
    """
    if path is not None:
        return AnalysisConfig.from_dict(read_yaml(path))

    loader = ConfigLoader()
    if not loader.exists(DEFAULT_CONFIG_NAME):
        logger.debug("No config/analysis.yaml found, using defaults")
        return AnalysisConfig()
    return AnalysisConfig.from_dict(loader.load(DEFAULT_CONFIG_NAME))


def load_capabilities(path: Optional[Union[str, Path]] = None) -> Capabilities:
    """Read the optional `capabilities` section of a config file."""
    if path is not None:
        return Capabilities.from_dict(read_yaml(path).get("capabilities"))
    return Capabilities.from_dict(
        ConfigLoader().get(DEFAULT_CONFIG_NAME, "capabilities", default=None)
    )


def config_to_dict(config: Any) -> Dict[str, Any]:
    """Nested plain-dict view of a config (for logging / provenance)."""
    if is_dataclass(config):
        return {f.name: config_to_dict(getattr(config, f.name)) for f in fields(config)}
    if isinstance(config, tuple):
        return list(config)
    return config


__all__ = [
    "ConfigLoader",
    "AnalysisConfig",
    "SeriesConfig",
    "DecompositionConfig",
    "ForecastConfig",
    "ChangepointConfig",
    "RiskConfig",
    "RegimeConfig",
    "CausalityConfig",
    "PipelineConfig",
    "Capabilities",
    "load_config",
    "load_capabilities",
    "config_to_dict",
    "read_yaml",
]
