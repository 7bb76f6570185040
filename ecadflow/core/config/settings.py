"""Configuration management for ecadflow runs."""

from __future__ import annotations

import os
import tomllib
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from ecadflow.core.exceptions import PipelineConfigError
from ecadflow.core.logging import logger

MALFORMED_POLICIES = ("skip", "abort")
DUPLICATE_POLICIES = ("flag_then_recency", "flag_then_lowest_source")
BOUNDS_PRESETS = ("global", "europe", "uk")
COMPRESSIONS = ("snappy", "gzip", "zstd", "lz4", "none")


def _default_workers() -> int:
    return os.cpu_count() or 1


@dataclass
class PipelineConfig:
    """Parallelism, batching and recovery behaviour."""

    max_workers: int = field(default_factory=_default_workers)
    stations_per_unit: int = 1
    max_in_flight_units: int | None = None
    batch_size: int = 1000
    malformed_policy: str = "skip"
    duplicate_policy: str = "flag_then_recency"
    encoding: str = "utf-8"

    def in_flight_limit(self) -> int:
        """Number of work units allowed to run ahead of the consumer."""

        return self.max_in_flight_units or self.max_workers * 2


@dataclass
class QualityConfig:
    """Validator tuning."""

    consistency_tolerance: float = 0.1
    jump_threshold: float | None = 20.0
    bounds: str = "global"
    bands: dict[str, dict[str, float]] = field(default_factory=dict)


@dataclass
class OutputConfig:
    """Parquet output options."""

    directory: str = "output"
    compression: str = "snappy"
    row_group_size: int = 10_000


@dataclass
class LoggingConfig:
    """Logging options."""

    level: str = "INFO"
    file: str | None = None


@dataclass
class EcadConfig:
    """Root configuration object."""

    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    quality: QualityConfig = field(default_factory=QualityConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> EcadConfig:
        """Build a configuration from a nested mapping (TOML layout)."""

        try:
            return cls(
                pipeline=PipelineConfig(**config_dict.get("pipeline", {})),
                quality=QualityConfig(**config_dict.get("quality", {})),
                output=OutputConfig(**config_dict.get("output", {})),
                logging=LoggingConfig(**config_dict.get("logging", {})),
            )
        except TypeError as exc:
            raise PipelineConfigError(f"unknown configuration key: {exc}") from exc

    def to_dict(self) -> dict[str, Any]:
        return {
            "pipeline": asdict(self.pipeline),
            "quality": asdict(self.quality),
            "output": asdict(self.output),
            "logging": asdict(self.logging),
        }

    def validate(self) -> None:
        """Raise :class:`PipelineConfigError` when any option is out of range."""

        pipeline = self.pipeline
        if pipeline.max_workers <= 0:
            raise PipelineConfigError("max_workers must be positive")
        if pipeline.stations_per_unit <= 0:
            raise PipelineConfigError("stations_per_unit must be positive")
        if pipeline.max_in_flight_units is not None and pipeline.max_in_flight_units <= 0:
            raise PipelineConfigError("max_in_flight_units must be positive when provided")
        if pipeline.batch_size <= 0:
            raise PipelineConfigError("batch_size must be positive")
        if pipeline.malformed_policy not in MALFORMED_POLICIES:
            raise PipelineConfigError(
                f"malformed_policy must be one of {', '.join(MALFORMED_POLICIES)}, got '{pipeline.malformed_policy}'"
            )
        if pipeline.duplicate_policy not in DUPLICATE_POLICIES:
            raise PipelineConfigError(
                f"duplicate_policy must be one of {', '.join(DUPLICATE_POLICIES)}, got '{pipeline.duplicate_policy}'"
            )
        if self.quality.consistency_tolerance < 0:
            raise PipelineConfigError("consistency_tolerance must not be negative")
        if self.quality.jump_threshold is not None and self.quality.jump_threshold <= 0:
            raise PipelineConfigError("jump_threshold must be positive when provided")
        if self.quality.bounds not in BOUNDS_PRESETS:
            raise PipelineConfigError(f"bounds must be one of {', '.join(BOUNDS_PRESETS)}, got '{self.quality.bounds}'")
        if self.output.compression not in COMPRESSIONS:
            raise PipelineConfigError(
                f"compression must be one of {', '.join(COMPRESSIONS)}, got '{self.output.compression}'"
            )
        if self.output.row_group_size <= 0:
            raise PipelineConfigError("row_group_size must be positive")


class ConfigManager:
    """Loads configuration from TOML, layering environment overrides on top."""

    def __init__(self, config_path: Path | None = None, *, use_env: bool = True):
        """Initialise the manager.

        Args:
            config_path: Configuration file; defaults to ``~/.ecadflow/config.toml``.
            use_env: Apply ``ECADFLOW_*`` environment overrides.
        """
        self.config_path = config_path or Path.home() / ".ecadflow" / "config.toml"
        self.use_env = use_env
        self.config = self._load_config()

    def _load_config(self) -> EcadConfig:
        config_dict: dict[str, Any] = {}
        if self.config_path.exists():
            try:
                with open(self.config_path, "rb") as f:
                    config_dict = tomllib.load(f)
            except (OSError, tomllib.TOMLDecodeError) as exc:
                raise PipelineConfigError(f"failed to load config from {self.config_path}: {exc}") from exc
            logger.debug("Loaded configuration", path=str(self.config_path))

        if self.use_env:
            _deep_update(config_dict, load_config_from_env())

        config = EcadConfig.from_dict(config_dict)
        config.validate()
        return config

    def get_config(self) -> EcadConfig:
        return self.config

    def update_config(self, **updates: Any) -> None:
        """Apply nested updates, e.g. ``update_config(pipeline={"batch_size": 10})``."""

        config_dict = self.config.to_dict()
        _deep_update(config_dict, updates)
        config = EcadConfig.from_dict(config_dict)
        config.validate()
        self.config = config


def _deep_update(target: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _deep_update(target[key], value)
        else:
            target[key] = value
    return target


def _env_int(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise PipelineConfigError(f"{name} must be an integer, got '{raw}'") from exc


def load_config_from_env() -> dict[str, Any]:
    """Collect ``ECADFLOW_*`` overrides into the nested configuration layout."""

    config: dict[str, Any] = {}

    pipeline_config: dict[str, Any] = {}
    for key, env_name in (
        ("max_workers", "ECADFLOW_MAX_WORKERS"),
        ("batch_size", "ECADFLOW_BATCH_SIZE"),
        ("stations_per_unit", "ECADFLOW_STATIONS_PER_UNIT"),
    ):
        value = _env_int(env_name)
        if value is not None:
            pipeline_config[key] = value
    malformed_policy = os.getenv("ECADFLOW_MALFORMED_POLICY")
    if malformed_policy is not None:
        pipeline_config["malformed_policy"] = malformed_policy.lower()
    duplicate_policy = os.getenv("ECADFLOW_DUPLICATE_POLICY")
    if duplicate_policy is not None:
        pipeline_config["duplicate_policy"] = duplicate_policy.lower()
    if pipeline_config:
        config["pipeline"] = pipeline_config

    bounds = os.getenv("ECADFLOW_BOUNDS")
    if bounds is not None:
        config["quality"] = {"bounds": bounds.lower()}

    compression = os.getenv("ECADFLOW_COMPRESSION")
    if compression is not None:
        config["output"] = {"compression": compression.lower()}

    logging_config: dict[str, Any] = {}
    log_level = os.getenv("ECADFLOW_LOG_LEVEL")
    if log_level is not None:
        logging_config["level"] = log_level
    log_file = os.getenv("ECADFLOW_LOG_FILE")
    if log_file is not None:
        logging_config["file"] = log_file
    if logging_config:
        config["logging"] = logging_config

    return config


__all__ = [
    "ConfigManager",
    "EcadConfig",
    "LoggingConfig",
    "OutputConfig",
    "PipelineConfig",
    "QualityConfig",
    "load_config_from_env",
]
