"""Configuration loading for ecadflow."""

from ecadflow.core.config.settings import (
    ConfigManager,
    EcadConfig,
    LoggingConfig,
    OutputConfig,
    PipelineConfig,
    QualityConfig,
    load_config_from_env,
)

__all__ = [
    "ConfigManager",
    "EcadConfig",
    "LoggingConfig",
    "OutputConfig",
    "PipelineConfig",
    "QualityConfig",
    "load_config_from_env",
]
