"""
Configuration management with typed Pydantic models.

Run configurations are loaded from YAML with environment variable
interpolation and base.yaml inheritance.
"""

from predictkit.config.loader import load_config
from predictkit.config.settings import (
    ConfusionConfig,
    LearnerConfig,
    OutputConfig,
    PlotConfig,
    RunConfig,
    SplitConfig,
    TaskConfig,
    TrackingConfig,
)

__all__ = [
    "ConfusionConfig",
    "LearnerConfig",
    "OutputConfig",
    "PlotConfig",
    "RunConfig",
    "SplitConfig",
    "TaskConfig",
    "TrackingConfig",
    "load_config",
]
