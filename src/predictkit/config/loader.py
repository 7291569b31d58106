"""
Configuration loading utilities.

Supports environment variable interpolation and config inheritance.
Minimal configs only need: project, task.name (or task.path/target/type),
learner.id
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml

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

_ENV_VAR = re.compile(r"\$\{(?P<name>[^}:]+)(?::(?P<default>[^}]*))?\}")


def _expand(value: Any) -> Any:
    """Replace ${VAR} and ${VAR:default} in every string of a YAML tree."""
    if isinstance(value, str):
        return _ENV_VAR.sub(
            lambda m: os.environ.get(m["name"], m["default"] or ""),
            value,
        )
    if isinstance(value, dict):
        return {key: _expand(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_expand(item) for item in value]
    return value


def _merge_sections(base: dict[str, Any], run: dict[str, Any]) -> dict[str, Any]:
    """Overlay run settings on the base file; nested sections merge key by key."""
    merged = dict(base)
    for key, value in run.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            value = _merge_sections(current, value)
        merged[key] = value
    return merged


def load_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML mapping with environment variables expanded."""
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    return _expand(data) if data else {}


def _find_base(config_path: Path, base_path: Path | None) -> dict[str, Any]:
    if base_path is not None:
        return load_yaml(base_path)
    sibling = config_path.parent / "base.yaml"
    if sibling.exists() and sibling != config_path:
        return load_yaml(sibling)
    return {}


def load_config(
    config_path: Path,
    base_path: Path | None = None,
) -> RunConfig:
    """
    Load a run configuration from YAML file(s).

    Args:
        config_path: Path to the main configuration file.
        base_path: Optional base configuration for inheritance. Defaults to
            a base.yaml next to the main file, if present.

    Returns:
        Fully validated RunConfig instance.
    """
    merged = _merge_sections(_find_base(config_path, base_path), load_yaml(config_path))

    project = merged.get("project")
    if not project:
        msg = "Config must specify 'project' name"
        raise ValueError(msg)

    task_data = merged.get("task")
    if not task_data:
        msg = "Config must specify 'task' (name of a bundled task or path/target/type)"
        raise ValueError(msg)
    # A CSV path in the config is relative to the config file
    if task_data.get("path"):
        task_path = Path(task_data["path"])
        if not task_path.is_absolute():
            task_path = config_path.parent / task_path
        task_data = {**task_data, "path": task_path}
    task = TaskConfig(**task_data)

    learner_data = merged.get("learner")
    if not learner_data or not learner_data.get("id"):
        msg = "Config must specify 'learner.id'"
        raise ValueError(msg)
    learner = LearnerConfig(
        id=learner_data["id"],
        predict_type=learner_data.get("predict_type", "response"),
        params=learner_data.get("params") or {},
    )

    output_data = merged.get("output", {})
    output = OutputConfig(
        output_root=Path(output_data.get("root", "./output")),
        save_model=output_data.get("save_model", False),
    )

    return RunConfig(
        project=project,
        task=task,
        learner=learner,
        split=SplitConfig(**merged.get("split", {})),
        threshold=merged.get("threshold"),
        measures=merged.get("measures"),
        confusion=ConfusionConfig(**merged.get("confusion", {})),
        plot=PlotConfig(**merged.get("plot", {})),
        tracking=TrackingConfig(**merged.get("tracking", {})),
        output=output,
    )
