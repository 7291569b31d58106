"""
Classification thresholds.

A threshold assigns each class a weight; the predicted class is the one
maximising prob / threshold. For binary tasks a single number is the
threshold of the positive class, the negative class gets 1 - t.
"""

from collections.abc import Mapping
from dataclasses import replace
from numbers import Real
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd

from predictkit.evaluation.measures import MEASURE_REGISTRY, performance
from predictkit.tasks.core import TaskDesc
from predictkit.utils.logging import get_logger

if TYPE_CHECKING:
    from predictkit.modeling.prediction import Prediction

log = get_logger(__name__)

ThresholdLike = float | Mapping[str, float]


def default_threshold(task_desc: TaskDesc) -> dict[str, float]:
    """0.5 per class for binary tasks, 1/k per class otherwise."""
    levels = task_desc.class_levels
    value = 0.5 if task_desc.is_binary else 1.0 / len(levels)
    return {cls: value for cls in levels}


def normalize_threshold(threshold: ThresholdLike, task_desc: TaskDesc) -> dict[str, float]:
    """
    Turn a user threshold into one value per class.

    Raises:
        ValueError: On values outside the allowed range or class names that
            do not match the task.
    """
    levels = list(task_desc.class_levels)

    if isinstance(threshold, Real) and not isinstance(threshold, bool):
        if not task_desc.is_binary:
            msg = (
                "A single threshold is only allowed for binary tasks; "
                f"give one value for each of {levels}"
            )
            raise ValueError(msg)
        t = float(threshold)
        if not 0.0 <= t <= 1.0:
            msg = f"Binary threshold must lie in [0, 1], got {t}"
            raise ValueError(msg)
        return {task_desc.positive: t, task_desc.negative: 1.0 - t}  # type: ignore[dict-item]

    if not isinstance(threshold, Mapping):
        msg = f"Threshold must be a number or a mapping class -> value, got {type(threshold).__name__}"
        raise ValueError(msg)

    given = {str(k): float(v) for k, v in threshold.items()}
    missing = [c for c in levels if c not in given]
    extra = [c for c in given if c not in levels]
    if missing or extra:
        msg = f"Threshold classes must match {levels}; missing={missing}, unknown={extra}"
        raise ValueError(msg)
    negative = {c: v for c, v in given.items() if v < 0 or np.isnan(v)}
    if negative:
        msg = f"Threshold values must be non-negative, got {negative}"
        raise ValueError(msg)
    return {c: given[c] for c in levels}


def response_from_probabilities(
    probs: pd.DataFrame,
    threshold: Mapping[str, float],
    levels: list[str],
) -> pd.Categorical:
    """
    Pick for each row the class maximising prob / threshold.

    Args:
        probs: One column per class, in the order of `levels`.
        threshold: Value per class.
        levels: Class labels.

    Returns:
        Categorical response with the given levels. Ties go to the class
        that comes first in `levels`.
    """
    weights = np.array([threshold[c] for c in levels], dtype=float)
    values = probs.to_numpy(dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        scores = values / weights
    scores = np.where(np.isnan(scores), -np.inf, scores)
    if len(scores) == 0:
        return pd.Categorical([], categories=levels)
    chosen = np.asarray(levels, dtype=object)[np.argmax(scores, axis=1)]
    return pd.Categorical(chosen, categories=levels)


def set_threshold(pred: "Prediction", threshold: ThresholdLike) -> "Prediction":
    """
    Set the classification threshold of a probability prediction.

    The response column is recomputed; probabilities stay unchanged and
    the input prediction is not modified.

    Args:
        pred: Classification prediction with predict_type 'prob'.
        threshold: Positive class threshold (binary) or a value per class.

    Returns:
        New prediction using the threshold.
    """
    desc = pred.task_desc
    if desc.task_type != "classif":
        msg = "Thresholds can only be set for classification predictions"
        raise ValueError(msg)
    if pred.predict_type != "prob":
        msg = f"Thresholds need predict_type 'prob', got '{pred.predict_type}'"
        raise ValueError(msg)

    thr = normalize_threshold(threshold, desc)
    levels = list(desc.class_levels)
    data = pred.data.copy()
    data["response"] = response_from_probabilities(
        data[[f"prob.{c}" for c in levels]], thr, levels
    )
    log.debug("Threshold set", task=desc.id, threshold=thr)
    return replace(pred, data=data, threshold=thr)


def tune_threshold(
    pred: "Prediction",
    measure: str = "mmce",
    gridsize: int = 101,
) -> tuple[float, float]:
    """
    Find the positive class threshold that optimises a measure.

    Scans `gridsize` equally spaced thresholds in [0, 1] on a binary
    probability prediction.

    Returns:
        (best threshold, performance at that threshold).
    """
    if not pred.task_desc.is_binary:
        msg = "Threshold tuning is only implemented for binary tasks"
        raise ValueError(msg)
    if measure not in MEASURE_REGISTRY:
        available = ", ".join(MEASURE_REGISTRY)
        msg = f"Unknown measure '{measure}'. Available: {available}"
        raise KeyError(msg)
    if gridsize < 2:
        msg = f"gridsize must be at least 2, got {gridsize}"
        raise ValueError(msg)

    minimize = MEASURE_REGISTRY[measure].minimize
    best_t, best_perf = 0.5, np.inf if minimize else -np.inf
    for t in np.linspace(0.0, 1.0, gridsize):
        perf = performance(set_threshold(pred, float(t)), [measure])[measure]
        better = perf < best_perf if minimize else perf > best_perf
        if better:
            best_t, best_perf = float(t), perf

    log.info("Tuned threshold", measure=measure, threshold=best_t, performance=best_perf)
    return best_t, float(best_perf)
