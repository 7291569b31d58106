"""
Performance measures for predictions.

Each measure maps a Prediction with known truth to a single float.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
from sklearn.metrics import (
    accuracy_score,
    balanced_accuracy_score,
    brier_score_loss,
    f1_score,
    log_loss,
    mean_absolute_error,
    mean_squared_error,
    median_absolute_error,
    r2_score,
    roc_auc_score,
)

from predictkit.utils.logging import get_logger

if TYPE_CHECKING:
    from predictkit.modeling.prediction import Prediction

log = get_logger(__name__)


@dataclass(frozen=True)
class Measure:
    """
    Performance measure.

    Attributes:
        id: Short name, e.g. 'mmce'.
        name: Human-readable name.
        task_type: 'classif' or 'regr'.
        minimize: Whether lower values are better.
        fun: Computes the measure from a prediction.
        needs_prob: Requires predicted probabilities.
        binary_only: Only defined for two-class tasks.
    """

    id: str
    name: str
    task_type: str
    minimize: bool
    fun: Callable[["Prediction"], float]
    needs_prob: bool = False
    binary_only: bool = False


def _labels(pred: "Prediction") -> tuple[np.ndarray, np.ndarray]:
    truth = pred.data["truth"].astype(str).to_numpy()
    response = pred.data["response"].astype(str).to_numpy()
    return truth, response


def _values(pred: "Prediction") -> tuple[np.ndarray, np.ndarray]:
    return (
        pred.data["truth"].to_numpy(dtype=float),
        pred.data["response"].to_numpy(dtype=float),
    )


def _positive_truth(pred: "Prediction") -> np.ndarray:
    return (pred.data["truth"].astype(str) == pred.task_desc.positive).to_numpy(int)


def _positive_prob(pred: "Prediction") -> np.ndarray:
    return pred.data[f"prob.{pred.task_desc.positive}"].to_numpy(dtype=float)


def _mmce(pred: "Prediction") -> float:
    truth, response = _labels(pred)
    return float(np.mean(truth != response))


def _acc(pred: "Prediction") -> float:
    truth, response = _labels(pred)
    return float(accuracy_score(truth, response))


def _ber(pred: "Prediction") -> float:
    truth, response = _labels(pred)
    return float(1.0 - balanced_accuracy_score(truth, response))


def _f1(pred: "Prediction") -> float:
    truth, response = _labels(pred)
    return float(
        f1_score(truth, response, pos_label=pred.task_desc.positive, zero_division=0.0)
    )


def _auc(pred: "Prediction") -> float:
    y = _positive_truth(pred)
    if len(np.unique(y)) < 2:
        log.warning("AUC undefined with a single class in truth", task=pred.task_desc.id)
        return float("nan")
    return float(roc_auc_score(y, _positive_prob(pred)))


def _brier(pred: "Prediction") -> float:
    return float(brier_score_loss(_positive_truth(pred), _positive_prob(pred)))


def _logloss(pred: "Prediction") -> float:
    # log_loss expects probability columns in sorted label order
    levels = sorted(pred.task_desc.class_levels)
    probs = pred.data[[f"prob.{c}" for c in levels]].to_numpy(dtype=float)
    truth = pred.data["truth"].astype(str).to_numpy()
    return float(log_loss(truth, np.clip(probs, 1e-15, 1.0), labels=levels))


def _mse(pred: "Prediction") -> float:
    return float(mean_squared_error(*_values(pred)))


def _rmse(pred: "Prediction") -> float:
    return float(np.sqrt(mean_squared_error(*_values(pred))))


def _mae(pred: "Prediction") -> float:
    return float(mean_absolute_error(*_values(pred)))


def _medae(pred: "Prediction") -> float:
    return float(median_absolute_error(*_values(pred)))


def _rsq(pred: "Prediction") -> float:
    return float(r2_score(*_values(pred)))


MEASURE_REGISTRY: dict[str, Measure] = {
    m.id: m
    for m in [
        Measure("mmce", "Mean misclassification error", "classif", True, _mmce),
        Measure("acc", "Accuracy", "classif", False, _acc),
        Measure("ber", "Balanced error rate", "classif", True, _ber),
        Measure("f1", "F1 score", "classif", False, _f1, binary_only=True),
        Measure("auc", "Area under the ROC curve", "classif", False, _auc, True, True),
        Measure("brier", "Brier score", "classif", True, _brier, True, True),
        Measure("logloss", "Logarithmic loss", "classif", True, _logloss, True),
        Measure("mse", "Mean squared error", "regr", True, _mse),
        Measure("rmse", "Root mean squared error", "regr", True, _rmse),
        Measure("mae", "Mean absolute error", "regr", True, _mae),
        Measure("medae", "Median absolute error", "regr", True, _medae),
        Measure("rsq", "Coefficient of determination", "regr", False, _rsq),
    ]
}

DEFAULT_MEASURES: dict[str, str] = {"classif": "mmce", "regr": "mse"}


def get_measure(id: str) -> Measure:
    """Look up a measure by id."""
    if id not in MEASURE_REGISTRY:
        available = ", ".join(MEASURE_REGISTRY)
        msg = f"Unknown measure '{id}'. Available: {available}"
        raise KeyError(msg)
    return MEASURE_REGISTRY[id]


def check_measure(measure: Measure, pred: "Prediction") -> None:
    """
    Check that a measure can be computed on a prediction.

    Raises:
        ValueError: On a task type, predict type or class count mismatch.
    """
    desc = pred.task_desc
    if measure.task_type != desc.task_type:
        msg = f"Measure '{measure.id}' is for {measure.task_type} tasks, not {desc.task_type}"
        raise ValueError(msg)
    if measure.needs_prob and pred.predict_type != "prob":
        msg = f"Measure '{measure.id}' needs predict_type 'prob', got '{pred.predict_type}'"
        raise ValueError(msg)
    if measure.binary_only and not desc.is_binary:
        msg = f"Measure '{measure.id}' is only defined for binary tasks"
        raise ValueError(msg)


def performance(
    pred: "Prediction",
    measures: Sequence[str] | None = None,
) -> dict[str, float]:
    """
    Compute performance measures of a prediction.

    Args:
        pred: Prediction with known truth.
        measures: Measure ids (default: mmce for classification, mse for
            regression).

    Returns:
        Dictionary measure id -> value.

    Raises:
        KeyError: For unknown measure ids.
        ValueError: If the truth is unknown or a measure does not apply.
    """
    if not pred.has_truth:
        msg = "Performance needs a prediction with true target values"
        raise ValueError(msg)
    if measures is None:
        measures = [DEFAULT_MEASURES[pred.task_desc.task_type]]

    resolved = [get_measure(m) for m in measures]
    for measure in resolved:
        check_measure(measure, pred)

    if pred.n_obs == 0:
        log.warning("Empty prediction provided for performance")
        return {m.id: float("nan") for m in resolved}

    result = {m.id: m.fun(pred) for m in resolved}
    log.debug("Computed performance", **result)
    return result
