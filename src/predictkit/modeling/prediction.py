"""
Prediction with trained models.

A Prediction holds a data frame with the columns

    id        task row position (only when predicting on a task)
    truth     true target value (when known)
    prob.<c>  class probabilities (predict_type 'prob')
    response  predicted class or value
    se        standard error (predict_type 'se')

plus the predict type, the classification threshold and the task
description.
"""

import time
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import pandas as pd

from predictkit.modeling.threshold import default_threshold, response_from_probabilities
from predictkit.modeling.training import WrappedModel
from predictkit.schemas.prediction import PredictionSchema
from predictkit.tasks.core import Task, TaskDesc
from predictkit.utils.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class Prediction:
    """
    Result of predicting with a WrappedModel.

    Attributes:
        data: Prediction frame (see module docstring for the columns).
        predict_type: 'response', 'prob' or 'se'.
        task_desc: Description of the task the model was trained on.
        threshold: Threshold per class; only set for probability
            predictions of classification tasks.
        time: Prediction time in seconds.
    """

    data: pd.DataFrame
    predict_type: str
    task_desc: TaskDesc
    threshold: dict[str, float] | None = None
    time: float | None = None

    @property
    def n_obs(self) -> int:
        """Number of predicted observations."""
        return len(self.data)

    @property
    def has_truth(self) -> bool:
        """Whether true target values are known."""
        return "truth" in self.data.columns

    @property
    def prob_columns(self) -> list[str]:
        """Names of the probability columns, in class level order."""
        return [c for c in self.data.columns if c.startswith("prob.")]

    def head(self, n: int = 6) -> pd.DataFrame:
        """First n rows of the prediction frame."""
        return self.data.head(n)

    def __str__(self) -> str:
        lines = [
            f"Prediction: {self.n_obs} observations",
            f"predict.type: {self.predict_type}",
        ]
        if self.threshold is not None:
            thr = ",".join(f"{c}={v:.2f}" for c, v in self.threshold.items())
            lines.append(f"threshold: {thr}")
        if self.time is not None:
            lines.append(f"time: {self.time:.2f}")
        lines.append(self.head().to_string())
        if self.n_obs > 6:
            lines.append(f"... ({self.n_obs} rows, {len(self.data.columns)} cols)")
        return "\n".join(lines)


def _select_input(
    model: WrappedModel,
    task: Task | None,
    newdata: pd.DataFrame | None,
    subset: Sequence[int] | None,
) -> tuple[pd.DataFrame, pd.Series | None, list[int] | None]:
    """Return features, truth (if known) and task row ids."""
    if (task is None) == (newdata is None):
        msg = "Pass either 'task' or 'newdata', not both or neither"
        raise ValueError(msg)

    desc = model.task_desc
    if task is not None:
        if task.target != desc.target or task.task_type != desc.task_type:
            msg = (
                f"Task '{task.id}' ({task.task_type}, target '{task.target}') does not "
                f"match the model's task ({desc.task_type}, target '{desc.target}')"
            )
            raise ValueError(msg)
        task_levels = task.describe().class_levels
        if task_levels != desc.class_levels:
            msg = (
                f"Task '{task.id}' has classes {list(task_levels)}, "
                f"the model was trained on {list(desc.class_levels)}"
            )
            raise ValueError(msg)
        rows = list(range(task.n_obs)) if subset is None else [int(i) for i in subset]
        missing = [f for f in model.features if f not in task.feature_names]
        if missing:
            msg = f"Task '{task.id}' lacks features the model was trained on: {missing}"
            raise ValueError(msg)
        X = task.get_data(rows, features=model.features, target_extra=False)
        return X, task.get_target(rows), rows

    if not isinstance(newdata, pd.DataFrame):
        msg = f"newdata must be a pandas DataFrame, got {type(newdata).__name__}"
        raise ValueError(msg)
    data = newdata
    if subset is not None:
        positions = [int(i) for i in subset]
        bad = [i for i in positions if i < 0 or i >= len(newdata)]
        if bad:
            msg = f"Subset indices out of range for newdata with {len(newdata)} rows: {bad[:5]}"
            raise ValueError(msg)
        data = newdata.iloc[positions]
    missing = [f for f in model.features if f not in data.columns]
    if missing:
        msg = f"newdata lacks features the model was trained on: {missing}"
        raise ValueError(msg)
    truth = data[desc.target] if desc.target in data.columns else None
    return data[model.features], truth, None


def _class_probabilities(
    model: WrappedModel, X: pd.DataFrame, levels: list[str]
) -> pd.DataFrame:
    """Probabilities for every class level, zero for classes unseen in training."""
    raw = model.pipeline.predict_proba(X)
    classes = [str(c) for c in model.get_learner_model().classes_]
    probs = pd.DataFrame(0.0, index=range(len(X)), columns=levels)
    for j, cls in enumerate(classes):
        probs[cls] = raw[:, j]
    return probs.clip(lower=0.0, upper=1.0)


def predict(
    model: WrappedModel,
    task: Task | None = None,
    newdata: pd.DataFrame | None = None,
    subset: Sequence[int] | None = None,
) -> Prediction:
    """
    Predict with a trained model.

    Args:
        model: Trained model.
        task: Task whose rows are predicted. Yields 'id' and 'truth' columns.
        newdata: Raw data frame to predict instead of a task. 'truth' is
            included when the frame contains the target column.
        subset: Row positions of the task (or newdata) to predict.

    Returns:
        Prediction.

    Raises:
        ValueError: If neither or both of task/newdata are given, or
            required features are missing.
    """
    X, truth, ids = _select_input(model, task, newdata, subset)
    desc = model.task_desc
    learner = model.learner
    levels = list(desc.class_levels)

    start = time.perf_counter()
    columns: dict[str, object] = {}
    if ids is not None:
        columns["id"] = np.asarray(ids, dtype=int)
    if truth is not None:
        truth_values = truth.to_numpy()
        if desc.task_type == "classif":
            columns["truth"] = pd.Categorical(truth.astype(str), categories=levels)
        else:
            columns["truth"] = truth_values.astype(float)

    threshold = None
    if desc.task_type == "classif":
        if learner.predict_type == "prob":
            probs = _class_probabilities(model, X, levels)
            threshold = default_threshold(desc)
            for cls in levels:
                columns[f"prob.{cls}"] = probs[cls].to_numpy()
            columns["response"] = response_from_probabilities(probs, threshold, levels)
        else:
            response = [str(r) for r in model.pipeline.predict(X)]
            columns["response"] = pd.Categorical(response, categories=levels)
    elif learner.predict_type == "se":
        Xt = model.pipeline[:-1].transform(X)
        mean, se = model.get_learner_model().predict(Xt, return_std=True)
        columns["response"] = np.asarray(mean, dtype=float)
        columns["se"] = np.asarray(se, dtype=float)
    else:
        columns["response"] = np.asarray(model.pipeline.predict(X), dtype=float)
    elapsed = time.perf_counter() - start

    data = PredictionSchema.validate(pd.DataFrame(columns, index=range(len(X))))
    log.debug(
        "Predicted",
        learner=learner.id,
        task=desc.id,
        n_obs=len(data),
        predict_type=learner.predict_type,
    )
    return Prediction(
        data=data,
        predict_type=learner.predict_type,
        task_desc=desc,
        threshold=threshold,
        time=elapsed,
    )


def as_data_frame(pred: Prediction) -> pd.DataFrame:
    """Copy of the prediction frame."""
    return pred.data.copy()


def get_prediction_truth(pred: Prediction) -> pd.Series | None:
    """True target values, or None when unknown."""
    if not pred.has_truth:
        return None
    return pred.data["truth"]


def get_prediction_response(pred: Prediction) -> pd.Series:
    """Predicted classes or values."""
    return pred.data["response"]


def get_prediction_se(pred: Prediction) -> pd.Series:
    """
    Standard errors of a regression prediction.

    Raises:
        ValueError: Unless the prediction was made with predict_type 'se'.
    """
    if pred.predict_type != "se":
        msg = f"Standard errors need predict_type 'se', got '{pred.predict_type}'"
        raise ValueError(msg)
    return pred.data["se"]


def get_prediction_probabilities(
    pred: Prediction,
    cl: str | Sequence[str] | None = None,
) -> pd.Series | pd.DataFrame:
    """
    Predicted class probabilities.

    Args:
        pred: Classification prediction with predict_type 'prob'.
        cl: Class or classes to return. By default the positive class of a
            binary task, all classes of a multiclass task.

    Returns:
        Series for a single class, DataFrame with one column per class
        (named by class) otherwise.

    Raises:
        ValueError: If the prediction has no probabilities or a class is
            unknown.
    """
    if pred.predict_type != "prob":
        msg = f"Probabilities need predict_type 'prob', got '{pred.predict_type}'"
        raise ValueError(msg)

    desc = pred.task_desc
    levels = list(desc.class_levels)
    if cl is None:
        cl = desc.positive if desc.is_binary else levels

    wanted = [cl] if isinstance(cl, str) else list(cl)
    unknown = [c for c in wanted if c not in levels]
    if unknown:
        msg = f"Unknown classes {unknown}; task has {levels}"
        raise ValueError(msg)

    if isinstance(cl, str):
        return pred.data[f"prob.{cl}"].rename(cl)
    frame = pred.data[[f"prob.{c}" for c in wanted]]
    return frame.set_axis(wanted, axis=1)
