"""
Model training.

Fits a learner on (a subset of) a task and wraps the fitted sklearn
pipeline together with the task description.
"""

import time
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

import joblib
import numpy as np
from sklearn.base import BaseEstimator
from sklearn.pipeline import Pipeline

from predictkit.learners.registry import Learner
from predictkit.modeling.preprocessing import build_preprocessor
from predictkit.tasks.core import ClassifTask, Task, TaskDesc
from predictkit.utils.logging import get_logger

log = get_logger(__name__)


@dataclass
class WrappedModel:
    """
    Trained learner.

    Attributes:
        learner: Learner configuration the model was trained from.
        pipeline: Fitted sklearn pipeline (preprocessor + model).
        task_desc: Description of the task the model was trained on.
        subset: Task row positions used for training (None = all rows).
        features: Feature columns the model expects.
        time_train: Training time in seconds.
    """

    learner: Learner
    pipeline: Pipeline
    task_desc: TaskDesc
    subset: list[int] | None
    features: list[str]
    time_train: float

    @property
    def n_train(self) -> int | None:
        """Number of training observations, if a subset was used."""
        return None if self.subset is None else len(self.subset)

    def get_learner_model(self) -> BaseEstimator:
        """Return the fitted estimator without the preprocessing step."""
        return self.pipeline.named_steps["model"]

    def __str__(self) -> str:
        n_train = self.n_train if self.subset is not None else "all"
        return (
            f"Model for learner.id={self.learner.id}; "
            f"learner.class={type(self.get_learner_model()).__name__}\n"
            f"Trained on: task.id = {self.task_desc.id}; obs = {n_train}; "
            f"features = {len(self.features)}\n"
            f"Hyperparameters: {self.learner.params or '-'}"
        )


def _check_compatible(learner: Learner, task: Task) -> None:
    if learner.task_type != task.task_type:
        msg = (
            f"Learner '{learner.id}' is for '{learner.task_type}' tasks, "
            f"but task '{task.id}' is '{task.task_type}'"
        )
        raise ValueError(msg)
    if isinstance(task, ClassifTask):
        needed = "twoclass" if task.is_binary else "multiclass"
        if needed not in learner.properties:
            msg = f"Learner '{learner.id}' does not support {needed} classification"
            raise ValueError(msg)


def train(
    learner: Learner,
    task: Task,
    subset: Sequence[int] | None = None,
    weights: Sequence[float] | None = None,
) -> WrappedModel:
    """
    Train a learner on a task.

    Args:
        learner: Learner configuration.
        task: Task to train on.
        subset: Row positions used for training (default: all rows).
        weights: Observation weights, one per training row.

    Returns:
        WrappedModel holding the fitted pipeline.

    Raises:
        ValueError: If learner and task do not fit together or the weights
            are unusable.
    """
    _check_compatible(learner, task)

    rows = None if subset is None else [int(i) for i in subset]
    X = task.get_data(rows, target_extra=False)
    y = task.get_target(rows)
    if isinstance(task, ClassifTask):
        y = y.astype(str)

    fit_params = {}
    if weights is not None:
        if "weights" not in learner.properties:
            msg = f"Learner '{learner.id}' does not support observation weights"
            raise ValueError(msg)
        w = np.asarray(weights, dtype=float)
        if len(w) != len(X):
            msg = f"Got {len(w)} weights for {len(X)} training observations"
            raise ValueError(msg)
        fit_params["model__sample_weight"] = w

    pipeline = Pipeline(
        steps=[
            (
                "preprocessor",
                build_preprocessor(X, standardize="standardize" in learner.properties),
            ),
            ("model", learner.make_estimator()),
        ]
    )

    log.info(
        "Training learner",
        learner=learner.id,
        task=task.id,
        n_obs=len(X),
        n_features=X.shape[1],
    )
    start = time.perf_counter()
    pipeline.fit(X, y.to_numpy(), **fit_params)
    time_train = time.perf_counter() - start
    log.debug("Training complete", learner=learner.id, time_train=round(time_train, 4))

    return WrappedModel(
        learner=learner,
        pipeline=pipeline,
        task_desc=task.describe(),
        subset=rows,
        features=list(X.columns),
        time_train=time_train,
    )


def save_model(model: WrappedModel, path: Path) -> Path:
    """Persist a trained model with joblib."""
    path.parent.mkdir(parents=True, exist_ok=True)
    joblib.dump(model, path)
    log.info("Saved model", path=str(path), learner=model.learner.id)
    return path


def load_model(path: Path) -> WrappedModel:
    """
    Load a model saved with save_model.

    Raises:
        FileNotFoundError: If the file does not exist.
        TypeError: If the file does not hold a WrappedModel.
    """
    if not path.exists():
        msg = f"Model file not found: {path}"
        raise FileNotFoundError(msg)
    model = joblib.load(path)
    if not isinstance(model, WrappedModel):
        msg = f"{path} does not contain a WrappedModel but {type(model).__name__}"
        raise TypeError(msg)
    return model
