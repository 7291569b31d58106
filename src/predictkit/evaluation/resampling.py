"""
Cross-validation of learners on tasks.
"""

from collections.abc import Sequence
from dataclasses import dataclass, replace

import numpy as np
import pandas as pd
from sklearn.model_selection import KFold, StratifiedKFold

from predictkit.evaluation.measures import DEFAULT_MEASURES, performance
from predictkit.learners.registry import Learner
from predictkit.modeling.prediction import Prediction, predict
from predictkit.modeling.training import train
from predictkit.tasks.core import Task
from predictkit.utils.logging import get_logger

log = get_logger(__name__)


@dataclass
class ResampleResult:
    """
    Result of a cross-validation.

    Attributes:
        learner_id: Id of the resampled learner.
        task_id: Id of the task.
        measures_test: Per-fold test performance, one row per fold.
        aggr: Mean test performance, keys '<measure>.test.mean'.
        pred: Pooled out-of-fold prediction of all folds, ordered by id.
    """

    learner_id: str
    task_id: str
    measures_test: pd.DataFrame
    aggr: dict[str, float]
    pred: Prediction

    def __str__(self) -> str:
        aggr = "; ".join(f"{k}={v:.4f}" for k, v in self.aggr.items())
        return f"Resample result: {self.learner_id} on {self.task_id}\nAggr perf: {aggr}"


def crossval(
    learner: Learner,
    task: Task,
    iters: int = 10,
    *,
    stratify: bool = True,
    seed: int | None = None,
    measures: Sequence[str] | None = None,
) -> ResampleResult:
    """
    Run k-fold cross-validation.

    Args:
        learner: Learner to evaluate.
        task: Task to resample.
        iters: Number of folds.
        stratify: Stratify folds by class for classification tasks.
        seed: Random seed of the fold split.
        measures: Measure ids (default: mmce / mse).

    Returns:
        ResampleResult with per-fold and aggregated performance.
    """
    if iters < 2 or iters > task.n_obs:
        msg = f"iters must lie between 2 and the number of observations ({task.n_obs}), got {iters}"
        raise ValueError(msg)
    if measures is None:
        measures = [DEFAULT_MEASURES[task.task_type]]

    y = task.get_target()
    if stratify and task.task_type == "classif":
        splitter = StratifiedKFold(n_splits=iters, shuffle=True, random_state=seed)
        folds = splitter.split(np.zeros(task.n_obs), y.astype(str))
    else:
        splitter = KFold(n_splits=iters, shuffle=True, random_state=seed)
        folds = splitter.split(np.zeros(task.n_obs))

    log.info("Cross-validating", learner=learner.id, task=task.id, iters=iters)

    rows = []
    fold_preds = []
    for i, (train_idx, test_idx) in enumerate(folds, start=1):
        model = train(learner, task, subset=train_idx.tolist())
        pred = predict(model, task=task, subset=test_idx.tolist())
        perf = performance(pred, measures)
        rows.append({"iter": i, **perf})
        fold_data = pred.data.assign(iter=i)
        fold_preds.append((fold_data, pred))
        log.debug("Fold done", iter=i, **perf)

    measures_test = pd.DataFrame(rows)
    aggr = {f"{m}.test.mean": float(measures_test[m].mean()) for m in measures}

    pooled = pd.concat([data for data, _ in fold_preds]).sort_values("id")
    pooled = pooled.reset_index(drop=True)
    first = fold_preds[0][1]
    pooled_pred = replace(first, data=pooled, time=None)

    log.info("Cross-validation complete", learner=learner.id, **aggr)
    return ResampleResult(
        learner_id=learner.id,
        task_id=task.id,
        measures_test=measures_test,
        aggr=aggr,
        pred=pooled_pred,
    )
