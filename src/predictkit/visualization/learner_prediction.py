"""
Learner prediction plots.

Visualises what a learner predicts on one or two features of a task:
class regions or prediction surfaces over a grid, with the task data on
top.
"""

from collections.abc import Sequence
from pathlib import Path
from typing import Literal

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from matplotlib.colors import to_rgba
from matplotlib.figure import Figure
from pandas.api.types import is_numeric_dtype

from predictkit.evaluation.confusion import ConfusionMatrix
from predictkit.evaluation.measures import DEFAULT_MEASURES, performance
from predictkit.evaluation.resampling import crossval
from predictkit.learners.registry import Learner
from predictkit.modeling.prediction import Prediction, predict
from predictkit.modeling.training import train
from predictkit.tasks.core import ClassifTask, Task
from predictkit.utils.logging import get_logger

log = get_logger(__name__)

DEFAULT_GRIDSIZE = {1: 500, 2: 100}


def _class_colors(levels: Sequence[str]) -> dict[str, tuple[float, float, float, float]]:
    cmap = plt.get_cmap("tab10")
    return {cls: to_rgba(cmap(i % 10)) for i, cls in enumerate(levels)}


def _title(learner: Learner, train_perf: dict[str, float], cv_perf: dict[str, float] | None) -> str:
    pars = ", ".join(f"{k}={v}" for k, v in learner.params.items())
    head = f"{learner.id}: {pars}" if pars else learner.id
    perf = "Train: " + "; ".join(f"{k}={v:.3g}" for k, v in train_perf.items())
    if cv_perf:
        perf += "; CV: " + "; ".join(f"{k}={v:.3g}" for k, v in cv_perf.items())
    return f"{head}\n{perf}"


def _grid_1d(data: pd.DataFrame, feature: str, gridsize: int) -> pd.DataFrame:
    x = data[feature]
    return pd.DataFrame({feature: np.linspace(x.min(), x.max(), gridsize)})


def _grid_2d(
    data: pd.DataFrame, features: Sequence[str], gridsize: int
) -> tuple[pd.DataFrame, np.ndarray, np.ndarray]:
    fx, fy = features
    gx = np.linspace(data[fx].min(), data[fx].max(), gridsize)
    gy = np.linspace(data[fy].min(), data[fy].max(), gridsize)
    xx, yy = np.meshgrid(gx, gy)
    grid = pd.DataFrame({fx: xx.ravel(), fy: yy.ravel()})
    return grid, gx, gy


def _misclassified(pred: Prediction, n_obs: int) -> np.ndarray:
    wrong = np.zeros(n_obs, dtype=bool)
    data = pred.data
    wrong[data["id"].to_numpy()] = (
        data["truth"].astype(str).to_numpy() != data["response"].astype(str).to_numpy()
    )
    return wrong


def _plot_classif_2d(
    ax: plt.Axes,
    task: ClassifTask,
    grid_pred: Prediction,
    gx: np.ndarray,
    gy: np.ndarray,
    wrong: np.ndarray,
    *,
    pointsize: float,
    prob_alpha: bool,
) -> None:
    fx, fy = task.feature_names
    levels = task.class_levels
    colors = _class_colors(levels)

    codes = pd.Categorical(grid_pred.data["response"], categories=levels).codes
    rgba = np.array([colors[levels[c]] for c in codes])
    if prob_alpha and grid_pred.predict_type == "prob":
        max_prob = grid_pred.data[grid_pred.prob_columns].to_numpy().max(axis=1)
        rgba[:, 3] = 0.6 * max_prob
    else:
        rgba[:, 3] = 0.3
    image = rgba.reshape(len(gy), len(gx), 4)
    ax.imshow(
        image,
        origin="lower",
        extent=(gx[0], gx[-1], gy[0], gy[-1]),
        aspect="auto",
        interpolation="nearest",
    )

    y = task.get_target().astype(str).to_numpy()
    for cls in levels:
        ok = (y == cls) & ~wrong
        err = (y == cls) & wrong
        ax.scatter(
            task.data[fx][ok],
            task.data[fy][ok],
            s=pointsize,
            color=colors[cls],
            edgecolors="black",
            linewidths=0.5,
            label=cls,
        )
        if err.any():
            ax.scatter(
                task.data[fx][err],
                task.data[fy][err],
                s=pointsize * 1.5,
                color=colors[cls],
                marker="x",
            )
    ax.set_xlabel(fx)
    ax.set_ylabel(fy)
    ax.legend(title=task.target, loc="best", fontsize="small")


def _plot_classif_1d(
    ax: plt.Axes,
    task: ClassifTask,
    grid: pd.DataFrame,
    grid_pred: Prediction,
    wrong: np.ndarray,
    *,
    pointsize: float,
    seed: int | None,
) -> None:
    (fx,) = task.feature_names
    levels = task.class_levels
    colors = _class_colors(levels)

    # Background spans for contiguous runs of the same predicted class
    xs = grid[fx].to_numpy()
    response = grid_pred.data["response"].astype(str).to_numpy()
    start = 0
    for i in range(1, len(xs) + 1):
        if i == len(xs) or response[i] != response[start]:
            end = xs[min(i, len(xs) - 1)]
            ax.axvspan(xs[start], end, color=colors[response[start]], alpha=0.2, lw=0)
            start = i

    rng = np.random.default_rng(seed)
    y = task.get_target().astype(str).to_numpy()
    positions = pd.Categorical(y, categories=levels).codes + rng.uniform(-0.15, 0.15, len(y))
    for cls in levels:
        ok = (y == cls) & ~wrong
        err = (y == cls) & wrong
        ax.scatter(task.data[fx][ok], positions[ok], s=pointsize, color=colors[cls], label=cls)
        if err.any():
            ax.scatter(
                task.data[fx][err], positions[err], s=pointsize * 1.5, color=colors[cls], marker="x"
            )
    ax.set_yticks(range(len(levels)), levels)
    ax.set_xlabel(fx)
    ax.set_ylabel(task.target)


def _plot_regr_1d(
    ax: plt.Axes,
    task: Task,
    grid: pd.DataFrame,
    grid_pred: Prediction,
    *,
    pointsize: float,
    se_band: bool,
) -> None:
    (fx,) = task.feature_names
    xs = grid[fx].to_numpy()
    mean = grid_pred.data["response"].to_numpy()

    if se_band and grid_pred.predict_type == "se":
        se = grid_pred.data["se"].to_numpy()
        ax.fill_between(xs, mean - se, mean + se, alpha=0.25, color="tab:blue", label="+/- se")
    ax.plot(xs, mean, color="tab:blue", label="prediction")
    ax.scatter(task.data[fx], task.get_target(), s=pointsize, color="black", alpha=0.7)
    ax.set_xlabel(fx)
    ax.set_ylabel(task.target)
    ax.legend(loc="best", fontsize="small")


def _plot_regr_2d(
    fig: Figure,
    ax: plt.Axes,
    task: Task,
    grid_pred: Prediction,
    gx: np.ndarray,
    gy: np.ndarray,
    *,
    pointsize: float,
) -> None:
    fx, fy = task.feature_names
    surface = grid_pred.data["response"].to_numpy().reshape(len(gy), len(gx))
    y = task.get_target().to_numpy()
    vmin = min(surface.min(), y.min())
    vmax = max(surface.max(), y.max())

    contour = ax.contourf(gx, gy, surface, levels=20, cmap="viridis", vmin=vmin, vmax=vmax)
    ax.scatter(
        task.data[fx],
        task.data[fy],
        c=y,
        cmap="viridis",
        vmin=vmin,
        vmax=vmax,
        s=pointsize,
        edgecolors="white",
        linewidths=0.5,
    )
    fig.colorbar(contour, ax=ax, label=task.target)
    ax.set_xlabel(fx)
    ax.set_ylabel(fy)


def plot_learner_prediction(
    learner: Learner,
    task: Task,
    features: Sequence[str] | None = None,
    measures: Sequence[str] | None = None,
    cv: int = 10,
    gridsize: int | None = None,
    pointsize: float = 30,
    *,
    prob_alpha: bool = True,
    se_band: bool = True,
    err_mark: Literal["train", "cv", "none"] = "train",
    seed: int | None = None,
) -> Figure:
    """
    Plot the predictions of a learner on one or two features.

    The learner is trained on the task restricted to the selected features.
    The title shows the in-sample performance and, unless cv is 0, the
    cross-validated performance.

    Args:
        learner: Learner to visualise.
        task: Task to train on.
        features: One or two numeric features (default: the first feature
            for regression, the first two for classification).
        measures: Measure ids for the title (default: mmce / mse).
        cv: Number of CV folds; 0 disables cross-validation.
        gridsize: Grid points per dimension (default: 500 in 1D, 100 in 2D).
        pointsize: Marker size of the data points.
        prob_alpha: Shade class regions by predicted probability.
        se_band: Draw a +/- one standard error band (1D regression).
        err_mark: Mark misclassified points from the 'train' or 'cv'
            prediction, or 'none'.
        seed: Seed for the CV split and the 1D jitter.

    Returns:
        Matplotlib figure.
    """
    if features is None:
        n_default = 1 if task.task_type == "regr" else 2
        features = task.feature_names[:n_default]
    features = list(features)
    if len(features) not in (1, 2):
        msg = f"Learner prediction plots need 1 or 2 features, got {len(features)}"
        raise ValueError(msg)
    unknown = [f for f in features if f not in task.feature_names]
    if unknown:
        msg = f"Unknown features for task '{task.id}': {unknown}"
        raise ValueError(msg)
    non_numeric = [f for f in features if not is_numeric_dtype(task.data[f])]
    if non_numeric:
        msg = f"Only numeric features can be plotted, got {non_numeric}"
        raise ValueError(msg)
    if err_mark not in ("train", "cv", "none"):
        msg = f"err_mark must be 'train', 'cv' or 'none', got '{err_mark}'"
        raise ValueError(msg)
    if err_mark == "cv" and cv == 0:
        msg = "err_mark='cv' needs cv > 0"
        raise ValueError(msg)
    if measures is None:
        measures = [DEFAULT_MEASURES[task.task_type]]

    sub = task.subset_task(features=features)
    gridsize = gridsize or DEFAULT_GRIDSIZE[len(features)]

    log.info(
        "Plotting learner prediction",
        learner=learner.id,
        task=task.id,
        features=features,
        cv=cv,
    )
    model = train(learner, sub)
    train_pred = predict(model, task=sub)
    train_perf = performance(train_pred, measures)

    cv_perf = None
    cv_pred = None
    if cv > 0:
        result = crossval(learner, sub, iters=cv, seed=seed, measures=measures)
        cv_perf = result.aggr
        cv_pred = result.pred

    if len(features) == 1:
        grid = _grid_1d(sub.data, features[0], gridsize)
    else:
        grid, gx, gy = _grid_2d(sub.data, features, gridsize)
    grid_pred = predict(model, newdata=grid)

    fig, ax = plt.subplots(figsize=(8, 6))
    if isinstance(sub, ClassifTask):
        wrong = np.zeros(sub.n_obs, dtype=bool)
        if err_mark == "train":
            wrong = _misclassified(train_pred, sub.n_obs)
        elif err_mark == "cv" and cv_pred is not None:
            wrong = _misclassified(cv_pred, sub.n_obs)

        if len(features) == 2:
            _plot_classif_2d(
                ax, sub, grid_pred, gx, gy, wrong, pointsize=pointsize, prob_alpha=prob_alpha
            )
        else:
            _plot_classif_1d(ax, sub, grid, grid_pred, wrong, pointsize=pointsize, seed=seed)
    elif len(features) == 2:
        _plot_regr_2d(fig, ax, sub, grid_pred, gx, gy, pointsize=pointsize)
    else:
        _plot_regr_1d(ax, sub, grid, grid_pred, pointsize=pointsize, se_band=se_band)

    ax.set_title(_title(learner, train_perf, cv_perf), fontsize="medium")
    fig.tight_layout()
    return fig


def plot_confusion_matrix(cm: ConfusionMatrix) -> Figure:
    """Heatmap of the absolute counts of a confusion matrix."""
    counts = cm.counts
    levels = list(counts.index)

    fig, ax = plt.subplots(figsize=(1.2 * len(levels) + 3, 1.2 * len(levels) + 2))
    image = ax.imshow(counts.to_numpy(), cmap="Blues")
    threshold = counts.to_numpy().max() / 2 if counts.size else 0
    for i in range(len(levels)):
        for j in range(len(levels)):
            value = int(counts.iloc[i, j])
            ax.text(
                j,
                i,
                str(value),
                ha="center",
                va="center",
                color="white" if value > threshold else "black",
            )
    ax.set_xticks(range(len(levels)), levels, rotation=45, ha="right")
    ax.set_yticks(range(len(levels)), levels)
    ax.set_xlabel("predicted")
    ax.set_ylabel("true")
    ax.set_title(f"{cm.task_desc.id}: {cm.n_errors} errors")
    fig.colorbar(image, ax=ax)
    fig.tight_layout()
    return fig


def save_figure(fig: Figure, path: Path) -> Path:
    """Save a figure as image file and close it."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    log.info("Saved plot", path=str(path))
    return path
