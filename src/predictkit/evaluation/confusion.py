"""
Confusion matrices for classification predictions.

Rows hold the true classes, columns the predicted classes. The extra
column '-err.-' counts the misclassified observations of each true
class, the extra row '-err.-' those of each predicted class; the corner
holds the total number of errors. With sums, '-n-' row and column hold
the class totals and the corner of both holds n.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd
from rich.table import Table

from predictkit.tasks.core import TaskDesc
from predictkit.utils.logging import get_logger

if TYPE_CHECKING:
    from predictkit.modeling.prediction import Prediction

log = get_logger(__name__)

ERR = "-err.-"
N = "-n-"


@dataclass(frozen=True)
class ConfusionMatrix:
    """
    Confusion matrix of a classification prediction.

    Attributes:
        result: Absolute counts with error (and optionally sum) margins.
        task_desc: Description of the predicted task.
        sums: Whether '-n-' margins were added.
        relative: Whether relative matrices were computed.
        relative_row: Counts divided by row sums; '-err.-' column holds the
            error rate per true class.
        relative_col: Counts divided by column sums; '-err.-' row holds the
            error rate per predicted class.
        relative_error: Total errors divided by n.
    """

    result: pd.DataFrame
    task_desc: TaskDesc
    sums: bool = False
    relative: bool = False
    relative_row: pd.DataFrame | None = None
    relative_col: pd.DataFrame | None = None
    relative_error: float | None = None

    @property
    def counts(self) -> pd.DataFrame:
        """Class by class block of absolute counts."""
        levels = list(self.task_desc.class_levels)
        return self.result.loc[levels, levels].astype(int)

    @property
    def n_errors(self) -> int:
        """Total number of misclassified observations."""
        return int(self.result.loc[ERR, ERR])

    def __str__(self) -> str:
        text = self.result.to_string()
        if self.relative:
            text += f"\n\nRelative error: {self.relative_error:.3f}"
        return text


def _tabulate(pred: "Prediction", levels: list[str]) -> np.ndarray:
    truth = pd.Categorical(pred.data["truth"].astype(str), categories=levels).codes
    response = pd.Categorical(pred.data["response"].astype(str), categories=levels).codes
    known = (truth >= 0) & (response >= 0)
    if not known.all():
        log.warning(
            "Ignoring observations with unknown class labels",
            n_ignored=int((~known).sum()),
        )
    tab = np.zeros((len(levels), len(levels)), dtype=int)
    np.add.at(tab, (truth[known], response[known]), 1)
    return tab


def calculate_confusion_matrix(
    pred: "Prediction",
    relative: bool = False,
    sums: bool = False,
) -> ConfusionMatrix:
    """
    Compute the confusion matrix of a classification prediction.

    Args:
        pred: Classification prediction with known truth.
        relative: Also compute row-, column- and total-relative values.
        sums: Add '-n-' margins with class totals.

    Returns:
        ConfusionMatrix.

    Raises:
        ValueError: For regression predictions or unknown truth.
    """
    desc = pred.task_desc
    if desc.task_type != "classif":
        msg = "Confusion matrices are only defined for classification predictions"
        raise ValueError(msg)
    if not pred.has_truth:
        msg = "Confusion matrix needs a prediction with true class labels"
        raise ValueError(msg)

    levels = list(desc.class_levels)
    k = len(levels)
    tab = _tabulate(pred, levels)
    row_sums = tab.sum(axis=1)
    col_sums = tab.sum(axis=0)
    diag = np.diag(tab)
    row_err = row_sums - diag
    col_err = col_sums - diag
    total_err = int(row_err.sum())
    n = int(tab.sum())

    labels = [*levels, ERR, N] if sums else [*levels, ERR]
    size = len(labels)
    values = np.full((size, size), np.nan)
    values[:k, :k] = tab
    values[:k, k] = row_err
    values[k, :k] = col_err
    values[k, k] = total_err
    if sums:
        values[:k, k + 1] = row_sums
        values[k + 1, :k] = col_sums
        values[k + 1, k + 1] = n

    result = pd.DataFrame(values, index=labels, columns=labels).astype("Int64")
    result.index.name = "true"
    result.columns.name = "predicted"

    relative_row = relative_col = None
    relative_error = None
    if relative:
        with np.errstate(divide="ignore", invalid="ignore"):
            row_block = np.column_stack([tab, row_err]) / row_sums[:, None]
            col_block = np.vstack([tab, col_err]) / col_sums[None, :]
        relative_row = pd.DataFrame(row_block, index=levels, columns=[*levels, ERR])
        relative_col = pd.DataFrame(col_block, index=[*levels, ERR], columns=levels)
        for frame in (relative_row, relative_col):
            frame.index.name = "true"
            frame.columns.name = "predicted"
        relative_error = total_err / n if n else float("nan")

    log.debug("Computed confusion matrix", task=desc.id, n=n, n_errors=total_err)
    return ConfusionMatrix(
        result=result,
        task_desc=desc,
        sums=sums,
        relative=relative,
        relative_row=relative_row,
        relative_col=relative_col,
        relative_error=relative_error,
    )


def _fmt(value: object, digits: int = 2) -> str:
    if value is None or pd.isna(value):
        return "-"
    if isinstance(value, float):
        return f"{value:.{digits}f}"
    return str(value)


def format_confusion_matrix(cm: ConfusionMatrix, relative: bool = False) -> Table:
    """
    Render a confusion matrix as a rich table.

    With relative=True the class cells show 'row/col' relative values and
    the margins the error rates.
    """
    if relative and (cm.relative_row is None or cm.relative_col is None):
        msg = "Confusion matrix was computed without relative=True"
        raise ValueError(msg)

    title = "Relative confusion matrix" if relative else "Absolute confusion matrix"
    table = Table(title=title)
    table.add_column("true \\ predicted", style="cyan")

    if not relative:
        for col in cm.result.columns:
            table.add_column(str(col), justify="right")
        for label, row in cm.result.iterrows():
            table.add_row(str(label), *(_fmt(v) for v in row))
        return table

    levels = list(cm.task_desc.class_levels)
    rel_row, rel_col = cm.relative_row, cm.relative_col
    for col in [*levels, ERR]:
        table.add_column(col, justify="right")
    for true_cls in levels:
        cells = [
            f"{_fmt(rel_row.loc[true_cls, p])}/{_fmt(rel_col.loc[true_cls, p])}"
            for p in levels
        ]
        table.add_row(true_cls, *cells, _fmt(rel_row.loc[true_cls, ERR]))
    table.add_row(
        ERR,
        *(_fmt(rel_col.loc[ERR, p]) for p in levels),
        _fmt(cm.relative_error),
        style="dim",
    )
    return table
