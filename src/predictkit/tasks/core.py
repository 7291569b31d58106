"""
Task definitions.

A task bundles a dataset with its target column and the kind of
problem (classification or regression) the data poses.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Literal

import pandas as pd
from pandas.api.types import is_numeric_dtype

from predictkit.utils.logging import get_logger

log = get_logger(__name__)

TaskType = Literal["classif", "regr"]


@dataclass(frozen=True)
class TaskDesc:
    """
    Immutable description of a task.

    Carried by trained models and predictions so they know the target,
    the class levels and the positive class without holding the data.
    """

    id: str
    task_type: TaskType
    target: str
    feature_names: tuple[str, ...]
    class_levels: tuple[str, ...] = ()
    positive: str | None = None

    @property
    def is_binary(self) -> bool:
        """True for two-class classification tasks."""
        return self.task_type == "classif" and len(self.class_levels) == 2

    @property
    def negative(self) -> str | None:
        """Negative class of a binary task."""
        if not self.is_binary:
            return None
        return next(c for c in self.class_levels if c != self.positive)


@dataclass
class Task:
    """
    Base task: a DataFrame plus target metadata.

    Attributes:
        id: Task identifier.
        data: Full dataset including the target column.
        target: Name of the target column.
        task_type: 'classif' or 'regr'.
    """

    id: str
    data: pd.DataFrame
    target: str
    task_type: TaskType = field(init=False)

    def __post_init__(self) -> None:
        if self.data.empty:
            msg = f"Task '{self.id}' has no data"
            raise ValueError(msg)
        if self.target not in self.data.columns:
            msg = f"Target column '{self.target}' not found in data of task '{self.id}'"
            raise ValueError(msg)
        if len(self.data.columns) < 2:
            msg = f"Task '{self.id}' has no feature columns"
            raise ValueError(msg)
        self.data = self.data.reset_index(drop=True)

    @property
    def feature_names(self) -> list[str]:
        """All columns except the target."""
        return [c for c in self.data.columns if c != self.target]

    @property
    def n_obs(self) -> int:
        """Number of observations."""
        return len(self.data)

    @property
    def n_features(self) -> int:
        """Number of features."""
        return len(self.feature_names)

    def _resolve_subset(self, subset: Sequence[int] | None) -> list[int]:
        if subset is None:
            return list(range(self.n_obs))
        rows = [int(i) for i in subset]
        bad = [i for i in rows if i < 0 or i >= self.n_obs]
        if bad:
            msg = f"Subset indices out of range for task '{self.id}': {bad[:5]}"
            raise ValueError(msg)
        return rows

    def _resolve_features(self, features: Sequence[str] | None) -> list[str]:
        if features is None:
            return self.feature_names
        unknown = [f for f in features if f not in self.feature_names]
        if unknown:
            msg = f"Unknown features for task '{self.id}': {unknown}"
            raise ValueError(msg)
        return list(features)

    def get_data(
        self,
        subset: Sequence[int] | None = None,
        features: Sequence[str] | None = None,
        *,
        target_extra: bool = True,
    ) -> pd.DataFrame:
        """
        Get a copy of the task data.

        Args:
            subset: Row positions to select (default: all rows).
            features: Feature columns to select (default: all features).
            target_extra: Whether to append the target column.

        Returns:
            DataFrame indexed by task row position.
        """
        rows = self._resolve_subset(subset)
        columns = self._resolve_features(features)
        if target_extra:
            columns = [*columns, self.target]
        return self.data.iloc[rows][columns].copy()

    def get_target(self, subset: Sequence[int] | None = None) -> pd.Series:
        """Get the target column for the selected rows."""
        rows = self._resolve_subset(subset)
        return self.data[self.target].iloc[rows].copy()

    def subset_task(
        self,
        subset: Sequence[int] | None = None,
        features: Sequence[str] | None = None,
    ) -> "Task":
        """Return a new task restricted to the given rows and/or features."""
        data = self.get_data(subset, features)
        return replace(self, data=data)

    def describe(self) -> TaskDesc:
        """Build the immutable task description."""
        return TaskDesc(
            id=self.id,
            task_type=self.task_type,
            target=self.target,
            feature_names=tuple(self.feature_names),
        )


@dataclass
class ClassifTask(Task):
    """
    Classification task.

    The target is stored as a pandas categorical of string labels.
    For binary tasks `positive` names the positive class (defaults to
    the first class level).
    """

    positive: str | None = None

    def __post_init__(self) -> None:
        self.task_type = "classif"
        super().__post_init__()

        y = self.data[self.target]
        if y.isna().any():
            msg = f"Target column '{self.target}' contains missing values"
            raise ValueError(msg)
        labels = y.astype(str)
        if isinstance(y.dtype, pd.CategoricalDtype):
            # declared levels stay, including ones absent from these rows
            levels = [str(c) for c in y.cat.categories]
        else:
            levels = sorted(labels.unique())
        if len(levels) < 2:
            msg = f"Classification target '{self.target}' needs at least 2 classes, got {levels}"
            raise ValueError(msg)
        self.data[self.target] = pd.Categorical(labels, categories=levels)

        if len(levels) == 2:
            if self.positive is None:
                self.positive = levels[0]
            elif str(self.positive) not in levels:
                msg = f"Positive class '{self.positive}' is not one of {levels}"
                raise ValueError(msg)
            self.positive = str(self.positive)
        elif self.positive is not None:
            log.warning(
                "Ignoring positive class for multiclass task",
                task=self.id,
                positive=self.positive,
            )
            self.positive = None

    @property
    def class_levels(self) -> list[str]:
        """Class labels in level order."""
        return list(self.data[self.target].cat.categories)

    @property
    def is_binary(self) -> bool:
        """True for two-class tasks."""
        return len(self.class_levels) == 2

    @property
    def negative(self) -> str | None:
        """Negative class of a binary task."""
        if not self.is_binary:
            return None
        return next(c for c in self.class_levels if c != self.positive)

    def describe(self) -> TaskDesc:
        return TaskDesc(
            id=self.id,
            task_type=self.task_type,
            target=self.target,
            feature_names=tuple(self.feature_names),
            class_levels=tuple(self.class_levels),
            positive=self.positive,
        )


@dataclass
class RegrTask(Task):
    """Regression task with a numeric target."""

    def __post_init__(self) -> None:
        self.task_type = "regr"
        super().__post_init__()

        y = self.data[self.target]
        if not is_numeric_dtype(y):
            msg = f"Regression target '{self.target}' must be numeric, got {y.dtype}"
            raise ValueError(msg)
        if y.isna().any():
            msg = f"Target column '{self.target}' contains missing values"
            raise ValueError(msg)
        self.data[self.target] = y.astype(float)


def make_classif_task(
    id: str,
    data: pd.DataFrame,
    target: str,
    positive: str | None = None,
) -> ClassifTask:
    """Create a classification task."""
    task = ClassifTask(id=id, data=data.copy(), target=target, positive=positive)
    log.debug(
        "Created classification task",
        task=id,
        n_obs=task.n_obs,
        classes=task.class_levels,
    )
    return task


def make_regr_task(id: str, data: pd.DataFrame, target: str) -> RegrTask:
    """Create a regression task."""
    task = RegrTask(id=id, data=data.copy(), target=target)
    log.debug("Created regression task", task=id, n_obs=task.n_obs)
    return task


def load_task_from_csv(
    path: Path,
    target: str,
    task_type: TaskType,
    id: str | None = None,
    positive: str | None = None,
) -> Task:
    """
    Load a task from a CSV file.

    Args:
        path: CSV file with a header row.
        target: Target column name.
        task_type: 'classif' or 'regr'.
        id: Task identifier (default: file stem).
        positive: Positive class for binary classification.

    Returns:
        Constructed task.
    """
    if not path.exists():
        msg = f"Task data file not found: {path}"
        raise FileNotFoundError(msg)

    data = pd.read_csv(path)
    task_id = id or path.stem
    log.info("Loaded task data", path=str(path), n_rows=len(data))

    if task_type == "classif":
        return make_classif_task(task_id, data, target, positive=positive)
    if task_type == "regr":
        return make_regr_task(task_id, data, target)
    msg = f"Unknown task type '{task_type}'. Use 'classif' or 'regr'"
    raise ValueError(msg)
