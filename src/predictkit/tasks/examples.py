"""
Bundled example tasks.

Built from the toy datasets shipped with scikit-learn so that they are
available offline.
"""

from collections.abc import Callable

import pandas as pd
from sklearn.datasets import load_breast_cancer, load_diabetes, load_iris, load_wine

from predictkit.tasks.core import Task, make_classif_task, make_regr_task


def _frame(loader: Callable[..., object], target: str) -> pd.DataFrame:
    bunch = loader(as_frame=True)
    data = bunch.frame.copy()  # type: ignore[attr-defined]
    return data.rename(columns={"target": target})


def _iris() -> Task:
    data = _frame(load_iris, "Species")
    data.columns = [c.replace(" (cm)", "").replace(" ", "_") for c in data.columns]
    names = ["setosa", "versicolor", "virginica"]
    data["Species"] = data["Species"].map(dict(enumerate(names)))
    return make_classif_task("iris", data, target="Species")


def _bc() -> Task:
    data = _frame(load_breast_cancer, "Class")
    data.columns = [c.replace(" ", "_") for c in data.columns]
    # sklearn encodes malignant as 0 and benign as 1
    data["Class"] = data["Class"].map({0: "malignant", 1: "benign"})
    return make_classif_task("bc", data, target="Class", positive="malignant")


def _wine() -> Task:
    data = _frame(load_wine, "Class")
    data["Class"] = data["Class"].map(lambda c: f"cultivar_{c + 1}")
    return make_classif_task("wine", data, target="Class")


def _diabetes() -> Task:
    data = _frame(load_diabetes, "progression")
    return make_regr_task("diabetes", data, target="progression")


TASK_REGISTRY: dict[str, tuple[Callable[[], Task], str]] = {
    "iris": (_iris, "Iris flowers, 3 species (classif)"),
    "bc": (_bc, "Wisconsin breast cancer, malignant vs benign (classif)"),
    "wine": (_wine, "Wine cultivars, 3 classes (classif)"),
    "diabetes": (_diabetes, "Diabetes disease progression (regr)"),
}


def load_task(name: str) -> Task:
    """
    Load a bundled example task.

    Raises:
        KeyError: If the task name is unknown.
    """
    if name not in TASK_REGISTRY:
        available = ", ".join(TASK_REGISTRY)
        msg = f"Unknown task '{name}'. Available: {available}"
        raise KeyError(msg)
    factory, _ = TASK_REGISTRY[name]
    return factory()


def list_tasks() -> dict[str, str]:
    """Map bundled task names to a short description."""
    return {name: description for name, (_, description) in TASK_REGISTRY.items()}
