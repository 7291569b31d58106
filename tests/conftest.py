"""Pytest configuration and shared fixtures."""

from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest

from predictkit.modeling.prediction import Prediction
from predictkit.tasks import ClassifTask, RegrTask, TaskDesc, load_task


@pytest.fixture(autouse=True)
def close_figures():
    """Close all matplotlib figures after each test."""
    yield
    plt.close("all")


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture(scope="session")
def iris_task() -> ClassifTask:
    """Iris flowers, 3 classes."""
    return load_task("iris")


@pytest.fixture(scope="session")
def bc_task() -> ClassifTask:
    """Breast cancer, binary with positive class 'malignant'."""
    return load_task("bc")


@pytest.fixture(scope="session")
def diabetes_task() -> RegrTask:
    """Diabetes progression regression task."""
    return load_task("diabetes")


@pytest.fixture
def mixed_data() -> pd.DataFrame:
    """Small binary classification data with a categorical feature."""
    rng = np.random.default_rng(42)
    n = 60
    x = rng.normal(size=n)
    color = rng.choice(["red", "green", "blue"], size=n)
    label = np.where(x + (color == "red") * 0.5 > 0, "yes", "no")
    return pd.DataFrame({"x": x, "color": color, "label": label})


@pytest.fixture
def binary_desc() -> TaskDesc:
    """Description of a two-class task with classes a (positive) and b."""
    return TaskDesc(
        id="toy",
        task_type="classif",
        target="y",
        feature_names=("x",),
        class_levels=("a", "b"),
        positive="a",
    )


@pytest.fixture
def binary_prediction(binary_desc: TaskDesc) -> Prediction:
    """Hand-made probability prediction on four observations."""
    levels = list(binary_desc.class_levels)
    prob_a = np.array([0.9, 0.7, 0.4, 0.1])
    data = pd.DataFrame(
        {
            "id": [0, 1, 2, 3],
            "truth": pd.Categorical(["a", "a", "b", "b"], categories=levels),
            "prob.a": prob_a,
            "prob.b": 1 - prob_a,
            "response": pd.Categorical(["a", "a", "b", "b"], categories=levels),
        }
    )
    return Prediction(
        data=data,
        predict_type="prob",
        task_desc=binary_desc,
        threshold={"a": 0.5, "b": 0.5},
    )


@pytest.fixture
def multiclass_desc() -> TaskDesc:
    """Description of a three-class task."""
    return TaskDesc(
        id="toy3",
        task_type="classif",
        target="y",
        feature_names=("x",),
        class_levels=("a", "b", "c"),
    )


@pytest.fixture
def regr_desc() -> TaskDesc:
    """Description of a regression task."""
    return TaskDesc(id="toyr", task_type="regr", target="y", feature_names=("x",))


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    """Directory with a base.yaml and an iris run config writing to tmp_path."""
    (tmp_path / "base.yaml").write_text(
        f"""
split:
  method: random
  test_size: 0.33
  random_state: 1
confusion:
  relative: true
output:
  root: {tmp_path / "output"}
"""
    )
    (tmp_path / "iris.yaml").write_text(
        """
project: iris-test
task:
  name: iris
learner:
  id: classif.lda
  predict_type: prob
measures: [mmce, acc]
confusion:
  sums: true
"""
    )
    return tmp_path
