"""Tests for classification thresholds."""

import numpy as np
import pandas as pd
import pytest

from predictkit.learners import make_learner
from predictkit.modeling.prediction import Prediction, predict
from predictkit.modeling.threshold import (
    default_threshold,
    normalize_threshold,
    response_from_probabilities,
    set_threshold,
    tune_threshold,
)
from predictkit.modeling.training import train


def _responses(pred: Prediction) -> list[str]:
    return pred.data["response"].astype(str).tolist()


@pytest.fixture
def multiclass_prediction(multiclass_desc) -> Prediction:
    levels = list(multiclass_desc.class_levels)
    probs = np.array(
        [
            [0.6, 0.3, 0.1],
            [0.2, 0.5, 0.3],
            [0.0, 0.4, 0.6],
        ]
    )
    data = pd.DataFrame(
        {
            "truth": pd.Categorical(["a", "b", "c"], categories=levels),
            **{f"prob.{c}": probs[:, j] for j, c in enumerate(levels)},
            "response": pd.Categorical(["a", "b", "c"], categories=levels),
        }
    )
    return Prediction(
        data=data,
        predict_type="prob",
        task_desc=multiclass_desc,
        threshold=default_threshold(multiclass_desc),
    )


class TestDefaultThreshold:
    """Tests for default thresholds."""

    def test_binary(self, binary_desc) -> None:
        """Binary tasks default to 0.5 for both classes."""
        assert default_threshold(binary_desc) == {"a": 0.5, "b": 0.5}

    def test_multiclass(self, multiclass_desc) -> None:
        """Multiclass tasks default to 1/k."""
        assert default_threshold(multiclass_desc) == pytest.approx(
            {"a": 1 / 3, "b": 1 / 3, "c": 1 / 3}
        )


class TestNormalizeThreshold:
    """Tests for threshold validation."""

    def test_binary_scalar(self, binary_desc) -> None:
        """A scalar is the positive class threshold."""
        thr = normalize_threshold(0.9, binary_desc)
        assert thr == pytest.approx({"a": 0.9, "b": 0.1})

    def test_binary_scalar_out_of_range(self, binary_desc) -> None:
        """Binary thresholds must lie in [0, 1]."""
        with pytest.raises(ValueError, match=r"\[0, 1\]"):
            normalize_threshold(1.5, binary_desc)

    def test_scalar_on_multiclass(self, multiclass_desc) -> None:
        """Multiclass tasks need one value per class."""
        with pytest.raises(ValueError, match="only allowed for binary tasks"):
            normalize_threshold(0.5, multiclass_desc)

    def test_mapping_in_level_order(self, multiclass_desc) -> None:
        """Mappings are returned in class level order."""
        thr = normalize_threshold({"c": 1, "a": 2, "b": 3}, multiclass_desc)
        assert list(thr) == ["a", "b", "c"]
        assert thr == {"a": 2.0, "b": 3.0, "c": 1.0}

    def test_mapping_class_mismatch(self, multiclass_desc) -> None:
        """Class names must match the task levels."""
        with pytest.raises(ValueError, match="missing=\\['c'\\]"):
            normalize_threshold({"a": 1, "b": 1}, multiclass_desc)
        with pytest.raises(ValueError, match="unknown=\\['d'\\]"):
            normalize_threshold({"a": 1, "b": 1, "c": 1, "d": 1}, multiclass_desc)

    def test_negative_values(self, multiclass_desc) -> None:
        """Negative weights are rejected."""
        with pytest.raises(ValueError, match="non-negative"):
            normalize_threshold({"a": -1, "b": 1, "c": 1}, multiclass_desc)

    def test_wrong_type(self, binary_desc) -> None:
        """Strings are neither numbers nor mappings."""
        with pytest.raises(ValueError, match="number or a mapping"):
            normalize_threshold("0.5", binary_desc)  # type: ignore[arg-type]


class TestResponseFromProbabilities:
    """Tests for the prob / threshold rule."""

    def test_ties_go_to_first_level(self) -> None:
        """Equal scores pick the first class level."""
        probs = pd.DataFrame({"a": [0.5], "b": [0.5]})
        response = response_from_probabilities(probs, {"a": 0.5, "b": 0.5}, ["a", "b"])
        assert list(response) == ["a"]

    def test_zero_threshold_wins(self) -> None:
        """A zero threshold selects the class whenever its probability is positive."""
        probs = pd.DataFrame({"a": [0.01, 0.0], "b": [0.99, 1.0]})
        response = response_from_probabilities(probs, {"a": 0.0, "b": 1.0}, ["a", "b"])
        assert list(response) == ["a", "b"]

    def test_empty(self) -> None:
        """No rows give an empty categorical."""
        probs = pd.DataFrame({"a": [], "b": []})
        response = response_from_probabilities(probs, {"a": 0.5, "b": 0.5}, ["a", "b"])
        assert len(response) == 0
        assert list(response.categories) == ["a", "b"]


class TestSetThreshold:
    """Tests for set_threshold()."""

    def test_binary_threshold(self, binary_prediction) -> None:
        """Raising the positive threshold predicts fewer positives."""
        pred = set_threshold(binary_prediction, 0.8)
        assert _responses(pred) == ["a", "b", "b", "b"]
        assert pred.threshold == pytest.approx({"a": 0.8, "b": 0.2})

    def test_low_threshold(self, binary_prediction) -> None:
        """Lowering the positive threshold predicts more positives."""
        pred = set_threshold(binary_prediction, 0.2)
        assert _responses(pred) == ["a", "a", "a", "b"]

    def test_probabilities_unchanged(self, binary_prediction) -> None:
        """Only the response column changes."""
        pred = set_threshold(binary_prediction, 0.8)
        pd.testing.assert_series_equal(pred.data["prob.a"], binary_prediction.data["prob.a"])
        pd.testing.assert_series_equal(pred.data["truth"], binary_prediction.data["truth"])

    def test_input_not_modified(self, binary_prediction) -> None:
        """set_threshold returns a new prediction."""
        set_threshold(binary_prediction, 0.8)
        assert _responses(binary_prediction) == ["a", "a", "b", "b"]
        assert binary_prediction.threshold == {"a": 0.5, "b": 0.5}

    def test_multiclass_weights(self, multiclass_prediction) -> None:
        """A large threshold suppresses a class."""
        pred = set_threshold(multiclass_prediction, {"a": 1, "b": 50, "c": 1})
        assert _responses(pred) == ["a", "c", "c"]

    def test_multiclass_small_threshold(self, multiclass_prediction) -> None:
        """A tiny threshold makes a class win wherever it has probability."""
        pred = set_threshold(multiclass_prediction, {"a": 0.01, "b": 1, "c": 1})
        assert _responses(pred) == ["a", "a", "c"]

    def test_response_prediction_rejected(self, binary_prediction) -> None:
        """Thresholds need probabilities."""
        response_only = Prediction(
            data=binary_prediction.data[["truth", "response"]],
            predict_type="response",
            task_desc=binary_prediction.task_desc,
        )
        with pytest.raises(ValueError, match="predict_type 'prob'"):
            set_threshold(response_only, 0.5)

    def test_regression_rejected(self, regr_desc) -> None:
        """Regression predictions have no threshold."""
        pred = Prediction(
            data=pd.DataFrame({"response": [1.0]}),
            predict_type="response",
            task_desc=regr_desc,
        )
        with pytest.raises(ValueError, match="only be set for classification"):
            set_threshold(pred, 0.5)

    def test_on_trained_model(self, bc_task) -> None:
        """A high malignant threshold does not add malignant predictions."""
        model = train(make_learner("classif.rpart", predict_type="prob"), bc_task)
        pred = predict(model, task=bc_task)
        strict = set_threshold(pred, 0.9)

        def n_malignant(p: Prediction) -> int:
            return int((p.data["response"] == "malignant").sum())

        assert n_malignant(strict) <= n_malignant(pred)
        assert strict.threshold == pytest.approx({"benign": 0.1, "malignant": 0.9})


class TestTuneThreshold:
    """Tests for tune_threshold()."""

    def test_finds_separating_threshold(self, binary_prediction) -> None:
        """The tuned threshold separates the classes perfectly."""
        t, perf = tune_threshold(set_threshold(binary_prediction, 0.95), "mmce")
        assert 0.4 <= t <= 0.7
        assert perf == 0.0

    def test_maximised_measure(self, binary_prediction) -> None:
        """Measures to maximise are maximised."""
        t, perf = tune_threshold(binary_prediction, "acc", gridsize=11)
        assert perf == 1.0
        assert 0.4 <= t <= 0.7

    def test_multiclass_rejected(self, multiclass_prediction) -> None:
        """Only binary tasks are supported."""
        with pytest.raises(ValueError, match="binary"):
            tune_threshold(multiclass_prediction)

    def test_unknown_measure(self, binary_prediction) -> None:
        """Unknown measures raise KeyError."""
        with pytest.raises(KeyError):
            tune_threshold(binary_prediction, "kappa")

    def test_gridsize(self, binary_prediction) -> None:
        """At least two grid points are needed."""
        with pytest.raises(ValueError, match="gridsize"):
            tune_threshold(binary_prediction, gridsize=1)
