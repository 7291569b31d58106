"""Tests for model training and persistence."""

from pathlib import Path

import joblib
import numpy as np
import pandas as pd
import pytest
from sklearn.discriminant_analysis import LinearDiscriminantAnalysis
from sklearn.preprocessing import StandardScaler

from predictkit.learners import make_learner
from predictkit.modeling.preprocessing import build_preprocessor, split_feature_types
from predictkit.modeling.prediction import predict
from predictkit.modeling.training import WrappedModel, load_model, save_model, train
from predictkit.tasks import make_classif_task


class TestTrain:
    """Tests for train()."""

    def test_train_on_all_rows(self, iris_task) -> None:
        """Training on the full task."""
        model = train(make_learner("classif.lda"), iris_task)
        assert isinstance(model, WrappedModel)
        assert model.subset is None
        assert model.n_train is None
        assert model.features == iris_task.feature_names
        assert model.task_desc.class_levels == ("setosa", "versicolor", "virginica")
        assert isinstance(model.get_learner_model(), LinearDiscriminantAnalysis)
        assert model.time_train >= 0

    def test_train_on_subset(self, diabetes_task) -> None:
        """Only the subset rows are used."""
        rows = list(range(0, diabetes_task.n_obs, 2))
        model = train(make_learner("regr.lm"), diabetes_task, subset=rows)
        assert model.n_train == 221
        assert model.subset == rows

    def test_str(self, iris_task) -> None:
        """The model summary names learner and task."""
        text = str(train(make_learner("classif.lda"), iris_task, subset=range(0, 150, 3)))
        assert "learner.id=classif.lda" in text
        assert "task.id = iris" in text
        assert "obs = 50" in text

    def test_task_type_mismatch(self, iris_task) -> None:
        """Regression learners cannot train on classification tasks."""
        with pytest.raises(ValueError, match="is for 'regr' tasks"):
            train(make_learner("regr.lm"), iris_task)

    def test_twoclass_learner_on_multiclass_task(self, iris_task, bc_task) -> None:
        """Two-class only learners reject multiclass tasks."""
        with pytest.raises(ValueError, match="multiclass"):
            train(make_learner("classif.logreg"), iris_task)
        assert train(make_learner("classif.logreg"), bc_task).task_desc.is_binary

    def test_weights(self, iris_task) -> None:
        """Weights are passed to learners that support them."""
        weights = np.ones(iris_task.n_obs)
        weights[:50] = 0.0
        model = train(make_learner("classif.rpart"), iris_task, weights=weights)
        pred = predict(model, task=iris_task, subset=range(50, 150))
        assert set(pred.data["response"].astype(str)) <= {"versicolor", "virginica"}

    def test_weights_unsupported(self, iris_task) -> None:
        """Learners without the weights property reject weights."""
        with pytest.raises(ValueError, match="observation weights"):
            train(make_learner("classif.lda"), iris_task, weights=np.ones(150))

    def test_weights_length(self, iris_task) -> None:
        """One weight per training row is required."""
        with pytest.raises(ValueError, match="Got 10 weights"):
            train(make_learner("classif.rpart"), iris_task, subset=range(20), weights=[1.0] * 10)

    def test_categorical_features(self, mixed_data: pd.DataFrame) -> None:
        """Categorical features are one-hot encoded; unseen levels are ignored."""
        task = make_classif_task("mixed", mixed_data, target="label")
        model = train(make_learner("classif.logreg"), task)
        newdata = pd.DataFrame({"x": [1.5, -1.5], "color": ["purple", "red"]})
        pred = predict(model, newdata=newdata)
        assert pred.n_obs == 2
        assert list(pred.data.columns) == ["response"]

    def test_standardize_property(self, iris_task) -> None:
        """Distance based learners standardize numeric features."""
        model = train(make_learner("classif.kknn"), iris_task)
        preprocessor = model.pipeline.named_steps["preprocessor"]
        assert isinstance(preprocessor.named_transformers_["numeric"], StandardScaler)


class TestPreprocessing:
    """Tests for the preprocessing helpers."""

    def test_split_feature_types(self) -> None:
        """Numbers are numeric; strings and booleans are categorical."""
        frame = pd.DataFrame({"a": [1.0], "b": ["x"], "c": [True], "d": [3]})
        numeric, categorical = split_feature_types(frame)
        assert numeric == ["a", "d"]
        assert categorical == ["b", "c"]

    def test_passthrough_without_standardize(self) -> None:
        """Numeric features pass through unchanged."""
        frame = pd.DataFrame({"a": [1.0, 2.0, 3.0]})
        out = build_preprocessor(frame).fit_transform(frame)
        np.testing.assert_allclose(out[:, 0], [1.0, 2.0, 3.0])


class TestPersistence:
    """Tests for save_model / load_model."""

    def test_roundtrip(self, tmp_path: Path, iris_task) -> None:
        """A loaded model predicts like the saved one."""
        model = train(make_learner("classif.lda", predict_type="prob"), iris_task)
        path = save_model(model, tmp_path / "models" / "iris_lda.joblib")
        assert path.exists()

        loaded = load_model(path)
        assert loaded.learner == model.learner
        pd.testing.assert_frame_equal(
            predict(loaded, task=iris_task).data,
            predict(model, task=iris_task).data,
        )

    def test_missing_file(self, tmp_path: Path) -> None:
        """Missing model files raise FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_model(tmp_path / "missing.joblib")

    def test_wrong_content(self, tmp_path: Path) -> None:
        """Files not holding a WrappedModel raise TypeError."""
        path = tmp_path / "dict.joblib"
        joblib.dump({"not": "a model"}, path)
        with pytest.raises(TypeError, match="does not contain a WrappedModel"):
            load_model(path)
