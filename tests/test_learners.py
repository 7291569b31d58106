"""Tests for the learner registry and the standard error estimators."""

import numpy as np
import pytest
from sklearn.discriminant_analysis import LinearDiscriminantAnalysis
from sklearn.gaussian_process import GaussianProcessRegressor
from sklearn.linear_model import LinearRegression

from predictkit.learners import (
    LEARNER_REGISTRY,
    Learner,
    list_learners,
    make_learner,
    set_hyper_pars,
    set_predict_type,
)
from predictkit.learners.estimators import LinearRegressionSE, RandomForestRegressorSE


class TestMakeLearner:
    """Tests for creating learners."""

    def test_defaults(self) -> None:
        """A learner predicts responses unless told otherwise."""
        learner = make_learner("classif.lda")
        assert isinstance(learner, Learner)
        assert learner.predict_type == "response"
        assert learner.params == {}
        assert learner.task_type == "classif"
        assert learner.short_name == "lda"

    def test_make_estimator(self) -> None:
        """Learners build fresh sklearn estimators."""
        learner = make_learner("classif.lda")
        first = learner.make_estimator()
        assert isinstance(first, LinearDiscriminantAnalysis)
        assert first is not learner.make_estimator()

    def test_params_override_defaults(self) -> None:
        """User hyperparameters take precedence over registry defaults."""
        learner = make_learner("classif.kknn", n_neighbors=3)
        assert learner.estimator_params == {"n_neighbors": 3, "weights": "distance"}
        assert learner.make_estimator().n_neighbors == 3

    def test_gausspr_gets_kernel(self) -> None:
        """The Gaussian process has a kernel with a noise term."""
        estimator = make_learner("regr.gausspr", predict_type="se").make_estimator()
        assert isinstance(estimator, GaussianProcessRegressor)
        assert estimator.kernel is not None
        assert "WhiteKernel" in repr(estimator.kernel)

    def test_unknown_id(self) -> None:
        """Unknown ids raise KeyError."""
        with pytest.raises(KeyError, match="Unknown learner"):
            make_learner("classif.c50")

    def test_prob_needs_classification(self) -> None:
        """Regression learners cannot predict probabilities."""
        with pytest.raises(ValueError, match="only available for classification"):
            make_learner("regr.lm", predict_type="prob")

    def test_se_needs_regression(self) -> None:
        """Classification learners cannot predict standard errors."""
        with pytest.raises(ValueError, match="only available for regression"):
            make_learner("classif.lda", predict_type="se")

    def test_se_needs_support(self) -> None:
        """Learners without the se property reject predict_type 'se'."""
        with pytest.raises(ValueError, match="does not support"):
            make_learner("regr.rpart", predict_type="se")

    def test_invalid_predict_type(self) -> None:
        """Only response, prob and se exist."""
        with pytest.raises(ValueError, match="predict_type must be one of"):
            make_learner("classif.lda", predict_type="class")  # type: ignore[arg-type]

    def test_every_registered_learner_builds(self) -> None:
        """All registry entries construct an estimator."""
        for learner_id in LEARNER_REGISTRY:
            assert make_learner(learner_id).make_estimator() is not None

    def test_describe(self) -> None:
        """Descriptions show id, predict type and parameters."""
        assert make_learner("classif.lda").describe() == "classif.lda (response)"
        learner = make_learner("classif.kknn", predict_type="prob", n_neighbors=3)
        assert learner.describe() == "classif.kknn (prob): n_neighbors=3"


class TestLearnerUpdates:
    """Tests for set_predict_type and set_hyper_pars."""

    def test_set_predict_type_returns_copy(self) -> None:
        """The input learner is not modified."""
        learner = make_learner("classif.rpart")
        prob = set_predict_type(learner, "prob")
        assert prob.predict_type == "prob"
        assert learner.predict_type == "response"

    def test_set_predict_type_validates(self) -> None:
        """Unsupported predict types raise."""
        with pytest.raises(ValueError):
            set_predict_type(make_learner("regr.kknn"), "se")

    def test_set_hyper_pars_merges(self) -> None:
        """New hyperparameters are merged into existing ones."""
        learner = make_learner("classif.rpart", max_depth=3)
        updated = set_hyper_pars(learner, min_samples_leaf=5)
        assert updated.params == {"max_depth": 3, "min_samples_leaf": 5}
        assert learner.params == {"max_depth": 3}

    def test_learner_is_frozen(self) -> None:
        """Learners are immutable."""
        learner = make_learner("classif.lda")
        with pytest.raises(AttributeError):
            learner.predict_type = "prob"  # type: ignore[misc]


class TestListLearners:
    """Tests for listing learners."""

    def test_all(self) -> None:
        """Without filters every learner is listed."""
        assert list_learners() == list(LEARNER_REGISTRY)

    def test_by_type(self) -> None:
        """Filtering by task type."""
        regr = list_learners("regr")
        assert regr and all(lid.startswith("regr.") for lid in regr)

    def test_by_properties(self) -> None:
        """Filtering by required properties."""
        assert list_learners("regr", ["se"]) == [
            "regr.lm",
            "regr.randomForest",
            "regr.gausspr",
        ]
        multiclass = list_learners("classif", ["multiclass"])
        assert "classif.lda" in multiclass
        assert "classif.logreg" not in multiclass


class TestLinearRegressionSE:
    """Tests for the linear model with standard errors."""

    @pytest.fixture
    def line_data(self) -> tuple[np.ndarray, np.ndarray]:
        rng = np.random.default_rng(0)
        X = np.linspace(-2, 2, 41).reshape(-1, 1)
        y = 1.0 + 2.0 * X[:, 0] + rng.normal(scale=0.5, size=41)
        return X, y

    def test_matches_sklearn_linear_regression(self, line_data) -> None:
        """Coefficients and predictions equal ordinary least squares."""
        X, y = line_data
        model = LinearRegressionSE().fit(X, y)
        reference = LinearRegression().fit(X, y)
        np.testing.assert_allclose(model.coef_, reference.coef_)
        assert model.intercept_ == pytest.approx(reference.intercept_)
        np.testing.assert_allclose(model.predict(X), reference.predict(X))

    def test_standard_errors(self, line_data) -> None:
        """Standard errors are positive and smallest at the centre of the data."""
        X, y = line_data
        model = LinearRegressionSE().fit(X, y)
        mean, se = model.predict(np.array([[-2.0], [0.0], [2.0]]), return_std=True)
        assert mean.shape == se.shape == (3,)
        assert (se > 0).all()
        assert se[1] < se[0]
        assert se[0] == pytest.approx(se[2])

    def test_standard_error_formula(self, line_data) -> None:
        """se at the mean of x equals sigma / sqrt(n)."""
        X, y = line_data
        model = LinearRegressionSE().fit(X, y)
        _, se = model.predict(np.array([[X.mean()]]), return_std=True)
        assert se[0] == pytest.approx(np.sqrt(model.sigma2_ / len(y)))

    def test_exact_fit_has_zero_se(self) -> None:
        """Without residual variance the standard error vanishes."""
        X = np.arange(5, dtype=float).reshape(-1, 1)
        _, se = LinearRegressionSE().fit(X, 3 * X[:, 0]).predict(X, return_std=True)
        np.testing.assert_allclose(se, 0.0, atol=1e-6)

    def test_no_residual_degrees_of_freedom(self) -> None:
        """With n <= p the standard error is NaN."""
        X = np.array([[0.0], [1.0]])
        _, se = LinearRegressionSE().fit(X, np.array([1.0, 2.0])).predict(X, return_std=True)
        assert np.isnan(se).all()

    def test_sample_weight(self) -> None:
        """Zero weights remove observations from the fit."""
        X = np.array([[0.0], [1.0], [2.0], [3.0]])
        y = np.array([0.0, 1.0, 2.0, 30.0])
        model = LinearRegressionSE().fit(X, y, sample_weight=[1, 1, 1, 0])
        assert model.coef_[0] == pytest.approx(1.0)
        assert model.intercept_ == pytest.approx(0.0, abs=1e-9)

    def test_without_intercept(self) -> None:
        """fit_intercept=False fits through the origin."""
        X = np.array([[1.0], [2.0], [3.0]])
        model = LinearRegressionSE(fit_intercept=False).fit(X, 2 * X[:, 0])
        assert model.intercept_ == 0.0
        assert model.coef_[0] == pytest.approx(2.0)


class TestRandomForestRegressorSE:
    """Tests for the random forest with standard errors."""

    def test_predict_with_std(self) -> None:
        """Mean equals the forest prediction; spread is non-negative."""
        rng = np.random.default_rng(1)
        X = rng.uniform(size=(80, 2))
        y = X[:, 0] * 3 + rng.normal(scale=0.1, size=80)
        model = RandomForestRegressorSE(n_estimators=20, random_state=1).fit(X, y)
        mean, se = model.predict(X[:5], return_std=True)
        np.testing.assert_allclose(mean, model.predict(X[:5]))
        assert se.shape == (5,)
        assert (se >= 0).all()
        assert se.max() > 0

    def test_get_params_roundtrip(self) -> None:
        """The subclass keeps the sklearn parameter interface."""
        model = RandomForestRegressorSE(n_estimators=7)
        assert model.get_params()["n_estimators"] == 7
