"""
Learner registry and factory.

A learner is a configuration: an algorithm id, hyperparameters and the
kind of prediction it should produce. It builds a fresh scikit-learn
estimator on demand and never holds fitted state.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from typing import Any, Literal

from sklearn.base import BaseEstimator
from sklearn.discriminant_analysis import (
    LinearDiscriminantAnalysis,
    QuadraticDiscriminantAnalysis,
)
from sklearn.ensemble import RandomForestClassifier
from sklearn.gaussian_process import GaussianProcessRegressor
from sklearn.gaussian_process.kernels import RBF, ConstantKernel, WhiteKernel
from sklearn.linear_model import LogisticRegression
from sklearn.naive_bayes import GaussianNB
from sklearn.neighbors import KNeighborsClassifier, KNeighborsRegressor
from sklearn.svm import SVC, SVR
from sklearn.tree import DecisionTreeClassifier, DecisionTreeRegressor

from predictkit.learners.estimators import LinearRegressionSE, RandomForestRegressorSE
from predictkit.utils.logging import get_logger

log = get_logger(__name__)

PredictType = Literal["response", "prob", "se"]
PREDICT_TYPES: tuple[str, ...] = ("response", "prob", "se")


@dataclass(frozen=True)
class LearnerSpec:
    """Registry entry: how to build an estimator and what it supports."""

    estimator: type[BaseEstimator]
    defaults: dict[str, Any]
    properties: frozenset[str]
    name: str


def _gp_kernel() -> Any:
    return ConstantKernel(1.0) * RBF(length_scale=1.0) + WhiteKernel(noise_level=1.0)


# Properties:
#   prob/se      - can predict class probabilities / standard errors
#   twoclass/multiclass - supported classification problems
#   weights      - fit() accepts sample_weight
#   standardize  - numeric features are scaled before fitting
LEARNER_REGISTRY: dict[str, LearnerSpec] = {
    "classif.lda": LearnerSpec(
        LinearDiscriminantAnalysis,
        {},
        frozenset({"prob", "twoclass", "multiclass"}),
        "Linear Discriminant Analysis",
    ),
    "classif.qda": LearnerSpec(
        QuadraticDiscriminantAnalysis,
        {},
        frozenset({"prob", "twoclass", "multiclass"}),
        "Quadratic Discriminant Analysis",
    ),
    "classif.rpart": LearnerSpec(
        DecisionTreeClassifier,
        {"min_samples_split": 20, "ccp_alpha": 0.01},
        frozenset({"prob", "twoclass", "multiclass", "weights"}),
        "Decision Tree",
    ),
    "classif.randomForest": LearnerSpec(
        RandomForestClassifier,
        {"n_estimators": 500},
        frozenset({"prob", "twoclass", "multiclass", "weights"}),
        "Random Forest",
    ),
    "classif.logreg": LearnerSpec(
        LogisticRegression,
        {"max_iter": 1000},
        frozenset({"prob", "twoclass", "weights"}),
        "Logistic Regression",
    ),
    "classif.multinom": LearnerSpec(
        LogisticRegression,
        {"max_iter": 1000},
        frozenset({"prob", "twoclass", "multiclass", "weights"}),
        "Multinomial Regression",
    ),
    "classif.kknn": LearnerSpec(
        KNeighborsClassifier,
        {"n_neighbors": 7, "weights": "distance"},
        frozenset({"prob", "twoclass", "multiclass", "standardize"}),
        "k-Nearest Neighbours",
    ),
    "classif.naiveBayes": LearnerSpec(
        GaussianNB,
        {},
        frozenset({"prob", "twoclass", "multiclass", "weights"}),
        "Naive Bayes",
    ),
    "classif.svm": LearnerSpec(
        SVC,
        {"probability": True},
        frozenset({"prob", "twoclass", "multiclass", "weights", "standardize"}),
        "Support Vector Machine",
    ),
    "regr.lm": LearnerSpec(
        LinearRegressionSE,
        {},
        frozenset({"se", "weights"}),
        "Linear Regression",
    ),
    "regr.rpart": LearnerSpec(
        DecisionTreeRegressor,
        {"min_samples_split": 20, "ccp_alpha": 0.01},
        frozenset({"weights"}),
        "Decision Tree",
    ),
    "regr.randomForest": LearnerSpec(
        RandomForestRegressorSE,
        {"n_estimators": 500},
        frozenset({"se", "weights"}),
        "Random Forest",
    ),
    "regr.gausspr": LearnerSpec(
        GaussianProcessRegressor,
        {"normalize_y": True},
        frozenset({"se", "standardize"}),
        "Gaussian Process",
    ),
    "regr.kknn": LearnerSpec(
        KNeighborsRegressor,
        {"n_neighbors": 7, "weights": "distance"},
        frozenset({"standardize"}),
        "k-Nearest Neighbours",
    ),
    "regr.svm": LearnerSpec(
        SVR,
        {},
        frozenset({"weights", "standardize"}),
        "Support Vector Regression",
    ),
}


@dataclass(frozen=True)
class Learner:
    """
    Learner configuration.

    Attributes:
        id: Registry id, e.g. 'classif.lda'.
        predict_type: 'response', 'prob' (classification) or 'se' (regression).
        params: Hyperparameters that override the registry defaults.
    """

    id: str
    predict_type: PredictType = "response"
    params: dict[str, Any] = field(default_factory=dict)

    @property
    def spec(self) -> LearnerSpec:
        """Registry entry of this learner."""
        return LEARNER_REGISTRY[self.id]

    @property
    def task_type(self) -> str:
        """'classif' or 'regr', taken from the id prefix."""
        return self.id.split(".", 1)[0]

    @property
    def short_name(self) -> str:
        """Id without the task type prefix."""
        return self.id.split(".", 1)[1]

    @property
    def properties(self) -> frozenset[str]:
        """Capabilities of the underlying algorithm."""
        return self.spec.properties

    @property
    def estimator_params(self) -> dict[str, Any]:
        """Registry defaults merged with the user hyperparameters."""
        return {**self.spec.defaults, **self.params}

    def make_estimator(self) -> BaseEstimator:
        """Build a fresh, unfitted scikit-learn estimator."""
        params = self.estimator_params
        if self.id == "regr.gausspr" and "kernel" not in params:
            params["kernel"] = _gp_kernel()
        log.debug("Creating estimator", learner=self.id, params=params)
        return self.spec.estimator(**params)

    def describe(self) -> str:
        """One-line description, e.g. 'classif.lda (prob): solver=lsqr'."""
        pars = ", ".join(f"{k}={v}" for k, v in self.params.items())
        text = f"{self.id} ({self.predict_type})"
        return f"{text}: {pars}" if pars else text


def _check_predict_type(learner_id: str, predict_type: str) -> None:
    if predict_type not in PREDICT_TYPES:
        msg = f"predict_type must be one of {PREDICT_TYPES}, got '{predict_type}'"
        raise ValueError(msg)
    if predict_type == "response":
        return

    spec = LEARNER_REGISTRY[learner_id]
    task_type = learner_id.split(".", 1)[0]
    if predict_type == "prob" and task_type != "classif":
        msg = f"predict_type 'prob' is only available for classification, not '{learner_id}'"
        raise ValueError(msg)
    if predict_type == "se" and task_type != "regr":
        msg = f"predict_type 'se' is only available for regression, not '{learner_id}'"
        raise ValueError(msg)
    if predict_type not in spec.properties:
        msg = f"Learner '{learner_id}' does not support predict_type '{predict_type}'"
        raise ValueError(msg)


def make_learner(
    id: str,
    predict_type: PredictType = "response",
    **params: Any,
) -> Learner:
    """
    Create a learner by registry id.

    Args:
        id: Registry id, e.g. 'classif.lda' or 'regr.lm'.
        predict_type: Kind of prediction to produce.
        **params: Hyperparameters overriding the registry defaults.

    Returns:
        Learner configuration.

    Raises:
        KeyError: If the id is not registered.
        ValueError: If the learner cannot produce the requested predict_type.
    """
    if id not in LEARNER_REGISTRY:
        available = ", ".join(LEARNER_REGISTRY)
        msg = f"Unknown learner '{id}'. Available: {available}"
        raise KeyError(msg)
    _check_predict_type(id, predict_type)
    return Learner(id=id, predict_type=predict_type, params=dict(params))


def set_predict_type(learner: Learner, predict_type: PredictType) -> Learner:
    """Return a copy of the learner with another predict_type."""
    _check_predict_type(learner.id, predict_type)
    return replace(learner, predict_type=predict_type)


def set_hyper_pars(learner: Learner, **params: Any) -> Learner:
    """Return a copy of the learner with updated hyperparameters."""
    return replace(learner, params={**learner.params, **params})


def list_learners(
    task_type: str | None = None,
    properties: Iterable[str] = (),
) -> list[str]:
    """
    List registered learner ids.

    Args:
        task_type: Only learners for 'classif' or 'regr'.
        properties: Only learners having all of these properties.
    """
    required = set(properties)
    return [
        learner_id
        for learner_id, spec in LEARNER_REGISTRY.items()
        if (task_type is None or learner_id.startswith(f"{task_type}."))
        and required <= spec.properties
    ]
