"""
Learners: algorithm configurations backed by scikit-learn estimators.
"""

from predictkit.learners.registry import (
    LEARNER_REGISTRY,
    Learner,
    list_learners,
    make_learner,
    set_hyper_pars,
    set_predict_type,
)

__all__ = [
    "LEARNER_REGISTRY",
    "Learner",
    "list_learners",
    "make_learner",
    "set_hyper_pars",
    "set_predict_type",
]
