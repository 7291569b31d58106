"""
Regressors that report standard errors.

Both estimators follow the GaussianProcessRegressor convention:
``predict(X, return_std=True)`` returns a ``(mean, std)`` tuple.
"""

import numpy as np
from sklearn.base import BaseEstimator, RegressorMixin
from sklearn.ensemble import RandomForestRegressor
from sklearn.utils.validation import check_array, check_is_fitted, check_X_y


class LinearRegressionSE(RegressorMixin, BaseEstimator):
    """
    Ordinary least squares with standard errors of the fitted mean.

    The standard error of a prediction at x is sqrt(x' Cov(beta) x) with
    Cov(beta) = sigma^2 (X'WX)^-1 and sigma^2 the residual variance on
    n - p degrees of freedom. It is NaN when n <= p.
    """

    def __init__(self, fit_intercept: bool = True) -> None:
        self.fit_intercept = fit_intercept

    def _design(self, X: np.ndarray) -> np.ndarray:
        if self.fit_intercept:
            return np.column_stack([np.ones(X.shape[0]), X])
        return X

    def fit(
        self,
        X: np.ndarray,
        y: np.ndarray,
        sample_weight: np.ndarray | None = None,
    ) -> "LinearRegressionSE":
        X, y = check_X_y(X, y, y_numeric=True, dtype=np.float64)
        w = np.ones(len(y)) if sample_weight is None else np.asarray(sample_weight, float)
        design = self._design(X)
        sqrt_w = np.sqrt(w)
        coef, *_ = np.linalg.lstsq(design * sqrt_w[:, None], y * sqrt_w, rcond=None)

        residuals = y - design @ coef
        n, p = design.shape
        dof = n - p
        sigma2 = float(np.sum(w * residuals**2) / dof) if dof > 0 else np.nan

        self.coef_full_ = coef
        self.cov_ = sigma2 * np.linalg.pinv(design.T @ (design * w[:, None]))
        self.sigma2_ = sigma2
        self.n_features_in_ = X.shape[1]
        if self.fit_intercept:
            self.intercept_ = float(coef[0])
            self.coef_ = coef[1:]
        else:
            self.intercept_ = 0.0
            self.coef_ = coef
        return self

    def predict(
        self, X: np.ndarray, return_std: bool = False
    ) -> np.ndarray | tuple[np.ndarray, np.ndarray]:
        check_is_fitted(self, "coef_full_")
        X = check_array(X, dtype=np.float64)
        design = self._design(X)
        mean = design @ self.coef_full_
        if not return_std:
            return mean
        var = np.einsum("ij,jk,ik->i", design, self.cov_, design)
        return mean, np.sqrt(np.clip(var, 0.0, None))


class RandomForestRegressorSE(RandomForestRegressor):
    """
    Random forest whose standard error is the spread of the tree predictions.

    The standard error is the standard deviation (ddof=1) of the individual
    tree predictions around the forest mean.
    """

    def predict(
        self, X: np.ndarray, return_std: bool = False
    ) -> np.ndarray | tuple[np.ndarray, np.ndarray]:
        mean = super().predict(X)
        if not return_std:
            return mean
        X_arr = np.asarray(X, dtype=np.float32)
        per_tree = np.stack([tree.predict(X_arr) for tree in self.estimators_])
        ddof = 1 if len(self.estimators_) > 1 else 0
        return mean, per_tree.std(axis=0, ddof=ddof)
