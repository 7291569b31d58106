"""
Preprocessing pipeline construction.

Builds the sklearn ColumnTransformer that turns task features into the
numeric matrix an estimator expects.
"""

from typing import Any

import pandas as pd
from pandas.api.types import is_numeric_dtype
from sklearn.compose import ColumnTransformer
from sklearn.preprocessing import OneHotEncoder, StandardScaler

from predictkit.utils.logging import get_logger

log = get_logger(__name__)


def split_feature_types(features: pd.DataFrame) -> tuple[list[str], list[str]]:
    """Split columns into numeric and categorical (everything else)."""
    numeric = [
        col
        for col in features.columns
        if is_numeric_dtype(features[col]) and not pd.api.types.is_bool_dtype(features[col])
    ]
    categorical = [col for col in features.columns if col not in numeric]
    return numeric, categorical


def build_preprocessor(
    features: pd.DataFrame,
    *,
    standardize: bool = False,
) -> ColumnTransformer:
    """
    Build the preprocessing ColumnTransformer for a feature frame.

    Numeric features pass through (or are standardized for distance and
    kernel based learners); categorical features are one-hot encoded,
    ignoring levels unseen during training.

    Args:
        features: Training features.
        standardize: Whether to scale numeric features.

    Returns:
        Unfitted ColumnTransformer.
    """
    numeric, categorical = split_feature_types(features)
    transformers: list[tuple[str, Any, list[str]]] = []

    if numeric:
        transformers.append(
            ("numeric", StandardScaler() if standardize else "passthrough", numeric)
        )
    if categorical:
        transformers.append(
            (
                "categorical",
                OneHotEncoder(handle_unknown="ignore", sparse_output=False),
                categorical,
            )
        )

    log.debug(
        "Built preprocessor",
        numeric=numeric,
        categorical=categorical,
        standardize=standardize,
    )
    return ColumnTransformer(
        transformers=transformers,
        remainder="drop",
        verbose_feature_names_out=False,
    )
