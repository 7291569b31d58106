"""
Pandera schema for prediction data.

A prediction frame has the columns id, truth, prob.<class>, response
and se; only response is always present.
"""

from typing import Optional

import pandas as pd
import pandera.pandas as pa
from pandera.typing import Series


class PredictionSchema(pa.DataFrameModel):
    """
    Schema for the data of a Prediction.

    Probabilities must lie in [0, 1] and standard errors must be
    non-negative (NaN allowed when a model cannot estimate them).
    """

    id: Optional[Series[int]] = pa.Field(
        ge=0,
        description="Row position in the task the prediction was made on",
    )
    prob: Optional[Series[float]] = pa.Field(
        alias=r"^prob\..+$",
        regex=True,
        ge=0.0,
        le=1.0,
        description="Predicted probability of one class",
    )
    se: Optional[Series[float]] = pa.Field(
        ge=0.0,
        nullable=True,
        description="Standard error of the predicted mean",
    )

    @pa.dataframe_check
    def has_response(cls, df: pd.DataFrame) -> bool:
        """Every prediction has a response column without gaps."""
        return "response" in df.columns and bool(df["response"].notna().all())

    class Config:
        """Schema configuration."""

        name = "PredictionSchema"
        strict = False
        coerce = True
