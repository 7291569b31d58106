"""
Pandera schemas for data frames produced by predictkit.
"""

from predictkit.schemas.prediction import PredictionSchema

__all__ = ["PredictionSchema"]
