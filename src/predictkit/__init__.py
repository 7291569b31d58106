"""
predictkit: train learners on tasks and inspect their predictions.

Provides tasks, learner configurations, wrapped models and prediction
objects on top of scikit-learn, together with thresholds, confusion
matrices and learner prediction plots.
"""

from importlib.metadata import version

__version__ = version("predictkit")

__all__ = ["__version__"]
