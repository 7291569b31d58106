"""
Modeling layer for training and prediction.

Trains learners on tasks, predicts with the resulting models and adjusts
classification thresholds of predictions.
"""
