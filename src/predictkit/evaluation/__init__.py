"""
Evaluation of predictions: performance measures, confusion matrices,
resampling and experiment tracking.
"""
