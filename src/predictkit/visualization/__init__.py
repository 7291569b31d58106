"""
Plots of learner predictions and confusion matrices.
"""
