"""
Experiment scripts.

Each script answers one specific question:
- predict_walkthrough: What does a prediction contain and how do we inspect it?
"""
