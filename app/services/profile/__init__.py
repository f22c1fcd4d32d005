"""
Role profile tuning.

Target team mix and per-role weights shared by aggregation and scoring.
"""
