"""Validators package."""
from agcredit.services.validators.trend_validator import TrendClassifier

__all__ = ["TrendClassifier"]
