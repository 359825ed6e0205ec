"""Prediction service integration: HTTP client and signal derivation."""

from niftyniti.prediction.client import HttpPredictionClient, PredictionClient
from niftyniti.prediction.signal import derive_signal

__all__ = [
    "HttpPredictionClient",
    "PredictionClient",
    "derive_signal",
]
