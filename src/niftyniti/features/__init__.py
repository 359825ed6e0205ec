"""Feature derivation for the prediction service.

Provides pure indicator functions (moving averages, return, RSI, realized
volatility) and the FeatureEngine that selects the manifest-requested subset.
"""

from niftyniti.features.engine import (
    LONG_HISTORY,
    MIN_HISTORY,
    FeatureEngine,
    FeatureVector,
    supported_features,
)
from niftyniti.features.indicators import RSI_MAX, realized_volatility, rsi, simple_return, sma

__all__ = [
    "LONG_HISTORY",
    "MIN_HISTORY",
    "RSI_MAX",
    "FeatureEngine",
    "FeatureVector",
    "realized_volatility",
    "rsi",
    "simple_return",
    "sma",
    "supported_features",
]
