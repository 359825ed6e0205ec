"""Directional signal derived from a forecast and the last close."""

from niftyniti.models import PredictionResult


def derive_signal(forecast_value: float, last_close: float) -> PredictionResult:
    """Pair a forecast with the close it is compared against.

    Pure and synchronous; delta, delta_percent and signal are properties of
    the returned result. A zero delta counts as BULLISH.
    """
    return PredictionResult(forecast_value=float(forecast_value), as_of_price=float(last_close))
