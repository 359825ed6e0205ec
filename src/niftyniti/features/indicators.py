"""Technical indicators over a close-price history.

All functions take closes ordered oldest-first and compute over the trailing
window ending at the last close. Uses Decimal arithmetic with quantize so
repeated runs over the same input produce identical values.

Functions raise InsufficientHistory when the history is shorter than their
window; the FeatureEngine turns that into a 0 feature.
"""

from decimal import Decimal

from niftyniti.exceptions import InsufficientHistory

#: Precision limit for intermediate results (12 decimal places).
_QUANTIZE = Decimal("0.000000000001")

#: RSI reported when the window has no losses (avoids dividing by zero).
RSI_MAX = Decimal("100")

RSI_PERIOD = 14
VOLATILITY_WINDOW = 20


def _require(closes: list[Decimal], needed: int, indicator: str) -> None:
    if len(closes) < needed:
        raise InsufficientHistory(
            f"{indicator} needs {needed} closes, got {len(closes)}"
        )


def sma(closes: list[Decimal], window: int) -> Decimal:
    """Arithmetic mean of the last ``window`` closes."""
    _require(closes, window, f"sma_{window}")
    tail = closes[-window:]
    return (sum(tail, Decimal("0")) / Decimal(window)).quantize(_QUANTIZE)


def simple_return(closes: list[Decimal]) -> Decimal:
    """(last - previous) / previous; 0 without a previous close."""
    if len(closes) < 2 or closes[-2] == 0:
        return Decimal("0")
    return ((closes[-1] - closes[-2]) / closes[-2]).quantize(_QUANTIZE)


def rsi(closes: list[Decimal], period: int = RSI_PERIOD) -> Decimal:
    """Relative Strength Index over the last ``period`` close-to-close deltas.

    avg_gain and avg_loss are plain means of the gains and the absolute
    losses in the window. RSI = 100 - 100 / (1 + avg_gain / avg_loss).
    A window without losses returns RSI_MAX, flat windows included.
    """
    _require(closes, period + 1, "rsi")
    window = closes[-(period + 1):]
    deltas = [b - a for a, b in zip(window, window[1:])]

    avg_gain = sum((d for d in deltas if d > 0), Decimal("0")) / Decimal(period)
    avg_loss = sum((-d for d in deltas if d < 0), Decimal("0")) / Decimal(period)

    if avg_loss == 0:
        return RSI_MAX

    rs = avg_gain / avg_loss
    return (Decimal("100") - Decimal("100") / (Decimal("1") + rs)).quantize(_QUANTIZE)


def realized_volatility(closes: list[Decimal], window: int = VOLATILITY_WINDOW) -> Decimal:
    """Root-mean-square of daily returns across the last ``window`` bars, x100.

    ``window`` bars yield ``window - 1`` returns. Not annualized.
    """
    _require(closes, window, "volatility")
    tail = closes[-window:]
    returns = [(b - a) / a for a, b in zip(tail, tail[1:]) if a != 0]
    if not returns:
        return Decimal("0")

    mean_square = sum((r * r for r in returns), Decimal("0")) / Decimal(len(returns))
    return (mean_square.sqrt() * Decimal("100")).quantize(_QUANTIZE)
