"""Quote sourcing layer.

Provides the quote source interface and its Yahoo Finance implementation,
the raw-quote normalizer, and the synthetic series generator used as a
fallback when live quotes are unavailable.
"""

from niftyniti.market_data.client import QuoteSource
from niftyniti.market_data.mock import generate_mock_series
from niftyniti.market_data.normalizer import normalize_quotes, parse_chart_payload
from niftyniti.market_data.yahoo_client import YahooQuoteClient

__all__ = [
    "QuoteSource",
    "YahooQuoteClient",
    "generate_mock_series",
    "normalize_quotes",
    "parse_chart_payload",
]
