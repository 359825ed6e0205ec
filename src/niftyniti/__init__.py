"""NiftyNiti: NIFTY 50 dashboard backend and next-day prediction pipeline."""

__version__ = "0.1.0"
