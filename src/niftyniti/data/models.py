"""Data models for persisted blog posts and daily prediction records.

Prediction prices are stored in SQLite as TEXT and restored as Decimal so
that the recorded high/low envelope never accumulates float error.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal


@dataclass
class BlogPost:
    """A blog article. Timestamps are Unix milliseconds."""

    id: int
    title: str
    slug: str
    excerpt: str
    content: str
    read_time: int  # minutes
    published: bool
    published_at: int | None
    created_at: int
    updated_at: int


@dataclass
class PredictionRecord:
    """One forecast per trading day.

    high/low track the envelope of every start/close recorded for the day.
    weights holds the feature vector the forecast was made from.
    """

    date: date
    start: Decimal
    close: Decimal
    high: Decimal
    low: Decimal
    weights: dict[str, float] = field(default_factory=dict)
    created_at: int = 0
