"""Persistence layer.

Provides data models, SQLite database management, and typed stores for blog
posts and daily prediction records.
"""

from niftyniti.data.database import NiftyNitiDatabase
from niftyniti.data.models import BlogPost, PredictionRecord
from niftyniti.data.store import BlogStore, PredictionStore, estimate_read_time, slugify

__all__ = [
    "BlogPost",
    "BlogStore",
    "NiftyNitiDatabase",
    "PredictionRecord",
    "PredictionStore",
    "estimate_read_time",
    "slugify",
]
