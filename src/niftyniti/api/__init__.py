"""JSON API: quote proxy, dashboard snapshot, predictions and blog posts."""

from niftyniti.api.app import create_app

__all__ = ["create_app"]
