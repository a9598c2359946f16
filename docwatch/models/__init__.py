"""Pydantic data models for docwatch."""

from docwatch.models.config import Config
from docwatch.models.snapshot import Snapshot
from docwatch.models.subscription import Subscription

__all__ = [
    "Config",
    "Snapshot",
    "Subscription",
]
