"""Core infrastructure shared by the attribution pipeline and the CLI."""

from captrack.core.database import AttributionDatabase
from captrack.core.settings import settings

__all__ = [
    "AttributionDatabase",
    "settings",
]
