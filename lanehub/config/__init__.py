"""
lanehub Configuration

Environment-driven application settings.
"""

from .schemas import AppSettings, TableIds

__all__ = [
    "AppSettings",
    "TableIds",
]
