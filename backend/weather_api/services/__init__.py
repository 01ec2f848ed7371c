"""
Services Package
================

- WeatherStore: The MongoDB connection and its collections
- UserDirectory: Everything about user accounts and sessions
- ReadingCatalog: Weather reading queries, inserts and aggregations
"""

from .store import WeatherStore
from .user_directory import UserDirectory
from .reading_catalog import ReadingCatalog

__all__ = [
    "WeatherStore",
    "UserDirectory",
    "ReadingCatalog",
]
