"""
Resources module - static game content.
"""

from engine.resources.database import CATEGORIES, Database

__all__ = [
    "CATEGORIES",
    "Database",
]
