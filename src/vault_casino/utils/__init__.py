"""Utility modules."""

from .progression import Progress, calculate_level, xp_for_level

__all__ = [
    "Progress",
    "calculate_level",
    "xp_for_level",
]
