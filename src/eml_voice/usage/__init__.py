"""
Example usage tracking and effectiveness scoring.
"""

from .tracker import NO_DATA, UsageTracker, calculate_rating

__all__ = ["NO_DATA", "UsageTracker", "calculate_rating"]
