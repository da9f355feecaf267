"""
Helper functions for the tour optimizer module.

This module provides various utility functions used across the tour optimizer.
"""
import logging
from typing import List, Union

# Set up logging
logger = logging.getLogger(__name__)


def convert_minutes_to_time_str(minutes_from_midnight: Union[int, float]) -> str:
    """
    Convert minutes from midnight to a time string (HH:MM).

    Fractional minutes are rounded to the nearest minute. Values past midnight
    are not wrapped, so a long tour can legitimately end at "25:10".

    Args:
        minutes_from_midnight: Minutes from midnight.

    Returns:
        Time string in HH:MM format.
    """
    total = int(round(minutes_from_midnight))
    hours, minutes = divmod(total, 60)
    return f"{hours:02d}:{minutes:02d}"


def convert_time_str_to_minutes(time_str: str) -> int:
    """
    Convert a time string (H:MM or HH:MM) to minutes from midnight.

    Args:
        time_str: Time string in HH:MM format.

    Returns:
        Minutes from midnight, or 0 if the string is malformed.
    """
    try:
        if not isinstance(time_str, str):
            raise TypeError("Input must be a string.")

        parts = time_str.strip().split(':')
        if len(parts) != 2 or not 1 <= len(parts[0]) <= 2 or len(parts[1]) != 2:
            raise ValueError("Input string does not conform to HH:MM format.")

        hours, minutes = map(int, parts)
        if hours < 0 or not 0 <= minutes < 60:
            raise ValueError("Time components out of range.")
        return hours * 60 + minutes
    except (ValueError, TypeError):
        logger.error(f"Invalid time string format: {time_str}")
        return 0


def format_route_for_display(points: List) -> str:
    """
    Format a tour for display as its addresses joined by arrows.

    Args:
        points: Ordered delivery points.

    Returns:
        Formatted route string.
    """
    return " → ".join(point.address.full_address or point.id for point in points)


def format_duration(minutes: float) -> str:
    """
    Format a duration in minutes to a human-readable string, e.g. "1h 05m".
    """
    total = max(0, int(round(minutes)))
    hours, mins = divmod(total, 60)
    if hours == 0:
        return f"{mins}m"
    return f"{hours}h {mins:02d}m"
