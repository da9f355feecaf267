"""
Arrival time estimation for ordered delivery points.
"""
from typing import List, Optional
import logging

from tour_optimizer.core.constants import DEFAULT_MINUTES_PER_STOP, DEFAULT_AVERAGE_SPEED_KMH
from tour_optimizer.utils.helpers import convert_minutes_to_time_str, convert_time_str_to_minutes

logger = logging.getLogger(__name__)


def estimate_time(order: int, start_hour: float, minutes_per_stop: float = DEFAULT_MINUTES_PER_STOP) -> str:
    """
    Estimate the arrival clock time of the stop at position ``order``.

    Every earlier stop costs ``minutes_per_stop``; travel time is not modelled.

    Args:
        order: 1-based position of the stop in the tour.
        start_hour: Departure time in fractional hours (8.5 is 08:30).
        minutes_per_stop: Dwell time per stop.

    Returns:
        "HH:MM" string; hours are not wrapped at midnight.
    """
    total_minutes = start_hour * 60 + (order - 1) * minutes_per_stop
    return convert_minutes_to_time_str(total_minutes)


def apply_estimated_times(
    points: List,
    start_hour: float,
    minutes_per_stop: float = DEFAULT_MINUTES_PER_STOP
) -> List:
    """Return copies of ``points`` stamped with ``estimate_time`` for their order."""
    return [
        point.copy_with(estimated_time=estimate_time(point.order, start_hour, minutes_per_stop))
        for point in points
    ]


def estimate_arrival_times(
    points: List,
    start_time: str,
    stop_minutes: float = DEFAULT_MINUTES_PER_STOP,
    average_speed_kmh: float = DEFAULT_AVERAGE_SPEED_KMH,
    start_minutes: Optional[float] = None
) -> List:
    """
    Estimate arrival times leg by leg: travel at ``average_speed_kmh`` over each
    point's ``distance`` and dwell ``stop_minutes`` at every stop.

    Args:
        points: Ordered delivery points; ``distance`` is km from the previous stop.
        start_time: Departure time as HH:MM.
        stop_minutes: Dwell time per stop.
        average_speed_kmh: Average driving speed.
        start_minutes: Overrides ``start_time`` when the clock is already running.

    Returns:
        New point instances with ``estimated_time`` set.
    """
    clock = convert_time_str_to_minutes(start_time) if start_minutes is None else start_minutes
    if average_speed_kmh <= 0:
        logger.warning(f"Invalid average speed {average_speed_kmh} km/h; travel time ignored.")

    estimated = []
    for point in points:
        if point.distance and average_speed_kmh > 0:
            clock += point.distance / average_speed_kmh * 60
        estimated.append(point.copy_with(estimated_time=convert_minutes_to_time_str(clock)))
        clock += stop_minutes
    return estimated
