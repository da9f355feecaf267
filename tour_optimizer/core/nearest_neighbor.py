"""
Initial tour construction with the nearest-neighbor heuristic.

Simple mode visits every point greedily from the driver's position.
Constrained mode runs the same greedy walk tier by tier (first, then
express_before_noon, then standard), carrying the driver's position from the
end of one tier into the next, so all urgent stops are served before any
less urgent one.
"""
from typing import List, Optional, Sequence, Tuple
import logging
import math

import numpy as np

from tour_optimizer.core.constants import METERS_PER_KM, DEFAULT_MINUTES_PER_STOP
from tour_optimizer.core.distance_matrix import DistanceMatrixBuilder, haversine
from tour_optimizer.core.time_estimator import estimate_time
from tour_optimizer.core.types_1 import Coordinate
from tour_optimizer.models.base import DeliveryPoint, Priority, PRIORITY_TIERS

logger = logging.getLogger(__name__)

MODE_SIMPLE = 'simple'
MODE_CONSTRAINED = 'constrained'


def choose_mode(points: Sequence[DeliveryPoint]) -> str:
    """Constrained as soon as one point carries a non-standard priority."""
    if any(point.priority != Priority.STANDARD for point in points):
        return MODE_CONSTRAINED
    return MODE_SIMPLE


def _distance_from_origin(origin: Optional[Coordinate], point: DeliveryPoint) -> float:
    """Meters from the virtual origin; +inf when either end is unknown."""
    if origin is None or point.coordinates is None:
        return math.inf
    return haversine(origin, point.coordinates) * METERS_PER_KM


def _nearest_neighbor_walk(
    indices: Sequence[int],
    points: Sequence[DeliveryPoint],
    origin: Optional[Coordinate],
    matrix: np.ndarray
) -> List[Tuple[int, float]]:
    """
    Greedy walk over ``indices`` starting at ``origin``.

    Returns:
        (point index, meters from the previous position) in visiting order.
    """
    unvisited = list(indices)
    walk: List[Tuple[int, float]] = []
    current = None  # None means we are still at the origin

    while unvisited:
        best_key = None
        best_index = -1
        best_distance = math.inf
        for index in unvisited:
            if current is None:
                distance = _distance_from_origin(origin, points[index])
            else:
                distance = float(matrix[current, index])
            # Unlocated points always lose; ties go to the lowest original index
            key = (points[index].coordinates is None, distance, index)
            if best_key is None or key < best_key:
                best_key = key
                best_index = index
                best_distance = distance

        unvisited.remove(best_index)
        walk.append((best_index, best_distance))
        # Stay anchored on the last known position when the chosen point has no coordinates
        if points[best_index].coordinates is not None:
            current = best_index
        logger.debug(f"Nearest neighbor picked {points[best_index].id} at {best_distance:.1f} m")

    return walk


def _tiered_walk(
    points: Sequence[DeliveryPoint],
    origin: Optional[Coordinate],
    matrix: np.ndarray
) -> List[Tuple[int, float, int]]:
    """
    Nearest-neighbor walk run tier by tier, most urgent tier first.

    Returns:
        (point index, meters from the previous position, tier rank) in visiting order.
    """
    position = origin
    walk: List[Tuple[int, float, int]] = []

    for tier_rank, tier in enumerate(PRIORITY_TIERS):
        tier_indices = [i for i, point in enumerate(points) if point.priority == tier]
        if not tier_indices:
            continue
        logger.debug(f"Routing {len(tier_indices)} '{tier.value}' points")

        for index, meters in _nearest_neighbor_walk(tier_indices, points, position, matrix):
            walk.append((index, meters, tier_rank))
            if points[index].coordinates is not None:
                position = points[index].coordinates

    return walk


def _leg_km(meters: float) -> float:
    # Legs of unknown length contribute nothing to distance totals
    return meters / METERS_PER_KM if math.isfinite(meters) else 0.0


def optimize_simple(
    points: Sequence[DeliveryPoint],
    origin: Optional[Coordinate],
    matrix: Optional[np.ndarray] = None
) -> List[DeliveryPoint]:
    """
    Order all points greedily from ``origin``, ignoring priorities.

    Args:
        points: Delivery points to order.
        origin: Driver's current position.
        matrix: Distances in meters, over all points or over located points only.

    Returns:
        New point instances with ``order`` (1-based) and ``distance`` (km) set.
    """
    if not points:
        return []

    aligned = DistanceMatrixBuilder.align_to_points(points, matrix)
    walk = _nearest_neighbor_walk(range(len(points)), points, origin, aligned)
    return [
        points[index].copy_with(order=position, distance=_leg_km(meters))
        for position, (index, meters) in enumerate(walk, start=1)
    ]


def optimize_constrained(
    points: Sequence[DeliveryPoint],
    origin: Optional[Coordinate],
    matrix: Optional[np.ndarray] = None,
    start_hour: float = 8.0,
    minutes_per_stop: float = DEFAULT_MINUTES_PER_STOP
) -> List[DeliveryPoint]:
    """
    Order points tier by tier, most urgent tier first.

    Within a tier the walk is the same as ``optimize_simple``. Points outside
    the most urgent tier also receive an ``estimated_time``.

    Args:
        points: Delivery points to order.
        origin: Driver's current position.
        matrix: Distances in meters, over all points or over located points only.
        start_hour: Departure time in fractional hours.
        minutes_per_stop: Dwell time per stop used for time estimates.

    Returns:
        New point instances numbered 1..N across all tiers.
    """
    if not points:
        return []

    aligned = DistanceMatrixBuilder.align_to_points(points, matrix)
    ordered: List[DeliveryPoint] = []
    for order, (index, meters, tier_rank) in enumerate(_tiered_walk(points, origin, aligned), start=1):
        changes = {'order': order, 'distance': _leg_km(meters)}
        if tier_rank > 0:
            changes['estimated_time'] = estimate_time(order, start_hour, minutes_per_stop)
        ordered.append(points[index].copy_with(**changes))
    return ordered


def build_initial_order(
    points: Sequence[DeliveryPoint],
    origin: Optional[Coordinate],
    matrix: Optional[np.ndarray] = None,
    mode: str = MODE_SIMPLE,
    start_hour: float = 8.0,
    minutes_per_stop: float = DEFAULT_MINUTES_PER_STOP
) -> List[DeliveryPoint]:
    """
    Build the initial visiting order in the requested mode.

    Args:
        points: Delivery points to order.
        origin: Driver's current position.
        matrix: Distances in meters, over all points or over located points only.
        mode: MODE_SIMPLE or MODE_CONSTRAINED.
        start_hour: Departure time for constrained-mode time estimates.
        minutes_per_stop: Dwell time for constrained-mode time estimates.

    Returns:
        Ordered copies of the points.
    """
    if mode == MODE_CONSTRAINED:
        return optimize_constrained(points, origin, matrix, start_hour, minutes_per_stop)
    if mode != MODE_SIMPLE:
        logger.warning(f"Unknown construction mode '{mode}', using simple mode")
    return optimize_simple(points, origin, matrix)


def initial_order_indices(
    points: Sequence[DeliveryPoint],
    origin: Optional[Coordinate],
    matrix: Optional[np.ndarray] = None,
    mode: str = MODE_SIMPLE
) -> List[int]:
    """
    Positions in ``points`` in the order ``build_initial_order`` visits them.

    Points are told apart by position, so two points sharing an id keep
    their own matrix rows.
    """
    if not points:
        return []

    aligned = DistanceMatrixBuilder.align_to_points(points, matrix)
    if mode == MODE_CONSTRAINED:
        return [index for index, _, _ in _tiered_walk(points, origin, aligned)]
    if mode != MODE_SIMPLE:
        logger.warning(f"Unknown construction mode '{mode}', using simple mode")
    return [index for index, _ in _nearest_neighbor_walk(range(len(points)), points, origin, aligned)]
