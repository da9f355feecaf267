"""
2-opt local search for open delivery tours.

The tour starts at the driver and does not return, so the first stop stays
in place and only the edges between stops are exchanged.
"""
from typing import List, Optional, Sequence
import logging
import math

import numpy as np

from tour_optimizer.core.constants import IMPROVEMENT_EPSILON, MIN_TOUR_SIZE_FOR_TWO_OPT
from tour_optimizer.core.distance_matrix import DistanceMatrixBuilder
from tour_optimizer.models.base import DeliveryPoint

logger = logging.getLogger(__name__)


def route_distance(route: Sequence[int], matrix: np.ndarray) -> float:
    """Sum of matrix entries along consecutive stops of ``route``."""
    return float(sum(matrix[route[k], route[k + 1]] for k in range(len(route) - 1)))


def _segment_cost(route: List[int], start: int, end: int, matrix: np.ndarray, reverse: bool) -> float:
    """Cost of the edges inside route[start:end], walked forward or backward."""
    total = 0.0
    for k in range(start, end - 1):
        a, b = route[k], route[k + 1]
        total += matrix[b, a] if reverse else matrix[a, b]
    return total


def two_opt_indices(matrix: np.ndarray, route: Optional[List[int]] = None) -> List[int]:
    """
    Improve a route of matrix indices with first-improvement 2-opt.

    Args:
        matrix: Square distance matrix.
        route: Visiting order as matrix indices; defaults to 0..N-1.

    Returns:
        The improved visiting order. Every accepted move strictly shortens the
        route, so the search always terminates in a local optimum.
    """
    route = list(range(len(matrix))) if route is None else list(route)
    n = len(route)
    if n < MIN_TOUR_SIZE_FOR_TWO_OPT:
        return route

    # Reversing a segment also flips its inner edges, which only matters for directed matrices
    symmetric = bool(np.array_equal(matrix, matrix.T))
    passes = 0
    swaps = 0
    improved = True

    while improved:
        improved = False
        passes += 1
        for i in range(1, n - 2):
            for j in range(i + 2, n):
                a, b = route[i - 1], route[i]
                c, e = route[j - 1], route[j]
                old_cost = matrix[a, b] + matrix[c, e]
                new_cost = matrix[a, c] + matrix[b, e]
                if not math.isfinite(new_cost):
                    continue
                gain = old_cost - new_cost
                if not symmetric:
                    forward = _segment_cost(route, i, j, matrix, reverse=False)
                    backward = _segment_cost(route, i, j, matrix, reverse=True)
                    if not (math.isfinite(forward) and math.isfinite(backward)):
                        continue
                    gain += forward - backward
                if gain > IMPROVEMENT_EPSILON:
                    route[i:j] = reversed(route[i:j])
                    swaps += 1
                    improved = True

    logger.debug(f"2-opt finished after {passes} passes and {swaps} swaps")
    return route


def improve(tour: Sequence[DeliveryPoint], matrix: Optional[np.ndarray] = None) -> List[DeliveryPoint]:
    """
    Shorten a tour with 2-opt and renumber its stops.

    ``distance`` and ``estimated_time`` are left as they were; callers that
    need them must recompute after the reordering.

    Args:
        tour: Ordered delivery points.
        matrix: Distances in meters indexed like ``tour`` (or like its located
            points only).

    Returns:
        New point instances in improved order with ``order`` set to 1..N.
        Tours shorter than four stops come back as unchanged copies.
    """
    if len(tour) < MIN_TOUR_SIZE_FOR_TWO_OPT:
        return [point.copy_with() for point in tour]

    aligned = DistanceMatrixBuilder.align_to_points(tour, matrix)
    route = two_opt_indices(aligned)
    return [tour[index].copy_with(order=position) for position, index in enumerate(route, start=1)]
