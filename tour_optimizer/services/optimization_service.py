import logging
import math
from collections import Counter
from typing import List, Optional, Sequence

import numpy as np

from tour_optimizer.core.constants import METERS_PER_KM
from tour_optimizer.core.distance_matrix import DistanceMatrixBuilder, haversine
from tour_optimizer.core.nearest_neighbor import MODE_CONSTRAINED, choose_mode, initial_order_indices
from tour_optimizer.core.time_estimator import estimate_time
from tour_optimizer.core.two_opt import two_opt_indices
from tour_optimizer.core.types_1 import Coordinate, OptimizationResult, RouteSettings
from tour_optimizer.models import DeliveryPoint, Package, PointStatus
from tour_optimizer.services.grouping_service import group_by_address

logger = logging.getLogger(__name__)


class OptimizationService:
    """
    Service running the full tour pipeline: grouping, distance matrix,
    nearest-neighbor construction, 2-opt improvement, leg distances and
    arrival times.
    """

    def __init__(self, matrix_builder: Optional[DistanceMatrixBuilder] = None):
        """
        Initialize the optimization service.

        Args:
            matrix_builder: Builder used for distance matrices. If None, a
                            default builder configured from settings is created.
        """
        self.matrix_builder = matrix_builder or DistanceMatrixBuilder()

    def optimize(
        self,
        packages: List[Package],
        origin: Optional[Coordinate],
        mode: Optional[str] = None,
        route_settings: Optional[RouteSettings] = None,
        use_api: Optional[bool] = None
    ) -> OptimizationResult:
        """
        Build an optimized tour for a list of packages.

        Packages are grouped by address first; points whose packages are all
        delivered are left out of the tour.

        Args:
            packages: Packages of the day.
            origin: Driver's current position, or None if unknown.
            mode: MODE_SIMPLE or MODE_CONSTRAINED; chosen from the priorities if None.
            route_settings: Start time and dwell time; defaults come from settings.
            use_api: Overrides the builder's routing service switch for this call.

        Returns:
            OptimizationResult with the ordered points.
        """
        try:
            points = group_by_address(packages)
        except Exception as e:
            logger.error(f"Error grouping packages: {str(e)}", exc_info=True)
            return OptimizationResult(status='error', statistics={'error': str(e)})

        to_route = [point for point in points if point.status != PointStatus.COMPLETED]
        result = self.optimize_points(to_route, origin, mode=mode, route_settings=route_settings, use_api=use_api)
        result.statistics['completed_points'] = len(points) - len(to_route)
        return result

    def optimize_points(
        self,
        points: Sequence[DeliveryPoint],
        origin: Optional[Coordinate],
        mode: Optional[str] = None,
        route_settings: Optional[RouteSettings] = None,
        first_order: int = 1,
        use_api: Optional[bool] = None
    ) -> OptimizationResult:
        """
        Order already grouped delivery points.

        Args:
            points: Delivery points to route.
            origin: Driver's current position, or None if unknown.
            mode: MODE_SIMPLE or MODE_CONSTRAINED; chosen from the priorities if None.
            route_settings: Start time and dwell time; defaults come from settings.
            first_order: ``order`` given to the first stop; later stops follow on.
            use_api: Overrides the builder's routing service switch for this call.

        Returns:
            OptimizationResult whose points carry ``order``, ``distance`` (km
            from the previous stop) and ``estimated_time``.
        """
        route_settings = route_settings or RouteSettings.from_settings()
        mode = mode or choose_mode(points)
        builder = self._builder_for(use_api)

        try:
            if not points:
                return OptimizationResult(status='success', mode=mode, statistics=self._statistics([]))

            matrix = self.build_point_matrix(points, builder)
            permutation = initial_order_indices(points, origin, matrix, mode)
            ordered = [points[index].copy_with(order=position) for position, index in enumerate(permutation, start=1)]
            ordered_matrix = matrix[np.ix_(permutation, permutation)]
            improved, improved_matrix = self.improve_tour(ordered, ordered_matrix, mode)
            final = self.finalize_tour(improved, origin, improved_matrix, route_settings, first_order)

            total_distance = round(sum(point.distance for point in final), 3)
            logger.info(
                f"Optimized tour of {len(final)} points in {mode} mode: {total_distance} km "
                f"({builder.last_source} distances)"
            )
            return OptimizationResult(
                status='success',
                points=final,
                total_distance=total_distance,
                matrix_source=builder.last_source,
                mode=mode,
                statistics=self._statistics(final),
            )
        except Exception as e:
            logger.error(f"Error optimizing tour: {str(e)}", exc_info=True)
            return OptimizationResult(
                status='error',
                points=[point.copy_with() for point in points],
                mode=mode,
                statistics={'error': str(e)},
            )

    def _builder_for(self, use_api: Optional[bool]) -> DistanceMatrixBuilder:
        if use_api is None or use_api == self.matrix_builder.use_api:
            return self.matrix_builder
        return DistanceMatrixBuilder(
            use_api=use_api,
            server_url=self.matrix_builder.server_url,
            profile=self.matrix_builder.profile,
            timeout=self.matrix_builder.timeout,
        )

    def build_point_matrix(
        self,
        points: Sequence[DeliveryPoint],
        builder: Optional[DistanceMatrixBuilder] = None
    ) -> np.ndarray:
        """
        Distance matrix (meters) indexed like ``points``.

        Only located points are sent to the matrix builder; rows and columns
        of points without coordinates are +inf.
        """
        located = [point.coordinates for point in points if point.coordinates is not None]
        if len(located) < len(points):
            logger.warning(f"{len(points) - len(located)} delivery points have no coordinates")
        matrix = (builder or self.matrix_builder).compute_matrix(located)
        return DistanceMatrixBuilder.expand_to_points(matrix, [point.has_coordinates for point in points])

    @staticmethod
    def improve_tour(
        ordered: List[DeliveryPoint],
        matrix: np.ndarray,
        mode: str
    ):
        """
        Apply 2-opt to an ordered tour.

        In constrained mode each priority block is improved on its own, with
        its first stop fixed, so no stop ever moves ahead of a more urgent one.

        Returns:
            (improved points, matrix reindexed to follow them)
        """
        if mode == MODE_CONSTRAINED:
            blocks = []
            start = 0
            for k in range(1, len(ordered) + 1):
                if k == len(ordered) or ordered[k].priority != ordered[start].priority:
                    blocks.append(list(range(start, k)))
                    start = k
        else:
            blocks = [list(range(len(ordered)))]

        route: List[int] = []
        for block in blocks:
            sub_matrix = matrix[np.ix_(block, block)]
            route.extend(block[k] for k in two_opt_indices(sub_matrix))

        improved = [ordered[index].copy_with(order=position) for position, index in enumerate(route, start=1)]
        return improved, matrix[np.ix_(route, route)]

    @staticmethod
    def finalize_tour(
        tour: List[DeliveryPoint],
        origin: Optional[Coordinate],
        matrix: np.ndarray,
        route_settings: RouteSettings,
        first_order: int = 1
    ) -> List[DeliveryPoint]:
        """
        Number the stops and recompute leg distances and arrival times.

        The first leg is measured from ``origin`` by haversine, later legs come
        from ``matrix`` (indexed like ``tour``) starting at the last located
        stop. Legs of unknown length count as 0 km.
        """
        final = []
        previous = None
        for k, point in enumerate(tour):
            if point.coordinates is None:
                distance = 0.0
            elif previous is None:
                distance = haversine(origin, point.coordinates) if origin is not None else 0.0
            else:
                meters = float(matrix[previous, k])
                distance = meters / METERS_PER_KM if math.isfinite(meters) else 0.0
            if point.coordinates is not None:
                previous = k

            order = first_order + k
            final.append(point.copy_with(
                order=order,
                distance=distance,
                estimated_time=estimate_time(order, route_settings.start_hour, route_settings.stop_time_minutes),
            ))
        return final

    @staticmethod
    def _statistics(points: Sequence[DeliveryPoint]) -> dict:
        priorities = Counter(point.priority.value for point in points)
        return {
            'total_points': len(points),
            'total_packages': sum(len(point.packages) for point in points),
            'unlocated_points': sum(1 for point in points if point.coordinates is None),
            'points_by_priority': dict(priorities),
        }
