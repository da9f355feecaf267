"""
Service for re-optimizing a tour while it is being driven.

This module keeps the stops already visited in place and re-orders the rest
when the driver adds stops, completes a stop or fails a delivery.
"""
import logging
from typing import List, Optional, Tuple, Union

from tour_optimizer.core.types_1 import Coordinate, ReroutingInfo, RouteSettings
from tour_optimizer.models import (
    DeliveryPoint,
    FailureReason,
    Package,
    PackageStatus,
    aggregate_status,
)
from tour_optimizer.services.grouping_service import merge_packages_into_points
from tour_optimizer.services.optimization_service import OptimizationService

# Set up logging
logger = logging.getLogger(__name__)

REASON_STOPS_ADDED = 'stops_added'
REASON_STOP_COMPLETED = 'stop_completed'
REASON_STOP_FAILED = 'stop_failed'
REASON_RECALCULATED = 'recalculated'


class ReroutingService:
    """
    Service for re-optimizing an in-progress tour on mutation events.

    Each event leaves a ReroutingInfo describing what happened on
    ``last_rerouting_info``.
    """

    def __init__(self, optimization_service: Optional[OptimizationService] = None):
        """
        Initialize the rerouting service.

        Args:
            optimization_service: Optimization service to use for rerouting.
                                 If None, a new service will be created.
        """
        self.optimization_service = optimization_service or OptimizationService()
        self.last_rerouting_info: Optional[ReroutingInfo] = None

    def recalculate_from(
        self,
        existing_tour: List[DeliveryPoint],
        new_points: List[DeliveryPoint],
        origin: Optional[Coordinate],
        from_index: int,
        route_settings: Optional[RouteSettings] = None
    ) -> List[DeliveryPoint]:
        """
        Re-optimize everything after ``from_index`` together with new points.

        Args:
            existing_tour: Current tour in visiting order.
            new_points: Points to add to the unvisited part.
            origin: Driver's current position.
            from_index: Number of leading stops that are done and stay frozen.
            route_settings: Start time and dwell time for arrival estimates.

        Returns:
            The frozen prefix followed by the re-optimized working set, which
            is numbered from ``len(prefix) + 1``.
        """
        from_index = max(0, min(from_index, len(existing_tour)))
        completed = [point.copy_with() for point in existing_tour[:from_index]]
        working = list(existing_tour[from_index:]) + list(new_points)

        optimized: List[DeliveryPoint] = []
        if working:
            result = self.optimization_service.optimize_points(
                working, origin, route_settings=route_settings, first_order=len(completed) + 1
            )
            if result.status == 'success':
                optimized = result.points
            else:
                logger.warning(
                    f"Re-optimization failed ({result.statistics.get('error')}); keeping the current order."
                )
                optimized = [
                    point.copy_with(order=order)
                    for order, point in enumerate(working, start=len(completed) + 1)
                ]

        self.last_rerouting_info = ReroutingInfo(
            reason=REASON_RECALCULATED,
            completed_stops=len(completed),
            remaining_stops=len(optimized),
            added_stops=len(new_points),
        )
        logger.info(
            f"Recalculated tour from stop {from_index}: {len(completed)} frozen, "
            f"{len(optimized)} re-optimized ({len(new_points)} new)"
        )
        return completed + optimized

    def add_points_to_tour(
        self,
        existing_tour: List[DeliveryPoint],
        new_points: List[DeliveryPoint],
        origin: Optional[Coordinate],
        current_index: int = 0,
        route_settings: Optional[RouteSettings] = None
    ) -> List[DeliveryPoint]:
        """
        Insert new stops into the unvisited part of a tour.

        Returns:
            The re-optimized tour, or a copy of ``existing_tour`` when there
            is nothing to add.
        """
        if not new_points:
            self.last_rerouting_info = ReroutingInfo(
                reason=REASON_STOPS_ADDED,
                completed_stops=max(0, min(current_index, len(existing_tour))),
                remaining_stops=max(0, len(existing_tour) - current_index),
            )
            return [point.copy_with() for point in existing_tour]

        tour = self.recalculate_from(existing_tour, new_points, origin, current_index, route_settings)
        self.last_rerouting_info.reason = REASON_STOPS_ADDED
        return tour

    def add_packages_to_tour(
        self,
        existing_tour: List[DeliveryPoint],
        packages: List[Package],
        origin: Optional[Coordinate],
        current_index: int = 0,
        route_settings: Optional[RouteSettings] = None
    ) -> List[DeliveryPoint]:
        """
        Add freshly registered packages to a tour.

        A package going to an address that is still ahead in the tour joins
        that stop; the others become new stops.
        """
        current_index = max(0, min(current_index, len(existing_tour)))
        if not packages:
            return self.add_points_to_tour(existing_tour, [], origin, current_index, route_settings)

        prefix = list(existing_tour[:current_index])
        merged, new_points = merge_packages_into_points(existing_tour[current_index:], packages)
        tour = self.recalculate_from(prefix + merged, new_points, origin, current_index, route_settings)
        self.last_rerouting_info.reason = REASON_STOPS_ADDED
        logger.info(f"Added {len(packages)} packages to the tour ({len(new_points)} new stops)")
        return tour

    def complete_stop(
        self,
        tour: List[DeliveryPoint],
        point_id: str,
        origin: Optional[Coordinate],
        route_settings: Optional[RouteSettings] = None
    ) -> List[DeliveryPoint]:
        """
        Mark every pending package of a stop as delivered and re-optimize the rest.

        Returns:
            The updated tour; a copy of ``tour`` if ``point_id`` is unknown
            or the stop was already visited.
        """
        return self._close_stop(
            tour, point_id, origin, route_settings, REASON_STOP_COMPLETED,
            lambda pkg: pkg.mark_delivered(),
        )

    def fail_stop(
        self,
        tour: List[DeliveryPoint],
        point_id: str,
        origin: Optional[Coordinate],
        reason: Union[FailureReason, str] = FailureReason.OTHER,
        route_settings: Optional[RouteSettings] = None
    ) -> List[DeliveryPoint]:
        """
        Mark every pending package of a stop as failed and re-optimize the rest.

        Args:
            tour: Current tour in visiting order.
            point_id: Id of the stop that could not be delivered.
            origin: Driver's current position.
            reason: Why the delivery failed; unknown values become ``other``.
            route_settings: Start time and dwell time for arrival estimates.
        """
        try:
            reason = FailureReason(reason)
        except ValueError:
            logger.warning(f"Unknown failure reason '{reason}', recording 'other'")
            reason = FailureReason.OTHER

        return self._close_stop(
            tour, point_id, origin, route_settings, REASON_STOP_FAILED,
            lambda pkg: pkg.mark_failed(reason),
        )

    def _close_stop(self, tour, point_id, origin, route_settings, event_reason, transition):
        index = self._find_point(tour, point_id)
        if index is None or tour[index].is_visited:
            if index is None:
                logger.warning(f"Delivery point {point_id} is not part of the tour; nothing to update.")
            else:
                # No pending package left, so the stop and the visited order stay as they are
                logger.info(f"Stop {point_id} was already visited; nothing to update.")
            self.last_rerouting_info = ReroutingInfo(
                reason=event_reason,
                completed_stops=sum(1 for point in tour if point.is_visited),
                remaining_stops=sum(1 for point in tour if not point.is_visited),
                affected_point_id=point_id,
            )
            return [point.copy_with() for point in tour]

        target = tour[index]
        packages = [transition(pkg) if pkg.status == PackageStatus.PENDING else pkg for pkg in target.packages]
        closed = target.copy_with(packages=packages, status=aggregate_status(packages))

        visited, unvisited = self._split_visited(tour, index)
        prefix = [point.copy_with(order=order) for order, point in enumerate(visited + [closed], start=1)]

        updated = self.recalculate_from(prefix + unvisited, [], origin, len(prefix), route_settings)
        self.last_rerouting_info.reason = event_reason
        self.last_rerouting_info.affected_point_id = point_id
        logger.info(f"Stop {point_id} closed ({event_reason}); {len(unvisited)} stops left")
        return updated

    @staticmethod
    def _find_point(tour: List[DeliveryPoint], point_id: str) -> Optional[int]:
        """Index of the first unvisited stop with ``point_id``, else of the first match."""
        matches = [i for i, point in enumerate(tour) if point.id == point_id]
        if not matches:
            return None
        return next((i for i in matches if not tour[i].is_visited), matches[0])

    @staticmethod
    def _split_visited(
        tour: List[DeliveryPoint],
        skip_index: int
    ) -> Tuple[List[DeliveryPoint], List[DeliveryPoint]]:
        """Visited and unvisited stops in tour order, leaving out ``skip_index``."""
        visited = []
        unvisited = []
        for i, point in enumerate(tour):
            if i == skip_index:
                continue
            (visited if point.is_visited else unvisited).append(point)
        return visited, unvisited
