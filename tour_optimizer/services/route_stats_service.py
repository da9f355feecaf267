import logging
from collections import Counter
from typing import List, Optional

from tour_optimizer.core.distance_matrix import haversine
from tour_optimizer.core.types_1 import DeliverySummary, RouteSettings, TourSummary
from tour_optimizer.models import DeliveryPoint, PackageStatus
from tour_optimizer.utils.helpers import convert_minutes_to_time_str, convert_time_str_to_minutes

logger = logging.getLogger(__name__)


class RouteStatsService:
    """
    Service for calculating statistics about optimized tours.
    """

    @staticmethod
    def calculate_total_tour_time(
        points: List[DeliveryPoint],
        route_settings: Optional[RouteSettings] = None
    ) -> TourSummary:
        """
        Estimate how long a tour takes and when it ends.

        Travel time is the sum of leg distances at the average speed, plus
        the dwell time at every stop, plus the straight-line drive from the
        last located stop back to the depot when requested.

        Args:
            points: Ordered delivery points; ``distance`` is km from the previous stop.
            route_settings: Start time, dwell time, speed and depot.

        Returns:
            TourSummary with HH:MM total time and end time. ``total_distance``
            covers the delivery legs only, rounded to 2 decimals.
        """
        route_settings = route_settings or RouteSettings.from_settings()
        if not points:
            return TourSummary(total_time='00:00', end_time=route_settings.start_time, total_distance=0)

        speed = route_settings.average_speed_kmh
        if speed <= 0:
            logger.warning(f"Invalid average speed {speed} km/h; travel time ignored.")

        total_distance = sum(point.distance or 0.0 for point in points)
        travel_minutes = total_distance / speed * 60 if speed > 0 else 0.0
        stop_minutes = len(points) * route_settings.stop_time_minutes

        return_minutes = 0.0
        if route_settings.return_to_depot and route_settings.depot is not None and speed > 0:
            last_located = next((point for point in reversed(points) if point.coordinates is not None), None)
            if last_located is not None:
                return_km = haversine(last_located.coordinates, route_settings.depot)
                return_minutes = return_km / speed * 60

        total_minutes = travel_minutes + stop_minutes + return_minutes
        start_minutes = convert_time_str_to_minutes(route_settings.start_time)
        return TourSummary(
            total_time=convert_minutes_to_time_str(total_minutes),
            end_time=convert_minutes_to_time_str(start_minutes + total_minutes),
            total_distance=round(total_distance, 2),
        )

    @staticmethod
    def build_delivery_summary(
        points: List[DeliveryPoint],
        route_settings: Optional[RouteSettings] = None
    ) -> DeliverySummary:
        """
        Summarize package outcomes over a tour together with its duration.

        Args:
            points: Delivery points of the tour.
            route_settings: Passed on to ``calculate_total_tour_time``.

        Returns:
            DeliverySummary with package counts and a failure reason histogram.
        """
        packages = [pkg for point in points for pkg in point.packages]
        statuses = Counter(pkg.status for pkg in packages)
        reasons = Counter(
            pkg.failure_reason.value
            for pkg in packages
            if pkg.status == PackageStatus.FAILED and pkg.failure_reason is not None
        )
        tour = RouteStatsService.calculate_total_tour_time(points, route_settings)

        summary = DeliverySummary(
            total_packages=len(packages),
            delivered_packages=statuses[PackageStatus.DELIVERED],
            failed_packages=statuses[PackageStatus.FAILED],
            pending_packages=statuses[PackageStatus.PENDING],
            failure_reasons=dict(reasons),
            tour_duration=tour.total_time,
            total_distance=tour.total_distance,
            end_time=tour.end_time,
        )
        logger.info(
            f"Tour summary: {summary.delivered_packages}/{summary.total_packages} delivered, "
            f"{summary.failed_packages} failed"
        )
        return summary
