import unittest

from tour_optimizer.core.distance_matrix import haversine
from tour_optimizer.core.types_1 import Coordinate, RouteSettings
from tour_optimizer.models import Address, DeliveryPoint, FailureReason, Package
from tour_optimizer.services.route_stats_service import RouteStatsService

DEPOT = Coordinate(45.9097, 6.1588)


def make_point(point_id, distance, coordinates=None, packages=None):
    address = Address(street_name=point_id, coordinates=coordinates)
    return DeliveryPoint(id=point_id, address=address, packages=packages or [], distance=distance)


class RouteStatsServiceTest(unittest.TestCase):

    def setUp(self):
        self.no_return = RouteSettings(start_time='08:00', stop_time_minutes=15, average_speed_kmh=30,
                                       return_to_depot=False, depot=DEPOT)

    def test_empty_tour(self):
        summary = RouteStatsService.calculate_total_tour_time([], self.no_return)
        self.assertEqual(summary.total_time, '00:00')
        self.assertEqual(summary.end_time, '08:00')
        self.assertEqual(summary.total_distance, 0)

    def test_travel_and_stop_time(self):
        # 15 km at 30 km/h = 30 min, plus 2 stops of 15 min
        points = [make_point("a", 5.0), make_point("b", 10.0)]
        summary = RouteStatsService.calculate_total_tour_time(points, self.no_return)

        self.assertEqual(summary.total_time, '01:00')
        self.assertEqual(summary.end_time, '09:00')
        self.assertEqual(summary.total_distance, 15.0)

    def test_return_to_depot(self):
        last = Coordinate(45.95, 6.20)
        points = [make_point("a", 3.0, Coordinate(45.92, 6.17)), make_point("b", 2.0, last), make_point("c", 0.0)]
        route_settings = RouteSettings(start_time='08:00', stop_time_minutes=10, average_speed_kmh=30,
                                       return_to_depot=True, depot=DEPOT)

        summary = RouteStatsService.calculate_total_tour_time(points, route_settings)

        return_minutes = haversine(last, DEPOT) / 30 * 60
        expected_total = 5.0 / 30 * 60 + 30 + return_minutes
        self.assertEqual(summary.total_time, '%02d:%02d' % divmod(int(round(expected_total)), 60))
        # The return leg is not part of the delivery distance
        self.assertEqual(summary.total_distance, 5.0)

    def test_distance_is_rounded(self):
        points = [make_point("a", 1.23456), make_point("b", 2.0)]
        summary = RouteStatsService.calculate_total_tour_time(points, self.no_return)
        self.assertEqual(summary.total_distance, 3.23)

    def test_invalid_speed(self):
        route_settings = RouteSettings(start_time='08:00', stop_time_minutes=15, average_speed_kmh=0,
                                       return_to_depot=False)
        with self.assertLogs('tour_optimizer.services.route_stats_service', level='WARNING'):
            summary = RouteStatsService.calculate_total_tour_time([make_point("a", 10.0)], route_settings)
        self.assertEqual(summary.total_time, '00:15')

    def test_build_delivery_summary(self):
        address = Address(street_name="Rue A")
        packages = [
            Package(id="1", address=address).mark_delivered(),
            Package(id="2", address=address).mark_failed(FailureReason.ABSENT),
            Package(id="3", address=address).mark_failed(FailureReason.ABSENT),
            Package(id="4", address=address).mark_failed(FailureReason.REFUSED),
            Package(id="5", address=address),
        ]
        points = [make_point("a", 5.0, packages=packages[:3]), make_point("b", 10.0, packages=packages[3:])]

        summary = RouteStatsService.build_delivery_summary(points, self.no_return)

        self.assertEqual(summary.total_packages, 5)
        self.assertEqual(summary.delivered_packages, 1)
        self.assertEqual(summary.failed_packages, 3)
        self.assertEqual(summary.pending_packages, 1)
        self.assertEqual(summary.failure_reasons, {'absent': 2, 'refused': 1})
        self.assertEqual(summary.tour_duration, '01:00')
        self.assertEqual(summary.end_time, '09:00')
        self.assertEqual(summary.total_distance, 15.0)
        self.assertEqual(summary.success_rate, 20)


if __name__ == '__main__':
    unittest.main()
