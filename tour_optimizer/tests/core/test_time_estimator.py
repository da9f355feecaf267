import unittest

from tour_optimizer.core.time_estimator import apply_estimated_times, estimate_arrival_times, estimate_time
from tour_optimizer.models import Address, DeliveryPoint


class TestEstimateTime(unittest.TestCase):

    def test_first_stop_is_start_time(self):
        self.assertEqual(estimate_time(1, 8.0), "08:00")

    def test_dwell_per_previous_stop(self):
        self.assertEqual(estimate_time(2, 8.0), "08:15")
        self.assertEqual(estimate_time(5, 8.0), "09:00")
        self.assertEqual(estimate_time(3, 8.5, minutes_per_stop=10), "08:50")

    def test_not_wrapped_at_midnight(self):
        self.assertEqual(estimate_time(9, 23.0), "25:00")

    def test_fractional_minutes_are_rounded(self):
        self.assertEqual(estimate_time(2, 8.0, minutes_per_stop=7.6), "08:08")


class TestArrivalTimes(unittest.TestCase):

    def setUp(self):
        self.points = [
            DeliveryPoint(id="a", address=Address(), order=1, distance=5.0),
            DeliveryPoint(id="b", address=Address(), order=2, distance=10.0),
            DeliveryPoint(id="c", address=Address(), order=3, distance=0.0),
        ]

    def test_apply_estimated_times(self):
        stamped = apply_estimated_times(self.points, 8.0)
        self.assertEqual([p.estimated_time for p in stamped], ["08:00", "08:15", "08:30"])
        self.assertIsNone(self.points[0].estimated_time)

    def test_estimate_arrival_times_includes_travel(self):
        # 5 km at 30 km/h = 10 min, then 15 min dwell, 10 km = 20 min, 15 min dwell
        stamped = estimate_arrival_times(self.points, "08:00", stop_minutes=15, average_speed_kmh=30)
        self.assertEqual([p.estimated_time for p in stamped], ["08:10", "08:45", "09:00"])

    def test_estimate_arrival_times_running_clock(self):
        stamped = estimate_arrival_times(self.points[:1], "08:00", start_minutes=600, average_speed_kmh=60)
        self.assertEqual(stamped[0].estimated_time, "10:05")

    def test_invalid_speed_ignores_travel(self):
        with self.assertLogs('tour_optimizer.core.time_estimator', level='WARNING'):
            stamped = estimate_arrival_times(self.points, "08:00", average_speed_kmh=0)
        self.assertEqual([p.estimated_time for p in stamped], ["08:00", "08:15", "08:30"])

    def test_empty(self):
        self.assertEqual(estimate_arrival_times([], "08:00"), [])
        self.assertEqual(apply_estimated_times([], 8.0), [])


if __name__ == '__main__':
    unittest.main()
