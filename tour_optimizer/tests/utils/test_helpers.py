import unittest

from tour_optimizer.models import Address, DeliveryPoint
from tour_optimizer.utils.helpers import (
    convert_minutes_to_time_str,
    convert_time_str_to_minutes,
    format_duration,
    format_route_for_display,
)


class TestHelpers(unittest.TestCase):

    def test_convert_minutes_to_time_str(self):
        self.assertEqual(convert_minutes_to_time_str(0), "00:00")
        self.assertEqual(convert_minutes_to_time_str(570), "09:30")  # 9:30 AM
        self.assertEqual(convert_minutes_to_time_str(825), "13:45")  # 1:45 PM
        self.assertEqual(convert_minutes_to_time_str(1439), "23:59")
        self.assertEqual(convert_minutes_to_time_str(1500), "25:00")  # Not wrapped past midnight

    def test_convert_minutes_to_time_str_rounds(self):
        self.assertEqual(convert_minutes_to_time_str(509.6), "08:30")
        self.assertEqual(convert_minutes_to_time_str(539.7), "09:00")

    def test_convert_time_str_to_minutes(self):
        self.assertEqual(convert_time_str_to_minutes("00:00"), 0)
        self.assertEqual(convert_time_str_to_minutes("09:30"), 570)
        self.assertEqual(convert_time_str_to_minutes("9:30"), 570)
        self.assertEqual(convert_time_str_to_minutes("13:45"), 825)

    def test_convert_time_str_to_minutes_invalid(self):
        for bad in ["0930", "12:60", "ab:cd", "12:5", ""]:
            with self.assertLogs('tour_optimizer.utils.helpers', level='ERROR') as cm:
                self.assertEqual(convert_time_str_to_minutes(bad), 0)
            self.assertIn(f"Invalid time string format: {bad}", cm.output[0])

        with self.assertLogs('tour_optimizer.utils.helpers', level='ERROR'):
            self.assertEqual(convert_time_str_to_minutes(None), 0)

    def test_format_route_for_display(self):
        points = [
            DeliveryPoint(id="p1", address=Address(street_number="1", street_name="Rue A",
                                                   postal_code="74000", city="Annecy")),
            DeliveryPoint(id="p2", address=Address()),
        ]
        self.assertEqual(format_route_for_display(points), "1 Rue A, 74000 Annecy → p2")
        self.assertEqual(format_route_for_display([]), "")

    def test_format_duration(self):
        self.assertEqual(format_duration(0), "0m")
        self.assertEqual(format_duration(45), "45m")
        self.assertEqual(format_duration(65), "1h 05m")
        self.assertEqual(format_duration(150.4), "2h 30m")
        self.assertEqual(format_duration(-5), "0m")


if __name__ == '__main__':
    unittest.main()
