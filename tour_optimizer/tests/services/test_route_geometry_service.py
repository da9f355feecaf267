import unittest
from unittest.mock import patch, MagicMock

import requests

from tour_optimizer.core.types_1 import Coordinate
from tour_optimizer.services.route_geometry_service import RouteGeometryService


class TestRouteGeometryService(unittest.TestCase):

    def setUp(self):
        self.service = RouteGeometryService(server_url="http://osrm.test", profile="driving", timeout=5)
        self.start = Coordinate(45.90, 6.12)
        self.end = Coordinate(45.92, 6.15)

    def _response(self, payload):
        response = MagicMock()
        response.raise_for_status.return_value = None
        response.json.return_value = payload
        return response

    @patch('requests.get')
    def test_polyline_from_routing_service(self, mock_get):
        mock_get.return_value = self._response({
            'code': 'Ok',
            'routes': [{'geometry': {'type': 'LineString',
                                     'coordinates': [[6.12, 45.90], [6.13, 45.91], [6.15, 45.92]]}}],
        })

        polyline = self.service.get_route_polyline(self.start, self.end)

        self.assertEqual(polyline, [Coordinate(45.90, 6.12), Coordinate(45.91, 6.13), Coordinate(45.92, 6.15)])
        args, kwargs = mock_get.call_args
        self.assertEqual(args[0], "http://osrm.test/route/v1/driving/6.12,45.9;6.15,45.92")
        self.assertEqual(kwargs['params'], {'overview': 'full', 'geometries': 'geojson'})
        self.assertEqual(kwargs['timeout'], 5)

    @patch('requests.get')
    def test_straight_line_on_network_error(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("unreachable")
        with self.assertLogs('tour_optimizer.services.route_geometry_service', level='WARNING'):
            polyline = self.service.get_route_polyline(self.start, self.end)
        self.assertEqual(polyline, [self.start, self.end])

    @patch('requests.get')
    def test_straight_line_on_bad_response(self, mock_get):
        for payload in [
            {'code': 'NoRoute'},
            {'code': 'Ok', 'routes': []},
            {'code': 'Ok', 'routes': [{'geometry': {}}]},
            {'code': 'Ok', 'routes': [{'geometry': {'coordinates': [[6.12, 45.90]]}}]},
        ]:
            mock_get.return_value = self._response(payload)
            with self.assertLogs('tour_optimizer.services.route_geometry_service', level='WARNING'):
                polyline = self.service.get_route_polyline(self.start, self.end)
            self.assertEqual(polyline, [self.start, self.end])


if __name__ == '__main__':
    unittest.main()
