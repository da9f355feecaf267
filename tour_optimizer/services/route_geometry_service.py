"""
Road geometry between two positions, used to draw the next leg on a map.
"""
import logging
from typing import List, Optional

import requests

from tour_optimizer.core.distance_matrix import RoutingProviderError
from tour_optimizer.core.types_1 import Coordinate

logger = logging.getLogger(__name__)


class RouteGeometryService:
    """
    Fetch road polylines from the OSRM ``route`` endpoint.
    """

    def __init__(
        self,
        server_url: Optional[str] = None,
        profile: Optional[str] = None,
        timeout: Optional[float] = None
    ):
        from tour_optimizer import settings
        self.server_url = (server_url or settings.OSRM_SERVER_URL).rstrip('/')
        self.profile = profile or settings.OSRM_PROFILE
        self.timeout = timeout if timeout is not None else settings.ROUTING_REQUEST_TIMEOUT_SECONDS

    def get_route_polyline(self, start: Coordinate, end: Coordinate) -> List[Coordinate]:
        """
        Road path from ``start`` to ``end``.

        Returns:
            Coordinates along the road. If the routing service cannot be used,
            the straight line ``[start, end]``.
        """
        try:
            return self._fetch_polyline(start, end)
        except (requests.RequestException, RoutingProviderError, ValueError) as e:
            logger.warning(f"Route geometry request failed: {e}. Using a straight line.")
            return [start, end]

    def _fetch_polyline(self, start: Coordinate, end: Coordinate) -> List[Coordinate]:
        url = f"{self.server_url}/route/v1/{self.profile}/{start.as_lng_lat()};{end.as_lng_lat()}"
        response = requests.get(
            url,
            params={'overview': 'full', 'geometries': 'geojson'},
            timeout=self.timeout
        )
        response.raise_for_status()
        data = response.json()

        if not isinstance(data, dict) or data.get('code') != 'Ok' or not data.get('routes'):
            code = data.get('code') if isinstance(data, dict) else None
            raise RoutingProviderError(f"Routing service returned code {code!r}")

        try:
            # GeoJSON positions are [lng, lat]
            coordinates = data['routes'][0]['geometry']['coordinates']
            polyline = [Coordinate(lat=float(lat), lng=float(lng)) for lng, lat in coordinates]
        except (KeyError, TypeError, IndexError) as e:
            raise RoutingProviderError(f"Malformed route geometry: {e}")

        if len(polyline) < 2:
            raise RoutingProviderError("Route geometry has fewer than two positions")
        return polyline
