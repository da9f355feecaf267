"""
Distance matrix utilities for tour optimization.

This module computes great-circle distances and builds the N x N road
distance matrices (in meters) used by the construction and improvement
heuristics. Road distances come from an OSRM routing service; whenever that
call fails in any way, a haversine matrix is returned instead.
"""
from typing import List, Optional, Sequence
import logging
import math

import numpy as np
import requests

from tour_optimizer.core.constants import EARTH_RADIUS_KM, METERS_PER_KM, MAX_SAFE_DISTANCE, MIN_SAFE_DISTANCE
from tour_optimizer.core.types_1 import Coordinate

logger = logging.getLogger(__name__)


def haversine(a: Coordinate, b: Coordinate) -> float:
    """
    Calculate the great circle distance between two points
    on the earth (specified in decimal degrees).

    Args:
        a: First coordinate.
        b: Second coordinate.

    Returns:
        Distance in kilometers.
    """
    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)
    h = (math.sin(d_lat / 2) ** 2
         + math.cos(math.radians(a.lat)) * math.cos(math.radians(b.lat)) * math.sin(d_lng / 2) ** 2)
    h = min(1.0, max(0.0, h))
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


class RoutingProviderError(Exception):
    """The routing service answered with something we cannot use as a matrix."""


class DistanceMatrixBuilder:
    """
    Builder for the distance matrices used in tour optimization.

    One builder may be reused across calls; nothing is cached between them.
    ``last_source`` tells which path produced the most recent matrix.
    """

    SOURCE_ROUTING_SERVICE = 'routing_service'
    SOURCE_HAVERSINE = 'haversine'

    def __init__(
        self,
        use_api: Optional[bool] = None,
        server_url: Optional[str] = None,
        profile: Optional[str] = None,
        timeout: Optional[float] = None
    ):
        from tour_optimizer import settings
        self.use_api = settings.USE_ROUTING_API_BY_DEFAULT if use_api is None else use_api
        self.server_url = (server_url or settings.OSRM_SERVER_URL).rstrip('/')
        self.profile = profile or settings.OSRM_PROFILE
        self.timeout = timeout if timeout is not None else settings.ROUTING_REQUEST_TIMEOUT_SECONDS
        self.last_source: Optional[str] = None

    def compute_matrix(self, points: Sequence[Coordinate]) -> np.ndarray:
        """
        Compute the road distance matrix between the given coordinates.

        Args:
            points: Coordinates, in the order the matrix should be indexed.

        Returns:
            len(points) x len(points) numpy array of distances in meters with a
            zero diagonal. Falls back to haversine distances if the routing
            service cannot be used.
        """
        n = len(points)
        if n < 2:
            # Nothing to route between; no need to bother the service
            self.last_source = self.SOURCE_HAVERSINE
            return np.zeros((n, n))

        if self.use_api:
            try:
                matrix = self._fetch_table(points)
                self.last_source = self.SOURCE_ROUTING_SERVICE
                logger.info(f"Distance matrix computed by routing service: {n}x{n}")
                return matrix
            except (requests.RequestException, RoutingProviderError, ValueError) as e:
                logger.warning(f"Routing service distance matrix failed: {e}. Falling back to haversine.")

        self.last_source = self.SOURCE_HAVERSINE
        return self.haversine_matrix(points)

    @staticmethod
    def haversine_matrix(points: Sequence[Coordinate]) -> np.ndarray:
        """
        Build a symmetric matrix of great-circle distances in meters.

        Args:
            points: Coordinates to measure between.

        Returns:
            len(points) x len(points) numpy array.
        """
        n = len(points)
        if n == 0:
            return np.zeros((0, 0))

        lat = np.radians(np.array([p.lat for p in points], dtype=float))
        lng = np.radians(np.array([p.lng for p in points], dtype=float))
        d_lat = lat[np.newaxis, :] - lat[:, np.newaxis]
        d_lng = lng[np.newaxis, :] - lng[:, np.newaxis]
        h = np.sin(d_lat / 2) ** 2 + np.cos(lat)[:, np.newaxis] * np.cos(lat)[np.newaxis, :] * np.sin(d_lng / 2) ** 2
        h = np.clip(h, 0.0, 1.0)
        matrix = EARTH_RADIUS_KM * 2 * np.arctan2(np.sqrt(h), np.sqrt(1 - h)) * METERS_PER_KM
        np.fill_diagonal(matrix, 0.0)
        return matrix

    @staticmethod
    def expand_to_points(matrix: np.ndarray, located: Sequence[bool]) -> np.ndarray:
        """
        Embed a matrix computed over located points into a matrix over all points.

        Args:
            matrix: k x k matrix where k is the number of True entries in ``located``.
            located: One flag per point, True when the point has coordinates.

        Returns:
            len(located) x len(located) matrix; entries touching a point without
            coordinates are +inf, the diagonal is 0.
        """
        n = len(located)
        full = np.full((n, n), np.inf)
        idx = [i for i, has_coords in enumerate(located) if has_coords]
        if idx:
            full[np.ix_(idx, idx)] = np.asarray(matrix, dtype=float)
        np.fill_diagonal(full, 0.0)
        return full

    @staticmethod
    def align_to_points(points: Sequence, matrix: Optional[np.ndarray]) -> np.ndarray:
        """
        Return a matrix indexed exactly like ``points``.

        Accepts either a matrix over all points or one over the located points
        only (the shape ``compute_matrix`` produces when unresolved addresses
        are left out). Anything else is replaced by a haversine matrix.

        Args:
            points: Delivery points, each exposing ``coordinates``.
            matrix: Candidate distance matrix in meters, or None.

        Returns:
            len(points) x len(points) numpy array.
        """
        n = len(points)
        located = [p.coordinates is not None for p in points]
        located_coords = [p.coordinates for p in points if p.coordinates is not None]

        if matrix is not None:
            m = np.asarray(matrix, dtype=float)
            if m.shape == (n, n):
                aligned = m.copy()
                for i, has_coords in enumerate(located):
                    if not has_coords:
                        aligned[i, :] = np.inf
                        aligned[:, i] = np.inf
                np.fill_diagonal(aligned, 0.0)
                return aligned
            if m.shape == (len(located_coords), len(located_coords)):
                return DistanceMatrixBuilder.expand_to_points(m, located)
            if n > 0:
                logger.warning(
                    f"Distance matrix shape {m.shape} does not match {n} points; using haversine distances."
                )

        return DistanceMatrixBuilder.expand_to_points(
            DistanceMatrixBuilder.haversine_matrix(located_coords), located
        )

    @staticmethod
    def _sanitize_distance_matrix(matrix: np.ndarray) -> np.ndarray:
        """
        Sanitize distance matrix by replacing missing, infinite or extreme values.

        Args:
            matrix: Distance matrix to sanitize (meters).

        Returns:
            Sanitized copy with a zero diagonal.
        """
        sanitized = np.array(matrix, dtype=float)
        sanitized = np.nan_to_num(sanitized, nan=MAX_SAFE_DISTANCE, posinf=MAX_SAFE_DISTANCE, neginf=MAX_SAFE_DISTANCE)
        sanitized[sanitized > MAX_SAFE_DISTANCE] = MAX_SAFE_DISTANCE
        sanitized[sanitized < MIN_SAFE_DISTANCE] = MAX_SAFE_DISTANCE
        np.fill_diagonal(sanitized, 0.0)
        return sanitized

    def _build_table_url(self, points: Sequence[Coordinate]) -> str:
        """OSRM table request: 'lng,lat' pairs separated by ';'."""
        coordinates = ';'.join(p.as_lng_lat() for p in points)
        return f"{self.server_url}/table/v1/{self.profile}/{coordinates}"

    def _fetch_table(self, points: Sequence[Coordinate]) -> np.ndarray:
        """
        Fetch the distance matrix for all points in one batched request.

        Raises:
            requests.RequestException: Network failure or HTTP error status.
            RoutingProviderError: The response is not a usable N x N matrix.
        """
        response = requests.get(
            self._build_table_url(points),
            params={'annotations': 'distance'},
            timeout=self.timeout
        )
        response.raise_for_status()
        data = response.json()

        if not isinstance(data, dict) or data.get('code') != 'Ok':
            code = data.get('code') if isinstance(data, dict) else None
            raise RoutingProviderError(f"Routing service returned code {code!r}")

        return self._process_table_response(data, len(points))

    @staticmethod
    def _process_table_response(data: dict, expected_size: int) -> np.ndarray:
        """Validate the 'distances' array and convert it to a sanitized matrix."""
        distances = data.get('distances')
        if not isinstance(distances, list) or len(distances) != expected_size:
            raise RoutingProviderError("Routing service matrix has the wrong number of rows")

        rows: List[List[float]] = []
        for row in distances:
            if not isinstance(row, list) or len(row) != expected_size:
                raise RoutingProviderError("Routing service matrix has the wrong number of columns")
            try:
                # Unreachable pairs come back as null
                rows.append([np.nan if value is None else float(value) for value in row])
            except (TypeError, ValueError) as e:
                raise RoutingProviderError(f"Routing service matrix has a non-numeric entry: {e}")

        return DistanceMatrixBuilder._sanitize_distance_matrix(np.array(rows, dtype=float))
