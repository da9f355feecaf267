"""
Core data types for the tour optimizer.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any, TYPE_CHECKING
import logging

if TYPE_CHECKING:
    from tour_optimizer.models.base import DeliveryPoint

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Coordinate:
    """
    A WGS84 position in decimal degrees.
    """
    lat: float
    lng: float

    def __post_init__(self):
        # Collaborators sometimes hand over coordinates parsed from text
        if isinstance(self.lat, str):
            object.__setattr__(self, 'lat', float(self.lat))
        if isinstance(self.lng, str):
            object.__setattr__(self, 'lng', float(self.lng))

    def as_lng_lat(self) -> str:
        """Format as 'lng,lat', the order routing services expect."""
        return f"{self.lng},{self.lat}"


# The driver's current location is just a coordinate supplied by geolocation.
UserPosition = Coordinate


@dataclass
class RouteSettings:
    """Per-call route parameters: departure time, dwell time, speed and depot."""
    start_time: str = '08:00'
    stop_time_minutes: float = 15
    average_speed_kmh: float = 30.0
    return_to_depot: bool = True
    depot: Optional[Coordinate] = None

    @property
    def start_hour(self) -> float:
        """Start time as fractional hours, e.g. '08:30' -> 8.5."""
        from tour_optimizer.utils.helpers import convert_time_str_to_minutes
        return convert_time_str_to_minutes(self.start_time) / 60.0

    @staticmethod
    def from_settings() -> 'RouteSettings':
        """Build route settings from the module-level configuration."""
        from tour_optimizer import settings
        return RouteSettings(
            start_time=settings.DEFAULT_START_TIME,
            stop_time_minutes=settings.DEFAULT_STOP_TIME_MINUTES,
            average_speed_kmh=settings.DEFAULT_AVERAGE_SPEED_KMH,
            return_to_depot=settings.RETURN_TO_DEPOT,
            depot=Coordinate(settings.DEPOT_LATITUDE, settings.DEPOT_LONGITUDE),
        )


@dataclass
class OptimizationResult:
    """Data Transfer Object representing an optimized delivery tour."""
    status: str
    points: List['DeliveryPoint'] = field(default_factory=list)
    total_distance: float = 0.0  # km
    matrix_source: Optional[str] = None
    mode: Optional[str] = None
    statistics: Dict[str, Any] = field(default_factory=dict)

    @property
    def point_ids(self) -> List[str]:
        return [point.id for point in self.points]


@dataclass
class ReroutingInfo:
    """Information about a tour re-optimization triggered by a mutation event."""
    reason: str
    completed_stops: int = 0
    remaining_stops: int = 0
    added_stops: int = 0
    affected_point_id: Optional[str] = None


@dataclass
class TourSummary:
    """Overall duration, end time and length of a tour."""
    total_time: str
    end_time: str
    total_distance: float


@dataclass
class DeliverySummary:
    """End-of-tour package outcome counts, as shown to the driver."""
    total_packages: int = 0
    delivered_packages: int = 0
    failed_packages: int = 0
    pending_packages: int = 0
    failure_reasons: Dict[str, int] = field(default_factory=dict)
    tour_duration: str = '00:00'
    total_distance: float = 0.0
    end_time: str = '00:00'

    @property
    def success_rate(self) -> int:
        """Delivered share of all packages, as a rounded percentage."""
        if self.total_packages == 0:
            return 0
        return round(self.delivered_packages / self.total_packages * 100)
