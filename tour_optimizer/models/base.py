from enum import Enum
from typing import List, Optional
from dataclasses import dataclass, field, replace
import hashlib
import re

from tour_optimizer.core.types_1 import Coordinate
from tour_optimizer.core.constants import (
    PRIORITY_STANDARD,
    PRIORITY_EXPRESS_BEFORE_NOON,
    PRIORITY_FIRST,
)


class Priority(str, Enum):
    """Business urgency of a package, from least to most urgent."""
    STANDARD = "standard"
    EXPRESS_BEFORE_NOON = "express_before_noon"
    FIRST = "first"

    @property
    def severity(self) -> int:
        return _PRIORITY_SEVERITY[self]


_PRIORITY_SEVERITY = {
    Priority.STANDARD: PRIORITY_STANDARD,
    Priority.EXPRESS_BEFORE_NOON: PRIORITY_EXPRESS_BEFORE_NOON,
    Priority.FIRST: PRIORITY_FIRST,
}

# Most urgent tier first
PRIORITY_TIERS = sorted(Priority, key=lambda p: p.severity, reverse=True)


class PackageStatus(str, Enum):
    PENDING = "pending"
    DELIVERED = "delivered"
    FAILED = "failed"


class PointStatus(str, Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    COMPLETED = "completed"


class DeliveryType(str, Enum):
    INDIVIDUAL = "individual"
    BUSINESS = "business"


class FailureReason(str, Enum):
    ABSENT = "absent"
    REFUSED = "refused"
    UPS_RELAY = "ups_relay"
    ADDRESS_INCORRECT = "address_incorrect"
    ACCESS_DENIED = "access_denied"
    DAMAGED = "damaged"
    OTHER = "other"


@dataclass(frozen=True)
class TimeWindow:
    """Optional delivery window, bounds in HH:MM."""
    start: Optional[str] = None
    end: Optional[str] = None


def _join_words(*words: str) -> str:
    return " ".join(word.strip() for word in words if word and word.strip())


@dataclass(frozen=True)
class Address:
    """Destination address. Coordinates are filled in by the geocoding collaborator."""
    street_number: str = ""
    street_name: str = ""
    postal_code: str = ""
    city: str = ""
    country: str = ""
    coordinates: Optional[Coordinate] = None

    @property
    def full_address(self) -> str:
        """Formatted as "12 Rue de la Paix, 74000 Annecy"; the country is left out."""
        street = _join_words(self.street_number, self.street_name)
        locality = _join_words(self.postal_code, self.city)
        return ", ".join(part for part in (street, locality) if part)

    def with_coordinates(self, coordinates: Optional[Coordinate]) -> 'Address':
        return replace(self, coordinates=coordinates)


@dataclass(frozen=True)
class Package:
    """A single parcel scanned or entered by the driver."""
    id: str
    address: Address
    location: str = ""  # Storage label inside the truck
    notes: str = ""
    type: DeliveryType = DeliveryType.INDIVIDUAL
    priority: Priority = Priority.STANDARD
    status: PackageStatus = PackageStatus.PENDING
    time_window: Optional[TimeWindow] = None
    failure_reason: Optional[FailureReason] = None
    photo: Optional[str] = None  # Opaque reference owned by the capture collaborator

    def mark_delivered(self) -> 'Package':
        return replace(self, status=PackageStatus.DELIVERED, failure_reason=None)

    def mark_failed(self, reason: FailureReason = FailureReason.OTHER) -> 'Package':
        return replace(self, status=PackageStatus.FAILED, failure_reason=reason)

    def reset(self) -> 'Package':
        return replace(self, status=PackageStatus.PENDING, failure_reason=None)

    def with_coordinates(self, coordinates: Optional[Coordinate]) -> 'Package':
        return replace(self, address=self.address.with_coordinates(coordinates))


@dataclass
class DeliveryPoint:
    """One stop of the tour: a distinct address and every package going there."""
    id: str
    address: Address
    packages: List[Package] = field(default_factory=list)
    order: int = 0
    distance: float = 0.0  # km from the previous stop
    priority: Priority = Priority.STANDARD
    status: PointStatus = PointStatus.PENDING
    estimated_time: Optional[str] = None  # HH:MM

    @property
    def coordinates(self) -> Optional[Coordinate]:
        return self.address.coordinates

    @property
    def has_coordinates(self) -> bool:
        return self.address.coordinates is not None

    @property
    def is_visited(self) -> bool:
        """True once no package at this stop is still waiting for an attempt."""
        return all(pkg.status != PackageStatus.PENDING for pkg in self.packages)

    def copy_with(self, **changes) -> 'DeliveryPoint':
        """Return a new point with its own package list and the given fields replaced."""
        changes.setdefault('packages', list(self.packages))
        return replace(self, **changes)


_WHITESPACE = re.compile(r'\s+')
_NON_ID_CHARS = re.compile(r'[^a-zA-Z0-9-]')


def point_id_for_address(address_key: str) -> str:
    """
    Derive a stable point id from a formatted address string.

    The readable slug drops punctuation, so a short digest of the full
    address keeps "Rue Saint-Jean" and "Rue Saint Jean" apart.
    """
    slug = _NON_ID_CHARS.sub('', _WHITESPACE.sub('-', address_key))
    digest = hashlib.sha1(address_key.encode('utf-8')).hexdigest()[:8]
    return f"point-{slug}-{digest}" if slug else f"point-{digest}"


def aggregate_status(packages: List[Package]) -> PointStatus:
    """completed if every package is delivered, partial if some are, else pending."""
    delivered = sum(1 for pkg in packages if pkg.status == PackageStatus.DELIVERED)
    if packages and delivered == len(packages):
        return PointStatus.COMPLETED
    if delivered > 0:
        return PointStatus.PARTIAL
    return PointStatus.PENDING


def aggregate_priority(packages: List[Package]) -> Priority:
    """The most urgent priority found among the packages."""
    if not packages:
        return Priority.STANDARD
    return max((pkg.priority for pkg in packages), key=lambda p: p.severity)
