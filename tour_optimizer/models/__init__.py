# Domain dataclasses shared by the core algorithms and the services
from .base import (
    Address,
    DeliveryPoint,
    DeliveryType,
    FailureReason,
    Package,
    PackageStatus,
    PointStatus,
    Priority,
    PRIORITY_TIERS,
    TimeWindow,
    aggregate_priority,
    aggregate_status,
    point_id_for_address,
)
