"""
Grouping of packages into delivery points.

Packages going to the same formatted address are delivered in one stop. The
key is the exact formatted string; fuzzy address matching happens upstream.
"""
import logging
from typing import Dict, List, Tuple

from tour_optimizer.models.base import (
    DeliveryPoint,
    Package,
    aggregate_priority,
    aggregate_status,
    point_id_for_address,
)

logger = logging.getLogger(__name__)


def group_by_address(packages: List[Package]) -> List[DeliveryPoint]:
    """
    Partition packages into delivery points keyed by formatted address.

    Args:
        packages: Packages in the order they were registered.

    Returns:
        One DeliveryPoint per distinct address, in order of first appearance,
        with a provisional 1-based ``order``. The point takes its address from
        the first package that has coordinates, else from the first package.
    """
    groups: Dict[str, List[Package]] = {}
    for pkg in packages:
        groups.setdefault(pkg.address.full_address, []).append(pkg)

    points = []
    for order, (address_key, pkgs) in enumerate(groups.items(), start=1):
        located = next((pkg for pkg in pkgs if pkg.address.coordinates is not None), pkgs[0])
        points.append(DeliveryPoint(
            id=point_id_for_address(address_key),
            address=located.address,
            packages=list(pkgs),
            order=order,
            distance=0.0,
            priority=aggregate_priority(pkgs),
            status=aggregate_status(pkgs),
        ))

    logger.info(f"Grouped {len(packages)} packages into {len(points)} delivery points")
    return points


def merge_packages_into_points(
    points: List[DeliveryPoint],
    packages: List[Package]
) -> Tuple[List[DeliveryPoint], List[DeliveryPoint]]:
    """
    Attach packages to the existing point with the same address, or create new points.

    Args:
        points: Existing delivery points; they are not modified.
        packages: Packages to distribute.

    Returns:
        (copies of ``points`` including the attached packages, points created
        for addresses that had no stop yet).
    """
    updated = [point.copy_with() for point in points]
    index_by_key: Dict[str, int] = {}
    for i, point in enumerate(updated):
        index_by_key.setdefault(point.address.full_address, i)

    leftovers = []
    touched = set()
    for pkg in packages:
        i = index_by_key.get(pkg.address.full_address)
        if i is None:
            leftovers.append(pkg)
            continue
        updated[i].packages.append(pkg)
        touched.add(i)

    for i in touched:
        point = updated[i]
        if point.coordinates is None:
            located = next((pkg for pkg in point.packages if pkg.address.coordinates is not None), None)
            if located is not None:
                point.address = located.address
        point.priority = aggregate_priority(point.packages)
        point.status = aggregate_status(point.packages)

    if touched:
        logger.info(f"Merged packages into {len(touched)} existing delivery points")
    new_points = group_by_address(leftovers) if leftovers else []
    return updated, new_points
