from visitgate.config import settings
from visitgate.models.visit import Facility


def _limited(facility: Facility) -> bool:
    return facility.max_capacity is not None and facility.max_capacity > 0


def capacity_reached(facility: Facility, in_progress: int) -> bool:
    if not _limited(facility):
        return False
    return in_progress >= facility.max_capacity


def occupancy_percent(facility: Facility, in_progress: int) -> int | None:
    if not _limited(facility):
        return None
    return in_progress * 100 // facility.max_capacity


def near_capacity(
    facility: Facility, in_progress: int, threshold: int | None = None
) -> bool:
    percent = occupancy_percent(facility, in_progress)
    if percent is None:
        return False
    limit = settings.near_capacity_percent if threshold is None else threshold
    return percent >= limit
