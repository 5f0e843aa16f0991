from datetime import datetime

from visitgate.models.visit import Facility, Weekday
from visitgate.services.common import facility_local


def window_configured(facility: Facility) -> bool:
    return (
        facility.window_start is not None
        and facility.window_end is not None
        and bool(facility.visiting_days)
    )


def permits_visit_at(facility: Facility, at: datetime) -> bool:
    """Whether ``facility`` accepts visitors at the instant ``at``.

    The instant is read on the facility wall clock; both window bounds are
    inclusive.
    """
    if not facility.is_active or not window_configured(facility):
        return False
    local = facility_local(at)
    if Weekday.of(local.date()) not in facility.enabled_weekdays:
        return False
    return facility.window_start <= local.time().replace(tzinfo=None) <= facility.window_end


def describe_window(facility: Facility) -> str:
    if not window_configured(facility):
        return "not configured"
    days = ", ".join(
        day.short_name for day in Weekday if day in facility.enabled_weekdays
    )
    return (
        f"{days} {facility.window_start.strftime('%H:%M')}-"
        f"{facility.window_end.strftime('%H:%M')}"
    )
