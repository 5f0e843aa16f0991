import logging
from datetime import time

from visitgate.errors import NotFoundError, StateError, ValidationError
from visitgate.models.visit import Facility, Weekday
from visitgate.repositories.base import Repositories
from visitgate.services.common import coerce_uuid, require_text

logger = logging.getLogger(__name__)


def _ordered_days(days) -> list[str]:
    wanted = {Weekday(day) for day in days}
    return [day.value for day in Weekday if day in wanted]


def _validate_window(
    visiting_days, window_start: time | None, window_end: time | None
) -> None:
    if (window_start is None) != (window_end is None):
        raise ValidationError("Visiting window needs both a start and an end time")
    if window_start is not None and window_end < window_start:
        raise ValidationError("Visiting window cannot end before it starts")
    if window_start is not None and not visiting_days:
        raise ValidationError("At least one visiting day is required")


def _validate_capacity(max_capacity: int | None) -> None:
    if max_capacity is not None and max_capacity < 0:
        raise ValidationError("Capacity cannot be negative")


def _require_facility(repos: Repositories, facility_id) -> Facility:
    facility = repos.facilities.get(coerce_uuid(facility_id))
    if not facility:
        raise NotFoundError("Facility not found")
    return facility


class Facilities:
    @staticmethod
    def register(
        repos: Repositories,
        name: str,
        address: str | None = None,
        visiting_days=(),
        window_start: time | None = None,
        window_end: time | None = None,
        max_capacity: int | None = None,
    ) -> Facility:
        _validate_window(visiting_days, window_start, window_end)
        _validate_capacity(max_capacity)
        facility = Facility(
            name=require_text(name, "Facility name"),
            address=address,
            visiting_days=_ordered_days(visiting_days),
            window_start=window_start,
            window_end=window_end,
            max_capacity=max_capacity,
            is_active=True,
        )
        facility = repos.facilities.add(facility)
        logger.info("Registered facility %s", facility.id)
        return facility

    @staticmethod
    def get(repos: Repositories, facility_id) -> Facility:
        return _require_facility(repos, facility_id)

    @staticmethod
    def set_visiting_window(
        repos: Repositories,
        facility_id,
        visiting_days,
        window_start: time,
        window_end: time,
    ) -> Facility:
        if window_start is None or window_end is None:
            raise ValidationError("Visiting window needs both a start and an end time")
        _validate_window(visiting_days, window_start, window_end)
        facility = _require_facility(repos, facility_id)
        facility.visiting_days = _ordered_days(visiting_days)
        facility.window_start = window_start
        facility.window_end = window_end
        facility = repos.facilities.update(facility)
        logger.info("Updated visiting window of facility %s", facility.id)
        return facility

    @staticmethod
    def set_capacity(
        repos: Repositories, facility_id, max_capacity: int | None
    ) -> Facility:
        _validate_capacity(max_capacity)
        facility = _require_facility(repos, facility_id)
        facility.max_capacity = max_capacity
        facility = repos.facilities.update(facility)
        logger.info("Facility %s capacity set to %s", facility.id, max_capacity)
        return facility

    @staticmethod
    def deactivate(repos: Repositories, facility_id) -> Facility:
        facility = _require_facility(repos, facility_id)
        if not facility.is_active:
            raise StateError("Facility is already inactive")
        facility.is_active = False
        facility = repos.facilities.update(facility)
        logger.info("Deactivated facility %s", facility.id)
        return facility


facilities = Facilities()
