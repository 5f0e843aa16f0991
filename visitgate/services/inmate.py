import logging

from visitgate.errors import NotFoundError, StateError, ValidationError
from visitgate.models.visit import Inmate, InmateStatus
from visitgate.repositories.base import Hydration, Repositories
from visitgate.services.common import coerce_uuid, require_text

logger = logging.getLogger(__name__)


def _validate_location(wing: str | None, floor: int | None) -> None:
    if floor is not None and floor < 0:
        raise ValidationError("Floor cannot be negative")
    if wing is not None and not wing.strip():
        raise ValidationError("Wing cannot be blank")


def _require_inmate(repos: Repositories, inmate_id) -> Inmate:
    inmate = repos.inmates.get(coerce_uuid(inmate_id))
    if not inmate:
        raise NotFoundError("Inmate not found")
    return inmate


class Inmates:
    @staticmethod
    def register(
        repos: Repositories,
        file_number: str,
        first_name: str,
        last_name: str,
        facility_id,
        wing: str | None = None,
        floor: int | None = None,
    ) -> Inmate:
        facility_uuid = coerce_uuid(facility_id)
        if not repos.facilities.get(facility_uuid):
            raise NotFoundError("Facility not found")
        _validate_location(wing, floor)
        inmate = Inmate(
            file_number=require_text(file_number, "File number"),
            first_name=require_text(first_name, "First name"),
            last_name=require_text(last_name, "Last name"),
            facility_id=facility_uuid,
            wing=wing.strip() if wing else None,
            floor=floor,
            status=InmateStatus.active,
        )
        inmate = repos.inmates.add(inmate)
        logger.info("Registered inmate %s in facility %s", inmate.id, facility_uuid)
        return inmate

    @staticmethod
    def get(repos: Repositories, inmate_id) -> Inmate:
        return _require_inmate(repos, inmate_id)

    @staticmethod
    def get_by_file_number(repos: Repositories, file_number: str) -> Inmate:
        inmate = repos.inmates.find_by_file_number(file_number, Hydration.summary)
        if not inmate:
            raise NotFoundError("Inmate not found")
        return inmate

    @staticmethod
    def list_by_facility(repos: Repositories, facility_id) -> list[Inmate]:
        return repos.inmates.list_by_facility(coerce_uuid(facility_id))

    @staticmethod
    def relocate(repos: Repositories, inmate_id, wing: str, floor: int) -> Inmate:
        wing = require_text(wing, "Wing")
        if floor is None:
            raise ValidationError("Floor is required")
        _validate_location(wing, floor)
        inmate = _require_inmate(repos, inmate_id)
        if inmate.status is not InmateStatus.active:
            raise StateError("Only active inmates can be relocated")
        inmate.wing = wing
        inmate.floor = floor
        inmate = repos.inmates.update(inmate)
        logger.info("Relocated inmate %s to %s", inmate.id, inmate.location)
        return inmate

    @staticmethod
    def transfer(repos: Repositories, inmate_id) -> Inmate:
        inmate = _require_inmate(repos, inmate_id)
        if inmate.status is not InmateStatus.active:
            raise StateError(
                f"Only active inmates can be transferred (status: {inmate.status.value})"
            )
        inmate.status = InmateStatus.transferred
        inmate = repos.inmates.update(inmate)
        logger.info("Inmate %s transferred", inmate.id)
        return inmate

    @staticmethod
    def discharge(repos: Repositories, inmate_id) -> Inmate:
        inmate = _require_inmate(repos, inmate_id)
        if inmate.status is InmateStatus.discharged:
            raise StateError("Inmate has already been discharged")
        inmate.status = InmateStatus.discharged
        inmate = repos.inmates.update(inmate)
        logger.info("Inmate %s discharged", inmate.id)
        return inmate


inmates = Inmates()
