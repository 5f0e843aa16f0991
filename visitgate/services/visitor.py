import logging
import re
from datetime import date

from visitgate.config import settings
from visitgate.errors import NotFoundError, StateError, ValidationError
from visitgate.models.visit import Visitor, VisitorStatus
from visitgate.repositories.base import Hydration, Repositories
from visitgate.services.common import coerce_uuid, facility_today, require_text

logger = logging.getLogger(__name__)

_NATIONAL_ID_PATTERN = re.compile(r"\d{7,8}")


def normalize_national_id(value: str | None) -> str:
    """Strip the dots and spaces people type into national ids.

    >>> normalize_national_id("33.333.333")
    '33333333'
    """
    national_id = re.sub(r"[.\s]", "", value or "")
    if not _NATIONAL_ID_PATTERN.fullmatch(national_id):
        raise ValidationError("National id must have 7 or 8 digits")
    return national_id


def age_on(birth_date: date, today: date) -> int:
    years = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        years -= 1
    return years


def _validate_birth_date(birth_date: date, today: date) -> None:
    if birth_date > today:
        raise ValidationError("Birth date cannot be in the future")
    if age_on(birth_date, today) < settings.min_visitor_age:
        raise ValidationError(
            f"Visitors must be at least {settings.min_visitor_age} years old"
        )


def _require_visitor(repos: Repositories, visitor_id) -> Visitor:
    visitor = repos.visitors.get(coerce_uuid(visitor_id))
    if not visitor:
        raise NotFoundError("Visitor not found")
    return visitor


class Visitors:
    @staticmethod
    def register(
        repos: Repositories,
        national_id: str,
        first_name: str,
        last_name: str,
        birth_date: date,
        phone: str | None = None,
        email: str | None = None,
        today: date | None = None,
    ) -> Visitor:
        national_id = normalize_national_id(national_id)
        _validate_birth_date(birth_date, today or facility_today())
        visitor = Visitor(
            national_id=national_id,
            first_name=require_text(first_name, "First name"),
            last_name=require_text(last_name, "Last name"),
            birth_date=birth_date,
            phone=phone,
            email=email,
            status=VisitorStatus.active,
        )
        visitor = repos.visitors.add(visitor)
        logger.info("Registered visitor %s", visitor.id)
        return visitor

    @staticmethod
    def get(repos: Repositories, visitor_id) -> Visitor:
        return _require_visitor(repos, visitor_id)

    @staticmethod
    def get_by_national_id(repos: Repositories, national_id: str) -> Visitor:
        visitor = repos.visitors.find_by_national_id(
            normalize_national_id(national_id), Hydration.summary
        )
        if not visitor:
            raise NotFoundError("Visitor not found")
        return visitor

    @staticmethod
    def set_status(
        repos: Repositories, visitor_id, status: VisitorStatus
    ) -> Visitor:
        visitor = _require_visitor(repos, visitor_id)
        if visitor.status is status:
            raise StateError(f"Visitor is already {status.value}")
        visitor.status = status
        visitor = repos.visitors.update(visitor)
        logger.info("Visitor %s is now %s", visitor.id, status.value)
        return visitor

    @staticmethod
    def suspend(repos: Repositories, visitor_id) -> Visitor:
        return Visitors.set_status(repos, visitor_id, VisitorStatus.suspended)

    @staticmethod
    def activate(repos: Repositories, visitor_id) -> Visitor:
        return Visitors.set_status(repos, visitor_id, VisitorStatus.active)

    @staticmethod
    def deactivate(repos: Repositories, visitor_id) -> Visitor:
        return Visitors.set_status(repos, visitor_id, VisitorStatus.inactive)


visitors = Visitors()
