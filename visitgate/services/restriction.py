import logging
from datetime import date

from visitgate.errors import NotFoundError, StateError, ValidationError
from visitgate.models.visit import (
    Inmate,
    Restriction,
    RestrictionScope,
    RestrictionType,
    Visitor,
)
from visitgate.repositories.base import Repositories
from visitgate.services.common import (
    append_note,
    coerce_uuid,
    facility_today,
    require_text,
)

logger = logging.getLogger(__name__)


def is_restriction_active(restriction: Restriction, today: date) -> bool:
    if not restriction.is_active:
        return False
    if restriction.start_date > today:
        return False
    return restriction.end_date is None or restriction.end_date >= today


def applies_to_inmate(restriction: Restriction, inmate_id) -> bool:
    if restriction.scope is RestrictionScope.all_inmates:
        return True
    return restriction.inmate_id is not None and restriction.inmate_id == inmate_id


def blocking_restrictions(
    repos: Repositories, visitor: Visitor, inmate: Inmate, today: date
) -> list[Restriction]:
    """Every restriction of ``visitor`` that forbids visiting ``inmate`` today."""
    candidates = repos.restrictions.find_applicable(visitor.id, inmate.id, today)
    # Storage filters are a pre-selection; the rule is enforced here
    return [
        restriction
        for restriction in candidates
        if is_restriction_active(restriction, today)
        and applies_to_inmate(restriction, inmate.id)
    ]


def describe_restriction(restriction: Restriction) -> str:
    return (
        f"Active restriction: {restriction.restriction_type.value} - "
        f"Reason: {restriction.reason}"
    )


def _validate_scope(scope: RestrictionScope, inmate_id) -> None:
    if scope is RestrictionScope.specific_inmate and inmate_id is None:
        raise ValidationError("A specific-inmate restriction requires an inmate")
    if scope is RestrictionScope.all_inmates and inmate_id is not None:
        raise ValidationError("An all-inmates restriction cannot name an inmate")


def _validate_dates(start_date: date, end_date: date | None) -> None:
    if end_date is not None and end_date < start_date:
        raise ValidationError("End date cannot be before start date")


def _require_restriction(repos: Repositories, restriction_id) -> Restriction:
    restriction = repos.restrictions.get(coerce_uuid(restriction_id))
    if not restriction:
        raise NotFoundError("Restriction not found")
    return restriction


class Restrictions:
    @staticmethod
    def impose(
        repos: Repositories,
        visitor_id,
        restriction_type: RestrictionType,
        reason: str,
        start_date: date | None = None,
        end_date: date | None = None,
        scope: RestrictionScope = RestrictionScope.all_inmates,
        inmate_id=None,
        created_by: str | None = None,
    ) -> Restriction:
        reason = require_text(reason, "Restriction reason")
        visitor_uuid = coerce_uuid(visitor_id)
        inmate_uuid = coerce_uuid(inmate_id)
        if not repos.visitors.get(visitor_uuid):
            raise NotFoundError("Visitor not found")
        _validate_scope(scope, inmate_uuid)
        if inmate_uuid is not None and not repos.inmates.get(inmate_uuid):
            raise NotFoundError("Inmate not found")
        start_date = start_date or facility_today()
        _validate_dates(start_date, end_date)

        restriction = Restriction(
            visitor_id=visitor_uuid,
            restriction_type=restriction_type,
            reason=reason,
            start_date=start_date,
            end_date=end_date,
            scope=scope,
            inmate_id=inmate_uuid,
            is_active=True,
            created_by=created_by,
        )
        restriction = repos.restrictions.add(restriction)
        logger.info(
            "Imposed %s restriction %s on visitor %s",
            restriction_type.value,
            restriction.id,
            visitor_uuid,
        )
        return restriction

    @staticmethod
    def get(repos: Repositories, restriction_id) -> Restriction:
        return _require_restriction(repos, restriction_id)

    @staticmethod
    def lift(
        repos: Repositories, restriction_id, reason: str, today: date | None = None
    ) -> Restriction:
        reason = require_text(reason, "Lift reason")
        restriction = _require_restriction(repos, restriction_id)
        if not restriction.is_active:
            raise StateError("Restriction has already been lifted")
        today = today or facility_today()
        restriction.is_active = False
        # A restriction lifted before it starts ends on its start date
        restriction.end_date = max(today, restriction.start_date)
        restriction.reason = append_note(restriction.reason, f"LIFTED: {reason}")
        restriction = repos.restrictions.update(restriction)
        logger.info("Lifted restriction %s", restriction.id)
        return restriction

    @staticmethod
    def extend(
        repos: Repositories, restriction_id, end_date: date | None
    ) -> Restriction:
        restriction = _require_restriction(repos, restriction_id)
        if not restriction.is_active:
            raise StateError("Only active restrictions can be extended")
        _validate_dates(restriction.start_date, end_date)
        restriction.end_date = end_date
        restriction = repos.restrictions.update(restriction)
        logger.info("Extended restriction %s until %s", restriction.id, end_date)
        return restriction

    @staticmethod
    def list_for_visitor(
        repos: Repositories, visitor_id, include_inactive: bool = False
    ) -> list[Restriction]:
        return repos.restrictions.list_for_visitor(
            coerce_uuid(visitor_id), include_inactive=include_inactive
        )


restrictions = Restrictions()
