"""Gate-side admission decision.

``Admissions.evaluate`` runs the policy checks in a fixed order and stops at
the first one that denies. Denials come back as values on the result; only
storage failures raise.
"""

import logging
from datetime import datetime

from prometheus_client import Counter

from visitgate.config import settings
from visitgate.errors import CapacityError, ValidationError
from visitgate.models.visit import VisitSession, VisitState, VisitorStatus
from visitgate.repositories.base import Hydration, Repositories
from visitgate.schemas.visit import AdmissionResult, DenialKind
from visitgate.services.authorization import is_expired, is_vigent
from visitgate.services.capacity import (
    capacity_reached,
    near_capacity,
    occupancy_percent,
)
from visitgate.services.common import facility_today, require_text, utcnow
from visitgate.services.restriction import blocking_restrictions, describe_restriction
from visitgate.services.schedule import describe_window, permits_visit_at
from visitgate.services.visit_session import VisitSessions
from visitgate.services.visitor import normalize_national_id

logger = logging.getLogger(__name__)

ADMISSION_OUTCOMES = Counter(
    "visitgate_admission_outcomes_total",
    "Admission decisions by outcome",
    ["outcome"],
)


def _finish(result: AdmissionResult) -> AdmissionResult:
    outcome = "admitted" if result.admitted else result.denial.value
    ADMISSION_OUTCOMES.labels(outcome=outcome).inc()
    logger.info(
        "Admission for visitor %s to inmate %s: %s",
        result.visitor_id,
        result.inmate_id,
        outcome,
    )
    return result


class Admissions:
    @staticmethod
    def evaluate(
        repos: Repositories,
        national_id: str,
        file_number: str,
        now: datetime | None = None,
        enforce_single_active_visit: bool | None = None,
    ) -> AdmissionResult:
        now = now or utcnow()
        today = facility_today(now)
        if enforce_single_active_visit is None:
            enforce_single_active_visit = settings.enforce_single_active_visit
        result = AdmissionResult()

        # 1. Visitor
        try:
            national_id = normalize_national_id(national_id)
        except ValidationError:
            return _finish(
                result.deny(DenialKind.not_found, f"Visitor not found: {national_id}")
            )
        visitor = repos.visitors.find_by_national_id(national_id, Hydration.summary)
        if not visitor:
            return _finish(
                result.deny(DenialKind.not_found, f"Visitor not found: {national_id}")
            )
        result.visitor_id = visitor.id
        if visitor.status is not VisitorStatus.active:
            return _finish(
                result.deny(
                    DenialKind.policy_denied,
                    f"Visitor is not active (status: {visitor.status.value})",
                )
            )

        # 2. Inmate
        inmate = repos.inmates.find_by_file_number(file_number, Hydration.summary)
        if not inmate:
            return _finish(
                result.deny(DenialKind.not_found, f"Inmate not found: {file_number}")
            )
        result.inmate_id = inmate.id
        result.facility_id = inmate.facility_id
        if not inmate.status.can_receive_visits:
            return _finish(
                result.deny(
                    DenialKind.policy_denied,
                    f"Inmate cannot receive visits (status: {inmate.status.value})",
                )
            )

        # 3. Restrictions
        blocking = blocking_restrictions(repos, visitor, inmate, today)
        if blocking:
            for restriction in blocking:
                result.deny(DenialKind.policy_denied, describe_restriction(restriction))
            return _finish(result)

        # 4. Authorization
        authorization = repos.authorizations.find_by_pair(visitor.id, inmate.id)
        if not authorization:
            return _finish(
                result.deny(
                    DenialKind.not_found,
                    "No authorization found for this visitor and inmate",
                )
            )
        result.authorization_id = authorization.id
        if not is_vigent(authorization, today):
            result.deny(
                DenialKind.policy_denied,
                f"Authorization is not in force (status: {authorization.status.value})",
            )
            if is_expired(authorization, today):
                result.advise(
                    f"Authorization expired on {authorization.expires_on.isoformat()}"
                )
            return _finish(result)
        if enforce_single_active_visit and repos.visit_sessions.list(
            state=VisitState.in_progress, visitor_id=visitor.id, limit=1
        ):
            return _finish(
                result.deny(
                    DenialKind.policy_denied, "Visitor already has a visit in progress"
                )
            )

        # 5. Facility schedule
        facility = repos.facilities.get(inmate.facility_id)
        if not facility:
            return _finish(result.deny(DenialKind.not_found, "Facility not found"))
        if not facility.is_active:
            return _finish(
                result.deny(DenialKind.policy_denied, "Facility is not active")
            )
        if not permits_visit_at(facility, now):
            return _finish(
                result.deny(
                    DenialKind.policy_denied,
                    f"Outside visiting hours ({describe_window(facility)})",
                )
            )

        # 6. Capacity
        in_progress = repos.visit_sessions.count_in_progress(facility.id)
        if capacity_reached(facility, in_progress):
            return _finish(
                result.deny(
                    DenialKind.policy_denied,
                    f"Facility at capacity ({in_progress}/{facility.max_capacity})",
                )
            )
        if near_capacity(facility, in_progress):
            result.advise(
                f"Facility near capacity: {in_progress}/{facility.max_capacity} "
                f"({occupancy_percent(facility, in_progress)}%)"
            )

        result.advise(
            f"Authorization relationship: {authorization.relationship_type.value}"
        )
        result.advise(f"Inmate location: {inmate.location}")
        result.admitted = True
        return _finish(result)

    @staticmethod
    def register_entry(
        repos: Repositories,
        national_id: str,
        file_number: str,
        operator: str,
        now: datetime | None = None,
        notes: str | None = None,
    ) -> tuple[AdmissionResult, VisitSession | None]:
        """Evaluate and, when admitted, open a visit checked in by ``operator``."""
        operator = require_text(operator, "Check-in operator")
        now = now or utcnow()
        result = Admissions.evaluate(repos, national_id, file_number, now)
        if not result.admitted:
            return result, None
        session = VisitSessions.schedule(
            repos,
            result.visitor_id,
            result.inmate_id,
            visit_date=facility_today(now),
            notes=notes,
        )
        try:
            session = VisitSessions.check_in(repos, session.id, operator, now)
        except CapacityError:
            # The last slot went to a concurrent entry
            VisitSessions.cancel(repos, session.id, "Facility at capacity", now)
            raise
        return result, session


admissions = Admissions()
