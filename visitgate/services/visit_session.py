import logging
from datetime import date, datetime, timedelta

from visitgate.errors import CapacityError, NotFoundError, StateError
from visitgate.models.visit import VisitSession, VisitState
from visitgate.repositories.base import Repositories
from visitgate.services.capacity import capacity_reached
from visitgate.services.common import (
    append_note,
    as_utc,
    coerce_uuid,
    facility_today,
    prepend_note,
    require_text,
    utcnow,
)

logger = logging.getLogger(__name__)


class VisitSessionStateMachine:
    """Transitions of a single visit, applied in place.

    scheduled -> in_progress -> completed, with cancelled reachable from
    either non-terminal state. Nothing here touches storage.
    """

    @staticmethod
    def validate_check_in(session: VisitSession, operator: str) -> str:
        """Raise what ``check_in`` would raise, leaving ``session`` untouched."""
        if session.state is not VisitState.scheduled:
            raise StateError(
                f"Only scheduled visits can be checked in (state: {session.state.value})"
            )
        return require_text(operator, "Check-in operator")

    @staticmethod
    def check_in(session: VisitSession, operator: str, at: datetime) -> VisitSession:
        session.check_in_operator = VisitSessionStateMachine.validate_check_in(
            session, operator
        )
        session.checked_in_at = at
        session.state = VisitState.in_progress
        return session

    @staticmethod
    def check_out(
        session: VisitSession,
        operator: str,
        at: datetime,
        notes: str | None = None,
    ) -> VisitSession:
        if session.state is not VisitState.in_progress:
            raise StateError(
                f"Only visits in progress can be checked out (state: {session.state.value})"
            )
        if session.checked_in_at is None:
            raise StateError("Visit has no check-in time")
        session.check_out_operator = require_text(operator, "Check-out operator")
        session.checked_out_at = at
        session.state = VisitState.completed
        if notes and notes.strip():
            session.notes = append_note(session.notes, notes.strip())
        return session

    @staticmethod
    def cancel(session: VisitSession, reason: str, at: datetime) -> VisitSession:
        reason = require_text(reason, "Cancellation reason")
        if session.state.is_terminal:
            raise StateError(
                f"Visit is already closed (state: {session.state.value})"
            )
        if session.checked_in_at is not None and session.checked_out_at is None:
            session.checked_out_at = at
        session.state = VisitState.cancelled
        session.notes = prepend_note(session.notes, f"CANCELLED: {reason}")
        return session


def duration(session: VisitSession) -> timedelta | None:
    if session.checked_in_at is None or session.checked_out_at is None:
        return None
    return as_utc(session.checked_out_at) - as_utc(session.checked_in_at)


def format_duration(session: VisitSession) -> str:
    elapsed = duration(session)
    if elapsed is None:
        return "not finished"
    minutes = int(elapsed.total_seconds()) // 60
    return f"{minutes // 60}h {minutes % 60}m"


def _require_session(repos: Repositories, session_id) -> VisitSession:
    session = repos.visit_sessions.get(coerce_uuid(session_id))
    if not session:
        raise NotFoundError("Visit not found")
    return session


class VisitSessions:
    @staticmethod
    def schedule(
        repos: Repositories,
        visitor_id,
        inmate_id,
        visit_date: date | None = None,
        notes: str | None = None,
    ) -> VisitSession:
        visitor_uuid = coerce_uuid(visitor_id)
        inmate_uuid = coerce_uuid(inmate_id)
        if not repos.visitors.get(visitor_uuid):
            raise NotFoundError("Visitor not found")
        inmate = repos.inmates.get(inmate_uuid)
        if not inmate:
            raise NotFoundError("Inmate not found")

        session = VisitSession(
            visitor_id=visitor_uuid,
            inmate_id=inmate_uuid,
            facility_id=inmate.facility_id,
            visit_date=visit_date or facility_today(),
            state=VisitState.scheduled,
            notes=notes,
        )
        session = repos.visit_sessions.add(session)
        logger.info("Scheduled visit %s for visitor %s", session.id, visitor_uuid)
        return session

    @staticmethod
    def get(repos: Repositories, session_id) -> VisitSession:
        return _require_session(repos, session_id)

    @staticmethod
    def check_in(
        repos: Repositories, session_id, operator: str, at: datetime | None = None
    ) -> VisitSession:
        session = _require_session(repos, session_id)
        at = at or utcnow()
        with repos.visit_sessions.facility_lock(session.facility_id):
            # A refused check-in must leave the visit unchanged
            VisitSessionStateMachine.validate_check_in(session, operator)
            in_progress = repos.visit_sessions.count_in_progress(session.facility_id)
            facility = repos.facilities.get(session.facility_id)
            if facility and capacity_reached(facility, in_progress):
                raise CapacityError(
                    f"Facility at capacity ({in_progress}/{facility.max_capacity})"
                )
            VisitSessionStateMachine.check_in(session, operator, at)
            session = repos.visit_sessions.update(session)
        logger.info(
            "Visit %s checked in by %s", session.id, session.check_in_operator
        )
        return session

    @staticmethod
    def check_out(
        repos: Repositories,
        session_id,
        operator: str,
        notes: str | None = None,
        at: datetime | None = None,
    ) -> VisitSession:
        session = _require_session(repos, session_id)
        VisitSessionStateMachine.check_out(session, operator, at or utcnow(), notes)
        session = repos.visit_sessions.update(session)
        logger.info(
            "Visit %s checked out by %s after %s",
            session.id,
            session.check_out_operator,
            format_duration(session),
        )
        return session

    @staticmethod
    def cancel(
        repos: Repositories, session_id, reason: str, at: datetime | None = None
    ) -> VisitSession:
        session = _require_session(repos, session_id)
        VisitSessionStateMachine.cancel(session, reason, at or utcnow())
        session = repos.visit_sessions.update(session)
        logger.info("Visit %s cancelled", session.id)
        return session

    @staticmethod
    def list(
        repos: Repositories,
        state: VisitState | None = None,
        visitor_id=None,
        inmate_id=None,
        visit_date: date | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[VisitSession]:
        return repos.visit_sessions.list(
            state=state,
            visitor_id=coerce_uuid(visitor_id),
            inmate_id=coerce_uuid(inmate_id),
            visit_date=visit_date,
            limit=limit,
            offset=offset,
        )

    @staticmethod
    def in_progress(repos: Repositories, limit: int = 50, offset: int = 0):
        return VisitSessions.list(
            repos, state=VisitState.in_progress, limit=limit, offset=offset
        )


visit_sessions = VisitSessions()
