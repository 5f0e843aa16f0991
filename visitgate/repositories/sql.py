from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from datetime import date
from functools import wraps

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload
from sqlalchemy.orm.exc import StaleDataError

from visitgate.errors import ConcurrentUpdateError, ConflictError, InfrastructureError
from visitgate.models.visit import (
    Authorization,
    Facility,
    Inmate,
    Restriction,
    RestrictionScope,
    VisitSession,
    VisitState,
    Visitor,
)
from visitgate.repositories.base import (
    AuthorizationRepository,
    FacilityRepository,
    Hydration,
    InmateRepository,
    Repositories,
    RestrictionRepository,
    VisitSessionRepository,
    VisitorRepository,
)
from visitgate.services.common import apply_pagination

logger = logging.getLogger(__name__)


def _storage_call(operation: str):
    """Translate driver failures into the engine's error taxonomy."""

    def decorator(fn):
        @wraps(fn)
        def wrapper(self, *args, **kwargs):
            try:
                return fn(self, *args, **kwargs)
            except StaleDataError as exc:
                self.db.rollback()
                raise ConcurrentUpdateError(
                    f"{operation}: record was modified by another operator"
                ) from exc
            except IntegrityError as exc:
                self.db.rollback()
                raise ConflictError(f"{operation}: {self.conflict_message}") from exc
            except SQLAlchemyError as exc:
                logger.exception("Storage failure during %s", operation)
                raise InfrastructureError(f"{operation} failed", cause=exc) from exc

        return wrapper

    return decorator


class _SqlRepository:
    conflict_message = "record already exists"

    def __init__(self, db: Session):
        self.db = db

    def _persist(self, entity):
        self.db.add(entity)
        self.db.flush()
        self.db.refresh(entity)
        return entity


class SqlVisitorRepository(_SqlRepository, VisitorRepository):
    conflict_message = "a visitor with this national id already exists"

    @_storage_call("find visitor")
    def find_by_national_id(
        self, national_id: str, hydration: Hydration = Hydration.summary
    ) -> Visitor | None:
        stmt = select(Visitor).where(Visitor.national_id == national_id)
        if hydration is Hydration.full:
            stmt = stmt.options(selectinload(Visitor.restrictions))
        return self.db.scalar(stmt)

    @_storage_call("get visitor")
    def get(self, visitor_id: uuid.UUID) -> Visitor | None:
        return self.db.get(Visitor, visitor_id)

    @_storage_call("add visitor")
    def add(self, visitor: Visitor) -> Visitor:
        return self._persist(visitor)

    @_storage_call("update visitor")
    def update(self, visitor: Visitor) -> Visitor:
        return self._persist(visitor)


class SqlInmateRepository(_SqlRepository, InmateRepository):
    conflict_message = "an inmate with this file number already exists"

    @_storage_call("find inmate")
    def find_by_file_number(
        self, file_number: str, hydration: Hydration = Hydration.summary
    ) -> Inmate | None:
        stmt = select(Inmate).where(Inmate.file_number == file_number)
        if hydration is Hydration.full:
            stmt = stmt.options(joinedload(Inmate.facility))
        return self.db.scalar(stmt)

    @_storage_call("get inmate")
    def get(self, inmate_id: uuid.UUID) -> Inmate | None:
        return self.db.get(Inmate, inmate_id)

    @_storage_call("list inmates")
    def list_by_facility(self, facility_id: uuid.UUID) -> list[Inmate]:
        stmt = (
            select(Inmate)
            .where(Inmate.facility_id == facility_id)
            .order_by(Inmate.last_name.asc(), Inmate.first_name.asc())
        )
        return list(self.db.scalars(stmt).all())

    @_storage_call("add inmate")
    def add(self, inmate: Inmate) -> Inmate:
        return self._persist(inmate)

    @_storage_call("update inmate")
    def update(self, inmate: Inmate) -> Inmate:
        return self._persist(inmate)


class SqlFacilityRepository(_SqlRepository, FacilityRepository):
    conflict_message = "a facility with this name already exists"

    @_storage_call("get facility")
    def get(self, facility_id: uuid.UUID) -> Facility | None:
        return self.db.get(Facility, facility_id)

    @_storage_call("add facility")
    def add(self, facility: Facility) -> Facility:
        return self._persist(facility)

    @_storage_call("update facility")
    def update(self, facility: Facility) -> Facility:
        return self._persist(facility)


class SqlAuthorizationRepository(_SqlRepository, AuthorizationRepository):
    conflict_message = "an authorization for this visitor and inmate already exists"

    @_storage_call("find authorization")
    def find_by_pair(
        self, visitor_id: uuid.UUID, inmate_id: uuid.UUID
    ) -> Authorization | None:
        return self.db.scalar(
            select(Authorization).where(
                Authorization.visitor_id == visitor_id,
                Authorization.inmate_id == inmate_id,
            )
        )

    @_storage_call("get authorization")
    def get(self, authorization_id: uuid.UUID) -> Authorization | None:
        return self.db.get(Authorization, authorization_id)

    @_storage_call("list authorizations")
    def list_for_visitor(self, visitor_id: uuid.UUID) -> list[Authorization]:
        stmt = (
            select(Authorization)
            .where(Authorization.visitor_id == visitor_id)
            .order_by(Authorization.granted_on.desc())
        )
        return list(self.db.scalars(stmt).all())

    @_storage_call("add authorization")
    def add(self, authorization: Authorization) -> Authorization:
        return self._persist(authorization)

    @_storage_call("update authorization")
    def update(self, authorization: Authorization) -> Authorization:
        return self._persist(authorization)


class SqlRestrictionRepository(_SqlRepository, RestrictionRepository):
    @_storage_call("find restrictions")
    def find_applicable(
        self, visitor_id: uuid.UUID, inmate_id: uuid.UUID, as_of: date
    ) -> list[Restriction]:
        stmt = (
            select(Restriction)
            .where(
                Restriction.visitor_id == visitor_id,
                Restriction.is_active.is_(True),
                Restriction.start_date <= as_of,
                or_(Restriction.end_date.is_(None), Restriction.end_date >= as_of),
                or_(
                    Restriction.scope == RestrictionScope.all_inmates,
                    and_(
                        Restriction.scope == RestrictionScope.specific_inmate,
                        Restriction.inmate_id == inmate_id,
                    ),
                ),
            )
            .order_by(Restriction.start_date.asc())
        )
        return list(self.db.scalars(stmt).all())

    @_storage_call("get restriction")
    def get(self, restriction_id: uuid.UUID) -> Restriction | None:
        return self.db.get(Restriction, restriction_id)

    @_storage_call("list restrictions")
    def list_for_visitor(
        self, visitor_id: uuid.UUID, include_inactive: bool = False
    ) -> list[Restriction]:
        stmt = select(Restriction).where(Restriction.visitor_id == visitor_id)
        if not include_inactive:
            stmt = stmt.where(Restriction.is_active.is_(True))
        stmt = stmt.order_by(Restriction.start_date.desc())
        return list(self.db.scalars(stmt).all())

    @_storage_call("add restriction")
    def add(self, restriction: Restriction) -> Restriction:
        return self._persist(restriction)

    @_storage_call("update restriction")
    def update(self, restriction: Restriction) -> Restriction:
        return self._persist(restriction)


class SqlVisitSessionRepository(_SqlRepository, VisitSessionRepository):
    @_storage_call("count visits in progress")
    def count_in_progress(self, facility_id: uuid.UUID) -> int:
        stmt = select(func.count(VisitSession.id)).where(
            VisitSession.facility_id == facility_id,
            VisitSession.state == VisitState.in_progress,
        )
        return int(self.db.scalar(stmt) or 0)

    @_storage_call("get visit")
    def get(self, session_id: uuid.UUID) -> VisitSession | None:
        return self.db.get(VisitSession, session_id)

    @_storage_call("list visits")
    def list(
        self,
        state: VisitState | None = None,
        visitor_id: uuid.UUID | None = None,
        inmate_id: uuid.UUID | None = None,
        visit_date: date | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[VisitSession]:
        stmt = select(VisitSession)
        if state is not None:
            stmt = stmt.where(VisitSession.state == state)
        if visitor_id is not None:
            stmt = stmt.where(VisitSession.visitor_id == visitor_id)
        if inmate_id is not None:
            stmt = stmt.where(VisitSession.inmate_id == inmate_id)
        if visit_date is not None:
            stmt = stmt.where(VisitSession.visit_date == visit_date)
        stmt = stmt.order_by(VisitSession.created_at.desc())
        return list(self.db.scalars(apply_pagination(stmt, limit, offset)).all())

    @_storage_call("add visit")
    def add(self, session: VisitSession) -> VisitSession:
        return self._persist(session)

    @_storage_call("update visit")
    def update(self, session: VisitSession) -> VisitSession:
        return self._persist(session)

    @contextmanager
    def facility_lock(self, facility_id: uuid.UUID):
        # Row lock held until the surrounding transaction ends; SQLite ignores it
        try:
            self.db.execute(
                select(Facility.id).where(Facility.id == facility_id).with_for_update()
            )
        except SQLAlchemyError as exc:
            logger.exception("Could not lock facility %s", facility_id)
            raise InfrastructureError("lock facility failed", cause=exc) from exc
        yield


def sql_repositories(db: Session) -> Repositories:
    return Repositories(
        visitors=SqlVisitorRepository(db),
        inmates=SqlInmateRepository(db),
        facilities=SqlFacilityRepository(db),
        authorizations=SqlAuthorizationRepository(db),
        restrictions=SqlRestrictionRepository(db),
        visit_sessions=SqlVisitSessionRepository(db),
    )
