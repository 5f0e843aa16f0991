"""In-process storage, used for offline stations and for tests.

Entities are stored as detached snapshots: every read hands out a fresh copy,
so two callers never share a mutable instance, mirroring a real database.
"""

from __future__ import annotations

import copy
import logging
import threading
import uuid
from collections import defaultdict
from datetime import date, datetime, timezone

from sqlalchemy import inspect

from visitgate.errors import ConcurrentUpdateError, ConflictError
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

logger = logging.getLogger(__name__)

# Python-side column defaults the ORM would apply on flush
_DEFAULTS = {
    "is_active": True,
    "version": 1,
}


def _snapshot(entity):
    cls = type(entity)
    values = {
        attr.key: copy.copy(getattr(entity, attr.key))
        for attr in inspect(cls).column_attrs
    }
    return cls(**values)


class _MemoryTable:
    def __init__(self, lock: threading.RLock):
        self._lock = lock
        self._rows: dict[uuid.UUID, object] = {}

    def insert(self, entity):
        with self._lock:
            if entity.id is None:
                entity.id = uuid.uuid4()
            now = datetime.now(timezone.utc)
            if getattr(entity, "created_at", None) is None:
                entity.created_at = now
            entity.updated_at = now
            for key, value in _DEFAULTS.items():
                if hasattr(entity, key) and getattr(entity, key) is None:
                    setattr(entity, key, value)
            self._rows[entity.id] = _snapshot(entity)
            return entity

    def replace(self, entity):
        with self._lock:
            entity.updated_at = datetime.now(timezone.utc)
            self._rows[entity.id] = _snapshot(entity)
            return entity

    def get(self, entity_id):
        with self._lock:
            row = self._rows.get(entity_id)
            return _snapshot(row) if row is not None else None

    def stored(self, entity_id):
        return self._rows.get(entity_id)

    def select(self, predicate=lambda row: True) -> list:
        with self._lock:
            return [_snapshot(row) for row in self._rows.values() if predicate(row)]


class MemoryVisitorRepository(VisitorRepository):
    def __init__(self, lock: threading.RLock):
        self._lock = lock
        self._table = _MemoryTable(lock)

    def find_by_national_id(
        self, national_id: str, hydration: Hydration = Hydration.summary
    ) -> Visitor | None:
        rows = self._table.select(lambda row: row.national_id == national_id)
        return rows[0] if rows else None

    def get(self, visitor_id: uuid.UUID) -> Visitor | None:
        return self._table.get(visitor_id)

    def add(self, visitor: Visitor) -> Visitor:
        with self._lock:
            if self._table.select(lambda row: row.national_id == visitor.national_id):
                raise ConflictError(
                    "add visitor: a visitor with this national id already exists"
                )
            return self._table.insert(visitor)

    def update(self, visitor: Visitor) -> Visitor:
        return self._table.replace(visitor)


class MemoryInmateRepository(InmateRepository):
    def __init__(self, lock: threading.RLock):
        self._lock = lock
        self._table = _MemoryTable(lock)

    def find_by_file_number(
        self, file_number: str, hydration: Hydration = Hydration.summary
    ) -> Inmate | None:
        rows = self._table.select(lambda row: row.file_number == file_number)
        return rows[0] if rows else None

    def get(self, inmate_id: uuid.UUID) -> Inmate | None:
        return self._table.get(inmate_id)

    def list_by_facility(self, facility_id: uuid.UUID) -> list[Inmate]:
        rows = self._table.select(lambda row: row.facility_id == facility_id)
        return sorted(rows, key=lambda row: (row.last_name, row.first_name))

    def add(self, inmate: Inmate) -> Inmate:
        with self._lock:
            if self._table.select(lambda row: row.file_number == inmate.file_number):
                raise ConflictError(
                    "add inmate: an inmate with this file number already exists"
                )
            return self._table.insert(inmate)

    def update(self, inmate: Inmate) -> Inmate:
        return self._table.replace(inmate)


class MemoryFacilityRepository(FacilityRepository):
    def __init__(self, lock: threading.RLock):
        self._lock = lock
        self._table = _MemoryTable(lock)

    def get(self, facility_id: uuid.UUID) -> Facility | None:
        return self._table.get(facility_id)

    def add(self, facility: Facility) -> Facility:
        with self._lock:
            if self._table.select(lambda row: row.name == facility.name):
                raise ConflictError(
                    "add facility: a facility with this name already exists"
                )
            return self._table.insert(facility)

    def update(self, facility: Facility) -> Facility:
        return self._table.replace(facility)


class MemoryAuthorizationRepository(AuthorizationRepository):
    def __init__(self, lock: threading.RLock):
        self._lock = lock
        self._table = _MemoryTable(lock)

    def find_by_pair(
        self, visitor_id: uuid.UUID, inmate_id: uuid.UUID
    ) -> Authorization | None:
        rows = self._table.select(
            lambda row: row.visitor_id == visitor_id and row.inmate_id == inmate_id
        )
        return rows[0] if rows else None

    def get(self, authorization_id: uuid.UUID) -> Authorization | None:
        return self._table.get(authorization_id)

    def list_for_visitor(self, visitor_id: uuid.UUID) -> list[Authorization]:
        rows = self._table.select(lambda row: row.visitor_id == visitor_id)
        return sorted(rows, key=lambda row: row.granted_on, reverse=True)

    def add(self, authorization: Authorization) -> Authorization:
        with self._lock:
            if self.find_by_pair(authorization.visitor_id, authorization.inmate_id):
                raise ConflictError(
                    "add authorization: an authorization for this visitor and "
                    "inmate already exists"
                )
            return self._table.insert(authorization)

    def update(self, authorization: Authorization) -> Authorization:
        return self._table.replace(authorization)


class MemoryRestrictionRepository(RestrictionRepository):
    def __init__(self, lock: threading.RLock):
        self._table = _MemoryTable(lock)

    def find_applicable(
        self, visitor_id: uuid.UUID, inmate_id: uuid.UUID, as_of: date
    ) -> list[Restriction]:
        def _matches(row: Restriction) -> bool:
            if row.visitor_id != visitor_id or not row.is_active:
                return False
            if row.start_date > as_of:
                return False
            if row.end_date is not None and row.end_date < as_of:
                return False
            if row.scope is RestrictionScope.all_inmates:
                return True
            return row.inmate_id == inmate_id

        return sorted(self._table.select(_matches), key=lambda row: row.start_date)

    def get(self, restriction_id: uuid.UUID) -> Restriction | None:
        return self._table.get(restriction_id)

    def list_for_visitor(
        self, visitor_id: uuid.UUID, include_inactive: bool = False
    ) -> list[Restriction]:
        rows = self._table.select(
            lambda row: row.visitor_id == visitor_id
            and (include_inactive or row.is_active)
        )
        return sorted(rows, key=lambda row: row.start_date, reverse=True)

    def add(self, restriction: Restriction) -> Restriction:
        return self._table.insert(restriction)

    def update(self, restriction: Restriction) -> Restriction:
        return self._table.replace(restriction)


class MemoryVisitSessionRepository(VisitSessionRepository):
    def __init__(self, lock: threading.RLock):
        self._lock = lock
        self._table = _MemoryTable(lock)
        self._facility_locks: dict[uuid.UUID, threading.Lock] = defaultdict(
            threading.Lock
        )

    def count_in_progress(self, facility_id: uuid.UUID) -> int:
        return len(
            self._table.select(
                lambda row: row.facility_id == facility_id
                and row.state is VisitState.in_progress
            )
        )

    def get(self, session_id: uuid.UUID) -> VisitSession | None:
        return self._table.get(session_id)

    def list(
        self,
        state: VisitState | None = None,
        visitor_id: uuid.UUID | None = None,
        inmate_id: uuid.UUID | None = None,
        visit_date: date | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[VisitSession]:
        def _matches(row: VisitSession) -> bool:
            return (
                (state is None or row.state is state)
                and (visitor_id is None or row.visitor_id == visitor_id)
                and (inmate_id is None or row.inmate_id == inmate_id)
                and (visit_date is None or row.visit_date == visit_date)
            )

        rows = sorted(
            self._table.select(_matches), key=lambda row: row.created_at, reverse=True
        )
        return rows[offset : offset + limit]

    def add(self, session: VisitSession) -> VisitSession:
        return self._table.insert(session)

    def update(self, session: VisitSession) -> VisitSession:
        with self._lock:
            stored = self._table.stored(session.id)
            if stored is None or stored.version != session.version:
                raise ConcurrentUpdateError(
                    "update visit: record was modified by another operator"
                )
            session.version = stored.version + 1
            return self._table.replace(session)

    def facility_lock(self, facility_id: uuid.UUID):
        with self._lock:
            return self._facility_locks[facility_id]


def memory_repositories() -> Repositories:
    lock = threading.RLock()
    logger.info("Using in-memory repositories")
    return Repositories(
        visitors=MemoryVisitorRepository(lock),
        inmates=MemoryInmateRepository(lock),
        facilities=MemoryFacilityRepository(lock),
        authorizations=MemoryAuthorizationRepository(lock),
        restrictions=MemoryRestrictionRepository(lock),
        visit_sessions=MemoryVisitSessionRepository(lock),
    )
