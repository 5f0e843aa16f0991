"""Storage contracts consumed by the admission engine.

Implementations are picked once at startup (see ``visitgate.main``) and
handed to every service call; nothing below inspects a global mode flag.
Any implementation may raise ``InfrastructureError`` from any method.
"""

from __future__ import annotations

import enum
import uuid
from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import date

from visitgate.models.visit import (
    Authorization,
    Facility,
    Inmate,
    Restriction,
    VisitSession,
    VisitState,
    Visitor,
)


class Hydration(enum.Enum):
    """How much related data a lookup loads along with the entity."""

    summary = "summary"
    full = "full"


class VisitorRepository(ABC):
    @abstractmethod
    def find_by_national_id(
        self, national_id: str, hydration: Hydration = Hydration.summary
    ) -> Visitor | None: ...

    @abstractmethod
    def get(self, visitor_id: uuid.UUID) -> Visitor | None: ...

    @abstractmethod
    def add(self, visitor: Visitor) -> Visitor: ...

    @abstractmethod
    def update(self, visitor: Visitor) -> Visitor: ...


class InmateRepository(ABC):
    @abstractmethod
    def find_by_file_number(
        self, file_number: str, hydration: Hydration = Hydration.summary
    ) -> Inmate | None: ...

    @abstractmethod
    def get(self, inmate_id: uuid.UUID) -> Inmate | None: ...

    @abstractmethod
    def list_by_facility(self, facility_id: uuid.UUID) -> list[Inmate]: ...

    @abstractmethod
    def add(self, inmate: Inmate) -> Inmate: ...

    @abstractmethod
    def update(self, inmate: Inmate) -> Inmate: ...


class FacilityRepository(ABC):
    @abstractmethod
    def get(self, facility_id: uuid.UUID) -> Facility | None: ...

    @abstractmethod
    def add(self, facility: Facility) -> Facility: ...

    @abstractmethod
    def update(self, facility: Facility) -> Facility: ...


class AuthorizationRepository(ABC):
    @abstractmethod
    def find_by_pair(
        self, visitor_id: uuid.UUID, inmate_id: uuid.UUID
    ) -> Authorization | None: ...

    @abstractmethod
    def get(self, authorization_id: uuid.UUID) -> Authorization | None: ...

    @abstractmethod
    def list_for_visitor(self, visitor_id: uuid.UUID) -> list[Authorization]: ...

    @abstractmethod
    def add(self, authorization: Authorization) -> Authorization:
        """Persist a new authorization.

        Raises ConflictError when the (visitor, inmate) pair already exists.
        """

    @abstractmethod
    def update(self, authorization: Authorization) -> Authorization: ...


class RestrictionRepository(ABC):
    @abstractmethod
    def find_applicable(
        self, visitor_id: uuid.UUID, inmate_id: uuid.UUID, as_of: date
    ) -> list[Restriction]:
        """Restrictions of the visitor in force on ``as_of`` that cover the inmate."""

    @abstractmethod
    def get(self, restriction_id: uuid.UUID) -> Restriction | None: ...

    @abstractmethod
    def list_for_visitor(
        self, visitor_id: uuid.UUID, include_inactive: bool = False
    ) -> list[Restriction]: ...

    @abstractmethod
    def add(self, restriction: Restriction) -> Restriction: ...

    @abstractmethod
    def update(self, restriction: Restriction) -> Restriction: ...


class VisitSessionRepository(ABC):
    @abstractmethod
    def count_in_progress(self, facility_id: uuid.UUID) -> int: ...

    @abstractmethod
    def get(self, session_id: uuid.UUID) -> VisitSession | None: ...

    @abstractmethod
    def list(
        self,
        state: VisitState | None = None,
        visitor_id: uuid.UUID | None = None,
        inmate_id: uuid.UUID | None = None,
        visit_date: date | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[VisitSession]: ...

    @abstractmethod
    def add(self, session: VisitSession) -> VisitSession: ...

    @abstractmethod
    def update(self, session: VisitSession) -> VisitSession:
        """Persist a transition.

        Raises ConcurrentUpdateError when the stored version moved on since
        the session was read.
        """

    @abstractmethod
    def facility_lock(self, facility_id: uuid.UUID) -> AbstractContextManager:
        """Serialize count-then-transition sequences for one facility."""


@dataclass
class Repositories:
    visitors: VisitorRepository
    inmates: InmateRepository
    facilities: FacilityRepository
    authorizations: AuthorizationRepository
    restrictions: RestrictionRepository
    visit_sessions: VisitSessionRepository
