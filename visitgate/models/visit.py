import enum
import uuid
from datetime import date, datetime, time, timezone

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from visitgate.db import Base


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class VisitorStatus(enum.Enum):
    active = "active"
    suspended = "suspended"
    inactive = "inactive"


class InmateStatus(enum.Enum):
    active = "active"
    transferred = "transferred"
    discharged = "discharged"

    @property
    def can_receive_visits(self) -> bool:
        return self is InmateStatus.active


class AuthorizationStatus(enum.Enum):
    active = "active"
    suspended = "suspended"
    revoked = "revoked"
    expired = "expired"


class RelationshipType(enum.Enum):
    father = "father"
    mother = "mother"
    child = "child"
    sibling = "sibling"
    spouse = "spouse"
    partner = "partner"
    friend = "friend"
    relative = "relative"
    lawyer = "lawyer"
    other = "other"

    @property
    def is_immediate_family(self) -> bool:
        return self in {
            RelationshipType.father,
            RelationshipType.mother,
            RelationshipType.child,
            RelationshipType.sibling,
            RelationshipType.spouse,
            RelationshipType.partner,
        }


class RestrictionType(enum.Enum):
    conduct = "conduct"
    judicial = "judicial"
    administrative = "administrative"
    security = "security"


class RestrictionScope(enum.Enum):
    all_inmates = "all_inmates"
    specific_inmate = "specific_inmate"


class VisitState(enum.Enum):
    scheduled = "scheduled"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in {VisitState.completed, VisitState.cancelled}


class Weekday(enum.Enum):
    monday = "monday"
    tuesday = "tuesday"
    wednesday = "wednesday"
    thursday = "thursday"
    friday = "friday"
    saturday = "saturday"
    sunday = "sunday"

    @classmethod
    def of(cls, day: date) -> "Weekday":
        # date.weekday() is Monday=0 regardless of locale
        return _WEEKDAY_BY_INDEX[day.weekday()]

    @property
    def short_name(self) -> str:
        return self.value[:3]


_WEEKDAY_BY_INDEX = {
    0: Weekday.monday,
    1: Weekday.tuesday,
    2: Weekday.wednesday,
    3: Weekday.thursday,
    4: Weekday.friday,
    5: Weekday.saturday,
    6: Weekday.sunday,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Facilities
# ---------------------------------------------------------------------------


class Facility(Base):
    __tablename__ = "facilities"
    __table_args__ = (UniqueConstraint("name", name="uq_facilities_name"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str | None] = mapped_column(String(500))
    # Stored as a list of Weekday values, e.g. ["monday", "wednesday"]
    visiting_days: Mapped[list | None] = mapped_column(JSON)
    window_start: Mapped[time | None] = mapped_column(Time)
    window_end: Mapped[time | None] = mapped_column(Time)
    max_capacity: Mapped[int | None] = mapped_column(Integer)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    inmates = relationship("Inmate", back_populates="facility")

    @property
    def enabled_weekdays(self) -> set[Weekday]:
        return {Weekday(day) for day in (self.visiting_days or [])}


# ---------------------------------------------------------------------------
# Visitors and inmates
# ---------------------------------------------------------------------------


class Visitor(Base):
    __tablename__ = "visitors"
    __table_args__ = (
        UniqueConstraint("national_id", name="uq_visitors_national_id"),
        Index("ix_visitors_last_name", "last_name"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    national_id: Mapped[str] = mapped_column(String(8), nullable=False)
    first_name: Mapped[str] = mapped_column(String(120), nullable=False)
    last_name: Mapped[str] = mapped_column(String(120), nullable=False)
    birth_date: Mapped[date] = mapped_column(Date, nullable=False)
    phone: Mapped[str | None] = mapped_column(String(40))
    email: Mapped[str | None] = mapped_column(String(255))
    status: Mapped[VisitorStatus] = mapped_column(
        Enum(VisitorStatus), default=VisitorStatus.active
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    # Lookup only; restrictions are managed through their own repository
    restrictions = relationship("Restriction", viewonly=True)

    @property
    def full_name(self) -> str:
        return f"{self.last_name}, {self.first_name}"


class Inmate(Base):
    __tablename__ = "inmates"
    __table_args__ = (
        UniqueConstraint("file_number", name="uq_inmates_file_number"),
        Index("ix_inmates_facility_id", "facility_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    file_number: Mapped[str] = mapped_column(String(40), nullable=False)
    first_name: Mapped[str] = mapped_column(String(120), nullable=False)
    last_name: Mapped[str] = mapped_column(String(120), nullable=False)
    status: Mapped[InmateStatus] = mapped_column(
        Enum(InmateStatus), default=InmateStatus.active
    )
    wing: Mapped[str | None] = mapped_column(String(60))
    floor: Mapped[int | None] = mapped_column(Integer)
    facility_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("facilities.id"), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    facility = relationship("Facility", back_populates="inmates")

    @property
    def full_name(self) -> str:
        return f"{self.last_name}, {self.first_name}"

    @property
    def location(self) -> str:
        return f"Wing {self.wing or '-'} - Floor {self.floor if self.floor is not None else '-'}"


# ---------------------------------------------------------------------------
# Authorizations
# ---------------------------------------------------------------------------


class Authorization(Base):
    __tablename__ = "authorizations"
    __table_args__ = (
        UniqueConstraint(
            "visitor_id", "inmate_id", name="uq_authorizations_visitor_inmate"
        ),
        Index("ix_authorizations_inmate_id", "inmate_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    visitor_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("visitors.id"), nullable=False
    )
    inmate_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("inmates.id"), nullable=False
    )
    relationship_type: Mapped[RelationshipType] = mapped_column(
        Enum(RelationshipType), nullable=False
    )
    relationship_detail: Mapped[str | None] = mapped_column(String(255))
    granted_on: Mapped[date] = mapped_column(Date, nullable=False)
    # NULL means the authorization never expires
    expires_on: Mapped[date | None] = mapped_column(Date)
    status: Mapped[AuthorizationStatus] = mapped_column(
        Enum(AuthorizationStatus), default=AuthorizationStatus.active
    )
    granted_by: Mapped[str | None] = mapped_column(String(120))
    notes: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    visitor = relationship("Visitor")
    inmate = relationship("Inmate")


# ---------------------------------------------------------------------------
# Restrictions
# ---------------------------------------------------------------------------


class Restriction(Base):
    __tablename__ = "restrictions"
    __table_args__ = (
        Index("ix_restrictions_visitor_active", "visitor_id", "is_active"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    visitor_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("visitors.id"), nullable=False
    )
    restriction_type: Mapped[RestrictionType] = mapped_column(
        Enum(RestrictionType), nullable=False
    )
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    # NULL means the restriction is indefinite
    end_date: Mapped[date | None] = mapped_column(Date)
    scope: Mapped[RestrictionScope] = mapped_column(
        Enum(RestrictionScope), default=RestrictionScope.all_inmates
    )
    inmate_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("inmates.id")
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_by: Mapped[str | None] = mapped_column(String(120))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    visitor = relationship("Visitor")
    inmate = relationship("Inmate")


# ---------------------------------------------------------------------------
# Visit sessions: one check-in to check-out occurrence, never deleted
# ---------------------------------------------------------------------------


class VisitSession(Base):
    __tablename__ = "visit_sessions"
    __table_args__ = (
        Index("ix_visit_sessions_facility_state", "facility_id", "state"),
        Index("ix_visit_sessions_visitor_id", "visitor_id"),
        Index("ix_visit_sessions_inmate_id", "inmate_id"),
        Index("ix_visit_sessions_visit_date", "visit_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    visitor_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("visitors.id"), nullable=False
    )
    inmate_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("inmates.id"), nullable=False
    )
    facility_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("facilities.id"), nullable=False
    )
    visit_date: Mapped[date] = mapped_column(Date, nullable=False)
    checked_in_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    checked_out_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    state: Mapped[VisitState] = mapped_column(
        Enum(VisitState), default=VisitState.scheduled
    )
    check_in_operator: Mapped[str | None] = mapped_column(String(120))
    check_out_operator: Mapped[str | None] = mapped_column(String(120))
    notes: Mapped[str | None] = mapped_column(Text)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    __mapper_args__ = {"version_id_col": version}

    visitor = relationship("Visitor")
    inmate = relationship("Inmate")
