from __future__ import annotations

from datetime import date, datetime, time
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from visitgate.models.visit import InmateStatus, VisitorStatus, Weekday


# ---------------------------------------------------------------------------
# Facility
# ---------------------------------------------------------------------------


class FacilityBase(BaseModel):
    name: str
    address: str | None = None
    visiting_days: list[Weekday] = Field(default_factory=list)
    window_start: time | None = None
    window_end: time | None = None
    max_capacity: int | None = None


class FacilityCreate(FacilityBase):
    pass


class VisitingWindowUpdate(BaseModel):
    visiting_days: list[Weekday]
    window_start: time
    window_end: time


class CapacityUpdate(BaseModel):
    max_capacity: int | None = None


class FacilityRead(FacilityBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    is_active: bool
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Visitor
# ---------------------------------------------------------------------------


class VisitorBase(BaseModel):
    national_id: str
    first_name: str
    last_name: str
    birth_date: date
    phone: str | None = None
    email: str | None = None


class VisitorCreate(VisitorBase):
    pass


class VisitorStatusUpdate(BaseModel):
    status: VisitorStatus


class VisitorRead(VisitorBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    status: VisitorStatus
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Inmate
# ---------------------------------------------------------------------------


class InmateBase(BaseModel):
    file_number: str
    first_name: str
    last_name: str
    facility_id: UUID
    wing: str | None = None
    floor: int | None = None


class InmateCreate(InmateBase):
    pass


class InmateRelocate(BaseModel):
    wing: str
    floor: int


class InmateRead(InmateBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    status: InmateStatus
    created_at: datetime
    updated_at: datetime
