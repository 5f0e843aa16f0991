from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from visitgate.models.visit import RestrictionScope, RestrictionType


class RestrictionBase(BaseModel):
    visitor_id: UUID
    restriction_type: RestrictionType
    reason: str
    start_date: date | None = None
    end_date: date | None = None
    scope: RestrictionScope = RestrictionScope.all_inmates
    inmate_id: UUID | None = None
    created_by: str | None = None


class RestrictionCreate(RestrictionBase):
    pass


class RestrictionLift(BaseModel):
    reason: str


class RestrictionExtend(BaseModel):
    end_date: date | None = None


class RestrictionRead(RestrictionBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    start_date: date
    is_active: bool
    created_at: datetime
    updated_at: datetime
