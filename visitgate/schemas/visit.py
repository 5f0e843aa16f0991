from __future__ import annotations

import enum
from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from visitgate.models.visit import VisitState


# ---------------------------------------------------------------------------
# Admission
# ---------------------------------------------------------------------------


class DenialKind(str, enum.Enum):
    not_found = "not_found"
    policy_denied = "policy_denied"


class AdmissionResult(BaseModel):
    admitted: bool = False
    blocking_reasons: list[str] = Field(default_factory=list)
    advisories: list[str] = Field(default_factory=list)
    denial: DenialKind | None = None
    visitor_id: UUID | None = None
    inmate_id: UUID | None = None
    facility_id: UUID | None = None
    authorization_id: UUID | None = None

    def deny(self, kind: DenialKind, reason: str) -> "AdmissionResult":
        self.admitted = False
        self.denial = kind
        self.blocking_reasons.append(reason)
        return self

    def advise(self, advisory: str) -> None:
        self.advisories.append(advisory)


class AdmissionRequest(BaseModel):
    national_id: str
    file_number: str
    at: datetime | None = None


class EntryRequest(AdmissionRequest):
    operator: str
    notes: str | None = None


# ---------------------------------------------------------------------------
# VisitSession
# ---------------------------------------------------------------------------


class VisitSessionCreate(BaseModel):
    visitor_id: UUID
    inmate_id: UUID
    visit_date: date | None = None
    notes: str | None = None


class CheckInRequest(BaseModel):
    operator: str


class CheckOutRequest(BaseModel):
    operator: str
    notes: str | None = None


class CancelRequest(BaseModel):
    reason: str


class VisitSessionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    visitor_id: UUID
    inmate_id: UUID
    facility_id: UUID
    visit_date: date
    state: VisitState
    checked_in_at: datetime | None = None
    checked_out_at: datetime | None = None
    check_in_operator: str | None = None
    check_out_operator: str | None = None
    notes: str | None = None
    version: int
    created_at: datetime
    updated_at: datetime


class EntryResponse(BaseModel):
    admission: AdmissionResult
    visit: VisitSessionRead | None = None
