from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from visitgate.models.visit import AuthorizationStatus, RelationshipType


class AuthorizationBase(BaseModel):
    visitor_id: UUID
    inmate_id: UUID
    relationship_type: RelationshipType
    relationship_detail: str | None = None
    expires_on: date | None = None
    granted_by: str | None = None


class AuthorizationCreate(AuthorizationBase):
    pass


class ImmediateAuthorizationCreate(BaseModel):
    visitor_id: UUID
    inmate_id: UUID
    granted_by: str
    operator_role: str


class AuthorizationRenew(BaseModel):
    expires_on: date | None = None


class AuthorizationReason(BaseModel):
    reason: str


class AuthorizationRead(AuthorizationBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    status: AuthorizationStatus
    granted_on: date
    notes: str | None = None
    created_at: datetime
    updated_at: datetime
