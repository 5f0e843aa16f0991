from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from visitgate.api.deps import get_repositories
from visitgate.models.visit import VisitState
from visitgate.repositories import Repositories
from visitgate.schemas.common import ListResponse
from visitgate.schemas.visit import (
    CancelRequest,
    CheckInRequest,
    CheckOutRequest,
    VisitSessionCreate,
    VisitSessionRead,
)
from visitgate.services.visit_session import visit_sessions

router = APIRouter(prefix="/visits", tags=["visits"])


@router.post("", response_model=VisitSessionRead, status_code=status.HTTP_201_CREATED)
def schedule_visit(
    payload: VisitSessionCreate, repos: Repositories = Depends(get_repositories)
) -> VisitSessionRead:
    return visit_sessions.schedule(
        repos, payload.visitor_id, payload.inmate_id, payload.visit_date, payload.notes
    )


@router.get("", response_model=ListResponse[VisitSessionRead])
def list_visits(
    state: VisitState | None = None,
    visitor_id: UUID | None = None,
    inmate_id: UUID | None = None,
    visit_date: date | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    repos: Repositories = Depends(get_repositories),
) -> dict:
    items = visit_sessions.list(
        repos, state, visitor_id, inmate_id, visit_date, limit, offset
    )
    return {"items": items, "count": len(items), "limit": limit, "offset": offset}


@router.get("/{visit_id}", response_model=VisitSessionRead)
def get_visit(
    visit_id: str, repos: Repositories = Depends(get_repositories)
) -> VisitSessionRead:
    return visit_sessions.get(repos, visit_id)


@router.post("/{visit_id}/check-in", response_model=VisitSessionRead)
def check_in(
    visit_id: str,
    payload: CheckInRequest,
    repos: Repositories = Depends(get_repositories),
) -> VisitSessionRead:
    return visit_sessions.check_in(repos, visit_id, payload.operator)


@router.post("/{visit_id}/check-out", response_model=VisitSessionRead)
def check_out(
    visit_id: str,
    payload: CheckOutRequest,
    repos: Repositories = Depends(get_repositories),
) -> VisitSessionRead:
    return visit_sessions.check_out(repos, visit_id, payload.operator, payload.notes)


@router.post("/{visit_id}/cancel", response_model=VisitSessionRead)
def cancel_visit(
    visit_id: str,
    payload: CancelRequest,
    repos: Repositories = Depends(get_repositories),
) -> VisitSessionRead:
    return visit_sessions.cancel(repos, visit_id, payload.reason)
