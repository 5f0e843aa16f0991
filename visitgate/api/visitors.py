from fastapi import APIRouter, Depends, status

from visitgate.api.deps import get_repositories
from visitgate.repositories import Repositories
from visitgate.schemas.authorization import AuthorizationRead
from visitgate.schemas.common import ListResponse
from visitgate.schemas.registry import VisitorCreate, VisitorRead, VisitorStatusUpdate
from visitgate.schemas.restriction import RestrictionRead
from visitgate.services.authorization import authorizations
from visitgate.services.restriction import restrictions
from visitgate.services.visitor import visitors

router = APIRouter(prefix="/visitors", tags=["visitors"])


@router.post("", response_model=VisitorRead, status_code=status.HTTP_201_CREATED)
def register_visitor(
    payload: VisitorCreate, repos: Repositories = Depends(get_repositories)
) -> VisitorRead:
    return visitors.register(repos, **payload.model_dump())


@router.get("/by-national-id/{national_id}", response_model=VisitorRead)
def get_visitor_by_national_id(
    national_id: str, repos: Repositories = Depends(get_repositories)
) -> VisitorRead:
    return visitors.get_by_national_id(repos, national_id)


@router.get("/{visitor_id}", response_model=VisitorRead)
def get_visitor(
    visitor_id: str, repos: Repositories = Depends(get_repositories)
) -> VisitorRead:
    return visitors.get(repos, visitor_id)


@router.put("/{visitor_id}/status", response_model=VisitorRead)
def set_visitor_status(
    visitor_id: str,
    payload: VisitorStatusUpdate,
    repos: Repositories = Depends(get_repositories),
) -> VisitorRead:
    return visitors.set_status(repos, visitor_id, payload.status)


@router.get(
    "/{visitor_id}/authorizations", response_model=ListResponse[AuthorizationRead]
)
def list_visitor_authorizations(
    visitor_id: str,
    vigent_only: bool = False,
    repos: Repositories = Depends(get_repositories),
) -> dict:
    visitors.get(repos, visitor_id)
    if vigent_only:
        items = authorizations.list_vigent_for_visitor(repos, visitor_id)
    else:
        items = authorizations.list_for_visitor(repos, visitor_id)
    return {"items": items, "count": len(items), "limit": len(items), "offset": 0}


@router.get("/{visitor_id}/restrictions", response_model=ListResponse[RestrictionRead])
def list_visitor_restrictions(
    visitor_id: str,
    include_inactive: bool = False,
    repos: Repositories = Depends(get_repositories),
) -> dict:
    visitors.get(repos, visitor_id)
    items = restrictions.list_for_visitor(repos, visitor_id, include_inactive)
    return {"items": items, "count": len(items), "limit": len(items), "offset": 0}
