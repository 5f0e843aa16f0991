from fastapi import APIRouter, Depends, status

from visitgate.api.deps import get_repositories
from visitgate.repositories import Repositories
from visitgate.schemas.restriction import (
    RestrictionCreate,
    RestrictionExtend,
    RestrictionLift,
    RestrictionRead,
)
from visitgate.services.restriction import restrictions

router = APIRouter(prefix="/restrictions", tags=["restrictions"])


@router.post("", response_model=RestrictionRead, status_code=status.HTTP_201_CREATED)
def impose_restriction(
    payload: RestrictionCreate, repos: Repositories = Depends(get_repositories)
) -> RestrictionRead:
    return restrictions.impose(repos, **payload.model_dump())


@router.get("/{restriction_id}", response_model=RestrictionRead)
def get_restriction(
    restriction_id: str, repos: Repositories = Depends(get_repositories)
) -> RestrictionRead:
    return restrictions.get(repos, restriction_id)


@router.post("/{restriction_id}/lift", response_model=RestrictionRead)
def lift_restriction(
    restriction_id: str,
    payload: RestrictionLift,
    repos: Repositories = Depends(get_repositories),
) -> RestrictionRead:
    return restrictions.lift(repos, restriction_id, payload.reason)


@router.post("/{restriction_id}/extend", response_model=RestrictionRead)
def extend_restriction(
    restriction_id: str,
    payload: RestrictionExtend,
    repos: Repositories = Depends(get_repositories),
) -> RestrictionRead:
    return restrictions.extend(repos, restriction_id, payload.end_date)
