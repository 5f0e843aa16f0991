from fastapi import APIRouter, Depends, status

from visitgate.api.deps import get_repositories
from visitgate.repositories import Repositories
from visitgate.schemas.common import ListResponse
from visitgate.schemas.registry import (
    CapacityUpdate,
    FacilityCreate,
    FacilityRead,
    InmateRead,
    VisitingWindowUpdate,
)
from visitgate.services.facility import facilities
from visitgate.services.inmate import inmates

router = APIRouter(prefix="/facilities", tags=["facilities"])


@router.post("", response_model=FacilityRead, status_code=status.HTTP_201_CREATED)
def register_facility(
    payload: FacilityCreate, repos: Repositories = Depends(get_repositories)
) -> FacilityRead:
    return facilities.register(repos, **payload.model_dump())


@router.get("/{facility_id}", response_model=FacilityRead)
def get_facility(
    facility_id: str, repos: Repositories = Depends(get_repositories)
) -> FacilityRead:
    return facilities.get(repos, facility_id)


@router.put("/{facility_id}/visiting-window", response_model=FacilityRead)
def set_visiting_window(
    facility_id: str,
    payload: VisitingWindowUpdate,
    repos: Repositories = Depends(get_repositories),
) -> FacilityRead:
    return facilities.set_visiting_window(
        repos,
        facility_id,
        payload.visiting_days,
        payload.window_start,
        payload.window_end,
    )


@router.put("/{facility_id}/capacity", response_model=FacilityRead)
def set_capacity(
    facility_id: str,
    payload: CapacityUpdate,
    repos: Repositories = Depends(get_repositories),
) -> FacilityRead:
    return facilities.set_capacity(repos, facility_id, payload.max_capacity)


@router.post("/{facility_id}/deactivate", response_model=FacilityRead)
def deactivate_facility(
    facility_id: str, repos: Repositories = Depends(get_repositories)
) -> FacilityRead:
    return facilities.deactivate(repos, facility_id)


@router.get("/{facility_id}/inmates", response_model=ListResponse[InmateRead])
def list_facility_inmates(
    facility_id: str, repos: Repositories = Depends(get_repositories)
) -> dict:
    facilities.get(repos, facility_id)
    items = inmates.list_by_facility(repos, facility_id)
    return {"items": items, "count": len(items), "limit": len(items), "offset": 0}
