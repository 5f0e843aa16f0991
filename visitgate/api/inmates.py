from fastapi import APIRouter, Depends, status

from visitgate.api.deps import get_repositories
from visitgate.repositories import Repositories
from visitgate.schemas.registry import InmateCreate, InmateRead, InmateRelocate
from visitgate.services.inmate import inmates

router = APIRouter(prefix="/inmates", tags=["inmates"])


@router.post("", response_model=InmateRead, status_code=status.HTTP_201_CREATED)
def register_inmate(
    payload: InmateCreate, repos: Repositories = Depends(get_repositories)
) -> InmateRead:
    return inmates.register(repos, **payload.model_dump())


@router.get("/by-file-number/{file_number}", response_model=InmateRead)
def get_inmate_by_file_number(
    file_number: str, repos: Repositories = Depends(get_repositories)
) -> InmateRead:
    return inmates.get_by_file_number(repos, file_number)


@router.get("/{inmate_id}", response_model=InmateRead)
def get_inmate(
    inmate_id: str, repos: Repositories = Depends(get_repositories)
) -> InmateRead:
    return inmates.get(repos, inmate_id)


@router.post("/{inmate_id}/relocate", response_model=InmateRead)
def relocate_inmate(
    inmate_id: str,
    payload: InmateRelocate,
    repos: Repositories = Depends(get_repositories),
) -> InmateRead:
    return inmates.relocate(repos, inmate_id, payload.wing, payload.floor)


@router.post("/{inmate_id}/transfer", response_model=InmateRead)
def transfer_inmate(
    inmate_id: str, repos: Repositories = Depends(get_repositories)
) -> InmateRead:
    return inmates.transfer(repos, inmate_id)


@router.post("/{inmate_id}/discharge", response_model=InmateRead)
def discharge_inmate(
    inmate_id: str, repos: Repositories = Depends(get_repositories)
) -> InmateRead:
    return inmates.discharge(repos, inmate_id)
