from fastapi import APIRouter, Depends, status

from visitgate.api.deps import get_repositories
from visitgate.repositories import Repositories
from visitgate.schemas.visit import (
    AdmissionRequest,
    AdmissionResult,
    EntryRequest,
    EntryResponse,
)
from visitgate.services.admission import admissions

router = APIRouter(prefix="/admissions", tags=["admissions"])


@router.post("/evaluate", response_model=AdmissionResult)
def evaluate_admission(
    payload: AdmissionRequest, repos: Repositories = Depends(get_repositories)
) -> AdmissionResult:
    return admissions.evaluate(
        repos, payload.national_id, payload.file_number, payload.at
    )


@router.post(
    "/entries", response_model=EntryResponse, status_code=status.HTTP_201_CREATED
)
def register_entry(
    payload: EntryRequest, repos: Repositories = Depends(get_repositories)
) -> dict:
    result, session = admissions.register_entry(
        repos,
        payload.national_id,
        payload.file_number,
        payload.operator,
        payload.at,
        payload.notes,
    )
    return {"admission": result, "visit": session}
