from fastapi import APIRouter, Depends, status

from visitgate.api.deps import get_repositories
from visitgate.repositories import Repositories
from visitgate.schemas.authorization import (
    AuthorizationCreate,
    AuthorizationRead,
    AuthorizationReason,
    AuthorizationRenew,
    ImmediateAuthorizationCreate,
)
from visitgate.services.authorization import authorizations

router = APIRouter(prefix="/authorizations", tags=["authorizations"])


@router.post(
    "", response_model=AuthorizationRead, status_code=status.HTTP_201_CREATED
)
def grant_authorization(
    payload: AuthorizationCreate, repos: Repositories = Depends(get_repositories)
) -> AuthorizationRead:
    return authorizations.grant(repos, **payload.model_dump())


@router.post(
    "/immediate",
    response_model=AuthorizationRead,
    status_code=status.HTTP_201_CREATED,
)
def grant_immediate_authorization(
    payload: ImmediateAuthorizationCreate,
    repos: Repositories = Depends(get_repositories),
) -> AuthorizationRead:
    return authorizations.grant_immediate(repos, **payload.model_dump())


@router.get("/{authorization_id}", response_model=AuthorizationRead)
def get_authorization(
    authorization_id: str, repos: Repositories = Depends(get_repositories)
) -> AuthorizationRead:
    return authorizations.get(repos, authorization_id)


@router.post("/{authorization_id}/renew", response_model=AuthorizationRead)
def renew_authorization(
    authorization_id: str,
    payload: AuthorizationRenew,
    repos: Repositories = Depends(get_repositories),
) -> AuthorizationRead:
    return authorizations.renew(repos, authorization_id, payload.expires_on)


@router.post("/{authorization_id}/suspend", response_model=AuthorizationRead)
def suspend_authorization(
    authorization_id: str,
    payload: AuthorizationReason,
    repos: Repositories = Depends(get_repositories),
) -> AuthorizationRead:
    return authorizations.suspend(repos, authorization_id, payload.reason)


@router.post("/{authorization_id}/revoke", response_model=AuthorizationRead)
def revoke_authorization(
    authorization_id: str,
    payload: AuthorizationReason,
    repos: Repositories = Depends(get_repositories),
) -> AuthorizationRead:
    return authorizations.revoke(repos, authorization_id, payload.reason)


@router.post("/{authorization_id}/reactivate", response_model=AuthorizationRead)
def reactivate_authorization(
    authorization_id: str, repos: Repositories = Depends(get_repositories)
) -> AuthorizationRead:
    return authorizations.reactivate(repos, authorization_id)
