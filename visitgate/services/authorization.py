import logging
from datetime import date, timedelta

from visitgate.config import settings
from visitgate.errors import NotFoundError, StateError, ValidationError
from visitgate.models.visit import (
    Authorization,
    AuthorizationStatus,
    RelationshipType,
)
from visitgate.repositories.base import Repositories
from visitgate.services.common import (
    coerce_uuid,
    facility_today,
    prepend_note,
    require_text,
)

logger = logging.getLogger(__name__)

# Operator roles allowed to grant a same-day authorization at the gate
IMMEDIATE_GRANT_ROLES = {"supervisor", "admin"}


def is_expired(authorization: Authorization, today: date) -> bool:
    """Whether the expiration date has passed, whatever the status says."""
    return authorization.expires_on is not None and authorization.expires_on < today


def is_vigent(authorization: Authorization, today: date) -> bool:
    """An authorization is in force when active and not past its expiration."""
    return authorization.status is AuthorizationStatus.active and not is_expired(
        authorization, today
    )


def _validate_expiration(expires_on: date | None, today: date) -> None:
    if expires_on is not None and expires_on < today:
        raise ValidationError("Expiration date cannot be in the past")


def _require_authorization(repos: Repositories, authorization_id) -> Authorization:
    authorization = repos.authorizations.get(coerce_uuid(authorization_id))
    if not authorization:
        raise NotFoundError("Authorization not found")
    return authorization


class Authorizations:
    @staticmethod
    def grant(
        repos: Repositories,
        visitor_id,
        inmate_id,
        relationship_type: RelationshipType,
        relationship_detail: str | None = None,
        expires_on: date | None = None,
        granted_by: str | None = None,
        today: date | None = None,
    ) -> Authorization:
        today = today or facility_today()
        visitor_uuid = coerce_uuid(visitor_id)
        inmate_uuid = coerce_uuid(inmate_id)
        if not repos.visitors.get(visitor_uuid):
            raise NotFoundError("Visitor not found")
        if not repos.inmates.get(inmate_uuid):
            raise NotFoundError("Inmate not found")
        _validate_expiration(expires_on, today)

        authorization = Authorization(
            visitor_id=visitor_uuid,
            inmate_id=inmate_uuid,
            relationship_type=relationship_type,
            relationship_detail=relationship_detail,
            granted_on=today,
            expires_on=expires_on,
            status=AuthorizationStatus.active,
            granted_by=granted_by,
        )
        authorization = repos.authorizations.add(authorization)
        logger.info(
            "Granted authorization %s for visitor %s to inmate %s",
            authorization.id,
            visitor_uuid,
            inmate_uuid,
        )
        return authorization

    @staticmethod
    def grant_immediate(
        repos: Repositories,
        visitor_id,
        inmate_id,
        granted_by: str,
        operator_role: str,
        today: date | None = None,
    ) -> Authorization:
        """Walk-in authorization for a single day, granted at the gate."""
        granted_by = require_text(granted_by, "Operator")
        if (operator_role or "").strip().lower() not in IMMEDIATE_GRANT_ROLES:
            raise ValidationError(
                "Only a supervisor or administrator can grant an immediate authorization"
            )
        today = today or facility_today()
        return Authorizations.grant(
            repos,
            visitor_id,
            inmate_id,
            RelationshipType.other,
            relationship_detail="Immediate authorization",
            expires_on=today + timedelta(days=settings.immediate_authorization_days),
            granted_by=granted_by,
            today=today,
        )

    @staticmethod
    def get(repos: Repositories, authorization_id) -> Authorization:
        return _require_authorization(repos, authorization_id)

    @staticmethod
    def renew(
        repos: Repositories,
        authorization_id,
        expires_on: date | None,
        today: date | None = None,
    ) -> Authorization:
        authorization = _require_authorization(repos, authorization_id)
        if authorization.status is AuthorizationStatus.suspended:
            raise StateError("Suspended authorization must be reactivated first")
        if authorization.status is AuthorizationStatus.revoked:
            raise StateError(
                "Revoked authorization cannot be renewed; grant a new one"
            )
        _validate_expiration(expires_on, today or facility_today())
        authorization.status = AuthorizationStatus.active
        authorization.expires_on = expires_on
        authorization = repos.authorizations.update(authorization)
        logger.info("Renewed authorization %s until %s", authorization.id, expires_on)
        return authorization

    @staticmethod
    def suspend(repos: Repositories, authorization_id, reason: str) -> Authorization:
        reason = require_text(reason, "Suspension reason")
        authorization = _require_authorization(repos, authorization_id)
        if authorization.status is AuthorizationStatus.revoked:
            raise StateError("Revoked authorization cannot be suspended")
        authorization.status = AuthorizationStatus.suspended
        authorization.notes = prepend_note(authorization.notes, f"SUSPENDED: {reason}")
        authorization = repos.authorizations.update(authorization)
        logger.info("Suspended authorization %s", authorization.id)
        return authorization

    @staticmethod
    def revoke(repos: Repositories, authorization_id, reason: str) -> Authorization:
        reason = require_text(reason, "Revocation reason")
        authorization = _require_authorization(repos, authorization_id)
        authorization.status = AuthorizationStatus.revoked
        authorization.notes = prepend_note(authorization.notes, f"REVOKED: {reason}")
        authorization = repos.authorizations.update(authorization)
        logger.info("Revoked authorization %s", authorization.id)
        return authorization

    @staticmethod
    def reactivate(
        repos: Repositories, authorization_id, today: date | None = None
    ) -> Authorization:
        authorization = _require_authorization(repos, authorization_id)
        if authorization.status is not AuthorizationStatus.suspended:
            raise StateError("Only suspended authorizations can be reactivated")
        if is_expired(authorization, today or facility_today()):
            raise StateError("Authorization has expired; renew it instead")
        authorization.status = AuthorizationStatus.active
        authorization = repos.authorizations.update(authorization)
        logger.info("Reactivated authorization %s", authorization.id)
        return authorization

    @staticmethod
    def list_for_visitor(repos: Repositories, visitor_id) -> list[Authorization]:
        return repos.authorizations.list_for_visitor(coerce_uuid(visitor_id))

    @staticmethod
    def list_vigent_for_visitor(
        repos: Repositories, visitor_id, today: date | None = None
    ) -> list[Authorization]:
        today = today or facility_today()
        return [
            authorization
            for authorization in repos.authorizations.list_for_visitor(
                coerce_uuid(visitor_id)
            )
            if is_vigent(authorization, today)
        ]


authorizations = Authorizations()
