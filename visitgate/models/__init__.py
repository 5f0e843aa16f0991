from visitgate.models.visit import (  # noqa: F401
    Authorization,
    AuthorizationStatus,
    Facility,
    Inmate,
    InmateStatus,
    RelationshipType,
    Restriction,
    RestrictionScope,
    RestrictionType,
    VisitSession,
    VisitState,
    Visitor,
    VisitorStatus,
    Weekday,
)
