from visitgate.repositories.base import (  # noqa: F401
    AuthorizationRepository,
    FacilityRepository,
    Hydration,
    InmateRepository,
    Repositories,
    RestrictionRepository,
    VisitSessionRepository,
    VisitorRepository,
)
from visitgate.repositories.memory import memory_repositories  # noqa: F401
from visitgate.repositories.sql import sql_repositories  # noqa: F401
