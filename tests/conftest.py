import os

# Settings are read at import time; pin them before anything imports visitgate
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["STORAGE_BACKEND"] = "sql"
os.environ["FACILITY_TIMEZONE"] = "UTC"
os.environ["ENFORCE_SINGLE_ACTIVE_VISIT"] = "false"
os.environ["NEAR_CAPACITY_PERCENT"] = "80"
os.environ["MIN_VISITOR_AGE"] = "18"
os.environ["IMMEDIATE_AUTHORIZATION_DAYS"] = "1"

from datetime import date, datetime, time, timezone  # noqa: E402
from types import SimpleNamespace  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

import visitgate.models  # noqa: E402,F401
from visitgate.api.deps import get_db  # noqa: E402
from visitgate.db import Base, get_engine  # noqa: E402
from visitgate.main import app  # noqa: E402
from visitgate.models.visit import RelationshipType, Weekday  # noqa: E402
from visitgate.repositories import memory_repositories, sql_repositories  # noqa: E402
from visitgate.services.authorization import authorizations  # noqa: E402
from visitgate.services.facility import facilities  # noqa: E402
from visitgate.services.inmate import inmates  # noqa: E402
from visitgate.services.visitor import visitors  # noqa: E402

# A Monday, mid-morning
NOW = datetime(2026, 10, 19, 10, 0, tzinfo=timezone.utc)
TODAY = NOW.date()
EVERY_DAY = list(Weekday)


@pytest.fixture()
def engine():
    engine = get_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db_session(engine):
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def repos(db_session):
    return sql_repositories(db_session)


@pytest.fixture()
def memory_repos():
    return memory_repositories()


@pytest.fixture(params=["sql", "memory"])
def any_repos(request):
    if request.param == "sql":
        return request.getfixturevalue("repos")
    return request.getfixturevalue("memory_repos")


def _seed(
    repos,
    max_capacity=None,
    visiting_days=EVERY_DAY,
    window_start=time(8, 0),
    window_end=time(20, 0),
    relationship=RelationshipType.sibling,
    expires_on=None,
):
    facility = facilities.register(
        repos,
        "Unit 1",
        address="Ruta 5 km 12",
        visiting_days=visiting_days,
        window_start=window_start,
        window_end=window_end,
        max_capacity=max_capacity,
    )
    visitor = visitors.register(
        repos, "33.333.333", "Ana", "Gomez", date(1985, 3, 14), today=TODAY
    )
    inmate = inmates.register(
        repos, "1002", "Juan", "Gomez", facility.id, wing="B", floor=2
    )
    authorization = authorizations.grant(
        repos,
        visitor.id,
        inmate.id,
        relationship,
        expires_on=expires_on,
        granted_by="clerk",
        # Lapsed authorizations were granted before they expired
        today=min(TODAY, expires_on) if expires_on else TODAY,
    )
    return SimpleNamespace(
        facility=facility,
        visitor=visitor,
        inmate=inmate,
        authorization=authorization,
    )


@pytest.fixture()
def seed():
    """Build the standard facility, visitor, inmate and authorization."""
    return _seed


@pytest.fixture()
def client(db_session):
    def _get_db():
        try:
            yield db_session
            db_session.commit()
        except Exception:
            db_session.rollback()
            raise

    app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_db, None)


@pytest.fixture()
def memory_client(memory_repos):
    app.state.memory_repositories = memory_repos
    try:
        yield TestClient(app)
    finally:
        del app.state.memory_repositories
