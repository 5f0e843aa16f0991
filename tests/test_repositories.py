import uuid
from datetime import date, timedelta

import pytest
from sqlalchemy.orm import sessionmaker

from visitgate.db import get_engine
from visitgate.errors import ConflictError, InfrastructureError
from visitgate.models.visit import (
    Facility,
    Inmate,
    Restriction,
    RestrictionScope,
    RestrictionType,
    Visitor,
    VisitorStatus,
)
from visitgate.repositories import Hydration
from visitgate.repositories.sql import SqlVisitorRepository
from visitgate.services.inmate import Inmates
from visitgate.services.visit_session import VisitSessions

TODAY = date(2026, 10, 19)


def _visitor(national_id="12345678"):
    return Visitor(
        national_id=national_id,
        first_name="Ana",
        last_name="Gomez",
        birth_date=date(1980, 1, 1),
        status=VisitorStatus.active,
    )


def _restriction(visitor_id, **overrides):
    values = {
        "visitor_id": visitor_id,
        "restriction_type": RestrictionType.conduct,
        "reason": "Fight",
        "start_date": TODAY - timedelta(days=1),
        "scope": RestrictionScope.all_inmates,
        "is_active": True,
    }
    values.update(overrides)
    return Restriction(**values)


class TestLookups:
    @pytest.mark.parametrize("hydration", [Hydration.summary, Hydration.full])
    def test_find_visitor_by_national_id(self, any_repos, hydration):
        visitor = any_repos.visitors.add(_visitor())
        found = any_repos.visitors.find_by_national_id("12345678", hydration)
        assert found.id == visitor.id
        assert any_repos.visitors.find_by_national_id("87654321", hydration) is None

    def test_full_hydration_loads_restrictions(self, repos, db_session):
        visitor = repos.visitors.add(_visitor())
        repos.restrictions.add(_restriction(visitor.id))
        db_session.commit()
        db_session.expunge_all()

        found = repos.visitors.find_by_national_id("12345678", Hydration.full)
        assert "restrictions" in found.__dict__
        assert len(found.restrictions) == 1

    def test_find_inmate_full_loads_facility(self, repos, seed):
        world = seed(repos)
        inmate = repos.inmates.find_by_file_number("1002", Hydration.full)
        assert inmate.facility.id == world.facility.id

    def test_list_inmates_by_facility(self, any_repos, seed):
        world = seed(any_repos)
        Inmates.register(any_repos, "2001", "Luis", "Alvarez", world.facility.id)
        names = [i.last_name for i in any_repos.inmates.list_by_facility(world.facility.id)]
        assert names == ["Alvarez", "Gomez"]


class TestFindApplicable:
    def test_filters_by_date_scope_and_flag(self, any_repos, seed):
        world = seed(any_repos)
        other_inmate = uuid.uuid4()
        add = any_repos.restrictions.add
        wanted = add(_restriction(world.visitor.id))
        specific = add(
            _restriction(
                world.visitor.id,
                scope=RestrictionScope.specific_inmate,
                inmate_id=world.inmate.id,
            )
        )
        add(_restriction(world.visitor.id, is_active=False))
        add(_restriction(world.visitor.id, start_date=TODAY + timedelta(days=1)))
        add(_restriction(world.visitor.id, end_date=TODAY - timedelta(days=1)))

        found = any_repos.restrictions.find_applicable(
            world.visitor.id, world.inmate.id, TODAY
        )
        assert {r.id for r in found} == {wanted.id, specific.id}

        found = any_repos.restrictions.find_applicable(
            world.visitor.id, other_inmate, TODAY
        )
        assert [r.id for r in found] == [wanted.id]


class TestVisitSessionStorage:
    def test_count_is_per_facility(self, any_repos, seed):
        world = seed(any_repos)
        session = VisitSessions.schedule(any_repos, world.visitor.id, world.inmate.id)
        VisitSessions.check_in(any_repos, session.id, "guard-1")
        assert any_repos.visit_sessions.count_in_progress(world.facility.id) == 1
        assert any_repos.visit_sessions.count_in_progress(uuid.uuid4()) == 0

    def test_facility_lock_is_a_context_manager(self, any_repos, seed):
        world = seed(any_repos)
        with any_repos.visit_sessions.facility_lock(world.facility.id):
            assert any_repos.visit_sessions.count_in_progress(world.facility.id) == 0


class TestMemoryStore:
    def test_reads_are_detached_copies(self, memory_repos):
        visitor = memory_repos.visitors.add(_visitor())
        copy = memory_repos.visitors.get(visitor.id)
        copy.first_name = "Changed"
        assert memory_repos.visitors.get(visitor.id).first_name == "Ana"

    def test_insert_applies_defaults(self, memory_repos):
        facility = memory_repos.facilities.add(Facility(name="Unit 3"))
        assert facility.id is not None
        assert facility.is_active is True
        assert facility.created_at is not None

    def test_unique_national_id(self, memory_repos):
        memory_repos.visitors.add(_visitor())
        with pytest.raises(ConflictError):
            memory_repos.visitors.add(_visitor())

    def test_unique_file_number(self, memory_repos):
        facility = memory_repos.facilities.add(Facility(name="Unit 3"))
        values = {
            "file_number": "F-1",
            "first_name": "Juan",
            "last_name": "Perez",
            "facility_id": facility.id,
        }
        memory_repos.inmates.add(Inmate(**values))
        with pytest.raises(ConflictError):
            memory_repos.inmates.add(Inmate(**values))

    def test_unique_facility_name(self, memory_repos):
        memory_repos.facilities.add(Facility(name="Unit 3"))
        with pytest.raises(ConflictError):
            memory_repos.facilities.add(Facility(name="Unit 3"))


class TestSqlStore:
    def test_unique_national_id(self, repos, db_session):
        repos.visitors.add(_visitor())
        db_session.commit()
        with pytest.raises(ConflictError) as excinfo:
            repos.visitors.add(_visitor())
        assert "national id" in excinfo.value.message
        # The failed insert was rolled back; earlier rows survive
        assert repos.visitors.find_by_national_id("12345678") is not None

    def test_driver_failure_becomes_infrastructure_error(self):
        # A database that was never migrated
        engine = get_engine("sqlite://")
        db = sessionmaker(bind=engine)()
        try:
            with pytest.raises(InfrastructureError) as excinfo:
                SqlVisitorRepository(db).find_by_national_id("12345678")
            assert excinfo.value.cause is not None
        finally:
            db.close()
            engine.dispose()
