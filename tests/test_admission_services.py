from datetime import datetime, time, timedelta, timezone

import pytest
from prometheus_client import REGISTRY
from sqlalchemy.orm import sessionmaker

from visitgate.db import get_engine
from visitgate.errors import CapacityError, InfrastructureError, ValidationError
from visitgate.models.visit import (
    AuthorizationStatus,
    RestrictionScope,
    RestrictionType,
    VisitState,
    VisitorStatus,
    Weekday,
)
from visitgate.repositories import (
    Hydration,
    Repositories,
    VisitorRepository,
    memory_repositories,
    sql_repositories,
)
from visitgate.schemas.visit import DenialKind
from visitgate.services.admission import Admissions
from visitgate.services.authorization import Authorizations
from visitgate.services.facility import Facilities
from visitgate.services.inmate import Inmates
from visitgate.services.restriction import Restrictions
from visitgate.services.visit_session import VisitSessions
from visitgate.services.visitor import Visitors

# A Monday, mid-morning
NOW = datetime(2026, 10, 19, 10, 0, tzinfo=timezone.utc)
TODAY = NOW.date()


def _evaluate(repos, national_id="33333333", file_number="1002", now=NOW, **kwargs):
    return Admissions.evaluate(repos, national_id, file_number, now, **kwargs)


def _occupy(repos, world, count):
    for _ in range(count):
        session = VisitSessions.schedule(
            repos, world.visitor.id, world.inmate.id, visit_date=TODAY
        )
        VisitSessions.check_in(repos, session.id, "guard-1", NOW)


class _FailingVisitorRepository(VisitorRepository):
    def find_by_national_id(self, national_id, hydration=None):
        raise InfrastructureError("find visitor failed", cause=TimeoutError())

    def get(self, visitor_id):
        raise InfrastructureError("get visitor failed")

    def add(self, visitor):
        raise InfrastructureError("add visitor failed")

    def update(self, visitor):
        raise InfrastructureError("update visitor failed")


class TestScenarios:
    def test_scenario_a_admitted(self, any_repos, seed):
        world = seed(any_repos)
        result = _evaluate(any_repos)
        assert result.admitted is True
        assert result.denial is None
        assert result.blocking_reasons == []
        assert "Authorization relationship: sibling" in result.advisories
        assert "Inmate location: Wing B - Floor 2" in result.advisories
        assert result.visitor_id == world.visitor.id
        assert result.inmate_id == world.inmate.id
        assert result.facility_id == world.facility.id
        assert result.authorization_id == world.authorization.id

    def test_scenario_b_all_inmates_restriction(self, any_repos, seed):
        world = seed(any_repos)
        Restrictions.impose(
            any_repos,
            world.visitor.id,
            RestrictionType.conduct,
            "Aggressive behaviour",
            start_date=TODAY - timedelta(days=2),
        )
        result = _evaluate(any_repos)
        assert result.admitted is False
        assert result.denial is DenialKind.policy_denied
        assert result.blocking_reasons == [
            "Active restriction: conduct - Reason: Aggressive behaviour"
        ]

    def test_scenario_c_expired_yesterday(self, any_repos, seed):
        seed(any_repos, expires_on=TODAY - timedelta(days=1))
        result = _evaluate(any_repos)
        assert result.admitted is False
        assert result.denial is DenialKind.policy_denied
        assert "Authorization expired on 2026-10-18" in result.advisories


class TestVisitorAndInmate:
    def test_national_id_may_contain_dots(self, any_repos, seed):
        seed(any_repos)
        assert _evaluate(any_repos, national_id="33.333.333").admitted

    def test_unknown_visitor(self, any_repos, seed):
        seed(any_repos)
        result = _evaluate(any_repos, national_id="44444444")
        assert result.denial is DenialKind.not_found
        assert result.visitor_id is None
        assert len(result.blocking_reasons) == 1

    def test_malformed_national_id_is_not_found(self, any_repos, seed):
        seed(any_repos)
        result = _evaluate(any_repos, national_id="abc")
        assert result.denial is DenialKind.not_found

    @pytest.mark.parametrize(
        "status", [VisitorStatus.suspended, VisitorStatus.inactive]
    )
    def test_visitor_must_be_active(self, any_repos, seed, status):
        world = seed(any_repos)
        Visitors.set_status(any_repos, world.visitor.id, status)
        result = _evaluate(any_repos)
        assert result.denial is DenialKind.policy_denied
        assert status.value in result.blocking_reasons[0]

    def test_unknown_inmate(self, any_repos, seed):
        seed(any_repos)
        result = _evaluate(any_repos, file_number="9999")
        assert result.denial is DenialKind.not_found
        assert result.inmate_id is None

    def test_transferred_inmate(self, any_repos, seed):
        world = seed(any_repos)
        Inmates.transfer(any_repos, world.inmate.id)
        result = _evaluate(any_repos)
        assert result.denial is DenialKind.policy_denied
        assert "transferred" in result.blocking_reasons[0]

    def test_visitor_failure_stops_evaluation(self, any_repos, seed):
        world = seed(any_repos)
        Visitors.suspend(any_repos, world.visitor.id)
        Restrictions.impose(
            any_repos,
            world.visitor.id,
            RestrictionType.security,
            "Contraband",
            start_date=TODAY,
        )
        result = _evaluate(any_repos)
        assert len(result.blocking_reasons) == 1
        assert result.inmate_id is None


class TestRestrictions:
    def test_one_reason_per_restriction(self, any_repos, seed):
        world = seed(any_repos)
        for restriction_type, reason in [
            (RestrictionType.conduct, "Fight"),
            (RestrictionType.judicial, "Court order 123"),
        ]:
            Restrictions.impose(
                any_repos,
                world.visitor.id,
                restriction_type,
                reason,
                start_date=TODAY - timedelta(days=1),
            )
        result = _evaluate(any_repos)
        assert sorted(result.blocking_reasons) == [
            "Active restriction: conduct - Reason: Fight",
            "Active restriction: judicial - Reason: Court order 123",
        ]
        # Authorization is not consulted once restrictions block
        assert result.authorization_id is None

    def test_restriction_for_another_inmate(self, any_repos, seed):
        world = seed(any_repos)
        other = Inmates.register(any_repos, "2001", "Luis", "Diaz", world.facility.id)
        Restrictions.impose(
            any_repos,
            world.visitor.id,
            RestrictionType.administrative,
            "Conflict with inmate",
            start_date=TODAY,
            scope=RestrictionScope.specific_inmate,
            inmate_id=other.id,
        )
        assert _evaluate(any_repos).admitted

    def test_lifted_restriction_does_not_block(self, any_repos, seed):
        world = seed(any_repos)
        restriction = Restrictions.impose(
            any_repos,
            world.visitor.id,
            RestrictionType.conduct,
            "Fight",
            start_date=TODAY - timedelta(days=30),
        )
        Restrictions.lift(any_repos, restriction.id, "Appeal", today=TODAY)
        assert _evaluate(any_repos).admitted


class TestAuthorization:
    def test_missing_authorization(self, any_repos, seed):
        world = seed(any_repos)
        other = Inmates.register(any_repos, "2001", "Luis", "Diaz", world.facility.id)
        result = _evaluate(any_repos, file_number=other.file_number)
        assert result.denial is DenialKind.not_found
        assert result.authorization_id is None

    def test_suspended_authorization(self, any_repos, seed):
        world = seed(any_repos)
        Authorizations.suspend(any_repos, world.authorization.id, "review")
        result = _evaluate(any_repos)
        assert result.denial is DenialKind.policy_denied
        assert AuthorizationStatus.suspended.value in result.blocking_reasons[0]
        assert not any("expired" in advisory for advisory in result.advisories)

    def test_expiring_today_is_admitted(self, any_repos, seed):
        seed(any_repos, expires_on=TODAY)
        assert _evaluate(any_repos).admitted


class TestSchedule:
    def test_outside_visiting_hours(self, any_repos, seed):
        seed(any_repos)
        result = _evaluate(any_repos, now=NOW.replace(hour=21))
        assert result.denial is DenialKind.policy_denied
        assert result.blocking_reasons[0].startswith("Outside visiting hours")

    def test_closed_day(self, any_repos, seed):
        seed(any_repos, visiting_days=[Weekday.saturday, Weekday.sunday])
        result = _evaluate(any_repos)
        assert result.denial is DenialKind.policy_denied
        assert "sat, sun 08:00-20:00" in result.blocking_reasons[0]

    def test_window_edges_are_inclusive(self, any_repos, seed):
        seed(any_repos, window_start=time(10, 0), window_end=time(10, 0))
        assert _evaluate(any_repos).admitted

    def test_inactive_facility(self, any_repos, seed):
        world = seed(any_repos)
        Facilities.deactivate(any_repos, world.facility.id)
        result = _evaluate(any_repos)
        assert result.denial is DenialKind.policy_denied


class TestCapacity:
    def test_near_capacity_advisory(self, any_repos, seed):
        world = seed(any_repos, max_capacity=5)
        _occupy(any_repos, world, 4)
        result = _evaluate(any_repos)
        assert result.admitted is True
        assert "Facility near capacity: 4/5 (80%)" in result.advisories

    def test_full_facility(self, any_repos, seed):
        world = seed(any_repos, max_capacity=5)
        _occupy(any_repos, world, 5)
        result = _evaluate(any_repos)
        assert result.admitted is False
        assert result.blocking_reasons == ["Facility at capacity (5/5)"]

    def test_unlimited_capacity(self, any_repos, seed):
        world = seed(any_repos)
        _occupy(any_repos, world, 3)
        result = _evaluate(any_repos)
        assert result.admitted
        assert not any("capacity" in advisory for advisory in result.advisories)


class TestSingleActiveVisit:
    def test_disabled_by_default(self, any_repos, seed):
        world = seed(any_repos)
        _occupy(any_repos, world, 1)
        assert _evaluate(any_repos).admitted

    def test_enforced(self, any_repos, seed):
        world = seed(any_repos)
        _occupy(any_repos, world, 1)
        result = _evaluate(any_repos, enforce_single_active_visit=True)
        assert result.denial is DenialKind.policy_denied
        assert result.blocking_reasons == ["Visitor already has a visit in progress"]

    def test_enforced_without_open_visit(self, any_repos, seed):
        seed(any_repos)
        assert _evaluate(any_repos, enforce_single_active_visit=True).admitted


class TestSideEffects:
    def test_evaluate_never_creates_a_visit(self, any_repos, seed):
        seed(any_repos)
        _evaluate(any_repos)
        assert any_repos.visit_sessions.list() == []

    def test_outcomes_are_counted(self, memory_repos, seed):
        seed(memory_repos)
        labels = {"outcome": "admitted"}
        before = REGISTRY.get_sample_value("visitgate_admission_outcomes_total", labels)
        _evaluate(memory_repos)
        after = REGISTRY.get_sample_value("visitgate_admission_outcomes_total", labels)
        assert after == (before or 0) + 1


class TestInfrastructureFailures:
    def test_repository_failure_is_raised_not_denied(self):
        repos = memory_repositories()
        failing = Repositories(
            visitors=_FailingVisitorRepository(),
            inmates=repos.inmates,
            facilities=repos.facilities,
            authorizations=repos.authorizations,
            restrictions=repos.restrictions,
            visit_sessions=repos.visit_sessions,
        )
        with pytest.raises(InfrastructureError) as excinfo:
            _evaluate(failing)
        assert isinstance(excinfo.value.cause, TimeoutError)

    def test_sql_driver_errors_are_wrapped(self):
        # Fresh database without tables
        engine = get_engine("sqlite://")
        db = sessionmaker(bind=engine)()
        try:
            with pytest.raises(InfrastructureError) as excinfo:
                _evaluate(sql_repositories(db))
            assert excinfo.value.cause is not None
        finally:
            db.close()
            engine.dispose()


class TestRegisterEntry:
    def test_admitted_entry_opens_a_visit(self, any_repos, seed):
        world = seed(any_repos)
        result, session = Admissions.register_entry(
            any_repos, "33333333", "1002", "guard-1", NOW, notes="Brought documents"
        )
        assert result.admitted
        assert session.state is VisitState.in_progress
        assert session.check_in_operator == "guard-1"
        assert session.visit_date == TODAY
        assert session.facility_id == world.facility.id
        assert any_repos.visit_sessions.count_in_progress(world.facility.id) == 1

    def test_denied_entry_opens_nothing(self, any_repos, seed):
        seed(any_repos, expires_on=TODAY - timedelta(days=1))
        result, session = Admissions.register_entry(
            any_repos, "33333333", "1002", "guard-1", NOW
        )
        assert not result.admitted
        assert session is None
        assert any_repos.visit_sessions.list() == []

    def test_operator_required(self, any_repos, seed):
        seed(any_repos)
        with pytest.raises(ValidationError):
            Admissions.register_entry(any_repos, "33333333", "1002", "", NOW)

    def test_lost_capacity_race_cancels_the_scheduled_visit(
        self, any_repos, seed, monkeypatch
    ):
        world = seed(any_repos, max_capacity=1)
        # The gate sees a free slot; a concurrent entry takes it before check-in
        counts = iter([0, 1])
        monkeypatch.setattr(
            any_repos.visit_sessions,
            "count_in_progress",
            lambda facility_id: next(counts),
        )
        with pytest.raises(CapacityError):
            Admissions.register_entry(any_repos, "33333333", "1002", "guard-1", NOW)

        sessions = any_repos.visit_sessions.list(inmate_id=world.inmate.id)
        assert len(sessions) == 1
        assert sessions[0].state is VisitState.cancelled
        assert sessions[0].checked_in_at is None
        assert sessions[0].notes.startswith("CANCELLED: Facility at capacity")


class TestLookups:
    def test_evaluate_uses_summary_lookups(self, memory_repos, seed, monkeypatch):
        seed(memory_repos)
        seen = []
        visitors = memory_repos.visitors
        inmates = memory_repos.inmates
        find_visitor = visitors.find_by_national_id
        find_inmate = inmates.find_by_file_number

        def _visitor(national_id, hydration=Hydration.summary):
            seen.append(hydration)
            return find_visitor(national_id, hydration)

        def _inmate(file_number, hydration=Hydration.summary):
            seen.append(hydration)
            return find_inmate(file_number, hydration)

        monkeypatch.setattr(visitors, "find_by_national_id", _visitor)
        monkeypatch.setattr(inmates, "find_by_file_number", _inmate)

        assert _evaluate(memory_repos).admitted
        assert seen == [Hydration.summary, Hydration.summary]
