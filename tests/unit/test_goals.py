"""
Unit Tests - Goal Progress Tracking
"""
import pytest
from pydantic import ValidationError

from src.analytics.goals import GoalProgressTracker, period_bounds, resolve_price
from src.analytics.models import GoalDefinition, GoalStatus, GoalType


@pytest.fixture
def tracker() -> GoalProgressTracker:
    return GoalProgressTracker()


def _goal(**fields) -> GoalDefinition:
    fields.setdefault("id", "goal-1")
    fields.setdefault("technician_id", "tech-1")
    fields.setdefault("goal_type", GoalType.SERVICES_UNSIGNED)
    fields.setdefault("min_expected_value", 1000)
    fields.setdefault("max_expected_value", 2000)
    fields.setdefault("month", 2)
    fields.setdefault("year", 2025)
    return GoalDefinition(**fields)


class TestStatus:
    """Tests for threshold status"""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (999.99, GoalStatus.BELOW_MIN),
            (1000, GoalStatus.BETWEEN),
            (1999.99, GoalStatus.BETWEEN),
            (2000, GoalStatus.ABOVE_MAX),
            (0, GoalStatus.BELOW_MIN),
        ],
    )
    def test_boundaries_go_up(self, tracker, value, expected):
        assert tracker.status(value, 1000, 2000) == expected


class TestProgressPercentage:
    """Tests for progress percentage"""

    def test_share_of_max(self, tracker):
        assert tracker.progress_percentage(1500, 2000) == pytest.approx(75.0)

    def test_clamped_at_hundred(self, tracker):
        assert tracker.progress_percentage(4000, 2000) == 100.0

    def test_zero_max(self, tracker):
        assert tracker.progress_percentage(500, 0) == 0.0


class TestTrack:
    """Tests for tracking a single goal"""

    def test_scenario(self, tracker, make_appointment):
        appointments = [
            make_appointment(date="2025-02-03T10:00:00", technician_id="tech-1", service_id="cut"),
            make_appointment(date="2025-02-10T10:00:00", technician_id="tech-1", service_id="color"),
        ]
        prices = {"cut": 500.0, "color": 1000.0}

        progress = tracker.track(_goal(), appointments, prices)

        assert progress.current_value == pytest.approx(1500.0)
        assert progress.progress_percentage == pytest.approx(75.0)
        assert progress.status == GoalStatus.BETWEEN
        assert progress.qualifying_appointments == 2

    def test_double_the_ceiling(self, tracker, make_appointment):
        appointments = [
            make_appointment(date="2025-02-03", technician_id="tech-1", service_id="vip")
        ]

        progress = tracker.track(_goal(), appointments, {"vip": 4000.0})

        assert progress.progress_percentage == 100.0
        assert progress.status == GoalStatus.ABOVE_MAX

    def test_signature_filter(self, tracker, make_appointment):
        appointments = [
            make_appointment(date="2025-02-03", technician_id="tech-1", service_id="cut", signature_used=True),
            make_appointment(date="2025-02-04", technician_id="tech-1", service_id="cut", signature_used=False),
        ]
        prices = {"cut": 100.0}

        unsigned = tracker.track(_goal(goal_type="services_unsigned"), appointments, prices)
        signed = tracker.track(_goal(goal_type="general_signed"), appointments, prices)

        assert unsigned.current_value == pytest.approx(100.0)
        assert signed.current_value == pytest.approx(100.0)
        assert unsigned.qualifying_appointments == signed.qualifying_appointments == 1

    def test_status_technician_and_month_filters(self, tracker, make_appointment):
        appointments = [
            make_appointment(date="2025-02-03", technician_id="tech-1", service_id="cut", status="confirmed"),
            make_appointment(date="2025-02-04", technician_id="tech-1", service_id="cut", status="cancelled"),
            make_appointment(date="2025-02-05", technician_id="tech-1", service_id="cut", status="pending"),
            make_appointment(date="2025-02-06", technician_id="tech-2", service_id="cut"),
            make_appointment(date="2025-03-01", technician_id="tech-1", service_id="cut"),
            make_appointment(date="2025-02-28T23:30:00", technician_id="tech-1", service_id="cut"),
            make_appointment(date=None, technician_id="tech-1", service_id="cut"),
        ]

        progress = tracker.track(_goal(), appointments, {"cut": 10.0})

        assert progress.qualifying_appointments == 2
        assert progress.current_value == pytest.approx(20.0)

    def test_product_goal_is_zero(self, tracker, make_appointment):
        appointments = [make_appointment(date="2025-02-03", technician_id="tech-1", service_id="cut")]

        progress = tracker.track(_goal(goal_type="products"), appointments, {"cut": 100.0})

        assert progress.current_value == 0.0
        assert progress.status == GoalStatus.BELOW_MIN
        assert progress.qualifying_appointments == 0

    def test_signature_flag_strings(self, tracker, make_appointment):
        appointments = [
            make_appointment(date="2025-02-03", technician_id="tech-1", service_id="cut", signatureUsed="false"),
            make_appointment(date="2025-02-04", technician_id="tech-1", service_id="cut", signatureUsed="true"),
        ]

        assert appointments[0].signature_used is False
        assert appointments[1].signature_used is True
        unsigned = tracker.track(_goal(), appointments, {"cut": 100.0})
        assert unsigned.qualifying_appointments == 1

    def test_unknown_service_counts_zero(self, tracker, make_appointment):
        appointments = [
            make_appointment(date="2025-02-03", technician_id="tech-1", service_id="gone"),
            make_appointment(date="2025-02-04", technician_id="tech-1", service_id=None),
        ]

        progress = tracker.track(_goal(), appointments, {"cut": 100.0})

        assert progress.current_value == 0.0
        assert progress.qualifying_appointments == 2

    def test_unit_price_fallback(self, tracker, make_appointment):
        appointments = [
            make_appointment(date="2025-02-03", technician_id="tech-1", unit_price=300),
            make_appointment(date="2025-02-04", technician_id="tech-1", unit_price=None),
        ]

        progress = tracker.track(_goal(), appointments)

        assert progress.current_value == pytest.approx(300.0)

    def test_no_appointments(self, tracker):
        progress = tracker.track(_goal(), [], {})
        assert progress.current_value == 0.0
        assert progress.progress_percentage == 0.0
        assert progress.status == GoalStatus.BELOW_MIN


class TestResolvePrice:
    """Tests for price lookups"""

    def test_mapping(self):
        assert resolve_price({"a": 12.5}, "a") == 12.5
        assert resolve_price({"a": 12.5}, "b") == 0.0

    def test_callable_raising_key_error(self):
        def lookup(service_id):
            raise KeyError(service_id)

        assert resolve_price(lookup, "a") == 0.0

    def test_bad_values(self):
        assert resolve_price({"a": None}, "a") == 0.0
        assert resolve_price({"a": -5}, "a") == 0.0
        assert resolve_price(lambda _: "abc", "a") == 0.0

    def test_missing_service(self):
        assert resolve_price({"a": 1.0}, None) == 0.0


class TestBatch:
    """Tests for multi-goal tracking"""

    def test_rank_and_summary(self, tracker, make_appointment):
        goals = [
            _goal(id="g1", technician_id="tech-1"),
            _goal(id="g2", technician_id="tech-2"),
            _goal(id="g3", technician_id="tech-3"),
        ]
        appointments = [
            make_appointment(date="2025-02-03", technician_id="tech-1", service_id="cut"),
            make_appointment(date="2025-02-03", technician_id="tech-2", service_id="vip"),
        ]

        progress = tracker.track_all(goals, appointments, {"cut": 1200.0, "vip": 2500.0})
        ranked = tracker.rank(progress)

        assert [p.goal_id for p in progress] == ["g1", "g2", "g3"]
        assert [p.goal_id for p in ranked] == ["g2", "g1", "g3"]
        assert tracker.status_summary(progress) == {
            GoalStatus.BELOW_MIN: 1,
            GoalStatus.BETWEEN: 1,
            GoalStatus.ABOVE_MAX: 1,
        }


class TestGoalDefinition:
    """Tests for goal input coercion"""

    def test_inverted_range_is_lifted(self):
        goal = _goal(min_expected_value=500, max_expected_value=100)
        assert goal.max_expected_value == 500

    @pytest.mark.parametrize("year", [0, 10000])
    def test_year_out_of_range_is_rejected(self, year):
        with pytest.raises(ValidationError):
            _goal(year=year)

    def test_last_supported_year_tracks(self, tracker):
        progress = tracker.track(_goal(month=12, year=9999), [], {})
        assert progress.status == GoalStatus.BELOW_MIN

    def test_camel_case_aliases(self):
        goal = GoalDefinition.model_validate({
            "id": "g",
            "technicianId": "t",
            "goalType": "general_unsigned",
            "minExpectedValue": "10",
            "maxExpectedValue": None,
            "month": 1,
            "year": 2025,
        })
        assert goal.min_expected_value == 10.0
        assert goal.max_expected_value == 10.0


def test_period_bounds_leap_year():
    start, end = period_bounds(2, 2024)
    assert start.day == 1
    assert end.day == 29
