from datetime import date, datetime

import pytest
import pytz

from gitlab_app.analytics.metrics.capacity import compute_capacity
from gitlab_app.analytics.metrics.hours import (
    completion_status,
    compute_hour_metrics,
    hour_efficiency_status,
    round_tenth,
    velocity_status,
)
from gitlab_app.analytics.metrics.sprint import calculate_sprint_metrics
from gitlab_app.analytics.metrics.time_window import compute_window
from gitlab_app.analytics.metrics.velocity import compute_velocity
from gitlab_app.core.errors import InvalidInputError
from gitlab_app.core.models import IssueModel, IterationModel, UserModel

UTC = pytz.UTC


def _sample_issues():
    return [
        IssueModel(id=1, iid=1, title="A", state="closed", time_estimate_seconds=7200, time_spent_seconds=3600),
        IssueModel(id=2, iid=2, title="B", state="opened", time_estimate_seconds=14400, time_spent_seconds=1800),
        IssueModel(id=3, iid=3, title="C", state="closed", time_estimate_seconds=10800, time_spent_seconds=10800),
    ]


def _roster():
    return [UserModel(id=1, name="Alice"), {"id": 2, "name": "Bob"}]


def _window(now):
    iteration = IterationModel(title="S1", start_date=date(2024, 1, 1), due_date=date(2024, 1, 14))
    return compute_window(None, iteration, now)


def test_capacity_multiplies_roster_hours_and_days():
    capacity = compute_capacity(_roster(), 14)
    assert capacity.team_member_count == 2
    assert capacity.working_hours_per_day == 8
    assert capacity.daily_capacity_hours == 16
    assert capacity.total_capacity_hours == 224
    assert capacity.utilization_percentage == 0.0


def test_capacity_custom_hours():
    capacity = compute_capacity(_roster(), 10, working_hours_per_day=6)
    assert capacity.total_capacity_hours == 120


def test_empty_roster_has_zero_capacity():
    for roster in ([], None):
        capacity = compute_capacity(roster, 14)
        assert capacity.team_member_count == 0
        assert capacity.daily_capacity_hours == 0
        assert capacity.total_capacity_hours == 0


def test_invalid_working_hours_fall_back_to_default():
    assert compute_capacity(_roster(), 1, working_hours_per_day=0).working_hours_per_day == 8


def test_hour_metrics_scenario():
    metrics = compute_hour_metrics(_sample_issues(), _roster(), 14, elapsed_percentage=40)
    assert metrics.total_estimated == 9.0
    assert metrics.total_spent == 4.5
    assert metrics.sprint_capacity == 224
    assert metrics.utilization_percentage == 4.0
    assert metrics.progress_percentage == 50.0
    assert metrics.efficiency == "good"


def test_hour_metrics_efficiency_neutral_and_poor():
    assert compute_hour_metrics(_sample_issues(), _roster(), 14).efficiency == "neutral"
    assert compute_hour_metrics([], _roster(), 14, elapsed_percentage=50).efficiency == "neutral"
    assert compute_hour_metrics(_sample_issues(), _roster(), 14, elapsed_percentage=80).efficiency == "poor"


def test_hour_metrics_empty_roster_guards_division():
    metrics = compute_hour_metrics(_sample_issues(), [], 14)
    assert metrics.sprint_capacity == 0
    assert metrics.utilization_percentage == 0


def test_round_tenth_rounds_halves_up():
    assert round_tenth(0.25) == 0.3
    assert round_tenth(4.0178) == 4.0
    assert round_tenth(0) == 0


def test_velocity_mid_sprint():
    window = _window(datetime(2024, 1, 8, 12, 0, tzinfo=UTC))
    velocity = compute_velocity(_sample_issues(), window, _roster())
    assert velocity.achieved_velocity == pytest.approx(2 / 7)
    assert velocity.required_velocity == pytest.approx(1 / 7)
    assert velocity.status == "good"
    assert velocity.elapsed_days == 7
    assert velocity.remaining_days == 7
    assert velocity.capacity_breakdown.total_capacity_hours == 224
    assert velocity.capacity_breakdown.utilization_percentage == 4.0


def test_velocity_poor_when_behind():
    issues = [IssueModel(id=i, iid=i, title=str(i), state="opened") for i in range(10)]
    window = _window(datetime(2024, 1, 12, tzinfo=UTC))
    velocity = compute_velocity(issues, window, _roster())
    assert velocity.achieved_velocity == 0
    assert velocity.status == "poor"


def test_velocity_neutral_after_sprint_end():
    window = _window(datetime(2024, 2, 1, tzinfo=UTC))
    velocity = compute_velocity(_sample_issues(), window, [])
    assert velocity.required_velocity == 0
    assert velocity.status == "neutral"
    assert velocity.capacity_breakdown.utilization_percentage == 0


def test_velocity_before_sprint_start():
    window = _window(datetime(2023, 12, 20, tzinfo=UTC))
    assert compute_velocity(_sample_issues(), window, _roster()).achieved_velocity == 0


def test_status_helpers():
    assert completion_status(30, 0) == "neutral"
    assert completion_status(60, 50) == "good"
    assert completion_status(40, 50) == "poor"
    assert velocity_status(1, 0) == "neutral"
    assert velocity_status(2, 1) == "good"
    assert velocity_status(0.5, 1) == "poor"
    assert hour_efficiency_status(0, 50) == "neutral"
    assert hour_efficiency_status(50, 0) == "neutral"
    assert hour_efficiency_status(60, 50) == "good"
    assert hour_efficiency_status(65, 50) == "good"
    assert hour_efficiency_status(66, 50) == "poor"


def test_sprint_metrics_use_first_iteration():
    issues = _sample_issues()
    issues[1].iteration = IterationModel(title="S1", start_date=date(2024, 1, 1), due_date=date(2024, 1, 14))
    metrics = calculate_sprint_metrics(issues, _roster(), now=datetime(2024, 1, 8, 12, tzinfo=UTC))
    assert metrics.total_issues == 3
    assert metrics.completed_issues == 2
    assert metrics.completion_rate == pytest.approx(200 / 3)
    assert metrics.time_remaining == 7
    assert metrics.estimated_hours == 9.0
    assert metrics.spent_hours == 4.5
    assert metrics.sprint_capacity_hours == 224


def test_non_iterable_issues_raise_invalid_input():
    window = _window(datetime(2024, 1, 8, tzinfo=UTC))
    with pytest.raises(InvalidInputError):
        compute_velocity(None, window, [])
    with pytest.raises(InvalidInputError):
        compute_hour_metrics(42, [], 14)
    with pytest.raises(TypeError):
        compute_hour_metrics("not issues", [], 14)
