from datetime import date, datetime, timedelta

import pytz

from gitlab_app.analytics.metrics.time_window import compute_window
from gitlab_app.core.models import IterationModel, MilestoneModel

UTC = pytz.UTC


def _iteration(start=None, due=None):
    return IterationModel(title="Sprint 1", start_date=start, due_date=due, state="started")


def test_iteration_dates_take_priority():
    now = datetime(2024, 1, 8, 12, 0, tzinfo=UTC)
    window = compute_window(
        MilestoneModel(title="M1", start_date=date(2023, 12, 1), due_date=date(2023, 12, 31)),
        _iteration(date(2024, 1, 1), date(2024, 1, 14)),
        now,
    )
    assert window.source == "iteration"
    assert window.start == datetime(2024, 1, 1, 0, 0, tzinfo=UTC)
    assert window.end == datetime(2024, 1, 14, 23, 59, 59, 999000, tzinfo=UTC)
    assert window.total_days == 14
    assert window.elapsed_days == 7
    assert window.remaining_days == 7
    assert window.elapsed_percentage == 50.0


def test_milestone_beats_partial_iteration():
    now = datetime(2024, 2, 5, 9, 0, tzinfo=UTC)
    window = compute_window(
        {"title": "M2", "start_date": "2024-02-01", "due_date": "2024-02-10"},
        _iteration(start=date(2024, 1, 29)),
        now,
    )
    assert window.source == "milestone"
    assert window.start.date() == date(2024, 2, 1)
    assert window.total_days == 10


def test_start_only_assumes_fourteen_days_after_start():
    now = datetime(2024, 1, 3, tzinfo=UTC)
    window = compute_window(None, _iteration(start=date(2024, 1, 1)), now)
    assert window.source == "iteration_start"
    assert window.end.date() == date(2024, 1, 15)
    assert window.total_days == 15

    window = compute_window(MilestoneModel(title="M", start_date=date(2024, 1, 1)), None, now)
    assert window.source == "milestone_start"
    assert window.end.date() == date(2024, 1, 15)


def test_default_window_centred_on_now():
    now = datetime(2024, 3, 10, 12, 0, tzinfo=UTC)
    window = compute_window(None, None, now)
    assert window.source == "default"
    assert window.start.date() == date(2024, 3, 3)
    assert window.end.date() == date(2024, 3, 17)
    assert window.elapsed_days == 7
    assert window.remaining_days == 8


def test_unparseable_dates_are_ignored():
    now = datetime(2024, 3, 10, 12, 0, tzinfo=UTC)
    window = compute_window(None, {"start_date": "not-a-date", "due_date": "2024-03-20"}, now)
    assert window.source == "default"


def test_finished_sprint_clamps_remaining():
    now = datetime(2024, 2, 1, tzinfo=UTC)
    window = compute_window(None, _iteration(date(2024, 1, 1), date(2024, 1, 14)), now)
    assert window.remaining_days == 0
    assert window.elapsed_days == 31
    assert window.elapsed_percentage == 100.0


def test_future_sprint_has_no_elapsed_days():
    now = datetime(2023, 12, 25, tzinfo=UTC)
    window = compute_window(None, _iteration(date(2024, 1, 1), date(2024, 1, 14)), now)
    assert window.elapsed_days == 0
    assert window.elapsed_percentage == 0.0
    assert window.remaining_days == 21


def test_due_before_start_still_yields_one_day():
    now = datetime(2024, 1, 5, tzinfo=UTC)
    window = compute_window(None, _iteration(date(2024, 1, 10), date(2024, 1, 1)), now)
    assert window.total_days == 1
    assert window.elapsed_percentage == 0.0


def test_naive_now_is_read_in_target_timezone():
    tz = "America/Santiago"
    window = compute_window(None, _iteration(date(2024, 1, 1), date(2024, 1, 14)), datetime(2024, 1, 8, 12), tz=tz)
    assert window.start.hour == 0
    assert window.start.tzinfo.zone == tz
    assert window.elapsed_days == 7


def test_window_monotonicity():
    iteration = _iteration(date(2024, 1, 1), date(2024, 1, 14))
    base = datetime(2023, 12, 30, 6, 0, tzinfo=UTC)
    for step in range(0, 20 * 24, 5):
        window = compute_window(None, iteration, base + timedelta(hours=step))
        assert window.elapsed_days >= 0
        assert window.remaining_days >= 0
        assert 0 <= window.elapsed_percentage <= 100
        if window.start <= base + timedelta(hours=step) <= window.end:
            assert window.elapsed_days + window.remaining_days >= window.total_days - 1
