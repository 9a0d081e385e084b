"""
Tests for AnalyticsService.

Tests cover:
1. Per-habit completion rates over a range
2. The daily activity heatmap
3. Completion trends grouped by day, ISO week and month
"""
from datetime import date

import pytest

from habit_tracker.constants import TrendGrouping
from habit_tracker.exceptions import ValidationError
from habit_tracker.services.analytics_service import AnalyticsService, completion_rate, intensity

MON = date(2026, 3, 2)


class TestHabitAnalytics:

    def test_counts_and_rate(self, habit_factory, event_factory, today):
        habit = habit_factory(id=1)
        events = [
            event_factory(date(2026, 3, 8), "skipped"),
            event_factory(date(2026, 3, 9), "completed"),
            event_factory(date(2026, 3, 10), "failed"),
            event_factory(today, "completed"),
        ]

        result = AnalyticsService.habit_analytics(habit, events, MON, today, today)

        assert result.scheduled_days == 10
        assert result.completed_days == 2
        assert result.failed_days == 1
        assert result.skipped_days == 1
        assert result.completion_rate == 67

    def test_duplicate_day_counts_latest_event(self, habit_factory, event_factory, today):
        habit = habit_factory(id=1)
        events = [event_factory(today, "completed"), event_factory(today, "failed")]

        result = AnalyticsService.habit_analytics(habit, events, today, today, today)

        assert result.completed_days == 0
        assert result.failed_days == 1

    def test_avoided_day_beats_relapse(self, habit_factory, event_factory, today):
        habit = habit_factory(id=1, type="avoidance")
        events = [event_factory(today, "failed"), event_factory(today, "completed")]

        result = AnalyticsService.habit_analytics(habit, events, today, today, today)

        assert result.completed_days == 1
        assert result.completion_rate == 100

    def test_specific_days_schedule(self, habit_factory, today):
        habit = habit_factory(id=1, frequency_type="specific_days", days_of_week=["Mon", "Wed"])
        result = AnalyticsService.habit_analytics(habit, [], MON, today, today)

        assert result.scheduled_days == 4
        assert result.completion_rate == 0

    def test_other_habits_ignored(self, habit_factory, event_factory, today):
        habit = habit_factory(id=1)
        result = AnalyticsService.habit_analytics(habit, [event_factory(today, "completed", habit_id=2)],
                                                  today, today, today)
        assert result.completed_days == 0


class TestHeatmap:

    def test_one_entry_per_day(self, habit_factory, event_factory, today):
        habits = [habit_factory(id=1), habit_factory(id=2)]
        events = [
            event_factory(date(2026, 3, 10), "completed", habit_id=1),
            event_factory(today, "completed", habit_id=1),
            event_factory(today, "failed", habit_id=2),
        ]

        days = AnalyticsService.activity_heatmap(habits, events, date(2026, 3, 9), today, today)

        assert [d.date for d in days] == [date(2026, 3, 9), date(2026, 3, 10), today]
        assert [(d.completed, d.logged, d.intensity) for d in days] == [(0, 0, 0), (1, 1, 4), (1, 2, 2)]

    def test_intensity_levels(self):
        assert intensity(0, 0) == 0
        assert intensity(0, 3) == 1
        assert intensity(2, 5) == 2
        assert intensity(3, 5) == 3
        assert intensity(4, 5) == 4


class TestTrends:

    def _history(self, event_factory):
        return [
            event_factory(date(2026, 3, 6), "completed"),
            event_factory(date(2026, 3, 9), "completed"),
            event_factory(date(2026, 3, 10), "failed"),
        ]

    def test_iso_weeks_clipped_to_range(self, habit_factory, event_factory, today):
        trends = AnalyticsService.completion_trends(
            [habit_factory(id=1)], self._history(event_factory), date(2026, 3, 5), today, today
        )

        assert [(t.period_start, t.period_end) for t in trends] == [
            (date(2026, 3, 5), date(2026, 3, 8)),
            (date(2026, 3, 9), today),
        ]
        assert [(t.completed, t.total, t.completion_rate) for t in trends] == [(1, 1, 100), (1, 2, 50)]

    def test_month_and_day_grouping(self, habit_factory, event_factory, today):
        habits = [habit_factory(id=1)]
        events = self._history(event_factory)

        by_month = AnalyticsService.completion_trends(
            habits, events, date(2026, 3, 5), today, today, TrendGrouping.MONTH
        )
        by_day = AnalyticsService.completion_trends(
            habits, events, date(2026, 3, 5), today, today, TrendGrouping.DAY
        )

        assert [(t.completed, t.total, t.completion_rate) for t in by_month] == [(2, 3, 67)]
        assert len(by_day) == 7
        assert by_day[0].total == 0
        assert by_day[0].completion_rate == 0


class TestRanges:

    def test_start_after_end(self, habit_factory, today):
        with pytest.raises(ValidationError) as exc_info:
            AnalyticsService.habit_analytics(habit_factory(id=1), [], today, MON, today)
        assert exc_info.value.field == "start_date"

    def test_range_too_long(self, today):
        with pytest.raises(ValidationError):
            AnalyticsService.activity_heatmap([], [], date(2024, 1, 1), today, today)

    def test_completion_rate(self):
        assert completion_rate(0, 0) == 0
        assert completion_rate(1, 2) == 33
