from datetime import datetime, timedelta, timezone

import pytest

from usagelens.errors import EmptyDatasetError
from usagelens.models import UsageSplit
from usagelens.parser import parse_records
from usagelens.stats import calculate_stats, median, round_half_up


class TestRoundHalfUp:
    def test_halves_round_up(self) -> "None":
        assert round_half_up(2.5) == 3
        assert round_half_up(0.125, 2) == 0.13

    def test_negative_halves_round_towards_positive(self) -> "None":
        assert round_half_up(-2.5) == -2

    def test_one_decimal(self) -> "None":
        assert round_half_up(1.25, 1) == 1.3


class TestMedian:
    def test_even_length_takes_upper_middle(self) -> "None":
        assert median([1, 2, 3, 4]) == 3

    def test_unsorted_input(self) -> "None":
        assert median([5.0, 1.0, 3.0]) == 3.0


class TestCalculateStats:
    @pytest.fixture()
    def stats(self, mixed_log, utc):
        return calculate_stats(parse_records(mixed_log, utc))

    def test_empty_sequence_raises(self) -> "None":
        with pytest.raises(EmptyDatasetError):
            calculate_stats([])

    def test_totals(self, stats) -> "None":
        assert stats.total_sessions == 4
        assert stats.total_cost == 10.0
        assert stats.total_tokens == 1000
        assert stats.total_input_tokens == 650
        assert stats.total_output_tokens == 300
        assert stats.total_cache_read_tokens == 10

    def test_per_session_figures(self, stats) -> "None":
        assert stats.avg_tokens_per_session == 250
        assert stats.cost_per_session == 2.5
        assert stats.cost_per_token == 0.01
        assert stats.input_output_ratio == 0.46

    def test_daily_averages_use_active_days(self, stats) -> "None":
        assert stats.avg_sessions_per_day == 2.0
        assert stats.avg_tokens_per_day == 500
        assert stats.avg_cost_per_day == 5.0

    def test_productivity_uses_inclusive_span(self, stats) -> "None":
        assert stats.total_days == 4
        assert stats.sessions_per_day == 1.0
        assert stats.tokens_per_day == 250
        assert stats.cost_per_day == 2.5

    def test_error_partition(self, stats) -> "None":
        assert stats.error_sessions == 1
        assert stats.successful_sessions == 3
        assert stats.error_rate == 25.0
        assert stats.error_cost == 2.0
        assert stats.error_tokens == 350
        assert stats.successful_cost == 8.0
        assert stats.successful_tokens == 650

    def test_peak_hours(self, stats) -> "None":
        # hours 10 and 15 both have two sessions; the lower wins
        assert stats.peak_hour == 10
        assert stats.peak_cost_hour == 15

    def test_distributions(self, stats) -> "None":
        assert stats.max_session_size == 450
        assert stats.min_session_size == 40
        assert stats.median_session_size == 350
        assert stats.max_session_cost == 4.0
        assert stats.min_session_cost == 1.0
        assert stats.median_session_cost == 3.0

    def test_weekday_weekend_split(self, stats) -> "None":
        assert stats.weekend_usage == UsageSplit(sessions=2, cost=3.0, tokens=510)
        assert stats.weekday_usage == UsageSplit(sessions=2, cost=7.0, tokens=490)

    def test_model_breakdown(self, stats) -> "None":
        assert stats.model_usage == {"gpt-4": 3, "claude-3": 1}
        gpt4 = stats.model_efficiency["gpt-4"]
        assert gpt4.total_cost == 8.0
        assert gpt4.total_tokens == 650
        assert gpt4.sessions == 3
        assert gpt4.cost_per_token == pytest.approx(8.0 / 650)
        assert gpt4.avg_tokens_per_session == pytest.approx(650 / 3)

    def test_date_range(self, stats) -> "None":
        assert stats.date_range.start == datetime(2024, 1, 6, 10, tzinfo=timezone.utc)
        assert stats.date_range.end == datetime(
            2024, 1, 8, 15, 45, tzinfo=timezone.utc
        )

    def test_zero_tokens_model_has_zero_cost_per_token(self, make_csv, utc) -> "None":
        text = make_csv(
            dict(date="2024-01-01T10:00:00Z", total_tokens="0", cost="0.50")
        )
        stats = calculate_stats(parse_records(text, utc))
        assert stats.cost_per_token == 0.0
        assert stats.model_efficiency["gpt-4"].cost_per_token == 0.0

    def test_zero_input_gives_zero_ratio(self, make_csv, utc) -> "None":
        text = make_csv(dict(date="2024-01-01T10:00:00Z", input_with_cache="0"))
        stats = calculate_stats(parse_records(text, utc))
        assert stats.input_output_ratio == 0.0

    def test_local_time_drives_hours_and_days(self, make_csv) -> "None":
        minus_five = timezone(timedelta(hours=-5))
        # Saturday 02:00 UTC is Friday 21:00 at UTC-5
        text = make_csv(dict(date="2024-01-06T02:00:00Z"))
        stats = calculate_stats(parse_records(text, minus_five))
        assert stats.peak_hour == 21
        assert stats.weekday_usage.sessions == 1
        assert stats.weekend_usage.sessions == 0
