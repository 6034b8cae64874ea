import math
from collections import defaultdict
from typing import Sequence, TypeVar

import structlog

from usagelens.errors import EmptyDatasetError
from usagelens.models import (
    DateRange,
    ModelEfficiency,
    SessionRecord,
    SummaryStats,
    UsageSplit,
)
from usagelens.timeseries import elapsed_days

logger = structlog.get_logger()

_N = TypeVar("_N", int, float)

# datetime.weekday() values for Saturday and Sunday
_WEEKEND_DAYS = (5, 6)


def round_half_up(value: "float", digits: "int" = 0) -> "float":
    """
    rounds halves towards positive infinity (2.5 -> 3, -2.5 -> -2)
    rather than Python's round-half-to-even.
    """
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def _round_int(value: "float") -> "int":
    return int(round_half_up(value))


def median(values: "Sequence[_N]") -> "_N":
    """
    upper median: the element at index n // 2 of the sorted
    values, never an average of the two middle elements.
    """
    ordered = sorted(values)
    return ordered[len(ordered) // 2]


def _peak(totals: "dict[int, float]") -> "int":
    # ties go to the lowest hour of the day
    return min(totals, key=lambda hour: (-totals[hour], hour))


def calculate_stats(records: "Sequence[SessionRecord]") -> "SummaryStats":
    """
    reduces the record sequence into one SummaryStats. Raises
    EmptyDatasetError for an empty sequence since min, max and
    median are undefined there.
    """
    if not records:
        raise EmptyDatasetError("no session records to aggregate")

    total_sessions = len(records)
    total_cost = 0.0
    total_tokens = 0
    total_input = 0
    total_output = 0
    total_cache_read = 0

    error_sessions = 0
    error_cost = 0.0
    error_tokens = 0
    successful_cost = 0.0
    successful_tokens = 0

    # YYYY-MM-DD -> [sessions, tokens, cost]
    daily: "dict[str, list[float]]" = {}
    hourly_sessions: "dict[int, float]" = defaultdict(float)
    hourly_costs: "dict[int, float]" = defaultdict(float)

    model_sessions: "dict[str, int]" = {}
    model_costs: "dict[str, float]" = defaultdict(float)
    model_tokens: "dict[str, int]" = defaultdict(int)

    weekday = [0, 0.0, 0]
    weekend = [0, 0.0, 0]

    earliest = latest = records[0].timestamp

    for record in records:
        total_cost += record.cost
        total_tokens += record.total_tokens
        total_input += record.input_tokens
        total_output += record.output_tokens
        total_cache_read += record.cache_read_tokens

        if record.is_error:
            error_sessions += 1
            error_cost += record.cost
            error_tokens += record.total_tokens
        else:
            successful_cost += record.cost
            successful_tokens += record.total_tokens

        day = daily.setdefault(record.timestamp.date().isoformat(), [0, 0, 0.0])
        day[0] += 1
        day[1] += record.total_tokens
        day[2] += record.cost

        hourly_sessions[record.timestamp.hour] += 1
        hourly_costs[record.timestamp.hour] += record.cost

        model_sessions[record.model] = model_sessions.get(record.model, 0) + 1
        model_costs[record.model] += record.cost
        model_tokens[record.model] += record.total_tokens

        split = weekend if record.timestamp.weekday() in _WEEKEND_DAYS else weekday
        split[0] += 1
        split[1] += record.cost
        split[2] += record.total_tokens

        if record.timestamp < earliest:
            earliest = record.timestamp
        if record.timestamp > latest:
            latest = record.timestamp

    # averages over days that have data, not over the calendar span
    active_days = len(daily)
    avg_sessions_per_day = sum(d[0] for d in daily.values()) / active_days
    avg_tokens_per_day = sum(d[1] for d in daily.values()) / active_days
    avg_cost_per_day = sum(d[2] for d in daily.values()) / active_days

    model_efficiency = {
        model: ModelEfficiency(
            cost_per_token=(
                model_costs[model] / model_tokens[model] if model_tokens[model] else 0.0
            ),
            avg_tokens_per_session=model_tokens[model] / sessions,
            total_cost=model_costs[model],
            total_tokens=model_tokens[model],
            sessions=sessions,
        )
        for model, sessions in model_sessions.items()
    }

    session_sizes = [r.total_tokens for r in records]
    session_costs = [r.cost for r in records]

    total_days = math.ceil(elapsed_days(earliest, latest)) + 1

    stats = SummaryStats(
        total_sessions=total_sessions,
        total_cost=round_half_up(total_cost, 2),
        total_tokens=total_tokens,
        avg_tokens_per_session=_round_int(total_tokens / total_sessions),
        avg_sessions_per_day=round_half_up(avg_sessions_per_day, 1),
        avg_tokens_per_day=_round_int(avg_tokens_per_day),
        avg_cost_per_day=round_half_up(avg_cost_per_day, 2),
        total_input_tokens=total_input,
        total_output_tokens=total_output,
        total_cache_read_tokens=total_cache_read,
        # output tokens produced per input token
        input_output_ratio=(
            round_half_up(total_output / total_input, 2) if total_input else 0.0
        ),
        cost_per_token=total_cost / total_tokens if total_tokens else 0.0,
        cost_per_session=round_half_up(total_cost / total_sessions, 2),
        model_usage=model_sessions,
        model_efficiency=model_efficiency,
        peak_hour=_peak(hourly_sessions),
        peak_cost_hour=_peak(hourly_costs),
        max_session_size=max(session_sizes),
        min_session_size=min(session_sizes),
        median_session_size=median(session_sizes),
        max_session_cost=round_half_up(max(session_costs), 2),
        min_session_cost=round_half_up(min(session_costs), 2),
        median_session_cost=round_half_up(median(session_costs), 2),
        total_days=total_days,
        sessions_per_day=round_half_up(total_sessions / total_days, 1),
        tokens_per_day=_round_int(total_tokens / total_days),
        cost_per_day=round_half_up(total_cost / total_days, 2),
        weekday_usage=UsageSplit(*weekday),
        weekend_usage=UsageSplit(*weekend),
        error_rate=round_half_up(error_sessions / total_sessions * 100, 2),
        error_sessions=error_sessions,
        successful_sessions=total_sessions - error_sessions,
        error_cost=round_half_up(error_cost, 2),
        error_tokens=error_tokens,
        successful_cost=round_half_up(successful_cost, 2),
        successful_tokens=successful_tokens,
        date_range=DateRange(start=earliest, end=latest),
    )

    logger.debug(
        "stats_calculated",
        sessions=total_sessions,
        active_days=active_days,
        models=len(model_sessions),
    )
    return stats
