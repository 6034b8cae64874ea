import enum
import math
from datetime import datetime, timedelta, timezone
from typing import Callable, Sequence

import structlog

from usagelens.models import Bucket, SessionRecord, TimeSeries, TimeSeriesMetadata

logger = structlog.get_logger()

# upper bounds (inclusive, in days) for each granularity
HOUR_MAX_SPAN_DAYS = 7
DAY_MAX_SPAN_DAYS = 30
WEEK_MAX_SPAN_DAYS = 90

_MONTH_ABBR = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)  # fmt: skip


def elapsed_days(start: "datetime", end: "datetime") -> "float":
    """
    absolute elapsed time between two aware datetimes in days.
    Both are moved to UTC first so DST shifts count as real time.
    """
    delta = end.astimezone(timezone.utc) - start.astimezone(timezone.utc)
    return delta / timedelta(days=1)


def _hour_key(ts: "datetime") -> "str":
    return ts.strftime("%Y-%m-%d %H:00")


def _day_key(ts: "datetime") -> "str":
    # note - day buckets are UTC calendar dates
    return ts.astimezone(timezone.utc).date().isoformat()


def _week_key(ts: "datetime") -> "str":
    # weeks start on Sunday; weekday() is 0 for Monday
    start = ts.date() - timedelta(days=(ts.weekday() + 1) % 7)
    return start.isoformat()


def _month_key(ts: "datetime") -> "str":
    return ts.strftime("%Y-%m")


def _hour_label(key: "str") -> "str":
    start = datetime.strptime(key, "%Y-%m-%d %H:%M")
    return f"{start.month}/{start.day} {start.hour}:00"


def _day_label(key: "str") -> "str":
    start = datetime.strptime(key, "%Y-%m-%d")
    return f"{start.month}/{start.day}/{start.year}"


def _week_label(key: "str") -> "str":
    start = datetime.strptime(key, "%Y-%m-%d")
    end = start + timedelta(days=6)
    return f"{start.month}/{start.day} - {end.month}/{end.day}"


def _month_label(key: "str") -> "str":
    start = datetime.strptime(key, "%Y-%m")
    return f"{_MONTH_ABBR[start.month - 1]} {start.year}"


class Granularity(str, enum.Enum):
    """
    Granularity is the time unit buckets are grouped by. It is
    picked once per record sequence from its day span, and each
    variant owns its bucket-key and label formats.
    """

    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"

    def bucket_key(self, ts: "datetime") -> "str":
        return _KEY_FORMATTERS[self](ts)

    def key_start(self, key: "str") -> "datetime":
        """
        parses a bucket key back into the (naive) start of its bucket.
        """
        return datetime.strptime(key, _KEY_FORMATS[self])

    def label(self, key: "str") -> "str":
        return _LABEL_FORMATTERS[self](key)


_KEY_FORMATTERS: "dict[Granularity, Callable[[datetime], str]]" = {
    Granularity.HOUR: _hour_key,
    Granularity.DAY: _day_key,
    Granularity.WEEK: _week_key,
    Granularity.MONTH: _month_key,
}

_KEY_FORMATS: "dict[Granularity, str]" = {
    Granularity.HOUR: "%Y-%m-%d %H:%M",
    Granularity.DAY: "%Y-%m-%d",
    Granularity.WEEK: "%Y-%m-%d",
    Granularity.MONTH: "%Y-%m",
}

_LABEL_FORMATTERS: "dict[Granularity, Callable[[str], str]]" = {
    Granularity.HOUR: _hour_label,
    Granularity.DAY: _day_label,
    Granularity.WEEK: _week_label,
    Granularity.MONTH: _month_label,
}


def select_granularity(day_span: "int") -> "Granularity":
    if day_span <= HOUR_MAX_SPAN_DAYS:
        return Granularity.HOUR
    if day_span <= DAY_MAX_SPAN_DAYS:
        return Granularity.DAY
    if day_span <= WEEK_MAX_SPAN_DAYS:
        return Granularity.WEEK
    return Granularity.MONTH


def create_time_series(records: "Sequence[SessionRecord]") -> "TimeSeries":
    """
    groups records into ascending time buckets at a granularity
    chosen from the sequence's span. An empty sequence gives an
    empty series rather than an error.
    """
    if not records:
        return TimeSeries(
            buckets=(),
            metadata=TimeSeriesMetadata(
                granularity=Granularity.HOUR,
                total_day_span=0,
                bucket_count=0,
            ),
        )

    earliest = latest = records[0].timestamp
    for record in records:
        if record.timestamp < earliest:
            earliest = record.timestamp
        if record.timestamp > latest:
            latest = record.timestamp

    day_span = math.ceil(elapsed_days(earliest, latest))
    granularity = select_granularity(day_span)
    logger.debug("granularity_selected", granularity=granularity.value, day_span=day_span)

    # bucket_key -> [sessions, tokens, cost, input, output]
    grouped: "dict[str, list[float]]" = {}
    for record in records:
        key = granularity.bucket_key(record.timestamp)
        totals = grouped.setdefault(key, [0, 0, 0.0, 0, 0])
        totals[0] += 1
        totals[1] += record.total_tokens
        totals[2] += record.cost
        totals[3] += record.input_tokens
        totals[4] += record.output_tokens

    buckets = tuple(
        Bucket(
            bucket_key=key,
            session_count=int(totals[0]),
            total_tokens=int(totals[1]),
            total_cost=totals[2],
            input_tokens=int(totals[3]),
            output_tokens=int(totals[4]),
        )
        for key, totals in sorted(
            grouped.items(), key=lambda item: granularity.key_start(item[0])
        )
    )

    return TimeSeries(
        buckets=buckets,
        metadata=TimeSeriesMetadata(
            granularity=granularity,
            total_day_span=day_span,
            bucket_count=len(buckets),
        ),
    )
