from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Mapping

if TYPE_CHECKING:
    from usagelens.timeseries import Granularity


@dataclass(frozen=True, slots=True)
class SessionRecord:
    """
    SessionRecord represents a single row of the usage
    log, i.e. one assistant invocation.
    """

    timestamp: "datetime"
    kind: "str"
    model: "str"
    # input with cache write + input without cache write
    input_tokens: "int"
    cache_read_tokens: "int"
    output_tokens: "int"
    # note - taken verbatim from the "Total Tokens" column,
    # never recomputed from the other token counts
    total_tokens: "int"
    cost: "float"
    # every source column, including the ones aggregation ignores
    columns: "Mapping[str, str]" = field(
        default_factory=dict, compare=False, hash=False, repr=False
    )

    @property
    def is_error(self) -> "bool":
        return "errored" in self.kind.casefold()


@dataclass(frozen=True, slots=True)
class UsageSplit:
    sessions: "int" = 0
    cost: "float" = 0.0
    tokens: "int" = 0


@dataclass(frozen=True, slots=True)
class ModelEfficiency:
    # full precision, callers scale it for display
    cost_per_token: "float"
    avg_tokens_per_session: "float"
    total_cost: "float"
    total_tokens: "int"
    sessions: "int"


@dataclass(frozen=True, slots=True)
class DateRange:
    start: "datetime"
    end: "datetime"


@dataclass(frozen=True, slots=True)
class SummaryStats:
    """
    SummaryStats is the flat aggregate computed once per
    analysis run over the full record sequence.
    """

    total_sessions: "int"
    total_cost: "float"
    total_tokens: "int"
    avg_tokens_per_session: "int"
    avg_sessions_per_day: "float"
    avg_tokens_per_day: "int"
    avg_cost_per_day: "float"

    total_input_tokens: "int"
    total_output_tokens: "int"
    total_cache_read_tokens: "int"
    input_output_ratio: "float"

    cost_per_token: "float"
    cost_per_session: "float"

    model_usage: "Mapping[str, int]"
    model_efficiency: "Mapping[str, ModelEfficiency]"

    peak_hour: "int"
    peak_cost_hour: "int"

    max_session_size: "int"
    min_session_size: "int"
    median_session_size: "int"
    max_session_cost: "float"
    min_session_cost: "float"
    median_session_cost: "float"

    total_days: "int"
    sessions_per_day: "float"
    tokens_per_day: "int"
    cost_per_day: "float"

    weekday_usage: "UsageSplit"
    weekend_usage: "UsageSplit"

    error_rate: "float"
    error_sessions: "int"
    successful_sessions: "int"
    error_cost: "float"
    error_tokens: "int"
    successful_cost: "float"
    successful_tokens: "int"

    date_range: "DateRange"


@dataclass(frozen=True, slots=True)
class Bucket:
    bucket_key: "str"
    session_count: "int"
    total_tokens: "int"
    total_cost: "float"
    input_tokens: "int"
    output_tokens: "int"


@dataclass(frozen=True, slots=True)
class TimeSeriesMetadata:
    granularity: "Granularity"
    # whole days between the earliest and latest record
    total_day_span: "int"
    bucket_count: "int"

    @property
    def label_formatter(self) -> "Callable[[str], str]":
        return self.granularity.label


@dataclass(frozen=True, slots=True)
class TimeSeries:
    """
    TimeSeries wraps the ascending bucket sequence together
    with the metadata describing how it was bucketed.
    """

    buckets: "tuple[Bucket, ...]"
    metadata: "TimeSeriesMetadata"

    def __len__(self) -> "int":
        return len(self.buckets)

    def labels(self) -> "list[str]":
        return [self.metadata.label_formatter(b.bucket_key) for b in self.buckets]


@dataclass(frozen=True, slots=True)
class AnalysisResult:
    records: "tuple[SessionRecord, ...]"
    stats: "SummaryStats"
    time_series: "TimeSeries"
