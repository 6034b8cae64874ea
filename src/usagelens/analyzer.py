import time
from datetime import tzinfo

import structlog

from usagelens.errors import EmptyDatasetError, ParseError
from usagelens.metrics import AnalysisMetrics
from usagelens.models import AnalysisResult
from usagelens.parser import parse_records
from usagelens.stats import calculate_stats
from usagelens.timeseries import create_time_series

logger = structlog.get_logger()


def analyze(raw_text: "str", tz: "tzinfo | None" = None) -> "AnalysisResult":
    """
    runs the full pipeline over raw usage-log text: parse the
    records, then aggregate stats and bucket the time series over
    the same sequence.

    tz defines local time for every calendar computation; None
    means the host's zone. Raises ParseError when there is no
    header line and EmptyDatasetError when there are no rows.
    Nothing is returned unless every stage succeeds.
    """
    records = tuple(parse_records(raw_text, tz))
    if not records:
        raise EmptyDatasetError("usage log has a header but no data rows")

    stats = calculate_stats(records)
    time_series = create_time_series(records)

    return AnalysisResult(records=records, stats=stats, time_series=time_series)


def run_analysis(
    raw_text: "str",
    metrics: "AnalysisMetrics",
    tz: "tzinfo | None" = None,
) -> "AnalysisResult":
    """
    analyze() plus run logging and metrics. Errors are recorded
    and re-raised unchanged.
    """
    start = time.monotonic()
    try:
        result = analyze(raw_text, tz)
    except ParseError as e:
        logger.error("analysis_failed", reason="parse_error", error=str(e))
        metrics.record_failure("parse_error")
        raise
    except EmptyDatasetError as e:
        logger.error("analysis_failed", reason="empty_dataset", error=str(e))
        metrics.record_failure("empty_dataset")
        raise
    finally:
        metrics.observe_duration(time.monotonic() - start)

    metrics.record_success(result)
    logger.info(
        "analysis_complete",
        sessions=result.stats.total_sessions,
        total_cost=result.stats.total_cost,
        granularity=result.time_series.metadata.granularity.value,
        buckets=result.time_series.metadata.bucket_count,
    )
    return result
