from dataclasses import asdict
from datetime import datetime
from typing import Any

from usagelens.models import AnalysisResult, SessionRecord, SummaryStats, TimeSeries


def _jsonable(value: "Any") -> "Any":
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def record_to_dict(record: "SessionRecord") -> "dict[str, Any]":
    return {
        "timestamp": record.timestamp.isoformat(),
        "kind": record.kind,
        "model": record.model,
        "input_tokens": record.input_tokens,
        "cache_read_tokens": record.cache_read_tokens,
        "output_tokens": record.output_tokens,
        "total_tokens": record.total_tokens,
        "cost": record.cost,
        "columns": dict(record.columns),
    }


def stats_to_dict(stats: "SummaryStats") -> "dict[str, Any]":
    # asdict recurses into the nested dataclasses and copies the mappings
    return _jsonable(asdict(stats))


def time_series_to_dict(series: "TimeSeries") -> "dict[str, Any]":
    metadata = series.metadata
    return {
        "buckets": [
            {**asdict(bucket), "label": label}
            for bucket, label in zip(series.buckets, series.labels())
        ],
        "metadata": {
            "granularity": metadata.granularity.value,
            "total_day_span": metadata.total_day_span,
            "bucket_count": metadata.bucket_count,
        },
    }


def result_to_dict(
    result: "AnalysisResult",
    include_records: "bool" = True,
) -> "dict[str, Any]":
    """
    converts an AnalysisResult into plain JSON types for the
    presentation layer.
    """
    data: "dict[str, Any]" = {
        "stats": stats_to_dict(result.stats),
        "time_series": time_series_to_dict(result.time_series),
    }
    if include_records:
        data["records"] = [record_to_dict(r) for r in result.records]
    return data
