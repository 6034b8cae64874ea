import json

from usagelens.analyzer import analyze
from usagelens.export import result_to_dict


class TestResultToDict:
    def test_is_json_serialisable(self, mixed_log, utc) -> "None":
        data = result_to_dict(analyze(mixed_log, utc))
        assert json.loads(json.dumps(data)) == data

    def test_stats_section(self, mixed_log, utc) -> "None":
        stats = result_to_dict(analyze(mixed_log, utc))["stats"]
        assert stats["total_cost"] == 10.0
        assert stats["date_range"]["start"] == "2024-01-06T10:00:00+00:00"
        assert stats["weekend_usage"] == {"sessions": 2, "cost": 3.0, "tokens": 510}
        assert stats["model_efficiency"]["claude-3"]["total_tokens"] == 350

    def test_buckets_carry_labels(self, mixed_log, utc) -> "None":
        series = result_to_dict(analyze(mixed_log, utc))["time_series"]
        assert series["metadata"] == {
            "granularity": "hour",
            "total_day_span": 3,
            "bucket_count": 2,
        }
        assert series["buckets"][0]["bucket_key"] == "2024-01-06 10:00"
        assert series["buckets"][0]["label"] == "1/6 10:00"

    def test_records_are_optional(self, mixed_log, utc) -> "None":
        result = analyze(mixed_log, utc)
        assert "records" not in result_to_dict(result, include_records=False)
        records = result_to_dict(result)["records"]
        assert len(records) == 4
        assert records[1]["kind"] == "Errored, Not Charged"
        assert records[1]["columns"]["Max Mode"] == "No"
