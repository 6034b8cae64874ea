from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram

from usagelens.models import AnalysisResult


class AnalysisMetrics:
    """
    records analysis runs and the headline figures of the most
    recent successful run into a Prometheus registry.
    """

    def __init__(self, registry: "CollectorRegistry" = REGISTRY) -> "None":
        self._registry: "CollectorRegistry" = registry
        self._analyses: "Counter" = Counter(
            "usagelens_analyses_total",
            "Total analysis runs by outcome",
            ["outcome"],
            registry=registry,
        )
        self._records_parsed: "Counter" = Counter(
            "usagelens_records_parsed_total",
            "Total session records parsed by successful runs",
            registry=registry,
        )
        self._duration: "Histogram" = Histogram(
            "usagelens_analysis_duration_seconds",
            "Duration of analysis runs",
            registry=registry,
        )
        self._last_total_cost: "Gauge" = Gauge(
            "usagelens_last_total_cost_usd",
            "Total cost in USD of the last analysed usage log",
            registry=registry,
        )
        self._last_total_tokens: "Gauge" = Gauge(
            "usagelens_last_total_tokens",
            "Total tokens of the last analysed usage log",
            registry=registry,
        )
        self._last_session_count: "Gauge" = Gauge(
            "usagelens_last_session_count",
            "Number of sessions in the last analysed usage log",
            registry=registry,
        )

    @property
    def registry(self) -> "CollectorRegistry":
        return self._registry

    def record_success(self, result: "AnalysisResult") -> "None":
        """
        counts a successful run and exposes its headline totals.
        """
        self._analyses.labels(outcome="ok").inc()
        self._records_parsed.inc(len(result.records))
        self._last_total_cost.set(result.stats.total_cost)
        self._last_total_tokens.set(result.stats.total_tokens)
        self._last_session_count.set(result.stats.total_sessions)

    def record_failure(self, outcome: "str") -> "None":
        self._analyses.labels(outcome=outcome).inc()

    def observe_duration(self, duration_seconds: "float") -> "None":
        self._duration.observe(duration_seconds)
