import os
from dataclasses import dataclass
from datetime import tzinfo
from zoneinfo import ZoneInfo


@dataclass
class Config:
    # path or http(s) URL of the usage log; empty with
    # use_sample set means analyse generated data
    source: "str" = ""
    use_sample: "bool" = False
    sample_seed: "int | None" = None
    # IANA zone name for local-time grouping; empty
    # means the host's local zone
    timezone: "str" = ""
    output_indent: "int" = 2
    include_records: "bool" = False
    metrics_textfile: "str" = ""
    log_level: "str" = "info"

    @classmethod
    def from_env(cls) -> "Config":
        return cls(
            timezone=os.environ.get("USAGELENS_TZ", ""),
            metrics_textfile=os.environ.get("USAGELENS_METRICS_TEXTFILE", ""),
            log_level=os.environ.get("USAGELENS_LOG_LEVEL", "info"),
        )

    @property
    def tzinfo(self) -> "tzinfo | None":
        if not self.timezone:
            return None
        return ZoneInfo(self.timezone)

    @property
    def metrics_enabled(self) -> "bool":
        return bool(self.metrics_textfile)
