import asyncio
import json
import sys

import httpx
import structlog
from prometheus_client import CollectorRegistry, write_to_textfile

from usagelens.analyzer import run_analysis
from usagelens.cli import parse_args
from usagelens.config import Config
from usagelens.errors import AnalysisError
from usagelens.export import result_to_dict
from usagelens.logging import setup_logging
from usagelens.metrics import AnalysisMetrics
from usagelens.sample import generate_sample_csv
from usagelens.source import UnsupportedSourceError, load_usage_log

logger = structlog.get_logger()


def _load_text(config: "Config") -> "str":
    if config.use_sample:
        logger.info("sample_data_generated", seed=config.sample_seed)
        return generate_sample_csv(seed=config.sample_seed)
    return asyncio.run(load_usage_log(config.source))


def _write_metrics(path: "str", metrics: "AnalysisMetrics") -> "None":
    # write failures are logged; the exit status reflects the analysis only
    try:
        write_to_textfile(path, metrics.registry)
    except OSError as e:
        logger.warning("metrics_write_failed", path=path, error=str(e))
        return
    logger.debug("metrics_written", path=path)


def run(config: "Config") -> "int":
    """
    loads the configured usage log, analyses it and prints the
    JSON result. Returns the process exit status.
    """
    metrics = AnalysisMetrics(registry=CollectorRegistry())

    try:
        text = _load_text(config)
        result = run_analysis(text, metrics, config.tzinfo)
    except (UnsupportedSourceError, OSError, httpx.HTTPError) as e:
        logger.error("usage_log_unavailable", source=config.source, error=str(e))
        return 1
    except AnalysisError as e:
        logger.error("usage_log_invalid", source=config.source, error=str(e))
        return 1
    finally:
        if config.metrics_enabled:
            _write_metrics(config.metrics_textfile, metrics)

    json.dump(
        result_to_dict(result, include_records=config.include_records),
        sys.stdout,
        indent=config.output_indent,
    )
    sys.stdout.write("\n")
    return 0


def main() -> "None":
    config = parse_args()
    setup_logging(config.log_level)
    raise SystemExit(run(config))


if __name__ == "__main__":
    main()
