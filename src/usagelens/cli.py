import argparse
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from usagelens.config import Config


def parse_args(argv: "list[str] | None" = None) -> "Config":
    config = Config.from_env()

    parser = argparse.ArgumentParser(
        prog="usagelens",
        description="Usage statistics and time series for AI assistant session logs",
    )
    parser.add_argument(
        "source",
        nargs="?",
        default="",
        help="Path or http(s) URL of the usage log CSV",
    )
    parser.add_argument(
        "--sample",
        dest="use_sample",
        action="store_true",
        help="Analyse generated sample data instead of a source",
    )
    parser.add_argument(
        "--sample.seed",
        dest="sample_seed",
        type=int,
        default=None,
        help="Seed for reproducible sample data",
    )
    parser.add_argument(
        "--tz",
        dest="timezone",
        default=config.timezone,
        help="IANA time zone used as local time (default: host zone)",
    )
    parser.add_argument(
        "--output.indent",
        dest="output_indent",
        type=int,
        default=2,
        help="JSON indentation (default: 2)",
    )
    parser.add_argument(
        "--output.records",
        dest="include_records",
        action="store_true",
        help="Include the parsed records in the output",
    )
    parser.add_argument(
        "--metrics.textfile",
        dest="metrics_textfile",
        default=config.metrics_textfile,
        help="Write Prometheus metrics of the run to this file",
    )
    parser.add_argument(
        "--log.level",
        dest="log_level",
        default=config.log_level,
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: info)",
    )

    args = parser.parse_args(argv)
    if not args.source and not args.use_sample:
        parser.error("a source is required unless --sample is given")
    if args.timezone:
        try:
            ZoneInfo(args.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            parser.error(f"unknown time zone: {args.timezone}")

    config.source = args.source
    config.use_sample = args.use_sample
    config.sample_seed = args.sample_seed
    config.timezone = args.timezone
    config.output_indent = args.output_indent
    config.include_records = args.include_records
    config.metrics_textfile = args.metrics_textfile
    config.log_level = args.log_level
    return config
