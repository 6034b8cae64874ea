from datetime import timezone, tzinfo
from typing import Callable

import pytest
from prometheus_client import CollectorRegistry

HEADER = (
    "Date,Kind,Model,Max Mode,Input (w/ Cache Write),Input (w/o Cache Write),"
    "Cache Read,Output Tokens,Total Tokens,Cost"
)


def _row(
    date: "str",
    kind: "str" = "pro",
    model: "str" = "gpt-4",
    input_with_cache: "str" = "100",
    input_without_cache: "str" = "0",
    cache_read: "str" = "0",
    output_tokens: "str" = "50",
    total_tokens: "str" = "150",
    cost: "str" = "0.01",
    max_mode: "str" = "No",
) -> "str":
    values = (
        date,
        kind,
        model,
        max_mode,
        input_with_cache,
        input_without_cache,
        cache_read,
        output_tokens,
        total_tokens,
        cost,
    )
    return ",".join(f'"{v}"' for v in values)


@pytest.fixture()
def registry() -> "CollectorRegistry":
    """
    fresh Prometheus registry to avoid cross-test state.
    """
    return CollectorRegistry()


@pytest.fixture()
def utc() -> "tzinfo":
    return timezone.utc


@pytest.fixture()
def make_csv() -> "Callable[..., str]":
    """
    builds a fully quoted usage log from row dicts; each dict
    overrides the default values of individual columns.
    """

    def _make(*rows: "dict[str, str]") -> "str":
        return "\n".join([HEADER, *(_row(**row) for row in rows)])

    return _make


@pytest.fixture()
def mixed_log(make_csv: "Callable[..., str]") -> "str":
    """
    four sessions over a weekend and a Monday (UTC), one of
    them errored.
    """
    return make_csv(
        dict(
            date="2024-01-06T10:00:00Z",
            input_with_cache="100",
            cache_read="10",
            output_tokens="50",
            total_tokens="160",
            cost="1.00",
        ),
        dict(
            date="2024-01-06T10:30:00Z",
            kind="Errored, Not Charged",
            model="claude-3",
            input_with_cache="200",
            input_without_cache="50",
            output_tokens="100",
            total_tokens="350",
            cost="2.00",
        ),
        dict(
            date="2024-01-08T15:00:00Z",
            input_with_cache="300",
            output_tokens="150",
            total_tokens="450",
            cost="3.00",
        ),
        dict(
            date="2024-01-08T15:45:00Z",
            kind="free",
            input_with_cache="0",
            output_tokens="0",
            total_tokens="40",
            cost="4.00",
        ),
    )
