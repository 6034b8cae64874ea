import random
from datetime import datetime, timedelta, timezone

from usagelens.parser import (
    CACHE_READ_COLUMN,
    COST_COLUMN,
    DATE_COLUMN,
    INPUT_WITH_CACHE_WRITE_COLUMN,
    INPUT_WITHOUT_CACHE_WRITE_COLUMN,
    KIND_COLUMN,
    MODEL_COLUMN,
    OUTPUT_TOKENS_COLUMN,
    TOTAL_TOKENS_COLUMN,
)

MAX_MODE_COLUMN = "Max Mode"

SAMPLE_COLUMNS: "tuple[str, ...]" = (
    DATE_COLUMN,
    KIND_COLUMN,
    MODEL_COLUMN,
    MAX_MODE_COLUMN,
    INPUT_WITH_CACHE_WRITE_COLUMN,
    INPUT_WITHOUT_CACHE_WRITE_COLUMN,
    CACHE_READ_COLUMN,
    OUTPUT_TOKENS_COLUMN,
    TOTAL_TOKENS_COLUMN,
    COST_COLUMN,
)

SAMPLE_MODELS = ("auto", "gpt-4", "claude-3", "gpt-3.5-turbo")
SAMPLE_KINDS = ("pro-free-trial", "pro", "free")
SAMPLE_MAX_MODES = ("No", "Yes")

SESSIONS_PER_DAY = 5


def generate_sample_csv(
    seed: "int | None" = None,
    sessions: "int" = 150,
    days: "int" = 30,
    end: "datetime | None" = None,
) -> "str":
    """
    generates a synthetic usage log in the exact CSV shape the
    parser expects, every value quoted. Sessions are spread five
    per day starting `days` before `end` (default: now, UTC),
    between 08:00 and 19:59. The same seed and end always give
    the same text.
    """
    rng = random.Random(seed)
    end = end or datetime.now(timezone.utc)
    start = (end - timedelta(days=days)).replace(microsecond=0)

    lines = [",".join(SAMPLE_COLUMNS)]
    for i in range(sessions):
        date = (start + timedelta(days=i // SESSIONS_PER_DAY)).replace(
            hour=rng.randrange(8, 20),
            minute=rng.randrange(60),
            second=rng.randrange(60),
        )

        input_with_cache = rng.randrange(1000, 6000)
        input_without_cache = rng.randrange(2000)
        cache_read = rng.randrange(10000, 110000)
        output_tokens = rng.randrange(500, 2500)
        total_tokens = input_with_cache + input_without_cache + cache_read + output_tokens
        cost = total_tokens * 0.0001 * rng.random()

        values = (
            date.isoformat(),
            rng.choice(SAMPLE_KINDS),
            rng.choice(SAMPLE_MODELS),
            rng.choice(SAMPLE_MAX_MODES),
            str(input_with_cache),
            str(input_without_cache),
            str(cache_read),
            str(output_tokens),
            str(total_tokens),
            f"{cost:.2f}",
        )
        lines.append(",".join(f'"{v}"' for v in values))

    return "\n".join(lines)
