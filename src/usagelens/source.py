from pathlib import Path
from urllib.parse import urlparse

import httpx
import structlog

logger = structlog.get_logger()

CSV_SUFFIX = ".csv"
ACCEPTED_CONTENT_TYPES: "tuple[str, ...]" = (
    "text/csv",
    "text/plain",
    "application/octet-stream",
)


class UnsupportedSourceError(ValueError):
    """
    raised when a usage log source is not a CSV file.
    """


def is_url(source: "str") -> "bool":
    return source.startswith(("http://", "https://"))


def read_usage_log(path: "str | Path") -> "str":
    """
    reads a local usage log. Only .csv files are accepted; a
    leading UTF-8 BOM is dropped.
    """
    path = Path(path)
    if path.suffix.lower() != CSV_SUFFIX:
        raise UnsupportedSourceError(f"{path.name}: please provide a CSV file")

    try:
        text = path.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as e:
        raise UnsupportedSourceError(f"{path.name}: not UTF-8 text") from e
    logger.debug("usage_log_read", path=str(path), size=len(text))
    return text


async def fetch_usage_log(url: "str", timeout: "float" = 10.0) -> "str":
    """
    downloads a usage log over HTTP(S). The response must either
    carry a CSV-compatible content type or come from a .csv path.
    """
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
        logger.debug("usage_log_fetch", url=url)
        resp = await client.get(url)
        resp.raise_for_status()

    content_type = resp.headers.get("content-type", "").split(";")[0].strip().lower()
    csv_path = urlparse(url).path.lower().endswith(CSV_SUFFIX)
    if content_type not in ACCEPTED_CONTENT_TYPES and not csv_path:
        raise UnsupportedSourceError(
            f"{url}: expected a CSV response, got {content_type or 'no content type'}"
        )

    try:
        text = resp.content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise UnsupportedSourceError(f"{url}: not UTF-8 text") from e

    logger.debug("usage_log_fetched", url=url, size=len(resp.content))
    return text


async def load_usage_log(source: "str") -> "str":
    if is_url(source):
        return await fetch_usage_log(source)
    return read_usage_log(source)
