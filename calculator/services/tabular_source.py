"""Tabular source adapter.

Fetches CSV text from a local path or an http(s) URL and parses it into
row records (column name → trimmed string). Any failure to obtain the text
surfaces as ``SourceUnavailableError``; callers treat it as non-fatal.
"""

import asyncio
import csv
import io
from pathlib import Path
from typing import Dict, List, Optional

import httpx
import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from config.errors import SourceUnavailableError

logger = structlog.get_logger()

DEFAULT_TIMEOUT_SECONDS = 10.0


def is_remote(location: str) -> bool:
    return location.lower().startswith(("http://", "https://"))


def parse_csv(text: str) -> List[Dict[str, str]]:
    """Parse CSV text with a header row.

    Header names and cells are trimmed, short rows are padded with empty
    strings, and rows whose cells are all empty are dropped.

    Args:
        text: Raw CSV text

    Returns:
        Row records in file order.

    Raises:
        csv.Error: On malformed CSV (for example a field over the csv field size limit)
    """
    text = text.lstrip("\ufeff").strip()
    if not text:
        return []

    reader = csv.reader(io.StringIO(text))
    header = next(reader, None)
    if not header:
        return []
    columns = [c.strip() for c in header]

    rows = []
    for values in reader:
        row = {
            col: (values[i].strip() if i < len(values) else "")
            for i, col in enumerate(columns)
        }
        if any(v != "" for v in row.values()):
            rows.append(row)
    return rows


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
    retry=retry_if_exception_type((httpx.TransportError, httpx.TimeoutException)),
    reraise=True,
)
async def _fetch_remote(
    url: str,
    timeout: float,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """Fetch CSV text over HTTP with retry on transport errors.

    Raises:
        httpx.HTTPStatusError: On non-2xx responses (not retried)
        httpx.TransportError: On connection errors after retries
    """
    async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
        response = await client.get(url, headers={"Cache-Control": "no-store"})
        response.raise_for_status()
        return response.text


async def fetch_text(
    location: str,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """Read the raw text of a tabular source.

    Args:
        location: Local path or http(s) URL
        timeout: HTTP timeout in seconds
        transport: Optional httpx transport (tests)

    Returns:
        Source text.

    Raises:
        SourceUnavailableError: If the source cannot be read.
    """
    if is_remote(location):
        try:
            return await _fetch_remote(location, timeout, transport)
        except httpx.HTTPStatusError as e:
            raise SourceUnavailableError(
                message=f"HTTP {e.response.status_code}",
                location=location,
                details={"status_code": e.response.status_code},
            )
        except httpx.HTTPError as e:
            raise SourceUnavailableError(message=f"Fetch failed: {e}", location=location)

    path = Path(location)
    try:
        return await asyncio.to_thread(path.read_text, encoding="utf-8")
    except OSError as e:
        raise SourceUnavailableError(message=f"Cannot read {path}: {e.strerror or e}", location=location)
    except UnicodeDecodeError as e:
        raise SourceUnavailableError(message=f"Cannot decode {path}: {e}", location=location)


async def load_rows(
    location: str,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[Dict[str, str]]:
    """Fetch and parse a tabular source into row records.

    Raises:
        SourceUnavailableError: If the source cannot be read or is not valid CSV.
    """
    text = await fetch_text(location, timeout=timeout, transport=transport)
    try:
        rows = parse_csv(text)
    except csv.Error as e:
        raise SourceUnavailableError(message=f"Malformed CSV: {e}", location=location)
    logger.info("tabular_source_loaded", location=location, rows=len(rows))
    return rows
