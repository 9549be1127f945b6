"""Row Source — reads delimited text and yields one field mapping per record.

The first line holds the column headers. Rows are produced lazily so large
inputs can be streamed from standard input.
"""

import asyncio
import csv
import logging
import threading
from typing import AsyncIterator, Iterable, Iterator, Optional, TextIO

logger = logging.getLogger(__name__)

Row = dict[str, Optional[str]]

# Largest single field accepted, in characters
FIELD_SIZE_LIMIT = 16 * 1024 * 1024

BOM = "\ufeff"


class RowSourceError(Exception):
    """Raised when the input cannot be read or parsed as CSV."""


def _build_headers(headers: list[str]) -> list[str]:
    """Strip whitespace around header names, and a leading byte order mark."""
    if headers and headers[0].startswith(BOM):
        headers = [headers[0][len(BOM):]] + headers[1:]
    return [h.strip() for h in headers]


def _read_rows(stream: TextIO, delimiter: str) -> Iterator[Row]:
    reader = csv.reader(stream, delimiter=delimiter)
    try:
        headers = _build_headers(next(reader))
    except StopIteration:
        logger.warning("Input is empty, no header line found")
        return

    num_cols = len(headers)
    for line_number, values in enumerate(reader, start=2):
        if not values or all(v == "" for v in values):
            continue
        if len(values) > num_cols:
            logger.warning(
                f"Line {line_number} has {len(values)} fields, expected {num_cols}; extra fields ignored"
            )
        row: Row = {}
        for i, header in enumerate(headers):
            row[header] = values[i] if i < len(values) else None
        yield row


def iter_rows(stream: TextIO, delimiter: str = ",") -> Iterator[Row]:
    """Yield rows from a CSV stream, keyed by header name.

    Fields missing from a short line are None. Blank lines are skipped.
    Malformed or undecodable input raises RowSourceError.
    """
    csv.field_size_limit(FIELD_SIZE_LIMIT)
    try:
        yield from _read_rows(stream, delimiter)
    except (csv.Error, UnicodeDecodeError) as e:
        raise RowSourceError(f"Cannot read input: {e}") from e


class _ReadFailure:
    def __init__(self, error: BaseException):
        self.error = error


_END = object()


async def stream_rows(rows: Iterable[Row]) -> AsyncIterator[Row]:
    """Iterate rows from a blocking source without blocking the event loop.

    A daemon thread pulls rows and hands them to the loop, so scheduled
    work keeps running while the input is read, and an interrupt does not
    wait for a pending read on standard input.
    """
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def put(item) -> bool:
        try:
            loop.call_soon_threadsafe(queue.put_nowait, item)
        except RuntimeError:
            # Loop already closed; nobody is listening any more
            return False
        return True

    def pump() -> None:
        try:
            for row in rows:
                if not put(row):
                    return
        except Exception as e:
            put(_ReadFailure(e))
        put(_END)

    threading.Thread(target=pump, name="row-reader", daemon=True).start()

    while True:
        item = await queue.get()
        if item is _END:
            return
        if isinstance(item, _ReadFailure):
            raise item.error
        yield item
