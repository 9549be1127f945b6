"""Import Engine — runs the per-row pipeline for one import.

For every input row, in order:
1. Count it
2. Remap columns (optional)
3. Validate required and unique fields
4. Build the type-specific document
5. Schedule its request on the dispatcher

Validation errors and transport failures end the run; requests that are
still waiting for their slot are dropped.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from importer.core.column_map import ColumnMapping, remap_row
from importer.core.dispatcher import Dispatcher
from importer.core.documents import build_document
from importer.core.record_types import RecordType
from importer.core.row_source import Row, stream_rows
from importer.core.stats import RunStats
from importer.core.validator import UniquenessIndex, validate_row

logger = logging.getLogger(__name__)


@dataclass
class ImportContext:
    """State owned by a single import run."""
    record_type: RecordType
    place: Optional[str] = None
    column_map: list[ColumnMapping] = field(default_factory=list)
    stats: RunStats = field(default_factory=RunStats)
    index: UniquenessIndex = field(default_factory=UniquenessIndex)


def prepare_row(row: Row, context: ImportContext) -> Row:
    """Remap and validate one row. Raises RowValidationError."""
    row = remap_row(row, context.column_map)
    validate_row(row, context.record_type, context.index)
    return row


async def run_import(
    rows: Iterable[Row],
    context: ImportContext,
    dispatcher: Dispatcher,
) -> RunStats:
    """Process all rows and wait for their requests to complete."""
    logger.info(
        f"Importing {context.record_type.name} "
        f"({'dry run' if dispatcher.dry_run else 'live'}, wait {dispatcher.wait_ms}ms)"
    )
    try:
        index = 0
        async for row in stream_rows(rows):
            dispatcher.raise_if_failed()
            context.stats.rows += 1

            row = prepare_row(row, context)
            document = build_document(row, context.record_type, context.place)
            dispatcher.schedule(index, dispatcher.build_request(row, document))
            index += 1

        await dispatcher.drain()
    finally:
        dispatcher.cancel_pending()

    logger.info(f"Import finished: {context.stats.rows} rows, {context.stats.requests} requests")
    return context.stats
