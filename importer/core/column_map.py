"""Column Remapper — renames and filters row fields before validation."""

from typing import Optional

from pydantic import BaseModel

from importer.core.config import ConfigurationError
from importer.core.row_source import Row


class ColumnMapping(BaseModel):
    source_column: str
    target_column: str


def parse_column_map(text: Optional[str]) -> list[ColumnMapping]:
    """Parse "source[:target],..." into an ordered list of mappings.

    A missing target keeps the source name. Blank items are ignored.
    """
    if not text:
        return []

    mappings = []
    for item in text.split(","):
        item = item.strip()
        if not item:
            continue
        parts = item.split(":")
        if len(parts) > 2:
            raise ConfigurationError(f"Invalid column mapping '{item}': expected source[:target]")
        source = parts[0].strip()
        target = parts[1].strip() if len(parts) == 2 else source
        if not source or not target:
            raise ConfigurationError(f"Invalid column mapping '{item}': empty column name")
        mappings.append(ColumnMapping(source_column=source, target_column=target))
    return mappings


def remap_row(row: Row, mappings: Optional[list[ColumnMapping]]) -> Row:
    """Keep only mapped columns, renamed to their targets.

    Absent source columns give None. Without mappings the row is returned as is.
    """
    if not mappings:
        return row
    return {m.target_column: row.get(m.source_column) for m in mappings}
