"""Row Validator — required-field presence and in-run uniqueness checks.

Any violation is fatal for the whole run: the dataset is expected to be
collectively valid, so the caller must not skip the row and carry on.
"""

import logging
from typing import Any

from importer.core.record_types import RecordType
from importer.core.row_source import Row

logger = logging.getLogger(__name__)


class RowValidationError(Exception):
    """Base class for fatal row validation failures."""


class MissingRequiredField(RowValidationError):
    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Missing required field: {field}")


class DuplicateValue(RowValidationError):
    def __init__(self, field: str, value: Any):
        self.field = field
        self.value = value
        super().__init__(f"Duplicate value for unique field {field}: {value!r}")


class UniquenessIndex:
    """Values already seen per unique field, scoped to one run."""

    def __init__(self):
        self._seen: dict[str, set] = {}

    def seen(self, field: str) -> set:
        """Return the set for a field, creating it on first use."""
        if field not in self._seen:
            self._seen[field] = set()
        return self._seen[field]

    def __contains__(self, field: str) -> bool:
        return field in self._seen


def validate_row(row: Row, record_type: RecordType, index: UniquenessIndex) -> None:
    """Validate a row against its record type, recording unique values.

    Raises MissingRequiredField or DuplicateValue.
    """
    for field in record_type.required:
        if row.get(field) is None:
            raise MissingRequiredField(field)

    for field in record_type.unique:
        values = index.seen(field)
        value = row.get(field)
        if value in values:
            logger.error(f"Duplicate {field} {value!r} in row: {row}")
            raise DuplicateValue(field, value)
        values.add(value)
