"""Record Type Loader — loads and validates the YAML record type descriptors."""

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from importer.core.config import ConfigurationError, settings
from importer.core.record_types import RecordType

logger = logging.getLogger(__name__)


def load_record_types(path: Optional[Path] = None) -> dict[str, RecordType]:
    """Load all record type descriptors, keyed by name.

    Reads settings.record_types_path unless an explicit path is given.
    """
    path = path or settings.record_types_path

    if not path.exists():
        raise ConfigurationError(f"Record types file not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict) or not isinstance(data.get("record_types"), dict):
        raise ConfigurationError(
            f"Invalid record types file {path}: expected a 'record_types' mapping"
        )

    record_types = {}
    for name, raw in data["record_types"].items():
        try:
            record_types[name] = RecordType(name=name, **(raw or {}))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid record type '{name}' in {path}: {e}") from e

    logger.debug(f"Loaded {len(record_types)} record types from {path}")
    return record_types


def get_record_type(name: str, record_types: Optional[dict[str, RecordType]] = None) -> RecordType:
    """Look up one record type by name."""
    if record_types is None:
        record_types = load_record_types()
    try:
        return record_types[name]
    except KeyError:
        supported = ", ".join(sorted(record_types))
        raise ConfigurationError(
            f"Unsupported record type '{name}'. Supported types: {supported}"
        ) from None


def list_record_types(record_types: Optional[dict[str, RecordType]] = None) -> list[str]:
    """List available record type names in definition order."""
    if record_types is None:
        record_types = load_record_types()
    return list(record_types)
