"""Shared test fixtures for the importer test suite."""

import io
from typing import Optional

import pytest

from importer.core.record_type_loader import load_record_types
from importer.core.record_types import DocumentShape, RecordType


def make_record_type(
    name: str = "people",
    shape: DocumentShape = DocumentShape.PERSON,
    required: Optional[list[str]] = None,
    unique: Optional[list[str]] = None,
    doc_type: Optional[str] = "person",
    path: str = "/api/v1/people",
    natural_key: str = "name",
    **kwargs,
) -> RecordType:
    """Helper to create record type descriptors for testing."""
    return RecordType(
        name=name,
        shape=shape,
        required=required if required is not None else ["name"],
        unique=unique or [],
        doc_type=doc_type,
        path=path,
        natural_key=natural_key,
        **kwargs,
    )


def csv_stream(*lines: str) -> io.StringIO:
    """Build an in-memory CSV stream from lines (first line is the header)."""
    return io.StringIO("\n".join(lines) + "\n")


class FakeSleep:
    """Records requested delays instead of sleeping."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def record_types():
    return load_record_types()


@pytest.fixture
def fake_sleep():
    return FakeSleep()
