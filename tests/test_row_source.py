"""Tests for the CSV row source."""

import asyncio
import io

import pytest

from importer.core.row_source import RowSourceError, iter_rows, stream_rows
from tests.conftest import csv_stream


class TestIterRows:
    def test_header_driven_rows(self):
        rows = list(iter_rows(csv_stream("uuid,name", "U1,Alice", "U2,Bob")))
        assert rows == [
            {"uuid": "U1", "name": "Alice"},
            {"uuid": "U2", "name": "Bob"},
        ]

    def test_strips_header_whitespace(self):
        rows = list(iter_rows(csv_stream(" name , phone ", "Alice,123")))
        assert rows == [{"name": "Alice", "phone": "123"}]

    def test_short_line_gives_none(self):
        rows = list(iter_rows(csv_stream("name,phone", "Alice")))
        assert rows == [{"name": "Alice", "phone": None}]

    def test_empty_value_is_kept(self):
        rows = list(iter_rows(csv_stream("name,phone", "Alice,")))
        assert rows == [{"name": "Alice", "phone": ""}]

    def test_blank_lines_skipped(self):
        rows = list(iter_rows(csv_stream("name", "Alice", "", "Bob")))
        assert [r["name"] for r in rows] == ["Alice", "Bob"]

    def test_quoted_values(self):
        rows = list(iter_rows(csv_stream("name,notes", '"Smith, Jo","says ""hi"""')))
        assert rows == [{"name": "Smith, Jo", "notes": 'says "hi"'}]

    def test_empty_input(self):
        assert list(iter_rows(io.StringIO(""))) == []

    def test_header_only(self):
        assert list(iter_rows(csv_stream("name,phone"))) == []

    def test_is_lazy(self):
        rows = iter_rows(csv_stream("name", "Alice", "Bob"))
        assert next(rows) == {"name": "Alice"}


class TestStreamRows:
    def test_yields_in_order(self):
        async def collect():
            return [row async for row in stream_rows([{"n": "1"}, {"n": "2"}, {"n": "3"}])]

        assert asyncio.run(collect()) == [{"n": "1"}, {"n": "2"}, {"n": "3"}]

    def test_read_error_propagates(self):
        def broken():
            yield {"n": "1"}
            raise ValueError("bad input")

        async def collect():
            return [row async for row in stream_rows(broken())]

        with pytest.raises(ValueError, match="bad input"):
            asyncio.run(collect())


class TestReadErrors:
    def test_long_field_accepted(self):
        value = "x" * 200_000
        rows = list(iter_rows(csv_stream("name", value)))
        assert rows == [{"name": value}]

    def test_field_over_limit_raises(self, monkeypatch):
        monkeypatch.setattr("importer.core.row_source.FIELD_SIZE_LIMIT", 10)
        with pytest.raises(RowSourceError, match="field larger than field limit"):
            list(iter_rows(csv_stream("name", "x" * 50)))

    def test_undecodable_input_raises(self):
        stream = io.TextIOWrapper(io.BytesIO(b"name\n\xff\xfe\xfa\n"), encoding="utf-8")
        with pytest.raises(RowSourceError):
            list(iter_rows(stream))

    def test_byte_order_mark_stripped(self):
        rows = list(iter_rows(csv_stream("\ufeffuuid,name", "U1,Alice")))
        assert rows == [{"uuid": "U1", "name": "Alice"}]
