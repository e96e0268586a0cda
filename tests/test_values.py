"""Tests for value normalization (export) and denormalization (import)."""

import base64
import binascii
import json
import math
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID

import pytest

from db_snapshot.schema.models import ColumnSchema
from db_snapshot.snapshot.values import (
    MAX_TEXT_LENGTH,
    TRUNCATION_SENTINEL,
    column_kind,
    denormalize_value,
    infer_kind,
    looks_like_base64,
    normalize_row,
    normalize_value,
    repair_double_encoded,
)


def _column(data_type: str, name: str = "c") -> ColumnSchema:
    return ColumnSchema(name=name, data_type=data_type)


# ============================================================================
# Column kinds
# ============================================================================


class TestColumnKind:
    def test_bytea_is_binary(self) -> None:
        assert column_kind(_column("bytea")) == "binary"

    def test_jsonb_and_json_are_json(self) -> None:
        assert column_kind(_column("jsonb")) == "json"
        assert column_kind(_column("json")) == "json"

    def test_varchar_is_text(self) -> None:
        assert column_kind(_column("varchar")) == "text"

    def test_int_is_scalar(self) -> None:
        assert column_kind(_column("int")) == "scalar"

    def test_infer_kind_from_values(self) -> None:
        assert infer_kind(b"\x00") == "binary"
        assert infer_kind({"a": 1}) == "json"
        assert infer_kind("x") == "text"
        assert infer_kind(5) == "scalar"
        assert infer_kind(None) is None


# ============================================================================
# Export
# ============================================================================


class TestNormalizeValue:
    def test_bytes_become_base64(self) -> None:
        assert normalize_value(b"\x00\xff\x10") == "AP8Q"

    def test_memoryview_becomes_base64(self) -> None:
        assert normalize_value(memoryview(b"abc")) == base64.b64encode(b"abc").decode()

    def test_decoded_json_is_carried_as_is(self) -> None:
        assert normalize_value({"a": [1, 2]}) == {"a": [1, 2]}

    def test_jsonb_string_is_not_parsed_again(self) -> None:
        """A jsonb string holding JSON-looking text stays a string."""
        assert normalize_value("[1, 2]") == "[1, 2]"
        assert normalize_value('{"a": 1}') == '{"a": 1}'

    def test_long_string_is_truncated_with_sentinel(self) -> None:
        value = "x" * 50
        result = normalize_value(value, max_text_length=10)
        assert result == "x" * 10 + TRUNCATION_SENTINEL

    def test_string_at_limit_is_kept(self) -> None:
        value = "x" * 10
        assert normalize_value(value, max_text_length=10) == value

    def test_default_limit_is_ten_mebibytes(self) -> None:
        assert MAX_TEXT_LENGTH == 10 * 1024 * 1024

    def test_scalars_pass_through(self) -> None:
        assert normalize_value(3) == 3
        assert normalize_value(2.5) == 2.5
        assert normalize_value(True) is True
        assert normalize_value(None) is None

    def test_non_finite_floats_become_strings(self) -> None:
        assert normalize_value(float("nan")) == "NaN"
        assert normalize_value(float("inf")) == "Infinity"
        assert normalize_value(float("-inf")) == "-Infinity"
        assert normalize_value([1.0, float("inf")]) == [1.0, "Infinity"]

    def test_decimal_uuid_and_temporal_values_become_strings(self) -> None:
        uid = UUID("12345678-1234-5678-1234-567812345678")
        assert normalize_value(Decimal("10.50")) == "10.50"
        assert normalize_value(uid) == str(uid)
        assert normalize_value(date(2026, 1, 15)) == "2026-01-15"
        assert (
            normalize_value(datetime(2026, 1, 15, 10, 30, tzinfo=timezone.utc))
            == "2026-01-15T10:30:00+00:00"
        )

    def test_timedelta_becomes_seconds(self) -> None:
        assert normalize_value(timedelta(minutes=2)) == 120.0

    def test_nested_structures_are_normalized(self) -> None:
        value = {"when": date(2026, 1, 1), "tags": [Decimal("1.5")]}
        assert normalize_value(value) == {"when": "2026-01-01", "tags": ["1.5"]}


class TestNormalizeRow:
    def test_reports_truncated_columns(self) -> None:
        row = {"id": 1, "body": "y" * 30, "title": "short"}
        normalized, truncated = normalize_row(row, max_text_length=20)
        assert truncated == ["body"]
        assert normalized["body"].endswith(TRUNCATION_SENTINEL)
        assert normalized["title"] == "short"

    def test_strings_inside_json_values_are_not_truncated(self) -> None:
        doc = {"k": "v" * 40}
        normalized, truncated = normalize_row({"doc": doc}, max_text_length=10)
        assert truncated == []
        assert normalized["doc"] == doc


# ============================================================================
# Import
# ============================================================================


class TestRepairDoubleEncoded:
    def test_single_key_json_object_is_unwrapped(self) -> None:
        value = {'{"url":"http://x"}': ""}
        assert repair_double_encoded(value) == {"url": "http://x"}

    def test_pg_array_literal_wrapping_json_is_unwrapped(self) -> None:
        value = '{"{\\"url\\":\\"http://x\\"}"}'
        assert repair_double_encoded(value) == {"url": "http://x"}

    def test_regular_object_is_unchanged(self) -> None:
        value = {"url": "http://x"}
        assert repair_double_encoded(value) == value

    def test_single_key_that_is_not_json_is_unchanged(self) -> None:
        value = {"{not json": 1}
        assert repair_double_encoded(value) == value

    def test_multi_key_object_is_unchanged(self) -> None:
        value = {'{"a":1}': "", "b": 2}
        assert repair_double_encoded(value) == value


class TestDenormalizeValue:
    def test_none_stays_none(self) -> None:
        assert denormalize_value(None, _column("jsonb")) is None
        assert denormalize_value(None, _column("bytea"), "binary", typed=True) is None

    def test_json_column_receives_json_text(self) -> None:
        result = denormalize_value({"a": 1}, _column("jsonb"), "json", typed=True)
        assert json.loads(result) == {"a": 1}

    def test_json_column_repairs_double_encoding(self) -> None:
        result = denormalize_value(
            {'{"url":"http://x"}': ""}, _column("jsonb"), "json", typed=True
        )
        assert json.loads(result) == {"url": "http://x"}

    def test_json_string_value_is_kept_as_json_string_when_typed(self) -> None:
        result = denormalize_value('{"a": 1}', _column("jsonb"), "json", typed=True)
        assert json.loads(result) == '{"a": 1}'

    def test_legacy_json_text_is_parsed_once(self) -> None:
        result = denormalize_value('{"a": 1}', _column("jsonb"))
        assert json.loads(result) == {"a": 1}

    def test_typed_binary_is_decoded(self) -> None:
        encoded = base64.b64encode(b"\x00\x01payload").decode()
        assert denormalize_value(encoded, _column("bytea"), "binary", typed=True) == (
            b"\x00\x01payload"
        )

    def test_typed_text_that_looks_like_base64_is_kept(self) -> None:
        value = "A" * 200
        assert denormalize_value(value, _column("varchar"), "text", typed=True) == value

    def test_legacy_bytea_column_is_decoded(self) -> None:
        encoded = base64.b64encode(b"abc").decode()
        assert denormalize_value(encoded, _column("bytea")) == b"abc"

    def test_legacy_text_column_is_never_decoded(self) -> None:
        value = base64.b64encode(b"x" * 120).decode()
        assert denormalize_value(value, _column("text")) == value

    def test_legacy_heuristic_applies_to_untyped_unknown_columns(self) -> None:
        raw = b"x" * 120
        encoded = base64.b64encode(raw).decode()
        assert looks_like_base64(encoded)
        assert denormalize_value(encoded, _column("user-defined")) == raw

    def test_short_string_is_not_base64(self) -> None:
        assert not looks_like_base64("abc")

    def test_structured_value_in_text_column_becomes_json_text(self) -> None:
        assert denormalize_value({"a": 1}, _column("text")) == '{"a": 1}'

    def test_list_for_array_column_is_kept(self) -> None:
        assert denormalize_value([1, 2], _column("array")) == [1, 2]

    def test_scalars_are_coerced_to_column_type(self) -> None:
        assert denormalize_value("2026-01-15", _column("date"), "scalar", True) == date(
            2026, 1, 15
        )
        assert denormalize_value(
            "2026-01-15T10:30:00+00:00", _column("timestamptz"), "scalar", True
        ) == datetime(2026, 1, 15, 10, 30, tzinfo=timezone.utc)
        assert denormalize_value("10.50", _column("numeric"), "scalar", True) == Decimal(
            "10.50"
        )
        assert denormalize_value(120.0, _column("interval"), "scalar", True) == timedelta(
            minutes=2
        )
        assert denormalize_value(
            "12345678-1234-5678-1234-567812345678", _column("uuid"), "scalar", True
        ) == UUID("12345678-1234-5678-1234-567812345678")

    def test_plain_values_pass_through(self) -> None:
        assert denormalize_value(7, _column("int"), "scalar", True) == 7
        assert denormalize_value("hello", _column("text"), "text", True) == "hello"

    def test_non_finite_float_strings_are_restored(self) -> None:
        column = _column("double precision")
        assert math.isnan(denormalize_value("NaN", column, "scalar", True))
        assert denormalize_value("Infinity", column, "scalar", True) == float("inf")
        assert denormalize_value("-Infinity", _column("real"), "scalar", True) == float(
            "-inf"
        )

    def test_legacy_heuristic_keeps_text_with_bad_padding(self) -> None:
        value = "A" * 101
        assert looks_like_base64(value)
        assert denormalize_value(value, _column("user-defined")) == value

    def test_typed_binary_with_bad_padding_raises(self) -> None:
        with pytest.raises(binascii.Error):
            denormalize_value("A" * 101, _column("bytea"), "binary", typed=True)
