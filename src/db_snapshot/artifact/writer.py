"""Streaming artifact writer.

Writes an artifact incrementally -- one table at a time and one row at a
time -- so an export never holds the whole snapshot in memory.  The writer
owns every piece of JSON punctuation: callers only emit table-boundary
events (``begin_table`` / ``write_row`` / ``end_table``) and the file is
valid JSON with no trailing separators once the writer is closed.

Usage:
    from db_snapshot.artifact.writer import ArtifactWriter

    with ArtifactWriter(path, export_timestamp) as writer:
        writer.write_table("parents", rows, column_types={"id": "scalar"})
"""

import json
from collections.abc import Iterable
from pathlib import Path
from typing import Any, TextIO

from db_snapshot.artifact.models import ColumnKind

_TABLE_INDENT = "    "
_KEY_INDENT = "      "
_ROW_INDENT = "        "


class ArtifactWriter:
    """Incremental JSON writer for ``SnapshotArtifact`` files.

    The output file is opened on ``__enter__`` and closed on ``__exit__``.
    If the ``with`` block raises, the partial file is removed so no
    truncated artifact is ever left behind.
    """

    def __init__(self, path: str | Path, export_timestamp: str) -> None:
        self._path = Path(path)
        self._export_timestamp = export_timestamp
        self._file: TextIO | None = None
        self._tables_written = 0
        self._current_table: str | None = None
        self._rows_in_table = 0

    def __enter__(self) -> "ArtifactWriter":
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self._path, "w", encoding="utf-8")
        self._file.write("{\n")
        self._file.write(
            f'  "export_timestamp": {json.dumps(self._export_timestamp)},\n'
        )
        self._file.write('  "tables": [')
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._file is None:
            return
        failed = exc_type is not None
        try:
            if not failed:
                if self._current_table is not None:
                    failed = True
                    raise RuntimeError(
                        f"Table '{self._current_table}' was never ended"
                    )
                self._file.write("\n  ]\n}\n" if self._tables_written else "]\n}\n")
                self._file.flush()
        finally:
            self._file.close()
            self._file = None
            if failed:
                self._path.unlink(missing_ok=True)

    # ------------------------------------------------------------------
    # Table-boundary events
    # ------------------------------------------------------------------

    def begin_table(self, table: str) -> None:
        """Open a table entry and its ``rows`` array."""
        out = self._require_open()
        if self._current_table is not None:
            raise RuntimeError(
                f"Cannot begin '{table}': '{self._current_table}' is still open"
            )
        out.write("\n" if self._tables_written == 0 else ",\n")
        out.write(f"{_TABLE_INDENT}{{\n")
        out.write(f'{_KEY_INDENT}"table": {json.dumps(table)},\n')
        out.write(f'{_KEY_INDENT}"rows": [')
        self._current_table = table
        self._rows_in_table = 0

    def write_row(self, row: dict[str, Any]) -> None:
        """Append one already-normalized row to the open table."""
        out = self._require_open()
        if self._current_table is None:
            raise RuntimeError("write_row() called outside of a table")
        # NaN and Infinity have no JSON literal; raises ValueError
        line = json.dumps(row, ensure_ascii=False, allow_nan=False, default=str)
        out.write("\n" if self._rows_in_table == 0 else ",\n")
        out.write(_ROW_INDENT)
        out.write(line)
        self._rows_in_table += 1

    def end_table(self, column_types: dict[str, ColumnKind] | None = None) -> int:
        """Close the open table, writing ``rowCount`` and ``columnTypes``.

        Returns:
            Number of rows written for the table.
        """
        out = self._require_open()
        if self._current_table is None:
            raise RuntimeError("end_table() called outside of a table")
        out.write(f"\n{_KEY_INDENT}]" if self._rows_in_table else "]")
        out.write(f',\n{_KEY_INDENT}"rowCount": {self._rows_in_table}')
        if column_types:
            out.write(
                f',\n{_KEY_INDENT}"columnTypes": '
                f"{json.dumps(column_types, allow_nan=False)}"
            )
        out.write(f"\n{_TABLE_INDENT}}}")

        row_count = self._rows_in_table
        self._tables_written += 1
        self._current_table = None
        self._rows_in_table = 0
        return row_count

    def write_table(
        self,
        table: str,
        rows: Iterable[dict[str, Any]],
        column_types: dict[str, ColumnKind] | None = None,
    ) -> int:
        """Write a complete table entry from an iterable of rows.

        Returns:
            Number of rows written.
        """
        self.begin_table(table)
        for row in rows:
            self.write_row(row)
        return self.end_table(column_types)

    def _require_open(self) -> TextIO:
        if self._file is None:
            raise RuntimeError("ArtifactWriter is not open. Use with statement.")
        return self._file
