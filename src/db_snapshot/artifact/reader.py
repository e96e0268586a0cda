"""Artifact loading and offline validation.

Both functions are **sync** -- they only read a local JSON file and never
touch a database, so artifact problems surface before any connection is
opened.

Usage:
    from db_snapshot.artifact.reader import read_artifact, validate_artifact

    report = validate_artifact("data-exports/latest.json")
    if report["valid"]:
        artifact = read_artifact("data-exports/latest.json")
"""

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from db_snapshot.artifact.models import SnapshotArtifact
from db_snapshot.errors import ArtifactFormatError, ArtifactNotFoundError


def _load_json(artifact_path: str | Path) -> Any:
    path = Path(artifact_path)
    if not path.is_file():
        raise ArtifactNotFoundError(f"Export file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ArtifactFormatError(f"Invalid JSON in {path}: {e}") from e


def read_artifact(artifact_path: str | Path) -> SnapshotArtifact:
    """Load and parse an artifact file.

    Args:
        artifact_path: Path to the artifact JSON file.

    Returns:
        Parsed ``SnapshotArtifact``.

    Raises:
        ArtifactNotFoundError: If the file does not exist.
        ArtifactFormatError: If the file is not valid JSON or does not have
            the artifact structure (including a ``rowCount`` mismatch).
    """
    data = _load_json(artifact_path)
    try:
        return SnapshotArtifact.model_validate(data)
    except ValidationError as e:
        raise ArtifactFormatError(f"Invalid artifact {artifact_path}: {e}") from e


def validate_artifact(artifact_path: str | Path) -> dict:
    """Validate artifact format and internal consistency.

    Checks the top-level keys, each table entry's keys, ``rowCount``
    against the row list, duplicate table names, and column homogeneity
    (every row should have the first row's columns).

    Args:
        artifact_path: Path to the artifact JSON file.

    Returns:
        Dict with ``valid`` (bool), ``errors`` (list[str]),
        ``warnings`` (list[str]), ``tables`` (int) and ``rows`` (int).

    Example:
        report = validate_artifact("data-exports/latest.json")
        if report["errors"]:
            raise ValueError("Artifact is invalid")
    """
    errors: list[str] = []
    warnings: list[str] = []
    report: dict[str, Any] = {
        "valid": False,
        "errors": errors,
        "warnings": warnings,
        "tables": 0,
        "rows": 0,
    }

    try:
        data = _load_json(artifact_path)
    except (ArtifactNotFoundError, ArtifactFormatError) as e:
        errors.append(str(e))
        return report

    if not isinstance(data, dict):
        errors.append("Top-level value must be an object")
        return report

    if "export_timestamp" not in data:
        if "exportDate" in data:
            warnings.append("Legacy 'exportDate' key used instead of 'export_timestamp'")
        else:
            errors.append("Missing required key: export_timestamp")

    tables = data.get("tables")
    if not isinstance(tables, list):
        errors.append("Missing required key: tables (must be a list)")
        return report

    seen: set[str] = set()
    for index, entry in enumerate(tables):
        if not isinstance(entry, dict):
            errors.append(f"tables[{index}] is not an object")
            continue

        name = entry.get("table")
        if not isinstance(name, str) or not name:
            errors.append(f"tables[{index}] missing 'table' name")
            continue
        if name in seen:
            errors.append(f"Duplicate table entry: {name}")
        seen.add(name)

        rows = entry.get("rows")
        if not isinstance(rows, list):
            errors.append(f"{name}: 'rows' must be a list")
            continue

        row_count = entry.get("rowCount")
        if row_count != len(rows):
            errors.append(
                f"{name}: rowCount {row_count} does not match {len(rows)} rows"
            )
        if not rows:
            warnings.append(f"{name}: empty table entry (exporter omits these)")
            continue

        first_columns = set(rows[0].keys())
        mismatched = sum(1 for row in rows[1:] if set(row.keys()) != first_columns)
        if mismatched:
            warnings.append(
                f"{name}: {mismatched} rows differ from the first row's columns"
            )

        report["tables"] += 1
        report["rows"] += len(rows)

    report["valid"] = len(errors) == 0
    return report
