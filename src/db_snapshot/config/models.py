"""Pydantic models for db.toml configuration."""

from pydantic import BaseModel, Field


class DatabaseProfile(BaseModel):
    """Database connection profile from db.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution
    sslmode: str | None = None  # e.g. "require" for AWS RDS


class SnapshotSettings(BaseModel):
    """``[snapshot]`` section of db.toml.

    ``tables`` is the dependency order used for export (parents before
    children); import always follows the order recorded in the artifact.
    """

    tables: list[str] = Field(default_factory=list)
    export_dir: str = "data-exports"
    latest_name: str = "latest.json"
    max_text_length: int = Field(default=10 * 1024 * 1024, gt=0)
    sequence_columns: dict[str, list[str]] = Field(
        default_factory=lambda: {"employees": ["employee_id"]}
    )


class DatabaseConfig(BaseModel):
    """Complete configuration from db.toml."""

    profiles: dict[str, DatabaseProfile] = Field(default_factory=dict)
    snapshot: SnapshotSettings = Field(default_factory=SnapshotSettings)
