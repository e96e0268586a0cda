"""TOML configuration loader for db.toml."""

import tomllib
from pathlib import Path

from db_snapshot.config.models import DatabaseConfig, DatabaseProfile, SnapshotSettings


def load_db_config(config_path: Path | None = None) -> DatabaseConfig:
    """Load database configuration from TOML file.

    Args:
        config_path: Path to db.toml (default: ``db.toml`` in the current
            working directory)

    Returns:
        DatabaseConfig with all profiles and snapshot settings

    Raises:
        FileNotFoundError: If config file doesn't exist
        tomllib.TOMLDecodeError: If the file is not valid TOML
        pydantic.ValidationError: If a section has the wrong shape
    """
    if config_path is None:
        config_path = Path.cwd() / "db.toml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(
            f"Database config not found: {config_path}\n"
            f"Create db.toml with [profiles.<name>] and [snapshot] sections."
        )

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    profiles = {
        name: DatabaseProfile(**profile_data)
        for name, profile_data in data.get("profiles", {}).items()
    }

    return DatabaseConfig(
        profiles=profiles,
        snapshot=SnapshotSettings(**data.get("snapshot", {})),
    )
