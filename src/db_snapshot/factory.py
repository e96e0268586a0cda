"""Database adapter factory.

Resolves a connection URL and returns a connected ``AsyncPostgresAdapter``.

Profile resolution order:
1. Explicit ``database_url`` or ``profile_name`` argument
2. ``{env_prefix}DB_PROFILE`` environment variable
3. ``.db-profile`` lock file (written by a successful ``check``)
4. ``{env_prefix}DATABASE_URL`` environment variable (single-URL mode)

Usage:
    from db_snapshot.factory import get_adapter

    adapter = await get_adapter(profile_name="local")
    try:
        rows = await adapter.select_all("parents")
    finally:
        await adapter.close()
"""

import logging
import os
from pathlib import Path
from urllib.parse import quote

from db_snapshot.adapters.postgres import AsyncPostgresAdapter
from db_snapshot.config.loader import load_db_config
from db_snapshot.config.models import DatabaseProfile
from db_snapshot.errors import ConnectivityError, SnapshotError
from db_snapshot.schema.comparator import validate_schema
from db_snapshot.schema.introspector import SchemaIntrospector
from db_snapshot.schema.models import ConnectionResult

logger = logging.getLogger(__name__)

# Profile lock file path
_PROFILE_LOCK_FILE = Path.cwd() / ".db-profile"


class ProfileNotFoundError(SnapshotError):
    """Raised when no database profile is configured."""

    pass


# ============================================================================
# Profile Lock File Operations
# ============================================================================


def read_profile_lock() -> str | None:
    """Read profile name from lock file.

    Returns:
        Profile name if lock file exists, None otherwise
    """
    if _PROFILE_LOCK_FILE.exists():
        return _PROFILE_LOCK_FILE.read_text().strip() or None
    return None


def write_profile_lock(profile_name: str) -> None:
    """Write profile name to lock file.

    Only call this after a successful connection check.
    """
    _PROFILE_LOCK_FILE.write_text(profile_name)


def get_active_profile_name(env_prefix: str = "") -> str:
    """Get active profile name from env var or lock file.

    Priority:
    1. ``{env_prefix}DB_PROFILE`` env var
    2. .db-profile file (profile from a previous successful check)
    3. Raise ProfileNotFoundError

    Args:
        env_prefix: Prefix for the environment variable name.

    Raises:
        ProfileNotFoundError: If no profile is configured
    """
    env_profile = os.environ.get(f"{env_prefix}DB_PROFILE")
    if env_profile:
        return env_profile

    lock_profile = read_profile_lock()
    if lock_profile:
        return lock_profile

    raise ProfileNotFoundError(
        "No database profile configured.\n"
        f"Set {env_prefix}DB_PROFILE=<name>, pass --profile <name>, "
        f"or set {env_prefix}DATABASE_URL.\n"
        "Run 'db-snapshot profiles' to list profiles in db.toml."
    )


def get_active_profile(
    profile_name: str | None = None,
    env_prefix: str = "",
    config_path: Path | None = None,
) -> tuple[str, DatabaseProfile]:
    """Get active profile name and configuration.

    Raises:
        ProfileNotFoundError: If no profile is configured or the named
            profile is not in db.toml
        FileNotFoundError: If db.toml does not exist
    """
    if profile_name is None:
        profile_name = get_active_profile_name(env_prefix)
    config = load_db_config(config_path)

    if profile_name not in config.profiles:
        raise ProfileNotFoundError(
            f"Profile '{profile_name}' not found in db.toml.\n"
            f"Available profiles: {', '.join(config.profiles.keys())}"
        )

    return profile_name, config.profiles[profile_name]


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    Example:
        >>> p = DatabaseProfile(url="postgresql://u:[YOUR-PASSWORD]@h/db", db_password="p@ss")
        >>> resolve_url(p)
        'postgresql://u:p%40ss@h/db'
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


def _resolve_connection(
    profile_name: str | None,
    env_prefix: str,
    config_path: Path | None,
) -> tuple[str | None, str, str | None]:
    """Return ``(profile_name, url, sslmode)`` for the active target.

    Falls back to ``{env_prefix}DATABASE_URL`` only when no profile is
    selected at all.
    """
    if profile_name is None:
        try:
            profile_name = get_active_profile_name(env_prefix)
        except ProfileNotFoundError:
            database_url = os.environ.get(f"{env_prefix}DATABASE_URL")
            if database_url:
                return None, database_url, None
            raise

    name, profile = get_active_profile(profile_name, env_prefix, config_path)
    return name, resolve_url(profile), profile.sslmode


# ============================================================================
# Connection and Validation
# ============================================================================


async def connect_and_validate(
    profile_name: str | None = None,
    expected_columns: dict[str, set[str]] | None = None,
    env_prefix: str = "",
    validate_only: bool = False,
    config_path: Path | None = None,
) -> ConnectionResult:
    """Connect to a target database and compare its schema.

    When ``expected_columns`` is ``None`` only connectivity is checked
    (``schema_valid`` stays ``None``).  On success the profile is written
    to the lock file unless ``validate_only``.

    Example:
        >>> result = await connect_and_validate(
        ...     "local", expected_columns=artifact_columns(artifact)
        ... )
        >>> print(result.schema_report.format_report())
    """
    try:
        profile_name, url, sslmode = _resolve_connection(
            profile_name, env_prefix, config_path
        )
    except (ProfileNotFoundError, FileNotFoundError) as e:
        return ConnectionResult(success=False, profile_name=profile_name, error=str(e))

    try:
        async with SchemaIntrospector(url, sslmode=sslmode) as introspector:
            actual_columns = await introspector.get_column_names()
    except Exception as e:
        return ConnectionResult(
            success=False,
            profile_name=profile_name,
            error=f"Failed to connect to database: {e}",
        )

    if expected_columns is None:
        if not validate_only and profile_name:
            write_profile_lock(profile_name)
        return ConnectionResult(success=True, profile_name=profile_name)

    validation = validate_schema(actual_columns, expected_columns)

    if not validation.valid:
        return ConnectionResult(
            success=False,
            profile_name=profile_name,
            schema_valid=False,
            schema_report=validation,
            error=f"Schema validation failed: {validation.error_count} errors",
        )

    if not validate_only and profile_name:
        write_profile_lock(profile_name)

    return ConnectionResult(
        success=True,
        profile_name=profile_name,
        schema_valid=True,
        schema_report=validation,
    )


# ============================================================================
# Database Adapter Factory
# ============================================================================


async def get_adapter(
    profile_name: str | None = None,
    env_prefix: str = "",
    database_url: str | None = None,
    config_path: Path | None = None,
    check_connection: bool = True,
) -> AsyncPostgresAdapter:
    """Create a new adapter for the resolved target.

    A new adapter is returned on every call; the caller owns it and must
    ``await adapter.close()``.

    Args:
        profile_name: Profile in db.toml.  Ignored when ``database_url`` is set.
        env_prefix: Prefix for ``DB_PROFILE`` / ``DATABASE_URL`` lookups.
        database_url: Explicit connection URL, bypassing profiles.
        config_path: Path to db.toml (default: ``./db.toml``).
        check_connection: Run ``SELECT 1`` before returning.

    Raises:
        ProfileNotFoundError: If no target can be resolved.
        ConnectivityError: If the connection check fails.
    """
    sslmode = None
    if database_url is None:
        profile_name, database_url, sslmode = _resolve_connection(
            profile_name, env_prefix, config_path
        )

    adapter = AsyncPostgresAdapter(database_url=database_url, ssl=sslmode)

    if check_connection:
        try:
            await adapter.test_connection()
        except Exception as e:
            await adapter.close()
            target = profile_name or "database"
            raise ConnectivityError(f"Cannot connect to {target}: {e}") from e
        logger.info("Connected to %s", profile_name or "database")

    return adapter
