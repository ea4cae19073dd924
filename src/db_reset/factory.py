"""Database client factory.

Resolves which database to reset:
1. Direct URL (``--database-url``): bypasses profiles entirely
2. Profile mode (db.toml + ``{prefix}DB_PROFILE`` env var or .db-profile lock file)

There is no module-level adapter cache: every call builds a fresh client
that the caller owns and closes.
"""

import os
from pathlib import Path
from urllib.parse import quote

from db_reset.adapters.postgres import AsyncPostgresAdapter
from db_reset.config.loader import load_db_config
from db_reset.config.models import DatabaseConfig, DatabaseProfile

# Profile lock file path (written after a verified generation)
_PROFILE_LOCK_FILE = Path.cwd() / ".db-profile"


class ProfileNotFoundError(Exception):
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

    Only call this after a reset script was generated and verified.
    """
    _PROFILE_LOCK_FILE.write_text(profile_name)


def get_active_profile_name(env_prefix: str = "") -> str:
    """Get active profile name from env var or lock file.

    Priority:
    1. ``{env_prefix}DB_PROFILE`` env var
    2. .db-profile file (profile of the last verified generation)
    3. Raise ProfileNotFoundError

    Args:
        env_prefix: Prefix for the env var (e.g. ``"APP_"`` reads ``APP_DB_PROFILE``)

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
        f"Run: {env_prefix}DB_PROFILE=<name> db-reset generate\n"
        "or pass --profile / --database-url."
    )


def get_active_profile(
    config: DatabaseConfig, profile_name: str | None = None, env_prefix: str = ""
) -> tuple[str, DatabaseProfile]:
    """Get active profile name and configuration.

    Raises:
        ProfileNotFoundError: If no profile is configured or it is not in db.toml
    """
    if profile_name is None:
        profile_name = get_active_profile_name(env_prefix=env_prefix)

    if profile_name not in config.profiles:
        available = ", ".join(config.profiles.keys()) or "(none)"
        raise ProfileNotFoundError(
            f"Profile '{profile_name}' not found in db.toml. Available: {available}"
        )

    return profile_name, config.profiles[profile_name]


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    Args:
        profile: Database profile from config

    Returns:
        Connection URL with the URL-encoded password substituted
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


async def get_adapter(
    profile_name: str | None = None,
    database_url: str | None = None,
    env_prefix: str = "",
    config: DatabaseConfig | None = None,
    connect_timeout: int = 10,
) -> AsyncPostgresAdapter:
    """Create an unconnected adapter for the resolved database.

    Args:
        profile_name: Profile in db.toml.  Resolved from env/lock file if None.
        database_url: Direct URL; when given, profiles are ignored.
        env_prefix: Prefix for the ``DB_PROFILE`` env var.
        config: Pre-loaded configuration (loaded from cwd if None).
        connect_timeout: Seconds to wait when the adapter connects.

    Raises:
        ProfileNotFoundError: If no database can be resolved.
        FileNotFoundError: If a profile is needed but db.toml is missing.

    Example:
        async with await get_adapter(profile_name="local") as client:
            result = await generate_reset_script(client, "reset.sql")
    """
    if database_url:
        return AsyncPostgresAdapter(database_url, connect_timeout=connect_timeout)

    if profile_name is None:
        profile_name = get_active_profile_name(env_prefix=env_prefix)

    if config is None:
        config = load_db_config()

    _, profile = get_active_profile(config, profile_name=profile_name)
    return AsyncPostgresAdapter(resolve_url(profile), connect_timeout=connect_timeout)
