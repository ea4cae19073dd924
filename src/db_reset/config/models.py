"""Pydantic models for database and reset configuration."""

from typing import Literal

from pydantic import BaseModel, Field

from db_reset.schema.classifier import DEFAULT_PRESERVE_PATTERNS

# Seconds allowed for each self-test execution of a generated script
DEFAULT_SELF_TEST_TIMEOUT = 90.0


class DatabaseProfile(BaseModel):
    """Database connection profile from db.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution
    provider: Literal["postgres"] = "postgres"


class ResetSettings(BaseModel):
    """The ``[reset]`` section of db.toml.

    Example:
        >>> settings = ResetSettings(extra_preserve_patterns=["Legacy_*"])
        >>> "Legacy_*" in settings.effective_patterns
        True
    """

    output: str = "reset-database.sql"
    schemas: list[str] = Field(default_factory=list)
    preserve_patterns: list[str] | None = None  # replaces the defaults
    extra_preserve_patterns: list[str] = Field(default_factory=list)
    scope_file: str | None = None
    self_test_timeout: float = DEFAULT_SELF_TEST_TIMEOUT

    @property
    def effective_patterns(self) -> list[str]:
        """Preserve patterns after applying replacements and additions."""
        base = (
            self.preserve_patterns
            if self.preserve_patterns is not None
            else list(DEFAULT_PRESERVE_PATTERNS)
        )
        return list(base) + list(self.extra_preserve_patterns)


class DatabaseConfig(BaseModel):
    """Complete configuration from db.toml."""

    profiles: dict[str, DatabaseProfile] = Field(default_factory=dict)
    reset: ResetSettings = Field(default_factory=ResetSettings)
