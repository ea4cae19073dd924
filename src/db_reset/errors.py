"""Exception hierarchy for reset script generation.

All errors derive from ``ResetError`` so callers can catch the whole family:

- ``ConnectivityError``: database unreachable or catalog queries failed
- ``ScriptExecutionError``: a reset script failed or timed out
- ``SelfTestError``: the primary script failed its self-test (recoverable)
- ``FatalGenerationError``: the fallback script failed too (terminal)

An empty schema is not an error -- it produces a no-op script.
"""

# Bound for database error text carried on exceptions and printed to users
ERROR_TAIL_LIMIT = 2000


def truncate_tail(text: str, limit: int = ERROR_TAIL_LIMIT) -> str:
    """Keep only the last ``limit`` characters of ``text``.

    Example:
        >>> truncate_tail("abcdef", limit=3)
        '...def'
    """
    if len(text) <= limit:
        return text
    return "..." + text[-limit:]


class ResetError(Exception):
    """Base class for all reset generation errors."""


class ConnectivityError(ResetError):
    """Raised when the database cannot be reached or catalog queries fail.

    Attributes:
        message: Driver error text (bounded tail).
    """

    def __init__(self, message: str):
        self.message = truncate_tail(message)
        super().__init__(self.message)


class ScriptExecutionError(ResetError):
    """Raised when executing a reset script against the database fails.

    Attributes:
        message: Database error text (bounded tail).
        timed_out: True if the script exceeded its execution timeout.
    """

    def __init__(self, message: str, timed_out: bool = False):
        self.message = truncate_tail(message)
        self.timed_out = timed_out
        super().__init__(self.message)


class SelfTestError(ResetError):
    """Raised when the primary script fails its self-test."""

    def __init__(self, script_path: str, output: str):
        self.script_path = script_path
        self.output = truncate_tail(output)
        super().__init__(f"Self-test failed for {script_path}: {self.output}")


class FatalGenerationError(ResetError):
    """Raised when both the primary and the fallback script fail.

    Attributes:
        failed_path: Where the failed fallback script was left for debugging.
        output: Captured database output from both attempts (bounded tail).
    """

    def __init__(self, failed_path: str, output: str):
        self.failed_path = failed_path
        self.output = truncate_tail(output)
        super().__init__(
            f"Reset script generation failed; fallback script kept at "
            f"{failed_path}\n{self.output}"
        )
