"""CLI module for generating and running database reset scripts.

Usage:
    DB_PROFILE=local db-reset generate
    db-reset generate --profile local --output reset.sql --scope app-tables.txt
    db-reset generate --database-url postgresql://localhost/app_test --schema public
    db-reset plan --profile local
    db-reset execute --profile local --script reset.sql
    db-reset profiles

Commands:
    generate  - Introspect, write and self-test a reset script
    plan      - Show which tables would be preserved, ordered or circular
    execute   - Run a previously generated reset script
    profiles  - List available profiles
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from db_reset.config.loader import load_db_config
from db_reset.config.models import DatabaseConfig
from db_reset.errors import (
    ConnectivityError,
    FatalGenerationError,
    ScriptExecutionError,
)
from db_reset.factory import (
    ProfileNotFoundError,
    get_active_profile_name,
    get_adapter,
    read_profile_lock,
    write_profile_lock,
)
from db_reset.reset.generator import (
    execute_reset_script,
    generate_reset_script,
    plan_reset,
)
from db_reset.schema.classifier import load_scope

console = Console()


# ============================================================================
# Shared helpers
# ============================================================================


def _configure_logging(verbose: bool) -> None:
    """Route library logging through rich on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_config(args: argparse.Namespace) -> DatabaseConfig:
    """Load db.toml, tolerating its absence when a direct URL is given.

    Raises:
        FileNotFoundError: If db.toml is missing and no --database-url.
    """
    config_path = Path(args.config) if getattr(args, "config", None) else None
    try:
        return load_db_config(config_path)
    except FileNotFoundError:
        if getattr(args, "database_url", None):
            return DatabaseConfig()
        raise


def _resolve_profile(args: argparse.Namespace) -> str | None:
    """Profile name to use, or None when a direct URL bypasses profiles."""
    if getattr(args, "database_url", None):
        return None
    if args.profile:
        return args.profile
    return get_active_profile_name(env_prefix=getattr(args, "env_prefix", ""))


def _resolve_patterns(args: argparse.Namespace, config: DatabaseConfig) -> list[str]:
    return config.reset.effective_patterns + list(getattr(args, "preserve", None) or [])


def _resolve_scope(args: argparse.Namespace, config: DatabaseConfig) -> set[str] | None:
    scope_path = getattr(args, "scope", None) or config.reset.scope_file
    return load_scope(scope_path) if scope_path else None


def _resolve_schemas(args: argparse.Namespace, config: DatabaseConfig) -> list[str] | None:
    return getattr(args, "schema", None) or config.reset.schemas or None


def _resolve_timeout(args: argparse.Namespace, config: DatabaseConfig) -> float:
    timeout = getattr(args, "timeout", None)
    return timeout if timeout is not None else config.reset.self_test_timeout


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_generate(args: argparse.Namespace) -> int:
    """Async implementation for generate command.

    Returns:
        0 when a verified script was written, 1 on failure.
    """
    try:
        config = _load_config(args)
        profile = _resolve_profile(args)
        scope = _resolve_scope(args, config)
        adapter = await get_adapter(
            profile_name=profile,
            database_url=args.database_url,
            env_prefix=args.env_prefix,
            config=config,
        )
    except (ProfileNotFoundError, FileNotFoundError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    output = Path(args.output or config.reset.output)
    target = profile or "database URL"
    console.print(f"Generating reset script for [bold cyan]{target}[/bold cyan]...", style="dim")

    try:
        async with adapter as client:
            result = await generate_reset_script(
                client,
                output,
                patterns=_resolve_patterns(args, config),
                scope=scope,
                schemas=_resolve_schemas(args, config),
                self_test_timeout=_resolve_timeout(args, config),
            )
    except ConnectivityError as e:
        console.print(f"\n[bold red]x[/bold red] {e}")
        return 1
    except FatalGenerationError as e:
        console.print("\n[bold red]x[/bold red] Reset script failed its self-test twice.")
        console.print(f"  Failed script kept at: [yellow]{e.failed_path}[/yellow]")
        console.print(e.output, markup=False, highlight=False)
        return 1

    if profile:
        write_profile_lock(profile)

    summary = Table(title="Reset Script", show_header=False)
    summary.add_column("Key", style="dim")
    summary.add_column("Value")
    summary.add_row("Output", result.output_path)
    summary.add_row("Tables cleaned", str(result.tables_cleaned))
    summary.add_row("Tables preserved", str(result.tables_preserved))
    summary.add_row("Circular tables", ", ".join(result.circular_tables) or "-")
    summary.add_row("Strategy", result.strategy.value)
    console.print()
    console.print(summary)

    if result.wrote_fallback:
        console.print(
            "[yellow]Primary script failed its self-test; "
            "wrote the constraints-disabled fallback.[/yellow]"
        )
        if result.self_test_error:
            console.print(result.self_test_error, markup=False, highlight=False, style="dim")

    console.print("[bold green]v[/bold green] Reset script verified.")
    return 0


async def _async_plan(args: argparse.Namespace) -> int:
    """Async implementation for plan command (read-only).

    Returns:
        0 on success, 1 on failure.
    """
    try:
        config = _load_config(args)
        profile = _resolve_profile(args)
        scope = _resolve_scope(args, config)
        adapter = await get_adapter(
            profile_name=profile,
            database_url=args.database_url,
            env_prefix=args.env_prefix,
            config=config,
        )
    except (ProfileNotFoundError, FileNotFoundError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    try:
        async with adapter as client:
            preview = await plan_reset(
                client,
                patterns=_resolve_patterns(args, config),
                scope=scope,
                schemas=_resolve_schemas(args, config),
            )
    except ConnectivityError as e:
        console.print(f"\n[bold red]x[/bold red] {e}")
        return 1

    plan = preview.plan
    table = Table(title="Reset Plan", show_header=True, header_style="bold")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Table")
    table.add_column("Handling")

    step = 1
    for ref in plan.circular:
        table.add_row(str(step), ref.display_name, "[yellow]circular[/yellow]")
        step += 1
    for ref in plan.order:
        table.add_row(str(step), ref.display_name, "[green]delete[/green]")
        step += 1
    for ref in preview.classification.preserve:
        table.add_row("", ref.display_name, "[dim]preserve[/dim]")

    console.print(table)
    console.print(
        f"{len(preview.classification.clean)} clean, "
        f"{len(plan.circular)} circular, "
        f"{len(preview.classification.preserve)} preserved"
    )
    return 0


async def _async_execute(args: argparse.Namespace) -> int:
    """Async implementation for execute command.

    Returns:
        0 on success, 1 on failure.
    """
    try:
        config = _load_config(args)
        profile = _resolve_profile(args)
        adapter = await get_adapter(
            profile_name=profile,
            database_url=args.database_url,
            env_prefix=args.env_prefix,
            config=config,
        )
    except (ProfileNotFoundError, FileNotFoundError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    script = Path(args.script or config.reset.output)

    try:
        async with adapter as client:
            await execute_reset_script(
                client, script, timeout=_resolve_timeout(args, config)
            )
    except FileNotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        console.print("[dim]Run[/dim] [cyan]db-reset generate[/cyan] [dim]first.[/dim]")
        return 1
    except ConnectivityError as e:
        console.print(f"\n[bold red]x[/bold red] {e}")
        return 1
    except ScriptExecutionError as e:
        console.print("\n[bold red]x[/bold red] Reset failed and was rolled back.")
        console.print(e.message, markup=False, highlight=False)
        console.print(
            "[dim]If the schema changed, regenerate with[/dim] "
            "[cyan]db-reset generate[/cyan]"
        )
        return 1

    console.print(f"[bold green]v[/bold green] Database reset with {script}")
    return 0


# ============================================================================
# Sync command wrappers
# ============================================================================


def cmd_generate(args: argparse.Namespace) -> int:
    """Generate, self-test and persist a reset script."""
    return asyncio.run(_async_generate(args))


def cmd_plan(args: argparse.Namespace) -> int:
    """Show the reset plan without touching data."""
    return asyncio.run(_async_plan(args))


def cmd_execute(args: argparse.Namespace) -> int:
    """Run a stored reset script."""
    return asyncio.run(_async_execute(args))


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from db.toml.

    Reads only local TOML config -- no database calls.

    Returns:
        0 on success, 1 if db.toml not found.
    """
    try:
        config = _load_config(args)
    except FileNotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    current = read_profile_lock()

    table = Table(title="Database Profiles", show_header=True, header_style="bold")
    table.add_column("", width=2)
    table.add_column("Profile")
    table.add_column("Provider")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        marker = "[bold green]*[/bold green]" if name == current else " "
        table.add_row(
            marker,
            f"[bold cyan]{name}[/bold cyan]" if name == current else name,
            profile.provider,
            profile.description or "",
        )

    console.print(table)

    if current:
        console.print("\n[bold green]*[/bold green] = last verified profile")

    return 0


# ============================================================================
# Main entry point
# ============================================================================


def _add_target_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--profile", "-p", help="Profile name from db.toml")
    parser.add_argument(
        "--database-url",
        help="Connect to this URL directly instead of a profile",
    )


def _add_selection_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--scope",
        help="File listing application tables; tables not listed are preserved",
    )
    parser.add_argument(
        "--schema",
        action="append",
        help="Only consider tables in this schema (repeatable)",
    )
    parser.add_argument(
        "--preserve",
        action="append",
        metavar="PATTERN",
        help="Extra preserve pattern, e.g. 'Legacy_*' (repeatable)",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="db-reset",
        description="Generate foreign-key-safe database reset scripts",
    )

    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_DB_PROFILE)"
        ),
    )
    parser.add_argument("--config", help="Path to db.toml (default: ./db.toml)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # generate command
    p_generate = subparsers.add_parser(
        "generate",
        help="Write and self-test a reset script (deletes data in the target database)",
    )
    _add_target_arguments(p_generate)
    _add_selection_arguments(p_generate)
    p_generate.add_argument("--output", "-o", help="Script path (default: [reset] output)")
    p_generate.add_argument(
        "--timeout",
        type=float,
        help="Self-test timeout in seconds (default: [reset] self_test_timeout)",
    )
    p_generate.set_defaults(func=cmd_generate)

    # plan command
    p_plan = subparsers.add_parser("plan", help="Show the reset plan without writing anything")
    _add_target_arguments(p_plan)
    _add_selection_arguments(p_plan)
    p_plan.set_defaults(func=cmd_plan)

    # execute command
    p_execute = subparsers.add_parser("execute", help="Run a stored reset script")
    _add_target_arguments(p_execute)
    p_execute.add_argument("--script", "-s", help="Script path (default: [reset] output)")
    p_execute.add_argument("--timeout", type=float, help="Execution timeout in seconds")
    p_execute.set_defaults(func=cmd_execute)

    # profiles command
    p_profiles = subparsers.add_parser("profiles", help="List available profiles")
    p_profiles.set_defaults(func=cmd_profiles)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
