"""Command line entry point for running and inspecting staleguard caches."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import List, Optional

import pytest
import typer

from .cache import StatusCache, iter_cached_identifiers
from .config import StaleguardConfig, find_config, load_config
from .errors import ConfigurationError, MissingSourceFileError
from .executor import Executor

APP_HELP = "Re-run only the tests affected by what changed since their last run."

app = typer.Typer(help=APP_HELP)


def _load_settings(config: Optional[str]) -> StaleguardConfig:
    """Load the explicit config file, or the nearest ``staleguard.yaml``."""
    config_path = Path(config) if config else find_config()
    try:
        return load_config(config_path)
    except ConfigurationError as error:
        typer.echo(str(error))
        raise typer.Exit(code=1) from error


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Configure logging for every subcommand."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@app.command(context_settings={"allow_extra_args": True, "ignore_unknown_options": True})
def run(
    pytest_args: Optional[List[str]] = typer.Argument(None, help="Arguments forwarded to pytest."),
    skip: bool = typer.Option(
        True,
        "--skip/--no-skip",
        help="Skip tests that are clean instead of only announcing them.",
    ),
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to the staleguard configuration file.",
    ),
) -> None:
    """Run pytest with staleguard recording enabled."""
    arguments = ["-p", "staleguard.pytest_plugin", "--staleguard"]
    if skip:
        arguments.append("--staleguard-skip")
    if config:
        _load_settings(config)
        arguments.extend(["--staleguard-config", config])
    arguments.extend(pytest_args or [])

    exit_code = pytest.main(arguments)
    raise typer.Exit(code=int(exit_code))


@app.command()
def status(
    paths: Optional[List[Path]] = typer.Argument(None, help="Directories to scan for cache records."),
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to the staleguard configuration file.",
    ),
) -> None:
    """List cached tests with their last status and current verdict.

    Cache records do not store dependencies, so each verdict comes from the
    test's own records only; a stale background is not reflected in the
    scenarios that depend on it.
    """
    settings = _load_settings(config)
    found = 0
    for root in paths or [Path(".")]:
        for identifier in iter_cached_identifiers(root, settings.cache_dirname):
            found += 1
            status_cache = StatusCache(identifier, settings)
            last = status_cache.last_run_status() if status_cache.exists() else None
            label = last.value if last is not None else "unknown"
            try:
                verdict = "run" if Executor(identifier, settings).should_execute() else "skip"
            except MissingSourceFileError as error:
                verdict = f"error: {error}"
            typer.echo(f"- {identifier} [{label}] -> {verdict}")
    if not found:
        typer.echo("No cached tests found.")
    else:
        typer.echo("Verdicts use each test's own records only; dependencies are not checked.")


@app.command()
def clean(
    paths: Optional[List[Path]] = typer.Argument(None, help="Directories to clear cache records from."),
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to the staleguard configuration file.",
    ),
) -> None:
    """Delete cache directories below the given paths."""
    settings = _load_settings(config)
    removed: List[Path] = []
    for root in paths or [Path(".")]:
        for cache_root in sorted(Path(root).rglob(settings.cache_dirname)):
            if cache_root.is_dir():
                shutil.rmtree(cache_root)
                removed.append(cache_root)
    if removed:
        typer.echo(f"Removed {len(removed)} cache director{'y' if len(removed) == 1 else 'ies'}:")
        for cache_root in removed:
            typer.echo(f"- {cache_root.as_posix()}")
    else:
        typer.echo("No cache directories found.")


if __name__ == "__main__":
    app()
