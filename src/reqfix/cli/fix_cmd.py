"""reqfix fix command."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import click

from reqfix.core.config import load_config
from reqfix.core.errors import FixError
from reqfix.core.loader import load_units
from reqfix.core.models import FixOptions
from reqfix.core.output import configure_logging, console, error_console, print_batch_result
from reqfix.core.workspace import LocalWorkspace
from reqfix.fix.engine import FixEngine


@click.command()
@click.argument("plan_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--root", "root", default=".", type=click.Path(exists=True, file_okay=False, path_type=Path),
              help="Directory target files are relative to (default: current dir)")
@click.option("--dry-run/--no-dry-run", "dry_run", default=None, help="Compute changes without writing files")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logs")
def fix(plan_file: Path, root: Path, dry_run: bool | None, as_json: bool, verbose: bool):
    """Apply the remediation in PLAN_FILE to the requirements files under --root.

    Exits with status 1 when any project could not be fixed.
    """
    root = root.resolve()
    config = load_config(root)
    configure_logging(verbose, config.log_level)

    options = FixOptions(
        dry_run=config.fix.dry_run if dry_run is None else dry_run,
        pin_comment=config.fix.pin_comment,
    )

    try:
        units = load_units(plan_file, LocalWorkspace(root))
    except FixError as e:
        error_console.print(f"\n  [red]{e.user_message}[/red]\n")
        sys.exit(2)

    result = asyncio.run(FixEngine(options, config).fix(units))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        print_batch_result(result, dry_run=options.dry_run)
        if not units:
            console.print("  No projects found in plan.\n")

    if result.failed:
        sys.exit(1)
