"""Click CLI entry point for reqfix."""

from __future__ import annotations

import click

from reqfix._version import __version__


@click.group()
@click.version_option(version=__version__, prog_name="reqfix")
def cli():
    """reqfix - apply vulnerability remediation to requirements files.

    Upgrades vulnerable dependencies in place and pins the rest.
    """
    pass


# Import and register subcommands
from reqfix.cli.fix_cmd import fix  # noqa: E402

cli.add_command(fix)


if __name__ == "__main__":
    cli()
