"""Monkeep CLI entry point."""

from __future__ import annotations

from pathlib import Path

import click

from monkeep.__version__ import __version__
from monkeep.cli.account import account
from monkeep.cli.category import category
from monkeep.cli.operation import operation
from monkeep.cli.report import report


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="monkeep")
@click.option(
    "--db",
    "db_path",
    type=click.Path(path_type=Path),
    help="Path to the Monkeep database.",
)
@click.option(
    "--strict/--lenient",
    "strict_references",
    default=None,
    help="Abort when a balance update references a missing account.",
)
@click.option("--no-forex", is_flag=True, help="Disable forex rate lookups.")
@click.pass_context
def main(
    ctx: click.Context,
    db_path: Path | None,
    strict_references: bool | None,
    no_forex: bool,
) -> None:
    """Monkeep ledger CLI."""
    ctx.obj = {
        "db_path": db_path,
        "strict_references": strict_references,
        "enable_forex_rates": not no_forex,
    }


main.add_command(account)
main.add_command(category)
main.add_command(operation)
main.add_command(report)


if __name__ == "__main__":
    main()
