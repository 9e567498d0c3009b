"""Category CLI commands."""

from __future__ import annotations

import sqlite3

import click

from monkeep.cli.common import get_client
from monkeep.schema import CATEGORY_KINDS, CATEGORY_TYPES


@click.group()
def category() -> None:
    """Category commands."""


@category.command("add")
@click.option("--id", "category_id", required=True, help="Category identifier.")
@click.option("--name", required=True, help="Category name.")
@click.option("--type", "category_type", required=True, type=click.Choice(CATEGORY_TYPES))
@click.option("--kind", default="entry", show_default=True, type=click.Choice(CATEGORY_KINDS))
@click.option("--parent", "parent_id", default=None, help="Parent folder id.")
@click.option("--shadow", is_flag=True, help="Mark as a balance adjustment category.")
@click.pass_context
def add_category(
    ctx: click.Context,
    category_id: str,
    name: str,
    category_type: str,
    kind: str,
    parent_id: str | None,
    shadow: bool,
) -> None:
    """Add a category."""
    with get_client(ctx) as client:
        try:
            record = client.add_category(
                category_id,
                name,
                category_type,
                kind=kind,
                parent_id=parent_id,
                is_shadow=shadow,
            )
        except sqlite3.IntegrityError as e:
            raise click.ClickException(f"Category add failed: {e}")
    click.echo(f"Added category {record.id}")


@category.command("list")
@click.pass_context
def list_categories(ctx: click.Context) -> None:
    """List all categories ordered by name."""
    with get_client(ctx) as client:
        categories = client.list_categories()

    if not categories:
        click.echo("No categories found.")
        return

    click.echo("\nCategories:")
    click.echo("-" * 60)
    click.echo(f"{'Id':<16} {'Name':<24} {'Type':<8} {'Kind':<8}")
    click.echo("-" * 60)
    for item in categories:
        click.echo(f"{item.id:<16} {item.name:<24} {item.categoryType:<8} {item.type:<8}")
    click.echo("-" * 60)
