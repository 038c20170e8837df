"""Command-line interface for Aisle."""

from __future__ import annotations

import json
from typing import Optional

import typer

from aisle.config import get_settings
from aisle.db.grocery_items import (
    add_grocery_item,
    clear_checked_items,
    list_grocery_items,
    rebalance_store_items,
    reorder_grocery_item,
    toggle_grocery_item,
)
from aisle.db.stores import list_stores, seed_default_stores
from aisle.grocery import ALL_STORES, KEEP
from aisle.logging_utils import configure_logging

app = typer.Typer(help="Aisle grocery list commands.")


@app.callback()
def _setup(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log at the configured level instead of WARNING."
    ),
) -> None:
    settings = get_settings()
    level = settings.log_level if verbose else "WARNING"
    configure_logging(level, settings.log_format, [settings.api_token or ""])


def _echo_json(payload: object, pretty: bool) -> None:
    typer.echo(json.dumps(payload, indent=2 if pretty else None, sort_keys=pretty))


def _partition(store: Optional[int], unassigned: bool) -> Optional[int]:
    if store is not None and unassigned:
        raise typer.BadParameter("Use either --store or --unassigned, not both.")
    return None if unassigned else store


@app.command("list")
def list_items(
    store: Optional[int] = typer.Option(None, "--store", help="Only list this store's items."),
    unassigned: bool = typer.Option(False, "--unassigned", help="Only list unassigned items."),
    pretty: bool = typer.Option(False, "--pretty", help="Pretty-print output JSON."),
) -> None:
    """Print grocery items in display order."""

    target = ALL_STORES if store is None and not unassigned else _partition(store, unassigned)
    items = list_grocery_items(target)
    _echo_json([item.model_dump(mode="json") for item in items], pretty)


@app.command()
def add(
    name: str = typer.Argument(..., help="Item name."),
    store: Optional[int] = typer.Option(None, "--store", help="Store id (omit for unassigned)."),
    before: Optional[int] = typer.Option(None, "--before", help="Insert before this item id."),
    quantity: Optional[str] = typer.Option(None, "--quantity", help="Free-text quantity."),
    category: str = typer.Option("Other", "--category", help="Item category."),
    organic: bool = typer.Option(False, "--organic", help="Mark the item as organic."),
) -> None:
    """Add an item to the end of a store (or before another item)."""

    try:
        item = add_grocery_item(
            name=name,
            store_id=store,
            before_id=before,
            quantity=quantity,
            category=category,
            is_organic=organic,
        )
    except ValueError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    _echo_json(item.model_dump(mode="json"), pretty=False)


@app.command()
def reorder(
    item_id: int = typer.Argument(..., help="Item to move."),
    store: Optional[int] = typer.Option(None, "--store", help="Destination store id."),
    unassigned: bool = typer.Option(False, "--unassigned", help="Move to the unassigned bucket."),
    before: Optional[int] = typer.Option(None, "--before", help="Place before this item id."),
) -> None:
    """Move an item within its store or into another one."""

    target = KEEP if store is None and not unassigned else _partition(store, unassigned)
    try:
        item = reorder_grocery_item(item_id, store_id=target, before_id=before)
    except ValueError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    _echo_json(item.model_dump(mode="json"), pretty=False)


@app.command()
def toggle(item_id: int = typer.Argument(..., help="Item to check or uncheck.")) -> None:
    """Flip an item's checked state."""

    try:
        item = toggle_grocery_item(item_id)
    except ValueError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    state = "checked" if item.is_checked else "unchecked"
    typer.echo(f"{item.name} {state}.")


@app.command("clear-checked")
def clear_checked() -> None:
    """Delete every checked item."""

    deleted = clear_checked_items()
    typer.echo(f"Deleted {deleted} checked item(s).")


@app.command()
def rebalance(
    store: Optional[int] = typer.Option(None, "--store", help="Store id to renumber."),
    unassigned: bool = typer.Option(False, "--unassigned", help="Renumber unassigned items."),
    all_stores: bool = typer.Option(False, "--all", help="Renumber every store."),
    only_if_crowded: bool = typer.Option(
        False,
        "--only-if-crowded",
        help="Skip stores whose keys are still comfortably spaced.",
    ),
) -> None:
    """Renumber sort keys to evenly spaced values, keeping display order."""

    if all_stores:
        targets: list[Optional[int]] = [store_.id for store_ in list_stores()] + [None]
    elif store is None and not unassigned:
        raise typer.BadParameter("Pass --store, --unassigned or --all.")
    else:
        targets = [_partition(store, unassigned)]

    for target in targets:
        changed = rebalance_store_items(target, only_if_crowded=only_if_crowded)
        label = "unassigned" if target is None else f"store {target}"
        typer.echo(f"Renumbered {changed} item(s) in {label}.")


@app.command()
def stores(pretty: bool = typer.Option(False, "--pretty", help="Pretty-print output JSON.")) -> None:
    """List stores."""

    _echo_json([store.model_dump(mode="json") for store in list_stores()], pretty)


@app.command("seed-stores")
def seed_stores() -> None:
    """Create the default stores when none exist."""

    result = seed_default_stores()
    if result["seeded"]:
        typer.echo(f"Seeded {result['count']} store(s).")
    else:
        typer.echo("Stores already exist; nothing seeded.")


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the `aisle` script."""
    app(prog_name="aisle", args=argv)


if __name__ == "__main__":
    main()
