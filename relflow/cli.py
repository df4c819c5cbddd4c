"""
Command-line interface for relflow.

Explores filter propagation and row-operation scheduling on the bundled
flights demo schema.

Usage:
    relflow demo-filter --airport JFK       # Row counts after propagation
    relflow plan flights --carrier DL       # Semi-join steps for one table
    relflow topo --operation delete         # Table processing order
    relflow check                           # Key constraint report
"""

import click

from relflow.config.settings import get_settings
from relflow.observability.logging import setup_logging
from relflow.observability.metrics import get_metrics


def _filtered_model(airport: tuple[str, ...], carrier: tuple[str, ...], month: int | None):
    from relflow.demo.seed_data import nycflights_model

    dm = nycflights_model()
    if airport:
        wanted = set(airport)
        dm = dm.filter("airports", lambda row: row["faa"] in wanted, label=f"faa in {sorted(wanted)}")
    if carrier:
        carriers = set(carrier)
        dm = dm.filter("airlines", lambda row: row["carrier"] in carriers, label=f"carrier in {sorted(carriers)}")
    if month is not None:
        dm = dm.filter("flights", lambda row: row["month"] == month, label=f"month == {month}")
    return dm


_filter_options = [
    click.option("--airport", multiple=True, help="Keep airports with this FAA code (can repeat)"),
    click.option("--carrier", multiple=True, help="Keep airlines with this carrier code (can repeat)"),
    click.option("--month", type=click.IntRange(1, 12), default=None, help="Keep flights in this month"),
]


def filter_options(func):
    for option in reversed(_filter_options):
        func = option(func)
    return func


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """relflow - filter propagation over primary/foreign key graphs."""
    setup_logging(level="DEBUG" if debug else None)

    settings = get_settings()
    if settings.metrics_enabled:
        get_metrics().start_server()


@main.command("demo-filter")
@filter_options
def demo_filter(airport: tuple[str, ...], carrier: tuple[str, ...], month: int | None) -> None:
    """Attach filters to the demo schema and show row counts per table.

    Example:
        relflow demo-filter --airport JFK --month 5
    """
    dm = _filtered_model(airport, carrier, month)
    before = {t: h.backend.row_count(h) for t, h in dm.handles.items()}
    after = dm.row_counts()

    click.echo("\nFilters:")
    if not dm.filters:
        click.echo("  (none)")
    for predicate in dm.filters:
        click.echo(f"  {predicate.table}: {predicate.describe()}")

    click.echo("\nRow counts:")
    for table in dm.tables:
        marker = "" if after[table] == before[table] else "  (filtered)"
        click.echo(f"  {table:<10} {before[table]:>4} -> {after[table]:>4}{marker}")


@main.command()
@click.argument("table")
@filter_options
def plan(table: str, airport: tuple[str, ...], carrier: tuple[str, ...], month: int | None) -> None:
    """Show the semi-join steps needed to materialize TABLE.

    Example:
        relflow plan flights --carrier DL --airport LGA
    """
    from relflow.errors import RelflowError

    dm = _filtered_model(airport, carrier, month)
    try:
        propagation = dm.propagation_plan(table)
    except RelflowError as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"\nPropagation plan for {table}:")
    click.echo(f"  Sources: {', '.join(propagation.sources) or '(none)'}")
    click.echo(f"  Order:   {' -> '.join(propagation.order)}")
    if not propagation.steps:
        click.echo("  No semi-joins needed")
    for i, step in enumerate(propagation.steps, 1):
        click.echo(
            f"  {i}. {step.table}({', '.join(step.columns)}) "
            f"in {step.by_table}({', '.join(step.by_columns)})"
        )


@main.command()
@click.option(
    "--operation",
    type=click.Choice(["insert", "update", "patch", "upsert", "delete", "truncate"]),
    default="insert",
    help="Row operation to schedule",
)
def topo(operation: str) -> None:
    """Show the order in which a row operation visits the demo tables."""
    from relflow.demo.seed_data import nycflights_model
    from relflow.rows.operations import RowOperation

    dm = nycflights_model()
    op = RowOperation(operation)
    order = dm.graph.topo_order(direction=op.direction)

    click.echo(f"\n{op.value} order ({op.direction.value}):")
    for i, table in enumerate(order, 1):
        click.echo(f"  {i}. {table}")


@main.command()
@filter_options
def check(airport: tuple[str, ...], carrier: tuple[str, ...], month: int | None) -> None:
    """Check primary and foreign keys of the (filtered) demo data."""
    dm = _filtered_model(airport, carrier, month)
    checks = dm.examine_constraints()

    click.echo("\nConstraint checks:")
    for result in checks:
        target = f" -> {result.ref_table}" if result.ref_table else ""
        label = f"{result.kind.upper()} {result.table}({', '.join(result.columns)}){target}"
        if result.is_valid:
            click.echo(f"  {label}: " + click.style("ok", fg="green"))
        else:
            click.echo(f"  {label}: " + click.style(result.problem, fg="red"))

    if not all(result.is_valid for result in checks):
        raise SystemExit(1)


if __name__ == "__main__":
    main()
