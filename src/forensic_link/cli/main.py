#!/usr/bin/env python3
"""
Forensic Link CLI - query case links and neighborhood graphs
"""

from __future__ import annotations

import functools
import json

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from forensic_link.errors import ForensicLinkError
from forensic_link.graph.assembler import GraphAssembler
from forensic_link.graph.links import StrengthTier
from forensic_link.graph.nodes import NeighborhoodGraph
from forensic_link.graph.query_engine import LinkFilter, LinkQueryEngine
from forensic_link.service.app import build_provider, graph_out
from forensic_link.settings import configure_logging, settings
from forensic_link.styles import style_for

console = Console()

TIER_COLORS = {
    StrengthTier.SEVERE: "red",
    StrengthTier.MEDIUM: "yellow",
    StrengthTier.NORMAL: "green",
}


def reports_errors(fn):
    """Print core errors in red and exit non-zero instead of dumping a traceback."""

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except ForensicLinkError as e:
            console.print(f"[red]{type(e).__name__}: {e}[/red]")
            raise SystemExit(1) from e

    return wrapper


def get_engine(ctx: click.Context) -> LinkQueryEngine:
    obj = ctx.ensure_object(dict)
    if "engine" not in obj:
        obj["engine"] = LinkQueryEngine(build_provider(obj.get("snapshot"), obj.get("api_url")))
    return obj["engine"]


def get_assembler(ctx: click.Context) -> GraphAssembler:
    obj = ctx.ensure_object(dict)
    if "assembler" not in obj:
        engine = get_engine(ctx)
        obj["assembler"] = GraphAssembler(engine.provider, query_engine=engine)
    return obj["assembler"]


@click.group()
@click.option("--snapshot", type=click.Path(exists=True, dir_okay=False), default=None, help="JSON snapshot file")
@click.option("--api-url", default=None, help="REST API base URL (when no snapshot is given)")
@click.option("--log-level", default=None, help="Python logging level")
@click.pass_context
def cli(ctx, snapshot, api_url, log_level):
    """Forensic Link - explore case links"""
    configure_logging(log_level)
    ctx.ensure_object(dict)
    ctx.obj["snapshot"] = snapshot
    ctx.obj["api_url"] = api_url


@cli.command()
def version():
    """Print the package version"""
    from forensic_link import __version__

    console.print(__version__)


@cli.group()
def links():
    """Query case links"""


@links.command("list")
@click.option("--type", "link_type", default=None, help="DNA_MATCH, ID_NUMBER or EVIDENCE")
@click.option("--min-strength", default=None, help="Minimum strength in [0, 1]")
@click.option("--province", default=None, help="Either case in this province")
@click.option("--page", default=1, help="1-indexed page")
@click.option("--page-size", default=settings.default_page_size, help="Links per page")
@click.pass_context
@reports_errors
def list_links(ctx, link_type, min_strength, province, page, page_size):
    """List links, filtered and paginated"""
    link_filter = LinkFilter.from_params(link_type, min_strength, province)
    result = get_engine(ctx).list_links(link_filter, page=page, page_size=page_size)

    if not result.items:
        console.print(f"[yellow]No links on page {page} ({result.total_count} total)[/yellow]")
        return

    table = Table(title=f"Links - page {result.page}/{result.total_pages} ({result.total_count} total)")
    table.add_column("ID", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Case 1", style="blue")
    table.add_column("Case 2", style="blue")
    table.add_column("Strength", justify="right")
    table.add_column("Verified")

    for link in result.items:
        color = TIER_COLORS[link.tier]
        table.add_row(
            link.link_id,
            link.link_type.value,
            link.case1_id,
            link.case2_id,
            f"[{color}]{link.link_strength:.0%}[/{color}]",
            "yes" if link.verified else "",
        )

    console.print(table)


@links.command("types")
@click.pass_context
@reports_errors
def link_types(ctx):
    """Count and average strength per link type"""
    summaries = get_engine(ctx).summarize_by_type()
    if not summaries:
        console.print("[yellow]No links[/yellow]")
        return

    table = Table(title="Links by Type")
    table.add_column("Type", style="magenta")
    table.add_column("Count", style="green", justify="right")
    table.add_column("Avg strength", justify="right")
    table.add_column("Verified", justify="right")
    for tier in StrengthTier:
        table.add_column(tier.value.capitalize(), style=TIER_COLORS[tier], justify="right")

    for s in summaries:
        table.add_row(
            s.link_type.value,
            f"{s.count:,}",
            f"{s.avg_strength:.3f}",
            f"{s.verified_count:,}",
            *(f"{s.tiers.get(tier, 0):,}" for tier in StrengthTier),
        )

    console.print(table)


@links.command("top")
@click.option("--limit", default=10, help="Number of links")
@click.pass_context
@reports_errors
def top_links(ctx, limit):
    """Strongest links"""
    for link in get_engine(ctx).top_links(limit):
        color = TIER_COLORS[link.tier]
        console.print(
            f"[{color}]{link.link_strength:.2f}[/{color}] {link.link_type.value:<10} "
            f"{link.case1_id} <-> {link.case2_id}"
        )


@links.command("show")
@click.argument("link_id")
@click.pass_context
@reports_errors
def show_link(ctx, link_id):
    """Show a single link"""
    link = get_engine(ctx).get_link(link_id)
    console.print_json(link.model_dump_json())


def _print_graph(graph: NeighborhoodGraph, as_json: bool) -> None:
    if as_json:
        console.print_json(json.dumps(graph_out(graph), ensure_ascii=False))
        return

    console.print(Panel.fit(f"[bold cyan]{graph.focal or 'network'}[/bold cyan] depth={graph.depth}"))

    table = Table(title="Nodes")
    table.add_column("Node", style="cyan")
    table.add_column("Kind", style="magenta")
    table.add_column("Label")
    table.add_column("Icon")
    for node in graph.nodes:
        style = style_for(node)
        table.add_row(node.id, node.kind, node.label, f"[{style.color}]{style.icon}[/{style.color}]")
    console.print(table)

    edge_table = Table(title="Edges")
    edge_table.add_column("Source", style="blue")
    edge_table.add_column("Target", style="blue")
    edge_table.add_column("Kind", style="magenta")
    edge_table.add_column("Strength", justify="right")
    for edge in graph.edges:
        edge_table.add_row(edge.source, edge.target, edge.kind.value, f"{edge.strength:.2f}")
    console.print(edge_table)


@cli.group()
def graph():
    """Assemble neighborhood graphs"""


@graph.command("case")
@click.argument("case_id")
@click.option("--depth", default=1, help="Traversal depth")
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of tables")
@click.pass_context
@reports_errors
def case_graph(ctx, case_id, depth, as_json):
    """Graph centred on a case (id or case number)"""
    _print_graph(get_assembler(ctx).build_neighborhood("case", case_id, depth), as_json)


@graph.command("person")
@click.argument("person_id")
@click.option("--depth", default=1, help="Traversal depth")
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of tables")
@click.pass_context
@reports_errors
def person_graph(ctx, person_id, depth, as_json):
    """Graph centred on a person (id or id number)"""
    _print_graph(get_assembler(ctx).build_neighborhood("person", person_id, depth), as_json)


@graph.command("network")
@click.option("--min-strength", default=settings.network_min_strength, help="Minimum link strength")
@click.option("--limit", default=settings.network_limit, help="Maximum number of links")
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of tables")
@click.pass_context
@reports_errors
def network_graph(ctx, min_strength, limit, as_json):
    """Case network of the strongest links"""
    _print_graph(get_assembler(ctx).build_network(min_strength=min_strength, limit=limit), as_json)


@cli.command()
@click.option("--host", default=None, help="Bind host")
@click.option("--port", default=None, type=int, help="Bind port")
@click.pass_context
def serve(ctx, host, port):
    """Run the HTTP API"""
    from forensic_link.service.server import main

    main(snapshot_path=ctx.obj.get("snapshot"), host=host, port=port)


if __name__ == "__main__":
    cli()
