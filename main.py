"""Technology tree planner CLI."""

import argparse
import json
import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from techtree_planner.engine.availability import group_by_category, plan
from techtree_planner.engine.filters import (
    active_filter_count,
    apply_filters,
    default_filters,
    search,
)
from techtree_planner.engine.index import GraphIndex
from techtree_planner.engine.layout import build_graph_view
from techtree_planner.engine.resolver import (
    depth_profile,
    descendants,
    path_to_root,
    prerequisite_summary,
    tier_name_key,
)
from techtree_planner.errors import MalformedGraphWarning, TechGraphError
from techtree_planner.models import (
    FilterSettings,
    ResearchSchedule,
    Technology,
)
from techtree_planner.solvers.cpsat_research_solver import CPSATResearchSolver
from techtree_planner.solvers.greedy_research_solver import GreedyResearchSolver
from techtree_planner.utils.tech_loader import (
    load_layout_config,
    load_plan,
    load_technologies,
)

console = Console()
error_console = Console(stderr=True)

CATEGORY_STYLES = {"physics": "blue", "society": "green", "engineering": "orange3"}


def configure_logging(verbose: bool, quiet: bool) -> None:
    """Send library logs through rich, on stderr so stdout stays parseable."""
    level = logging.DEBUG if verbose else logging.ERROR if quiet else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=error_console, show_path=False)],
        force=True,
    )


def category_text(category: str) -> str:
    style = CATEGORY_STYLES.get(category, "white")
    return f"[{style}]{category}[/{style}]"


def create_technology_table(title: str, technologies: list[Technology]) -> Table:
    """Create a rich table listing technologies."""
    table = Table(title=title, show_header=True, header_style="bold magenta")

    table.add_column("#", style="dim", width=4, justify="right")
    table.add_column("Technology", style="cyan", width=25)
    table.add_column("Id", style="dim", width=26)
    table.add_column("Category", width=12)
    table.add_column("Area", style="white", width=12)
    table.add_column("Tier", style="green", width=5, justify="right")
    table.add_column("Cost", style="yellow", width=8, justify="right")

    for i, tech in enumerate(technologies, 1):
        table.add_row(
            str(i),
            tech.label,
            tech.id,
            category_text(tech.category),
            tech.area,
            str(tech.tier),
            f"{tech.cost:g}",
        )

    return table


def create_schedule_table(schedule: ResearchSchedule) -> Table:
    """Create a rich table showing the research timeline."""
    title = "Research Order (optimal)" if schedule.optimal else "Research Order"
    table = Table(title=title, show_header=True, header_style="bold magenta")

    table.add_column("#", style="dim", width=4, justify="right")
    table.add_column("Lane", width=12)
    table.add_column("Technology", style="cyan", width=25)
    table.add_column("Tier", style="green", width=5, justify="right")
    table.add_column("Start", style="yellow", width=7, justify="right")
    table.add_column("End", style="yellow", width=7, justify="right")
    table.add_column("Days", style="blue", width=6, justify="right")

    for i, action in enumerate(schedule.actions, 1):
        table.add_row(
            str(i),
            category_text(action.lane),
            action.technology.label,
            str(action.technology.tier),
            str(action.start_day),
            str(action.end_day),
            str(action.end_day - action.start_day),
        )

    return table


def print_warnings(warnings: tuple[MalformedGraphWarning, ...]) -> None:
    for warning in warnings:
        console.print(f"[yellow]⚠ {escape(str(warning))}[/yellow]")


def parse_research_output(values: list[str] | None) -> dict[str, float]:
    """Parse CATEGORY=POINTS pairs."""
    output = {}
    for value in values or []:
        category, sep, points = value.partition("=")
        if not sep:
            raise ValueError(f"Expected CATEGORY=POINTS, got {value!r}")
        output[category.strip().lower()] = float(points)
    return output


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Technology Tree Research Planner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s prereqs tech_battleships          # Everything battleships need
  %(prog)s unlocks tech_power_plant_1        # Everything power plants lead to
  %(prog)s plan                              # Frontier of data/plan.json
  %(prog)s filter --category physics         # Physics techs and their prerequisites
  %(prog)s --export graph.json layout        # Export nodes/edges for rendering
  %(prog)s schedule --solver cpsat           # Optimal research order for the plan
        """,
    )

    parser.add_argument(
        "--techs",
        type=Path,
        help="Technology catalog JSON (default: data/technologies.json)",
    )
    parser.add_argument(
        "--plan",
        type=Path,
        help="Plan JSON with planned/researched ids (default: data/plan.json)",
    )
    parser.add_argument(
        "--layout-config",
        type=Path,
        help="Layout constants JSON (default: data/layout.json if present)",
    )
    parser.add_argument("--export", type=Path, help="Export result to JSON file")
    parser.add_argument(
        "--quiet", "-q", action="store_true", help="Minimal output (ids only)"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Show debug logging"
    )

    commands = parser.add_subparsers(dest="command", required=True)

    prereqs = commands.add_parser("prereqs", help="Prerequisite closure of a technology")
    prereqs.add_argument("tech_id")

    unlocks = commands.add_parser("unlocks", help="Technologies unlocked by a technology")
    unlocks.add_argument("tech_id")

    plan_cmd = commands.add_parser("plan", help="Available technologies for a plan")
    plan_cmd.add_argument("--planned", nargs="*", default=[], help="Extra planned ids")
    plan_cmd.add_argument(
        "--researched", nargs="*", default=[], help="Extra researched ids"
    )

    filter_cmd = commands.add_parser("filter", help="Filter the visible technologies")
    filter_cmd.add_argument("--category", action="append", help="Allowed category")
    filter_cmd.add_argument("--area", action="append", help="Allowed area")
    filter_cmd.add_argument("--tier", action="append", type=int, help="Allowed tier")
    filter_cmd.add_argument(
        "--no-prerequisites",
        action="store_true",
        help="Do not pull in prerequisites of visible technologies",
    )

    commands.add_parser("layout", help="Grid positions of every technology")

    search_cmd = commands.add_parser("search", help="Search technologies")
    search_cmd.add_argument("query")

    schedule = commands.add_parser("schedule", help="Research order for the plan")
    schedule.add_argument(
        "--solver",
        type=str,
        default="greedy",
        choices=["greedy", "cpsat"],
        help="Solver to use (default: greedy)",
    )
    schedule.add_argument(
        "--output",
        nargs="*",
        metavar="CATEGORY=POINTS",
        help="Research points per day for a lane (default: 10)",
    )
    schedule.add_argument(
        "--time-limit", type=float, default=60.0, help="CP-SAT time limit in seconds"
    )

    return parser.parse_args(argv)


def export_json(path: Path, payload: dict) -> None:
    path.write_text(json.dumps(payload, indent=2))
    console.print(f"\n[green]✓ Exported to {path}[/green]")


def run_prereqs(args: argparse.Namespace, index: GraphIndex) -> None:
    summary = prerequisite_summary(index, args.tech_id)
    if args.quiet:
        for tech in summary.all:
            print(tech.id)
    else:
        console.print(
            f"\n[bold]{summary.technology.label}[/bold] requires "
            f"[cyan]{len(summary.all)}[/cyan] technologies "
            f"([cyan]{len(summary.direct)}[/cyan] directly)\n"
        )
        console.print(create_technology_table("Prerequisites", summary.all))
        path = path_to_root(index, args.tech_id)
        console.print(f"\n[bold]Longest chain:[/bold] {' → '.join(path)}")
        print_warnings(summary.warnings)

    if args.export:
        export_json(args.export, summary.to_dict())


def run_unlocks(args: argparse.Namespace, index: GraphIndex) -> None:
    closure = descendants(index, args.tech_id)
    unlocked = sorted(closure.technologies, key=tier_name_key)
    if args.quiet:
        for tech in unlocked:
            print(tech.id)
    else:
        console.print(
            create_technology_table(f"Unlocked by {closure.seed.label}", unlocked)
        )
        print_warnings(closure.warnings)

    if args.export:
        export_json(args.export, {"unlocks": [tech.to_dict() for tech in unlocked]})


def run_plan(args: argparse.Namespace, index: GraphIndex) -> None:
    planned, researched = load_plan(args.plan)
    view = plan(index, planned + args.planned, researched + args.researched)

    if args.quiet:
        for tech in view.available:
            print(tech.id)
    else:
        console.print(
            f"\n[bold]Planned:[/bold] [cyan]{len(planned) + len(args.planned)}[/cyan]\n"
        )
        for category, techs in group_by_category(view.available).items():
            if techs:
                console.print(
                    create_technology_table(
                        f"Available ({category_text(category)})", techs
                    )
                )

        for planned_id, prereqs in view.remaining_prerequisites.items():
            console.print(
                f"\n[bold]{index.lookup(planned_id).label}[/bold] still needs:"
            )
            for tech in prereqs:
                console.print(f"  • {tech.label} [dim](tier {tech.tier})[/dim]")
        print_warnings(view.warnings)

    if args.export:
        export_json(args.export, view.to_dict())


def run_filter(args: argparse.Namespace, index: GraphIndex) -> None:
    defaults = default_filters(index)
    filters = FilterSettings(
        categories=frozenset(args.category) if args.category else defaults.categories,
        areas=frozenset(args.area) if args.area else defaults.areas,
        tiers=frozenset(args.tier) if args.tier else defaults.tiers,
        include_prerequisites=not args.no_prerequisites,
    )
    result = apply_filters(index, filters)
    visible = sorted(result.visible, key=tier_name_key)

    if args.quiet:
        for tech in visible:
            print(tech.id)
    else:
        console.print(
            f"\n[bold]Filters active:[/bold] "
            f"[cyan]{active_filter_count(filters, index)}[/cyan]  "
            f"Showing [cyan]{len(visible)}[/cyan] of [cyan]{len(index)}[/cyan]\n"
        )
        console.print(create_technology_table("Visible Technologies", visible))
        print_warnings(result.warnings)

    if args.export:
        layout = load_layout_config(args.layout_config)
        export_json(args.export, build_graph_view(result.visible, layout).to_dict())


def run_layout(args: argparse.Namespace, index: GraphIndex) -> None:
    view = build_graph_view(index, load_layout_config(args.layout_config))

    if not args.quiet:
        table = Table(title="Layout", show_header=True, header_style="bold magenta")
        table.add_column("Technology", style="cyan", width=26)
        table.add_column("x", style="yellow", justify="right")
        table.add_column("y", style="yellow", justify="right")
        for node in view.nodes:
            table.add_row(node.id, f"{node.position.x:g}", f"{node.position.y:g}")
        console.print(table)
        console.print(
            f"\n[bold]{len(view.nodes)}[/bold] nodes, [bold]{len(view.edges)}[/bold] edges"
        )
        profile = depth_profile(index)
        console.print(
            f"[bold]Depth:[/bold] {profile.max_depth}  "
            f"[bold]Widest level:[/bold] {profile.max_width}"
        )

    if args.export:
        export_json(args.export, view.to_dict())


def run_search(args: argparse.Namespace, index: GraphIndex) -> None:
    results = search(index, args.query)
    if args.quiet:
        for tech in results:
            print(tech.id)
    else:
        console.print(create_technology_table(f"Results for {args.query!r}", results))


def run_schedule(args: argparse.Namespace, index: GraphIndex) -> bool:
    planned, researched = load_plan(args.plan)
    research_output = parse_research_output(args.output)

    if args.solver == "cpsat":
        solver = CPSATResearchSolver(index, planned, researched, research_output)
        schedule = solver.solve(time_limit_seconds=args.time_limit)
    else:
        solver = GreedyResearchSolver(index, planned, researched, research_output)
        schedule = solver.solve()

    if schedule is None:
        console.print("[red]✗ No research order found[/red]")
        return False

    if args.quiet:
        print(schedule.total_days)
    else:
        console.print(create_schedule_table(schedule))
        console.print(
            f"\n[bold]Total research time:[/bold] [cyan]{schedule.total_days} days[/cyan]"
        )

    if args.export:
        export_json(args.export, schedule.to_dict())
    return True


COMMANDS = {
    "prereqs": run_prereqs,
    "unlocks": run_unlocks,
    "plan": run_plan,
    "filter": run_filter,
    "layout": run_layout,
    "search": run_search,
    "schedule": run_schedule,
}


def main(argv: list[str] | None = None) -> int:
    """Run the planner CLI."""
    args = parse_args(argv)
    configure_logging(args.verbose, args.quiet)

    if not args.quiet:
        console.print(
            Panel.fit(
                "[bold cyan]Technology Tree[/bold cyan]\n"
                "[yellow]Research Planner[/yellow]",
                border_style="blue",
            )
        )

    try:
        index = GraphIndex.build(load_technologies(args.techs))
        ok = COMMANDS[args.command](args, index)
    except (TechGraphError, OSError, ValueError) as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        return 1

    return 0 if ok is not False else 1


if __name__ == "__main__":
    raise SystemExit(main())
