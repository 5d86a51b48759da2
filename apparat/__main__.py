"""
Command-line driver for the simulation.

Usage:
    python -m apparat new "The Republic" --seed 7
    python -m apparat advance <world-id> --turns 5
    python -m apparat status <world-id>
    python -m apparat offer <world-id> <offer-id> accept
    python -m apparat list
"""

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from .config import load_config
from .engine import advance_turn, create_world, evaluate_promotion, resolve_offer
from .state.schema import CAREER_TRACKS, FeatureCategory, MetricName, OfferResponse
from .state.schemas.event import Severity
from .state.store import JsonWorldStore
from .rules.access import resolve_for_world
from .systems.turns import TurnRejectedError

logger = logging.getLogger(__name__)

console = Console()

SEVERITY_STYLE = {
    Severity.MINOR: "dim",
    Severity.MODERATE: "cyan",
    Severity.MAJOR: "yellow",
    Severity.CRITICAL: "bold red",
}


def show_status(world, config) -> None:
    """Career, gauges and access levels for a world."""
    career = world.career
    table = Table(title=f"[bold]{world.meta.name}[/bold], turn {world.turn}", show_header=False, box=None)
    table.add_column("Key", style="dim")
    table.add_column("Value")

    table.add_row("Position", f"{career.position} ({career.slot or 'no chair'})")
    table.add_row("Track", f"{career.track.value if career.track else '-'} ({career.commitment.value})")
    table.add_row("Status", career.status.value)
    table.add_row("Patron", world.patron_name)
    for metric in MetricName:
        table.add_row(metric.value.replace("_", " ").title(), str(world.metrics.get(metric)))
    console.print(table)

    access = Table(title="Access", show_header=True, box=None)
    access.add_column("Category")
    access.add_column("Level", justify="right")
    for category in FeatureCategory:
        access.add_row(category.value, str(resolve_for_world(world, category)))
    console.print(access)

    check = evaluate_promotion(world, config)
    if check.eligible:
        console.print(f"[green]Eligible for {check.target_slot}[/green]")
    else:
        console.print(f"[dim]Not eligible: {check.reason.value}[/dim]")

    for offer in world.open_offers():
        console.print(
            f"[yellow]Offer {offer.offer_id}[/yellow]: {offer.slot} "
            f"({offer.offer_type.value}, expires turn {offer.expiry_turn})"
        )


def show_turn(result) -> None:
    console.print(f"\n[bold]Turn {result.turn_number}[/bold] (seed {result.seed})")
    for notice in result.notices:
        style = SEVERITY_STYLE[notice.severity]
        console.print(f"[{style}]{notice.headline}[/{style}]")
        for line in notice.details:
            console.print(f"  {line}")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Apparat - political career simulation")
    parser.add_argument(
        "--saves",
        default="saves",
        help="Path to saves directory",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    new = sub.add_parser("new", help="Create a new world")
    new.add_argument("name", nargs="?", default="The Republic")
    new.add_argument("--seed", type=int, default=0)

    adv = sub.add_parser("advance", help="Advance a world")
    adv.add_argument("world_id")
    adv.add_argument("--turns", type=int, default=1)

    status = sub.add_parser("status", help="Show a world")
    status.add_argument("world_id")

    offer = sub.add_parser("offer", help="Accept or decline an offer")
    offer.add_argument("world_id")
    offer.add_argument("offer_id")
    offer.add_argument("response", choices=[r.value for r in OfferResponse])

    sub.add_parser("list", help="List saved worlds")
    sub.add_parser("tracks", help="List career tracks")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format='%(asctime)s [%(levelname)s] %(message)s',
    )

    saves = Path(args.saves)
    store = JsonWorldStore(saves)
    config = load_config(saves)

    if args.command == "new":
        world = create_world(args.name, seed=args.seed, config=config)
        store.save(world)
        console.print(f"Created [bold]{world.meta.name}[/bold] ({world.meta.id})")
        return 0

    if args.command == "list":
        for entry in store.list_all():
            console.print(f"{entry['id'][:8]}  {entry['name']}  turn {entry['turn']}")
        return 0

    if args.command == "tracks":
        for track in CAREER_TRACKS:
            console.print(track.value)
        return 0

    world = store.load(args.world_id)
    if world is None:
        console.print(f"[red]No world matching {args.world_id}[/red]")
        return 1

    if args.command == "status":
        show_status(world, config)
        return 0

    if args.command == "advance":
        for _ in range(args.turns):
            try:
                result = advance_turn(world, config=config)
            except TurnRejectedError as e:
                console.print(f"[bold red]{e}[/bold red]")
                for problem in e.problems:
                    console.print(f"  {problem}")
                break
            world = result.world
            show_turn(result)
        store.save(world)
        return 0

    if args.command == "offer":
        outcome = resolve_offer(world, args.offer_id, args.response, config=config)
        if not outcome.ok:
            console.print(f"[red]Refused: {outcome.reason.value}[/red]")
            return 1
        for event in outcome.events:
            console.print(event.summary)
        store.save(outcome.world)
        return 0

    return 1


if __name__ == "__main__":
    sys.exit(main())
