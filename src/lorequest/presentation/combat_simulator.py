from __future__ import annotations

import argparse
from typing import Callable, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from lorequest.application.services.combat_service import best_attack_type
from lorequest.application.services.game_service import GameService
from lorequest.application.services.inventory_service import combat_usable_items
from lorequest.application.services.progression_service import level_progress_percent
from lorequest.domain.models.combat import CombatAction, Encounter
from lorequest.domain.models.item import UseEffect
from lorequest.domain.models.player import PlayerClass, PlayerRecord


_BORDER_COMBAT = "red"
_BORDER_PLAYER = "yellow"
_BORDER_SUMMARY = "green"

MAX_ROUNDS = 200

Policy = Callable[[Encounter], CombatAction]


def aggressive_policy(encounter: Encounter) -> CombatAction:
    return CombatAction.attack()


def cautious_policy(encounter: Encounter) -> CombatAction:
    record = encounter.record
    ratio = record.health / max(1, record.max_health)
    if ratio < 0.35:
        for item in combat_usable_items(record):
            if item.use_effect == UseEffect.HEALTH:
                return CombatAction.use_item(item.id)
    if ratio < 0.15:
        return CombatAction.flee()
    if ratio < 0.25:
        return CombatAction.defend()
    return CombatAction.attack()


def interactive_policy(console: Console) -> Policy:
    def _choose(encounter: Encounter) -> CombatAction:
        render_status(console, encounter)
        choice = Prompt.ask("Action", choices=["attack", "defend", "item", "flee"], default="attack", console=console)
        if choice == "defend":
            return CombatAction.defend()
        if choice == "flee":
            return CombatAction.flee()
        if choice == "item":
            items = combat_usable_items(encounter.record)
            if not items:
                console.print("[yellow]No usable items.[/yellow]")
                return CombatAction.attack()
            names = [str(index) for index in range(1, len(items) + 1)]
            for index, item in enumerate(items, start=1):
                console.print(f"{index}. {item.name} x{item.quantity}")
            picked = Prompt.ask("Item", choices=names, default="1", console=console)
            return CombatAction.use_item(items[int(picked) - 1].id)
        return CombatAction.attack()

    return _choose


POLICIES = {
    "aggressive": aggressive_policy,
    "cautious": cautious_policy,
}


def render_status(console: Console, encounter: Encounter) -> None:
    record = encounter.record
    enemy = encounter.enemy
    table = Table(show_header=True, header_style="bold yellow")
    table.add_column("")
    table.add_column(record.name)
    table.add_column(enemy.name)
    table.add_row("Level", str(record.level), str(enemy.level))
    table.add_row("Health", f"{record.health}/{record.max_health}", f"{enemy.current_health}/{enemy.max_health}")
    table.add_row("Armor / Defense", str(record.armor), str(enemy.defense))
    attack_type = best_attack_type(record)
    table.add_row("Attack type", attack_type.value if attack_type else "-", enemy.attack_type.value)
    console.print(Panel(table, title=f"Round {encounter.round_number + 1}", border_style=_BORDER_COMBAT, expand=False))


def render_log(console: Console, encounter: Encounter) -> None:
    lines = [f"[bold]{entry.actor}[/bold]: {entry.message}" for entry in encounter.log]
    console.print(
        Panel(
            "\n".join(lines) or "No actions.",
            title=f"{encounter.enemy.name}: {encounter.phase.value}",
            border_style=_BORDER_COMBAT,
        )
    )


def render_summary(console: Console, record: PlayerRecord, outcomes: List[str]) -> None:
    header = Table.grid(padding=(0, 2))
    header.add_column(style="bold yellow", justify="right")
    header.add_column(style="white")
    header.add_row("Adventurer", f"{record.name} the {record.player_class.value.capitalize() if record.player_class else 'Wanderer'}")
    header.add_row("Level", f"{record.level} ({level_progress_percent(record)}% to next)")
    header.add_row("Experience", str(record.experience))
    header.add_row("Gold", str(record.gold))
    header.add_row("Health", f"{record.health}/{record.max_health}")
    header.add_row("Energy", f"{record.energy}/{record.max_energy}")
    header.add_row("Battles", f"{record.ledger.battles_won} won / {record.ledger.battles_lost} lost")
    header.add_row("Outcomes", ", ".join(outcomes) or "-")
    console.print("[bold green]Simulation summary[/bold green]")
    console.print(Panel(header, border_style=_BORDER_SUMMARY, expand=False))


def run_battle(service: GameService, player_id: str, policy: Policy, console: Console) -> Optional[Encounter]:
    encounter = service.start_combat(player_id)
    if encounter is None:
        return None
    console.print(
        Panel(
            f"A wild {encounter.enemy.name} appears! (level {encounter.enemy.level})\n{encounter.enemy.description}",
            title="Encounter",
            border_style=_BORDER_PLAYER,
            expand=False,
        )
    )
    while encounter.in_combat and encounter.round_number < MAX_ROUNDS:
        service.perform_combat_action(encounter, policy(encounter))
    if encounter.in_combat:
        service.abandon_combat(encounter)
    render_log(console, encounter)
    return encounter


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lorequest", description="Simulate LoreQuest battles from the terminal.")
    parser.add_argument("--player-id", default="simulator")
    parser.add_argument("--name", default="Wanderer")
    parser.add_argument("--class", dest="player_class", choices=[item.value for item in PlayerClass], default="knight")
    parser.add_argument("--battles", type=int, default=3)
    parser.add_argument("--policy", choices=sorted(POLICIES) + ["interactive"], default="cautious")
    parser.add_argument("--potions", type=int, default=2, help="health potions bought before the first battle")
    parser.add_argument("--seed", type=int, default=None)
    return parser


def main(argv: Optional[List[str]] = None, *, service: Optional[GameService] = None, console: Optional[Console] = None) -> int:
    args = build_parser().parse_args(argv)
    console = console or Console()
    if service is None:
        from lorequest.bootstrap import create_game_service

        service = create_game_service()
    if args.seed is not None:
        service.set_seed(args.seed)

    record = service.get_player(args.player_id) or service.create_player(args.player_id, args.name)
    if record.player_class is None:
        service.choose_class(args.player_id, args.player_class)
    for _ in range(max(0, args.potions)):
        service.purchase(args.player_id, "health-potion")

    policy = interactive_policy(console) if args.policy == "interactive" else POLICIES[args.policy]
    outcomes: List[str] = []
    for _ in range(max(0, args.battles)):
        current = service.get_player(args.player_id)
        if current is None or current.is_dead:
            console.print("[red]You are too wounded to continue.[/red]")
            break
        encounter = run_battle(service, args.player_id, policy, console)
        if encounter is None:
            console.print("[yellow]Not enough energy for another battle.[/yellow]")
            break
        outcomes.append(encounter.phase.value)

    final = service.get_player(args.player_id)
    if final is not None:
        render_summary(console, final, outcomes)
    return 0
