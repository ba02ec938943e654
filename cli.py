"""
cli.py - drawsim Command Line Harness

Subcommands:
  - run: replay a synthetic history with a population of agents
  - features: show the feature layout and denormalized vectors
  - rewards: print the reward/penalty curve

Loading real draw history from files is not part of this harness.
"""

from __future__ import annotations

import itertools
import json
import sys
from dataclasses import replace
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from tqdm import tqdm

from features import DEFAULT_FEATURES, denormalize, feature_width, normalize
from predictor import DensePredictor, TrainingConfig
from receipts import StopRule, write_receipt_jsonl
from reward import reward_table, classify_reward

from drawsim import (
    SCENARIOS,
    SimulationEngine,
    agent_leaderboard,
    export_run,
    generate_report,
    history_examples,
    synthetic_history,
)

console = Console()

LEADERBOARD_ROWS = 10


def print_success(message: str) -> None:
    """Print a success message with green checkmark."""
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str) -> None:
    """Print an error message with red X."""
    console.print(f"[red]✗[/red] {message}")


def print_warning(message: str) -> None:
    """Print a warning message with yellow warning sign."""
    console.print(f"[yellow]⚠[/yellow] {message}")


def _fail(output: str, message: str) -> None:
    if output == "json":
        click.echo(json.dumps({"error": message}))
    else:
        print_error(message)
    sys.exit(2)


@click.group()
def main():
    """Multi-agent draw prediction simulation."""
    pass


# --- run ---

@main.command("run")
@click.option("--scenario", "-s", type=click.Choice(sorted(SCENARIOS)), default="BASELINE",
              show_default=True, help="Preset configuration")
@click.option("--draws", "-d", type=click.IntRange(min=1), default=200, show_default=True,
              help="Synthetic history length")
@click.option("--rounds", "-n", type=click.IntRange(min=0), default=None,
              help="Rounds to play (default: scenario)")
@click.option("--agents", "-a", type=click.IntRange(min=1), default=None,
              help="Population size (default: scenario)")
@click.option("--seed", type=int, default=None, help="Random seed (default: scenario)")
@click.option("--pretrain-epochs", type=click.IntRange(min=0), default=5, show_default=True,
              help="Epochs of initial training on the whole history")
@click.option("--infinite", is_flag=True, help="Play until interrupted with Ctrl-C")
@click.option("--receipts", "receipts_path", type=click.Path(dir_okay=False),
              help="Write the receipt ledger as JSONL")
@click.option("--export", "-e", "export_path", type=click.Path(dir_okay=False),
              help="Write the run as JSON")
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich")
def run_cmd(scenario: str, draws: int, rounds: Optional[int], agents: Optional[int],
            seed: Optional[int], pretrain_epochs: int, infinite: bool,
            receipts_path: Optional[str], export_path: Optional[str], output: str) -> None:
    """Replay a synthetic history round by round."""
    overrides = {}
    if rounds is not None:
        overrides["n_rounds"] = rounds
    if agents is not None:
        overrides["population_size"] = agents
    if seed is not None:
        overrides["random_seed"] = seed
    config = replace(SCENARIOS[scenario], **overrides)

    try:
        history = synthetic_history(draws, seed=config.random_seed)
        predictor = DensePredictor(
            feature_width(DEFAULT_FEATURES),
            DEFAULT_FEATURES.n_slots,
            TrainingConfig(epochs=pretrain_epochs, seed=config.random_seed),
        )
        if pretrain_epochs > 0:
            predictor.fit(history_examples(history))

        engine = SimulationEngine(history, predictor, config)
        if infinite:
            engine.toggle_infinite_mode()

        schedule = itertools.count() if infinite else range(config.n_rounds)
        try:
            for _ in tqdm(schedule, desc="Simulating rounds", disable=output == "json"):
                engine.run_round()
            result = engine.result()
        except KeyboardInterrupt:
            result = engine.result(stopped_early=True)
    except StopRule as e:
        _fail(output, f"Simulation aborted: {e}")
        return

    if receipts_path:
        with open(receipts_path, "w") as fh:
            for receipt in engine.receipts:
                write_receipt_jsonl(receipt, fh)

    exported = export_run(result, export_path)

    if output == "json":
        click.echo(exported)
        return

    console.print(Panel(generate_report(result), title="[bold]drawsim[/bold]", border_style="green"))

    table = Table(title="Leaderboard")
    table.add_column("Rank", justify="right")
    table.add_column("Agent", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Last Prediction")
    for row in agent_leaderboard(result)[:LEADERBOARD_ROWS]:
        table.add_row(
            str(row["rank"]),
            str(row["agent_id"]),
            f"{row['score']:.1f}",
            " ".join(str(n) for n in row["last_prediction"]),
        )
    console.print(table)

    for entry in engine.logs[-5:]:
        console.print(f"[dim]{entry.message}[/dim]")
    if result.stopped_early:
        print_warning("Interrupted: committed rounds kept")
    if receipts_path:
        print_success(f"Receipts: {receipts_path}")
    if export_path:
        print_success(f"Export: {export_path}")


# --- features ---

@main.command("features")
@click.option("--draws", "-d", type=click.IntRange(min=1), default=20, show_default=True)
@click.option("--seed", type=int, default=0, show_default=True)
@click.option("--show", type=click.IntRange(min=0), default=3, show_default=True,
              help="Rows to print denormalized")
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich")
def features_cmd(draws: int, seed: int, show: int, output: str) -> None:
    """Show the feature layout for a synthetic history."""
    history = synthetic_history(draws, seed=seed)
    vectors = normalize(history)
    max_index = max(r.sequence_index for r in history)
    restored = denormalize(vectors[-show:] if show else [], max_index)

    summary = {
        "draws": draws,
        "width": feature_width(DEFAULT_FEATURES),
        "windows": list(DEFAULT_FEATURES.windows),
        "max_index": max_index,
        "rows": [
            {"balls": row[:DEFAULT_FEATURES.balls_per_draw],
             "index": row[DEFAULT_FEATURES.index_column]}
            for row in restored
        ],
    }
    if output == "json":
        click.echo(json.dumps(summary, indent=2))
        return

    console.print(Panel(
        f"width:   {summary['width']}\n"
        f"windows: {summary['windows']}\n"
        f"draws:   {draws} (max index {max_index})",
        title="[bold]Feature Layout[/bold]",
        border_style="cyan",
    ))
    table = Table(title="Denormalized")
    table.add_column("Index", justify="right")
    table.add_column("Balls")
    for row in summary["rows"]:
        table.add_row(str(row["index"]), " ".join(str(b) for b in row["balls"]))
    console.print(table)


# --- rewards ---

@main.command("rewards")
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich")
def rewards_cmd(output: str) -> None:
    """Print the reward/penalty curve."""
    curve = reward_table()
    if output == "json":
        click.echo(json.dumps({str(m): v for m, v in curve.items()}, indent=2))
        return

    table = Table(title="Reward Curve")
    table.add_column("Matches", justify="right")
    table.add_column("Delta", justify="right")
    table.add_column("Class")
    for matches, delta in curve.items():
        style = "green" if delta > 0 else "red"
        table.add_row(str(matches), f"[{style}]{delta:+.0f}[/{style}]", classify_reward(delta))
    console.print(table)


if __name__ == "__main__":
    main()
