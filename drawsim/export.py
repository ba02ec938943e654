"""
drawsim/export.py - Reporting and Export

Read-only views over a finished (or interrupted) run: JSON export for other
tools, a text report for humans, and the agent leaderboard.
"""

import json
from dataclasses import asdict
from typing import List, Optional

from receipts import emit_receipt, merkle

from .metrics import edge_summary
from .types_result import SimResult


def agent_leaderboard(result: SimResult) -> List[dict]:
    """Agents by score, highest first; ties by id."""
    agents = sorted(result.final_state.agents, key=lambda a: (-a.score, a.agent_id))
    return [
        {
            "rank": rank,
            "agent_id": a.agent_id,
            "score": a.score,
            "last_prediction": list(a.last_prediction),
        }
        for rank, a in enumerate(agents, start=1)
    ]


def export_run(result: SimResult, output_path: Optional[str] = None) -> str:
    """
    Format a SimResult as JSON.

    The evolution records are summarized by a merkle root so two exports of
    the same run can be compared without diffing the full history.

    Args:
        result: SimResult to export
        output_path: Optional file path to write the JSON to

    Returns:
        str: JSON formatted output
    """
    state = result.final_state
    evolution = [asdict(r) for r in state.evolution]
    population = max(len(state.agents), 1)
    export_data = {
        "config": asdict(result.config),
        "statistics": result.statistics,
        "stopped_early": result.stopped_early,
        "metrics": asdict(state.metrics.snapshot()),
        "edge": edge_summary(
            state.metrics.snapshot(), population, state.feature_config.balls_per_draw
        ),
        "leaderboard": agent_leaderboard(result),
        "evolution": evolution,
        "evolution_root": merkle(evolution),
        "rate_trace": [list(pair) for pair in state.rate_trace],
        "logs": [asdict(entry) for entry in state.logs],
    }
    text = json.dumps(export_data, indent=2)

    if output_path:
        with open(output_path, "w") as f:
            f.write(text)
        state.receipt_ledger.append(emit_receipt("export", {
            "tenant_id": result.config.tenant_id,
            "output_path": output_path,
            "evolution_root": export_data["evolution_root"],
        }))

    return text


def generate_report(result: SimResult) -> str:
    """
    Generate human-readable summary.

    Args:
        result: SimResult to summarize

    Returns:
        str: Report text
    """
    stats = result.statistics
    state = result.final_state
    edge = edge_summary(
        state.metrics.snapshot(), max(len(state.agents), 1), state.feature_config.balls_per_draw
    )
    lo, hi = edge["accuracy_ci"]
    rlo, rhi = edge["random_accuracy_ci"]
    lines = [
        "=== SIMULATION REPORT ===",
        f"Scenario: {result.config.scenario_name}",
        f"Rounds: {stats['rounds']}",
        f"Generation: {stats['generation']}",
        f"Agents: {len(state.agents)}",
        f"Accuracy: {stats['accuracy']:.4f} (CI {lo:.4f}-{hi:.4f})",
        f"Random Accuracy: {stats['random_accuracy']:.4f} (CI {rlo:.4f}-{rhi:.4f})",
        f"Edge: {edge['edge']:+.4f}",
        f"Best Agent: {stats['best_agent']} ({stats['best_score']:.1f})",
        f"Max Matches: {stats['max_matches']}",
        f"Retrains: {stats['retrains']} ok, {stats['retrain_failures']} failed",
        f"Log Entries: {stats['log_entries']}",
    ]
    if result.stopped_early:
        lines.append("")
        lines.append("Stopped early: committed state preserved")

    return "\n".join(lines)
