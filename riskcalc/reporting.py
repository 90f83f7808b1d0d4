"""Tabular and plain-text views of an allocation run."""
from __future__ import annotations

import math

import pandas as pd

from riskcalc.allocation import AllocationSummary
from riskcalc.main import CalculationReport

COLUMNS = [
    "id", "pair", "enabled", "price", "reward_risk", "danger", "closeness",
    "weight", "risk_pct", "lots", "active", "status",
]


def format_price(value: float | None) -> str:
    """More decimals for smaller prices; ``-`` when missing."""
    if value is None or not math.isfinite(value):
        return "-"
    if value >= 100:
        return f"{value:.2f}"
    if value >= 1:
        return f"{value:.4f}"
    return f"{value:.6f}"


def format_metric(value: float | None, digits: int = 2) -> str:
    if value is None or not math.isfinite(value):
        return "-"
    return f"{value:.{digits}f}"


def results_frame(report: CalculationReport) -> pd.DataFrame:
    """One row per trade, in input order."""
    pairs = {c.id: c.pair for c in report.candidates}
    rows = []
    for r in report.outcome.results:
        position = report.positions.get(r.id)
        rows.append({
            "id": r.id,
            "pair": pairs.get(r.id, ""),
            "enabled": r.enabled,
            "price": r.price,
            "reward_risk": r.reward_risk,
            "danger": r.danger,
            "closeness": r.closeness,
            "weight": r.weight,
            "risk_pct": r.risk,
            "lots": position.lots if position is not None else None,
            "active": r.active,
            "status": r.status.value,
        })
    return pd.DataFrame(rows, columns=COLUMNS)


def format_summary(summary: AllocationSummary) -> str:
    lines = [
        f"  Active trades:  {summary.active_count} of {summary.enabled_count}",
        f"  Risk used:      {summary.used_risk:.2f} % / {summary.total_risk:.2f} %",
        f"  Leftover:       {summary.leftover:.2f} %",
        f"  Active weight:  {summary.active_weight:.4f}",
    ]
    if summary.note:
        lines.append(f"  Note:           {summary.note}")
    return "\n".join(lines)


def format_report(report: CalculationReport) -> str:
    frame = results_frame(report)
    table = frame.to_string(
        index=False,
        formatters={
            "price": format_price,
            "reward_risk": format_metric,
            "danger": format_metric,
            "closeness": format_metric,
            "weight": lambda v: format_metric(v, 4),
            "risk_pct": format_metric,
            "lots": format_metric,
        },
    ) if not frame.empty else "  (no trades)"
    title = "RISK BUDGET ALLOCATION"
    return "\n\n".join([
        f"{'=' * 64}\n  {title}\n{'=' * 64}",
        table,
        format_summary(report.outcome.summary),
    ])
