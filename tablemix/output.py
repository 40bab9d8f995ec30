"""Output formatting for tablemix."""

from collections import defaultdict

from tablemix.models import (
    Assignment,
    ConstraintConflict,
    GenerateResult,
    Guest,
    MatchingWeights,
    PreviewView,
    Violation,
)
from tablemix.scoring import seating_report


def format_preview(
    result: GenerateResult,
    view: PreviewView,
    guests: list[Guest],
    weights: MatchingWeights,
) -> str:
    """Format a staged preview for display."""
    lines: list[str] = []

    lines.append("=== Table Assignments (preview) ===")
    lines.append(f"Session: {result.session_id}")
    lines.append(f"Assignments: {result.total_assignments} over {result.rounds} round(s)")
    lines.append(f"Repeated pairings: {result.repeated_pairings}")
    lines.append("")

    assignments = [
        Assignment(row.guest_id, row.round_number, row.table_number)
        for rows in view.by_round.values()
        for row in rows
    ]
    quality = {
        (r.round_number, r.table_number): r for r in seating_report(assignments, guests, weights)
    }

    for round_number, rows in view.by_round.items():
        lines.append(f"--- Round {round_number} ---")
        by_table: dict[int, list[str]] = defaultdict(list)
        for row in rows:
            suffix = f" ({row.guest_department})" if row.guest_department else ""
            by_table[row.table_number].append(f"{row.guest_name}{suffix}")
        for table_number, names in sorted(by_table.items()):
            report = quality.get((round_number, table_number))
            score = f", quality {report.quality:+.2f}" if report else ""
            lines.append(f"  Table {table_number} ({len(names)} guests{score}):")
            for name in names:
                lines.append(f"    - {name}")
        lines.append("")

    lines.append(format_violations(result.constraint_violations))
    return "\n".join(lines)


def format_violations(violations: list[Violation]) -> str:
    """Format constraint violations, one per line."""
    if not violations:
        return "=== No constraint violations ==="
    lines = [f"=== Constraint Violations ({len(violations)}) ==="]
    for v in violations:
        where = "overall" if v.round == 0 else f"round {v.round}"
        lines.append(f"  [{v.type}] {where}: {v.description}")
    return "\n".join(lines)


def format_conflicts(conflicts: list[ConstraintConflict]) -> str:
    """Format conflicting constraints; empty string when there are none."""
    if not conflicts:
        return ""
    lines = ["=== Constraint Conflicts ==="]
    for c in conflicts:
        lines.append(f"  {c.severity.upper()}: {c.message}")
    return "\n".join(lines)


def format_assignments_csv(assignments: list[Assignment], guests: list[Guest]) -> str:
    """Format assignments as CSV for export."""
    names = {g.id: g.name for g in guests}
    lines: list[str] = ["guest,name,round,table"]

    for a in sorted(assignments, key=lambda a: (a.round_number, a.table_number, a.guest_id)):
        name = names.get(a.guest_id, "")
        if "," in name or '"' in name:
            name = '"' + name.replace('"', '""') + '"'
        lines.append(f"{a.guest_id},{name},{a.round_number},{a.table_number}")

    return "\n".join(lines)
