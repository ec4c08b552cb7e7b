# src/batch/report.py - v1
"""Human-readable duplicate report written next to the batch summary."""

from __future__ import annotations

from iconnormalizer.core.models import DuplicateGroup


def generate_report(groups: list[DuplicateGroup]) -> str:
    """Render duplicate groups as plain text."""
    total_members = sum(len(g.members) for g in groups)
    exact = sum(1 for g in groups if g.is_exact)

    lines = [
        "Duplicate Analysis Report",
        "========================",
        "",
        f"Total duplicate groups found: {len(groups)}",
        f"Total duplicate files: {total_members}",
        f"Exact duplicates: {exact} groups",
        f"Similar duplicates: {len(groups) - exact} groups",
        "",
    ]
    for index, group in enumerate(groups, start=1):
        kind = "Exact" if group.is_exact else "Similar"
        lines.append(f"Group {index} ({kind} - {group.disposition})")
        lines.append(f"  Primary: {group.primary.display_name}")
        lines.append(
            f"  Duplicates: {', '.join(m.display_name for m in group.members)}"
        )
        lines.append(f"  Similarity: {group.similarity_score * 100:.1f}%")
        lines.append("")
    return "\n".join(lines)
