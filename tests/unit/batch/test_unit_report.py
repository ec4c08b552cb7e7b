# tests/unit/batch/test_unit_report.py - v1
"""Tests for batch/report.py - duplicate report text."""

from __future__ import annotations

from icon_factories import make_item
from iconnormalizer.batch.report import generate_report
from iconnormalizer.core.models import DuplicateGroup


def test_empty_report():
    text = generate_report([])
    assert "Total duplicate groups found: 0" in text
    assert "Total duplicate files: 0" in text


def test_report_lists_groups():
    exact = DuplicateGroup(
        primary=make_item("home.svg"),
        members=[make_item("home-copy.svg"), make_item("home-2.svg")],
        similarity_score=1.0,
        disposition="remove",
    )
    near = DuplicateGroup(
        primary=make_item("arrow.svg"),
        members=[make_item("arrow-alt.svg")],
        similarity_score=0.8437,
        disposition="review",
    )
    text = generate_report([exact, near])

    assert "Total duplicate groups found: 2" in text
    assert "Total duplicate files: 3" in text
    assert "Exact duplicates: 1 groups" in text
    assert "Similar duplicates: 1 groups" in text
    assert "Group 1 (Exact - remove)" in text
    assert "Duplicates: home-copy.svg, home-2.svg" in text
    assert "Group 2 (Similar - review)" in text
    assert "Similarity: 84.4%" in text
