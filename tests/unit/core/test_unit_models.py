# tests/unit/core/test_unit_models.py - v2
"""Tests for core/models.py."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from icon_factories import make_item
from iconnormalizer.core.models import (
    ClassificationRecord,
    DuplicateGroup,
    PartialRecord,
)


class TestClassificationRecord:
    def test_tags_truncated_to_five(self):
        r = ClassificationRecord(category="x", tags=[f"t{i}" for i in range(8)])
        assert r.tags == ["t0", "t1", "t2", "t3", "t4"]

    def test_tags_keep_insertion_order(self):
        r = ClassificationRecord(category="x", tags=["z", "a", "m"])
        assert r.tags == ["z", "a", "m"]

    def test_empty_tags_dropped(self):
        r = ClassificationRecord(category="x", tags=[" home ", "", "  "])
        assert r.tags == ["home"]

    @pytest.mark.parametrize("raw,expected", [
        (1.7, 1.0), (-0.2, 0.0), (0.42, 0.42), ("abc", 0.5), (float("nan"), 0.0),
    ])
    def test_confidence_clamped(self, raw, expected):
        assert ClassificationRecord(category="x", confidence=raw).confidence == expected

    def test_frozen(self):
        r = ClassificationRecord(category="x")
        with pytest.raises(ValidationError):
            r.category = "y"  # type: ignore[misc]


class TestDuplicateGroup:
    def test_exact_group(self):
        a, b = make_item("a.svg"), make_item("b.svg")
        g = DuplicateGroup(primary=a, members=[b], similarity_score=1.0, disposition="remove")
        assert g.is_exact
        assert g.item_ids == [a.id, b.id]

    def test_near_group_with_full_score_is_not_exact(self):
        a, b = make_item("a.svg"), make_item("b.svg")
        g = DuplicateGroup(primary=a, members=[b], similarity_score=1.0, disposition="keep")
        assert not g.is_exact

    def test_score_bounds(self):
        a, b = make_item("a.svg"), make_item("b.svg")
        with pytest.raises(ValidationError):
            DuplicateGroup(primary=a, members=[b], similarity_score=1.2, disposition="review")


class TestItem:
    def test_item_is_frozen(self):
        item = make_item("home.svg")
        with pytest.raises(ValidationError):
            item.display_name = "other.svg"  # type: ignore[misc]

    def test_path_kept(self):
        item = make_item("home.svg", path=Path("/lib/ui/home.svg"))
        assert item.path == Path("/lib/ui/home.svg")
        assert item.display_name == "home.svg"


class TestPartialRecord:
    def test_present_fields_omit_missing(self):
        p = PartialRecord(category="media", tags=[])
        assert p.present_fields() == {"category": "media", "tags": []}
