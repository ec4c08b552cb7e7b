# tests/unit/logging/test_unit_context.py - v3
"""Tests for logging/context.py - contextual logging variables."""

from __future__ import annotations

import asyncio
from dataclasses import FrozenInstanceError

import pytest

from iconnormalizer.logging.context import (
    clear_context,
    get_context,
    item_scope,
    set_item_context,
    set_run_context,
    set_stage_context,
)


class TestLogContext:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_initial_state(self):
        ctx = get_context()
        assert ctx.run_id is None
        assert ctx.item_id is None
        assert ctx.stage is None

    def test_set_values(self):
        set_run_context("run1")
        set_stage_context("classifying")
        set_item_context("abcd1234-ef567890")
        ctx = get_context()
        assert ctx.run_id == "run1"
        assert ctx.stage == "classifying"
        assert ctx.item_id == "abcd1234-ef567890"

    def test_as_dict_filters_none(self):
        set_run_context("run1")
        assert get_context().as_dict() == {"run_id": "run1"}

    def test_clear(self):
        set_run_context("run1")
        clear_context()
        assert get_context().as_dict() == {}

    @pytest.mark.asyncio
    async def test_item_context_isolated_per_task(self):
        async def worker(item_id: str) -> str | None:
            set_item_context(item_id)
            await asyncio.sleep(0)
            return get_context().item_id

        results = await asyncio.gather(worker("a"), worker("b"))
        assert results == ["a", "b"]
        assert get_context().item_id is None

    def test_run_context_resets_stage_and_item(self):
        set_stage_context("embedding")
        set_item_context("old")
        set_run_context("run2")
        assert get_context().as_dict() == {"run_id": "run2"}

    def test_item_scope_restores_previous_item(self):
        set_run_context("run1")
        set_item_context("outer")
        with item_scope("inner") as ctx:
            assert ctx.item_id == "inner"
            assert get_context().run_id == "run1"
        assert get_context().item_id == "outer"

    def test_snapshot_is_frozen(self):
        with pytest.raises(FrozenInstanceError):
            get_context().run_id = "x"
