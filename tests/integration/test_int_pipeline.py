# tests/integration/test_int_pipeline.py - v2
"""End-to-end pipeline runs: factory-built provider, real dedup, codec and
local writer. The renderer and the LLM transport are the only fakes.
"""

from __future__ import annotations

import json

import pytest

from icon_factories import FakeRenderer, llm_response, make_svg, no_sleep, write_icons
from iconnormalizer.classification.factory import create_provider
from iconnormalizer.metadata.codec import MetadataCodec
from iconnormalizer.pipeline.orchestrator import Orchestrator
from iconnormalizer.pipeline.state import RunStage
from iconnormalizer.storage import layout

FIVE_ICONS = {
    "home.svg": make_svg("<path d='M3 12l9-9 9 9'/>"),
    "search.svg": make_svg("<circle cx='11' cy='11' r='8'/>"),
    "trash.svg": make_svg("<rect x='5' y='6' width='14' height='15'/>"),
    "user.svg": make_svg("<circle cx='12' cy='8' r='4'/>"),
    "bell.svg": make_svg("<path d='M18 8a6 6 0 0 0-12 0'/>"),
}


def _build(settings, client):
    renderer = FakeRenderer()
    provider = create_provider(settings, renderer=renderer, client=client, sleep=no_sleep)
    return Orchestrator(settings, provider, renderer=renderer)


class TestFullRun:
    @pytest.mark.asyncio
    async def test_five_unique_icons(self, settings, mock_llm_client, tmp_path):
        src = tmp_path / "icons"
        write_icons(src, FIVE_ICONS)

        outcome = await _build(settings, mock_llm_client).run(src)

        summary = outcome.summary
        assert outcome.stage is RunStage.DONE
        assert summary.total_items == 5
        assert summary.unique_items == 5
        assert summary.duplicate_items == 0
        assert summary.category_counts == {"navigation": 5}
        assert summary.provider_id == "mock:mock-vision"
        assert mock_llm_client.complete_with_vision.await_count == 5

        unique = layout.unique_dir(settings.output_dir, "mock-vision")
        assert sorted(p.name for p in unique.iterdir()) == sorted(FIVE_ICONS)
        assert not layout.duplicates_dir(settings.output_dir, "mock-vision").exists()

    @pytest.mark.asyncio
    async def test_exact_duplicates(self, settings, mock_llm_client, tmp_path):
        src = tmp_path / "icons"
        same = FIVE_ICONS["home.svg"]
        write_icons(src, {"home.svg": same, "house.svg": same, "user.svg": FIVE_ICONS["user.svg"]})

        outcome = await _build(settings, mock_llm_client).run(src)

        report = json.loads(layout.summary_path(settings.output_dir, "mock-vision").read_text())
        assert report["unique_items"] == 2
        assert report["duplicate_items"] == 1
        dup = next(r for r in report["per_item"] if r["status"] == "duplicate")
        assert dup["display_name"] == "house.svg"
        assert dup["similarity"] == 1.0
        assert dup["disposition"] == "remove"

        text = layout.report_path(settings.output_dir, "mock-vision").read_text()
        assert "house.svg" in text
        moved = layout.duplicates_dir(settings.output_dir, "mock-vision") / "house.svg"
        meta = MetadataCodec().extract(moved.read_text())
        assert meta.category == "duplicate"
        assert outcome.summary.category_counts == {"navigation": 2}

    @pytest.mark.asyncio
    async def test_threshold_above_one_keeps_only_exact_groups(
        self, settings, mock_llm_client, tmp_path,
    ):
        src = tmp_path / "icons"
        write_icons(src, {
            "a.svg": make_svg("<g/>", shape="star"),
            "a-copy.svg": make_svg("<g/>", shape="star"),
            "b.svg": make_svg("<g></g>", shape="star"),
            "d.svg": make_svg("<g id='d'/>", shape="star"),
        })

        strict = settings.model_copy(update={"similarity_threshold": 1.01})
        outcome = await _build(strict, mock_llm_client).run(src)
        assert outcome.summary.duplicate_items == 1

        loose = settings.model_copy(update={"output_dir": tmp_path / "loose"})
        outcome = await _build(loose, mock_llm_client).run(src)
        assert outcome.summary.duplicate_items == 2

    @pytest.mark.asyncio
    async def test_prose_wrapped_reply(self, settings, mock_llm_client, tmp_path):
        src = tmp_path / "icons"
        write_icons(src, {"back.svg": FIVE_ICONS["home.svg"]})
        mock_llm_client.complete_with_vision.return_value = llm_response(
            "Sure! Here's the classification: "
            '{"category":"navigation","tags":["back"],"confidence":0.9}'
        )

        outcome = await _build(settings, mock_llm_client).run(src)

        record = outcome.summary.per_item[0].record
        assert record.category == "navigation"
        assert record.tags == ["back"]
        assert record.confidence == 0.9

    @pytest.mark.asyncio
    async def test_reply_naming_error_category_is_not_a_failure(
        self, settings, mock_llm_client, tmp_path,
    ):
        src = tmp_path / "icons"
        write_icons(src, {"warning.svg": FIVE_ICONS["bell.svg"]})
        mock_llm_client.complete_with_vision.return_value = llm_response(
            '{"category":"error","tags":["warning","alert"],"confidence":0.8}'
        )

        outcome = await _build(settings, mock_llm_client).run(src)

        result = outcome.summary.per_item[0]
        assert result.status == "classified"
        assert result.record.category == "interface"
        assert outcome.summary.category_counts == {"interface": 1}
        written = (outcome.output_root / "unique" / "warning.svg").read_text()
        assert MetadataCodec().extract(written).tags == ["warning", "alert"]

    @pytest.mark.asyncio
    async def test_one_failing_item_does_not_abort(self, settings, mock_llm_client, tmp_path):
        src = tmp_path / "icons"
        icons = {f"icon{i}.svg": make_svg(f"<text>{i}</text>") for i in range(10)}
        write_icons(src, icons)
        replies = iter([llm_response()] * 4 + [TimeoutError("slow")] * 3 + [llm_response()] * 5)

        async def complete(*args, **kwargs):
            reply = next(replies)
            if isinstance(reply, Exception):
                raise reply
            return reply

        mock_llm_client.complete_with_vision.side_effect = complete
        fast = settings.model_copy(update={"max_concurrent": 1})

        outcome = await _build(fast, mock_llm_client).run(src)

        statuses = [r.status for r in outcome.summary.per_item]
        assert statuses.count("error") == 1
        assert statuses.count("classified") == 9
        failed = next(r for r in outcome.summary.per_item if r.status == "error")
        assert failed.record.category == "error"
        assert failed.record.reasoning.startswith("Analysis failed")
        assert outcome.summary.category_counts == {"navigation": 9, "error": 1}


class TestRepeatability:
    @pytest.mark.asyncio
    async def test_rerun_produces_same_ids_and_names(self, settings, mock_llm_client, tmp_path):
        src = tmp_path / "icons"
        same = FIVE_ICONS["bell.svg"]
        write_icons(src, {"bell.svg": same, "nested/bell.svg": same, "user.svg": FIVE_ICONS["user.svg"]})

        first = await _build(settings, mock_llm_client).run(src)
        second_settings = settings.model_copy(update={"output_dir": tmp_path / "again"})
        second = await _build(second_settings, mock_llm_client).run(src)

        def ids(outcome):
            return [(r.item_id, r.status) for r in outcome.summary.per_item]

        assert ids(first) == ids(second)

        def names(root):
            return sorted(p.relative_to(root).as_posix() for p in root.rglob("*.svg"))

        assert names(first.output_root) == names(second.output_root)

    @pytest.mark.asyncio
    async def test_embedded_metadata_round_trip(self, settings, mock_llm_client, tmp_path):
        src = tmp_path / "icons"
        write_icons(src, {"home.svg": FIVE_ICONS["home.svg"]})

        outcome = await _build(settings, mock_llm_client).run(src)

        written = (outcome.output_root / "unique" / "home.svg").read_text()
        meta = MetadataCodec().extract(written)
        assert meta.category == "navigation"
        assert meta.tags == ["home", "house"]
        assert meta.confidence == 0.9
        assert meta.processed_at is not None
        assert MetadataCodec().strip(written) == FIVE_ICONS["home.svg"]
