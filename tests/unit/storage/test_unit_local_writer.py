# tests/unit/storage/test_unit_local_writer.py - v3
"""Tests for storage/local_writer.py and storage/backup.py."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from icon_factories import make_svg, write_icons
from iconnormalizer.storage.backup import backup_dir, create_backup
from iconnormalizer.storage.base_output_writer import BaseOutputWriter
from iconnormalizer.storage.local_writer import LocalWriter


class TestLocalWriter:
    def test_writer_contract(self):
        assert BaseOutputWriter.__abstractmethods__ == {"write_text", "copy_file"}

    @pytest.mark.asyncio
    async def test_write_creates_parents(self, tmp_path):
        writer = LocalWriter()
        target = tmp_path / "a" / "b" / "x.svg"
        await writer.write_text(target, "<svg/>")
        assert target.read_text() == "<svg/>"

    @pytest.mark.asyncio
    async def test_write_replaces_without_leftovers(self, tmp_path):
        writer = LocalWriter()
        target = tmp_path / "x.svg"
        await writer.write_text(target, "old")
        await writer.write_text(target, "new")
        assert target.read_text() == "new"
        assert [p.name for p in tmp_path.iterdir()] == ["x.svg"]

    @pytest.mark.asyncio
    async def test_write_keeps_content_verbatim(self, tmp_path):
        target = tmp_path / "x.svg"
        content = "<svg>\r\n<!-- 图标 -->\n</svg>"
        await LocalWriter().write_text(target, content)
        assert target.read_bytes() == content.encode("utf-8")

    @pytest.mark.asyncio
    async def test_copy_file(self, tmp_path):
        writer = LocalWriter()
        src = tmp_path / "src.svg"
        src.write_text("<svg/>")
        await writer.copy_file(src, tmp_path / "deep" / "dst.svg")
        assert (tmp_path / "deep" / "dst.svg").read_text() == "<svg/>"

    @pytest.mark.asyncio
    async def test_copy_rejects_directories(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            await LocalWriter().copy_file(tmp_path, tmp_path / "out")


class TestBackup:
    def test_backup_dir_name(self, tmp_path):
        when = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert backup_dir(tmp_path, when) == tmp_path / "backup" / "20240102T030405"

    @pytest.mark.asyncio
    async def test_copies_relative_tree(self, tmp_path):
        paths = write_icons(tmp_path, {"a.svg": make_svg("a"), "sub/b.svg": make_svg("b")})
        when = datetime(2024, 1, 2, tzinfo=timezone.utc)

        target = await create_backup(tmp_path, paths, now=when)

        assert (target / "a.svg").read_text() == make_svg("a")
        assert (target / "sub" / "b.svg").read_text() == make_svg("b")
        # originals untouched
        assert (tmp_path / "a.svg").exists()
