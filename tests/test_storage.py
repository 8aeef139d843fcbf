"""Tests for output paths, JSON writing and iteration indices."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from stepwright.core.executor.indexing import ROOT_INDEX, IterationIndex
from stepwright.logging_setup import configure_logging
from stepwright.runtime.storage import render_path, write_json


class TestIterationIndex:
    def test_root_renders_as_zero(self):
        assert str(ROOT_INDEX) == "0"
        assert ROOT_INDEX.depth == 0

    def test_children_join_positions(self):
        index = ROOT_INDEX.child(2).child(3)

        assert str(index) == "2-3"
        assert index.depth == 2
        assert index == IterationIndex((2, 3))

    def test_positions_are_one_based(self):
        with pytest.raises(ValueError):
            ROOT_INDEX.child(0)


class TestRenderPath:
    def test_every_token_is_replaced(self):
        path = render_path("out/$i/results-$i.json", IterationIndex((4,)))

        assert path == Path("out/4/results-4.json")

    def test_template_without_token_is_unchanged(self):
        assert render_path("out/all.json", IterationIndex((1,))) == Path("out/all.json")


class TestWriteJson:
    @pytest.mark.asyncio
    async def test_writes_utf8_with_two_space_indent(self, tmp_path: Path):
        path = tmp_path / "a" / "b" / "out.json"

        written = await write_json(path, [{"name": "Zürich", "tags": ["x"]}])

        assert written == path
        raw = path.read_bytes().decode("utf-8")
        assert '"name": "Zürich"' in raw
        assert raw.startswith('[\n  {\n    "name"')
        assert json.loads(raw) == [{"name": "Zürich", "tags": ["x"]}]

    @pytest.mark.asyncio
    async def test_overwrites_existing_file(self, tmp_path: Path):
        path = tmp_path / "out.json"
        path.write_text("stale", encoding="utf-8")

        await write_json(path, [])

        assert json.loads(path.read_text(encoding="utf-8")) == []


class TestConfigureLogging:
    def test_repeated_calls_do_not_stack_handlers(self):
        root = logging.getLogger()
        before, level = list(root.handlers), root.level
        try:
            configure_logging("INFO")
            configure_logging("DEBUG")
            ours = [h for h in root.handlers if getattr(h, "_stepwright", False)]
            assert len(ours) == 1
            assert root.level == logging.DEBUG
            assert logging.getLogger("asyncio").level == logging.WARNING
        finally:
            for handler in list(root.handlers):
                if handler not in before:
                    root.removeHandler(handler)
            root.setLevel(level)

    def test_unknown_level(self):
        with pytest.raises(ValueError, match="Unknown log level"):
            configure_logging("CHATTY")
