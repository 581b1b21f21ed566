"""Tests for Artifact plans and the PlanExecutor."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from saasquatch.errors import GenerationError, TargetNotFoundError, TemplateNotFoundError
from saasquatch.scaffolder.plan import Artifact, PlanExecutor, ensure_disjoint, plan_paths
from saasquatch.scaffolder.templates import TemplateRenderer


pytestmark = pytest.mark.unit


def _text(ctx: dict[str, Any]) -> str:
    return f"value={ctx['value']}\n"


def _append(existing: str, ctx: dict[str, Any]) -> str:
    return existing + ctx["line"] + "\n"


@pytest.fixture
def executor(tmp_path: Path) -> PlanExecutor:
    templates = tmp_path / "templates"
    templates.mkdir()
    (templates / "hello.j2").write_text("hello {{ who }}\n", encoding="utf-8")
    return PlanExecutor(TemplateRenderer(templates))


# ---------------------------------------------------------------------------
# Artifact
# ---------------------------------------------------------------------------


class TestArtifact:
    def test_requires_a_source(self):
        with pytest.raises(ValueError):
            Artifact("a.txt")

    def test_rejects_two_sources(self):
        with pytest.raises(ValueError):
            Artifact("a.txt", template="hello", generator=_text)

    @pytest.mark.parametrize(
        "kwargs, kind, source",
        [
            ({"template": "hello"}, "template", "hello"),
            ({"generator": _text}, "generated", "_text"),
            ({"patch": _append}, "patch", "_append"),
        ],
    )
    def test_kind_and_source(self, kwargs: dict[str, Any], kind: str, source: str):
        artifact = Artifact("a.txt", **kwargs)
        assert artifact.kind == kind
        assert artifact.source == source

    def test_plan_paths(self):
        plan = [Artifact("a", generator=_text), Artifact("b/c", generator=_text)]
        assert plan_paths(plan) == ["a", "b/c"]

    def test_ensure_disjoint(self):
        plan = [Artifact("a", generator=_text), Artifact("a", template="hello")]
        with pytest.raises(GenerationError, match="more than once"):
            ensure_disjoint(plan)


# ---------------------------------------------------------------------------
# PlanExecutor
# ---------------------------------------------------------------------------


class TestPlanExecutor:
    async def test_writes_in_order(self, executor: PlanExecutor, tmp_path: Path):
        root = tmp_path / "out"
        plan = [
            Artifact("nested/hello.txt", template="hello", context={"who": "world"}),
            Artifact("value.txt", generator=_text, context={"value": 42}),
        ]
        written = await executor.execute(plan, root)
        assert written == [root / "nested/hello.txt", root / "value.txt"]
        assert (root / "nested/hello.txt").read_text(encoding="utf-8") == "hello world\n"
        assert (root / "value.txt").read_text(encoding="utf-8") == "value=42\n"

    async def test_overwrites_existing_files(self, executor: PlanExecutor, tmp_path: Path):
        (tmp_path / "value.txt").write_text("old", encoding="utf-8")
        await executor.execute([Artifact("value.txt", generator=_text, context={"value": 1})], tmp_path)
        assert (tmp_path / "value.txt").read_text(encoding="utf-8") == "value=1\n"

    async def test_patch_applies_to_existing_file(self, executor: PlanExecutor, tmp_path: Path):
        (tmp_path / "list.txt").write_text("one\n", encoding="utf-8")
        await executor.execute(
            [Artifact("list.txt", patch=_append, context={"line": "two"})], tmp_path
        )
        assert (tmp_path / "list.txt").read_text(encoding="utf-8") == "one\ntwo\n"

    async def test_patch_missing_file(self, executor: PlanExecutor, tmp_path: Path):
        with pytest.raises(TargetNotFoundError):
            await executor.execute(
                [Artifact("missing.txt", patch=_append, context={"line": "x"})], tmp_path
            )

    async def test_unknown_template_stops_execution(self, executor: PlanExecutor, tmp_path: Path):
        plan = [
            Artifact("first.txt", generator=_text, context={"value": 1}),
            Artifact("second.txt", template="nope"),
            Artifact("third.txt", generator=_text, context={"value": 3}),
        ]
        with pytest.raises(TemplateNotFoundError):
            await executor.execute(plan, tmp_path)
        assert (tmp_path / "first.txt").exists()
        assert not (tmp_path / "third.txt").exists()

    async def test_write_failure_is_generation_error(self, executor: PlanExecutor, tmp_path: Path):
        with patch("saasquatch.scaffolder.plan.write_file", side_effect=OSError("read-only")):
            with pytest.raises(GenerationError, match="read-only"):
                await executor.execute(
                    [Artifact("a.txt", generator=_text, context={"value": 1})], tmp_path
                )

    async def test_duplicate_paths_rejected_before_writing(self, executor: PlanExecutor, tmp_path: Path):
        plan = [
            Artifact("a.txt", generator=_text, context={"value": 1}),
            Artifact("a.txt", generator=_text, context={"value": 2}),
        ]
        with pytest.raises(GenerationError):
            await executor.execute(plan, tmp_path)
        assert not (tmp_path / "a.txt").exists()

    async def test_on_written_callback(self, executor: PlanExecutor, tmp_path: Path):
        seen: list[Path] = []
        await executor.execute(
            [Artifact("a.txt", generator=_text, context={"value": 1})],
            tmp_path,
            on_written=seen.append,
        )
        assert seen == [tmp_path / "a.txt"]

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    async def test_executable_flag(self, executor: PlanExecutor, tmp_path: Path):
        await executor.execute(
            [Artifact("run.sh", generator=_text, context={"value": 1}, executable=True)],
            tmp_path,
        )
        assert os.access(tmp_path / "run.sh", os.X_OK)
