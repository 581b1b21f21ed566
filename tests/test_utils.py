"""Unit tests for utility functions (saasquatch.utils).

Tests cover:
- run_command (success, failure, timeout, env vars, missing program)
- Identifier case helpers
- load_json / dump_json
- write_file / make_executable
- Rich output helpers
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import pytest
from rich.progress import Progress

from saasquatch.utils import (
    camel_case,
    create_progress,
    dump_json,
    load_json,
    make_executable,
    pascal_case,
    print_error,
    print_header,
    print_info,
    print_success,
    print_summary_table,
    print_warning,
    run_command,
    slugify,
    snake_case,
    write_file,
)


# ---------------------------------------------------------------------------
# run_command
# ---------------------------------------------------------------------------


class TestRunCommand:
    @pytest.mark.unit
    async def test_successful_command(self):
        returncode, stdout, stderr = await run_command([sys.executable, "-c", "print('hello')"])
        assert returncode == 0
        assert stdout == "hello"
        assert stderr == ""

    @pytest.mark.unit
    async def test_failing_command(self):
        returncode, _, stderr = await run_command(
            [sys.executable, "-c", "import sys; sys.stderr.write('boom'); sys.exit(3)"]
        )
        assert returncode == 3
        assert stderr == "boom"

    @pytest.mark.unit
    async def test_timeout(self):
        returncode, _, stderr = await run_command(
            [sys.executable, "-c", "import time; time.sleep(5)"], timeout=1
        )
        assert returncode == -1
        assert "timed out" in stderr

    @pytest.mark.unit
    async def test_env_and_cwd(self, tmp_path: Path):
        returncode, stdout, _ = await run_command(
            [sys.executable, "-c", "import os; print(os.environ['SQ_TEST'], os.getcwd())"],
            cwd=tmp_path,
            env={"SQ_TEST": "value"},
        )
        assert returncode == 0
        assert stdout.startswith("value ")
        assert os.path.samefile(stdout.split(" ", 1)[1], tmp_path)

    @pytest.mark.unit
    async def test_missing_program(self):
        with pytest.raises(FileNotFoundError):
            await run_command(["definitely-not-a-real-program-xyz"])


# ---------------------------------------------------------------------------
# Identifier helpers
# ---------------------------------------------------------------------------


class TestCaseHelpers:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("user-service", "UserService"),
            ("order_item", "OrderItem"),
            ("OrderItem", "OrderItem"),
            ("users", "Users"),
        ],
    )
    def test_pascal_case(self, value: str, expected: str):
        assert pascal_case(value) == expected

    @pytest.mark.unit
    def test_camel_case(self):
        assert camel_case("user-profiles") == "userProfiles"
        assert camel_case("") == ""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("OrderItem", "order_item"),
            ("user-service", "user_service"),
            ("HTTPServer", "http_server"),
        ],
    )
    def test_snake_case(self, value: str, expected: str):
        assert snake_case(value) == expected

    @pytest.mark.unit
    def test_slugify(self):
        assert slugify("User Authentication") == "user-authentication"
        assert slugify("  2FA (TOTP)  ") == "2fa-totp"


# ---------------------------------------------------------------------------
# JSON and files
# ---------------------------------------------------------------------------


class TestJsonIO:
    @pytest.mark.unit
    def test_dump_json_format(self):
        text = dump_json({"name": "café"})
        assert text == '{\n  "name": "café"\n}\n'

    @pytest.mark.unit
    def test_load_json(self, tmp_path: Path):
        path = tmp_path / "data.json"
        path.write_text(json.dumps({"a": 1}), encoding="utf-8")
        assert load_json(path) == {"a": 1}

    @pytest.mark.unit
    def test_load_json_wraps_non_object(self, tmp_path: Path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]", encoding="utf-8")
        assert load_json(path) == {"_root": [1, 2]}

    @pytest.mark.unit
    def test_load_json_invalid(self, tmp_path: Path):
        path = tmp_path / "bad.json"
        path.write_text("{", encoding="utf-8")
        with pytest.raises(json.JSONDecodeError):
            load_json(path)


class TestFileHelpers:
    @pytest.mark.unit
    def test_write_file_creates_parents(self, tmp_path: Path):
        target = tmp_path / "a" / "b" / "c.txt"
        write_file(target, "content")
        assert target.read_text(encoding="utf-8") == "content"

    @pytest.mark.unit
    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_make_executable(self, tmp_path: Path):
        target = tmp_path / "script.sh"
        target.write_text("#!/bin/sh\n", encoding="utf-8")
        target.chmod(0o644)
        make_executable(target)
        assert os.access(target, os.X_OK)


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


class TestOutputHelpers:
    @pytest.mark.unit
    def test_helpers_print(self, capsys):
        print_header("Title")
        print_success("ok")
        print_error("bad")
        print_warning("careful")
        print_info("fyi")
        print_summary_table({"Services": "3"}, title="Summary")
        out = capsys.readouterr().out
        for text in ("Title", "ok", "bad", "careful", "fyi", "Services"):
            assert text in out

    @pytest.mark.unit
    def test_create_progress(self):
        progress = create_progress()
        assert isinstance(progress, Progress)
