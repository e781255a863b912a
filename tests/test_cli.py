"""
tests/test_cli.py
Tests for the entitygen command-line interface.

cli_main always ends in sys.exit; every test asserts on the exit code.
"""

from __future__ import annotations

import json
import logging
import pathlib
from typing import Any, Dict, Iterator, List

import pytest

from entitygen import __version__
from entitygen.cli import (
    EXIT_EXPORT_ERROR,
    EXIT_GENERATION_ERROR,
    EXIT_INPUT_ERROR,
    EXIT_SUCCESS,
    EXIT_VALIDATION_ERROR,
    cli_main,
)


@pytest.fixture(autouse=True)
def _reset_entitygen_logger() -> Iterator[None]:
    """cli_main installs its own handler; undo it so other tests see clean logging."""
    yield
    root = logging.getLogger("entitygen")
    root.handlers.clear()
    root.propagate = True
    root.setLevel(logging.NOTSET)


def _exit_code(argv: List[str]) -> int:
    with pytest.raises(SystemExit) as exc_info:
        cli_main(argv)
    return exc_info.value.code


# ===========================================================================
# Success paths
# ===========================================================================


class TestGenerate:
    """Full generation through the CLI."""

    def test_generate_quiet(
        self,
        schema_dir: pathlib.Path,
        output_dir: pathlib.Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        code = _exit_code(["-s", str(schema_dir), "-o", str(output_dir), "-q"])
        assert code == EXIT_SUCCESS
        assert (output_dir / "main/db/entities/__generated__/PostBase.ts").is_file()
        assert (output_dir / "main/db/entities/Comment.ts").is_file()
        assert capsys.readouterr().out == ""

    def test_summary_printed(
        self,
        schema_dir: pathlib.Path,
        output_dir: pathlib.Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        assert _exit_code(["-s", str(schema_dir), "-o", str(output_dir)]) == EXIT_SUCCESS
        out = capsys.readouterr().out
        assert "entitygen - Generation Report" in out
        assert "SUCCESS" in out

    def test_repeated_schema_flags(
        self, schema_dir: pathlib.Path, output_dir: pathlib.Path
    ) -> None:
        argv = [
            "-s", str(schema_dir / "Post.yaml"),
            "-s", str(schema_dir / "Comment.json"),
            "-o", str(output_dir),
            "-q",
        ]
        assert _exit_code(argv) == EXIT_SUCCESS
        assert (output_dir / "main/db/entities/Post.ts").is_file()

    def test_custom_directories(
        self, comment_json_path: pathlib.Path, output_dir: pathlib.Path
    ) -> None:
        argv = [
            "-s", str(comment_json_path),
            "-o", str(output_dir),
            "--base-dir", "src/generated",
            "--extension-dir", "src/entities",
            "-q",
        ]
        assert _exit_code(argv) == EXIT_SUCCESS
        base = output_dir / "src/generated/CommentBase.ts"
        ext = output_dir / "src/entities/Comment.ts"
        assert base.is_file()
        assert "from '../generated/CommentBase.js';" in ext.read_text(encoding="utf-8")

    def test_dry_run_writes_nothing(
        self, schema_dir: pathlib.Path, output_dir: pathlib.Path
    ) -> None:
        argv = ["-s", str(schema_dir), "-o", str(output_dir), "--dry-run", "-q"]
        assert _exit_code(argv) == EXIT_SUCCESS
        assert list(output_dir.iterdir()) == []

    def test_validate_only_without_output(self, schema_dir: pathlib.Path) -> None:
        assert _exit_code(["-s", str(schema_dir), "--validate-only", "-q"]) == EXIT_SUCCESS

    def test_force_overwrites_extension(
        self, comment_json_path: pathlib.Path, output_dir: pathlib.Path
    ) -> None:
        argv = ["-s", str(comment_json_path), "-o", str(output_dir), "-q"]
        assert _exit_code(argv) == EXIT_SUCCESS
        ext = output_dir / "main/db/entities/Comment.ts"
        ext.write_text("// custom\n", encoding="utf-8")

        assert _exit_code(argv) == EXIT_SUCCESS
        assert ext.read_text(encoding="utf-8") == "// custom\n"

        assert _exit_code(argv + ["--force"]) == EXIT_SUCCESS
        assert "export class Comment extends CommentBase {" in ext.read_text(encoding="utf-8")

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert _exit_code(["--version"]) == 0
        assert capsys.readouterr().out.strip() == f"entitygen v{__version__}"


# ===========================================================================
# Failure paths
# ===========================================================================


class TestExitCodes:
    """Each failure class maps onto its own exit code."""

    def test_missing_schema_path(self, tmp_path: pathlib.Path, output_dir: pathlib.Path) -> None:
        argv = ["-s", str(tmp_path / "missing.json"), "-o", str(output_dir)]
        assert _exit_code(argv) == EXIT_INPUT_ERROR

    def test_output_required(self, schema_dir: pathlib.Path) -> None:
        assert _exit_code(["-s", str(schema_dir), "-q"]) == EXIT_INPUT_ERROR

    def test_schema_flag_required(self) -> None:
        # argparse usage errors exit with 2.
        assert _exit_code(["-o", "out"]) == 2

    def test_empty_schema_directory(self, tmp_path: pathlib.Path, output_dir: pathlib.Path) -> None:
        empty = tmp_path / "empty"
        empty.mkdir()
        assert _exit_code(["-s", str(empty), "-o", str(output_dir), "-q"]) == EXIT_INPUT_ERROR

    def test_duplicate_entities_fail_validation(
        self,
        schema_dir: pathlib.Path,
        post_schema_dict: Dict[str, Any],
    ) -> None:
        (schema_dir / "PostCopy.json").write_text(json.dumps(post_schema_dict), encoding="utf-8")
        argv = ["-s", str(schema_dir), "--validate-only", "-q"]
        assert _exit_code(argv) == EXIT_VALIDATION_ERROR

    def test_broken_schema_is_generation_error(
        self, broken_json_path: pathlib.Path, output_dir: pathlib.Path
    ) -> None:
        argv = ["-s", str(broken_json_path), "-o", str(output_dir), "-q"]
        assert _exit_code(argv) == EXIT_GENERATION_ERROR

    def test_unknown_exposure_reject_policy(
        self, tmp_path: pathlib.Path, output_dir: pathlib.Path
    ) -> None:
        path = tmp_path / "Odd.json"
        path.write_text(
            json.dumps({"name": "Odd", "fields": {"x": {"type": "string", "graphql": ["bogus"]}}}),
            encoding="utf-8",
        )
        base = ["-s", str(path), "-o", str(output_dir), "-q"]
        assert _exit_code(base) == EXIT_SUCCESS
        assert _exit_code(base + ["--unknown-exposure", "reject"]) == EXIT_GENERATION_ERROR

    def test_export_error(
        self, comment_json_path: pathlib.Path, output_dir: pathlib.Path
    ) -> None:
        (output_dir / "blocked").write_text("", encoding="utf-8")
        argv = [
            "-s", str(comment_json_path),
            "-o", str(output_dir),
            "--base-dir", "blocked/generated",
            "-q",
        ]
        assert _exit_code(argv) == EXIT_EXPORT_ERROR
