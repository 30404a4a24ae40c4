"""CLI parser and command behaviour tests."""

from __future__ import annotations

import json
import os
import time
from pathlib import Path

import pytest

from codesight import cli
from codesight.cli import _build_parser
from tests._fixtures.project_builder import write_zip


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "configure_logging", lambda **_: None)
    for name in ("CODESIGHT_PROJECTS_DIR", "CODESIGHT_UPLOADS_DIR", "CODESIGHT_ANALYSIS_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)


def test_cli_accepts_verbose_before_command() -> None:
    args = _build_parser().parse_args(["--verbose", "cleanup"])
    assert args.verbose is True
    assert args.command == "cleanup"


def test_cli_accepts_verbose_after_command() -> None:
    args = _build_parser().parse_args(["analyze", "p1", "--verbose"])
    assert args.verbose is True
    assert args.command == "analyze"
    assert args.project_id == "p1"
    assert args.zip_path is None


def test_cli_clone_arguments() -> None:
    args = _build_parser().parse_args(["clone", "p1", "https://github.com/a/b.git", "--token", "t"])
    assert args.git_url == "https://github.com/a/b.git"
    assert args.token == "t"


def test_cli_context_joins_feature_words() -> None:
    args = _build_parser().parse_args(["context", "p1", "add", "dark", "mode"])
    assert args.feature == ["add", "dark", "mode"]


def test_analyze_command_writes_output(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    archive = write_zip(
        tmp_path / "upload.zip",
        {"index.js": "import { a } from './a';\n", "a.js": "export const a = 1;\n"},
    )
    output = tmp_path / "analysis.json"

    cli.main(
        ["--config", str(tmp_path), "analyze", "p1", "--zip", str(archive), "--output", str(output)]
    )

    document = json.loads(output.read_text(encoding="utf-8"))
    assert document["projectId"] == "p1"
    assert document["dependencies"] == {"index.js": ["a.js"], "a.js": []}
    assert "Analysis written to" in capsys.readouterr().out


def test_analyze_failure_exits_with_message(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--config", str(tmp_path), "analyze", "missing"])

    assert excinfo.value.code == 1
    assert "Project files not found" in capsys.readouterr().err


def test_cleanup_command_deletes_stale_projects(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    stale = tmp_path / "projects" / "old"
    stale.mkdir(parents=True)
    past = time.time() - 48 * 3600
    os.utime(stale, (past, past))
    (tmp_path / "projects" / "fresh").mkdir()

    cli.main(["--config", str(tmp_path), "cleanup"])

    assert not stale.exists()
    assert (tmp_path / "projects" / "fresh").exists()
    assert "Deleted 1 project entry" in capsys.readouterr().out
