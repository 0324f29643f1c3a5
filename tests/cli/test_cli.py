"""Tests for the testtree CLI."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from pathlib import Path

import pytest
from click.testing import CliRunner

from testtree import __version__
from testtree.cli.main import cli

runner = CliRunner()


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    """Drop handlers bound to the runner's streams once a test is done."""
    yield
    logging.getLogger().handlers.clear()


@pytest.fixture
def events_file(math_workspace: Path) -> Path:
    path = str(math_workspace / "test" / "math.test.ts")
    frames = [
        {
            "type": "collected",
            "files": [
                {
                    "id": "f1",
                    "type": "suite",
                    "name": "test/math.test.ts",
                    "filepath": path,
                    "tasks": [
                        {
                            "id": "s1",
                            "type": "suite",
                            "name": "math",
                            "tasks": [
                                {"id": "t1", "type": "test", "name": "adds"},
                                {"id": "t2", "type": "test", "name": "subtracts"},
                            ],
                        }
                    ],
                }
            ],
        },
        {"type": "taskUpdate", "packs": [["t1", {"state": "pass", "duration": 1}]]},
        {"type": "taskUpdate", "packs": [["t2", {"state": "fail", "errors": [{"message": "no"}]}]]},
        {"type": "finished"},
    ]
    events = math_workspace / "events.jsonl"
    events.write_text("\n".join(json.dumps(f) for f in frames) + "\n")
    return events


class TestMain:
    def test_version(self) -> None:
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self) -> None:
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "discover" in result.output
        assert "replay" in result.output


class TestDiscoverCommand:
    def test_json_output(self, math_workspace: Path) -> None:
        # When
        result = runner.invoke(cli, ["discover", str(math_workspace), "--json"])

        # Then
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        (file,) = data["files"]
        assert file["name"] == "math.test.ts"
        assert file["resolved"]
        (suite,) = file["children"]
        assert suite["kind"] == "suite"
        assert [c["name"] for c in suite["children"]] == ["adds", "subtracts"]
        assert all(c["state"] == "waiting" for c in suite["children"])
        assert data["errors"] == []

    def test_parse_errors_reported(self, math_workspace: Path) -> None:
        (math_workspace / "test" / "broken.test.js").write_text("it('x', (\n")

        result = runner.invoke(cli, ["discover", str(math_workspace), "--json"])

        assert result.exit_code == 0
        (error,) = json.loads(result.stdout)["errors"]
        assert error["error"] == "PARSE_SYNTAX_ERROR"

    def test_tree_output(self, math_workspace: Path) -> None:
        result = runner.invoke(cli, ["discover", str(math_workspace)])

        assert result.exit_code == 0
        assert "adds" in result.stdout
        assert "subtracts" in result.stdout

    def test_invalid_config(self, math_workspace: Path) -> None:
        config_dir = math_workspace / ".testtree"
        config_dir.mkdir()
        (config_dir / "config.yaml").write_text("matcher:\n  min_similarity: 3\n")

        result = runner.invoke(cli, ["discover", str(math_workspace)])

        assert result.exit_code != 0
        assert "min_similarity" in result.output

    def test_missing_path(self, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["discover", str(tmp_path / "nope")])

        assert result.exit_code != 0


class TestReplayCommand:
    def test_json_summary(self, math_workspace: Path, events_file: Path) -> None:
        # When
        result = runner.invoke(
            cli, ["replay", str(events_file), "--root", str(math_workspace), "--json"]
        )

        # Then
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["summary"] == {
            "passed": 1,
            "failed": 1,
            "skipped": 0,
            "text": "1/2 passed (50%, 0 skipped)",
        }
        cases = data["files"][0]["children"][0]["children"]
        assert {c["name"]: c["state"] for c in cases} == {"adds": "passed", "subtracts": "failed"}
        assert cases[1]["message"] == "no"

    def test_malformed_frame_fails(self, math_workspace: Path) -> None:
        events = math_workspace / "bad.jsonl"
        events.write_text("not json\n")

        result = runner.invoke(cli, ["replay", str(events), "--root", str(math_workspace)])

        assert result.exit_code != 0
        assert "Malformed transport message" in result.output

    def test_invalid_payload_is_reported_not_fatal(self, math_workspace: Path) -> None:
        events = math_workspace / "partial.jsonl"
        events.write_text('{"type": "taskUpdate", "packs": 5}\n{"type": "finished"}\n')

        result = runner.invoke(
            cli, ["replay", str(events), "--root", str(math_workspace), "--json"]
        )

        assert result.exit_code == 0, result.output
        (error,) = json.loads(result.stdout)["errors"]
        assert error["kind"] == "taskUpdate"
