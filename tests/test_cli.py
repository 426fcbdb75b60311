"""Tests for the CLI module."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from xml_context import __version__
from xml_context.cli import app
from xml_context.formatter import format_request
from xml_context.request_loader import load_request

runner = CliRunner()


@pytest.fixture
def request_file(tmp_path: Path) -> Path:
    path = tmp_path / "request.json"
    path.write_text(
        json.dumps(
            {
                "project_path": "/proj",
                "source_tree": "proj/\n└── a.py",
                "files": [
                    {"path": "a.py", "code": "```python\nprint('a')\n```"},
                    {"path": "broken.py"},
                ],
                "git_diff": "+x",
                "instructions": "From file.",
            }
        ),
        encoding="utf-8",
    )
    return path


def test_version() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_render_to_stdout(request_file: Path) -> None:
    result = runner.invoke(app, ["render", str(request_file)])

    assert result.exit_code == 0
    assert result.output == format_request(load_request(request_file))


def test_render_overrides(request_file: Path) -> None:
    result = runner.invoke(
        app,
        ["render", str(request_file), "-I", "From CLI.", "--no-git", "--no-tree", "-p", "/other"],
    )

    assert result.exit_code == 0
    assert "<project_path>/other</project_path>" in result.output
    assert "    From CLI.\n" in result.output
    assert "From file." not in result.output
    assert "<git_diff>" not in result.output
    assert "<source_tree>" not in result.output


def test_render_instructions_file(request_file: Path, tmp_path: Path) -> None:
    instructions = tmp_path / "instructions.txt"
    instructions.write_text("Step one.\nStep two.\n", encoding="utf-8")

    result = runner.invoke(
        app, ["render", str(request_file), "--instructions-file", str(instructions)]
    )

    assert result.exit_code == 0
    assert "<instructions>\n    Step one.\n    Step two.\n</instructions>" in result.output


def test_render_rejects_both_instruction_sources(request_file: Path, tmp_path: Path) -> None:
    instructions = tmp_path / "instructions.txt"
    instructions.write_text("x", encoding="utf-8")

    result = runner.invoke(
        app,
        ["render", str(request_file), "-I", "y", "--instructions-file", str(instructions)],
    )

    assert result.exit_code == 1


def test_render_to_file(request_file: Path, tmp_path: Path) -> None:
    output = tmp_path / "out" / "prompt.xml"

    result = runner.invoke(app, ["render", str(request_file), "-o", str(output)])

    assert result.exit_code == 0
    assert output.read_text(encoding="utf-8") == format_request(load_request(request_file))
    assert "Files skipped: 1" in result.output


def test_render_from_stdin() -> None:
    payload = "project_path: /stdin\nfiles:\n  - path: a.py\n    code: x\n"

    result = runner.invoke(app, ["render", "-", "--format", "yaml"], input=payload)

    assert result.exit_code == 0
    assert result.output.startswith("<project_path>/stdin</project_path>\n\n")
    assert "<path>a.py</path>" in result.output


def test_render_missing_request(tmp_path: Path) -> None:
    result = runner.invoke(app, ["render", str(tmp_path / "nope.json")])

    assert result.exit_code == 1
    assert "Error loading request" in result.output


def test_render_invalid_request(tmp_path: Path) -> None:
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"files": []}), encoding="utf-8")

    result = runner.invoke(app, ["render", str(path)])

    assert result.exit_code == 1
    assert "project_path" in result.output


def test_inspect(request_file: Path) -> None:
    result = runner.invoke(app, ["inspect", str(request_file)])

    assert result.exit_code == 0
    assert "a.py" in result.output
    assert "Files included: 1" in result.output
    assert "Files skipped: 1" in result.output
    assert "<file>" not in result.output


def test_version_on_stdout() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert f"xml-context version {__version__}" in result.stdout


def test_render_from_stdin_yml() -> None:
    result = runner.invoke(app, ["render", "-", "-f", "yml"], input="project_path: /x\n")

    assert result.exit_code == 0
    assert result.output.startswith("<project_path>/x</project_path>\n\n")


def test_inspect_bracketed_project_path(tmp_path: Path) -> None:
    path = tmp_path / "request.json"
    path.write_text(json.dumps({"project_path": "/srv/[/build]", "files": []}), encoding="utf-8")

    result = runner.invoke(app, ["inspect", str(path)])

    assert result.exit_code == 0
    assert "Project: /srv/[/build]" in result.output


def test_render_to_file_bracketed_path(tmp_path: Path) -> None:
    request = tmp_path / "request.json"
    request.write_text(json.dumps({"project_path": "/srv/[/build]"}), encoding="utf-8")
    output = tmp_path / "[/out]" / "prompt.xml"

    result = runner.invoke(app, ["render", str(request), "-o", str(output)])

    assert result.exit_code == 0
    assert output.read_text(encoding="utf-8").startswith("<project_path>/srv/[/build]</project_path>")


def test_error_message_with_brackets(tmp_path: Path) -> None:
    missing = tmp_path / "[/build]" / "nope.json"

    result = runner.invoke(app, ["render", str(missing)])

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "Error loading request" in result.output
