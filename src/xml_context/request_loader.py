"""
Request file loader for xml-context.

Supports loading a `FormatRequest` from:
- JSON (`.json`)
- TOML (`.toml`)
- YAML (`.yml` / `.yaml`)

The data may sit at the top level or under an `xml-context` table. CLI flags
override values loaded from the file.
"""

from __future__ import annotations

import json
import tomllib
from dataclasses import replace
from pathlib import Path
from typing import Any

import yaml

from .models import OPTIONAL_TEXT_FIELDS, FormatRequest
from .utils import read_text_safe

SECTION_NAME = "xml-context"

SUPPORTED_FORMATS: dict[str, str] = {
    ".json": "json",
    ".toml": "toml",
    ".yml": "yaml",
    ".yaml": "yaml",
}

# Short keys accepted in request files
KEY_ALIASES: dict[str, str] = {
    "path": "project_path",
    "tree": "source_tree",
    "diff": "git_diff",
}


class RequestError(Exception):
    """Error while loading or validating a request file."""

    pass


def _parse(text: str, fmt: str) -> Any:
    """Parse request text in the given format.

    Raises:
        RequestError: If the format is unknown or the text is malformed.
    """
    try:
        if fmt == "json":
            return json.loads(text)
        if fmt == "toml":
            return tomllib.loads(text)
        if fmt == "yaml":
            return yaml.safe_load(text)
    except (json.JSONDecodeError, tomllib.TOMLDecodeError, yaml.YAMLError) as e:
        raise RequestError(f"Malformed {fmt.upper()} request: {e}") from e

    raise RequestError(f"Unsupported request format: {fmt}")


def _unwrap_section(data: dict[str, Any]) -> dict[str, Any]:
    """Support both flat and nested `[xml-context]` layouts."""
    if SECTION_NAME in data and isinstance(data[SECTION_NAME], dict):
        return dict(data[SECTION_NAME])
    return data


def _apply_aliases(data: dict[str, Any]) -> dict[str, Any]:
    result = dict(data)
    for alias, canonical in KEY_ALIASES.items():
        if alias in result and canonical not in result:
            result[canonical] = result.pop(alias)
    return result


def request_from_data(data: Any) -> FormatRequest:
    """Validate decoded request data and build a `FormatRequest`.

    Args:
        data: Value decoded from JSON/TOML/YAML.

    Returns:
        The request.

    Raises:
        RequestError: If the data is not a mapping, lacks `project_path`, has a
            non-string optional text field, or `files` is not a list.
    """
    if not isinstance(data, dict):
        raise RequestError("Request must be a mapping at the top level")

    data = _apply_aliases(_unwrap_section(data))

    project_path = data.get("project_path")
    if project_path is None:
        raise RequestError("Request is missing 'project_path'")
    if not isinstance(project_path, str):
        raise RequestError("'project_path' must be a string")

    for name in OPTIONAL_TEXT_FIELDS:
        value = data.get(name)
        if value is not None and not isinstance(value, str):
            raise RequestError(f"'{name}' must be a string, got {type(value).__name__}")

    files = data.get("files")
    if files is not None and not isinstance(files, list):
        raise RequestError("'files' must be a list of {path, code} entries")

    return FormatRequest.from_dict(data)


def load_request_text(text: str, fmt: str) -> FormatRequest:
    """Load a request from already-read text (e.g., stdin).

    Args:
        text: Request document.
        fmt: One of `"json"`, `"toml"`, `"yaml"` or `"yml"`.

    Returns:
        The request.

    Raises:
        RequestError: If parsing or validation fails.
    """
    fmt = fmt.lower()
    return request_from_data(_parse(text, SUPPORTED_FORMATS.get(f".{fmt}", fmt)))


def detect_format(path: Path) -> str:
    """Map a request file suffix to a format name.

    Raises:
        RequestError: If the suffix is not supported.
    """
    fmt = SUPPORTED_FORMATS.get(path.suffix.lower())
    if fmt is None:
        supported = ", ".join(sorted(SUPPORTED_FORMATS))
        raise RequestError(f"Unsupported request file type '{path.suffix}' (expected {supported})")
    return fmt


def load_request(path: Path) -> FormatRequest:
    """
    Load a request from a file.

    Args:
        path: Path to a `.json`, `.toml`, `.yml` or `.yaml` request file

    Returns:
        The request.

    Raises:
        RequestError: If the file cannot be read, parsed or validated.
    """
    fmt = detect_format(path)

    try:
        text, _ = read_text_safe(path)
    except OSError as e:
        raise RequestError(f"Cannot read request file {path}: {e}") from e

    return load_request_text(text, fmt)


def merge_cli_with_request(
    request: FormatRequest,
    *,
    # CLI arguments (None means not specified on CLI)
    project_path: str | None = None,
    source_tree: str | None = None,
    git_diff: str | None = None,
    git_diff_branch: str | None = None,
    git_log_branch: str | None = None,
    instructions: str | None = None,
    no_git: bool = False,
    no_tree: bool = False,
) -> FormatRequest:
    """Merge CLI arguments with request file values (CLI wins).

    Args:
        request: Request loaded from file.
        project_path: CLI override for the project path (optional).
        source_tree: CLI override for the source tree text (optional).
        git_diff: CLI override for the working-tree diff (optional).
        git_diff_branch: CLI override for the branch diff (optional).
        git_log_branch: CLI override for the branch log (optional).
        instructions: CLI override for instructions (optional; `""` is kept).
        no_git: Drop all git sections.
        no_tree: Drop the source tree section.

    Returns:
        A new `FormatRequest`; the input is not modified.
    """
    overrides: dict[str, Any] = {}

    if project_path is not None:
        overrides["project_path"] = project_path
    if source_tree is not None:
        overrides["source_tree"] = source_tree
    if git_diff is not None:
        overrides["git_diff"] = git_diff
    if git_diff_branch is not None:
        overrides["git_diff_branch"] = git_diff_branch
    if git_log_branch is not None:
        overrides["git_log_branch"] = git_log_branch
    if instructions is not None:
        overrides["instructions"] = instructions

    if no_tree:
        overrides["source_tree"] = None
    if no_git:
        overrides["git_diff"] = None
        overrides["git_diff_branch"] = None
        overrides["git_log_branch"] = None

    return replace(request, files=list(request.files), **overrides)
