"""
Data models and constants for xml-context.

Plain dataclasses; the formatter consumes them but never mutates them.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Union

# Indent widths are part of the output contract consumed downstream
SECTION_INDENT = 4
FILE_INDENT = 4
FILE_FIELD_INDENT = 8
CODE_INDENT = 12

FENCE_MARKER = "```"

# Git sections in emission order; each name is both the request attribute and the tag
GIT_SECTIONS: tuple[str, ...] = ("git_diff", "git_diff_branch", "git_log_branch")

# Optional text fields of a request, in document order
OPTIONAL_TEXT_FIELDS: tuple[str, ...] = (
    "source_tree",
    "git_diff",
    "git_diff_branch",
    "git_log_branch",
    "instructions",
)

PathLike = Union[str, "os.PathLike[str]"]


@dataclass(frozen=True)
class FileRecord:
    """One source file to embed in the document.

    Attributes:
        path: Path as the caller wants it shown (emitted verbatim).
        code: File content, optionally wrapped in markdown fences.
    """

    path: str
    code: str

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "code": self.code}


def coerce_file_record(entry: Any) -> FileRecord | None:
    """Return a `FileRecord` for a record or mapping, or None if it is unusable.

    A mapping qualifies only when both `path` and `code` are present and are strings.
    """
    if isinstance(entry, FileRecord):
        if isinstance(entry.path, str) and isinstance(entry.code, str):
            return entry
        return None

    if isinstance(entry, Mapping):
        path = entry.get("path")
        code = entry.get("code")
        if isinstance(path, str) and isinstance(code, str):
            return FileRecord(path=path, code=code)

    return None


@dataclass
class FormatRequest:
    """Everything needed to build one document.

    `None` means a field is absent; an empty string means present but empty. The
    distinction matters for `instructions`, which is emitted whenever present.

    Attributes:
        project_path: Project root as shown in `<project_path>`.
        source_tree: Pre-rendered directory tree.
        files: Ordered file records or mappings with `path`/`code` keys.
        git_diff: Working-tree diff text.
        git_diff_branch: Diff between branches.
        git_log_branch: Log between branches.
        instructions: Free-text user instructions.
    """

    project_path: PathLike
    source_tree: str | None = None
    files: list[Any] = field(default_factory=list)
    git_diff: str | None = None
    git_diff_branch: str | None = None
    git_log_branch: str | None = None
    instructions: str | None = None

    def valid_files(self) -> list[FileRecord]:
        """Return the file entries that will be emitted, in input order."""
        records = []
        for entry in self.files:
            record = coerce_file_record(entry)
            if record is not None:
                records.append(record)
        return records

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FormatRequest:
        """Create a `FormatRequest` from decoded request data.

        Unknown keys are ignored. Missing optional keys stay None so the absent/empty
        distinction survives serialization.

        Args:
            data: Mapping with at least `project_path`.

        Returns:
            A new `FormatRequest`.

        Raises:
            KeyError: If `project_path` is missing.
        """
        files = data.get("files")
        return cls(
            project_path=data["project_path"],
            source_tree=data.get("source_tree"),
            files=list(files) if files is not None else [],
            git_diff=data.get("git_diff"),
            git_diff_branch=data.get("git_diff_branch"),
            git_log_branch=data.get("git_log_branch"),
            instructions=data.get("instructions"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary.

        Absent optional fields are left out rather than written as null, which TOML
        cannot represent.
        """
        result: dict[str, Any] = {"project_path": str(self.project_path)}

        for name in OPTIONAL_TEXT_FIELDS:
            value = getattr(self, name)
            if value is not None:
                result[name] = value

        result["files"] = [
            entry.to_dict() if isinstance(entry, FileRecord) else dict(entry)
            for entry in self.files
            if isinstance(entry, (FileRecord, Mapping))
        ]
        return result


@dataclass
class DocumentStats:
    """Summary of what a request produces.

    Attributes:
        files_received: File entries in the request.
        files_included: Entries emitted as `<file>` blocks.
        files_skipped: Entries dropped for a missing or non-string field.
        sections: Tag names of emitted top-level sections, in document order.
        output_chars: Length of the formatted document.
        tokens_estimated: Estimated token count of the formatted document.
    """

    files_received: int = 0
    files_included: int = 0
    files_skipped: int = 0
    sections: list[str] = field(default_factory=list)
    output_chars: int = 0
    tokens_estimated: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "files_included": self.files_included,
            "files_received": self.files_received,
            "files_skipped": self.files_skipped,
            "output_chars": self.output_chars,
            "sections": list(self.sections),
            "tokens_estimated": self.tokens_estimated,
        }
