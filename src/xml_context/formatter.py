"""
Document formatter for xml-context.

Turns a project path, an optional source tree, file records, optional git text and
optional instructions into a single XML-tagged prompt document.

Output layout:

    <project_path>/path/to/project</project_path>

    <source_tree>
        ...
    </source_tree>

    <files>
        <file>
            <path>src/main.py</path>
            <code>
                ...
            </code>
        </file>
    </files>

    <git_diff> / <git_diff_branch> / <git_log_branch>
    <instructions>
    <final_instruction>

Every function here is pure: no I/O, no shared state, no mutation of inputs.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from .models import (
    CODE_INDENT,
    FENCE_MARKER,
    FILE_FIELD_INDENT,
    FILE_INDENT,
    GIT_SECTIONS,
    SECTION_INDENT,
    DocumentStats,
    FormatRequest,
    PathLike,
    coerce_file_record,
)
from .utils import estimate_tokens, split_lines

CLOSING_SENTENCE = (
    "Take a deep breath and think step by step about how to best complete this task."
)


def indent_text(text: str, indent: int) -> str:
    """Indent every non-blank line of `text` by `indent` spaces.

    Whitespace-only lines come out empty. Lines are joined with `\\n` and no trailing
    newline is added.
    """
    padding = " " * indent
    return "\n".join(
        "" if not line.strip() else padding + line for line in split_lines(text)
    )


def remove_markdown_fences(code: str) -> str:
    """Strip a surrounding markdown code fence, if there is one.

    The first line must start with ``` (a language tag may follow) and the last line
    must be exactly ```, both ignoring surrounding whitespace. Anything else is
    returned unchanged.
    """
    lines = split_lines(code)
    if len(lines) >= 2:
        first = lines[0].strip()
        last = lines[-1].strip()
        if first.startswith(FENCE_MARKER) and last == FENCE_MARKER:
            return "\n".join(lines[1:-1])
    return code


def _section(tag: str, body: str) -> str:
    return f"<{tag}>\n{indent_text(body, SECTION_INDENT)}\n</{tag}>\n\n"


def _file_block(path: str, code: str) -> str:
    file_pad = " " * FILE_INDENT
    field_pad = " " * FILE_FIELD_INDENT
    body = indent_text(remove_markdown_fences(code), CODE_INDENT)
    return (
        f"{file_pad}<file>\n"
        f"{field_pad}<path>{path}</path>\n"
        f"{field_pad}<code>\n"
        f"{body}\n"
        f"{field_pad}</code>\n"
        f"{file_pad}</file>\n"
    )


def _emitted_git_tags(
    git_diff: str | None,
    git_diff_branch: str | None,
    git_log_branch: str | None,
) -> list[str]:
    values = dict(zip(GIT_SECTIONS, (git_diff, git_diff_branch, git_log_branch)))
    return [tag for tag in GIT_SECTIONS if values[tag]]


def build_final_instruction(
    has_source_tree: bool,
    git_tags: list[str],
    has_instructions: bool,
) -> str:
    """Build the closing sentence that points the model at each emitted section.

    Args:
        has_source_tree: Whether `<source_tree>` was emitted.
        git_tags: Tag names of the emitted git sections, in document order.
        has_instructions: Whether `<instructions>` was emitted.

    Returns:
        The sentence, without indentation or trailing newline.
    """
    parts = ["Consider the project path in <project_path>"]
    if has_source_tree:
        parts.append(", the source tree in <source_tree>")
    parts.append(", and the files in <files>")

    if git_tags:
        listed = ", ".join(f"<{tag}>" for tag in git_tags)
        parts.append(f". Review any git changes in {listed} if present")

    if has_instructions:
        parts.append(". Then, follow the instructions given in <instructions>")

    parts.append(f". {CLOSING_SENTENCE}")
    return "".join(parts)


def format_document(
    project_path: PathLike,
    source_tree: str | None = None,
    files: Iterable[Any] = (),
    git_diff: str | None = None,
    git_diff_branch: str | None = None,
    git_log_branch: str | None = None,
    instructions: str | None = None,
) -> str:
    """Format project context into an XML-tagged prompt document.

    Empty strings suppress the source tree and git sections exactly like None.
    `instructions` is the exception: an empty string still emits an empty
    `<instructions>` section, only None leaves it out.

    File entries may be `FileRecord` objects or mappings; an entry without a string
    `path` and a string `code` is skipped. Order and duplicates are preserved.

    Args:
        project_path: Project root, rendered with `str()`.
        source_tree: Pre-rendered directory tree.
        files: File records in the order they should appear.
        git_diff: Working-tree diff text.
        git_diff_branch: Diff between branches.
        git_log_branch: Log between branches.
        instructions: Free-text user instructions.

    Returns:
        The formatted document, ending with a newline.
    """
    output: list[str] = [f"<project_path>{project_path}</project_path>\n\n"]

    if source_tree:
        output.append(_section("source_tree", source_tree))

    output.append("<files>\n")
    for entry in files:
        record = coerce_file_record(entry)
        if record is not None:
            output.append(_file_block(record.path, record.code))
    output.append("</files>\n\n")

    git_values = dict(zip(GIT_SECTIONS, (git_diff, git_diff_branch, git_log_branch)))
    git_tags = _emitted_git_tags(git_diff, git_diff_branch, git_log_branch)
    for tag in git_tags:
        output.append(_section(tag, git_values[tag]))

    if instructions is not None:
        output.append(_section("instructions", instructions))

    sentence = build_final_instruction(
        has_source_tree=bool(source_tree),
        git_tags=git_tags,
        has_instructions=instructions is not None,
    )
    output.append("<final_instruction>\n")
    output.append(" " * SECTION_INDENT + sentence + "\n")
    output.append("</final_instruction>\n")

    return "".join(output)


def format_request(request: FormatRequest) -> str:
    """Format a `FormatRequest`; see `format_document`."""
    return format_document(
        project_path=request.project_path,
        source_tree=request.source_tree,
        files=request.files,
        git_diff=request.git_diff,
        git_diff_branch=request.git_diff_branch,
        git_log_branch=request.git_log_branch,
        instructions=request.instructions,
    )


def emitted_sections(request: FormatRequest) -> list[str]:
    """Return the top-level tags a request produces, in document order."""
    sections = ["project_path"]
    if request.source_tree:
        sections.append("source_tree")
    sections.append("files")
    sections.extend(
        _emitted_git_tags(request.git_diff, request.git_diff_branch, request.git_log_branch)
    )
    if request.instructions is not None:
        sections.append("instructions")
    sections.append("final_instruction")
    return sections


def summarize_request(request: FormatRequest, document: str | None = None) -> DocumentStats:
    """Compute `DocumentStats` for a request.

    Args:
        request: The request to summarize.
        document: The already-formatted document, if the caller has it; otherwise it
            is formatted here.

    Returns:
        Stats describing the document.
    """
    if document is None:
        document = format_request(request)

    received = len(request.files)
    included = len(request.valid_files())
    return DocumentStats(
        files_received=received,
        files_included=included,
        files_skipped=received - included,
        sections=emitted_sections(request),
        output_chars=len(document),
        tokens_estimated=estimate_tokens(document),
    )
