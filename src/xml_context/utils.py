"""
Utility functions for xml-context.

Includes line splitting, encoding-aware text reading and token estimation.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import chardet
import tiktoken

_tiktoken_encoder: Any | None = None
_tiktoken_loaded = False


def _get_encoder() -> Any | None:
    """Return the cached `cl100k_base` encoder, or None if it cannot be initialized."""
    global _tiktoken_encoder, _tiktoken_loaded
    if not _tiktoken_loaded:
        _tiktoken_loaded = True
        try:
            # Loading the encoding may need network access on first use; sandboxed
            # environments fall back to the heuristic below.
            _tiktoken_encoder = tiktoken.get_encoding("cl100k_base")
        except Exception:
            _tiktoken_encoder = None
    return _tiktoken_encoder


def estimate_tokens(text: str) -> int:
    """Estimate token count for a string.

    Uses `tiktoken` when its encoder is available; otherwise falls back to roughly
    four characters per token.

    Args:
        text: Input text to estimate tokens for.

    Returns:
        Estimated number of tokens in `text`.
    """
    encoder = _get_encoder()
    if encoder is not None:
        return len(encoder.encode(text, disallowed_special=()))
    return len(text) // 4


def split_lines(text: str) -> list[str]:
    """Split text into lines the way the document layout expects.

    Only `\\n` separates lines. A trailing newline does not produce an extra empty
    line, and a `\\r` left at the end of a line (CRLF input) is dropped. Unlike
    `str.splitlines`, form feeds and other Unicode separators stay inside the line.

    Args:
        text: Input text.

    Returns:
        List of lines without terminators. Empty text yields an empty list.
    """
    if not text:
        return []

    lines = text.split("\n")
    if text.endswith("\n"):
        lines.pop()

    return [line[:-1] if line.endswith("\r") else line for line in lines]


def detect_encoding(data: bytes) -> str:
    """Detect a likely text encoding for raw bytes.

    Prefers UTF-8 and only consults `chardet` when strict UTF-8 decoding fails.

    Args:
        data: Raw bytes (a sample is enough).

    Returns:
        A normalized encoding label (e.g., `"utf-8"`, `"utf-8-sig"`, `"utf-16-le"`).
    """
    if not data:
        return "utf-8"

    # BOM markers first (most reliable)
    if data.startswith(b"\xef\xbb\xbf"):
        return "utf-8-sig"
    if data.startswith(b"\xff\xfe"):
        return "utf-16-le"
    if data.startswith(b"\xfe\xff"):
        return "utf-16-be"

    try:
        data.decode("utf-8")
        return "utf-8"
    except UnicodeDecodeError:
        pass

    result = chardet.detect(data)
    encoding_any = result.get("encoding")

    if not isinstance(encoding_any, str) or not encoding_any:
        return "utf-8"

    encoding = encoding_any.lower()
    if encoding in ("ascii", "utf-8", "utf8"):
        return "utf-8"

    return encoding


def decode_text(data: bytes) -> tuple[str, str]:
    """Decode bytes with encoding detection, replacing undecodable sequences.

    Args:
        data: Raw bytes.

    Returns:
        A tuple `(text, encoding_used)`.
    """
    encoding = detect_encoding(data)
    try:
        return data.decode(encoding, errors="replace"), encoding
    except LookupError:
        # chardet reported a codec Python does not know
        return data.decode("utf-8", errors="replace"), "utf-8"


def read_text_safe(file_path: Path) -> tuple[str, str]:
    """Read a text file robustly with encoding detection.

    Args:
        file_path: Path to the file to read.

    Returns:
        A tuple `(content, encoding_used)`.

    Raises:
        OSError: If the file cannot be read.
    """
    with open(file_path, "rb") as f:
        data = f.read()
    return decode_text(data)
