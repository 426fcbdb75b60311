"""
xml-context: Format project context into an XML-tagged LLM prompt.

Takes already-collected inputs (project path, source tree, file contents, git
diff/log text, user instructions) and produces one deterministic document with
each input wrapped in its own section, closed by a final instruction that names
the sections present.
"""

__version__ = "0.1.0"

from .formatter import format_document, format_request
from .models import FileRecord, FormatRequest

__all__ = [
    "FileRecord",
    "FormatRequest",
    "__version__",
    "format_document",
    "format_request",
]
