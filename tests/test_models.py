"""Tests for the models module."""

from pathlib import Path

import pytest

from xml_context.formatter import format_request
from xml_context.models import DocumentStats, FileRecord, FormatRequest, coerce_file_record


class TestCoerceFileRecord:
    """Tests for coerce_file_record."""

    def test_record_passthrough(self):
        """Test that a FileRecord is returned as-is."""
        record = FileRecord(path="a.py", code="x")
        assert coerce_file_record(record) is record

    def test_mapping(self):
        """Test converting a mapping with string fields."""
        assert coerce_file_record({"path": "a.py", "code": "x", "extra": 1}) == FileRecord(
            "a.py", "x"
        )

    @pytest.mark.parametrize(
        "entry",
        [
            {"path": "a.py"},
            {"code": "x"},
            {"path": None, "code": "x"},
            {"path": "a.py", "code": 3},
            ["a.py", "x"],
            "a.py",
            None,
        ],
    )
    def test_unusable_entries(self, entry):
        """Test that entries without string path and code give None."""
        assert coerce_file_record(entry) is None


class TestFormatRequest:
    """Tests for FormatRequest."""

    def test_defaults_are_absent(self):
        """Test that optional fields default to None."""
        request = FormatRequest(project_path="/p")

        assert request.source_tree is None
        assert request.instructions is None
        assert request.files == []

    def test_from_dict_keeps_empty_strings(self):
        """Test that empty strings survive as present values."""
        request = FormatRequest.from_dict({"project_path": "/p", "instructions": ""})

        assert request.instructions == ""
        assert request.git_diff is None

    def test_from_dict_requires_project_path(self):
        """Test that project_path is mandatory."""
        with pytest.raises(KeyError):
            FormatRequest.from_dict({"files": []})

    def test_to_dict_omits_absent_fields(self):
        """Test that None fields are left out of the dictionary."""
        request = FormatRequest(
            project_path=Path("/p"),
            files=[FileRecord("a.py", "x"), {"path": "b.py", "code": "y"}],
            git_diff="d",
        )

        assert request.to_dict() == {
            "project_path": "/p",
            "git_diff": "d",
            "files": [{"path": "a.py", "code": "x"}, {"path": "b.py", "code": "y"}],
        }

    def test_dict_round_trip_formats_identically(self):
        """Test that to_dict/from_dict preserve the rendered document."""
        request = FormatRequest(
            project_path="/p",
            source_tree="tree",
            files=[FileRecord("a.py", "```py\nx\n```")],
            git_log_branch="log",
            instructions="",
        )

        restored = FormatRequest.from_dict(request.to_dict())

        assert format_request(restored) == format_request(request)

    def test_valid_files(self):
        """Test that valid_files filters and normalizes entries."""
        request = FormatRequest(
            project_path="/p",
            files=[{"path": "a", "code": "x"}, {"path": "b"}, FileRecord("c", "y")],
        )

        assert request.valid_files() == [FileRecord("a", "x"), FileRecord("c", "y")]


class TestDocumentStats:
    """Tests for DocumentStats."""

    def test_to_dict(self):
        """Test dictionary conversion."""
        stats = DocumentStats(
            files_received=3,
            files_included=2,
            files_skipped=1,
            sections=["project_path", "files", "final_instruction"],
            output_chars=100,
            tokens_estimated=25,
        )

        assert stats.to_dict() == {
            "files_included": 2,
            "files_received": 3,
            "files_skipped": 1,
            "output_chars": 100,
            "sections": ["project_path", "files", "final_instruction"],
            "tokens_estimated": 25,
        }
