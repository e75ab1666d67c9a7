"""
Tests for the disabled tools functionality.
"""

import logging
import sys
import tempfile
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from utils.config import parse_disabled_tools

# Sample valid tool names (subset of actual tools)
VALID_TOOL_NAMES = {
    "listCollections",
    "find",
    "insertOne",
    "updateOne",
    "deleteOne",
    "aggregate",
    "listIndexes",
}


class TestParseDisabledToolsCommaSeparated:
    """Tests for comma-separated input format."""

    def test_single_tool(self):
        """Test parsing a single tool name."""
        result = parse_disabled_tools("find", VALID_TOOL_NAMES)
        assert result == {"find"}

    def test_multiple_tools(self):
        """Test parsing multiple comma-separated tools."""
        result = parse_disabled_tools(
            "find,insertOne,deleteOne",
            VALID_TOOL_NAMES,
        )
        assert result == {
            "find",
            "insertOne",
            "deleteOne",
        }

    def test_with_spaces(self):
        """Test parsing comma-separated tools with spaces."""
        result = parse_disabled_tools(
            "find, insertOne, deleteOne",
            VALID_TOOL_NAMES,
        )
        assert result == {
            "find",
            "insertOne",
            "deleteOne",
        }

    def test_invalid_tools_ignored(self):
        """Test that invalid tool names are ignored."""
        result = parse_disabled_tools(
            "find,invalid_tool,another_invalid",
            VALID_TOOL_NAMES,
        )
        assert result == {"find"}

    def test_all_invalid_tools(self):
        """Test that all invalid tools returns empty set."""
        result = parse_disabled_tools(
            "invalid_tool,another_invalid",
            VALID_TOOL_NAMES,
        )
        assert result == set()

    def test_empty_string(self):
        """Test that empty string returns empty set."""
        result = parse_disabled_tools("", VALID_TOOL_NAMES)
        assert result == set()

    def test_none_input(self):
        """Test that None input returns empty set."""
        result = parse_disabled_tools(None, VALID_TOOL_NAMES)
        assert result == set()

    def test_whitespace_only(self):
        """Test that whitespace-only input returns empty set."""
        result = parse_disabled_tools("   ", VALID_TOOL_NAMES)
        assert result == set()

    def test_trailing_comma(self):
        """Test parsing with trailing comma."""
        result = parse_disabled_tools(
            "find,insertOne,",
            VALID_TOOL_NAMES,
        )
        assert result == {"find", "insertOne"}

    def test_leading_comma(self):
        """Test parsing with leading comma."""
        result = parse_disabled_tools(
            ",find,insertOne",
            VALID_TOOL_NAMES,
        )
        assert result == {"find", "insertOne"}


class TestParseDisabledToolsFile:
    """Tests for file input format."""

    def test_file_with_valid_tools(self):
        """Test parsing tools from a file."""
        with tempfile.NamedTemporaryFile(mode="w", suffix=".txt", delete=False) as f:
            f.write("find\n")
            f.write("insertOne\n")
            f.write("deleteOne\n")
            f.flush()

            result = parse_disabled_tools(f.name, VALID_TOOL_NAMES)
            assert result == {
                "find",
                "insertOne",
                "deleteOne",
            }

        Path(f.name).unlink()

    def test_file_with_comments(self):
        """Test parsing tools from a file with comments."""
        with tempfile.NamedTemporaryFile(mode="w", suffix=".txt", delete=False) as f:
            f.write("# This is a comment\n")
            f.write("find\n")
            f.write("# Another comment\n")
            f.write("insertOne\n")
            f.flush()

            result = parse_disabled_tools(f.name, VALID_TOOL_NAMES)
            assert result == {"find", "insertOne"}

        Path(f.name).unlink()

    def test_file_with_empty_lines(self):
        """Test parsing tools from a file with empty lines."""
        with tempfile.NamedTemporaryFile(mode="w", suffix=".txt", delete=False) as f:
            f.write("find\n")
            f.write("\n")
            f.write("   \n")
            f.write("insertOne\n")
            f.flush()

            result = parse_disabled_tools(f.name, VALID_TOOL_NAMES)
            assert result == {"find", "insertOne"}

        Path(f.name).unlink()

    def test_file_with_invalid_tools(self):
        """Test that invalid tool names in file are ignored."""
        with tempfile.NamedTemporaryFile(mode="w", suffix=".txt", delete=False) as f:
            f.write("find\n")
            f.write("invalid_tool_name\n")
            f.write("insertOne\n")
            f.flush()

            result = parse_disabled_tools(f.name, VALID_TOOL_NAMES)
            assert result == {"find", "insertOne"}

        Path(f.name).unlink()

    def test_file_with_whitespace_around_names(self):
        """Test parsing tools from a file with whitespace around names."""
        with tempfile.NamedTemporaryFile(mode="w", suffix=".txt", delete=False) as f:
            f.write("  find  \n")
            f.write("\tinsertOne\t\n")
            f.flush()

            result = parse_disabled_tools(f.name, VALID_TOOL_NAMES)
            assert result == {"find", "insertOne"}

        Path(f.name).unlink()

    def test_nonexistent_file_treated_as_tool_name(self):
        """Test that nonexistent file path is treated as comma-separated input."""
        # A path that doesn't exist should be treated as comma-separated
        result = parse_disabled_tools(
            "/nonexistent/path/to/file.txt",
            VALID_TOOL_NAMES,
        )
        # Since the path doesn't match any valid tool, result should be empty
        assert result == set()

    def test_empty_file(self):
        """Test parsing an empty file."""
        with tempfile.NamedTemporaryFile(mode="w", suffix=".txt", delete=False) as f:
            f.flush()

            result = parse_disabled_tools(f.name, VALID_TOOL_NAMES)
            assert result == set()

        Path(f.name).unlink()

    def test_file_with_only_comments(self):
        """Test parsing a file with only comments."""
        with tempfile.NamedTemporaryFile(mode="w", suffix=".txt", delete=False) as f:
            f.write("# Comment 1\n")
            f.write("# Comment 2\n")
            f.flush()

            result = parse_disabled_tools(f.name, VALID_TOOL_NAMES)
            assert result == set()

        Path(f.name).unlink()


class TestParseDisabledToolsSecurity:
    """Tests for security-related behavior."""

    def test_arbitrary_file_content_not_leaked(self):
        """Test that arbitrary file content is filtered and not leaked."""
        with tempfile.NamedTemporaryFile(mode="w", suffix=".txt", delete=False) as f:
            # Simulate content from a sensitive file like /etc/passwd
            f.write("root:x:0:0:root:/root:/bin/bash\n")
            f.write("user:x:1000:1000:User:/home/user:/bin/bash\n")
            f.write("find\n")  # One valid tool
            f.flush()

            result = parse_disabled_tools(f.name, VALID_TOOL_NAMES)
            # Only the valid tool name should be in the result
            assert result == {"find"}
            # Sensitive content should not be in the result
            assert "root:x:0:0:root:/root:/bin/bash" not in result

        Path(f.name).unlink()


class TestParseDisabledToolsEdgeCases:
    """Tests for edge cases."""

    def test_duplicate_tools(self):
        """Test that duplicate tool names are deduplicated."""
        result = parse_disabled_tools(
            "find,find,find",
            VALID_TOOL_NAMES,
        )
        assert result == {"find"}
        assert len(result) == 1

    def test_mixed_valid_invalid(self):
        """Test mixed valid and invalid tool names."""
        result = parse_disabled_tools(
            "find,invalid1,insertOne,invalid2,deleteOne",
            VALID_TOOL_NAMES,
        )
        assert result == {
            "find",
            "insertOne",
            "deleteOne",
        }

    def test_case_sensitive(self):
        """Test that tool names are case-sensitive."""
        result = parse_disabled_tools(
            "FIND,Find,insertone",
            VALID_TOOL_NAMES,
        )
        # Uppercase versions should not match
        assert result == set()


class TestParseDisabledToolsLogging:
    """Tests for diagnostics about ignored names."""

    def test_unknown_names_in_list_are_logged(self, caplog):
        """Test that unknown names from a comma-separated list are reported."""
        with caplog.at_level(logging.WARNING, logger="mongodb-mcp-server.utils.config"):
            result = parse_disabled_tools("find,dropDatabase", VALID_TOOL_NAMES)
        assert result == {"find"}
        assert "dropDatabase" in caplog.text

    def test_unknown_names_in_file_are_counted_not_echoed(self, tmp_path, caplog):
        """Test that file contents are not echoed back in diagnostics."""
        disabled = tmp_path / "disabled.txt"
        disabled.write_text("secret-value\nfind\n", encoding="utf-8")
        with caplog.at_level(logging.WARNING, logger="mongodb-mcp-server.utils.config"):
            result = parse_disabled_tools(str(disabled), VALID_TOOL_NAMES)
        assert result == {"find"}
        assert "secret-value" not in caplog.text
        assert "1 unknown" in caplog.text
