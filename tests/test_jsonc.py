"""Tests for devcontainer.json comment handling."""

import pytest

from myspace.utils.jsonc import load_devcontainer_json, loads, strip_line_comments


class TestStripLineComments:
    """Test cases for strip_line_comments."""

    def test_trailing_comment(self):
        """Test a comment after a value."""
        assert loads('{"a": 1 // note\n}') == {"a": 1}

    def test_full_line_comments(self):
        """Test comment-only lines."""
        text = '// header\n{\n  // inner\n  "a": [1, 2]\n}\n'
        assert loads(text) == {"a": [1, 2]}

    def test_comment_on_last_line(self):
        """Test a comment with no trailing newline."""
        assert loads('{"a": true} // end') == {"a": True}

    def test_url_in_string_survives(self):
        """Test that // inside a string is not a comment."""
        text = '{"url": "https://example.com/x"} // trailing'
        assert loads(text) == {"url": "https://example.com/x"}

    def test_escaped_quote_in_string(self):
        """Test that an escaped quote does not end the string."""
        text = '{"s": "say \\"//hi\\""} // c'
        assert loads(text) == {"s": 'say "//hi"'}

    def test_no_comments_unchanged(self):
        """Test that plain JSON is returned as is."""
        text = '{"a": "b/c", "d": 1}'
        assert strip_line_comments(text) == text


class TestLoadDevcontainerJson:
    """Test cases for load_devcontainer_json."""

    def test_loads_file(self, temp_project):
        """Test loading the commented fixture file."""
        document = load_devcontainer_json(temp_project / ".devcontainer" / "devcontainer.json")

        assert document["name"] == "Test Project"
        assert document["image"] == "mcr.microsoft.com/devcontainers/base:ubuntu"
        assert "ghcr.io/devcontainers/features/node:1" in document["features"]

    def test_rejects_non_object(self, tmp_path):
        """Test that a top-level array is rejected."""
        path = tmp_path / "devcontainer.json"
        path.write_text("[1, 2] // list")

        with pytest.raises(ValueError):
            load_devcontainer_json(path)

    def test_missing_file(self, tmp_path):
        """Test that a missing file raises OSError."""
        with pytest.raises(OSError):
            load_devcontainer_json(tmp_path / "missing.json")
