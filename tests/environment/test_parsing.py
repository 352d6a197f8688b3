"""
Tests for ActionRequest and the free-text action parser.
"""

import pytest

from ariaeye.environment.parsing import (
    ActionRequest,
    detect_action,
    extract_paths,
    normalize_key,
    parse_action_text,
    quoted_substrings,
    split_drag_target,
)


# =============================================================================
# ActionRequest Tests
# =============================================================================

class TestActionRequest:
    """Tests for the structured request model."""

    @pytest.mark.parametrize(
        "raw,expected",
        [("Select Option", "select_option"), ("press-key", "press_key"), ("  CLICK ", "click"), ("", None), (None, None)],
    )
    def test_action_normalized(self, raw, expected):
        """Test action names are normalized."""
        assert ActionRequest(action=raw).action == expected

    def test_merged_with(self):
        """Test set fields win over the fallback."""
        request = ActionRequest(text="mine")
        fallback = ActionRequest(action="type", text="theirs", submit=True, values=["x"])

        merged = request.merged_with(fallback)

        assert merged.action == "type"
        assert merged.text == "mine"
        assert merged.submit is True
        assert merged.values == ["x"]

    def test_empty_text_is_kept(self):
        """Test an explicit empty string still counts as set."""
        assert ActionRequest(text="").merged_with(ActionRequest(text="other")).text == ""


# =============================================================================
# Helper Tests
# =============================================================================

class TestHelpers:
    """Tests for the parsing helpers."""

    def test_quoted_substrings(self):
        """Test double, curly and single quotes are recognized."""
        assert quoted_substrings('type "hello" then “world” and \'again\'') == ["hello", "world", "again"]

    def test_apostrophes_not_quotes(self):
        """Test apostrophes inside words are not quotes."""
        assert quoted_substrings("click the user's profile and it's menu") == []

    @pytest.mark.parametrize(
        "description,expected",
        [
            ("click the Sign in button", "click"),
            ("the Sign in button", "click"),
            ('type "cats" into the search box', "type"),
            ("fill the email field", "type"),
            ("press Enter in the search box", "press_key"),
            ("select 'Blue' in the color dropdown", "select_option"),
            ("hover over the avatar", "hover"),
            ("drag the Todo card to the Done column", "drag"),
            ("upload report.pdf to the attachment field", "file_upload"),
            ("typeahead suggestions list", "click"),
        ],
    )
    def test_detect_action(self, description, expected):
        """Test keyword detection, defaulting to click."""
        assert detect_action(description) == expected

    @pytest.mark.parametrize("key,expected", [("enter", "Enter"), ("ESC", "Escape"), ("up", "ArrowUp"), ("a", "a"), ("f5", "F5")])
    def test_normalize_key(self, key, expected):
        """Test common key names map to Playwright key names."""
        assert normalize_key(key) == expected

    def test_split_drag_target(self):
        """Test the target phrase follows to / onto / into."""
        assert split_drag_target("drag the Todo card to the Done column") == ("drag the Todo card", "the Done column")
        assert split_drag_target("drag the file onto the drop zone") == ("drag the file", "the drop zone")
        assert split_drag_target("drag the slider") == ("drag the slider", None)

    def test_extract_paths(self):
        """Test quoted paths win, otherwise path-like tokens are used."""
        assert extract_paths('upload "my file.txt" here') == ["my file.txt"]
        assert extract_paths("upload /tmp/report.pdf to the form") == ["/tmp/report.pdf"]


# =============================================================================
# parse_action_text Tests
# =============================================================================

class TestParseActionText:
    """Tests for the free-text fallback."""

    def test_type(self):
        """Test type text, submit and slowly."""
        request = parse_action_text('slowly type "hello world" into the search box and submit')

        assert request.action == "type"
        assert request.text == "hello world"
        assert request.submit is True
        assert request.slowly is True

    def test_type_without_quotes(self):
        """Test unquoted type descriptions yield no text."""
        assert parse_action_text("type into the search box").text is None

    def test_select(self):
        """Test every quoted string is an option value."""
        request = parse_action_text('select "Red" and "Blue" in the colors list')

        assert request.values == ["Red", "Blue"]

    def test_press_key(self):
        """Test the key name is normalized."""
        assert parse_action_text("press the escape key").key == "Escape"
        assert parse_action_text("press key Escape").key == "Escape"
        assert parse_action_text("press the key Tab").key == "Tab"

    def test_drag(self):
        """Test the drop target phrase is captured."""
        assert parse_action_text("drag the Todo card to the Done column").target == "the Done column"

    def test_file_upload(self):
        """Test paths are captured."""
        assert parse_action_text("upload ./docs/cv.pdf to the resume field").paths == ["./docs/cv.pdf"]

    def test_explicit_action_wins(self):
        """Test a caller-provided action skips keyword detection."""
        request = parse_action_text('press "Go" on the form', action="type")

        assert request.action == "type"
        assert request.text == "Go"
