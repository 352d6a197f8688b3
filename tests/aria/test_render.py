"""
Tests for the text and object-graph renderers.

This module tests:
- YAML-style text lines, props and escaping
- Best-guess regex mode
- Object-graph nodes with descriptive prompts and supported actions
"""

import json

import pytest

from ariaeye.aria.html import parse_html
from ariaeye.aria.render import (
    convert_to_best_guess_regex,
    describe_node,
    node_key,
    render_json,
    render_object_graph,
    render_text,
    text_contributes_info,
    yaml_escape_key,
    yaml_escape_value,
)
from ariaeye.aria.tree import AriaNode, TreeBuilder


def snapshot_of(markup: str, for_ai: bool = False):
    return TreeBuilder().build(parse_html(markup).body, for_ai=for_ai)


# =============================================================================
# Escaping Tests
# =============================================================================

class TestYamlEscaping:
    """Tests for key and value escaping."""

    @pytest.mark.parametrize("text", ["plain", "Sign in", 'button "Go" [clickable]'])
    def test_plain_scalars_untouched(self, text):
        """Test ordinary text is left as a plain scalar."""
        assert yaml_escape_value(text) == text
        assert yaml_escape_key(text) == text

    @pytest.mark.parametrize("text", ["", "- item", "key: value", "yes", "42", " padded", "[x]", "a {b}"])
    def test_values_double_quoted(self, text):
        """Test ambiguous values are double quoted."""
        escaped = yaml_escape_value(text)

        assert escaped.startswith('"') and escaped.endswith('"')

    def test_value_escapes(self):
        """Test control characters and quotes are escaped."""
        assert yaml_escape_value('say "hi"\n') == '"say \\"hi\\"\\n"'

    def test_key_single_quoted(self):
        """Test keys use single quotes with doubled apostrophes."""
        assert yaml_escape_key("- it's") == "'- it''s'"


# =============================================================================
# Best-Guess Regex Tests
# =============================================================================

class TestBestGuessRegex:
    """Tests for dynamic-content pattern conversion."""

    def test_multi_digit_number(self):
        """Test numbers of two or more digits become a pattern."""
        assert convert_to_best_guess_regex("Issues 42") == "/Issues \\d+/"

    def test_single_digit_literal(self):
        """Test single digits stay literal."""
        assert convert_to_best_guess_regex("Page 1") == "Page 1"

    def test_sizes_and_durations(self):
        """Test size and duration suffixes are generalized."""
        assert convert_to_best_guess_regex("2mb file") == "/[\\d,.]+[bkmBKM]+ file/"
        assert convert_to_best_guess_regex("took 20s") == "/took \\d+[hmsp]+/"

    def test_specials_escaped_around_match(self):
        """Test literal parts are regex-escaped."""
        assert convert_to_best_guess_regex("Total (12)") == "/Total \\(\\d+\\)/"

    def test_text_contributes_info(self):
        """Test text repeating the name adds no information."""
        node = AriaNode(role="button", name="Submit")

        assert text_contributes_info(node, "Submit") is False
        assert text_contributes_info(node, "Submit your order now") is True
        assert text_contributes_info(AriaNode(role="generic"), "anything") is True
        assert text_contributes_info(node, "") is False


# =============================================================================
# Text Form Tests
# =============================================================================

class TestRenderText:
    """Tests for render_text."""

    def test_heading(self):
        """Test a heading line with its level."""
        assert render_text(snapshot_of("<h2>Issues 42</h2>")) == '- heading "Issues 42" [level=2]'

    def test_heading_regex_mode(self):
        """Test regex mode renders the name as a pattern."""
        rendered = render_text(snapshot_of("<h2>Issues 42</h2>"), mode="regex")

        assert rendered == "- heading /Issues \\d+/ [level=2]"

    def test_link_props(self):
        """Test props render as /name children."""
        rendered = render_text(snapshot_of('<a href="/home">Home</a>'))

        assert rendered == '- link "Home" [clickable]:\n  - /url: /home'

    def test_checked_and_disabled(self):
        """Test state annotations."""
        rendered = render_text(snapshot_of(
            '<input type="checkbox" aria-label="Accept" checked>'
            '<button disabled>Pay</button>'
        ))

        assert rendered.splitlines() == [
            '- checkbox "Accept" [checked] [clickable]',
            '- button "Pay" [clickable] [disabled]',
        ]

    def test_top_level_text(self):
        """Test bare text renders as a text item."""
        assert render_text(snapshot_of("<span>hello</span>")) == "- text: hello"

    def test_refs_only_for_ai(self):
        """Test refs and cursors appear only in AI renders."""
        snapshot = snapshot_of('<button>Go</button><a href="/x">X</a>', for_ai=True)

        plain = render_text(snapshot)
        annotated = render_text(snapshot, for_ai=True)

        assert "[ref=" not in plain
        assert '- button "Go" [clickable] [ref=e2]' in annotated
        assert '- link "X" [clickable] [ref=e3] [cursor=pointer]:' in annotated

    def test_node_key_mixed_states(self):
        """Test mixed checked / pressed states."""
        node = AriaNode(role="checkbox", name="All", checked="mixed")
        toggle = AriaNode(role="button", name="Bold", pressed=True)

        assert node_key(node) == 'checkbox "All" [checked=mixed]'
        assert node_key(toggle) == 'button "Bold" [pressed]'


# =============================================================================
# Object Graph Tests
# =============================================================================

class TestRenderObjectGraph:
    """Tests for render_object_graph and describe_node."""

    def test_button_object(self):
        """Test an AI button object carries prompt, description, actions and ref."""
        graph = render_object_graph(snapshot_of("<button>Go</button>", for_ai=True), for_ai=True)
        button = graph[0]

        assert button["role"] == "button"
        assert button["name"] == "Go"
        assert button["ref"] == "e2"
        assert button["prompt"] == 'button "Go" [clickable] [ref=e2]'
        assert button["supportedActions"] == ["click", "hover", "press_key", "drag"]
        assert button["clickable"] is True
        assert button["pressed"] is False
        assert "disabled" not in button
        assert button["descriptivePrompt"] == (
            'This is a button named "Go". It performs an action when activated. '
            "It is a top-level element on the page. Currently, its state is clickable. "
            'Attributes: {"ref":"e2"}'
        )

    def test_children_carry_location(self):
        """Test child descriptions name their container."""
        graph = render_object_graph(snapshot_of("<ul><li>One</li></ul>"))
        item = graph[0]["children"][0]
        text = item["children"][0]

        assert "It is located inside the list." in item["descriptivePrompt"]
        assert item["prompt"] == "listitem: One"
        assert text == {
            "text": "One",
            "prompt": "text: One",
            "descriptivePrompt": 'This is the text content "One" located inside the listitem.',
        }

    def test_top_level_text_leaf(self):
        """Test text at the top level says so."""
        graph = render_object_graph(snapshot_of("<span>hello</span>"))

        assert graph == [{
            "text": "hello",
            "prompt": "text: hello",
            "descriptivePrompt": 'This is the text content "hello" at the top level of the page.',
        }]

    def test_no_actions_without_refs(self):
        """Test nodes without references have no supported actions."""
        graph = render_object_graph(snapshot_of("<button>Go</button>"))

        assert "supportedActions" not in graph[0]
        assert "ref" not in graph[0]

    def test_describe_states(self):
        """Test state sentences."""
        node = AriaNode(role="checkbox", name="Spam", checked=False, clickable=False, disabled=True)

        description = describe_node(node, 'the form named "Signup"')

        assert 'It is located inside the form named "Signup".' in description
        assert "Currently, its state is unchecked and not clickable and disabled." in description
        assert "Attributes" not in description

    def test_render_json_matches_graph(self):
        """Test the JSON form is the serialized object graph."""
        snapshot = snapshot_of("<h1>Title</h1>")

        assert json.loads(render_json(snapshot)) == render_object_graph(snapshot)
