"""
Tests for the in-memory document model and the HTML loader.
"""

import pytest

from ariaeye.aria.dom import ComputedStyle, DomDocument, DomElement, DomText, id_scope
from ariaeye.aria.html import compute_style, parse_html, parse_inline_style


def find(document, tag):
    return next(el for el in document.iter_elements() if el.tag == tag)


# =============================================================================
# Document Model Tests
# =============================================================================

class TestDomModel:
    """Tests for DomElement / DomDocument behaviour."""

    def test_tag_upper_cased(self):
        """Test tags are stored like nodeName."""
        assert DomElement("button").tag == "BUTTON"

    def test_input_type_default(self):
        """Test input type defaults to text and is lower-cased."""
        assert DomElement("input").input_type == "text"
        assert DomElement("input", {"type": "CheckBox"}).input_type == "checkbox"

    def test_form_state_from_attributes(self):
        """Test value / checked / selected start from their attributes."""
        element = DomElement("input", {"type": "checkbox", "checked": "", "value": "yes"})

        assert element.checked is True
        assert element.value == "yes"
        assert element.selected is False

    def test_node_ids_unique(self):
        """Test generated node ids never repeat."""
        assert DomText("a").node_id != DomText("b").node_id

    def test_append_child_sets_owner(self):
        """Test appending propagates the owner document."""
        html = DomElement("html")
        document = DomDocument(html)
        child = html.append_child(DomElement("div"))

        assert child.owner_document is document
        assert child.parent is html

    def test_remove_child_detaches(self):
        """Test removed nodes no longer belong to the document."""
        html = DomElement("html")
        DomDocument(html)
        div = html.append_child(DomElement("div"))
        text = div.append_child(DomText("x"))

        html.remove_child(div)

        assert div.parent is None
        assert div.owner_document is None
        assert text.owner_document is None

    def test_get_element_by_id_light_dom_only(self):
        """Test document lookup ignores shadow trees."""
        html = DomElement("html")
        document = DomDocument(html)
        host = html.append_child(DomElement("div"))
        shadow = host.attach_shadow()
        inner = shadow.append_child(DomElement("span", {"id": "inner"}))

        assert document.get_element_by_id("inner") is None
        assert shadow.get_element_by_id("inner") is inner
        assert id_scope(inner) is shadow
        assert id_scope(host) is document

    def test_find_by_node_id(self):
        """Test lookup by captured node id."""
        html = DomElement("html", node_id="n1")
        document = DomDocument(html)
        button = html.append_child(DomElement("button", node_id="n2"))

        assert document.find_by_node_id("n2") is button
        assert document.find_by_node_id("missing") is None

    def test_text_content(self):
        """Test text content concatenates descendant text."""
        div = DomElement("div")
        div.append_child(DomText("a"))
        div.append_child(DomElement("b")).append_child(DomText("b"))

        assert div.text_content() == "ab"


# =============================================================================
# Style Tests
# =============================================================================

class TestComputeStyle:
    """Tests for the computed style subset."""

    def test_parse_inline_style(self):
        """Test declarations are split and lower-cased."""
        assert parse_inline_style("Display: None !important; color:red; junk") == {
            "display": "none",
            "color": "red",
        }
        assert parse_inline_style(None) == {}

    @pytest.mark.parametrize(
        "tag,attributes,expected",
        [
            ("div", {}, "block"),
            ("span", {}, "inline"),
            ("li", {}, "list-item"),
            ("button", {}, "inline-block"),
            ("script", {}, "none"),
            ("div", {"hidden": ""}, "none"),
            ("input", {"type": "hidden"}, "none"),
            ("div", {"style": "display: flex"}, "flex"),
        ],
    )
    def test_display(self, tag, attributes, expected):
        """Test UA display defaults and overrides."""
        assert compute_style(tag, attributes, None).display == expected

    def test_inherited_properties(self):
        """Test visibility, cursor and pointer-events inherit."""
        parent = ComputedStyle(display="block", visibility="hidden", cursor="pointer", pointer_events="none")

        style = compute_style("span", {}, parent)

        assert style.visibility == "hidden"
        assert style.cursor == "pointer"
        assert style.pointer_events == "none"

    def test_link_cursor(self):
        """Test links with href show a pointer cursor."""
        assert compute_style("a", {"href": "/"}, None).cursor == "pointer"
        assert compute_style("a", {}, None).cursor == "auto"


# =============================================================================
# HTML Loader Tests
# =============================================================================

class TestParseHtml:
    """Tests for parse_html."""

    def test_fragment_wrapped(self):
        """Test fragments get an html/body wrapper."""
        document = parse_html("<button>Go</button>", url="https://example.com/")

        assert document.document_element.tag == "HTML"
        assert document.body.tag == "BODY"
        assert document.url == "https://example.com/"
        assert find(document, "BUTTON").owner_document is document

    def test_comments_skipped(self):
        """Test comments do not become text nodes."""
        document = parse_html("<p>a<!-- note -->b</p>")
        paragraph = find(document, "P")

        assert [child.text for child in paragraph.children] == ["a", "b"]

    def test_class_attribute_joined(self):
        """Test multi-valued attributes come back as strings."""
        document = parse_html('<div class="a b">x</div>')

        assert find(document, "DIV").get_attribute("class") == "a b"

    def test_cursor_inherits_from_link(self):
        """Test descendants of a link inherit the pointer cursor."""
        document = parse_html('<a href="/x"><span>go</span></a>')

        assert find(document, "SPAN").style.cursor == "pointer"

    def test_textarea_value(self):
        """Test textarea value comes from its text."""
        document = parse_html("<textarea>hello</textarea>")

        assert find(document, "TEXTAREA").value == "hello"

    def test_select_value(self):
        """Test select value follows the selected option, else the first."""
        document = parse_html(
            "<select id='a'><option>One</option><option value='2'>Two</option></select>"
            "<select id='b'><option>One</option><option value='2' selected>Two</option></select>"
        )

        assert document.get_element_by_id("a").value == "One"
        assert document.get_element_by_id("b").value == "2"

    def test_declarative_shadow_root_and_slots(self):
        """Test template shadow roots attach and children are slotted."""
        document = parse_html(
            '<div id="host"><template shadowrootmode="open">'
            '<h1><slot name="title"></slot></h1><p><slot></slot></p>'
            '</template><span slot="title">Title</span>Body text</div>'
        )
        host = document.get_element_by_id("host")
        slots = [el for el in host.iter_descendants() if el.tag == "SLOT"]
        named = next(slot for slot in slots if slot.get_attribute("name") == "title")
        default = next(slot for slot in slots if not slot.has_attribute("name"))

        assert host.shadow_root is not None
        assert not any(isinstance(c, DomElement) and c.tag == "TEMPLATE" for c in host.children)
        assert [node.tag for node in named.assigned_nodes] == ["SPAN"]
        assert [node.text for node in default.assigned_nodes] == ["Body text"]
