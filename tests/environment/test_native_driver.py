"""
Tests for the in-memory NativeDriver.
"""

import pytest

from ariaeye.aria.dom import DomElement
from ariaeye.aria.html import parse_html
from ariaeye.environment.driver import NativeDriver
from ariaeye.exceptions import ActionExecutionError, DriverNotReadyError


FORM = """
<form>
  <input id="q" type="text">
  <input id="agree" type="checkbox">
  <input id="r1" type="radio" name="size" checked>
  <input id="r2" type="radio" name="size">
  <select id="color"><option>Red</option><option value="b">Blue</option></select>
  <select id="tags" multiple><option>a</option><option>b</option><option>c</option></select>
  <input id="upload" type="file">
  <details id="more"><summary id="toggle">More</summary>Hidden</details>
  <button id="go">Go</button>
</form>
"""


@pytest.fixture
def driver():
    """Driver over a small form document."""
    return NativeDriver(parse_html(FORM))


def by_id(driver, element_id):
    return driver.document.get_element_by_id(element_id)


# =============================================================================
# Capture Tests
# =============================================================================

class TestCapture:
    """Tests for install, capture and handles."""

    @pytest.mark.asyncio
    async def test_capture_requires_document(self):
        """Test capture fails before any document is loaded."""
        with pytest.raises(DriverNotReadyError):
            await NativeDriver().capture()

    @pytest.mark.asyncio
    async def test_capture_returns_same_document(self, driver):
        """Test repeated captures share node identity."""
        await driver.install()

        assert driver.installed is True
        assert await driver.capture() is await driver.capture()

    @pytest.mark.asyncio
    async def test_handles(self, driver):
        """Test handles exist only for attached elements."""
        go = by_id(driver, "go")

        assert await driver.get_handle(go) is go
        assert await driver.get_handle(DomElement("button")) is None

        driver.load(parse_html("<p>next page</p>"))
        assert await driver.get_handle(go) is None
        assert driver.history[-1] == {"action": "load", "url": "about:blank"}


# =============================================================================
# Action Tests
# =============================================================================

class TestActions:
    """Tests for the form-state effects of actions."""

    @pytest.mark.asyncio
    async def test_click_toggles_checkbox(self, driver):
        """Test clicking a checkbox toggles it."""
        agree = by_id(driver, "agree")

        await driver.click(agree)
        assert agree.checked is True
        await driver.click(agree)
        assert agree.checked is False
        assert driver.history[-1] == {"action": "click", "node_id": agree.node_id}

    @pytest.mark.asyncio
    async def test_click_radio_unchecks_group(self, driver):
        """Test checking a radio unchecks the rest of its group."""
        await driver.click(by_id(driver, "r2"))

        assert by_id(driver, "r2").checked is True
        assert by_id(driver, "r1").checked is False

    @pytest.mark.asyncio
    async def test_click_summary_toggles_details(self, driver):
        """Test clicking a summary opens and closes its details."""
        await driver.click(by_id(driver, "toggle"))
        assert by_id(driver, "more").has_attribute("open")

        await driver.click(by_id(driver, "toggle"))
        assert not by_id(driver, "more").has_attribute("open")

    @pytest.mark.asyncio
    async def test_click_detached_element(self, driver):
        """Test acting on an element from another document fails."""
        with pytest.raises(ActionExecutionError):
            await driver.click(DomElement("button"))

    @pytest.mark.asyncio
    async def test_type_text(self, driver):
        """Test typing sets the value and submit presses Enter."""
        query = by_id(driver, "q")

        await driver.type_text(query, "cats", submit=True)

        assert query.value == "cats"
        assert driver.focused is query
        assert driver.history[-2]["action"] == "type"
        assert driver.history[-1] == {"action": "press_key", "key": "Enter", "node_id": query.node_id}

    @pytest.mark.asyncio
    async def test_type_into_non_editable(self, driver):
        """Test typing into a button fails."""
        with pytest.raises(ActionExecutionError, match="not an <input>"):
            await driver.type_text(by_id(driver, "go"), "x")

    @pytest.mark.asyncio
    async def test_press_key_without_element(self, driver):
        """Test a key press with nothing focused targets the page."""
        await driver.press_key("Escape")

        assert driver.history[-1] == {"action": "press_key", "key": "Escape", "node_id": None}

    @pytest.mark.asyncio
    async def test_select_single(self, driver):
        """Test single selects keep one option, matched by value or label."""
        color = by_id(driver, "color")

        assert await driver.select_option(color, ["Blue"]) == ["b"]
        assert color.value == "b"
        assert await driver.select_option(color, ["Red", "b"]) == ["Red"]

    @pytest.mark.asyncio
    async def test_select_multiple(self, driver):
        """Test multi-selects keep every matched option."""
        assert await driver.select_option(by_id(driver, "tags"), ["a", "c"]) == ["a", "c"]

    @pytest.mark.asyncio
    async def test_select_errors(self, driver):
        """Test non-selects and unknown values fail."""
        with pytest.raises(ActionExecutionError, match="not a select"):
            await driver.select_option(by_id(driver, "q"), ["x"])
        with pytest.raises(ActionExecutionError):
            await driver.select_option(by_id(driver, "color"), ["Green"])

    @pytest.mark.asyncio
    async def test_hover_and_drag(self, driver):
        """Test hover and drag are recorded."""
        go, query = by_id(driver, "go"), by_id(driver, "q")

        await driver.hover(go)
        await driver.drag(go, query)

        assert driver.history[-2] == {"action": "hover", "node_id": go.node_id}
        assert driver.history[-1] == {"action": "drag", "source": go.node_id, "target": query.node_id}

    @pytest.mark.asyncio
    async def test_set_input_files(self, driver):
        """Test file inputs report the browser's fake path."""
        upload = by_id(driver, "upload")

        await driver.set_input_files(upload, ["/tmp/report.pdf"])

        assert upload.value == "C:\\fakepath\\report.pdf"
        with pytest.raises(ActionExecutionError):
            await driver.set_input_files(by_id(driver, "q"), ["/tmp/report.pdf"])
