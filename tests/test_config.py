"""
Tests for ariaeye.config and the logging helpers in ariaeye.utils.
"""

import logging

import pytest

from ariaeye.config import EmbedderConfig, EyeConfig
from ariaeye.utils import SessionLogFilter, init_eye_logging, session_extra, truncate


# =============================================================================
# EyeConfig Tests
# =============================================================================

class TestEyeConfig:
    """Tests for EyeConfig defaults, validation and environment overrides."""

    def test_defaults(self):
        """Test default values."""
        config = EyeConfig()

        assert config.scope_id == "eye-client"
        assert config.search_limit == 100
        assert config.look_threshold == 0.5
        assert config.act_threshold == 0.6
        assert config.wait_timeout_ms == 30000
        assert config.polling_interval_ms == 1000
        assert config.blink_ms == 400
        assert config.render_mode == "raw"

    @pytest.mark.parametrize("field_name", ["look_threshold", "wait_threshold", "act_threshold"])
    def test_threshold_out_of_range(self, field_name):
        """Test thresholds must lie in [0, 1]."""
        with pytest.raises(ValueError, match=field_name):
            EyeConfig(**{field_name: 1.5})

    def test_polling_interval_must_be_positive(self):
        """Test a zero polling interval is rejected."""
        with pytest.raises(ValueError):
            EyeConfig(polling_interval_ms=0)

    def test_render_mode_validated(self):
        """Test unknown render modes are rejected."""
        with pytest.raises(ValueError):
            EyeConfig(render_mode="fancy")

    def test_from_env(self, monkeypatch):
        """Test ARIAEYE_* variables override defaults."""
        monkeypatch.setenv("ARIAEYE_SCOPE_ID", "shop")
        monkeypatch.setenv("ARIAEYE_SETTLE_DELAY_MS", "0")
        monkeypatch.setenv("ARIAEYE_LOOK_THRESHOLD", "0.7")
        monkeypatch.setenv("ARIAEYE_HIGHLIGHT", "false")

        config = EyeConfig.from_env(search_limit=10)

        assert config.scope_id == "shop"
        assert config.settle_delay_ms == 0
        assert config.look_threshold == 0.7
        assert config.highlight is False
        assert config.search_limit == 10

    def test_from_env_rejects_non_numbers(self, monkeypatch):
        """Test malformed numeric variables raise ValueError."""
        monkeypatch.setenv("ARIAEYE_LOOK_THRESHOLD", "high")

        with pytest.raises(ValueError, match="ARIAEYE_LOOK_THRESHOLD"):
            EyeConfig.from_env()


# =============================================================================
# EmbedderConfig Tests
# =============================================================================

class TestEmbedderConfig:
    """Tests for EmbedderConfig."""

    def test_embeddings_url(self):
        """Test the endpoint URL is joined without double slashes."""
        assert EmbedderConfig().embeddings_url == "http://localhost:11434/v1/embeddings"
        assert EmbedderConfig(base_url="https://api.example.com/v1").embeddings_url == "https://api.example.com/v1/embeddings"

    def test_from_env(self, monkeypatch):
        """Test environment overrides."""
        monkeypatch.setenv("ARIAEYE_EMBED_MODEL", "text-embedding-3-small")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

        config = EmbedderConfig.from_env()

        assert config.model == "text-embedding-3-small"
        assert config.api_key == "sk-test"

    def test_timeout_validated(self):
        """Test non-positive timeouts are rejected."""
        with pytest.raises(ValueError):
            EmbedderConfig(timeout_s=0)


# =============================================================================
# Logging Helper Tests
# =============================================================================

class TestLoggingHelpers:
    """Tests for the session log filter and setup."""

    def test_filter_defaults_session_name(self):
        """Test records without a session get 'System'."""
        record = logging.LogRecord("ariaeye.eye", logging.INFO, __file__, 1, "msg", None, None)

        assert SessionLogFilter().filter(record) is True
        assert record.session_name == "System"

    def test_filter_keeps_session_name(self):
        """Test an explicit session name is kept."""
        record = logging.LogRecord("ariaeye.eye", logging.INFO, __file__, 1, "msg", None, None)
        record.session_name = "checkout"

        SessionLogFilter().filter(record)

        assert record.session_name == "checkout"

    def test_filter_renames_root_logger(self):
        """Test the root logger name is normalized."""
        record = logging.LogRecord("root", logging.INFO, __file__, 1, "msg", None, None)

        SessionLogFilter().filter(record)

        assert record.name == "DefaultLogger"

    def test_init_eye_logging_adds_filtered_handler(self):
        """Test setup adds one stream handler carrying the session filter."""
        root_logger = logging.getLogger()
        saved_level = root_logger.level
        handlers_before = root_logger.handlers[:]
        try:
            init_eye_logging(level=logging.DEBUG, clear_existing_handlers=False)

            added = [h for h in root_logger.handlers if h not in handlers_before]
            assert len(added) == 1
            assert root_logger.level == logging.DEBUG
            assert any(isinstance(f, SessionLogFilter) for f in added[0].filters)
        finally:
            for handler in root_logger.handlers[:]:
                if handler not in handlers_before:
                    root_logger.removeHandler(handler)
            root_logger.setLevel(saved_level)

    def test_session_extra_and_truncate(self):
        """Test small helpers."""
        assert session_extra(None) == {"session_name": "System"}
        assert session_extra("a") == {"session_name": "a"}
        assert truncate("abc", 5) == "abc"
        assert truncate("abcdef", 3) == "abc..."
