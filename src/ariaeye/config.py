"""
Configuration classes for Eye sessions and embedding clients.
"""

import os
from dataclasses import dataclass
from typing import Literal, Optional


RenderMode = Literal["raw", "regex"]


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"Environment variable {name} must be a number, got {raw!r}") from e


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class EyeConfig:
    """Configuration for a look/wait/act session."""

    # Memory scope the snapshot records are written under
    scope_id: str = "eye-client"
    ref_prefix: str = ""
    search_limit: int = 100

    # Delay before each capture so pending DOM updates land (ms)
    settle_delay_ms: int = 300

    # Similarity thresholds per operation
    look_threshold: float = 0.5
    wait_threshold: float = 0.5
    act_threshold: float = 0.6

    # wait() polling
    wait_timeout_ms: int = 30000
    polling_interval_ms: int = 1000

    # Visual feedback
    blink_ms: int = 400
    highlight: bool = True
    highlight_duration_ms: int = 3000

    # Error payloads
    candidate_dump_limit: int = 5

    render_mode: RenderMode = "raw"

    def __post_init__(self):
        for name in ("look_threshold", "wait_threshold", "act_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be between 0 and 1, got {value}")
        if self.search_limit <= 0:
            raise ValueError("search_limit must be positive")
        if self.polling_interval_ms <= 0:
            raise ValueError("polling_interval_ms must be positive")
        if self.wait_timeout_ms < 0:
            raise ValueError("wait_timeout_ms cannot be negative")
        if self.settle_delay_ms < 0:
            raise ValueError("settle_delay_ms cannot be negative")
        if self.candidate_dump_limit < 0:
            raise ValueError("candidate_dump_limit cannot be negative")
        if self.render_mode not in ("raw", "regex"):
            raise ValueError(f"render_mode must be 'raw' or 'regex', got {self.render_mode!r}")
        if not self.scope_id:
            raise ValueError("scope_id cannot be empty")

    @classmethod
    def from_env(cls, **overrides) -> "EyeConfig":
        """Create an EyeConfig from ARIAEYE_* environment variables."""
        values = dict(
            scope_id=os.getenv("ARIAEYE_SCOPE_ID", cls.scope_id),
            ref_prefix=os.getenv("ARIAEYE_REF_PREFIX", cls.ref_prefix),
            search_limit=int(_env_float("ARIAEYE_SEARCH_LIMIT", cls.search_limit)),
            settle_delay_ms=int(_env_float("ARIAEYE_SETTLE_DELAY_MS", cls.settle_delay_ms)),
            look_threshold=_env_float("ARIAEYE_LOOK_THRESHOLD", cls.look_threshold),
            wait_threshold=_env_float("ARIAEYE_WAIT_THRESHOLD", cls.wait_threshold),
            act_threshold=_env_float("ARIAEYE_ACT_THRESHOLD", cls.act_threshold),
            wait_timeout_ms=int(_env_float("ARIAEYE_WAIT_TIMEOUT_MS", cls.wait_timeout_ms)),
            polling_interval_ms=int(_env_float("ARIAEYE_POLLING_INTERVAL_MS", cls.polling_interval_ms)),
            blink_ms=int(_env_float("ARIAEYE_BLINK_MS", cls.blink_ms)),
            highlight=_env_bool("ARIAEYE_HIGHLIGHT", cls.highlight),
            highlight_duration_ms=int(_env_float("ARIAEYE_HIGHLIGHT_DURATION_MS", cls.highlight_duration_ms)),
            render_mode=os.getenv("ARIAEYE_RENDER_MODE", cls.render_mode),
        )
        values.update(overrides)
        return cls(**values)


@dataclass
class EmbedderConfig:
    """Configuration for an OpenAI-compatible embeddings endpoint."""

    base_url: str = "http://localhost:11434/v1/"
    model: str = "nomic-embed-text"
    api_key: Optional[str] = None
    timeout_s: float = 30.0

    def __post_init__(self):
        if not self.base_url:
            raise ValueError("base_url cannot be empty")
        if not self.model:
            raise ValueError("model cannot be empty")
        if self.timeout_s <= 0:
            raise ValueError("timeout_s must be positive")

    @property
    def embeddings_url(self) -> str:
        return self.base_url.rstrip("/") + "/embeddings"

    @classmethod
    def from_env(cls, **overrides) -> "EmbedderConfig":
        values = dict(
            base_url=os.getenv("ARIAEYE_EMBED_BASE_URL", cls.base_url),
            model=os.getenv("ARIAEYE_EMBED_MODEL", cls.model),
            api_key=os.getenv("OPENAI_API_KEY"),
            timeout_s=_env_float("ARIAEYE_EMBED_TIMEOUT_S", cls.timeout_s),
        )
        values.update(overrides)
        return cls(**values)
