import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class SessionLogFilter(logging.Filter):
    """
    A logging filter that ensures 'session_name' and a normalized 'name'
    are present on log records for consistent formatting.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        # Records from third-party libraries (aiohttp, playwright) carry no session.
        current_session_name = getattr(record, "session_name", None)
        if current_session_name is None:
            record.session_name = "System"
        else:
            record.session_name = str(current_session_name)

        current_logger_name = getattr(record, "name", None)
        if not current_logger_name or current_logger_name == "root":
            record.name = "DefaultLogger"
        else:
            record.name = str(current_logger_name)

        return True


# --- Logging Setup Utility ---
def init_eye_logging(
    level: int = logging.INFO, clear_existing_handlers: bool = True
) -> None:
    """
    Sets up a standardized console logging configuration for Eye sessions.

    Includes a custom filter to ensure 'session_name' is available in log records.

    Args:
        level: The desired logging level for the root logger (e.g., logging.INFO, logging.DEBUG).
        clear_existing_handlers: If True, removes any handlers already attached to the
                                 root logger. This keeps re-running setup code in a
                                 notebook from duplicating log output.
    """
    root_logger = logging.getLogger()

    if clear_existing_handlers:
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)
            handler.close()

    stream_handler = logging.StreamHandler()
    formatter = logging.Formatter(
        "%(asctime)s - %(levelname)s - [%(name)s] [%(session_name)s] %(message)s"
    )
    stream_handler.setFormatter(formatter)
    stream_handler.addFilter(SessionLogFilter())

    root_logger.addHandler(stream_handler)
    root_logger.setLevel(level)

    logging.getLogger(__name__).info(
        f"Eye logging setup complete. Root logger level set to {logging.getLevelName(level)}."
    )


def session_extra(session_name: Optional[str]) -> Dict[str, Any]:
    """Build the `extra` mapping used to tag a log record with its session."""
    return {"session_name": session_name or "System"}


def truncate(text: str, limit: int = 200) -> str:
    """Shorten text for logs and error payloads."""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."
