"""Logging setup shared by the API process and the test suite."""
import logging

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Attach a stream handler to the root logger once and set the level.

    Uvicorn installs its own handlers on its named loggers; application
    modules log through ``logging.getLogger(__name__)`` and propagate here.
    """
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)

    root.setLevel(level.upper())
