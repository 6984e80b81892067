"""
signed_store.logger
-------------------
Structured JSON logging for the service. Every component logs through a child
of the "signed_store" logger; configure_logging() attaches the handlers once,
at process start.
"""

import logging, json, sys, time, os

ROOT_LOGGER = "signed_store"


class JsonFormatter(logging.Formatter):
    """One JSON object per line, UTC timestamps."""

    converter = time.gmtime

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%SZ"),
            "level": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """Return a logger under the signed_store namespace."""
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def configure_logging(level=None, to_file=None) -> logging.Logger:
    """Attach stdout (and optional file) JSON handlers to the root service logger."""
    logger = logging.getLogger(ROOT_LOGGER)
    if level is None:
        level = os.getenv("SIGNED_STORE_LOG_LEVEL", "INFO")
    logger.setLevel(level.upper() if isinstance(level, str) else level)

    if not logger.handlers:
        formatter = JsonFormatter()
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

        if to_file:
            # Ensure the directory exists before writing
            os.makedirs(os.path.dirname(to_file) or ".", exist_ok=True)
            file_handler = logging.FileHandler(to_file)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger
