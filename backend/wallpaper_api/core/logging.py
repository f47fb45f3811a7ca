from __future__ import annotations

import logging

from wallpaper_api.core.redact import redact_any

LOG_FORMAT = "%(levelname)s %(name)s %(message)s"


class RedactFilter(logging.Filter):
    """Masks bearer tokens and sensitive mapping values before a record is emitted."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
            record.msg = redact_any(message)
            record.args = ()
        except Exception:
            # A malformed format string must not drop the record.
            pass
        return True


def _coerce_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).strip().upper())
    return value if isinstance(value, int) else logging.INFO


def configure_logging(level: int | str = logging.INFO) -> None:
    logging.basicConfig(level=_coerce_level(level), format=LOG_FORMAT)
    root = logging.getLogger()
    if not any(isinstance(f, RedactFilter) for f in root.filters):
        root.addFilter(RedactFilter())
    for handler in root.handlers:
        if not any(isinstance(f, RedactFilter) for f in handler.filters):
            handler.addFilter(RedactFilter())


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
