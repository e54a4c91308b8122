"""
Structured logging with key=value and JSON output support.

[Logger][instances_api.core.logger.Logger] wraps a stdlib ``logging.Logger``
and turns keyword arguments into structured fields. In the default mode the
fields travel on the record as the ``structured_kv`` extra and are rendered
by [StructuredFormatter][instances_api.core.logger.StructuredFormatter] as
``level name event key=value ...``; in JSON mode the whole record is
serialized into the message.

Modules below the services layer (``sources``, ``utils``) log through plain
``logging.getLogger(__name__)``; installing the formatter on the root
handler gives both the same ``level name message`` prefix.

Examples:
    ```python
    from instances_api.core.logger import Logger

    logger = Logger("refresher")
    logger.info("cycle_completed", published=312, duration_s=41.2)
    # info refresher cycle_completed published=312 duration_s=41.2
    ```
"""

from __future__ import annotations

import datetime
import json
import logging
from typing import Any, ClassVar


def _truncate(value: Any, max_length: int | None) -> str:
    s = str(value)
    if max_length and len(s) > max_length:
        return s[:max_length] + f"...<truncated {len(s) - max_length} chars>"
    return s


def format_kv_pairs(
    kwargs: dict[str, Any],
    max_value_length: int | None = 1000,
    prefix: str = " ",
) -> str:
    """Format a dictionary as space-separated key=value pairs.

    Values longer than ``max_value_length`` are truncated. Empty values and
    values containing whitespace, ``=`` or quotes are escaped and wrapped in
    double quotes so the line stays machine-splittable.

    Args:
        kwargs: Key-value pairs to format.
        max_value_length: Maximum characters per value; ``None`` disables
            truncation.
        prefix: String prepended to non-empty output.

    Returns:
        Formatted string such as ``' host=yewtu.be reason="HTTP 503"'``,
        or ``""`` when ``kwargs`` is empty.
    """
    if not kwargs:
        return ""

    parts = []
    for key, value in kwargs.items():
        s = _truncate(value, max_value_length)
        if not s or any(c in s for c in " =\"'"):
            escaped = s.replace("\\", "\\\\").replace('"', '\\"')
            parts.append(f'{key}="{escaped}"')
        else:
            parts.append(f"{key}={s}")
    return prefix + " ".join(parts)


class StructuredFormatter(logging.Formatter):
    """Render every record as ``level name message key=value ...``.

    Records produced by [Logger][instances_api.core.logger.Logger] carry
    their fields in ``structured_kv``; plain stdlib records are emitted with
    the same prefix and no fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        line = f"{record.levelname.lower()} {record.name} {record.getMessage()}"
        fields: dict[str, Any] = getattr(record, "structured_kv", {})
        if fields:
            line += format_kv_pairs(fields)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class Logger:
    """Structured logger that appends keyword arguments as fields.

    All public methods mirror the stdlib API with an extra ``**kwargs``
    parameter carrying the structured fields.

    Examples:
        ```python
        logger = Logger("prober")
        logger.warning("probe_timeout", host="invidious.example", timeout_s=30)
        ```
    """

    _DEFAULT_MAX_VALUE_LENGTH: ClassVar[int] = 1000

    def __init__(
        self,
        name: str,
        *,
        json_output: bool = False,
        max_value_length: int | None = None,
    ) -> None:
        """Initialize a structured logger.

        Args:
            name: Name passed to ``logging.getLogger()``, usually the
                service name.
            json_output: Emit one JSON object per record instead of
                key=value fields.
            max_value_length: Per-value truncation length (default 1000).
        """
        self._logger = logging.getLogger(name)
        self._json_output = json_output
        self._max_value_length = (
            max_value_length if max_value_length is not None else self._DEFAULT_MAX_VALUE_LENGTH
        )

    @property
    def name(self) -> str:
        return self._logger.name

    def _format_json(self, msg: str, level: str, kwargs: dict[str, Any]) -> str:
        record = {
            "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
            "level": level,
            "service": self._logger.name,
            "message": msg,
            **kwargs,
        }
        return json.dumps(record, default=str)

    def _make_extra(self, kwargs: dict[str, Any]) -> dict[str, Any]:
        if not kwargs:
            return {}
        limit = self._max_value_length
        fields = {
            key: _truncate(value, limit) if limit and len(str(value)) > limit else value
            for key, value in kwargs.items()
        }
        return {"structured_kv": fields}

    def _log(self, level: int, msg: str, kwargs: dict[str, Any], *, exc_info: bool = False) -> None:
        if not self._logger.isEnabledFor(level):
            return
        if self._json_output:
            name = "error" if exc_info else logging.getLevelName(level).lower()
            self._logger.log(level, self._format_json(msg, name, kwargs), exc_info=exc_info)
        else:
            self._logger.log(level, msg, extra=self._make_extra(kwargs), exc_info=exc_info)

    def debug(self, msg: str, **kwargs: Any) -> None:
        """Log at DEBUG level with optional fields."""
        self._log(logging.DEBUG, msg, kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        """Log at INFO level with optional fields."""
        self._log(logging.INFO, msg, kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        """Log at WARNING level with optional fields."""
        self._log(logging.WARNING, msg, kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        """Log at ERROR level with optional fields."""
        self._log(logging.ERROR, msg, kwargs)

    def critical(self, msg: str, **kwargs: Any) -> None:
        """Log at CRITICAL level with optional fields."""
        self._log(logging.CRITICAL, msg, kwargs)

    def exception(self, msg: str, **kwargs: Any) -> None:
        """Log at ERROR level with the current exception traceback."""
        self._log(logging.ERROR, msg, kwargs, exc_info=True)
