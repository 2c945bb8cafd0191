"""Root logger setup for the command line.

Library modules only call ``logging.getLogger(__name__)`` and attach cohort or
model details through ``extra=``; :func:`configure_logging` decides how those
records are rendered.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Any, Mapping

from .settings import Settings, get_settings

__all__ = ["JSONFormatter", "configure_logging"]

_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}

_PLAIN_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Third-party loggers that are noisy at INFO while figures are rendered.
_DEFAULT_MODULE_LEVELS: dict[str, int | str] = {"matplotlib": logging.WARNING}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, including ``extra=`` fields."""

    def __init__(self, *, default_context: Mapping[str, Any] | None = None) -> None:
        super().__init__()
        self._default_context = dict(default_context or {})

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **self._default_context,
        }
        payload.update(
            (key, value) for key, value in vars(record).items() if key not in _STANDARD_ATTRS
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(
    *,
    settings: Settings | None = None,
    level: int | str = logging.INFO,
    structured: bool | None = None,
    module_levels: Mapping[str, int | str] | None = None,
    stream: IO[str] | None = None,
    context: Mapping[str, Any] | None = None,
    log_file: Path | None = None,
) -> None:
    """Send records to ``stream`` and append them to the run log.

    ``structured=None`` follows ``settings.structured_logging``; the run log
    defaults to ``settings.log_file``. ``context`` is merged into every JSON
    record (e.g. ``{"command": "distance"}``).
    """

    settings = settings or get_settings()
    if structured is None:
        structured = settings.structured_logging
    formatter = (
        JSONFormatter(default_context=context)
        if structured
        else logging.Formatter(_PLAIN_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    )

    target = Path(log_file) if log_file is not None else settings.log_file
    target.parent.mkdir(parents=True, exist_ok=True)
    handlers = [logging.StreamHandler(stream), logging.FileHandler(target, encoding="utf-8")]

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.DEBUG)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name, name_level in {**_DEFAULT_MODULE_LEVELS, **(module_levels or {})}.items():
        logging.getLogger(name).setLevel(name_level)
