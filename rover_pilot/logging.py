"""Logging setup for the pilot process."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Chatty libraries kept at WARNING; the BLE stack can opt back in
_ACCESS_LOGGERS = ("aiohttp.access",)
_BLUETOOTH_LOGGERS = ("bleak",)


def _build_handlers(log_path: Optional[Path]) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_path:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))
    return handlers


def configure_logging(
    level: str = "INFO", *, log_path: Optional[Path] = None, log_bluetooth: bool = False
) -> None:
    """Install console (and optional file) handlers on the root logger.

    Parameters
    ----------
    level:
        Level name such as "DEBUG"; unknown names fall back to INFO.
    log_path:
        Where to append a copy of the log. Parent directories are created.
    log_bluetooth:
        Leave bleak at the root level, useful when pairing misbehaves.
    """

    logging.captureWarnings(True)
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=_build_handlers(log_path),
        force=True,
    )

    quiet = list(_ACCESS_LOGGERS)
    if not log_bluetooth:
        quiet.extend(_BLUETOOTH_LOGGERS)
    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)
