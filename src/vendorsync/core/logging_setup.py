from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_VENDORSYNC_HANDLER: logging.Handler | None = None
_JSON_MODE_NULL_HANDLER_INSTALLED: bool = False


def _level_from_name(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(level: str = "WARNING") -> None:
    """Install a single stderr handler on the root logger.

    Idempotent per-process: calling again only updates the level.
    """
    global _VENDORSYNC_HANDLER

    root = logging.getLogger()
    root.setLevel(_level_from_name(level))

    if _VENDORSYNC_HANDLER is not None:
        _VENDORSYNC_HANDLER.setLevel(_level_from_name(level))
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(_level_from_name(level))
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    _VENDORSYNC_HANDLER = handler


def suppress_lastresort_in_json_mode() -> None:
    """Keep stdlib logging's lastResort handler off stderr in ``--json`` mode.

    A NullHandler on an otherwise handler-less root logger is enough.
    """
    global _JSON_MODE_NULL_HANDLER_INSTALLED

    root = logging.getLogger()
    if root.handlers or _JSON_MODE_NULL_HANDLER_INSTALLED:
        return
    root.addHandler(logging.NullHandler())
    _JSON_MODE_NULL_HANDLER_INSTALLED = True


def reset_logging_for_tests() -> None:
    """Test-only: clear configured handlers."""
    global _VENDORSYNC_HANDLER, _JSON_MODE_NULL_HANDLER_INSTALLED
    root = logging.getLogger()
    if _VENDORSYNC_HANDLER is not None:
        root.removeHandler(_VENDORSYNC_HANDLER)
        _VENDORSYNC_HANDLER.close()
    for h in list(root.handlers):
        if isinstance(h, logging.NullHandler):
            root.removeHandler(h)
    _VENDORSYNC_HANDLER = None
    _JSON_MODE_NULL_HANDLER_INSTALLED = False


__all__ = ["configure_logging", "suppress_lastresort_in_json_mode", "reset_logging_for_tests", "LOG_FORMAT"]
