"""Logging utilities for treegit.

treegit is used as a library as well as a command, so the package logger
carries a null handler and stays silent unless the application configures
logging. Modules only need ``getLogger``, re-exported here.
"""

import logging
import os
import sys

getLogger = logging.getLogger

TRACE_ENV = "TREEGIT_TRACE"


class _NullHandler(logging.Handler):
    """No-op logging handler to avoid unexpected logging warnings."""

    def emit(self, record: logging.LogRecord) -> None:
        pass


_NULL_HANDLER = _NullHandler()
_TREEGIT_LOGGER = getLogger("treegit")
_TREEGIT_LOGGER.addHandler(_NULL_HANDLER)


def _trace_target() -> str | None:
    """Read ``TREEGIT_TRACE``.

    Returns None when tracing is disabled, ``"-"`` for stderr
    (``1``/``true``), or a file path.
    """
    value = os.environ.get(TRACE_ENV, "")
    if not value or value.lower() in ("0", "false"):
        return None
    if value.lower() in ("1", "true", "2"):
        return "-"
    return value


def default_logging_config() -> None:
    """Set up the default treegit loggers for command-line use."""
    target = _trace_target()
    if target is None:
        logging.basicConfig(level=logging.WARNING, stream=sys.stderr)
        return
    if target == "-":
        handler: logging.Handler = logging.StreamHandler(sys.stderr)
    else:
        handler = logging.FileHandler(target)
    handler.setFormatter(logging.Formatter("%(asctime)s %(name)s %(levelname)s: %(message)s"))
    _TREEGIT_LOGGER.removeHandler(_NULL_HANDLER)
    _TREEGIT_LOGGER.addHandler(handler)
    _TREEGIT_LOGGER.setLevel(logging.DEBUG)
