"""Logging helpers for the bsurf package.

Each stage of a build logs to its own child of the ``bsurf`` logger:

* ``bsurf.knots``: knot vectors per variable and bucket-spacing reductions
  (``DEBUG``).
* ``bsurf.basis``: basis matrix shape and non-zero count (``DEBUG``).
* ``bsurf.solvers``: the system being solved (``DEBUG``) and skipped
  numerical rank checks on large systems (``WARNING``).
* ``bsurf.pipeline``: one summary line per finished build (``INFO``).

Nothing is printed until an application calls :func:`configure_logging` or
attaches its own handlers.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

ROOT_LOGGER_NAME = "bsurf"
BUILD_STAGE_LOGGERS = ("bsurf.knots", "bsurf.basis", "bsurf.solvers", "bsurf.pipeline")
_NULL_HANDLER = logging.NullHandler()


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """Return a bsurf logger carrying a single null handler.

    The null handler keeps records from reaching Python's last-resort handler
    when the application has not configured logging.

    Args:
        name: Fully qualified logger name, normally one of
            :data:`BUILD_STAGE_LOGGERS` or the ``bsurf`` root.

    Returns:
        The :class:`logging.Logger` for ``name``.
    """

    logger = logging.getLogger(name)
    if not any(isinstance(handler, logging.NullHandler) for handler in logger.handlers):
        logger.addHandler(_NULL_HANDLER)
    return logger


def configure_logging(
    level: int = logging.INFO,
    *,
    handlers: Optional[Iterable[logging.Handler]] = None,
    format_string: str | None = None,
) -> None:
    """Route bsurf build logs to ``handlers``.

    Handlers are attached to the ``bsurf`` root, so records from every build
    stage logger reach them. Use ``logging.DEBUG`` to see knot vectors and
    basis sizes, ``logging.INFO`` for build summaries only.

    Args:
        level: Level applied to the ``bsurf`` logger tree.
        handlers: Handlers to attach. A ``StreamHandler`` on stderr is
            created when none are given.
        format_string: Optional format applied to every handler.
    """

    logger = get_logger(ROOT_LOGGER_NAME)
    logger.setLevel(level)

    if handlers is None:
        handlers = [logging.StreamHandler()]

    for handler in handlers:
        if format_string:
            handler.setFormatter(logging.Formatter(format_string))
        logger.addHandler(handler)


__all__ = ["ROOT_LOGGER_NAME", "BUILD_STAGE_LOGGERS", "configure_logging", "get_logger"]
