"""Deferred evaluation for debug logging.

Delivery code logs rich state (payload dumps, status transitions, batch
summaries) at DEBUG. Building those strings is wasted work in production,
so callers pass a lambda instead and the adapter only invokes it when the
level is enabled.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any


class LazyString:
    """String whose value is computed on first ``str()``.

    Example:
        ```python
        logger.debug("Batch: %s", LazyString(lambda: summarize(batch)))
        ```
    """

    __slots__ = ("_func",)

    def __init__(self, func: Callable[[], Any]) -> None:
        self._func = func

    def __str__(self) -> str:
        return str(self._func())

    def __repr__(self) -> str:
        return f"LazyString({self._func!r})"


class LazyLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that evaluates callable messages and args lazily.

    Example:
        ```python
        logger = get_lazy_logger(__name__)
        logger.debug(lambda: f"Transition {msg.id}: {old} -> {new}")
        logger.debug("Claimed %s rows", lambda: len(rows))
        ```
    """

    def log(self, level: int, msg: Any, *args: Any, **kwargs: Any) -> None:
        """Log ``msg`` at ``level``, resolving callables only when enabled.

        Args:
            level: Numeric log level.
            msg: Message, or a zero-argument callable returning one.
            *args: Format arguments; callables are invoked.
            **kwargs: Passed through to ``logging.Logger.log``.
        """
        if not self.isEnabledFor(level):
            return

        if callable(msg):
            msg = msg()
        if args:
            args = tuple(arg() if callable(arg) else arg for arg in args)

        super().log(level, msg, *args, **kwargs)

    def debug(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("exc_info", True)
        self.log(logging.ERROR, msg, *args, **kwargs)


def get_lazy_logger(name: str, **context: Any) -> LazyLoggerAdapter:
    """Return a lazy-evaluating adapter around ``logging.getLogger(name)``.

    Args:
        name: Logger name, usually ``__name__``.
        **context: Fields bound to every record emitted by the adapter.

    Returns:
        LazyLoggerAdapter for the named logger.
    """
    return LazyLoggerAdapter(logging.getLogger(name), context or {})


def lazy(func: Callable[[], Any]) -> LazyString:
    """Shorthand for ``LazyString(func)``."""
    return LazyString(func)
