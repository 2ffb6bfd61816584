"""Diagnostic sinks for topology repairs.

The tree builder and trace merge never raise on bad topology; they repair it
and report what they did to a sink. A sink is any callable accepting
``(level, message, context)`` where ``level`` is a :mod:`logging` level and
``context`` carries ``trace_id`` and ``span_id``.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

DiagnosticSink = Callable[[int, str, Dict[str, Any]], None]


def null_sink(level: int, message: str, context: Dict[str, Any]) -> None:
    """Discard every diagnostic."""


def logging_sink(logger: Optional[logging.Logger] = None) -> DiagnosticSink:
    """Return a sink forwarding diagnostics to a stdlib logger.

    ``trace_id`` and ``span_id`` are attached to each record via ``extra`` so
    formatters can reference ``%(trace_id)s``.
    """
    if logger is None:
        logger = logging.getLogger("trace_tree")

    def sink(level: int, message: str, context: Dict[str, Any]) -> None:
        if not logger.isEnabledFor(level):
            return
        logger.log(
            level,
            message,
            extra={"trace_id": context.get("trace_id"), "span_id": context.get("span_id")},
        )

    return sink


def emit(
    sink: DiagnosticSink,
    level: int,
    message: str,
    trace_id: Optional[str],
    span_id: Optional[str] = None,
) -> None:
    """Send one diagnostic to ``sink``; a failing sink never reaches the caller."""
    try:
        sink(level, message, {"trace_id": trace_id, "span_id": span_id})
    except Exception:
        logger.warning("Diagnostic sink failed for trace %r", trace_id, exc_info=True)
