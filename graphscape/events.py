"""
Logging and structured event helpers.

Every public entry point accepts an optional ``emit(kind, payload)``
callback. Messages are always written to the module logger; when an emitter
is supplied they are forwarded as ``("log", {"message": ...})`` events so a
UI stream can follow layout progress. A misbehaving emitter never breaks a
computation.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

Emit = Callable[[str, Dict[str, Any]], None]

DEFAULT_EMIT: Emit = lambda *_: None


def get_emit(emit: Optional[Emit]) -> Emit:
    if emit:
        return emit
    return DEFAULT_EMIT


def emit_event(emit: Optional[Emit], kind: str, payload: Dict[str, Any]) -> None:
    """Guarded emit so a bad emitter cannot kill a layout run."""
    try:
        get_emit(emit)(kind, payload)
    except Exception as exc:
        # Last-resort fallback to the module logger
        logger.debug("[events] emit(%r) failed: %s", kind, exc)


def log_event(
    logger: logging.Logger,
    msg: str,
    emit: Optional[Emit] = None,
    *,
    level: int = logging.INFO,
    **payload: Any,
) -> None:
    logger.log(level, msg)
    if emit is None:
        return
    emit_event(emit, "log", {"message": msg, **payload})
