"""
System Logger
=============

Structured audit logger used by the inventory engine.

Usage:
    from uproar.services.system_logger import SystemLogger

    system_logger = SystemLogger("inventory")
    system_logger.info("Game inventory reserved", {"game_id": 7, "quantity": 2})
    system_logger.error("Error checking inventory availability", exc, {"item_count": 3})

The context map travels on the record as `record.context` (rendered by
the JSON formatter in uproar.logging_config). Logging never raises into
the caller: an audit entry that fails to write must not undo the
operation it describes.
"""

import logging
from typing import Optional, Any, Dict


class SystemLogger:
    """Thin structured wrapper around a stdlib logger."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(f"uproar.audit.{name}")

    def _emit(
        self,
        level: int,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        try:
            context = dict(context or {})
            if error is not None:
                context.setdefault("error", str(error))
                context.setdefault("error_type", type(error).__name__)
            suffix = " ".join(f"{key}={value}" for key, value in context.items())
            self.logger.log(
                level,
                f"{message} {suffix}".rstrip(),
                exc_info=error if error is not None else None,
                extra={"context": context},
            )
        except Exception:
            # Never propagate logging failures.
            pass

    def info(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._emit(logging.INFO, message, context)

    def warning(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._emit(logging.WARNING, message, context)

    def error(
        self,
        message: str,
        error: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._emit(logging.ERROR, message, context, error)
