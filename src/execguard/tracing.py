"""
Operation tracing through the standard logging module.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

logger = logging.getLogger(__name__)


class LoggingTracer:
    """
    OperationTracer that writes start/success/failure events to a logger.

    Context values are attached as ``extra`` fields so structured handlers
    can pick them up.
    """

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def start(self, operation: str, context: Mapping[str, Any]) -> None:
        self._log.debug("%s started", operation, extra={"operation": operation, **_extra(context)})

    def success(self, operation: str, context: Mapping[str, Any]) -> None:
        self._log.info("%s succeeded", operation, extra={"operation": operation, **_extra(context)})

    def failure(self, operation: str, error: str, context: Mapping[str, Any]) -> None:
        self._log.warning(
            "%s failed: %s", operation, error, extra={"operation": operation, **_extra(context)}
        )


def _extra(context: Mapping[str, Any]) -> dict[str, Any]:
    # LogRecord attributes cannot be overwritten through ``extra``.
    return {f"ctx_{key}": value for key, value in context.items()}
