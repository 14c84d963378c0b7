"""Notification sinks used to report failures to the user."""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal, Protocol

import structlog

from folio_sync import ids

logger = structlog.get_logger()

Severity = Literal["error", "success", "info"]


class NotificationSink(Protocol):
    """Capability handed to components that need to report something."""

    def notify(self, message: str, severity: Severity = "error") -> None: ...


@dataclass(frozen=True)
class Toast:
    id: str
    message: str
    severity: Severity


class ToastSink:
    """Holds transient toasts that dismiss themselves after a delay."""

    def __init__(
        self,
        dismiss_after: float = 5.0,
        call_later: Callable[[float, Callable[[], None]], object] | None = None,
    ) -> None:
        self.dismiss_after = dismiss_after
        self._call_later = call_later
        self._toasts: list[Toast] = []

    @property
    def toasts(self) -> list[Toast]:
        return list(self._toasts)

    def notify(self, message: str, severity: Severity = "error") -> None:
        toast = Toast(id=ids.allocate(), message=message, severity=severity)
        self._toasts.append(toast)
        logger.debug("Toast shown", message=message, severity=severity)

        call_later = self._call_later
        if call_later is None:
            try:
                call_later = asyncio.get_running_loop().call_later
            except RuntimeError:
                # No loop to time the dismissal; the toast stays until dismissed.
                return
        call_later(self.dismiss_after, lambda: self.dismiss(toast.id))

    def dismiss(self, toast_id: str) -> None:
        self._toasts = [t for t in self._toasts if t.id != toast_id]


class LogSink:
    """Routes notifications to the structured log."""

    def notify(self, message: str, severity: Severity = "error") -> None:
        if severity == "error":
            logger.error(message)
        else:
            logger.info(message, severity=severity)


class FanOutSink:
    """Delivers each notification to several sinks."""

    def __init__(self, *sinks: NotificationSink) -> None:
        self.sinks = sinks

    def notify(self, message: str, severity: Severity = "error") -> None:
        for sink in self.sinks:
            sink.notify(message, severity)
