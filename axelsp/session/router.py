"""Routing of server notifications to the log output and user messages.

Classification is kept free of side effects: each ``classify_*`` function
turns a notification into a :class:`Classification`, and the router hands the
result to a :class:`MessageSink` which does the actual output.
"""

import enum
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Union

import click

from axelsp.errors import HandlerError

POPUP_PREFIX = "Axe LSP"

# Notifications never written by the generic logger
RESERVED_PREFIXES = ("window/", "$/")
DIAGNOSTICS_METHOD = "textDocument/publishDiagnostics"


class LogSeverity(enum.IntEnum):
    """Message type codes of ``window/logMessage`` and ``window/showMessage``."""

    ERROR = 1
    WARNING = 2
    INFO = 3
    LOG = 4

    @property
    def label(self) -> str:
        return self.name.capitalize()


class PopupLevel(enum.Enum):
    """Level of a message shown to the user."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class Classification:
    """What to write for one notification."""

    lines: List[str]
    severity: Optional[LogSeverity] = None
    popup: Optional[PopupLevel] = None
    popup_text: str = ""


class MessageSink(Protocol):
    """Output surfaces a notification can end up on."""

    def append_line(self, text: str, severity: Optional[LogSeverity] = None) -> None:
        """Append a line to the log output, tagged with the server severity if any."""

    def show_message(self, level: PopupLevel, text: str) -> None:
        """Show a message to the user."""


class ConsoleSink:
    """Sink writing log lines to a logger and user messages to stderr."""

    _COLORS = {
        PopupLevel.ERROR: "red",
        PopupLevel.WARNING: "yellow",
        PopupLevel.INFO: None,
    }

    _LEVELS = {
        LogSeverity.ERROR: logging.ERROR,
        LogSeverity.WARNING: logging.WARNING,
        LogSeverity.INFO: logging.INFO,
        LogSeverity.LOG: logging.DEBUG,
    }

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("axelsp.output")

    def append_line(self, text: str, severity: Optional[LogSeverity] = None) -> None:
        self.logger.log(self._LEVELS.get(severity, logging.INFO), text)

    def show_message(self, level: PopupLevel, text: str) -> None:
        click.secho(f"[{level.value}] {text}", fg=self._COLORS[level], err=True)


def severity_label(code: Any) -> str:
    """Render a message type code, keeping unknown codes as they are."""
    try:
        return LogSeverity(code).label
    except ValueError:
        return str(code)


def popup_level(code: Any) -> PopupLevel:
    """Pick the popup level for a ``window/showMessage`` type code."""
    if code == LogSeverity.ERROR:
        return PopupLevel.ERROR
    if code == LogSeverity.WARNING:
        return PopupLevel.WARNING
    return PopupLevel.INFO


def _severity(code: Any) -> Optional[LogSeverity]:
    try:
        return LogSeverity(code)
    except ValueError:
        return None


def classify_log_message(params: Mapping[str, Any]) -> Classification:
    """Classify a ``window/logMessage`` notification."""
    code = params.get("type")
    return Classification(
        lines=[f"[LSP] {severity_label(code)}: {params.get('message', '')}"],
        severity=_severity(code),
    )


def classify_show_message(params: Mapping[str, Any]) -> Classification:
    """Classify a ``window/showMessage`` notification."""
    code = params.get("type")
    message = params.get("message", "")
    return Classification(
        lines=[f"[LSP] showMessage {severity_label(code)}: {message}"],
        severity=_severity(code),
        popup=popup_level(code),
        popup_text=f"{POPUP_PREFIX}: {message}",
    )


def is_reserved(method: str) -> bool:
    """Check whether a method is excluded from the generic notification log."""
    return method.startswith(RESERVED_PREFIXES) or method == DIAGNOSTICS_METHOD


def classify_notification(method: str, params: Any) -> Classification:
    """Classify any other notification.

    Reserved methods and high-volume diagnostics produce no lines.
    """
    if is_reserved(method):
        return Classification(lines=[])

    lines = [f"[LSP] Notification: {method}"]
    if params:
        lines.append(f"  Params: {json.dumps(params, indent=2, default=str)}")
    return Classification(lines=lines)


Handler = Callable[[str, Any], Classification]


class NotificationRouter:
    """Dispatches server notifications by method name."""

    def __init__(self, sink: Optional[MessageSink] = None):
        """Initialize the router.

        Args:
            sink: Output for the classified notifications.
        """
        self.sink = sink or ConsoleSink()
        self.logger = logging.getLogger("axelsp.router")
        self._handlers: Dict[str, Handler] = {
            "window/logMessage": lambda _method, params: classify_log_message(params),
            "window/showMessage": lambda _method, params: classify_show_message(params),
        }
        self._default: Handler = classify_notification

    def register(self, method: str, handler: Handler) -> None:
        """Route a method to a dedicated classification function.

        Args:
            method: Notification method name.
            handler: Function mapping ``(method, params)`` to a classification.
        """
        self._handlers[method] = handler

    def dispatch(self, method: str, params: Union[Mapping[str, Any], None]) -> None:
        """Handle one inbound notification.

        Errors raised while handling are logged and never propagate.

        Args:
            method: Notification method name.
            params: Notification parameters as plain JSON data.
        """
        handler = self._handlers.get(method, self._default)
        try:
            result = handler(method, params if params is not None else {})
            self._emit(result)
        except Exception as e:
            error = HandlerError(method, e)
            self.logger.error(str(error))
            try:
                self.sink.append_line(str(error))
            except Exception:
                self.logger.exception("Log output failed")

    def _emit(self, result: Classification) -> None:
        for line in result.lines:
            self.sink.append_line(line, severity=result.severity)
        if result.popup is not None:
            self.sink.show_message(result.popup, result.popup_text)
