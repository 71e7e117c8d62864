"""pygls client speaking to the axels server over stdio."""

import logging
from typing import Any, Callable, Optional

from pygls.lsp.client import BaseLanguageClient
from pygls.protocol import LanguageServerProtocol

from axelsp import __version__
from axelsp.session.router import NotificationRouter

logger = logging.getLogger("axelsp.client")

# Receives the server process return code
ExitCallback = Callable[[Optional[int]], None]


def to_plain(value: Any, converter: Any = None) -> Any:
    """Convert notification params to plain JSON data.

    pygls hands known notifications over as attrs objects and unknown ones as
    generated named tuples; the router only deals with dicts and lists.
    """
    if converter is not None and hasattr(type(value), "__attrs_attrs__"):
        return converter.unstructure(value)
    if hasattr(value, "_asdict"):
        return {key: to_plain(item, converter) for key, item in value._asdict().items()}
    if isinstance(value, dict):
        return {key: to_plain(item, converter) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(item, converter) for item in value]
    return value


class RoutingProtocol(LanguageServerProtocol):
    """Protocol handing every server notification to the client's router."""

    def _handle_notification(self, method_name, params):
        router: Optional[NotificationRouter] = getattr(self._server, "router", None)
        if router is None:
            super()._handle_notification(method_name, params)
            return
        router.dispatch(method_name, to_plain(params, self._converter))


class AxeLanguageClient(BaseLanguageClient):
    """Language client bound to one axels server process."""

    def __init__(self, router: NotificationRouter, on_exit: Optional[ExitCallback] = None):
        """Initialize the client.

        Args:
            router: Receives every notification sent by the server.
            on_exit: Called with the return code when the server process exits.
        """
        super().__init__("axelsp", __version__, protocol_cls=RoutingProtocol)
        self.router = router
        self.on_exit = on_exit

        # Server-to-client requests the session has nothing to do for
        @self.feature("client/registerCapability")
        def _register_capability(params):
            return None

        @self.feature("window/workDoneProgress/create")
        def _create_progress(params):
            return None

    async def server_exit(self, server):
        logger.debug(f"Server process exited with return code {server.returncode}")
        if self.on_exit is not None:
            self.on_exit(server.returncode)
