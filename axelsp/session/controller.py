"""Lifecycle of the language server session."""

import asyncio
import enum
import functools
import logging
import os
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from lsprotocol import types as lsp

from axelsp import __version__
from axelsp.errors import SessionStartError
from axelsp.session.client import AxeLanguageClient, ExitCallback
from axelsp.session.router import NotificationRouter

# Merged into the inherited environment of every server process
DEBUG_ENV: Dict[str, str] = {"AXELS_DEBUG": "1"}


class SessionState(enum.IntEnum):
    """State of the session, numbered like the language client states."""

    STOPPED = 1
    STARTING = 2
    RUNNING = 3

    @property
    def label(self) -> str:
        return self.name.capitalize()


StateObserver = Callable[[SessionState, SessionState], None]
ClientFactory = Callable[[NotificationRouter, ExitCallback], Any]


class SessionController:
    """Owns the server process and its language client.

    Transitions are ``Stopped -> Starting -> Running`` on start and
    ``Starting|Running -> Stopped`` on stop or when the server process dies.
    Observers see every transition before anything else happens for it.

    Calls to start, stop and restart must not overlap; the controller holds no
    lock of its own.
    """

    def __init__(
        self,
        router: NotificationRouter,
        client_factory: ClientFactory = AxeLanguageClient,
        handshake_timeout: float = 30.0,
        root_uri: Optional[str] = None,
    ):
        """Initialize the controller.

        Args:
            router: Router receiving the server's notifications.
            client_factory: Builds a language client from a router and an exit
                callback.
            handshake_timeout: Seconds to wait for the initialize response.
            root_uri: Workspace root announced to the server.
        """
        self.router = router
        self.client_factory = client_factory
        self.handshake_timeout = handshake_timeout
        self.root_uri = root_uri
        self.logger = logging.getLogger("axelsp.session")

        self._state = SessionState.STOPPED
        self._observers: List[StateObserver] = []
        self._client: Any = None
        self._stopping = False
        self._exited: Optional[asyncio.Future] = None
        self._executable: Optional[str] = None
        self._args: List[str] = []
        self._env: Dict[str, str] = {}

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is SessionState.RUNNING

    @property
    def executable(self) -> Optional[str]:
        """Executable of the current or last session."""
        return self._executable

    @property
    def args(self) -> List[str]:
        return list(self._args)

    def add_observer(self, observer: StateObserver) -> None:
        """Register a callback receiving ``(old_state, new_state)``."""
        self._observers.append(observer)

    def remove_observer(self, observer: StateObserver) -> None:
        self._observers.remove(observer)

    async def start(
        self,
        executable: str,
        args: Sequence[str] = (),
        env: Optional[Mapping[str, str]] = None,
    ) -> None:
        """Launch the server and perform the initialize handshake.

        Args:
            executable: Path or PATH-resolvable name of the server.
            args: Extra command-line arguments.
            env: Extra environment variables, on top of the inherited ones.

        Raises:
            SessionStartError: If the process cannot be launched or the
                handshake fails.
        """
        if self._state is not SessionState.STOPPED:
            self.logger.warning(f"Session is already {self._state.label.lower()}")
            return

        self._executable = executable
        self._args = list(args)
        self._env = dict(env or {})
        self._transition(SessionState.STARTING)

        exited = asyncio.get_running_loop().create_future()
        self._exited = exited
        client = self.client_factory(self.router, functools.partial(self._on_server_exit, exited))
        self._client = client
        launch_env = {**os.environ, **self._env, **DEBUG_ENV}
        self.logger.info(f"Starting language server: {' '.join([executable, *self._args])}")

        try:
            await client.start_io(executable, *self._args, env=launch_env)
            await self._handshake(client, exited)
            client.initialized(lsp.InitializedParams())
        except asyncio.CancelledError:
            self.logger.warning("Language client start was cancelled")
            await self._abandon(client)
            raise
        except Exception as e:
            self.logger.error(f"Language client failed to start: {e!r}")
            await self._abandon(client)
            raise SessionStartError(f"Language client failed to start: {e}") from e

        if self._client is not client:
            raise SessionStartError("Language server exited during startup")

        self._transition(SessionState.RUNNING)
        self.logger.info("Language client is now running")

    async def stop(self) -> None:
        """Shut the server down gracefully. Does nothing when stopped."""
        if self._state is SessionState.STOPPED:
            return

        client = self._client
        self._client = None
        self._stopping = True
        try:
            self._transition(SessionState.STOPPED)
            if client is not None:
                await self._shutdown(client)
        finally:
            self._stopping = False
        self.logger.info("Language client stopped")

    async def restart(
        self,
        executable: Optional[str] = None,
        args: Optional[Sequence[str]] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> None:
        """Stop the session if needed and start it again.

        Omitted arguments default to those of the last start.

        Raises:
            SessionStartError: If there is nothing to restart or the new
                session fails to start.
        """
        executable = executable or self._executable
        if executable is None:
            raise SessionStartError("No server executable has been started yet")

        args = self._args if args is None else list(args)
        env = self._env if env is None else dict(env)

        if self._state is not SessionState.STOPPED:
            await self.stop()
        await self.start(executable, args, env)

    def _transition(self, new_state: SessionState) -> None:
        old_state = self._state
        if old_state is new_state:
            return
        self._state = new_state
        for observer in list(self._observers):
            try:
                observer(old_state, new_state)
            except Exception:
                self.logger.exception("State observer failed")

    def _on_server_exit(self, exited: asyncio.Future, returncode: Optional[int]) -> None:
        if not exited.done():
            exited.set_result(returncode)
        if exited is not self._exited or self._stopping or self._state is SessionState.STOPPED:
            return
        self.logger.warning(f"Language server exited unexpectedly (code {returncode})")
        self._client = None
        self._transition(SessionState.STOPPED)

    def _initialize_params(self) -> lsp.InitializeParams:
        return lsp.InitializeParams(
            process_id=os.getpid(),
            root_uri=self.root_uri,
            capabilities=lsp.ClientCapabilities(
                window=lsp.WindowClientCapabilities(work_done_progress=True),
            ),
            client_info=lsp.InitializeParamsClientInfoType(name="axelsp", version=__version__),
        )

    async def _handshake(self, client: Any, exited: asyncio.Future) -> None:
        """Wait for the initialize response, failing early if the process exits."""
        handshake = asyncio.ensure_future(client.initialize_async(self._initialize_params()))
        try:
            done, _pending = await asyncio.wait(
                {handshake, exited},
                timeout=self.handshake_timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            if not handshake.done():
                handshake.cancel()

        if handshake in done:
            handshake.result()
            return
        if exited in done:
            raise SessionStartError(f"Language server exited during startup (code {exited.result()})")
        raise asyncio.TimeoutError(f"No initialize response within {self.handshake_timeout}s")

    async def _abandon(self, client: Any) -> None:
        if self._client is client:
            self._client = None
        if self._state is not SessionState.STOPPED:
            self._transition(SessionState.STOPPED)
        await self._close(client)

    async def _shutdown(self, client: Any) -> None:
        try:
            await asyncio.wait_for(client.shutdown_async(None), timeout=self.handshake_timeout)
            client.exit(None)
        except Exception as e:
            self.logger.warning(f"Error during shutdown: {e!r}")
        finally:
            await self._close(client)

    async def _close(self, client: Any) -> None:
        try:
            await client.stop()
        except Exception as e:
            self.logger.warning(f"Error stopping language client: {e!r}")
