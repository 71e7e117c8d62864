#!/usr/bin/env python3
"""Main service module for the Axe language server manager.

This module provides the long-lived service object that ties provisioning and
session supervision together and implements the operator commands: activate,
deactivate, show debug info, restart and update.
"""

import asyncio
import logging
import platform as host
import sys
from pathlib import Path
from typing import Optional

import click

from axelsp.config import Settings, load_settings
from axelsp.errors import AcquisitionError, AxeLspError, SessionStartError
from axelsp.provisioning.locator import ExecutableLocator
from axelsp.session.controller import SessionController, SessionState
from axelsp.session.router import ConsoleSink, MessageSink, NotificationRouter, PopupLevel
from axelsp.utils.storage import StorageScope


class AxeLanguageService:
    """Owns the locator, the session and the output surfaces."""

    def __init__(
        self,
        settings: Settings,
        sink: Optional[MessageSink] = None,
        locator: Optional[ExecutableLocator] = None,
        controller: Optional[SessionController] = None,
        workspace_path: Optional[str] = None,
    ):
        """Initialize the service.

        Args:
            settings: Manager settings.
            sink: Log output and user messages. Defaults to the console.
            locator: Executable locator. Built from the settings if omitted.
            controller: Session controller. Built from the settings if omitted.
            workspace_path: Workspace root announced to the server.
        """
        self.settings = settings
        self.sink = sink or ConsoleSink()
        self.locator = locator or ExecutableLocator(
            settings, StorageScope(settings.storage_dir()), sink=self.sink,
        )

        if controller is None:
            root = Path(workspace_path or Path.cwd()).absolute()
            controller = SessionController(
                NotificationRouter(self.sink),
                handshake_timeout=settings.handshake_timeout,
                root_uri=root.as_uri(),
            )
        self.controller = controller
        self.controller.add_observer(self._log_state_change)
        self.server_path: Optional[str] = None

    def _log_state_change(self, old_state: SessionState, new_state: SessionState) -> None:
        self.sink.append_line(f"Client state changed: {old_state.label} -> {new_state.label}")
        if new_state is SessionState.RUNNING:
            self.sink.append_line("✓ Language client is now running!")

    async def activate(self) -> bool:
        """Resolve the server executable and start the session.

        Returns:
            True if the session is running, False if a failure was reported.
        """
        self.sink.append_line("Activating Axe LSP...")
        try:
            self.server_path = await self.locator.resolve()
        except AcquisitionError as e:
            self.sink.append_line(f"Failed to obtain LSP server: {e}")
            self.sink.show_message(PopupLevel.ERROR, "Axe LSP: Failed to obtain language server")
            return False

        if self.settings.stdlib_path:
            self.sink.append_line(f"Using stdlib path: {self.settings.stdlib_path}")

        try:
            await self.controller.start(self.server_path, self.settings.server_args())
        except SessionStartError as e:
            self.sink.append_line(f"✗ Language client failed to start: {e}")
            self.sink.show_message(
                PopupLevel.ERROR,
                "Axe LSP failed to start. Check the log output.",
            )
            return False

        self.sink.append_line("✓ Language client started and ready!")
        return True

    async def deactivate(self) -> None:
        """Stop the session."""
        self.sink.append_line("Deactivating Axe LSP...")
        await self.controller.stop()

    def show_debug_info(self) -> str:
        """Write a debug summary to the log output.

        Returns:
            The summary text.
        """
        state = self.controller.state
        message = "\n".join([
            "Axe LSP Debug Info",
            "==================",
            f"Server Path: {self.server_path}",
            f"Server Args: {' '.join(self.controller.args) or '(none)'}",
            f"Client State: {state.label} ({state.value})",
            f"Platform: {self.locator.platform.value} ({sys.platform})",
            f"Python Version: {host.python_version()}",
            f"Cache Path: {self.locator.cache_path}",
        ])
        self.sink.append_line("\n" + message)
        self.sink.show_message(PopupLevel.INFO, "Axe LSP: Debug info written to output channel")
        return message

    async def restart(self) -> bool:
        """Restart the session with the last launch parameters.

        Returns:
            True on success, False if a failure was reported.
        """
        self.sink.append_line("\n=== Restarting Axe LSP ===")
        try:
            if self.server_path is None:
                self.server_path = await self.locator.resolve()
            await self.controller.restart(self.server_path, self.settings.server_args())
        except AxeLspError as e:
            self.sink.append_line(f"✗ Restart failed: {e}")
            self.sink.show_message(PopupLevel.ERROR, f"Failed to restart Axe LSP: {e}")
            return False

        self.sink.append_line("✓ Client restarted successfully.")
        self.sink.show_message(PopupLevel.INFO, "Axe LSP restarted successfully")
        return True

    async def update(self) -> bool:
        """Replace the cached server with the latest release and restart.

        Returns:
            True on success, False if a failure was reported.
        """
        self.sink.append_line("\n=== Updating Axe LSP ===")

        cached = self.locator.cache_path
        try:
            if self.locator.storage.remove(cached.name):
                self.sink.append_line("Removed old LSP binary")
        except OSError as e:
            self.sink.append_line(f"Warning: Could not remove old binary: {e}")

        try:
            if self.controller.state is not SessionState.STOPPED:
                await self.controller.stop()
                self.sink.append_line("Stopped current LSP client")

            downloaded = await self.locator.download_latest()
            self.sink.append_line(f"✓ LSP updated successfully to: {downloaded}")
            self.sink.show_message(PopupLevel.INFO, "Axe LSP updated! Restarting language server...")

            self.server_path = await self.locator.resolve()
            await self.controller.start(self.server_path, self.settings.server_args())
        except AxeLspError as e:
            self.sink.append_line(f"✗ Update failed: {e}")
            self.sink.show_message(PopupLevel.ERROR, f"Failed to update Axe LSP: {e}")
            return False

        self.sink.append_line("✓ Language server restarted with new version")
        return True

    async def serve(self) -> None:
        """Activate and keep the session supervised until cancelled."""
        if not await self.activate():
            return
        try:
            await asyncio.Event().wait()
        finally:
            await self.deactivate()


@click.command()
@click.option("--settings", "settings_file", type=click.Path(dir_okay=False), default=None,
              help="Path to the settings file")
@click.option("--debug/--no-debug", default=False, help="Enable debug logging")
def main(settings_file: Optional[str], debug: bool) -> None:
    """Run the Axe language server under supervision.

    Args:
        settings_file: Path to the settings file.
        debug: Whether to enable debug logging.
    """
    # Configure logging
    log_level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    try:
        settings = load_settings(settings_file)
    except AxeLspError as e:
        raise click.ClickException(str(e))

    service = AxeLanguageService(settings)
    click.echo("Starting Axe LSP service")
    click.echo("Press Ctrl+C to stop the service")
    try:
        asyncio.run(service.serve())
    except KeyboardInterrupt:
        click.echo("Stopping service...")
    finally:
        click.echo("Service stopped")


if __name__ == "__main__":
    main()  # pylint: disable=no-value-for-parameter
