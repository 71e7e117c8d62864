"""Shared fakes for the axelsp tests."""
from __future__ import annotations

import asyncio

import pytest


class RecordingSink:
    """Message sink keeping everything it is given."""

    def __init__(self):
        self.lines = []
        self.severities = []
        self.popups = []

    def append_line(self, text, severity=None):
        self.lines.append(text)
        self.severities.append(severity)

    def show_message(self, level, text):
        self.popups.append((level, text))


class FakeClient:
    """Stands in for the pygls language client."""

    def __init__(self, router, on_exit, events, fail_launch=False, fail_handshake=False, hang=False,
                 exit_during_handshake=None):
        self.router = router
        self.on_exit = on_exit
        self.events = events
        self.fail_launch = fail_launch
        self.fail_handshake = fail_handshake
        self.hang = hang
        self.exit_during_handshake = exit_during_handshake
        self.cmd = None
        self.args = None
        self.env = None
        self.init_params = None

    async def start_io(self, cmd, *args, env=None):
        self.events.append('start_io')
        self.cmd, self.args, self.env = cmd, list(args), env
        if self.fail_launch:
            raise FileNotFoundError(cmd)

    async def initialize_async(self, params):
        self.events.append('initialize')
        self.init_params = params
        if self.exit_during_handshake is not None:
            self.on_exit(self.exit_during_handshake)
            await asyncio.sleep(10)
        if self.hang:
            await asyncio.sleep(10)
        if self.fail_handshake:
            raise RuntimeError('handshake rejected')

    def initialized(self, params):
        self.events.append('initialized')

    async def shutdown_async(self, params):
        self.events.append('shutdown')

    def exit(self, params):
        self.events.append('exit')

    async def stop(self):
        self.events.append('stop')


class ClientFactory:
    """Builds FakeClients and remembers them."""

    def __init__(self, **options):
        self.options = options
        self.events = []
        self.clients = []

    def __call__(self, router, on_exit):
        client = FakeClient(router, on_exit, self.events, **self.options)
        self.clients.append(client)
        return client


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def client_factory():
    return ClientFactory()
