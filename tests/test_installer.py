"""Tests for axelsp.provisioning.installer — streaming downloads."""
from __future__ import annotations

import asyncio
import os
import stat
import sys

import httpx
import pytest

from axelsp.errors import DownloadError, RedirectLoopError
from axelsp.provisioning.installer import ArtifactInstaller, make_executable
from axelsp.provisioning.platform import PlatformId


class BrokenStream(httpx.AsyncByteStream):
    """Body that fails after the first chunk."""

    async def __aiter__(self):
        yield b'partial-bytes'
        raise httpx.ReadError('connection reset by peer')


def _download(handler, dest, max_redirects=10):
    installer = ArtifactInstaller(max_redirects=max_redirects, transport=httpx.MockTransport(handler))
    return asyncio.run(installer.download('https://example.com/first', dest))


def _leftovers(dest):
    return sorted(p.name for p in dest.parent.iterdir())


class TestDownload:
    def test_success(self, tmp_path):
        dest = tmp_path / 'axels-linux'
        result = _download(lambda request: httpx.Response(200, content=b'\x7fELF binary'), dest)
        assert result == dest
        assert dest.read_bytes() == b'\x7fELF binary'
        assert _leftovers(dest) == ['axels-linux']

    def test_redirect_then_success_uses_second_body(self, tmp_path):
        requested = []

        def handler(request):
            requested.append(request.url.path)
            if request.url.path == '/first':
                return httpx.Response(301, headers={'Location': 'https://cdn.example.com/second'},
                                      content=b'moved permanently')
            return httpx.Response(200, content=b'second-bytes')

        dest = tmp_path / 'axels-linux'
        _download(handler, dest)
        assert requested == ['/first', '/second']
        assert dest.read_bytes() == b'second-bytes'
        assert _leftovers(dest) == ['axels-linux']

    def test_relative_location(self, tmp_path):
        def handler(request):
            if request.url.path == '/first':
                return httpx.Response(302, headers={'Location': '/assets/axels'})
            assert request.url.host == 'example.com'
            return httpx.Response(200, content=b'ok')

        dest = tmp_path / 'axels'
        _download(handler, dest)
        assert dest.read_bytes() == b'ok'

    def test_non_success_leaves_nothing(self, tmp_path):
        dest = tmp_path / 'axels-linux'
        with pytest.raises(DownloadError) as info:
            _download(lambda request: httpx.Response(404, content=b'not found'), dest)
        assert info.value.status_code == 404
        assert not dest.exists()
        assert _leftovers(dest) == []

    def test_redirect_chain_then_error_leaves_nothing(self, tmp_path):
        def handler(request):
            if request.url.path == '/first':
                return httpx.Response(301, headers={'Location': '/second'})
            return httpx.Response(500)

        dest = tmp_path / 'axels-linux'
        with pytest.raises(DownloadError) as info:
            _download(handler, dest)
        assert info.value.status_code == 500
        assert _leftovers(dest) == []

    def test_redirect_loop_is_bounded(self, tmp_path):
        hops = []

        def handler(request):
            hops.append(request.url.path)
            return httpx.Response(302, headers={'Location': f'/hop{len(hops)}'})

        dest = tmp_path / 'axels-linux'
        with pytest.raises(RedirectLoopError):
            _download(handler, dest, max_redirects=3)
        assert len(hops) == 4
        assert _leftovers(dest) == []

    def test_redirect_without_location(self, tmp_path):
        dest = tmp_path / 'axels-linux'
        with pytest.raises(DownloadError):
            _download(lambda request: httpx.Response(302), dest)
        assert _leftovers(dest) == []

    def test_mid_stream_error_leaves_nothing(self, tmp_path):
        dest = tmp_path / 'axels-linux'
        with pytest.raises(DownloadError) as info:
            _download(lambda request: httpx.Response(200, stream=BrokenStream()), dest)
        assert isinstance(info.value.__cause__, httpx.ReadError)
        assert _leftovers(dest) == []

    def test_connection_error(self, tmp_path):
        def handler(request):
            raise httpx.ConnectError('refused', request=request)

        dest = tmp_path / 'axels-linux'
        with pytest.raises(DownloadError):
            _download(handler, dest)
        assert _leftovers(dest) == []

    def test_unwritable_destination(self, tmp_path):
        blocker = tmp_path / 'blocker'
        blocker.write_text('not a directory')
        with pytest.raises(DownloadError) as info:
            _download(lambda request: httpx.Response(200, content=b'bytes'), blocker / 'axels-linux')
        assert isinstance(info.value.__cause__, OSError)
        assert _leftovers(blocker) == ['blocker']


class TestMakeExecutable:
    @pytest.mark.skipif(sys.platform == 'win32', reason='POSIX permission bits')
    def test_sets_mode_755(self, tmp_path):
        binary = tmp_path / 'axels-linux'
        binary.write_bytes(b'x')
        os.chmod(binary, 0o600)
        make_executable(binary, PlatformId.LINUX)
        assert stat.S_IMODE(binary.stat().st_mode) == 0o755

    def test_windows_untouched(self, tmp_path):
        binary = tmp_path / 'axels.exe'
        binary.write_bytes(b'x')
        before = binary.stat().st_mode
        make_executable(binary, PlatformId.WINDOWS)
        assert binary.stat().st_mode == before
