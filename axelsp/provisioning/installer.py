"""Streaming download of server binaries into the local cache."""

import logging
import os
from pathlib import Path
from typing import Optional

import httpx

from axelsp.errors import DownloadError, RedirectLoopError
from axelsp.provisioning.platform import PlatformId

REDIRECT_STATUS_CODES = (301, 302)
EXECUTABLE_MODE = 0o755


def make_executable(path: os.PathLike, platform: PlatformId) -> None:
    """Give a downloaded binary its execute permission bits.

    Args:
        path: Path to the binary.
        platform: Platform the binary runs on. Windows is left untouched.
    """
    if platform is PlatformId.WINDOWS:
        return
    os.chmod(path, EXECUTABLE_MODE)


class ArtifactInstaller:
    """Downloads a binary to a destination path.

    The destination only ever holds a complete file: bytes are streamed to a
    sibling ``.part`` file which is moved into place once the body has been
    fully received, and removed on any failure.
    """

    def __init__(
        self,
        max_redirects: int = 10,
        user_agent: str = "axelsp",
        timeout: float = 60.0,
        chunk_size: int = 64 * 1024,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the installer.

        Args:
            max_redirects: Maximum number of 301/302 hops to follow.
            user_agent: Value of the User-Agent header.
            timeout: Network timeout in seconds.
            chunk_size: Size of the chunks written to disk.
            transport: Optional httpx transport, mainly for tests.
        """
        self.max_redirects = max_redirects
        self.user_agent = user_agent
        self.timeout = timeout
        self.chunk_size = chunk_size
        self.transport = transport
        self.logger = logging.getLogger("axelsp.installer")

    async def download(self, url: str, destination: os.PathLike) -> Path:
        """Download ``url`` into ``destination``.

        Args:
            url: URL to download.
            destination: Target file path.

        Returns:
            The destination path.

        Raises:
            RedirectLoopError: If more than ``max_redirects`` redirects occur.
            DownloadError: On a non-200 status, a transport error or a failure
                writing the destination.
        """
        destination = Path(destination)
        partial = destination.with_name(destination.name + ".part")
        current = httpx.URL(url)

        try:
            async with httpx.AsyncClient(
                transport=self.transport,
                timeout=self.timeout,
                follow_redirects=False,
                headers={"User-Agent": self.user_agent},
            ) as client:
                for _hop in range(self.max_redirects + 1):
                    location = await self._fetch(client, current, partial)
                    if location is None:
                        os.replace(partial, destination)
                        self.logger.info(f"Downloaded {url} to {destination}")
                        return destination

                    self.logger.debug(f"Redirected from {current} to {location}")
                    current = location
        except OSError as e:
            raise DownloadError(f"Failed to write {destination}: {e}", url=str(current)) from e
        finally:
            _discard(partial)

        raise RedirectLoopError(
            f"Too many redirects (more than {self.max_redirects}) downloading {url}",
            url=str(current),
        )

    async def _fetch(self, client: httpx.AsyncClient, url: httpx.URL, partial: Path) -> Optional[httpx.URL]:
        """Issue one GET request and stream a 200 body into ``partial``.

        Returns:
            The redirect target for a 301/302 answer, None once the body has
            been written.
        """
        try:
            async with client.stream("GET", url) as response:
                if response.status_code in REDIRECT_STATUS_CODES:
                    target = response.headers.get("location")
                    if not target:
                        raise DownloadError(
                            f"Redirect without a Location header from {url}",
                            status_code=response.status_code,
                            url=str(url),
                        )
                    _discard(partial)
                    return url.join(target)

                if response.status_code != 200:
                    raise DownloadError(
                        f"Failed to download: {response.status_code}",
                        status_code=response.status_code,
                        url=str(url),
                    )

                with open(partial, "wb") as f:
                    async for chunk in response.aiter_bytes(self.chunk_size):
                        f.write(chunk)
        except httpx.HTTPError as e:
            raise DownloadError(f"Failed to download {url}: {e}", url=str(url)) from e

        return None


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except (FileNotFoundError, NotADirectoryError):
        pass
