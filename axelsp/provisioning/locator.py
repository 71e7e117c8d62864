"""Selection of the axels executable to launch."""

import logging
import shutil
from typing import Callable, Optional

from axelsp.config import Settings
from axelsp.errors import AcquisitionError, AssetNotFoundError, DownloadError, ReleaseQueryError
from axelsp.provisioning.installer import ArtifactInstaller, make_executable
from axelsp.provisioning.platform import (
    PlatformId,
    current_platform,
    path_binary_name,
    release_asset_name,
)
from axelsp.provisioning.releases import ReleaseFetcher
from axelsp.session.router import MessageSink, PopupLevel
from axelsp.utils.storage import StorageScope

# Same contract as shutil.which: name -> resolved path or None
PathLookup = Callable[[str], Optional[str]]


class ExecutableLocator:
    """Decides which server executable to launch.

    Candidates are tried in a fixed order and the first hit wins:

    1. ``serverPath`` from the settings, returned verbatim.
    2. The platform's binary name found on PATH.
    3. A binary downloaded earlier into the storage directory.
    4. A fresh download of the latest release asset.
    """

    def __init__(
        self,
        settings: Settings,
        storage: StorageScope,
        fetcher: Optional[ReleaseFetcher] = None,
        installer: Optional[ArtifactInstaller] = None,
        platform: Optional[PlatformId] = None,
        which: PathLookup = shutil.which,
        sink: Optional[MessageSink] = None,
    ):
        """Initialize the locator.

        Args:
            settings: Manager settings.
            storage: Storage scope holding the cached binary.
            fetcher: Release index client. Built from the settings if omitted.
            installer: Downloader. Built from the settings if omitted.
            platform: Platform to resolve for. Defaults to the host platform.
            which: PATH lookup function.
            sink: Receives download progress and the success message.
        """
        self.settings = settings
        self.storage = storage
        self.platform = platform or current_platform()
        self.fetcher = fetcher or ReleaseFetcher(
            release_url=settings.release_url,
            user_agent=settings.user_agent,
        )
        self.installer = installer or ArtifactInstaller(
            max_redirects=settings.max_redirects,
            user_agent=settings.user_agent,
        )
        self.which = which
        self.sink = sink
        self.logger = logging.getLogger("axelsp.locator")

    @property
    def cache_path(self):
        """Path the downloaded binary is cached at."""
        return self.storage.path_for(release_asset_name(self.platform))

    async def resolve(self) -> str:
        """Find or provision the server executable.

        Returns:
            A path, or a bare executable name to be resolved through PATH at
            launch time.

        Raises:
            AcquisitionError: If no candidate is available and the download
                fails, or the storage directory cannot be used.
        """
        if self.settings.server_path:
            self.logger.info(f"Using configured serverPath: {self.settings.server_path}")
            return self.settings.server_path

        binary_name = path_binary_name(self.platform)
        if self.which(binary_name):
            self.logger.info(f"Found {binary_name} in PATH")
            return binary_name

        self.logger.info("LSP not found in PATH. Checking for downloaded version...")
        cached = self.cache_path
        try:
            self.storage.ensure()
            if cached.is_file():
                self.logger.info(f"Using previously downloaded LSP: {cached}")
                make_executable(cached, self.platform)
                return str(cached)
        except OSError as e:
            self.logger.error(f"Storage directory is not usable: {e}")
            raise AcquisitionError(f"Cannot use storage directory {self.storage.root}: {e}") from e

        return await self.download_latest()

    async def download_latest(self) -> str:
        """Download the latest release into the cache, replacing any copy.

        Returns:
            The cache path.

        Raises:
            AcquisitionError: If the release query or the download fails.
        """
        cached = self.cache_path

        self.logger.info("Downloading latest LSP from GitHub...")
        try:
            self.storage.ensure()
            release = await self.fetcher.fetch_latest()
            self.logger.info(f"Latest release: {release.tag}")

            asset = self.fetcher.select_asset(release, self.platform)
            self.logger.info(f"Downloading {asset.name}...")
            if self.sink is not None:
                self.sink.append_line(f"Downloading Axe LSP ({asset.name})...")
            await self.installer.download(asset.download_url, cached)
            make_executable(cached, self.platform)
        except (ReleaseQueryError, AssetNotFoundError, DownloadError, OSError) as e:
            self.logger.error(f"Failed to download LSP: {e}")
            raise AcquisitionError(f"Failed to download Axe LSP: {e}") from e

        self.logger.info(f"LSP downloaded successfully to: {cached}")
        if self.sink is not None:
            self.sink.show_message(PopupLevel.INFO, "Axe LSP downloaded successfully.")
        return str(cached)
