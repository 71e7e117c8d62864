"""Release index queries for the axels server."""

import logging
from typing import List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from axelsp.config import DEFAULT_RELEASE_URL
from axelsp.errors import AssetNotFoundError, ReleaseQueryError
from axelsp.provisioning.platform import PlatformId, release_asset_name


class ReleaseAsset(BaseModel):
    """A downloadable file attached to a release."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str
    download_url: str = Field(alias="browser_download_url")


class ReleaseDescriptor(BaseModel):
    """The parts of a GitHub release payload needed to pick a download."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    tag: str = Field(alias="tag_name")
    assets: List[ReleaseAsset] = Field(default_factory=list)


class ReleaseFetcher:
    """Queries the release index for the latest published server build."""

    def __init__(
        self,
        release_url: str = DEFAULT_RELEASE_URL,
        user_agent: str = "axelsp",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the release fetcher.

        Args:
            release_url: URL of the "latest release" endpoint.
            user_agent: Value of the User-Agent header, which GitHub requires.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport, mainly for tests.
        """
        self.release_url = release_url
        self.user_agent = user_agent
        self.timeout = timeout
        self.transport = transport
        self.logger = logging.getLogger("axelsp.releases")

    async def fetch_latest(self) -> ReleaseDescriptor:
        """Fetch the latest release.

        Returns:
            The release tag and its assets.

        Raises:
            ReleaseQueryError: If the index is unreachable, answers with a
                non-200 status or returns a payload of the wrong shape.
        """
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/vnd.github+json",
        }
        self.logger.debug(f"Querying release index: {self.release_url}")

        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
                response = await client.get(self.release_url, headers=headers)
        except httpx.HTTPError as e:
            raise ReleaseQueryError(f"Release index request failed: {e}") from e

        if response.status_code != 200:
            raise ReleaseQueryError(
                f"GitHub API returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return ReleaseDescriptor.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise ReleaseQueryError(f"Unexpected release payload: {e}") from e

    @staticmethod
    def select_asset(descriptor: ReleaseDescriptor, platform: PlatformId) -> ReleaseAsset:
        """Pick the asset built for a platform.

        Args:
            descriptor: Release to search.
            platform: Target platform.

        Returns:
            The matching asset.

        Raises:
            AssetNotFoundError: If no asset carries the platform's name.
        """
        wanted = release_asset_name(platform)
        for asset in descriptor.assets:
            if asset.name == wanted:
                return asset

        raise AssetNotFoundError(
            f"No binary found for platform: {platform.value} (looking for {wanted})",
            asset_name=wanted,
        )
