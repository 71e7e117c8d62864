"""Exception types raised by the Axe language server manager."""

from typing import Optional


class AxeLspError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(AxeLspError):
    """The settings file or environment holds values that cannot be used."""


class AcquisitionError(AxeLspError):
    """No usable server executable could be found or provisioned."""


class ReleaseQueryError(AxeLspError):
    """The release index was unreachable or returned an unexpected payload."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AssetNotFoundError(AxeLspError):
    """The latest release carries no asset for the current platform."""

    def __init__(self, message: str, asset_name: str):
        super().__init__(message)
        self.asset_name = asset_name


class DownloadError(AxeLspError):
    """A download failed with a bad status or a transport error."""

    def __init__(self, message: str, status_code: Optional[int] = None, url: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class RedirectLoopError(DownloadError):
    """A download was redirected more times than allowed."""


class SessionStartError(AxeLspError):
    """The server process could not be launched or the handshake failed."""


class HandlerError(AxeLspError):
    """A notification handler raised while processing a server message."""

    def __init__(self, method: str, cause: BaseException):
        super().__init__(f"Error handling {method}: {cause}")
        self.method = method
        self.cause = cause
