"""Exception hierarchy for cache configuration and image proxying."""

from __future__ import annotations


class ImgCacheError(Exception):
    """Base class for all imgcache errors."""


class ConfigurationError(ImgCacheError, ValueError):
    """Raised when a cache is constructed with invalid settings."""


class ProxyError(ImgCacheError):
    """Base class for image proxy failures. Carries an HTTP-ish status code."""

    status_code = 500

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class InvalidImageURLError(ProxyError):
    status_code = 400


class ProxyLoopError(ProxyError):
    """The requested URL already points at the proxy itself."""

    status_code = 400


class DomainNotAllowedError(ProxyError):
    status_code = 403


class ImageNotAccessibleError(ProxyError):
    """Every endpoint answered 403/404: the image is private or missing."""

    status_code = 404


class ImageFetchTimeoutError(ProxyError):
    status_code = 408


class ImageFetchError(ProxyError):
    status_code = 502
