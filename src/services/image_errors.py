"""Error taxonomy for the image transformation client.

Every failure the client can surface derives from ``ImageTransformError`` and
renders a message suitable for showing to a user. Pre-flight errors are raised
before any network call and are never retried.
"""

from typing import Optional


class ImageTransformError(Exception):
    """Base class for image client failures."""

    retryable = True

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidEndpointError(ImageTransformError):
    """Configured API endpoint is not an absolute http(s) URL."""

    retryable = False

    def __init__(self, url: str):
        super().__init__(f"Invalid URL: {url!r}")
        self.url = url


class InvalidRequestError(ImageTransformError, ValueError):
    """Request parameters rejected before sending (empty prompt, bad size)."""

    retryable = False


class ImageEncodeError(ImageTransformError):
    """Source or mask image could not be prepared as an RGBA PNG."""

    retryable = False


class NetworkError(ImageTransformError):
    """Transport failure or timeout."""


class HttpError(ImageTransformError):
    """Non-2xx response without a parseable error body."""

    def __init__(self, status_code: int):
        super().__init__(f"HTTP error: {status_code}")
        self.status_code = status_code


class ServerError(ImageTransformError):
    """Error reported by the service; ``message`` is shown verbatim."""

    def __init__(
        self,
        message: str,
        error_type: Optional[str] = None,
        param: Optional[str] = None,
        code: Optional[str | int] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.error_type = error_type
        self.param = param
        self.code = code
        self.status_code = status_code


class InvalidResponseError(ImageTransformError):
    """Success body did not match ``{created, data: [{url}, ...]}``."""

    def __init__(self, message: str = "Invalid response from server"):
        super().__init__(message)


class InvalidAssetReferenceError(ImageTransformError):
    """Asset URL in a success body is malformed."""

    def __init__(self, url: str):
        super().__init__("Invalid image URL in response")
        self.url = url


class ImageDecodeError(ImageTransformError):
    """Fetched bytes could not be decoded as an image."""

    def __init__(self, message: str = "Could not create image from data"):
        super().__init__(message)


class UnknownError(ImageTransformError):
    """Fallback when a call failed without recording a reason."""

    def __init__(self, message: str = "Unknown error occurred"):
        super().__init__(message)


def is_retryable(error: Exception) -> bool:
    """Whether a recorded failure should trigger another attempt."""
    return getattr(error, "retryable", True)
