"""Error taxonomy for submission and download of remote images."""


class ImageFetchError(Exception):
    """Base class for everything this service raises on purpose."""


# ------------------------------------------------------------------------------
# Validation (synchronous, surfaced to the submitter as 409)
# ------------------------------------------------------------------------------

class ValidationRejected(ImageFetchError):
    """The submitted URL does not plausibly reference an image."""


class UnsupportedProtocol(ValidationRejected):
    def __init__(self, url: str):
        self.url = url
        super().__init__("Only https: supported")


class NotAnImage(ValidationRejected):
    def __init__(self, url: str, content_type: str | None):
        self.url = url
        self.content_type = content_type
        super().__init__("Url doesn't contain image")


class FetchError(ValidationRejected):
    """Transport failure while probing; the httpx error is chained as __cause__."""

    def __init__(self, url: str, error: Exception):
        self.url = url
        self.error = error
        super().__init__(f"Could not fetch url: {error}")


class MissingInput(ImageFetchError):
    def __init__(self, field: str = "url"):
        self.field = field
        super().__init__("URL is required")


# ------------------------------------------------------------------------------
# Download (background, only ever logged and recorded on the job)
# ------------------------------------------------------------------------------

class TransportError(ImageFetchError):
    def __init__(self, url: str, error: Exception):
        self.url = url
        self.error = error
        super().__init__(f"Transport error while downloading {url}: {error}")


class DownloadFailed(ImageFetchError):
    def __init__(self, url: str, status_code: int):
        self.url = url
        self.status_code = status_code
        super().__init__(f"Failed to download image: HTTP {status_code}")


class PartialWriteError(ImageFetchError):
    def __init__(self, path, error: Exception):
        self.path = path
        self.error = error
        super().__init__(f"Failed writing {path}: {error}")
