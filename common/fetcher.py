"""
Remote fetch logic shared by the API (validation) and the worker (download).

Both take an already-open httpx.AsyncClient so callers own its lifecycle
and tests can plug in an httpx.MockTransport.
"""

import logging
from pathlib import Path
from urllib.parse import urlsplit

import httpx

from common.errors import (
    DownloadFailed,
    FetchError,
    NotAnImage,
    PartialWriteError,
    TransportError,
    UnsupportedProtocol,
)

logger = logging.getLogger(__name__)

SUPPORTED_SCHEME = "https"
CHUNK_SIZE = 64 * 1024


def _remove_partial(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError:
        logger.exception("Could not remove partial file %s", path)


async def validate_image_url(client: httpx.AsyncClient, url: str) -> str:
    """
    Checks that `url` is https and that the remote answers with an image/* Content-Type.

    Only the response headers are looked at; the body is never read.
    Returns the Content-Type on success, raises a ValidationRejected subclass otherwise.
    """
    try:
        scheme = urlsplit(url).scheme.lower()
    except ValueError:
        scheme = ""
    if scheme != SUPPORTED_SCHEME:
        raise UnsupportedProtocol(url)

    try:
        async with client.stream("GET", url) as response:
            content_type = response.headers.get("content-type")
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.warning("Validation fetch failed for %s: %s", url, exc)
        raise FetchError(url, exc) from exc

    if not content_type or not content_type.startswith("image/"):
        logger.info("Rejected %s: content-type=%s", url, content_type)
        raise NotAnImage(url, content_type)
    return content_type


async def download_image(client: httpx.AsyncClient, url: str, dest: Path) -> int:
    """
    Streams `url` into `dest` chunk by chunk and returns the number of bytes written.

    On a non-200 status, a transport error or a disk error the partial
    file is removed before the error is raised.
    """
    dest = Path(dest)
    dest.parent.mkdir(parents=True, exist_ok=True)
    written = 0
    try:
        async with client.stream("GET", url) as response:
            if response.status_code != 200:
                raise DownloadFailed(url, response.status_code)
            try:
                with dest.open("wb") as fh:
                    async for chunk in response.aiter_bytes(CHUNK_SIZE):
                        fh.write(chunk)
                        written += len(chunk)
            except OSError as exc:
                raise PartialWriteError(dest, exc) from exc
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        _remove_partial(dest)
        raise TransportError(url, exc) from exc
    except BaseException:
        # also covers cancellation mid-stream
        _remove_partial(dest)
        raise

    logger.debug("Wrote %d bytes to %s", written, dest)
    return written
