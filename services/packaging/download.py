"""Download helpers for upstream release archives."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from urllib.error import HTTPError, URLError
from urllib.request import urlopen

from services.packaging.models import FetchError


_LOGGER = logging.getLogger(__name__)

_PARTIAL_SUFFIX = ".part"

__all__ = ["download_archive", "ensure_archive"]


def ensure_archive(url: str, destination: Path, *, timeout: float) -> bool:
    """Make sure ``destination`` holds the archive served at ``url``.

    Archives are cached by file name: when ``destination`` already exists the
    download is skipped.  Returns ``True`` when a download happened.
    """

    if destination.is_file():
        _LOGGER.info("  Using cached %s", destination.name)
        return False
    _LOGGER.info("  Downloading %s...", destination.name)
    download_archive(url, destination, timeout=timeout)
    return True


def download_archive(url: str, destination: Path, *, timeout: float) -> Path:
    """Fetch ``url`` into ``destination``, removing partial files on failure."""

    destination.parent.mkdir(parents=True, exist_ok=True)
    partial = destination.with_name(destination.name + _PARTIAL_SUFFIX)
    _LOGGER.debug("GET %s (timeout=%ss)", url, timeout)
    try:
        with urlopen(url, timeout=timeout) as response, partial.open("wb") as target:  # nosec - HTTPS release URL
            status = getattr(response, "status", None)
            if status is not None and not 200 <= int(status) < 300:
                raise FetchError(
                    f"Unexpected HTTP status {status} for {url}", url=url, status=int(status)
                )
            shutil.copyfileobj(response, target)
        partial.replace(destination)
    except FetchError:
        _discard(partial, destination)
        raise
    except HTTPError as exc:
        _discard(partial, destination)
        raise FetchError(f"HTTP {exc.code} while downloading {url}", url=url, status=exc.code) from exc
    except (URLError, OSError) as exc:
        _discard(partial, destination)
        raise FetchError(f"Failed to download {url}: {exc}", url=url) from exc
    _LOGGER.debug("Downloaded %s (%s bytes)", destination, destination.stat().st_size)
    return destination


def _discard(*paths: Path) -> None:
    for path in paths:
        try:
            path.unlink()
        except FileNotFoundError:
            continue
        except OSError:
            _LOGGER.debug("Unable to remove partial download %s", path, exc_info=True)
