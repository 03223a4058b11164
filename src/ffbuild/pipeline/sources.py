"""Source acquisition: tarball downloads and git clones.

Downloads stream through httpx into a .part file that is renamed into
place only when complete, so an interrupted download is never mistaken
for a finished artifact by the prober.
"""

from __future__ import annotations

import logging
import tarfile
from pathlib import Path
from urllib.parse import urlparse

import httpx

from ffbuild.errors import StepExecutionError
from ffbuild.steps.models import BuildStep

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0
CHUNK_SIZE = 1024 * 1024


class SourceDownloadError(StepExecutionError):
    """Raised when a source download fails. Retryable."""


class SourceFetcher:
    """HTTP client for source tarballs."""

    def __init__(
        self, timeout: float = DEFAULT_TIMEOUT, client: httpx.Client | None = None
    ) -> None:
        """Initialize the fetcher.

        Args:
            timeout: Connect/read timeout in seconds.
            client: Pre-built client, mainly for tests (httpx.MockTransport).
        """
        self._timeout = timeout
        self._client = client

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                timeout=self._timeout,
                follow_redirects=True,
                headers={"User-Agent": "ffbuild"},
            )
        return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> SourceFetcher:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def download(self, url: str, dest: Path) -> Path:
        """Download url to dest unless dest already exists.

        Returns:
            Path of the downloaded file.

        Raises:
            SourceDownloadError: If the request fails or returns an error status.
        """
        if dest.exists():
            logger.info("Using cached %s", dest.name)
            return dest

        dest.parent.mkdir(parents=True, exist_ok=True)
        partial = dest.with_name(dest.name + ".part")
        logger.info("Downloading %s", url)
        client = self._get_client()
        try:
            with client.stream("GET", url) as response:
                response.raise_for_status()
                with partial.open("wb") as fh:
                    for chunk in response.iter_bytes(CHUNK_SIZE):
                        fh.write(chunk)
        except httpx.TimeoutException as e:
            partial.unlink(missing_ok=True)
            raise SourceDownloadError(
                f"Timed out downloading {url}: {e}", step_name="download"
            ) from e
        except httpx.HTTPStatusError as e:
            partial.unlink(missing_ok=True)
            raise SourceDownloadError(
                f"HTTP {e.response.status_code} downloading {url}",
                step_name="download",
            ) from e
        except httpx.HTTPError as e:
            partial.unlink(missing_ok=True)
            raise SourceDownloadError(
                f"Cannot download {url}: {e}", step_name="download"
            ) from e

        partial.rename(dest)
        return dest


def archive_filename(url: str) -> str:
    """File name component of a download URL."""
    name = Path(urlparse(url).path).name
    if not name:
        raise ValueError(f"Cannot derive a file name from {url!r}")
    return name


def extract_archive(archive: Path, dest_dir: Path) -> None:
    """Extract a tarball into dest_dir.

    Raises:
        StepExecutionError: If the archive is corrupt. The caller may
            delete it and download again.
    """
    dest_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Extracting %s", archive.name)
    try:
        with tarfile.open(archive) as tar:
            tar.extractall(dest_dir, filter="data")
    except (tarfile.TarError, EOFError, OSError) as e:
        raise StepExecutionError(
            f"Cannot extract {archive.name}: {e}", step_name="extract"
        ) from e


def git_clone_step(name: str, url: str, branch: str, dest: Path) -> BuildStep:
    """Shallow clone step, skipped once the checkout exists."""
    return BuildStep.create(
        f"{name}-clone",
        [["git", "clone", "--depth", "1", "--branch", branch, url, dest]],
        outputs=[dest / ".git"],
        description=f"Clone {name} ({branch})",
    )
