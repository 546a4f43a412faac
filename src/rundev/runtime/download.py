"""Archive download and extraction.

The provisioning store only needs one capability from this module: given a
URL and a target directory, make the archive's contents appear in that
directory.  :class:`HttpArchiveProvisioner` is the default implementation:

    - Streams the ``.tar.gz`` with httpx into a temporary file
    - Extracts it into a staging directory next to the target, dropping the
      archive's top-level directory (like ``tar --strip-components=1``)
    - Renames the staging directory into place

A target directory therefore either holds a complete extraction or does not
exist.  Any failure is raised as a single :class:`ProvisionFailedError`.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import tarfile
import tempfile
import threading
from pathlib import Path, PurePosixPath
from typing import Protocol

import httpx

from rundev.errors import ProvisionFailedError

logger = logging.getLogger(__name__)


class Provisioner(Protocol):
    """Fetches an archive and extracts it into a directory."""

    async def provision(self, url: str, target: Path) -> None:
        ...


def _strip_first_component(name: str) -> str | None:
    parts = PurePosixPath(name).parts[1:]
    if not parts:
        return None
    return str(PurePosixPath(*parts))


class ExtractionAborted(Exception):
    """Raised inside the extraction thread when its abort event is set."""


def _check_abort(abort: threading.Event | None) -> None:
    if abort is not None and abort.is_set():
        raise ExtractionAborted("extraction aborted")


def extract_archive(archive: Path, target: Path, abort: threading.Event | None = None) -> None:
    """Extract a gzipped tarball into *target* without its top-level directory.

    Extraction goes to a staging directory first; *target* is replaced only
    once every member has been written.  *abort* is checked between members
    and before the final rename, so a cancelled provisioning never touches
    *target*.

    Raises:
        tarfile.TarError: If the archive is corrupt or contains unsafe members.
        OSError: If the filesystem rejects a write.
        ExtractionAborted: If *abort* was set.
    """
    target.parent.mkdir(parents=True, exist_ok=True)
    staging = Path(tempfile.mkdtemp(prefix=f".{target.name}_extract_", dir=target.parent))
    try:
        with tarfile.open(archive, "r:gz") as tar:
            for member in tar.getmembers():
                _check_abort(abort)
                name = _strip_first_component(member.name)
                if name is None:
                    continue
                changes: dict[str, str] = {"name": name}
                if member.islnk():
                    linkname = _strip_first_component(member.linkname)
                    if linkname is None:
                        continue
                    changes["linkname"] = linkname
                tar.extract(member.replace(**changes, deep=False), staging, filter="data")

        _check_abort(abort)
        if target.exists():
            shutil.rmtree(target)
        os.replace(staging, target)
    finally:
        if staging.exists():
            shutil.rmtree(staging, ignore_errors=True)


async def _extract_in_thread(archive: Path, target: Path) -> None:
    abort = threading.Event()
    extraction = asyncio.ensure_future(asyncio.to_thread(extract_archive, archive, target, abort))
    try:
        await asyncio.shield(extraction)
    except asyncio.CancelledError:
        # signal the thread and wait for it to remove its staging directory
        abort.set()
        await asyncio.wait([extraction])
        if not extraction.cancelled():
            extraction.exception()
        raise


class HttpArchiveProvisioner:
    """Downloads ``.tar.gz`` archives over HTTP(S) and extracts them."""

    def __init__(
        self,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout
        self.transport = transport

    async def provision(self, url: str, target: Path) -> None:
        """Download *url* and extract it into *target*.

        Raises:
            ProvisionFailedError: On network, HTTP status, archive or filesystem errors.
        """
        logger.info("Downloading %s", url)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=".download_", suffix=".tgz")
        except OSError as e:
            raise ProvisionFailedError(f"Cannot write to {target.parent}: {e}") from e
        os.close(fd)
        archive = Path(tmp_name)
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, follow_redirects=True, transport=self.transport
            ) as client:
                async with client.stream("GET", url) as response:
                    response.raise_for_status()
                    with open(archive, "wb") as f:
                        async for chunk in response.aiter_bytes():
                            f.write(chunk)
            await _extract_in_thread(archive, target)
        except httpx.HTTPStatusError as e:
            raise ProvisionFailedError(
                f"Failed to download {url}: HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise ProvisionFailedError(f"Failed to download {url}: {e}") from e
        except (tarfile.TarError, OSError) as e:
            raise ProvisionFailedError(f"Failed to extract {url} into {target}: {e}") from e
        finally:
            archive.unlink(missing_ok=True)


__all__ = ["Provisioner", "HttpArchiveProvisioner", "ExtractionAborted", "extract_archive"]
