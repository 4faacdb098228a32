"""
Version installation.

Resolves a version specifier against the remote catalog, downloads the
archive, and extracts it into the per-version directory. Installing a
version that is already present is a no-op.
"""

from __future__ import annotations

import gzip
import logging
import os
import shutil
import stat
import tarfile
import tempfile
import time
import urllib.error
import urllib.request
import zipfile
import zlib
from dataclasses import dataclass
from typing import Callable, Sequence

from .catalog import USER_AGENT, RemoteVersion, download_url, fetch_remote_versions
from .common import format_bytes
from .errors import (
    CorruptArchiveError,
    DownloadError,
    InstallError,
    UnsupportedArchiveError,
    VersionNotFoundError,
)
from .local_state import has_files
from .products import Product, product_base_path, version_path
from .versioning import max_version

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192
DEFAULT_DOWNLOAD_TIMEOUT_MINUTES = 10
DEFAULT_PROGRESS_INTERVAL = 2
SAMPLE_VERSION_COUNT = 5

ProgressCallback = Callable[[int, "int | None"], None]


@dataclass(frozen=True)
class InstallResult:
    """
    Result of installing a product version.

    Attributes:
        product: Product name
        version: Resolved version
        path: Version directory
        already_installed: True if nothing was downloaded
        download_url: Archive URL (empty when already installed)
        size_bytes: Downloaded archive size
        duration_seconds: Total time taken
    """
    product: str
    version: str
    path: str
    already_installed: bool = False
    download_url: str = ""
    size_bytes: int = 0
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return True

    @property
    def message(self) -> str:
        if self.already_installed:
            return f"{self.product} {self.version} is already installed at {self.path}"
        return f"Installed {self.product} {self.version} to {self.path}"

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "product": self.product,
            "version": self.version,
            "path": self.path,
            "already_installed": self.already_installed,
            "download_url": self.download_url,
            "size_bytes": self.size_bytes,
            "duration_seconds": self.duration_seconds,
        }


def resolve_install_version(spec: str | None, available: Sequence[str]) -> str:
    """
    Resolve a version specifier against available versions.

    "latest" (or empty) selects the highest version. Otherwise an exact
    case-insensitive match wins, then the highest version starting with
    ``spec + "."``.

    Args:
        spec: Version specifier
        available: Available version strings

    Returns:
        Resolved version string

    Raises:
        VersionNotFoundError: If nothing matches
    """
    spec = (spec or "").strip()
    if not available:
        raise VersionNotFoundError(
            "No versions are available",
            remediation="Check the network connection or the platform selection",
        )

    if not spec or spec.lower() == "latest":
        return max_version(available)  # type: ignore[return-value]

    for version in available:
        if version.lower() == spec.lower():
            return version

    prefix = spec.lower() + "."
    matches = [v for v in available if v.lower().startswith(prefix)]
    if matches:
        return max_version(matches)  # type: ignore[return-value]

    sample = ", ".join(list(available)[:SAMPLE_VERSION_COUNT])
    raise VersionNotFoundError(
        f"Version '{spec}' not found. Available versions: {sample}",
        remediation="Run 'rgupdate list <product>' to see every available version",
    )


def _log_progress(received: int, total: int | None) -> None:
    if total:
        pct = received * 100 // total
        logger.info(f"Downloading... {pct}% ({format_bytes(received)} of {format_bytes(total)})")
    else:
        logger.info(f"Downloading... {format_bytes(received)}")


def download_file(
    url: str,
    dest: str,
    timeout_minutes: int = DEFAULT_DOWNLOAD_TIMEOUT_MINUTES,
    progress_interval: float = DEFAULT_PROGRESS_INTERVAL,
    progress: ProgressCallback | None = None,
    platform: str = "linux",
) -> int:
    """
    Stream a URL to a file.

    Args:
        url: Archive URL
        dest: Destination file path
        timeout_minutes: Deadline for the whole download
        progress_interval: Seconds between progress callbacks
        progress: Callback receiving (bytes received, total or None)
        platform: Target platform, used for the 404 hint

    Returns:
        Number of bytes written

    Raises:
        DownloadError: On HTTP errors, network errors, or timeout
    """
    progress = progress or _log_progress
    timeout_seconds = timeout_minutes * 60
    deadline = time.monotonic() + timeout_seconds

    req = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
    try:
        with urllib.request.urlopen(req, timeout=timeout_seconds) as response, open(dest, "wb") as out:
            length = response.headers.get("Content-Length")
            total = int(length) if length and length.isdigit() else None
            received = 0
            last_report = time.monotonic()

            while True:
                chunk = response.read(CHUNK_SIZE)
                if not chunk:
                    break
                out.write(chunk)
                received += len(chunk)

                now = time.monotonic()
                if now > deadline:
                    raise DownloadError(
                        f"Download timed out after {timeout_minutes} minutes: {url}",
                        retryable=True,
                    )
                if now - last_report >= progress_interval:
                    progress(received, total)
                    last_report = now

            progress(received, total)
            return received
    except urllib.error.HTTPError as e:
        message = f"Download failed: HTTP {e.code} ({e.reason}) for {url}"
        if e.code == 404 and platform != "windows":
            message += (
                ". Note: Linux builds are sometimes published later than Windows builds;"
                " this version may not be available for Linux yet"
            )
        raise DownloadError(
            message,
            status_code=e.code,
            retryable=e.code >= 500 or e.code == 429,
        ) from e
    except urllib.error.URLError as e:
        raise DownloadError(f"Download failed for {url}: {e.reason}", retryable=True) from e
    except OSError as e:
        raise DownloadError(f"Download failed for {url}: {e}", retryable=True) from e


def archive_type(filename: str) -> str:
    """
    Archive type from a file name.

    Returns:
        "zip" or "tar.gz"

    Raises:
        UnsupportedArchiveError: For any other extension
    """
    lower = filename.lower()
    if lower.endswith(".zip"):
        return "zip"
    if lower.endswith(".tar.gz") or lower.endswith(".tgz"):
        return "tar.gz"
    raise UnsupportedArchiveError(f"Unsupported archive format: {os.path.basename(filename)}")


def _member_target(name: str, dest_dir: str, strip_top_level: bool) -> str | None:
    parts = [p for p in name.replace("\\", "/").split("/") if p and p != "."]
    if strip_top_level:
        parts = parts[1:]
    if not parts:
        return None
    if ".." in parts or os.path.isabs(name):
        raise CorruptArchiveError(f"Archive member escapes the target directory: {name}")
    return os.path.join(dest_dir, *parts)


def _should_be_executable(rel_path: str, product: Product) -> bool:
    directory, filename = os.path.split(rel_path)
    stem, ext = os.path.splitext(filename)
    if ext.lower() == ".sh":
        return True
    if not ext and "bin" in directory.lower().split(os.sep):
        return True
    return stem.lower() == product.name


def mark_executables(directory: str, product: Product) -> int:
    """
    Set executable bits on scripts and launchers.

    Returns:
        Number of files changed
    """
    changed = 0
    for dirpath, _dirnames, filenames in os.walk(directory):
        for name in filenames:
            path = os.path.join(dirpath, name)
            if os.path.islink(path):
                continue
            if _should_be_executable(os.path.relpath(path, directory), product):
                mode = os.stat(path).st_mode
                os.chmod(path, mode | stat.S_IRWXU | stat.S_IRGRP | stat.S_IXGRP | stat.S_IROTH | stat.S_IXOTH)
                changed += 1
    return changed


def _extract_zip(archive_path: str, dest_dir: str, strip_top_level: bool) -> None:
    with zipfile.ZipFile(archive_path) as zf:
        for info in zf.infolist():
            target = _member_target(info.filename, dest_dir, strip_top_level)
            if target is None:
                continue
            if info.is_dir():
                os.makedirs(target, exist_ok=True)
                continue
            os.makedirs(os.path.dirname(target), exist_ok=True)
            with zf.open(info) as src, open(target, "wb") as dst:
                shutil.copyfileobj(src, dst)


def _extract_tar(archive_path: str, dest_dir: str, strip_top_level: bool, keep_modes: bool) -> None:
    with tarfile.open(archive_path, "r:gz") as tf:
        for member in tf.getmembers():
            target = _member_target(member.name, dest_dir, strip_top_level)
            if target is None:
                continue
            if member.isdir():
                os.makedirs(target, exist_ok=True)
            elif member.isfile():
                os.makedirs(os.path.dirname(target), exist_ok=True)
                src = tf.extractfile(member)
                if src is None:
                    continue
                with src, open(target, "wb") as dst:
                    shutil.copyfileobj(src, dst)
                if keep_modes:
                    os.chmod(target, member.mode & 0o777 | stat.S_IRUSR | stat.S_IWUSR)
            elif member.issym() and keep_modes:
                link = member.linkname
                resolved = os.path.normpath(os.path.join(os.path.dirname(target), link))
                if os.path.isabs(link) or not resolved.startswith(os.path.normpath(dest_dir)):
                    logger.debug(f"Skipping symlink outside archive: {member.name} -> {link}")
                    continue
                os.makedirs(os.path.dirname(target), exist_ok=True)
                os.symlink(link, target)
            else:
                logger.debug(f"Skipping unsupported archive member: {member.name}")


def extract_archive(archive_path: str, dest_dir: str, product: Product, platform: str) -> None:
    """
    Extract a .zip or .tar.gz archive into a directory.

    Args:
        archive_path: Archive file
        dest_dir: Target directory (created if missing)
        product: Product definition (layout and executable rules)
        platform: 'windows' or 'linux'

    Raises:
        UnsupportedArchiveError: For unknown archive extensions
        CorruptArchiveError: If the archive cannot be read
    """
    kind = archive_type(archive_path)
    os.makedirs(dest_dir, exist_ok=True)
    unix = platform != "windows" and os.name != "nt"

    try:
        if kind == "zip":
            _extract_zip(archive_path, dest_dir, product.strip_top_level)
        else:
            _extract_tar(archive_path, dest_dir, product.strip_top_level, keep_modes=unix)
    except (zipfile.BadZipFile, tarfile.TarError, gzip.BadGzipFile, EOFError, zlib.error) as e:
        raise CorruptArchiveError(
            f"Corrupt archive {os.path.basename(archive_path)}: {e}",
            remediation="Run the command again to download a fresh copy",
        ) from e

    if unix:
        changed = mark_executables(dest_dir, product)
        logger.debug(f"Marked {changed} files executable in {dest_dir}")


def install_product(
    product: Product,
    root: str,
    version_spec: str | None = "latest",
    platform: str = "linux",
    http_timeout: int = 30,
    download_timeout_minutes: int = DEFAULT_DOWNLOAD_TIMEOUT_MINUTES,
    progress_interval: float = DEFAULT_PROGRESS_INTERVAL,
    fetch_remote: Callable[..., list[RemoteVersion]] = fetch_remote_versions,
    downloader: Callable[..., int] = download_file,
) -> InstallResult:
    """
    Install a product version.

    The archive is extracted into a staging directory and moved into place
    only after extraction succeeds.

    Args:
        product: Product definition
        root: Install root
        version_spec: "latest", an exact version, or a dotted prefix
        platform: 'windows' or 'linux'
        http_timeout: Catalog timeout in seconds
        download_timeout_minutes: Download deadline
        progress_interval: Seconds between progress reports
        fetch_remote: Remote catalog fetcher
        downloader: Archive downloader

    Returns:
        InstallResult

    Raises:
        NetworkError: If the catalog cannot be fetched
        VersionNotFoundError: If the specifier matches nothing
        DownloadError: If the archive download fails
        UnsupportedArchiveError, CorruptArchiveError: If extraction fails
    """
    start = time.monotonic()

    remote = fetch_remote(product, platform, timeout=http_timeout)
    version = resolve_install_version(version_spec, [r.version for r in remote])
    target = version_path(product, version, root)

    if os.path.isdir(target) and has_files(target):
        logger.info(f"{product.name} {version} is already installed")
        return InstallResult(
            product=product.name,
            version=version,
            path=target,
            already_installed=True,
            duration_seconds=time.monotonic() - start,
        )

    url = download_url(product, version, platform)
    suffix = ".zip" if url.lower().endswith(".zip") else ".tar.gz"
    base = product_base_path(product, root)

    archive_path = None
    staging = None
    try:
        os.makedirs(base, exist_ok=True)
        fd, archive_path = tempfile.mkstemp(prefix=f"rgupdate-{product.name}-", suffix=suffix)
        os.close(fd)

        logger.info(f"Downloading {product.name} {version} from {url}")
        size = downloader(
            url,
            archive_path,
            timeout_minutes=download_timeout_minutes,
            progress_interval=progress_interval,
            platform=platform,
        )

        staging = tempfile.mkdtemp(prefix=".staging-", dir=base)
        logger.info(f"Extracting {product.name} {version}")
        extract_archive(archive_path, staging, product, platform)

        if os.path.isdir(target):
            shutil.rmtree(target)
        os.replace(staging, target)
        staging = None
    except OSError as e:
        raise InstallError(
            f"Could not install {product.name} {version} to {target}: {e}",
            remediation=(
                "Check permissions on the install location, or choose another one with "
                "'rgupdate config set-location <path>'"
            ),
        ) from e
    finally:
        if archive_path and os.path.exists(archive_path):
            os.unlink(archive_path)
        if staging and os.path.isdir(staging):
            shutil.rmtree(staging, ignore_errors=True)

    result = InstallResult(
        product=product.name,
        version=version,
        path=target,
        download_url=url,
        size_bytes=size,
        duration_seconds=time.monotonic() - start,
    )
    logger.info(result.message)
    return result
