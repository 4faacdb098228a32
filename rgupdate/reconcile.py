"""
Version reconciliation.

Merges the remote catalog, the local inventory and the detected active
version into a single view with one entry per version, newest first.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass
from typing import Callable, Sequence

from .catalog import RemoteVersion, fetch_remote_versions
from .detection import Runner, check_active_consistency, detect_active_version, run_probe
from .errors import CatalogError
from .local_state import InstalledVersion, installed_entries
from .products import Product
from .versioning import parse_version

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VersionStatus:
    """
    Reconciled state of one version.

    Attributes:
        version: Version string
        release_date: Upload date from the catalog, None if unknown or local-only
        size_bytes: Archive size (remote) or directory size (local-only)
        is_installed: Present in the local inventory
        is_active: Equal to the detected active version
        is_local_only: Installed but absent from the remote catalog
    """
    version: str
    release_date: datetime.datetime | None = None
    size_bytes: int = 0
    is_installed: bool = False
    is_active: bool = False
    is_local_only: bool = False

    @property
    def status(self) -> str:
        if self.is_active:
            return "active"
        if self.is_local_only:
            return "local-only"
        if self.is_installed:
            return "installed"
        return "available"

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "version": self.version,
            "release_date": self.release_date.date().isoformat() if self.release_date else None,
            "size_bytes": self.size_bytes,
            "installed": self.is_installed,
            "active": self.is_active,
            "local_only": self.is_local_only,
        }


@dataclass(frozen=True)
class ListingResult:
    """
    Listing output handed to renderers.

    Attributes:
        product: Product name
        active_version: Detected active version, if any
        total_count: Number of versions before windowing
        shown_count: Number of versions in `versions`
        truncated: Whether the display window hid versions
        versions: Versions to show, newest first
        warnings: Non-fatal diagnostics (catalog offline, PATH mismatch)
    """
    product: str
    active_version: str | None
    total_count: int
    shown_count: int
    truncated: bool
    versions: tuple[VersionStatus, ...]
    warnings: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "product": self.product,
            "active_version": self.active_version,
            "total_count": self.total_count,
            "shown_count": self.shown_count,
            "truncated": self.truncated,
            "versions": [v.to_dict() for v in self.versions],
            "warnings": list(self.warnings),
        }


def _sort_desc(statuses: list[VersionStatus]) -> list[VersionStatus]:
    return sorted(statuses, key=lambda s: parse_version(s.version), reverse=True)


def reconcile_versions(
    remote: Sequence[RemoteVersion],
    local: Sequence[InstalledVersion],
    active: str | None,
) -> list[VersionStatus]:
    """
    Merge remote, local and active data into one view.

    Versions are matched case-insensitively. Local entries missing from the
    remote catalog become local-only entries.

    Args:
        remote: Remote catalog records
        local: Installed versions
        active: Detected active version

    Returns:
        One VersionStatus per distinct version, newest first
    """
    installed = {entry.version.lower(): entry for entry in local}
    active_key = active.lower() if active else None

    statuses: list[VersionStatus] = []
    seen: set[str] = set()

    for record in remote:
        key = record.version.lower()
        if key in seen:
            continue
        seen.add(key)
        statuses.append(VersionStatus(
            version=record.version,
            release_date=record.last_modified if record.has_date else None,
            size_bytes=record.size_bytes,
            is_installed=key in installed,
            is_active=key == active_key,
        ))

    for entry in local:
        key = entry.version.lower()
        if key in seen:
            continue
        seen.add(key)
        statuses.append(VersionStatus(
            version=entry.version,
            size_bytes=entry.size_bytes,
            is_installed=True,
            is_active=key == active_key,
            is_local_only=True,
        ))

    return _sort_desc(statuses)


def apply_display_window(statuses: Sequence[VersionStatus], limit: int | None) -> list[VersionStatus]:
    """
    Truncate a sorted view, keeping installed and active versions visible.

    Args:
        statuses: View sorted newest first
        limit: Number of newest versions to show (None shows all)

    Returns:
        Windowed view, newest first
    """
    if limit is None or limit >= len(statuses):
        return list(statuses)

    window = list(statuses[:max(limit, 0)])
    pinned = [s for s in statuses[max(limit, 0):] if s.is_installed or s.is_active]
    return _sort_desc(window + pinned)


def list_versions(
    product: Product,
    root: str,
    platform: str,
    limit: int | None = 10,
    http_timeout: int = 30,
    probe_timeout: float = 10,
    fetch_remote: Callable[..., list[RemoteVersion]] = fetch_remote_versions,
    detect_active: Callable[..., str | None] = detect_active_version,
    runner: Runner = run_probe,
) -> ListingResult:
    """
    Build the version listing for a product.

    A catalog failure does not abort the listing; installed versions are
    still shown and the failure is reported as a warning.

    Args:
        product: Product definition
        root: Install root
        platform: 'windows' or 'linux'
        limit: Display window (None for all versions)
        http_timeout: Catalog timeout in seconds
        probe_timeout: Active detection timeout in seconds
        fetch_remote: Remote catalog fetcher
        detect_active: Active version detector
        runner: Process runner for probing the active directory

    Returns:
        ListingResult
    """
    warnings: list[str] = []

    try:
        remote = fetch_remote(product, platform, timeout=http_timeout)
    except CatalogError as e:
        logger.warning(f"Remote catalog unavailable for {product.name}: {e.message}")
        warnings.append(f"Remote versions unavailable: {e.message}")
        remote = []

    local = installed_entries(product, root)
    active = detect_active(product, timeout=probe_timeout)
    warnings.extend(
        check_active_consistency(product, root, platform, active, timeout=probe_timeout, runner=runner)
    )

    view = reconcile_versions(remote, local, active)
    shown = apply_display_window(view, limit)

    return ListingResult(
        product=product.name,
        active_version=active,
        total_count=len(view),
        shown_count=len(shown),
        truncated=len(shown) < len(view),
        versions=tuple(shown),
        warnings=tuple(warnings),
    )
