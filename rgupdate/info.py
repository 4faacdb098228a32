"""
Installation overview for the `info` command.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable

from .config import InstallLocation
from .detection import DEFAULT_PROBE_TIMEOUT, Runner, check_active_consistency, detect_active_version, run_probe
from .local_state import directory_size, list_installed
from .products import PRODUCTS, Product, active_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProductInfo:
    """Per-product installation summary."""
    name: str
    installed_count: int
    latest_installed: str | None
    active_version: str | None
    active_dir_exists: bool
    warnings: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "installed_count": self.installed_count,
            "latest_installed": self.latest_installed,
            "active_version": self.active_version,
            "active_dir_exists": self.active_dir_exists,
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class InstallInfo:
    """Install location summary with per-product details."""
    location: str
    source: str
    exists: bool
    total_size_bytes: int
    products: tuple[ProductInfo, ...]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "install_location": self.location,
            "source": self.source,
            "exists": self.exists,
            "total_size_bytes": self.total_size_bytes,
            "products": [p.to_dict() for p in self.products],
        }


def product_info(
    product: Product,
    root: str,
    platform: str,
    timeout: float = DEFAULT_PROBE_TIMEOUT,
    detect_active: Callable[..., str | None] = detect_active_version,
    runner: Runner = run_probe,
) -> ProductInfo:
    installed = list_installed(product, root)
    active = detect_active(product, timeout=timeout)
    return ProductInfo(
        name=product.name,
        installed_count=len(installed),
        latest_installed=installed[0] if installed else None,
        active_version=active,
        active_dir_exists=os.path.isdir(active_path(product, root)),
        warnings=tuple(
            check_active_consistency(product, root, platform, active, timeout=timeout, runner=runner)
        ),
    )


def gather_info(
    location: InstallLocation,
    platform: str,
    timeout: float = DEFAULT_PROBE_TIMEOUT,
    max_workers: int = 3,
    detect_active: Callable[..., str | None] = detect_active_version,
    runner: Runner = run_probe,
) -> InstallInfo:
    """
    Summarize the install location and every product.

    Products are inspected in parallel; each inspection only reads state.

    Args:
        location: Resolved install location
        platform: 'windows' or 'linux'
        timeout: Version probe timeout in seconds
        max_workers: Parallel workers
        detect_active: Active version detector
        runner: Process runner for probing active directories

    Returns:
        InstallInfo with products in table order
    """
    root = location.path
    exists = os.path.isdir(root)
    total = 0
    if exists:
        try:
            total = directory_size(root)
        except OSError as e:
            logger.warning(f"Could not compute size of {root}: {e}")

    results: dict[str, ProductInfo] = {}
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {
            executor.submit(product_info, p, root, platform, timeout, detect_active, runner): p
            for p in PRODUCTS
        }
        for future in as_completed(futures):
            info = future.result()
            results[info.name] = info

    return InstallInfo(
        location=root,
        source=location.source,
        exists=exists,
        total_size_bytes=total,
        products=tuple(results[p.name] for p in PRODUCTS),
    )
