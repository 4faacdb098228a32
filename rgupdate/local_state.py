"""
Local installation inventory.

The filesystem layout under the install root is the only installation
state. A directory counts as an installed version when it is a direct child
of the product base path, is not the active copy or a hidden staging
directory, has a dotted name, and contains at least one file.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from .errors import UnsupportedProductError
from .products import ACTIVE_DIR_NAME, Product, get_product, product_base_path, version_path
from .versioning import sort_versions_desc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstalledVersion:
    """Installed version directory."""
    version: str
    path: str
    size_bytes: int = 0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {"version": self.version, "path": self.path, "size_bytes": self.size_bytes}


def _resolve(product: Product | str) -> Product:
    return product if isinstance(product, Product) else get_product(product)


def has_files(directory: str) -> bool:
    """Return True if any regular file exists below directory."""
    for _dirpath, _dirnames, filenames in os.walk(directory):
        if filenames:
            return True
    return False


def directory_size(directory: str) -> int:
    """Recursive size of all files below directory.

    Raises:
        OSError: If a file cannot be stat'ed
    """
    total = 0
    for dirpath, _dirnames, filenames in os.walk(directory):
        for name in filenames:
            path = os.path.join(dirpath, name)
            if not os.path.islink(path):
                total += os.path.getsize(path)
    return total


def is_valid_version_dir(name: str, path: str) -> bool:
    """Check the installed-version rules for one child directory."""
    if name.lower() == ACTIVE_DIR_NAME:
        return False
    # Hidden entries are in-progress staging directories
    if name.startswith(".") or "." not in name:
        return False
    if not os.path.isdir(path):
        return False
    return has_files(path)


def list_installed(product: Product | str, root: str) -> list[str]:
    """
    List installed version names for a product, newest first.

    Scan problems are logged and yield an empty list.

    Args:
        product: Product definition or name
        root: Install root

    Returns:
        Installed version names
    """
    try:
        definition = _resolve(product)
    except UnsupportedProductError as e:
        logger.warning(f"Cannot list installed versions: {e.message}")
        return []

    base = product_base_path(definition, root)
    if not os.path.isdir(base):
        return []

    try:
        with os.scandir(base) as entries:
            names = [
                entry.name
                for entry in entries
                if is_valid_version_dir(entry.name, entry.path)
            ]
    except OSError as e:
        logger.warning(f"Could not scan installed versions of {definition.name} in {base}: {e}")
        return []

    return sort_versions_desc(names)


def size_of(product: Product | str, version: str, root: str) -> int:
    """
    Total size of an installed version in bytes.

    Args:
        product: Product definition or name
        version: Installed version
        root: Install root

    Returns:
        Size in bytes, or 0 if it cannot be determined
    """
    try:
        path = version_path(_resolve(product), version, root)
        if not os.path.isdir(path):
            return 0
        return directory_size(path)
    except (OSError, UnsupportedProductError) as e:
        logger.debug(f"Could not size {product} {version}: {e}")
        return 0


def installed_entries(product: Product | str, root: str) -> list[InstalledVersion]:
    """
    Installed versions with their paths and sizes, newest first.

    Args:
        product: Product definition or name
        root: Install root

    Returns:
        InstalledVersion entries
    """
    try:
        definition = _resolve(product)
    except UnsupportedProductError:
        return []

    return [
        InstalledVersion(
            version=version,
            path=version_path(definition, version, root),
            size_bytes=size_of(definition, version, root),
        )
        for version in list_installed(definition, root)
    ]
