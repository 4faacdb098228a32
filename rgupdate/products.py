"""
Supported product definitions and install layout.

Each product maps to a catalog strategy, a version probe argument, and an
archive layout rule. Version directories live at
``<root>/<family>/<cli_folder>/<version>`` and the active copy at
``<root>/<family>/<cli_folder>/active``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from .errors import UnsupportedProductError


ACTIVE_DIR_NAME = "active"

CATALOG_BUCKET = "bucket"
CATALOG_MAVEN = "maven"


@dataclass(frozen=True)
class Product:
    """Product definition with catalog and probe metadata."""
    name: str
    family: str  # Vendor folder under the install root
    cli_folder: str
    catalog_kind: str  # "bucket" | "maven"
    version_args: tuple[str, ...]
    strip_top_level: bool = False
    # Listing folder per platform for bucket products
    bucket_folders: tuple[tuple[str, str], ...] = ()

    def bucket_folder(self, platform: str) -> str:
        """Get the bucket folder name for a platform ('windows' or 'linux')."""
        for plat, folder in self.bucket_folders:
            if plat == platform:
                return folder
        raise UnsupportedProductError(
            f"No download folder for {self.name} on platform '{platform}'"
        )

    def executable_names(self, platform: str) -> tuple[str, ...]:
        """Candidate executable file names inside a version directory."""
        if platform == "windows":
            if self.name == "flyway":
                return ("flyway.cmd", "flyway.exe")
            return (f"{self.name}.exe",)
        return (self.name,)


PRODUCTS: tuple[Product, ...] = (
    Product(
        name="flyway",
        family="Flyway",
        cli_folder="CLI",
        catalog_kind=CATALOG_MAVEN,
        version_args=("version",),
        strip_top_level=True,
    ),
    Product(
        name="rgsubset",
        family="Test Data Manager",
        cli_folder="rgsubset",
        catalog_kind=CATALOG_BUCKET,
        version_args=("--version",),
        bucket_folders=(("windows", "SubsetterWin64"), ("linux", "SubsetterLinux64")),
    ),
    Product(
        name="rganonymize",
        family="Test Data Manager",
        cli_folder="rganonymize",
        catalog_kind=CATALOG_BUCKET,
        version_args=("--version",),
        bucket_folders=(("windows", "AnonymizeWin64"), ("linux", "AnonymizeLinux64")),
    ),
)

PRODUCT_MAP: dict[str, Product] = {p.name: p for p in PRODUCTS}


def product_names() -> list[str]:
    """Names of all supported products, in table order."""
    return [p.name for p in PRODUCTS]


def get_product(name: str) -> Product:
    """Look up a product by name (case-insensitive).

    Args:
        name: Product name

    Returns:
        Product definition

    Raises:
        UnsupportedProductError: If the product is not supported
    """
    product = PRODUCT_MAP.get((name or "").strip().lower())
    if product is None:
        raise UnsupportedProductError(
            f"Unsupported product: '{name}'",
            remediation=f"Supported products: {', '.join(product_names())}",
        )
    return product


def product_base_path(product: Product, root: str) -> str:
    """Directory holding every version of a product."""
    return os.path.join(root, product.family, product.cli_folder)


def version_path(product: Product, version: str, root: str) -> str:
    """Directory for one installed version."""
    return os.path.join(product_base_path(product, root), version)


def active_path(product: Product, root: str) -> str:
    """Directory holding the active copy."""
    return os.path.join(product_base_path(product, root), ACTIVE_DIR_NAME)
