"""
rgupdate - Version manager for Redgate command-line tools.

Core Modules:
- Versions: dotted version ordering, remote catalogs, local inventory
- Detection: active version probing and consistency checks
- Reconciliation: unified remote/local/active version view
- Installation: download, extraction and placement of versions
- Lifecycle: activation, removal and purging with active-version protection
"""

__version__ = "1.0.0"
__author__ = "rgupdate contributors"

VERSION = __version__

# Versions and products
from .versioning import VersionNumber, parse_version, compare_versions, sort_versions_desc, max_version
from .products import Product, PRODUCTS, get_product, product_names, product_base_path, version_path, active_path
from .catalog import RemoteVersion, UNKNOWN_DATE, fetch_remote_versions, parse_bucket_listing, parse_maven_metadata, download_url
from .local_state import InstalledVersion, list_installed, installed_entries, size_of

# Detection and reconciliation
from .detection import VersionRule, VERSION_RULES, parse_version_output, detect_active_version, check_active_consistency
from .reconcile import VersionStatus, ListingResult, reconcile_versions, apply_display_window, list_versions

# Installation and lifecycle
from .installer import InstallResult, resolve_install_version, download_file, extract_archive, install_product
from .lifecycle import OperationOutcome, activate_version, remove_versions, purge_versions
from .validation import ValidationResult, validate_version, validate_product
from .info import InstallInfo, ProductInfo, gather_info

# Foundation
from .environment import Environment, PathUpdate, detect_environment, ensure_on_path
from .config import Config, Preferences, InstallLocation, load_config, resolve_install_location, save_install_location
from .errors import (
    RgUpdateError,
    UnsupportedProductError,
    PreconditionError,
    CatalogError,
    NetworkError,
    ParseError,
    InstallError,
    VersionNotFoundError,
    DownloadError,
    UnsupportedArchiveError,
    CorruptArchiveError,
    ActivationError,
)

__all__ = [
    "__version__",
    "VERSION",
    # Versions and products
    "VersionNumber",
    "parse_version",
    "compare_versions",
    "sort_versions_desc",
    "max_version",
    "Product",
    "PRODUCTS",
    "get_product",
    "product_names",
    "product_base_path",
    "version_path",
    "active_path",
    "RemoteVersion",
    "UNKNOWN_DATE",
    "fetch_remote_versions",
    "parse_bucket_listing",
    "parse_maven_metadata",
    "download_url",
    "InstalledVersion",
    "list_installed",
    "installed_entries",
    "size_of",
    # Detection and reconciliation
    "VersionRule",
    "VERSION_RULES",
    "parse_version_output",
    "detect_active_version",
    "check_active_consistency",
    "VersionStatus",
    "ListingResult",
    "reconcile_versions",
    "apply_display_window",
    "list_versions",
    # Installation and lifecycle
    "InstallResult",
    "resolve_install_version",
    "download_file",
    "extract_archive",
    "install_product",
    "OperationOutcome",
    "activate_version",
    "remove_versions",
    "purge_versions",
    "ValidationResult",
    "validate_version",
    "validate_product",
    "InstallInfo",
    "ProductInfo",
    "gather_info",
    # Foundation
    "Environment",
    "PathUpdate",
    "detect_environment",
    "ensure_on_path",
    "Config",
    "Preferences",
    "InstallLocation",
    "load_config",
    "resolve_install_location",
    "save_install_location",
    # Errors
    "RgUpdateError",
    "UnsupportedProductError",
    "PreconditionError",
    "CatalogError",
    "NetworkError",
    "ParseError",
    "InstallError",
    "VersionNotFoundError",
    "DownloadError",
    "UnsupportedArchiveError",
    "CorruptArchiveError",
    "ActivationError",
]
