"""
Remote version discovery.

Two upstream formats are supported:
- bucket: an S3-style XML listing of release archives (rgsubset, rganonymize)
- maven: a maven-metadata.xml document (flyway)

Results are fetched fresh on every call and never cached.
"""

from __future__ import annotations

import datetime
import http.client
import logging
import urllib.error
import urllib.request
import xml.etree.ElementTree as ET
from dataclasses import dataclass

from .errors import NetworkError, ParseError
from .products import CATALOG_BUCKET, CATALOG_MAVEN, Product
from .versioning import parse_version

logger = logging.getLogger(__name__)

USER_AGENT = "rgupdate/1.0"
DEFAULT_HTTP_TIMEOUT = 30

BUCKET_BASE_URL = "https://redgate-download.s3.eu-west-1.amazonaws.com"
BUCKET_LISTING_URL = BUCKET_BASE_URL + "/?delimiter=/&prefix=EAP/{folder}/"
MAVEN_BASE_URL = "https://download.red-gate.com/maven/release/com/redgate/flyway/flyway-commandline"
MAVEN_METADATA_URL = MAVEN_BASE_URL + "/maven-metadata.xml"

# Upstream has no date for maven versions
UNKNOWN_DATE = datetime.datetime.min.replace(tzinfo=datetime.timezone.utc)

ARCHIVE_EXTENSIONS = (".tar.gz", ".tgz", ".zip")
CHECKSUM_EXTENSION = ".sha256"


@dataclass(frozen=True)
class RemoteVersion:
    """
    One publicly available version.

    Attributes:
        version: Version string as published
        last_modified: Upload timestamp, or UNKNOWN_DATE
        size_bytes: Archive size, or 0 when unknown
    """
    version: str
    last_modified: datetime.datetime = UNKNOWN_DATE
    size_bytes: int = 0

    @property
    def has_date(self) -> bool:
        return self.last_modified != UNKNOWN_DATE

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "version": self.version,
            "last_modified": self.last_modified.isoformat() if self.has_date else None,
            "size_bytes": self.size_bytes,
        }


def http_get(url: str, timeout: int = DEFAULT_HTTP_TIMEOUT, headers: dict[str, str] | None = None) -> bytes:
    """Perform HTTP GET request.

    Args:
        url: URL to fetch
        timeout: Timeout in seconds
        headers: Optional HTTP headers

    Returns:
        Response body as bytes

    Raises:
        NetworkError: If request fails
    """
    try:
        default_headers = {"User-Agent": USER_AGENT}
        if headers:
            default_headers.update(headers)

        req = urllib.request.Request(url, headers=default_headers)
        with urllib.request.urlopen(req, timeout=timeout) as response:
            return response.read()
    except (OSError, ValueError, http.client.HTTPException) as e:
        raise NetworkError(f"Failed to fetch {url}: {e}") from e


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _namespace(root: ET.Element) -> str:
    if root.tag.startswith("{"):
        return root.tag[: root.tag.index("}") + 1]
    return ""


def _parse_timestamp(text: str) -> datetime.datetime | None:
    text = text.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        stamp = datetime.datetime.fromisoformat(text)
    except ValueError:
        return None
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=datetime.timezone.utc)
    return stamp


def _strip_archive_extension(filename: str) -> str | None:
    lower = filename.lower()
    for ext in ARCHIVE_EXTENSIONS:
        if lower.endswith(ext):
            return filename[: -len(ext)]
    return None


def _references_artifact(segment: str) -> bool:
    lower = segment.lower()
    return any(ext in lower for ext in ARCHIVE_EXTENSIONS + (CHECKSUM_EXTENSION,))


def extract_version_from_key(key: str) -> str:
    """Extract the version from a bucket object key.

    Keys look like ``EAP/SubsetterLinux64/1.2.3.4/archive.tar.gz`` or
    ``EAP/SubsetterLinux64/SubsetterLinux64_1.2.3.4.tar.gz``.

    Args:
        key: Object key

    Returns:
        Version string, or "" if the key carries no usable version
    """
    parts = key.split("/")
    if len(parts) >= 3 and "." in parts[2] and not _references_artifact(parts[2]):
        version = parts[2]
    else:
        filename = parts[-1]
        if not filename or filename.lower().endswith(CHECKSUM_EXTENSION):
            return ""
        stem = _strip_archive_extension(filename)
        if stem is None or "_" not in stem:
            return ""
        version = stem[stem.index("_") + 1:]

    version = version.strip()
    return version if "." in version else ""


def parse_bucket_listing(content: bytes | str) -> list[RemoteVersion]:
    """Parse an S3 ListBucketResult document.

    Entries missing a key, timestamp or size, and entries without a usable
    version, are dropped. Duplicate versions keep the first entry seen.

    Args:
        content: XML document

    Returns:
        Records sorted newest upload first

    Raises:
        ParseError: If the document is not well-formed XML
    """
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise ParseError(f"Malformed bucket listing: {e}") from e

    ns = _namespace(root)
    records: list[RemoteVersion] = []
    seen: set[str] = set()

    for contents in root.findall(f"{ns}Contents"):
        key = contents.findtext(f"{ns}Key")
        modified = contents.findtext(f"{ns}LastModified")
        size = contents.findtext(f"{ns}Size")
        if not key or not modified or size is None:
            continue

        version = extract_version_from_key(key)
        if not version:
            logger.debug(f"Skipping bucket key without version: {key}")
            continue
        if version.lower() in seen:
            continue

        stamp = _parse_timestamp(modified)
        if stamp is None:
            logger.debug(f"Skipping bucket key with bad timestamp: {key} ({modified})")
            continue
        try:
            size_bytes = max(0, int(size.strip()))
        except ValueError:
            logger.debug(f"Skipping bucket key with bad size: {key} ({size})")
            continue

        seen.add(version.lower())
        records.append(RemoteVersion(version=version, last_modified=stamp, size_bytes=size_bytes))

    records.sort(key=lambda r: r.last_modified, reverse=True)
    return records


def parse_maven_metadata(content: bytes | str) -> list[RemoteVersion]:
    """Parse a maven-metadata.xml document.

    Args:
        content: XML document

    Returns:
        Records without dates, sorted by version descending

    Raises:
        ParseError: If the document is not well-formed XML
    """
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise ParseError(f"Malformed maven metadata: {e}") from e

    records: list[RemoteVersion] = []
    seen: set[str] = set()
    for element in root.iter():
        if _local_name(element.tag) != "version":
            continue
        text = (element.text or "").strip()
        if "." not in text or text.lower() in seen:
            continue
        seen.add(text.lower())
        records.append(RemoteVersion(version=text))

    records.sort(key=lambda r: parse_version(r.version), reverse=True)
    return records


def listing_url(product: Product, platform: str) -> str:
    """Catalog URL for a product and platform."""
    if product.catalog_kind == CATALOG_MAVEN:
        return MAVEN_METADATA_URL
    return BUCKET_LISTING_URL.format(folder=product.bucket_folder(platform))


def download_url(product: Product, version: str, platform: str) -> str:
    """Archive URL for a product version.

    Args:
        product: Product definition
        version: Exact version
        platform: 'windows' or 'linux'

    Returns:
        Download URL
    """
    if product.catalog_kind == CATALOG_MAVEN:
        suffix = "windows-x64.zip" if platform == "windows" else "linux-x64.tar.gz"
        return f"{MAVEN_BASE_URL}/{version}/flyway-commandline-{version}-{suffix}"

    folder = product.bucket_folder(platform)
    ext = ".zip" if platform == "windows" else ".tar.gz"
    return f"{BUCKET_BASE_URL}/EAP/{folder}/{folder}_{version}{ext}"


def fetch_remote_versions(
    product: Product,
    platform: str,
    timeout: int = DEFAULT_HTTP_TIMEOUT,
) -> list[RemoteVersion]:
    """Fetch available versions for a product.

    Args:
        product: Product definition
        platform: 'windows' or 'linux'
        timeout: HTTP timeout in seconds

    Returns:
        Remote version records

    Raises:
        NetworkError: If the catalog cannot be fetched (retryable)
        ParseError: If the catalog cannot be parsed
    """
    url = listing_url(product, platform)
    logger.debug(f"Fetching {product.name} catalog ({product.catalog_kind}): {url}")

    try:
        content = http_get(url, timeout=timeout)
    except NetworkError as e:
        raise NetworkError(
            f"Could not fetch available versions for {product.name}: {e.message}",
            product=product.name,
            remediation="Check your network connection and try again",
        ) from e

    if product.catalog_kind == CATALOG_BUCKET:
        records = parse_bucket_listing(content)
    else:
        records = parse_maven_metadata(content)

    logger.debug(f"Found {len(records)} remote versions for {product.name}")
    return records
