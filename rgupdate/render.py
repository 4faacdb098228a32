"""
Output rendering and formatting.

Listings render as an aligned table, JSON, or YAML. Mutating operations
print their outcome summary with warnings and remediation hints.
"""

from __future__ import annotations

import json
import os
import sys
from typing import Any, Sequence

import yaml

from .common import format_bytes
from .info import InstallInfo
from .lifecycle import OperationOutcome
from .reconcile import ListingResult, VersionStatus
from .validation import ValidationResult


USE_COLOR = os.environ.get("RGUPDATE_COLOR", "1") == "1" and "NO_COLOR" not in os.environ

OUTPUT_FORMATS = ("table", "json", "yaml")

# ANSI color codes
GREEN = "\033[32m"
BOLD_GREEN = "\033[1;32m"
YELLOW = "\033[33m"
BLUE = "\033[34m"
RED = "\033[31m"
RESET = "\033[0m"


def colorize(text: str, color: str, enabled: bool | None = None) -> str:
    """Apply color to text.

    Args:
        text: Text to colorize
        color: ANSI color code
        enabled: Force colors on or off (default: USE_COLOR and a TTY stdout)

    Returns:
        Colored text or plain text if colors disabled
    """
    if enabled is None:
        enabled = USE_COLOR and sys.stdout.isatty()
    if not enabled or not text:
        return text
    return f"{color}{text}{RESET}"


def _status_cell(status: VersionStatus, color: bool) -> str:
    if status.is_active:
        return colorize("active", BOLD_GREEN, color)
    if status.is_local_only:
        return colorize("local-only", YELLOW, color)
    if status.is_installed:
        return colorize("installed", GREEN, color)
    return ""


def _row(status: VersionStatus, color: bool) -> tuple[str, str, str, str]:
    if status.is_local_only:
        released = "local-only"
    elif status.release_date is not None:
        released = status.release_date.strftime("%Y-%m-%d")
    else:
        released = "-"
    size = format_bytes(status.size_bytes) if status.size_bytes else "-"
    return (status.version, released, size, _status_cell(status, color))


def render_listing_table(listing: ListingResult, color: bool | None = None) -> str:
    """Render a listing as an aligned text table."""
    if color is None:
        color = USE_COLOR and sys.stdout.isatty()

    lines = [f"{listing.product} versions"]
    if not listing.versions:
        lines.append("  (no versions found)")
    else:
        headers = ("VERSION", "RELEASED", "SIZE", "STATUS")
        rows = [_row(s, False) for s in listing.versions]
        widths = [max(len(h), *(len(r[i]) for r in rows)) for i, h in enumerate(headers[:3])]

        lines.append("  ".join(h.ljust(w) for h, w in zip(headers[:3], widths)) + "  " + headers[3])
        for status, plain in zip(listing.versions, rows):
            cells = "  ".join(cell.ljust(w) for cell, w in zip(plain[:3], widths))
            lines.append(f"{cells}  {_status_cell(status, color)}".rstrip())

    lines.append("")
    lines.append(f"Active: {listing.active_version or 'none'}")
    if listing.truncated:
        lines.append(
            f"Showing {listing.shown_count} of {listing.total_count} versions. "
            f"Use 'rgupdate list {listing.product} --all' to see every version."
        )
    for warning in listing.warnings:
        lines.append(colorize(f"Warning: {warning}", YELLOW, color))
    return "\n".join(lines)


def render_json(data: Any) -> str:
    """Serialize a result (or anything with to_dict) as JSON."""
    if hasattr(data, "to_dict"):
        data = data.to_dict()
    return json.dumps(data, indent=2)


def render_yaml(data: Any) -> str:
    """Serialize a result (or anything with to_dict) as YAML."""
    if hasattr(data, "to_dict"):
        data = data.to_dict()
    return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)


def render_listing(listing: ListingResult, output: str = "table") -> str:
    """Render a listing in the requested format ('table', 'json', or 'yaml')."""
    if output == "json":
        return render_json(listing)
    if output == "yaml":
        return render_yaml(listing)
    return render_listing_table(listing)


def render_validation(results: Sequence[ValidationResult], color: bool | None = None) -> str:
    """Render validation results, one PASS/FAIL line per version."""
    if not results:
        return "No installed versions to validate"
    lines = []
    for result in results:
        label = colorize(result.label, GREEN if result.passed else RED, color)
        detail = result.reported_version if result.passed else result.error_message
        lines.append(f"{label}  {result.product} {result.version}  {detail or ''}".rstrip())
    passed = sum(1 for r in results if r.passed)
    lines.append(f"\n{passed}/{len(results)} passed")
    return "\n".join(lines)


def render_info(info: InstallInfo, color: bool | None = None) -> str:
    """Render the install overview as text."""
    lines = [
        f"Install location: {info.location}",
        f"Source:           {info.source}",
        f"Exists:           {'yes' if info.exists else 'no'}",
        f"Total size:       {format_bytes(info.total_size_bytes)}",
        "",
    ]
    for product in info.products:
        lines.append(f"{product.name}:")
        lines.append(f"  Installed versions: {product.installed_count}")
        lines.append(f"  Latest installed:   {product.latest_installed or '-'}")
        lines.append(f"  Active version:     {product.active_version or '-'}")
        lines.append(f"  Active directory:   {'present' if product.active_dir_exists else 'missing'}")
        for warning in product.warnings:
            lines.append(colorize(f"  Warning: {warning}", YELLOW, color))
    return "\n".join(lines)


def print_outcome(outcome: OperationOutcome, stream=None) -> None:
    """Print an operation outcome with its diagnostics."""
    stream = stream or sys.stdout
    print(outcome.summary(), file=stream)
    for note in outcome.notes:
        print(note, file=stream)
    for warning in outcome.warnings:
        print(colorize(f"Warning: {warning}", YELLOW), file=stream)
    if outcome.path_refresh_required:
        print("Open a new shell to pick up the PATH change.", file=stream)
    if outcome.remediation:
        print(f"To proceed: {outcome.remediation}", file=stream)
