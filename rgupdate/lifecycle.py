"""
Version lifecycle: activate, remove, purge.

Per product the states are not installed → installed → active. The active
version is never deleted without an explicit force flag or interactive
confirmation. Batch deletions continue past individual failures and report
them in the outcome.
"""

from __future__ import annotations

import logging
import os
import shutil
import sys
from dataclasses import dataclass
from typing import Callable, Sequence

from .common import vlog
from .detection import (
    DEFAULT_PROBE_TIMEOUT,
    detect_active_version,
    find_executable,
    probe_executable,
)
from .environment import Environment, PathUpdate, detect_environment, ensure_on_path
from .errors import ActivationError, PreconditionError, VersionNotFoundError
from .local_state import list_installed
from .products import Product, active_path, version_path
from .versioning import max_version, sort_versions_desc

logger = logging.getLogger(__name__)

Confirm = Callable[[str, Sequence[str], str], bool]


@dataclass(frozen=True)
class OperationOutcome:
    """
    Result of a mutating lifecycle operation.

    Attributes:
        operation: 'activate', 'remove', or 'purge'
        product: Product name
        targeted: Versions the operation selected
        succeeded: Versions processed successfully
        failed: (version, reason) pairs for versions that failed
        kept: Versions retained by purge
        active_affected: Whether the active copy was replaced or deleted
        path_refresh_required: Whether a new shell is needed to pick up PATH
        guard_triggered: Whether the active-version guard blocked the operation
        ambiguous: Whether the selector matched several versions
        candidates: Matching versions when ambiguous
        remediation: How to proceed after a guard or ambiguity
        warnings: Non-fatal diagnostics
        notes: Informational messages (e.g. PATH guidance)
        message: One-line summary
    """
    operation: str
    product: str
    targeted: tuple[str, ...] = ()
    succeeded: tuple[str, ...] = ()
    failed: tuple[tuple[str, str], ...] = ()
    kept: tuple[str, ...] = ()
    active_affected: bool = False
    path_refresh_required: bool = False
    guard_triggered: bool = False
    ambiguous: bool = False
    candidates: tuple[str, ...] = ()
    remediation: str | None = None
    warnings: tuple[str, ...] = ()
    notes: tuple[str, ...] = ()
    message: str = ""

    @property
    def success(self) -> bool:
        return not self.failed and not self.guard_triggered and not self.ambiguous

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "operation": self.operation,
            "product": self.product,
            "success": self.success,
            "targeted": list(self.targeted),
            "succeeded": list(self.succeeded),
            "failed": {version: reason for version, reason in self.failed},
            "kept": list(self.kept),
            "active_affected": self.active_affected,
            "path_refresh_required": self.path_refresh_required,
            "guard_triggered": self.guard_triggered,
            "ambiguous": self.ambiguous,
            "candidates": list(self.candidates),
            "remediation": self.remediation,
            "warnings": list(self.warnings),
            "notes": list(self.notes),
            "message": self.message,
        }

    def summary(self) -> str:
        """Generate human-readable summary."""
        lines = [self.message] if self.message else []
        for version in self.succeeded:
            lines.append(f"  ✓ {version}")
        for version, reason in self.failed:
            lines.append(f"  ✗ {version}: {reason}")
        for candidate in self.candidates:
            lines.append(f"  - {candidate}")
        return "\n".join(lines)


def confirm_removal(product_name: str, versions: Sequence[str], active: str) -> bool:
    """Prompt user to confirm removal of the active version."""
    if not sys.stdin.isatty():
        # Non-interactive mode
        return False

    print(f"\n⚠  WARNING: {product_name} {active} is the active version")
    print(f"About to remove {len(versions)} version(s): {', '.join(versions)}")
    print("\nProceed with removal? [y/N]: ", end="")
    response = input().strip().lower()
    return response in ("y", "yes")


def current_active_version(
    product: Product,
    root: str,
    platform: str,
    timeout: float = DEFAULT_PROBE_TIMEOUT,
    detect_active: Callable[..., str | None] = detect_active_version,
    probe: Callable[..., str | None] = probe_executable,
) -> str | None:
    """
    Active version as reported via PATH, or by the active copy itself.

    The active copy is probed directly when PATH does not resolve the
    product, so a stale shell cannot hide the active version from the
    deletion guard.
    """
    detected = detect_active(product, timeout=timeout)
    if detected:
        return detected

    active_dir = active_path(product, root)
    if not os.path.isdir(active_dir):
        return None
    executable = find_executable(product, active_dir, platform)
    if executable is None:
        return None
    return probe(executable, product, timeout)


def select_installed(spec: str, installed: Sequence[str]) -> list[str]:
    """
    Match a selector against installed versions.

    An exact case-insensitive match returns just that version. Otherwise
    every version starting with ``spec + "."`` is returned.

    Raises:
        VersionNotFoundError: If nothing matches
    """
    spec = spec.strip()
    for version in installed:
        if version.lower() == spec.lower():
            return [version]

    prefix = spec.lower() + "."
    matches = [v for v in installed if v.lower().startswith(prefix)]
    if matches:
        return sort_versions_desc(matches)

    listed = ", ".join(installed) if installed else "none"
    raise VersionNotFoundError(
        f"Version '{spec}' is not installed. Installed versions: {listed}",
    )


def _resolve_for_activation(product: Product, spec: str | None, installed: Sequence[str]) -> str:
    if not installed:
        raise ActivationError(
            f"No versions of {product.name} are installed",
            remediation=f"rgupdate get {product.name}",
        )
    if not spec or spec.lower() == "latest":
        return max_version(installed)  # type: ignore[return-value]
    try:
        return max_version(select_installed(spec, installed))  # type: ignore[return-value]
    except VersionNotFoundError as e:
        raise ActivationError(
            e.message,
            remediation=f"rgupdate get {product.name} {spec}",
        ) from e


def copy_version_tree(source: str, dest: str) -> int:
    """
    Copy the contents of source into dest, overwriting files.

    Returns:
        Number of top-level entries copied
    """
    os.makedirs(dest, exist_ok=True)
    count = 0
    with os.scandir(source) as entries:
        for entry in entries:
            target = os.path.join(dest, entry.name)
            if entry.is_dir(follow_symlinks=False):
                shutil.copytree(entry.path, target, symlinks=True, dirs_exist_ok=True)
            else:
                shutil.copy2(entry.path, target, follow_symlinks=False)
            count += 1
    return count


def activate_version(
    product: Product,
    root: str,
    version: str | None = None,
    env: Environment | None = None,
    local_copy: bool = False,
    local_only: bool = False,
    cwd: str | None = None,
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
    path_updater: Callable[[str, Environment], PathUpdate] = ensure_on_path,
    detect_active: Callable[..., str | None] = detect_active_version,
    verbose: bool = False,
) -> OperationOutcome:
    """
    Make an installed version the active one.

    The active copy is replaced, the PATH collaborator is told about the
    active directory, and the running version is re-detected. A failed
    re-detection is a warning; the filesystem change stands.

    Args:
        product: Product definition
        root: Install root
        version: Version or dotted prefix (default: highest installed)
        env: Environment (detected if omitted)
        local_copy: Also copy the files into cwd
        local_only: Only copy the files into cwd; leave active and PATH alone
        cwd: Directory for local copies (default: os.getcwd())
        probe_timeout: Version probe timeout in seconds
        path_updater: PATH collaborator
        detect_active: Active version detector
        verbose: Enable verbose logging

    Returns:
        OperationOutcome

    Raises:
        PreconditionError: If local_copy and local_only are both set
        ActivationError: If the version is not installed
    """
    if local_copy and local_only:
        raise PreconditionError("--local-copy and --local-only cannot be used together")

    env = env or detect_environment()
    installed = list_installed(product, root)
    resolved = _resolve_for_activation(product, version, installed)
    source = version_path(product, resolved, root)
    cwd = cwd or os.getcwd()

    if local_only:
        try:
            copy_version_tree(source, cwd)
        except (OSError, shutil.Error) as e:
            return OperationOutcome(
                operation="activate",
                product=product.name,
                targeted=(resolved,),
                failed=((resolved, f"Local copy failed: {e}"),),
                message=f"Could not copy {product.name} {resolved} to {cwd}",
            )
        return OperationOutcome(
            operation="activate",
            product=product.name,
            targeted=(resolved,),
            succeeded=(resolved,),
            message=f"Copied {product.name} {resolved} to {cwd} (active version unchanged)",
        )

    target = active_path(product, root)
    try:
        if os.path.isdir(target):
            shutil.rmtree(target)
        shutil.copytree(source, target, symlinks=True)
    except (OSError, shutil.Error) as e:
        logger.error(f"Activation of {product.name} {resolved} failed: {e}")
        return OperationOutcome(
            operation="activate",
            product=product.name,
            targeted=(resolved,),
            failed=((resolved, str(e)),),
            active_affected=True,
            message=f"Could not activate {product.name} {resolved}",
            remediation=f"rgupdate use {product.name} {resolved}",
        )
    vlog(f"Copied {source} -> {target}", verbose)

    warnings: list[str] = []
    notes: list[str] = []

    update = path_updater(target, env)
    if not update.success:
        warnings.append(f"Could not add {target} to PATH: {update.message}")
    elif update.message:
        notes.append(update.message)

    if local_copy:
        try:
            copy_version_tree(target, cwd)
            notes.append(f"Copied {product.name} {resolved} to {cwd}")
        except (OSError, shutil.Error) as e:
            warnings.append(f"Local copy to {cwd} failed: {e}")

    detected = detect_active(product, timeout=probe_timeout)
    if detected is None:
        warnings.append(
            f"Could not verify the active version: {product.name} is not resolvable on PATH yet; "
            "open a new shell"
        )
    elif detected.lower() != resolved.lower():
        warnings.append(
            f"PATH resolves {product.name} {detected}, expected {resolved}; "
            "another installation may appear earlier on PATH"
        )

    for warning in warnings:
        logger.warning(warning)

    return OperationOutcome(
        operation="activate",
        product=product.name,
        targeted=(resolved,),
        succeeded=(resolved,),
        active_affected=True,
        path_refresh_required=update.changed,
        warnings=tuple(warnings),
        notes=tuple(notes),
        message=f"{product.name} {resolved} is now active",
    )


def _delete_versions(
    product: Product,
    root: str,
    versions: Sequence[str],
    verbose: bool,
) -> tuple[list[str], list[tuple[str, str]]]:
    removed: list[str] = []
    failed: list[tuple[str, str]] = []
    for version in versions:
        path = version_path(product, version, root)
        try:
            shutil.rmtree(path)
            removed.append(version)
            vlog(f"  ✓ Removed {path}", verbose)
        except OSError as e:
            failed.append((version, str(e)))
            logger.error(f"Failed to remove {product.name} {version}: {e}")
    return removed, failed


def _delete_active_dir(product: Product, root: str) -> tuple[str, str] | None:
    target = active_path(product, root)
    if not os.path.isdir(target):
        return None
    try:
        shutil.rmtree(target)
    except OSError as e:
        logger.error(f"Failed to remove active directory {target}: {e}")
        return ("active", str(e))
    return None


def remove_versions(
    product: Product,
    root: str,
    version: str | None = None,
    remove_all: bool = False,
    force: bool = False,
    platform: str = "linux",
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
    confirm: Confirm = confirm_removal,
    active_resolver: Callable[..., str | None] = current_active_version,
    verbose: bool = False,
) -> OperationOutcome:
    """
    Remove one version, a dotted-prefix match, or all versions.

    A prefix matching several versions is reported as ambiguous and nothing
    is deleted. Removing the active version requires force or confirmation;
    when it goes ahead the active directory is deleted too.

    Args:
        product: Product definition
        root: Install root
        version: Version selector (exact or dotted prefix)
        remove_all: Remove every installed version
        force: Allow removing the active version without prompting
        platform: 'windows' or 'linux'
        probe_timeout: Version probe timeout in seconds
        confirm: Interactive confirmation callback
        active_resolver: Active version resolver
        verbose: Enable verbose logging

    Returns:
        OperationOutcome

    Raises:
        PreconditionError: If both or neither of version and remove_all are given
        VersionNotFoundError: If the selector matches no installed version
    """
    if remove_all and version:
        raise PreconditionError("--all and --version cannot be used together")
    if not remove_all and not version:
        raise PreconditionError(
            "Specify --version <version> or --all",
            remediation=f"rgupdate remove {product.name} --version <version>",
        )

    installed = list_installed(product, root)
    if remove_all:
        if not installed:
            return OperationOutcome(
                operation="remove",
                product=product.name,
                message=f"No installed versions of {product.name}",
            )
        targets = list(installed)
    else:
        targets = select_installed(version or "", installed)
        if len(targets) > 1:
            return OperationOutcome(
                operation="remove",
                product=product.name,
                ambiguous=True,
                candidates=tuple(targets),
                message=(
                    f"Multiple versions match '{version}'. "
                    "Please specify a more specific version"
                ),
                remediation=f"rgupdate remove {product.name} --version {targets[0]}",
            )

    active = active_resolver(product, root, platform, timeout=probe_timeout)
    active_targeted = bool(active) and active.lower() in {t.lower() for t in targets}

    if active_targeted and not force and not confirm(product.name, targets, active):
        hint = "--all --force" if remove_all else f"--version {active} --force"
        return OperationOutcome(
            operation="remove",
            product=product.name,
            targeted=tuple(targets),
            guard_triggered=True,
            message=f"{product.name} {active} is the active version and was not removed",
            remediation=f"rgupdate remove {product.name} {hint}",
        )

    removed, failed = _delete_versions(product, root, targets, verbose)

    active_affected = False
    if active_targeted and active.lower() in {r.lower() for r in removed}:
        failure = _delete_active_dir(product, root)
        if failure:
            failed.append(failure)
        active_affected = True

    message = f"Removed {len(removed)} of {len(targets)} version(s) of {product.name}"
    return OperationOutcome(
        operation="remove",
        product=product.name,
        targeted=tuple(targets),
        succeeded=tuple(removed),
        failed=tuple(failed),
        active_affected=active_affected,
        path_refresh_required=active_affected,
        message=message,
    )


def purge_versions(
    product: Product,
    root: str,
    keep: int = 3,
    force: bool = False,
    platform: str = "linux",
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
    confirm: Confirm = confirm_removal,
    active_resolver: Callable[..., str | None] = current_active_version,
    verbose: bool = False,
) -> OperationOutcome:
    """
    Remove all but the newest `keep` installed versions.

    If the active version would be purged, the guard applies as for remove.
    When allowed, the active version takes the place of the oldest kept
    version and is not deleted.

    Args:
        product: Product definition
        root: Install root
        keep: Number of versions to keep (at least 1)
        force: Proceed without prompting when the active version is affected
        platform: 'windows' or 'linux'
        probe_timeout: Version probe timeout in seconds
        confirm: Interactive confirmation callback
        active_resolver: Active version resolver
        verbose: Enable verbose logging

    Returns:
        OperationOutcome

    Raises:
        PreconditionError: If keep is less than 1
    """
    if keep < 1:
        raise PreconditionError(f"--keep must be at least 1 (got {keep})")

    installed = list_installed(product, root)
    if len(installed) <= keep:
        return OperationOutcome(
            operation="purge",
            product=product.name,
            kept=tuple(installed),
            message=(
                f"Nothing to purge: {len(installed)} version(s) of {product.name} installed, "
                f"keeping {keep}"
            ),
        )

    kept = installed[:keep]
    to_remove = installed[keep:]

    active = active_resolver(product, root, platform, timeout=probe_timeout)
    active_match = next((v for v in to_remove if active and v.lower() == active.lower()), None)

    if active_match is not None:
        if not force and not confirm(product.name, to_remove, active_match):
            return OperationOutcome(
                operation="purge",
                product=product.name,
                targeted=tuple(to_remove),
                kept=tuple(kept),
                guard_triggered=True,
                message=f"{product.name} {active_match} is the active version and would be purged",
                remediation=f"rgupdate purge {product.name} --keep {keep} --force",
            )
        evicted = kept.pop()
        kept.append(active_match)
        to_remove.remove(active_match)
        to_remove.insert(0, evicted)
        kept = sort_versions_desc(kept)
        to_remove = sort_versions_desc(to_remove)
        vlog(f"Keeping active {active_match} in place of {evicted}", verbose)

    removed, failed = _delete_versions(product, root, to_remove, verbose)

    return OperationOutcome(
        operation="purge",
        product=product.name,
        targeted=tuple(to_remove),
        succeeded=tuple(removed),
        failed=tuple(failed),
        kept=tuple(kept),
        message=f"Purged {len(removed)} of {len(to_remove)} version(s) of {product.name}, kept {len(kept)}",
    )
