"""
Post-install validation.

Runs each installed version's own executable with its version query and
checks that it exits cleanly and reports a version.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .detection import DEFAULT_PROBE_TIMEOUT, Runner, find_executable, parse_version_output, run_probe
from .errors import VersionNotFoundError
from .local_state import list_installed
from .products import Product, version_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationResult:
    """
    Validation outcome for one installed version.

    Attributes:
        product: Product name
        version: Installed version
        passed: Whether the executable ran and reported a version
        reported_version: Version parsed from its output
        executable: Executable that was run
        error_message: Reason for failure
    """
    product: str
    version: str
    passed: bool
    reported_version: str | None = None
    executable: str | None = None
    error_message: str | None = None

    @property
    def label(self) -> str:
        return "PASS" if self.passed else "FAIL"

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "product": self.product,
            "version": self.version,
            "passed": self.passed,
            "reported_version": self.reported_version,
            "executable": self.executable,
            "error_message": self.error_message,
        }


def validate_version(
    product: Product,
    version: str,
    root: str,
    platform: str,
    timeout: float = DEFAULT_PROBE_TIMEOUT,
    runner: Runner = run_probe,
) -> ValidationResult:
    """Run one installed version's executable and check its output."""
    directory = version_path(product, version, root)
    executable = find_executable(product, directory, platform)
    if executable is None:
        return ValidationResult(
            product=product.name,
            version=version,
            passed=False,
            error_message=f"No {product.name} executable found in {directory}",
        )

    result = runner([executable, *product.version_args], timeout)
    if result is None:
        return ValidationResult(
            product=product.name,
            version=version,
            passed=False,
            executable=executable,
            error_message="Executable could not be run or timed out",
        )
    if result.exit_code != 0:
        return ValidationResult(
            product=product.name,
            version=version,
            passed=False,
            executable=executable,
            error_message=f"Exited with code {result.exit_code}",
        )

    reported = parse_version_output(result.output, product.name)
    if reported is None:
        return ValidationResult(
            product=product.name,
            version=version,
            passed=False,
            executable=executable,
            error_message="No version in output",
        )

    logger.debug(f"{product.name} {version} reports {reported}")
    return ValidationResult(
        product=product.name,
        version=version,
        passed=True,
        reported_version=reported,
        executable=executable,
    )


def validate_product(
    product: Product,
    root: str,
    platform: str,
    version: str | None = None,
    timeout: float = DEFAULT_PROBE_TIMEOUT,
    runner: Runner = run_probe,
) -> list[ValidationResult]:
    """
    Validate one or every installed version of a product.

    Raises:
        VersionNotFoundError: If a specific version is requested but not installed
    """
    installed = list_installed(product, root)
    if version:
        matches = [v for v in installed if v.lower() == version.lower()]
        if not matches:
            raise VersionNotFoundError(
                f"Version '{version}' of {product.name} is not installed",
                remediation=f"rgupdate get {product.name} {version}",
            )
        installed = matches

    return [
        validate_version(product, v, root, platform, timeout=timeout, runner=runner)
        for v in installed
    ]
