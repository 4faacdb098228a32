"""
Active version detection.

The active version is whatever the product executable on PATH reports.
Detection always runs the executable live; a missing executable, a failed
run, or unparseable output all mean "no active version".
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import subprocess
from dataclasses import dataclass
from typing import Callable, Sequence

from .products import Product, active_path

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 10

ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")


@dataclass(frozen=True)
class ProbeResult:
    """Exit code and captured stdout of a version probe."""
    exit_code: int
    output: str


Runner = Callable[[Sequence[str], float], "ProbeResult | None"]


@dataclass(frozen=True)
class VersionRule:
    """
    Named pattern for pulling a version out of probe output.

    Attributes:
        name: Rule name used in debug logs
        pattern: Regex whose first group is the version
        rejects: Lowercase substrings that disqualify a line
        products: Products the rule applies to (empty means all)
    """
    name: str
    pattern: re.Pattern
    rejects: tuple[str, ...] = ()
    products: tuple[str, ...] = ()

    def applies_to(self, product_name: str | None) -> bool:
        return not self.products or product_name is None or product_name in self.products

    def match(self, line: str) -> str | None:
        lowered = line.lower()
        if any(word in lowered for word in self.rejects):
            return None
        m = self.pattern.search(line)
        return m.group(1) if m else None


# Tried in order; the first rule that matches any line wins.
VERSION_RULES: tuple[VersionRule, ...] = (
    VersionRule(
        name="flyway-announcement",
        pattern=re.compile(
            r"Flyway\s+Community\s+Edition\s+(\d+\.\d+\.\d+(?:\.\d+)?)\s+by\s+Redgate",
            re.IGNORECASE,
        ),
        products=("flyway",),
    ),
    VersionRule(
        name="generic-version-token",
        pattern=re.compile(
            r"(?:^|\s)(?:version\s+)?(\d+\.\d+\.\d+(?:\.\d+)?)(?:\+\S*)?(?:\s|$)",
            re.IGNORECASE,
        ),
        # Upgrade nag lines mention a newer version than the running one
        rejects=("warning", "available", "upgrade", "find out more"),
    ),
)


def parse_version_output(output: str | None, product_name: str | None = None) -> str | None:
    """Extract the running version from probe output.

    Args:
        output: Captured stdout
        product_name: Product whose rules apply (None applies all rules)

    Returns:
        Version string, or None if no rule matches
    """
    if not output or not output.strip():
        return None

    lines = [ANSI_ESCAPE_RE.sub("", line).strip() for line in output.splitlines()]
    lines = [line for line in lines if line]

    for rule in VERSION_RULES:
        if not rule.applies_to(product_name):
            continue
        for line in lines:
            version = rule.match(line)
            if version:
                logger.debug(f"Version {version} matched by rule {rule.name}: {line!r}")
                return version
    return None


def run_probe(args: Sequence[str], timeout: float = DEFAULT_PROBE_TIMEOUT) -> ProbeResult | None:
    """Run a command and capture stdout.

    Args:
        args: Command and arguments
        timeout: Timeout in seconds; the process is killed when exceeded

    Returns:
        ProbeResult, or None if the command could not run or timed out
    """
    try:
        proc = subprocess.run(
            list(args),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            stdin=subprocess.DEVNULL,
            text=True,
            timeout=timeout,
            check=False,
            env={**os.environ, "TERM": "dumb", "NO_COLOR": "1"},
        )
    except subprocess.TimeoutExpired:
        logger.debug(f"Probe timed out after {timeout}s: {' '.join(args)}")
        return None
    except OSError as e:
        logger.debug(f"Probe could not start: {' '.join(args)}: {e}")
        return None
    return ProbeResult(exit_code=proc.returncode, output=proc.stdout or "")


def probe_executable(
    executable: str,
    product: Product,
    timeout: float = DEFAULT_PROBE_TIMEOUT,
    runner: Runner = run_probe,
) -> str | None:
    """Run an executable's version query and parse the result.

    Args:
        executable: Executable path
        product: Product definition (selects the version argument)
        timeout: Timeout in seconds
        runner: Process runner

    Returns:
        Version string, or None
    """
    result = runner([executable, *product.version_args], timeout)
    if result is None or result.exit_code != 0 or not result.output.strip():
        return None
    return parse_version_output(result.output, product.name)


def detect_active_version(
    product: Product,
    timeout: float = DEFAULT_PROBE_TIMEOUT,
    runner: Runner = run_probe,
    which: Callable[[str], str | None] = shutil.which,
) -> str | None:
    """Detect the version of the product executable resolved via PATH.

    Args:
        product: Product definition
        timeout: Probe timeout in seconds
        runner: Process runner
        which: PATH resolver

    Returns:
        Active version, or None if not determinable
    """
    executable = which(product.name)
    if not executable:
        logger.debug(f"{product.name} not found on PATH")
        return None
    return probe_executable(executable, product, timeout, runner)


def find_executable(product: Product, directory: str, platform: str) -> str | None:
    """Locate a product executable inside a version directory.

    Looks at the top level first, then in a bin/ subfolder.
    """
    for candidate in product.executable_names(platform):
        for folder in (directory, os.path.join(directory, "bin")):
            path = os.path.join(folder, candidate)
            if os.path.isfile(path):
                return path
    return None


def check_active_consistency(
    product: Product,
    root: str,
    platform: str,
    path_version: str | None,
    timeout: float = DEFAULT_PROBE_TIMEOUT,
    runner: Runner = run_probe,
) -> list[str]:
    """Compare the active directory with the PATH-resolved executable.

    Args:
        product: Product definition
        root: Install root
        platform: 'windows' or 'linux'
        path_version: Version reported by the executable on PATH
        timeout: Probe timeout in seconds
        runner: Process runner

    Returns:
        Warning messages (empty when consistent)
    """
    warnings: list[str] = []
    active_dir = active_path(product, root)

    if not os.path.isdir(active_dir):
        if path_version:
            warnings.append(
                f"{product.name} {path_version} on PATH is not managed by rgupdate "
                f"(no active directory at {active_dir})"
            )
        return warnings

    executable = find_executable(product, active_dir, platform)
    dir_version = probe_executable(executable, product, timeout, runner) if executable else None

    if path_version is None:
        warnings.append(
            f"Active directory exists at {active_dir} but {product.name} is not resolvable on PATH; "
            "open a new shell or add the active directory to PATH"
        )
    elif dir_version and dir_version.lower() != path_version.lower():
        warnings.append(
            f"Active directory holds {product.name} {dir_version} but PATH resolves {path_version}"
        )
    return warnings
