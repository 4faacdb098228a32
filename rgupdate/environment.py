"""
Environment detection for platform-specific downloads and PATH handling.

Detects:
- Target platform ('windows' or 'linux'; macOS uses the Linux artifacts)
- Shell flavor for PATH guidance
- CI/CD sessions (never interactive)
"""

from __future__ import annotations

import os
import platform as _platform
from dataclasses import dataclass

from .common import is_ci_environment, vlog


VALID_PLATFORMS = ("windows", "linux")


@dataclass(frozen=True)
class Environment:
    """
    Detected environment information.

    Attributes:
        platform: Download platform ('windows' or 'linux')
        os_name: Operating system as reported by platform.system()
        shell: Shell name used for PATH guidance ('powershell', 'bash', ...)
        ci: Whether running in CI
        override: Whether the platform was explicitly overridden
    """
    platform: str
    os_name: str
    shell: str = ""
    ci: bool = False
    override: bool = False

    @property
    def is_windows(self) -> bool:
        return self.platform == "windows"

    def __str__(self) -> str:
        override_str = " (override)" if self.override else ""
        ci_str = ", ci" if self.ci else ""
        return f"{self.platform}{override_str} ({self.os_name}{ci_str})"


@dataclass(frozen=True)
class PathUpdate:
    """
    Result of asking the PATH collaborator to expose a directory.

    Attributes:
        success: Whether the directory is now resolvable from this process
        changed: Whether PATH was actually modified
        message: Guidance for the user (e.g. an export line for their profile)
    """
    success: bool
    changed: bool
    message: str = ""


def _detect_shell(os_name: str) -> str:
    if os_name == "Windows":
        return "powershell"
    shell = os.environ.get("SHELL", "")
    return os.path.basename(shell) if shell else "sh"


def detect_environment(override: str | None = None, verbose: bool = False) -> Environment:
    """
    Detect the environment used to choose download artifacts.

    Args:
        override: Explicit platform ('windows', 'linux', 'auto', or None)
        verbose: Enable verbose logging

    Returns:
        Environment object with detected or overridden platform

    Raises:
        ValueError: If override value is not valid
    """
    os_name = _platform.system() or "Unknown"
    shell = _detect_shell(os_name)
    ci = is_ci_environment()

    if override and override != "auto":
        if override not in VALID_PLATFORMS:
            raise ValueError(
                f"Invalid platform override: {override}. "
                f"Must be one of: {', '.join(VALID_PLATFORMS)}"
            )
        vlog(f"Platform explicitly set to: {override}", verbose)
        return Environment(platform=override, os_name=os_name, shell=shell, ci=ci, override=True)

    detected = "windows" if os_name == "Windows" else "linux"
    vlog(f"Detected platform {detected} (os={os_name}, shell={shell}, ci={ci})", verbose)
    return Environment(platform=detected, os_name=os_name, shell=shell, ci=ci)


def path_guidance(directory: str, env: Environment) -> str:
    """
    Build the shell line that puts a directory on PATH permanently.

    Args:
        directory: Directory to expose
        env: Current environment

    Returns:
        Command line suitable for the user's shell profile
    """
    if env.is_windows:
        return f'[Environment]::SetEnvironmentVariable("Path", "{directory};" + $env:Path, "User")'
    if env.shell == "fish":
        return f'fish_add_path "{directory}"'
    return f'export PATH="{directory}:$PATH"'


def _on_path(directory: str, path_value: str) -> bool:
    target = os.path.normcase(os.path.normpath(directory))
    for entry in path_value.split(os.pathsep):
        if entry and os.path.normcase(os.path.normpath(entry)) == target:
            return True
    return False


def ensure_on_path(directory: str, env: Environment, verbose: bool = False) -> PathUpdate:
    """
    Make a directory resolvable via PATH for this process.

    Shell profiles are never edited; the returned message carries the line
    the user should add themselves.

    Args:
        directory: Directory to expose (the active directory)
        env: Current environment
        verbose: Enable verbose logging

    Returns:
        PathUpdate describing what happened
    """
    current = os.environ.get("PATH", "")
    if _on_path(directory, current):
        vlog(f"{directory} already on PATH", verbose)
        return PathUpdate(success=True, changed=False)

    os.environ["PATH"] = directory + (os.pathsep + current if current else "")
    guidance = path_guidance(directory, env)
    vlog(f"Prepended {directory} to PATH for this session", verbose)
    return PathUpdate(
        success=True,
        changed=True,
        message=f"Add {directory} to PATH in new shells: {guidance}",
    )
