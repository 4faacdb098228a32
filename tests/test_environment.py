"""
Tests for environment detection and PATH handling (rgupdate/environment.py).
"""

import os
import pytest
from unittest.mock import patch

from rgupdate.environment import (
    Environment,
    PathUpdate,
    detect_environment,
    path_guidance,
    ensure_on_path,
)


class TestEnvironment:
    """Tests for Environment dataclass."""

    def test_environment_str(self):
        """Test Environment string representation."""
        env = Environment(platform="linux", os_name="Linux", ci=True)
        assert str(env) == "linux (Linux, ci)"

        env_override = Environment(platform="windows", os_name="Linux", override=True)
        assert "override" in str(env_override)

    def test_is_windows(self):
        """Test the windows flag."""
        assert Environment(platform="windows", os_name="Windows").is_windows
        assert not Environment(platform="linux", os_name="Darwin").is_windows

    def test_environment_immutable(self):
        """Test that Environment is immutable (frozen dataclass)."""
        env = Environment(platform="linux", os_name="Linux")
        with pytest.raises(AttributeError):
            env.platform = "windows"


class TestDetectEnvironment:
    """Tests for detect_environment."""

    @pytest.mark.parametrize("os_name,expected", [
        ("Windows", "windows"),
        ("Linux", "linux"),
        ("Darwin", "linux"),
    ])
    def test_detected_platform(self, os_name, expected):
        """Test platform detection from the operating system."""
        with patch("rgupdate.environment._platform.system", return_value=os_name):
            env = detect_environment()
        assert env.platform == expected
        assert env.os_name == os_name
        assert not env.override

    def test_windows_shell(self):
        """Test PowerShell is assumed on Windows."""
        with patch("rgupdate.environment._platform.system", return_value="Windows"):
            assert detect_environment().shell == "powershell"

    def test_unix_shell_from_env(self):
        """Test the shell is taken from $SHELL."""
        with patch("rgupdate.environment._platform.system", return_value="Linux"), \
                patch.dict(os.environ, {"SHELL": "/usr/bin/fish"}):
            assert detect_environment().shell == "fish"

    def test_override(self):
        """Test an explicit platform wins."""
        with patch("rgupdate.environment._platform.system", return_value="Linux"):
            env = detect_environment("windows")
        assert env.platform == "windows"
        assert env.override

    def test_auto_override_detects(self):
        """Test 'auto' behaves like no override."""
        with patch("rgupdate.environment._platform.system", return_value="Linux"):
            env = detect_environment("auto")
        assert env.platform == "linux"
        assert not env.override

    def test_invalid_override(self):
        """Test an unknown platform is rejected."""
        with pytest.raises(ValueError, match="Invalid platform override"):
            detect_environment("solaris")

    def test_ci_detection(self):
        """Test CI markers are picked up."""
        with patch.dict(os.environ, {"GITHUB_ACTIONS": "true"}):
            assert detect_environment().ci


class TestPathGuidance:
    """Tests for path_guidance."""

    def test_powershell(self):
        """Test the Windows guidance."""
        env = Environment(platform="windows", os_name="Windows", shell="powershell")
        assert path_guidance(r"C:\rg\active", env).startswith("[Environment]::SetEnvironmentVariable")

    def test_fish(self):
        """Test the fish guidance."""
        env = Environment(platform="linux", os_name="Linux", shell="fish")
        assert path_guidance("/opt/x", env) == 'fish_add_path "/opt/x"'

    def test_posix(self):
        """Test the POSIX shell guidance."""
        env = Environment(platform="linux", os_name="Linux", shell="bash")
        assert path_guidance("/opt/x", env) == 'export PATH="/opt/x:$PATH"'


class TestEnsureOnPath:
    """Tests for ensure_on_path."""

    ENV = Environment(platform="linux", os_name="Linux", shell="bash")

    def test_prepends_directory(self, tmp_path):
        """Test a new directory is prepended for this process."""
        with patch.dict(os.environ, {"PATH": "/usr/bin"}):
            update = ensure_on_path(str(tmp_path), self.ENV)
            assert os.environ["PATH"] == str(tmp_path) + os.pathsep + "/usr/bin"

        assert update.success and update.changed
        assert "export PATH" in update.message

    def test_already_present(self, tmp_path):
        """Test nothing changes when the directory is on PATH."""
        value = os.pathsep.join(["/usr/bin", str(tmp_path)])
        with patch.dict(os.environ, {"PATH": value}):
            update = ensure_on_path(str(tmp_path) + os.sep, self.ENV)
            assert os.environ["PATH"] == value

        assert update == PathUpdate(success=True, changed=False)

    def test_empty_path(self, tmp_path):
        """Test an empty PATH."""
        with patch.dict(os.environ, {"PATH": ""}):
            ensure_on_path(str(tmp_path), self.ENV)
            assert os.environ["PATH"] == str(tmp_path)
