"""
Tests for active version detection (rgupdate/detection.py).
"""

import os
import subprocess
import pytest
from unittest.mock import patch, MagicMock

from rgupdate.detection import (
    ProbeResult,
    VERSION_RULES,
    parse_version_output,
    run_probe,
    probe_executable,
    detect_active_version,
    find_executable,
    check_active_consistency,
)
from rgupdate.products import get_product, active_path


def fake_runner(output, exit_code=0, calls=None):
    """Build a runner returning fixed output."""
    def runner(args, timeout):
        if calls is not None:
            calls.append((list(args), timeout))
        return ProbeResult(exit_code=exit_code, output=output)
    return runner


class TestParseVersionOutput:
    """Tests for version output parsing."""

    @pytest.mark.parametrize("output,expected", [
        ("1.0.0", "1.0.0"),
        ("rgsubset version 2.1.10.8038", "2.1.10.8038"),
        ("Flyway Community Edition 8.1.23 by Redgate", "8.1.23"),
    ])
    def test_valid_output(self, output, expected):
        """Test versions are extracted from typical output."""
        assert parse_version_output(output) == expected

    @pytest.mark.parametrize("output", ["No version information", "", "  ", None])
    def test_no_version(self, output):
        """Test output without a version yields None."""
        assert parse_version_output(output) is None

    def test_upgrade_nag_line_ignored(self):
        """Test 'new version available' lines are skipped."""
        output = (
            "A new version 2.2.0.100 is available, find out more at https://example.com\n"
            "2.1.10.8038\n"
        )
        assert parse_version_output(output) == "2.1.10.8038"

    def test_warning_line_ignored(self):
        """Test WARNING lines are skipped."""
        output = "WARNING: upgrade to 11.0.0 recommended\nversion 10.1.0"
        assert parse_version_output(output) == "10.1.0"

    def test_flyway_announcement_preferred(self):
        """Test the flyway banner wins over earlier generic tokens."""
        output = "Java 17.0.2 runtime\nFlyway Community Edition 10.1.0 by Redgate\n"
        assert parse_version_output(output, "flyway") == "10.1.0"

    def test_flyway_rule_scoped_to_flyway(self):
        """Test other products fall through to the generic rule."""
        output = "Java 17.0.2 runtime\nFlyway Community Edition 10.1.0 by Redgate\n"
        assert parse_version_output(output, "rgsubset") == "17.0.2"

    def test_build_metadata_suffix(self):
        """Test a '+build' suffix is tolerated."""
        assert parse_version_output("1.2.3+abcdef") == "1.2.3"

    def test_ansi_codes_stripped(self):
        """Test colored output parses."""
        assert parse_version_output("\x1b[32m3.4.5\x1b[0m") == "3.4.5"

    def test_rules_are_named_and_ordered(self):
        """Test the rule order."""
        assert [r.name for r in VERSION_RULES] == ["flyway-announcement", "generic-version-token"]


class TestRunProbe:
    """Tests for subprocess execution."""

    @patch("rgupdate.detection.subprocess.run")
    def test_captures_stdout(self, mock_run):
        """Test stdout and exit code are captured."""
        mock_run.return_value = MagicMock(returncode=0, stdout="1.0.0\n")
        result = run_probe(["tool", "--version"], timeout=3)
        assert result == ProbeResult(exit_code=0, output="1.0.0\n")
        assert mock_run.call_args[1]["timeout"] == 3

    @patch("rgupdate.detection.subprocess.run")
    def test_missing_executable(self, mock_run):
        """Test a missing executable yields None."""
        mock_run.side_effect = FileNotFoundError("no such file")
        assert run_probe(["nope"], timeout=1) is None

    @patch("rgupdate.detection.subprocess.run")
    def test_timeout(self, mock_run):
        """Test a timed-out probe yields None."""
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="tool", timeout=1)
        assert run_probe(["tool"], timeout=1) is None


class TestDetectActiveVersion:
    """Tests for detect_active_version."""

    def test_flyway_uses_version_subcommand(self):
        """Test flyway is probed with 'version'."""
        calls = []
        version = detect_active_version(
            get_product("flyway"),
            runner=fake_runner("Flyway Community Edition 10.1.0 by Redgate", calls=calls),
            which=lambda name: "/usr/bin/flyway",
        )
        assert version == "10.1.0"
        assert calls[0][0] == ["/usr/bin/flyway", "version"]

    def test_other_products_use_version_flag(self):
        """Test rgsubset is probed with '--version'."""
        calls = []
        detect_active_version(
            get_product("rgsubset"),
            runner=fake_runner("2.1.10.8038", calls=calls),
            which=lambda name: "/usr/bin/rgsubset",
        )
        assert calls[0][0] == ["/usr/bin/rgsubset", "--version"]

    def test_not_on_path(self):
        """Test a product not on PATH has no active version."""
        runner = MagicMock()
        assert detect_active_version(get_product("rgsubset"), runner=runner, which=lambda n: None) is None
        runner.assert_not_called()

    def test_nonzero_exit(self):
        """Test a failing executable has no active version."""
        assert detect_active_version(
            get_product("rgsubset"),
            runner=fake_runner("2.1.10.8038", exit_code=1),
            which=lambda n: "/usr/bin/rgsubset",
        ) is None

    def test_empty_output(self):
        """Test empty output has no active version."""
        assert detect_active_version(
            get_product("rgsubset"),
            runner=fake_runner(""),
            which=lambda n: "/usr/bin/rgsubset",
        ) is None

    def test_runner_failure(self):
        """Test a runner that could not start the process."""
        assert detect_active_version(
            get_product("rgsubset"),
            runner=lambda args, timeout: None,
            which=lambda n: "/usr/bin/rgsubset",
        ) is None


class TestFindExecutable:
    """Tests for locating executables in version directories."""

    def test_top_level(self, tmp_path):
        """Test an executable at the top of the directory."""
        (tmp_path / "rgsubset").write_text("#!/bin/sh")
        assert find_executable(get_product("rgsubset"), str(tmp_path), "linux") == str(tmp_path / "rgsubset")

    def test_windows_flyway_cmd(self, tmp_path):
        """Test flyway.cmd is found on Windows."""
        (tmp_path / "flyway.cmd").write_text("@echo off")
        assert find_executable(get_product("flyway"), str(tmp_path), "windows").endswith("flyway.cmd")

    def test_bin_subfolder(self, tmp_path):
        """Test an executable inside bin/."""
        (tmp_path / "bin").mkdir()
        (tmp_path / "bin" / "rganonymize").write_text("#!/bin/sh")
        assert find_executable(get_product("rganonymize"), str(tmp_path), "linux").endswith(
            os.path.join("bin", "rganonymize")
        )

    def test_missing(self, tmp_path):
        """Test no executable found."""
        assert find_executable(get_product("flyway"), str(tmp_path), "linux") is None


class TestCheckActiveConsistency:
    """Tests for active directory versus PATH checks."""

    def _make_active(self, root, product):
        path = active_path(product, str(root))
        os.makedirs(path)
        with open(os.path.join(path, product.name), "w") as f:
            f.write("#!/bin/sh")
        return path

    def test_consistent(self, tmp_path):
        """Test matching versions produce no warnings."""
        product = get_product("rgsubset")
        self._make_active(tmp_path, product)
        warnings = check_active_consistency(
            product, str(tmp_path), "linux", "1.0.0", runner=fake_runner("1.0.0"),
        )
        assert warnings == []

    def test_mismatch(self, tmp_path):
        """Test a different PATH version is reported."""
        product = get_product("rgsubset")
        self._make_active(tmp_path, product)
        warnings = check_active_consistency(
            product, str(tmp_path), "linux", "2.0.0", runner=fake_runner("1.0.0"),
        )
        assert len(warnings) == 1
        assert "1.0.0" in warnings[0] and "2.0.0" in warnings[0]

    def test_active_dir_but_not_on_path(self, tmp_path):
        """Test an active directory that PATH does not resolve."""
        product = get_product("rgsubset")
        self._make_active(tmp_path, product)
        warnings = check_active_consistency(
            product, str(tmp_path), "linux", None, runner=fake_runner("1.0.0"),
        )
        assert len(warnings) == 1
        assert "not resolvable on PATH" in warnings[0]

    def test_unmanaged_path_version(self, tmp_path):
        """Test a PATH version without an active directory."""
        warnings = check_active_consistency(
            get_product("flyway"), str(tmp_path), "linux", "9.0.0", runner=fake_runner(""),
        )
        assert len(warnings) == 1
        assert "not managed" in warnings[0]

    def test_nothing_active(self, tmp_path):
        """Test no active directory and nothing on PATH."""
        assert check_active_consistency(get_product("flyway"), str(tmp_path), "linux", None) == []
