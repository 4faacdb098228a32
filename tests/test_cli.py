"""
Tests for the command-line interface (rgupdate/cli.py).
"""

import json
import os
import pytest
import yaml
from unittest.mock import patch

from rgupdate.cli import build_parser, main
from rgupdate.config import INSTALL_LOCATION_ENV, Config, Preferences
from rgupdate.errors import NetworkError
from rgupdate.info import InstallInfo
from rgupdate.installer import InstallResult
from rgupdate.lifecycle import OperationOutcome
from rgupdate.products import get_product, version_path
from rgupdate.reconcile import ListingResult, VersionStatus
from rgupdate.validation import ValidationResult


@pytest.fixture
def root(tmp_path, monkeypatch):
    """Install root selected through the environment, with no config files."""
    monkeypatch.setenv(INSTALL_LOCATION_ENV, str(tmp_path))
    with patch("rgupdate.cli.load_config", return_value=Config()):
        yield tmp_path


def run(*argv):
    return main(["--platform", "linux", *argv])


class TestParser:
    """Tests for argument parsing."""

    def test_install_alias(self):
        """Test 'install' is accepted as an alias of 'get'."""
        args = build_parser().parse_args(["install", "flyway", "10.2"])
        assert args.command == "install"
        assert args.version == "10.2"

    def test_list_defaults(self):
        """Test list options."""
        args = build_parser().parse_args(["list", "rgsubset"])
        assert args.all is False
        assert args.limit is None
        assert args.output == "table"

    def test_command_required(self):
        """Test a command must be given."""
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_invalid_platform(self):
        """Test unknown platforms are rejected by the parser."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--platform", "solaris", "info"])


class TestGet:
    """Tests for the get command."""

    def test_installs(self, root, capsys):
        """Test get installs and prints the result."""
        result = InstallResult(product="flyway", version="10.1.0", path="/x/10.1.0")
        with patch("rgupdate.cli.install_product", return_value=result) as mock_install:
            assert run("get", "flyway", "10.1") == 0

        assert "10.1.0" in capsys.readouterr().out
        args, kwargs = mock_install.call_args
        assert args[0] == get_product("flyway")
        assert args[1] == str(root)
        assert kwargs["version_spec"] == "10.1"
        assert kwargs["platform"] == "linux"

    def test_defaults_to_latest(self, root):
        """Test no version means latest."""
        result = InstallResult(product="flyway", version="10.1.0", path="/x")
        with patch("rgupdate.cli.install_product", return_value=result) as mock_install:
            run("get", "flyway")
        assert mock_install.call_args[1]["version_spec"] == "latest"

    def test_unsupported_product(self, root, capsys):
        """Test an unknown product exits 1 with a hint."""
        assert run("get", "sqlcompare") == 1
        assert "Hint: Supported products" in capsys.readouterr().err

    def test_network_error(self, root, capsys):
        """Test catalog failures exit 1."""
        error = NetworkError("Connection refused", product="flyway", remediation="Check your connection")
        with patch("rgupdate.cli.install_product", side_effect=error):
            assert run("get", "flyway") == 1
        assert "Hint: Check your connection" in capsys.readouterr().err


class TestList:
    """Tests for the list command."""

    def _listing(self):
        return ListingResult(
            product="rgsubset", active_version=None, total_count=1, shown_count=1,
            truncated=False, versions=(VersionStatus(version="1.0.0"),), warnings=(),
        )

    def test_json_output(self, root, capsys):
        """Test machine-readable output."""
        with patch("rgupdate.cli.list_versions", return_value=self._listing()):
            assert run("list", "rgsubset", "-o", "json") == 0
        data = json.loads(capsys.readouterr().out)
        assert data["versions"][0]["version"] == "1.0.0"

    def test_limit_from_preferences(self, root):
        """Test the configured display limit."""
        config = Config(preferences=Preferences(display_limit=4))
        with patch("rgupdate.cli.load_config", return_value=config), \
                patch("rgupdate.cli.list_versions", return_value=self._listing()) as mock_list:
            run("list", "rgsubset")
        assert mock_list.call_args[1]["limit"] == 4

    def test_all_disables_limit(self, root):
        """Test --all shows everything."""
        with patch("rgupdate.cli.list_versions", return_value=self._listing()) as mock_list:
            run("list", "rgsubset", "--all")
        assert mock_list.call_args[1]["limit"] is None

    def test_explicit_limit(self, root):
        """Test --limit overrides the configured display limit."""
        with patch("rgupdate.cli.list_versions", return_value=self._listing()) as mock_list:
            assert run("list", "rgsubset", "--limit", "3") == 0
        assert mock_list.call_args[1]["limit"] == 3

    @pytest.mark.parametrize("value", ["0", "-2"])
    def test_limit_below_one_rejected(self, root, value):
        """Test a zero or negative --limit fails instead of being replaced."""
        with patch("rgupdate.cli.list_versions") as mock_list:
            assert run("list", "rgsubset", "--limit", value) == 1
        mock_list.assert_not_called()


class TestRemoveAndPurge:
    """Tests for the remove and purge commands."""

    def test_guard_exit_code(self, root, capsys):
        """Test a blocked removal exits 1 and shows how to proceed."""
        outcome = OperationOutcome(
            operation="remove", product="flyway", guard_triggered=True,
            message="flyway 10.0.0 is the active version and was not removed",
            remediation="rgupdate remove flyway --version 10.0.0 --force",
        )
        with patch("rgupdate.cli.remove_versions", return_value=outcome) as mock_remove:
            assert run("remove", "flyway", "--version", "10.0.0") == 1

        assert "--force" in capsys.readouterr().out
        kwargs = mock_remove.call_args[1]
        assert kwargs["version"] == "10.0.0"
        assert kwargs["remove_all"] is False
        assert kwargs["force"] is False

    def test_remove_requires_selector(self, root, capsys):
        """Test remove without --version or --all."""
        assert run("remove", "flyway") == 1
        assert "Hint: rgupdate remove flyway --version" in capsys.readouterr().err

    def test_purge_default_keep(self, root):
        """Test purge uses the configured default keep."""
        config = Config(preferences=Preferences(default_keep=5))
        outcome = OperationOutcome(operation="purge", product="rgsubset")
        with patch("rgupdate.cli.load_config", return_value=config), \
                patch("rgupdate.cli.purge_versions", return_value=outcome) as mock_purge:
            assert run("purge", "rgsubset") == 0
        assert mock_purge.call_args[1]["keep"] == 5

    def test_purge_invalid_keep(self, root):
        """Test keep < 1 fails."""
        assert run("purge", "rgsubset", "--keep", "0") == 1


class TestUse:
    """Tests for the use command."""

    def test_local_flags_exclusive(self, root):
        """Test the local copy flags cannot be combined."""
        assert run("use", "flyway", "--local-copy", "--local-only") == 1

    def test_activates_installed_version(self, root, capsys):
        """Test an installed version is activated without downloading."""
        os.makedirs(version_path(get_product("rgsubset"), "1.0.0", str(root)))
        with open(os.path.join(version_path(get_product("rgsubset"), "1.0.0", str(root)), "rgsubset"), "w") as f:
            f.write("x")

        outcome = OperationOutcome(operation="activate", product="rgsubset", succeeded=("1.0.0",),
                                   message="rgsubset 1.0.0 is now active")
        passed = ValidationResult("rgsubset", "1.0.0", True, reported_version="1.0.0")
        with patch("rgupdate.cli.install_product") as mock_install, \
                patch("rgupdate.cli.activate_version", return_value=outcome) as mock_activate, \
                patch("rgupdate.cli.validate_version", return_value=passed):
            assert run("use", "rgsubset", "1.0") == 0

        mock_install.assert_not_called()
        assert mock_activate.call_args[1]["version"] == "1.0.0"
        assert "PASS" in capsys.readouterr().out

    def test_installs_missing_version(self, root):
        """Test a missing version is installed before activation."""
        result = InstallResult(product="flyway", version="10.1.0", path="/x")
        outcome = OperationOutcome(operation="activate", product="flyway", succeeded=("10.1.0",))
        failed = ValidationResult("flyway", "10.1.0", False, error_message="Exited with code 1")
        with patch("rgupdate.cli.install_product", return_value=result), \
                patch("rgupdate.cli.activate_version", return_value=outcome) as mock_activate, \
                patch("rgupdate.cli.validate_version", return_value=failed):
            assert run("use", "flyway", "10.1.0") == 1
        assert mock_activate.call_args[1]["version"] == "10.1.0"


class TestValidateAndInfo:
    """Tests for the validate and info commands."""

    def test_validate_exit_code(self, root):
        """Test any failure exits 1."""
        results = [
            ValidationResult("flyway", "10.0.0", True, reported_version="10.0.0"),
            ValidationResult("flyway", "9.0.0", False, error_message="boom"),
        ]
        with patch("rgupdate.cli.validate_product", return_value=results):
            assert run("validate", "flyway") == 1

    def test_info_yaml(self, root, capsys):
        """Test the info overview as YAML."""
        info = InstallInfo(location=str(root), source="environment", exists=True,
                           total_size_bytes=0, products=())
        with patch("rgupdate.cli.gather_info", return_value=info):
            assert run("info", "-o", "yaml") == 0
        assert yaml.safe_load(capsys.readouterr().out)["source"] == "environment"


class TestConfigCommand:
    """Tests for the config command."""

    def test_show(self, root, capsys):
        """Test the effective configuration is printed."""
        assert run("config", "show") == 0
        out = capsys.readouterr().out
        assert f"Install location: {root} (from environment)" in out
        assert "Platform:         linux" in out

    def test_set_location(self, root, tmp_path, capsys):
        """Test the new location is saved."""
        config_file = tmp_path / "cfg" / "config.yml"
        target = tmp_path / "elsewhere"
        assert run("config", "set-location", str(target), "--config-file", str(config_file)) == 0
        assert yaml.safe_load(config_file.read_text())["install_location"] == str(target)
        assert "Install location set to" in capsys.readouterr().out


class TestMain:
    """Tests for startup handling."""

    def test_bad_config_path(self, tmp_path):
        """Test an unreadable --config exits 2."""
        assert main(["--config", str(tmp_path / "missing.yml"), "info"]) == 2

    def test_keyboard_interrupt(self, root):
        """Test Ctrl-C exits 130."""
        with patch("rgupdate.cli.gather_info", side_effect=KeyboardInterrupt):
            assert run("info") == 130
