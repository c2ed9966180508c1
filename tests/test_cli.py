"""Tests for the tmdemo command line."""

from pathlib import Path

import pytest
import yaml
from azure.mgmt.resource.resources.models import ResourceGroup
from azure_mock import DEFAULT_SUBSCRIPTION_ID, MockAzureContext
from click.testing import CliRunner

from tmdemo.cli import cli


@pytest.fixture
def env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    for key in ("AUTH_MODE", "CLIENT_ID", "CLIENT_SECRET", "TENANT_ID", "SCENARIO_FILE"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("SUBSCRIPTION_ID", DEFAULT_SUBSCRIPTION_ID)
    monkeypatch.setenv("WORK_DIR", str(tmp_path))
    monkeypatch.setenv("OPERATION_TIMEOUT", "60")
    return tmp_path


class TestCli:
    """Tests for the CLI commands."""

    def test_version(self) -> None:
        result = CliRunner().invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_scenario_defaults(self) -> None:
        result = CliRunner().invoke(cli, ["scenario"])

        assert result.exit_code == 0
        data = yaml.safe_load(result.output)
        assert data["regions"] == ["westus", "eastus2", "eastasia", "japaneast", "northcentralus"]

    def test_scenario_file(self, tmp_path: Path) -> None:
        scenario_file = tmp_path / "scenario.yaml"
        scenario_file.write_text("regions: [WestEurope]\n")

        result = CliRunner().invoke(cli, ["scenario", "--scenario", str(scenario_file)])

        assert result.exit_code == 0
        assert yaml.safe_load(result.output)["regions"] == ["westeurope"]

    def test_scenario_invalid_file(self, tmp_path: Path) -> None:
        scenario_file = tmp_path / "scenario.yaml"
        scenario_file.write_text("pfxFileName: cert.txt\n")

        result = CliRunner().invoke(cli, ["scenario", "--scenario", str(scenario_file)])

        assert result.exit_code == 1
        assert "pfxFileName" in result.output

    def test_run_success(self, env: Path) -> None:
        with MockAzureContext() as ctx:
            result = CliRunner().invoke(cli, ["run", "--location", "westeurope"])

            assert result.exit_code == 0, result.output
            assert ctx.state.call_count("resources.resource_groups.create_or_update") == 1
            assert ctx.state.resource_count == 0

    def test_run_failure_exit_code(self, env: Path) -> None:
        with MockAzureContext() as ctx:
            ctx.state.fail_operation("traffic_manager.profiles.create_or_update")

            result = CliRunner().invoke(cli, ["run"])

            assert result.exit_code == 1
            assert ctx.state.call_count("resources.resource_groups.begin_delete") == 1

    def test_run_invalid_config(self, env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SUBSCRIPTION_ID", "not-a-guid")

        result = CliRunner().invoke(cli, ["run"])

        assert result.exit_code == 1
        assert "SUBSCRIPTION_ID" in result.output

    def test_cleanup(self, env: Path) -> None:
        with MockAzureContext() as ctx:
            ctx.clients().resources.resource_groups.create_or_update(
                "rgNEMV_1234", ResourceGroup(location="eastus")
            )

            result = CliRunner().invoke(cli, ["cleanup", "rgNEMV_1234"])

            assert result.exit_code == 0, result.output
            assert "Deleted rgNEMV_1234" in result.output
            assert ctx.state.resource_count == 0

    def test_cleanup_missing_group(self, env: Path) -> None:
        with MockAzureContext():
            result = CliRunner().invoke(cli, ["cleanup", "rgNEMV_missing"])

        assert result.exit_code == 1
        assert "Failed to delete resource group rgNEMV_missing" in result.output

    def test_cleanup_auth_failure(self, env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("SUBSCRIPTION_ID")

        with MockAzureContext(fail_auth=True) as ctx:
            result = CliRunner().invoke(cli, ["cleanup", "rgNEMV_1"])

            assert ctx.state.calls == []

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "Authentication failed" in result.output
