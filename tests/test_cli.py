"""
Tests for the command line interface.
"""

from typing import Any, List
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from cli.__main__ import cli
from cli.deploy import build_stack_parameters
from deployment import DeploymentResult, DeploymentStatus

DEPLOY_ARGS: List[str] = [
    "deploy",
    "--version", "3.1.0",
    "--stack-name", "webapp-prod",
    "--domain", "example.com",
    "--key-pair", "ops-key",
    "--admin-cidr", "203.0.113.0/24",
    "--db-username", "admin",
    "--db-password", "s3cret",
    "--bucket", "webapp-artifacts",
    "--template", "template.json",
    "--project", "src/WebApp.csproj",
]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch) -> None:
    """Keep the caller's AWS settings out of the loaded configuration."""
    for var in ("AWS_REGION", "AWS_DEFAULT_REGION", "AWS_PROFILE"):
        monkeypatch.delenv(var, raising=False)


class TestDeployCommand:
    """Test the deploy command."""

    @pytest.fixture
    def runner(self) -> CliRunner:
        return CliRunner()

    @pytest.fixture
    def mock_deployer(self) -> Any:
        with patch("cli.deploy.AwsSession") as mock_session, patch(
            "cli.deploy.WebAppDeployer"
        ) as mock_deployer:
            mock_deployer.session_class = mock_session
            yield mock_deployer

    def test_build_stack_parameters(self) -> None:
        parameters = build_stack_parameters(
            "3.1.0", "example.com", "ops-key", "203.0.113.0/24", "admin", "s3cret"
        )

        assert list(parameters) == [
            "Version",
            "DomainName",
            "KeyName",
            "AdminCidr",
            "DBMasterUsername",
            "DBMasterPassword",
        ]
        assert parameters["AdminCidr"] == "203.0.113.0/24"

    def test_successful_deploy(self, runner, mock_deployer) -> None:
        """Test that a successful deployment exits with code 0."""
        mock_deployer.return_value.deploy.return_value = DeploymentResult(
            status=DeploymentStatus.SUCCESS,
            message="Stack webapp-prod created with version 3.1.0",
            duration=42.0,
            outputs={"SiteUrl": "https://example.com"},
        )

        with runner.isolated_filesystem():
            result = runner.invoke(cli, DEPLOY_ARGS + ["--region", "eu-west-1"])

        assert result.exit_code == 0, result.output
        assert "created with version 3.1.0" in result.output
        assert "SiteUrl: https://example.com" in result.output

        mock_deployer.session_class.assert_called_once_with(region="eu-west-1", profile=None)
        kwargs = mock_deployer.return_value.deploy.call_args[1]
        assert kwargs["version"] == "3.1.0"
        assert kwargs["stack_name"] == "webapp-prod"
        assert kwargs["bucket"] == "webapp-artifacts"
        assert kwargs["template_path"] == "template.json"
        assert kwargs["project_path"] == "src/WebApp.csproj"
        assert kwargs["parameters"]["DBMasterPassword"] == "s3cret"

    def test_failed_deploy_exits_non_zero(self, runner, mock_deployer) -> None:
        """Test that an unsuccessful deployment exits with code 1."""
        mock_deployer.return_value.deploy.return_value = DeploymentResult(
            status=DeploymentStatus.FAILED,
            message="Stack webapp-prod update failed (UPDATE_ROLLBACK_COMPLETE)",
            duration=300.0,
            errors=["Stack webapp-prod update failed (UPDATE_ROLLBACK_COMPLETE)"],
        )

        with runner.isolated_filesystem():
            result = runner.invoke(cli, DEPLOY_ARGS)

        assert result.exit_code == 1

    def test_unexpected_error_exits_non_zero(self, runner, mock_deployer) -> None:
        """Test that exceptions are reported and exit with code 1."""
        mock_deployer.return_value.deploy.side_effect = RuntimeError("Template format error")

        with runner.isolated_filesystem():
            result = runner.invoke(cli, DEPLOY_ARGS)

        assert result.exit_code == 1
        assert "Error: Template format error" in result.output

    @pytest.mark.parametrize("option", ["--version", "--db-password", "--project", "--bucket"])
    def test_missing_option_fails_before_deploying(self, runner, mock_deployer, option) -> None:
        """Test that every deployment option is mandatory."""
        index = DEPLOY_ARGS.index(option)
        args = DEPLOY_ARGS[:index] + DEPLOY_ARGS[index + 2:]

        result = runner.invoke(cli, args)

        assert result.exit_code == 2
        assert "Missing option" in result.output
        mock_deployer.assert_not_called()
        mock_deployer.session_class.assert_not_called()


class TestStatusCommand:
    """Test the status command."""

    def test_status_absent(self) -> None:
        runner = CliRunner()
        with patch("cli.deploy.AwsSession"), patch("cli.deploy.StackManager") as mock_manager:
            mock_manager.return_value.get_stack_status.return_value = "ABSENT"
            with runner.isolated_filesystem():
                result = runner.invoke(cli, ["status", "--stack-name", "webapp-prod"])

        assert result.exit_code == 0
        assert "does not exist" in result.output

    def test_status_with_outputs(self) -> None:
        runner = CliRunner()
        with patch("cli.deploy.AwsSession"), patch("cli.deploy.StackManager") as mock_manager:
            mock_manager.return_value.get_stack_status.return_value = "UPDATE_COMPLETE"
            mock_manager.return_value.get_stack_outputs.return_value = {"SiteUrl": "https://example.com"}
            with runner.isolated_filesystem():
                result = runner.invoke(cli, ["status", "-s", "webapp-prod"])

        assert result.exit_code == 0
        assert "Status: UPDATE_COMPLETE" in result.output
        assert "SiteUrl: https://example.com" in result.output

    def test_status_reads_config_file(self) -> None:
        """Test that status uses the settings from --config."""
        runner = CliRunner()
        with patch("cli.deploy.AwsSession") as mock_session, patch(
            "cli.deploy.StackManager"
        ) as mock_manager:
            mock_manager.return_value.get_stack_status.return_value = "CREATE_COMPLETE"
            mock_manager.return_value.get_stack_outputs.return_value = {}
            with runner.isolated_filesystem():
                with open("custom.yaml", "w") as f:
                    f.write("region: eu-west-1\nprobe_retries: 7\n")
                result = runner.invoke(
                    cli, ["status", "-s", "webapp-prod", "--config", "custom.yaml"]
                )

        assert result.exit_code == 0, result.output
        mock_session.assert_called_once_with(region="eu-west-1", profile=None)
        config = mock_manager.call_args[0][1]
        assert config.probe_retries == 7
