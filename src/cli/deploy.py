#!/usr/bin/env python3
"""
Deployment CLI commands.
"""

import sys
from typing import Dict, Optional

import click

from aws_session import AwsSession
from cloudformation import ABSENT, StackManager
from config import load_deploy_config
from deployment import WebAppDeployer


def build_stack_parameters(
    version: str,
    domain: str,
    key_pair: str,
    admin_cidr: str,
    db_username: str,
    db_password: str,
) -> Dict[str, str]:
    """Map command line values to template parameters."""
    return {
        "Version": version,
        "DomainName": domain,
        "KeyName": key_pair,
        "AdminCidr": admin_cidr,
        "DBMasterUsername": db_username,
        "DBMasterPassword": db_password,
    }


@click.command()
@click.option("--version", "app_version", required=True, help="Application version")
@click.option("--stack-name", "-s", required=True, help="CloudFormation stack name")
@click.option("--domain", required=True, help="Domain name of the application")
@click.option("--key-pair", required=True, help="EC2 key pair name")
@click.option("--admin-cidr", required=True, help="Network range allowed admin access")
@click.option("--db-username", required=True, help="Database master username")
@click.option("--db-password", required=True, help="Database master password")
@click.option("--bucket", "-b", required=True, help="S3 bucket for build artifacts")
@click.option(
    "--template",
    "-t",
    required=True,
    type=click.Path(dir_okay=False),
    help="CloudFormation template path",
)
@click.option(
    "--project",
    "-p",
    required=True,
    type=click.Path(dir_okay=False),
    help="Project file to build",
)
@click.option("--region", help="AWS region")
@click.option("--profile", help="AWS profile to use")
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    help="Deployment settings file (YAML)",
)
def deploy(
    app_version: str,
    stack_name: str,
    domain: str,
    key_pair: str,
    admin_cidr: str,
    db_username: str,
    db_password: str,
    bucket: str,
    template: str,
    project: str,
    region: Optional[str],
    profile: Optional[str],
    config_file: Optional[str],
) -> None:
    """Build the application and deploy it through a CloudFormation stack."""
    try:
        config = load_deploy_config(config_file, region=region, profile=profile)
        session = AwsSession(region=config.region, profile=config.profile)
        deployer = WebAppDeployer(session, config)

        parameters = build_stack_parameters(
            app_version, domain, key_pair, admin_cidr, db_username, db_password
        )

        result = deployer.deploy(
            version=app_version,
            stack_name=stack_name,
            parameters=parameters,
            template_path=template,
            project_path=project,
            bucket=bucket,
        )

    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if result.success:
        click.echo(f"✅ {result.message} ({result.duration:.0f}s)")
        if result.outputs:
            click.echo("\nOutputs:")
            for key, value in result.outputs.items():
                click.echo(f"  {key}: {value}")
    else:
        click.echo(f"❌ {result.message}", err=True)
        for error in result.errors:
            if error != result.message:
                click.echo(f"  - {error}", err=True)
        sys.exit(1)


@click.command()
@click.option("--stack-name", "-s", required=True, help="CloudFormation stack name")
@click.option("--region", help="AWS region")
@click.option("--profile", help="AWS profile to use")
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    help="Deployment settings file (YAML)",
)
def status(
    stack_name: str, region: Optional[str], profile: Optional[str], config_file: Optional[str]
) -> None:
    """Show CloudFormation stack status."""
    try:
        config = load_deploy_config(config_file, region=region, profile=profile)
        manager = StackManager(AwsSession(region=config.region, profile=config.profile), config)

        stack_status = manager.get_stack_status(stack_name)
        if stack_status == ABSENT:
            click.echo(f"Stack {stack_name} does not exist")
            return

        click.echo(f"Stack: {stack_name}")
        click.echo(f"Status: {stack_status}")

        outputs = manager.get_stack_outputs(stack_name)
        if outputs:
            click.echo("\nOutputs:")
            for key, value in outputs.items():
                click.echo(f"  {key}: {value}")

    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
