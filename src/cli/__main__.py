#!/usr/bin/env python3
"""Main CLI entry point for webapp deployments."""

import logging

import click

from .deploy import deploy, status

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Show debug output")
def cli(verbose: bool) -> None:
    """Package a web application and deploy it with CloudFormation."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT
    )
    # boto's debug output drowns out the deployment progress
    for name in ("boto3", "botocore", "s3transfer", "urllib3"):
        logging.getLogger(name).setLevel(logging.WARNING)


cli.add_command(deploy, name="deploy")
cli.add_command(status, name="status")


if __name__ == "__main__":
    cli()
