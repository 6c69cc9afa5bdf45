"""
Leftovers CLI - AWS Resource Cleanup

Main entry point for the command-line interface.
"""

import sys
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel

from . import __version__
from .aws.leftovers import RESOURCE_TYPES, Leftovers
from .core.async_deleter import DeleterConfig, RunReport
from .core.aws_client import AWSClient, AWSClientError
from .core.exceptions import IncompleteDeletionError
from .core.logger import Logger
from .core.logging import setup_logging
from .reporters.cli_reporter import CLIReporter
from .reporters.json_reporter import JSONReporter


console = Console()


@click.group()
@click.version_option(version=__version__, prog_name="leftovers")
@click.option(
    "--region",
    "-r",
    envvar="BBL_AWS_REGION",
    default="us-east-1",
    show_default=True,
    help="AWS region [env: BBL_AWS_REGION]",
)
@click.option(
    "--profile",
    "-p",
    envvar="AWS_PROFILE",
    default=None,
    help="AWS profile name from ~/.aws/credentials [env: AWS_PROFILE]",
)
@click.option(
    "--aws-access-key-id",
    envvar="BBL_AWS_ACCESS_KEY_ID",
    default=None,
    help="AWS access key ID [env: BBL_AWS_ACCESS_KEY_ID]",
)
@click.option(
    "--aws-secret-access-key",
    envvar="BBL_AWS_SECRET_ACCESS_KEY",
    default=None,
    help="AWS secret access key [env: BBL_AWS_SECRET_ACCESS_KEY]",
)
@click.option(
    "--aws-session-token",
    envvar="BBL_AWS_SESSION_TOKEN",
    default=None,
    help="AWS session token [env: BBL_AWS_SESSION_TOKEN]",
)
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Show diagnostic logging on stderr",
)
@click.pass_context
def cli(
    ctx: click.Context,
    region: str,
    profile: Optional[str],
    aws_access_key_id: Optional[str],
    aws_secret_access_key: Optional[str],
    aws_session_token: Optional[str],
    debug: bool,
):
    """
    Leftovers: delete the AWS resources an environment left behind.

    Lists every supported resource whose name contains a filter, asks for
    confirmation, and deletes the confirmed ones concurrently. Resources
    that fail because another one still depends on them are retried.
    """
    setup_logging(level="DEBUG" if debug else "WARNING")
    ctx.obj = AWSClient(
        region=region,
        profile=profile,
        access_key_id=aws_access_key_id,
        secret_access_key=aws_secret_access_key,
        session_token=aws_session_token,
    )


def _validated_client(ctx: click.Context) -> AWSClient:
    """Return the group's AWS client, exiting if its credentials are unusable."""
    client: AWSClient = ctx.obj
    try:
        account_id = client.get_account_id()
    except AWSClientError as e:
        console.print(f"\n[red bold]Authentication Error:[/red bold] {str(e)}")
        sys.exit(1)
    console.print(f"[dim]Account: {account_id}  Region: {client.region}[/dim]")
    return client


@cli.command("types")
@click.pass_context
def list_types(ctx: click.Context):
    """List the resource types that can be deleted."""
    try:
        Leftovers(Logger(console), ctx.obj).types()
    except AWSClientError as e:
        console.print(f"\n[red bold]AWS Error:[/red bold] {str(e)}")
        sys.exit(1)


@cli.command("list")
@click.option(
    "--filter",
    "-f",
    "name_filter",
    default="",
    help="Only resources whose name contains this text",
)
@click.option(
    "--type",
    "-t",
    "resource_type",
    type=click.Choice(RESOURCE_TYPES),
    default=None,
    help="Only resources of this type",
)
@click.pass_context
def list_resources(ctx: click.Context, name_filter: str, resource_type: Optional[str]):
    """
    List resources without deleting anything.

    Examples:

        # Everything in the region
        leftovers list

        # Resources left by one environment
        leftovers list --filter ci-env-42
    """
    client = _validated_client(ctx)
    try:
        Leftovers(Logger(console), client).list(name_filter, resource_type)
    except AWSClientError as e:
        console.print(f"\n[red bold]AWS Error:[/red bold] {str(e)}")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Listing cancelled by user.[/yellow]")
        sys.exit(130)


@cli.command("delete")
@click.option(
    "--filter",
    "-f",
    "name_filter",
    default="",
    help="Only resources whose name contains this text",
)
@click.option(
    "--type",
    "-t",
    "resource_type",
    type=click.Choice(RESOURCE_TYPES),
    default=None,
    help="Only resources of this type",
)
@click.option(
    "--no-confirm",
    "-n",
    is_flag=True,
    default=False,
    help="Delete without asking about each resource (dangerous!)",
)
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="List what would be deleted without deleting",
)
@click.option(
    "--max-workers",
    default=20,
    type=click.IntRange(min=1),
    show_default=True,
    help="Maximum simultaneous delete calls",
)
@click.option(
    "--max-rounds",
    default=2,
    type=click.IntRange(min=1),
    show_default=True,
    help="Maximum deletion passes, counting the first",
)
@click.option(
    "--retry-delay",
    default=2.0,
    type=click.FloatRange(min=0),
    show_default=True,
    help="Seconds to wait before the first retry pass (doubled per pass)",
)
@click.option(
    "--output",
    "-o",
    default=None,
    help="Write the run report to this JSON file",
)
@click.pass_context
def delete_resources(
    ctx: click.Context,
    name_filter: str,
    resource_type: Optional[str],
    no_confirm: bool,
    dry_run: bool,
    max_workers: int,
    max_rounds: int,
    retry_delay: float,
    output: Optional[str],
):
    """
    Delete resources whose name contains the filter.

    SAFETY FEATURES:
    - Confirmation prompt for every resource unless --no-confirm
    - Dry-run mode (--dry-run): Preview without deleting

    Examples:

        # Preview what would be deleted (safe)
        leftovers delete --filter ci-env-42 --dry-run

        # Delete with a prompt per resource
        leftovers delete --filter ci-env-42

        # Delete only volumes, without prompts
        leftovers delete --filter ci-env-42 --type "EC2 Volume" --no-confirm

        # Keep a JSON record of the run
        leftovers delete --filter ci-env-42 -n -o report.json
    """
    cli_reporter = CLIReporter(console)
    client = _validated_client(ctx)

    try:
        config = DeleterConfig(
            max_workers=max_workers,
            max_rounds=max_rounds,
            retry_delay=retry_delay,
        )
        leftovers = Leftovers(Logger(console, no_confirm=no_confirm), client, config)

        if dry_run:
            console.print(
                Panel(
                    "[yellow bold]DRY-RUN MODE[/yellow bold]\n"
                    "No resources will actually be deleted.",
                    border_style="yellow",
                )
            )
            deletables = leftovers.list(name_filter, resource_type)
            cli_reporter.report_listing(deletables)
            return

        if no_confirm:
            console.print(
                Panel(
                    "[red bold]NO-CONFIRM MODE[/red bold]\n"
                    "Matching resources will be deleted WITHOUT confirmation!",
                    border_style="red",
                )
            )

        incomplete: Optional[IncompleteDeletionError] = None
        try:
            if resource_type:
                report = leftovers.delete_type(name_filter, resource_type)
            else:
                report = leftovers.delete(name_filter)
        except IncompleteDeletionError as e:
            incomplete = e
            report = e.report

        output_file = _finish_run(report, cli_reporter, output)

        if incomplete is not None:
            cli_reporter.print_error(str(incomplete))
            sys.exit(1)

        cli_reporter.print_completion_message(output_file)

    except AWSClientError as e:
        console.print(f"\n[red bold]AWS Error:[/red bold] {str(e)}")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Deletion cancelled by user.[/yellow]")
        sys.exit(130)


def _finish_run(
    report: RunReport,
    cli_reporter: CLIReporter,
    output: Optional[str],
) -> Optional[str]:
    """Print the run summary and write the JSON report if one was requested."""
    cli_reporter.report_run(report)
    if output:
        return JSONReporter(output_path=output).report(report)
    return None


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
