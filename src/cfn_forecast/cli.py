"""
cfn-forecast command line interface.

Predicts deployment failures for a template before it is deployed.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from ._version import get_version

app = typer.Typer(
    help="Predict CloudFormation deployment failures",
    no_args_is_help=True,
)

console = Console()

_STYLES = {"fail": "red", "pass": "green", "plain": "default"}


def _configure_logging(debug: bool) -> None:
    if debug:
        level = logging.DEBUG
    else:
        level = getattr(logging, os.getenv("LOG_LEVEL", "WARNING").upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def version_callback(value: bool) -> None:
    if value:
        console.print(f"cfn-forecast {get_version()}")
        raise typer.Exit()


@app.command(name="forecast")
def forecast(
    template: Annotated[
        Path,
        typer.Argument(help="Template file to forecast", exists=True, dir_okay=False),
    ],
    stack_name: Annotated[
        str | None,
        typer.Argument(help="Stack name (defaults to the template file name)"),
    ] = None,
    debug: Annotated[
        bool, typer.Option("--debug", help="Output debugging information")
    ] = False,
    skip_iam: Annotated[
        bool,
        typer.Option("--skip-iam", help="Skip permissions checks, which can take a long time"),
    ] = False,
    show_all: Annotated[
        bool, typer.Option("--all", "-a", help="Show all checks, not just failed ones")
    ] = False,
    role_arn: Annotated[
        str,
        typer.Option(
            "--role-arn", help="An optional execution role arn to use for predicting IAM failures"
        ),
    ] = "",
    resource_type: Annotated[
        str,
        typer.Option("--type", help="Optional resource type to limit checks to only that type"),
    ] = "",
    tags: Annotated[
        list[str] | None,
        typer.Option("--tags", help="Stack tags; use the format key1=value1,key2=value2"),
    ] = None,
    params: Annotated[
        list[str] | None,
        typer.Option("--params", help="Parameter values; use the format key1=value1,key2=value2"),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="YAML or JSON file to set tags and parameters"),
    ] = None,
    output_dir: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write JSON and Markdown reports to this directory"),
    ] = None,
    version: Annotated[
        bool | None,
        typer.Option("--version", callback=version_callback, is_eager=True),
    ] = None,
) -> None:
    """
    Predict deployment failures.

    Outputs warnings about potential deployment failures due to constraints
    in the account or misconfigurations in the template related to
    dependencies in the account. This is not a linter: it is concerned with
    what can go wrong during deployment of a syntactically valid template.

    Checks run for every resource:
    - The resource already exists
    - You do not have permissions to create/update the resource

    Resource-specific checks cover S3 buckets and bucket policies, EC2
    instances and security groups, RDS clusters, and launch configurations.

    Example:
        cfn-forecast template.yaml my-stack --params Env=prod
    """
    from .account import check_stack
    from .aws import BotoAccountClient
    from .config import ForecastSettings, get_stack_name, load_deploy_config
    from .errors import ForecastError
    from .report import generate_report
    from .runner import ForecastRunner
    from .template import load_template

    _configure_logging(debug)
    logger = logging.getLogger(__name__)
    logger.debug("Generating forecast for %s", template)

    try:
        source = load_template(template)
        name = get_stack_name(stack_name, template)
        account = BotoAccountClient()

        with console.status(f"Checking current status of stack '{name}'"):
            stack, stack_exists = check_stack(account, name)

        deploy_config = load_deploy_config(
            source,
            stack=stack if stack_exists else None,
            config_path=config_file,
            params=params,
            tags=tags,
        )

        settings = ForecastSettings(
            skip_iam=skip_iam,
            resource_type=resource_type,
            show_all=show_all,
            role_arn=role_arn,
        )

        with console.status("Making predictions") as status:
            runner = ForecastRunner(
                template=source,
                stack_name=name,
                account=account,
                deploy_config=deploy_config,
                stack=stack,
                stack_exists=stack_exists,
                settings=settings,
                on_progress=status.update,
            )
            report = runner.run()

    except ForecastError as e:
        console.print(f"Error: {e}", style="red", markup=False, highlight=False)
        raise typer.Exit(2)

    for style, text in report.render_lines(show_all=settings.show_all):
        console.print(text, style=_STYLES[style], markup=False, highlight=False)

    if output_dir:
        generated = generate_report(report, output_dir)
        console.print("\n[bold]Reports:[/bold]")
        for fmt, path in generated.items():
            console.print(f"  {fmt.upper()}: [cyan]{path}[/cyan]")

    raise typer.Exit(report.exit_code)


def main() -> None:
    app()
