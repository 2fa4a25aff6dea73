"""
Command-line interface for azure-onboarding.

Two pipelines are exposed as subcommands:

    azure-onboarding automation --resource-group rg-ops
    azure-onboarding workspace --resource-group rg-logs --api-url https://... --api-token ...
"""

from pathlib import Path
from typing import Callable, Optional

import click
import structlog
from rich.console import Console
from rich.table import Table

from azure_onboarding.config import build_notification_target, load_env_file, load_settings
from azure_onboarding.credential_provider import (
    AuthStrategy,
    build_credential,
    resolve_account_context,
)
from azure_onboarding.deployment.orchestrator import OnboardingOrchestrator, OnboardingResult
from azure_onboarding.exceptions import ConfigurationError, OnboardingError
from azure_onboarding.logging_config import configure_logging

console = Console()
logger = structlog.get_logger(__name__)


@click.group()
@click.option(
    "--auth",
    "auth_strategy",
    type=click.Choice([s.value for s in AuthStrategy]),
    default=AuthStrategy.CLOUD_SHELL.value,
    show_default=True,
    help="device-code: interactive sign-in; cloud-shell: reuse the az CLI session; default: DefaultAzureCredential",
)
@click.option("--subscription-id", default=None, help="Target subscription (default: first enabled)")
@click.option("--tenant-id", default=None, help="Tenant to sign in to")
@click.option(
    "--template-base-url",
    default=None,
    help="Base URL the ARM templates are downloaded from (or AZO_TEMPLATE_BASE_URL)",
)
@click.option("--location", default=None, help="Azure region override for new resources")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="YAML settings file",
)
@click.option("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING, ERROR)")
@click.option("--json-logs", is_flag=True, help="Emit JSON log lines")
@click.pass_context
def cli(
    ctx: click.Context,
    auth_strategy: str,
    subscription_id: Optional[str],
    tenant_id: Optional[str],
    template_base_url: Optional[str],
    location: Optional[str],
    config_path: Optional[Path],
    log_level: str,
    json_logs: bool,
):
    """Provision Azure onboarding resources from remote ARM templates."""
    load_env_file()
    configure_logging(log_level, json_logs)
    ctx.ensure_object(dict)
    ctx.obj.update(
        auth_strategy=AuthStrategy(auth_strategy),
        config_path=config_path,
        overrides={
            "subscription_id": subscription_id,
            "tenant_id": tenant_id,
            "template_base_url": template_base_url,
            "location": location,
        },
    )


def _execute(
    ctx: click.Context,
    run: Callable[[OnboardingOrchestrator], OnboardingResult],
) -> OnboardingResult:
    """Authenticate, build the orchestrator and run one pipeline; exit 1 on failure."""
    try:
        settings = load_settings(ctx.obj["config_path"], **ctx.obj["overrides"])
        credential = build_credential(ctx.obj["auth_strategy"], settings.tenant_id)
        account = resolve_account_context(
            credential, settings.subscription_id, tenant_id=settings.tenant_id
        )
        orchestrator = OnboardingOrchestrator.from_credential(settings, credential, account)
        result = run(orchestrator)
    except OnboardingError as e:
        logger.error("Onboarding failed", **e.to_dict())
        console.print(f"[bold red]Onboarding failed:[/bold red] {e.message}")
        if e.recovery_suggestion:
            console.print(f"[yellow]Suggestion:[/yellow] {e.recovery_suggestion}")
        raise SystemExit(1)

    _print_summary(result)
    return result


def _print_summary(result: OnboardingResult) -> None:
    table = Table(title=f"{result.pipeline.capitalize()} onboarding", show_header=False)
    table.add_column("Item", style="cyan")
    table.add_column("Value")
    for name, value in result.summary_rows():
        table.add_row(name, value)
    console.print(table)

    if result.notification_sent is False:
        console.print("[yellow]Registration API was not notified; see the log for details.[/yellow]")
    console.print("[bold green]Onboarding completed.[/bold green]")


@cli.command("automation")
@click.option("--resource-group", "-g", required=True, help="Target resource group name")
@click.option(
    "--automation-account-name",
    default=None,
    help="Automation account name (default: derived by the template)",
)
@click.option(
    "--service-principal-name",
    default=None,
    help="Service principal display name (default: derived by the template)",
)
@click.pass_context
def automation_command(
    ctx: click.Context,
    resource_group: str,
    automation_account_name: Optional[str],
    service_principal_name: Optional[str],
):
    """Create the service principal, automation account and its role assignments."""
    _execute(
        ctx,
        lambda orchestrator: orchestrator.run_automation_onboarding(
            resource_group=resource_group,
            automation_account_name=automation_account_name,
            service_principal_name=service_principal_name,
        ),
    )


@cli.command("workspace")
@click.option("--resource-group", "-g", required=True, help="Target resource group name")
@click.option(
    "--workspace-name",
    default=None,
    help="Log Analytics workspace name (default: derived by the template)",
)
@click.option(
    "--service-principal-name",
    default=None,
    help="Service principal display name (default: derived by the template)",
)
@click.option("--api-url", default=None, help="Registration API URL (or AZO_API_URL)")
@click.option("--api-token", default=None, help="Registration API bearer token (or AZO_API_TOKEN)")
@click.pass_context
def workspace_command(
    ctx: click.Context,
    resource_group: str,
    workspace_name: Optional[str],
    service_principal_name: Optional[str],
    api_url: Optional[str],
    api_token: Optional[str],
):
    """Create the service principal, workspace, table and DCR; optionally register them."""
    try:
        notification = build_notification_target(api_url, api_token)
    except ConfigurationError as e:
        raise click.UsageError(e.message) from e

    _execute(
        ctx,
        lambda orchestrator: orchestrator.run_workspace_onboarding(
            resource_group=resource_group,
            workspace_name=workspace_name,
            service_principal_name=service_principal_name,
            notification=notification,
        ),
    )


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
