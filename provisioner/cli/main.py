"""Main CLI entry point using Typer."""

import logging
import sys
from importlib.metadata import PackageNotFoundError, version as package_version
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax

from ..blueprint import SampleOptions, build_sample_descriptors, load_blueprint
from ..exceptions import (
    CredentialError,
    InvalidStateError,
    ProviderError,
    TeardownError,
    ValidationError,
    WorkflowCancelledError,
)
from ..models.descriptor import ResourceDescriptor, ResourceKind
from ..models.live_resource import LiveResource
from ..providers.azure import AzureProviderClient
from ..providers.credentials import create_session
from ..reporter import WorkflowReporter
from ..utils.logging import setup_logging
from ..workflow import ProvisioningWorkflow, Step, StepOutcome, WorkflowRunner
from .config import Config

logger = logging.getLogger(__name__)

# Create Typer app
app = typer.Typer(
    name="azprov",
    help="Azure Provisioner - provision, power cycle and tear down a sample Azure deployment",
    add_completion=False,
)

# Create Rich console for output
console = Console()

# Global config
config: Optional[Config] = None

# Print each created resource's properties after apply (--verbose)
show_details = False

# Message shown before each paused step
STEP_PROMPTS = {
    Step.STOP: "Now that we have built a virtual machine, let's turn off the virtual machine.",
    Step.START: "Your virtual machine is now off. Let's start the virtual machine.",
    Step.RESTART: "Your virtual machine has started. Let's restart the virtual machine.",
    Step.TEARDOWN: "Continue to delete the sample resources.",
}


@app.callback()
def main(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to YAML config file (default: ~/.azprov/config.yaml)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress output except errors"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output"),
):
    """Azure Provisioner - provision, power cycle and tear down a sample Azure deployment."""
    global config, show_details

    # Load configuration
    try:
        config = Config.load(config_path)
    except ValidationError as e:
        console.print(f"✗ Configuration error: {escape(str(e))}", style="bold red")
        raise typer.Exit(code=1)

    # Setup logging
    log_level = "ERROR" if quiet else ("DEBUG" if verbose else config.log_level)
    setup_logging(level=log_level, verbose=verbose)
    show_details = verbose

    # Disable colors if requested
    if no_color:
        console.no_color = True


@app.command()
def version():
    """Show version information."""
    from .. import __version__

    console.print(f"azure-provisioner version {__version__}")
    console.print(f"Python {sys.version.split()[0]}")
    for dist in ("azure-mgmt-compute", "azure-mgmt-network", "azure-mgmt-resource", "azure-mgmt-storage"):
        try:
            console.print(f"{dist} {package_version(dist)}")
        except PackageNotFoundError:
            console.print(f"{dist} not installed", style="yellow")


def pause(message: str) -> None:
    """Wait for the user before the next step."""
    console.print(f"\n{message}")
    typer.prompt("Press Enter to continue", default="", show_default=False)


def build_descriptors(cfg: Config, sovereign: bool) -> List[ResourceDescriptor]:
    """Descriptor set from the configured blueprint, or the built-in sample."""
    location = cfg.resolve_location(sovereign)
    if cfg.blueprint_path:
        return load_blueprint(cfg.blueprint_path, default_location=location)

    options = SampleOptions(
        location=location,
        vm_name=cfg.vm_name,
        admin_username=cfg.admin_username,
        vm_size=cfg.vm_size,
        admin_password=cfg.admin_password or "",
        sovereign=sovereign,
        tags=dict(cfg.tags),
    )
    return build_sample_descriptors(cfg.resolve_group_name(sovereign), options)


def find_vm(descriptors: List[ResourceDescriptor]) -> Optional[ResourceDescriptor]:
    return next((d for d in descriptors if d.kind == ResourceKind.VIRTUAL_MACHINE), None)


def connection_hint(vm: ResourceDescriptor, live: dict) -> Optional[str]:
    """Build the ssh command for the provisioned VM, if its public address is known."""
    admin = vm.properties.get("os_profile", {}).get("admin_username")
    for resource in live.values():
        if not isinstance(resource, LiveResource) or resource.kind != ResourceKind.PUBLIC_ADDRESS:
            continue
        try:
            fqdn = resource.lookup("dns_settings.fqdn")
        except KeyError:
            continue
        if admin and fqdn:
            return f"ssh -p 22 {admin}@{fqdn}"
    return None


def login_password(vm: ResourceDescriptor) -> Optional[str]:
    """Admin password of the VM, or None when password login is disabled."""
    os_profile = vm.properties.get("os_profile", {})
    linux = os_profile.get("linux_configuration", {})
    if linux.get("disable_password_authentication"):
        return None
    return os_profile.get("admin_password") or None


def report_outcome(
    outcome: StepOutcome,
    reporter: WorkflowReporter,
    vm: Optional[ResourceDescriptor],
    group_name: Optional[str],
) -> None:
    """Print the result of one workflow step."""
    if outcome.step == Step.APPLY:
        console.print(reporter.format_resources(outcome.payload.values(), title="Created Resources"))
        if show_details:
            for resource in outcome.payload.values():
                detail = Syntax(reporter.format_resource_detail(resource), "json")
                console.print(Panel(detail, title=escape(resource.name), border_style="dim"))
        if vm is not None:
            hint = connection_hint(vm, outcome.payload)
            if hint:
                console.print(f"Connect to your new virtual machine via: '[bold]{hint}[/bold]'")
                password = login_password(vm)
                if password:
                    console.print(f"Admin password: [bold]{escape(password)}[/bold]")
    elif outcome.step == Step.LIST:
        console.print(reporter.format_resources(outcome.payload, title="Resources in Group"))
    elif outcome.step == Step.EXPORT:
        console.print(Panel(Syntax(outcome.payload, "json"), title="Exported Template", border_style="cyan"))
    elif outcome.step.is_lifecycle:
        console.print(f"✓ {outcome.step.value.capitalize()} completed, workflow is {reporter.format_state(outcome.state)}")
    elif outcome.step == Step.TEARDOWN:
        console.print(f"\n✓ Deleted: [bold]{group_name}[/bold]", style="green")


@app.command()
def run():
    """Provision the deployment, power cycle the VM and delete everything.

    Credentials come from TENANT_ID, CLIENT_ID, CLIENT_SECRET and SUBSCRIPTION_ID.
    Set ENDPOINT to target Azure Stack or another sovereign cloud.
    """
    cfg = config or Config.load()
    reporter = WorkflowReporter(width=console.width)

    try:
        session = create_session()
        descriptors = build_descriptors(cfg, session.is_sovereign)
    except CredentialError as e:
        console.print(f"✗ Credential error: {escape(str(e))}", style="bold red")
        raise typer.Exit(code=1)
    except ValidationError as e:
        console.print(f"✗ Invalid blueprint: {escape(str(e))}", style="bold red")
        raise typer.Exit(code=1)

    provider = AzureProviderClient(session, timeout=cfg.operation_timeout)
    workflow = ProvisioningWorkflow(provider)

    try:
        ordered = workflow.plan(descriptors)
    except ValidationError as e:
        console.print(f"✗ Invalid descriptor set: {escape(str(e))}", style="bold red")
        raise typer.Exit(code=1)

    console.print(reporter.format_plan(ordered, workflow.orderer.tiers()))

    vm = find_vm(descriptors)
    if vm is None:
        steps = [Step.APPLY, Step.LIST, Step.EXPORT, Step.TEARDOWN]
        logger.info("No virtual machine in descriptor set, skipping lifecycle steps")
    else:
        steps = [Step.APPLY, Step.LIST, Step.EXPORT, Step.STOP, Step.START, Step.RESTART, Step.TEARDOWN]
    runner = WorkflowRunner(workflow, descriptors, vm.name if vm else "", steps=steps)

    try:
        while runner.has_next:
            step = runner.pending_step
            if step in STEP_PROMPTS:
                pause(STEP_PROMPTS[step])
            console.print(f"\n▶ {step.value.capitalize()}...", style="bold cyan")
            outcome = runner.next()
            report_outcome(outcome, reporter, vm, workflow.group_name)

    except TeardownError as e:
        console.print(f"✗ {escape(str(e))}", style="bold red")
        console.print("  The resource group is still being deleted or deletion failed; retry later.", style="yellow")
        raise typer.Exit(code=2)
    except (ProviderError, InvalidStateError, WorkflowCancelledError) as e:
        console.print(f"✗ {escape(str(e))}", style="bold red")
        if workflow.live_resources:
            console.print(
                f"  {len(workflow.live_resources)} resource(s) remain in group '{workflow.group_name}'",
                style="yellow",
            )
        logger.debug("Workflow failed", exc_info=True)
        raise typer.Exit(code=2)
    except ValidationError as e:
        console.print(f"✗ {escape(str(e))}", style="bold red")
        raise typer.Exit(code=1)


def cli_main():
    """Entry point for console script."""
    app()


if __name__ == "__main__":
    cli_main()
