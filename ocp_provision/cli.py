"""
CLI entry point for ocp-provision.
"""

import logging
from functools import wraps
from pathlib import Path

import typer
from rich.console import Console

from ocp_provision.aws.session import AwsContext
from ocp_provision.exceptions import OcpProvisionError, format_error_for_cli
from ocp_provision.util.config import Settings, load_settings, pick
from ocp_provision.util.files import read_value
from ocp_provision.util.logging import command_log_file, setup_logging
from ocp_provision.workspace import CONFIG_FILENAME, Workspace

app = typer.Typer(
    name="ocp-provision",
    help="Provision VPCs, bastion hosts and OpenShift IPI clusters on AWS",
    add_completion=False,
)
console = Console()
logger = logging.getLogger(__name__)

_state = {"verbose": False}


def handle_errors(func):
    """Decorator to handle exceptions in CLI commands with nice formatting."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except OcpProvisionError as e:
            logger.debug("Command failed", exc_info=True)
            console.print(format_error_for_cli(e))
            raise typer.Exit(1)
        except Exception as e:
            logger.exception("Unexpected error")
            console.print(f"[red]Unexpected error:[/red] {str(e)}")
            console.print("\n[yellow]Run again with --verbose for details.[/yellow]")
            raise typer.Exit(1)

    return wrapper


vpc_app = typer.Typer(help="VPC stack commands (create, delete, show)")
app.add_typer(vpc_app, name="vpc")

bastion_app = typer.Typer(help="Bastion host commands (create, connect)")
app.add_typer(bastion_app, name="bastion")

cluster_app = typer.Typer(help="OpenShift cluster commands (deploy, destroy, info)")
app.add_typer(cluster_app, name="cluster")

images_app = typer.Typer(help="Release image checks")
app.add_typer(images_app, name="images")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
    log_file: str = typer.Option(None, "--log-file", help="Also write debug logs to this file"),
):
    """Provision and tear down OpenShift environments on AWS."""
    _state["verbose"] = verbose
    setup_logging(verbose=verbose, log_file=Path(log_file) if log_file else None)


def _context(settings: Settings, region: str | None = None) -> AwsContext:
    return AwsContext(
        region=region or settings.region,
        profile=settings.profile,
        retry_strategy=settings.retry_strategy,
    )


def _vpc_region(region: str | None, vpc_dir: Path, settings: Settings) -> str:
    """Explicit --region, else the region recorded with the VPC outputs."""
    from ocp_provision.vpc.outputs import region_of

    return region or region_of(vpc_dir, default=settings.region)


@app.command()
@handle_errors
def init(
    workspace_dir: str = typer.Argument(..., help="Workspace directory to initialize"),
    with_templates: bool = typer.Option(
        False, "--with-templates", help="Copy default templates for customization"
    ),
):
    """Initialize a workspace with a default ocp-provision.yaml."""
    console.print(f"[bold blue]Initializing workspace:[/bold blue] {workspace_dir}")

    workspace = Workspace(Path(workspace_dir))
    workspace.initialize()

    console.print(f"[green]✓ Created logs/ and backups/ in {workspace_dir}[/green]")
    console.print(f"[green]✓ Wrote configuration to {CONFIG_FILENAME}[/green]")

    if with_templates:
        from ocp_provision.util.templates import TemplateLoader

        TemplateLoader(workspace.root).copy_default_templates_to_workspace()
        console.print("[green]✓ Copied default templates to templates/[/green]")

    console.print("\n[dim]Next steps:[/dim]")
    console.print(f"  cd {workspace_dir}")
    console.print("  ocp-provision vpc create --cluster-name <name>")


# VPC commands


@vpc_app.command("create")
@handle_errors
def vpc_create(
    cluster_name: str = typer.Option(None, "--cluster-name", help="Cluster name"),
    region: str = typer.Option(None, "--region", help="AWS region"),
    profile: str = typer.Option(None, "--profile", help="AWS profile"),
    vpc_cidr: str = typer.Option("10.0.0.0/16", "--vpc-cidr", help="VPC CIDR block"),
    az_count: int = typer.Option(
        3, "--availability-zone-count", "--az-count", help="Number of availability zones (1-3)"
    ),
    subnet_bits: int = typer.Option(12, "--subnet-bits", help="Subnet size bits (5-13)"),
    zones: str = typer.Option(
        None, "--zones-list", "--zones", help="Comma-separated availability zones"
    ),
    public_only: bool = typer.Option(False, "--public-only", help="Create public subnets only"),
    shared_vpc: bool = typer.Option(False, "--shared-vpc", help="Share subnets through RAM"),
    resource_share_principals: str = typer.Option(
        "", "--resource-share-principals", help="Account ids to share subnets with"
    ),
    additional_subnets: int = typer.Option(
        0, "--additional-subnets", help="Extra subnet sets (0-1)"
    ),
    dhcp_options: bool = typer.Option(False, "--dhcp-options", help="Create a DHCP option set"),
    output_dir: str = typer.Option(None, "--output-dir", help="VPC output directory"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Write template and parameters only"),
):
    """Create a VPC CloudFormation stack and record its outputs."""
    from ocp_provision.vpc.create import VpcCreateOptions, create_vpc

    settings = load_settings(region, profile)
    options = VpcCreateOptions(
        cluster_name=pick(cluster_name, settings.cluster_name),
        vpc_cidr=vpc_cidr,
        availability_zone_count=az_count,
        subnet_bits=subnet_bits,
        zones=[z.strip() for z in zones.split(",") if z.strip()] if zones else [],
        public_only=public_only,
        shared_vpc=shared_vpc,
        resource_share_principals=resource_share_principals,
        additional_subnets=additional_subnets,
        dhcp_options=dhcp_options,
        output_dir=Path(pick(output_dir, settings.vpc_output)),
    )
    outputs = create_vpc(_context(settings), options, dry_run=dry_run)
    if outputs is not None:
        console.print("\n[dim]Next steps:[/dim]")
        console.print(f"  ocp-provision bastion create --vpc-output-dir {options.output_dir}")
        console.print(f"  ocp-provision cluster deploy --vpc-output-dir {options.output_dir}")


@vpc_app.command("delete")
@handle_errors
def vpc_delete(
    stack_name: str = typer.Option(None, "--stack-name", help="Stack to delete"),
    cluster_name: str = typer.Option(None, "--cluster-name", help="Find the stack by cluster"),
    region: str = typer.Option(None, "--region", help="AWS region"),
    profile: str = typer.Option(None, "--profile", help="AWS profile"),
    force: bool = typer.Option(False, "--force", help="Skip confirmation"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be deleted"),
):
    """Delete a VPC stack by name or by cluster."""
    from ocp_provision.vpc.delete import delete_vpc_stack

    settings = load_settings(region, profile)
    deleted = delete_vpc_stack(
        _context(settings),
        stack_name=stack_name,
        cluster_name=pick(cluster_name, settings.cluster_name),
        dry_run=dry_run,
        force=force,
        confirm=typer.confirm,
    )
    if not deleted and not dry_run:
        raise typer.Exit(1)


@vpc_app.command("delete-by-name")
@handle_errors
def vpc_delete_by_name(
    vpc_name: str = typer.Option(..., "--vpc-name", help="Value of the VPC's Name tag"),
    region: str = typer.Option(None, "--region", help="AWS region"),
    profile: str = typer.Option(None, "--profile", help="AWS profile"),
    force: bool = typer.Option(False, "--force", help="Skip confirmation"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be deleted"),
):
    """Delete a VPC found by its Name tag, preferring its stack."""
    from ocp_provision.vpc.delete import delete_vpc_by_name

    settings = load_settings(region, profile)
    deleted = delete_vpc_by_name(
        _context(settings), vpc_name, dry_run=dry_run, force=force, confirm=typer.confirm
    )
    if not deleted and not dry_run:
        raise typer.Exit(1)


@vpc_app.command("delete-by-owner")
@handle_errors
def vpc_delete_by_owner(
    owner_id: str = typer.Option(..., "--owner-id", help="AWS account id that owns the stacks"),
    filter_pattern: str = typer.Option(
        "vpc", "--filter-pattern", "--filter", help="Stack name substring"
    ),
    region: str = typer.Option(None, "--region", help="AWS region"),
    profile: str = typer.Option(None, "--profile", help="AWS profile"),
    force: bool = typer.Option(False, "--force", help="Skip the 'yes' confirmation"),
    dry_run: bool = typer.Option(False, "--dry-run", help="List stacks without deleting"),
    max_wait: int = typer.Option(1800, "--max-wait", help="Seconds to wait per stack"),
):
    """Delete every VPC stack matching a pattern in the account."""
    from ocp_provision.vpc.delete import delete_vpcs_by_owner

    settings = load_settings(region, profile)
    log_file = command_log_file(settings.logs_dir, "delete-vpc-by-owner")
    setup_logging(verbose=_state["verbose"], log_file=log_file)
    console.print(f"[dim]Logging to {log_file}[/dim]")

    report = delete_vpcs_by_owner(
        _context(settings),
        owner_id,
        filter_pattern=filter_pattern,
        dry_run=dry_run,
        force=force,
        prompt=typer.prompt,
        max_wait=max_wait,
    )
    if report.cancelled or not report.ok:
        raise typer.Exit(1)


@vpc_app.command("show")
@handle_errors
def vpc_show(
    vpc_output_dir: str = typer.Option(None, "--vpc-output-dir", help="VPC output directory"),
    region: str = typer.Option(None, "--region", help="AWS region"),
    profile: str = typer.Option(None, "--profile", help="AWS profile"),
):
    """Show recorded VPC outputs and the current stack status."""
    from ocp_provision.aws.stacks import describe_stack
    from ocp_provision.util.progress import show_summary
    from ocp_provision.vpc.outputs import VPC_ID_FILE, VpcOutputs

    settings = load_settings(region, profile)
    vpc_dir = Path(pick(vpc_output_dir, settings.vpc_output))
    outputs = VpcOutputs.read(vpc_dir, required=[VPC_ID_FILE])

    status = "unknown"
    if outputs.stack_name:
        ctx = _context(settings, _vpc_region(region, vpc_dir, settings))
        stack = describe_stack(ctx, outputs.stack_name)
        status = stack["StackStatus"] if stack else "not found"

    show_summary(
        f"VPC outputs ({vpc_dir})",
        {
            "VPC ID": outputs.vpc_id,
            "Stack": outputs.stack_name or "-",
            "Stack status": status,
            "Region": outputs.region,
            "CIDR": outputs.vpc_cidr or "-",
            "Public subnets": ",".join(outputs.public_subnet_ids) or "-",
            "Private subnets": ",".join(outputs.private_subnet_ids) or "-",
            "Zones": ",".join(outputs.availability_zones) or "-",
        },
    )


# Bastion commands


@bastion_app.command("create")
@handle_errors
def bastion_create(
    cluster_name: str = typer.Option(None, "--cluster-name", help="Cluster name"),
    vpc_output_dir: str = typer.Option(None, "--vpc-output-dir", help="VPC output directory"),
    output_dir: str = typer.Option(None, "--output-dir", help="Bastion output directory"),
    region: str = typer.Option(None, "--region", help="AWS region (default: from VPC outputs)"),
    profile: str = typer.Option(None, "--profile", help="AWS profile"),
    instance_type: str = typer.Option("t3.large", "--instance-type", help="EC2 instance type"),
    ssh_key_name: str = typer.Option(None, "--ssh-key-name", help="Key pair name to create"),
    openshift_version: str = typer.Option(
        None, "--openshift-version", help="Client tools version"
    ),
    use_rhcos: bool = typer.Option(False, "--use-rhcos", help="Use an RHCOS AMI"),
    create_iam_role: bool = typer.Option(
        False, "--create-iam-role", help="Attach an S3 read-only instance role"
    ),
    enhanced_security: bool = typer.Option(
        False, "--enhanced-security", help="Open registry and proxy ports"
    ),
    integrate_control_plane_sg: bool = typer.Option(
        False, "--integrate-control-plane-sg", help="Attach the control plane security group"
    ),
):
    """Launch a bastion host in the VPC's first public subnet."""
    from ocp_provision.bastion.create import BastionOptions, create_bastion

    settings = load_settings(region, profile)
    vpc_dir = Path(pick(vpc_output_dir, settings.vpc_output))
    options = BastionOptions(
        cluster_name=pick(cluster_name, settings.cluster_name),
        vpc_output_dir=vpc_dir,
        output_dir=Path(pick(output_dir, settings.bastion_output)),
        instance_type=instance_type,
        ssh_key_name=ssh_key_name,
        openshift_version=pick(openshift_version, settings.openshift_version),
        use_rhcos=use_rhcos,
        create_iam_role=create_iam_role,
        enhanced_security=enhanced_security,
        integrate_control_plane_sg=integrate_control_plane_sg,
    )
    ctx = _context(settings, _vpc_region(region, vpc_dir, settings))
    create_bastion(ctx, options)

    console.print("\n[dim]Next steps:[/dim]")
    console.print(f"  ocp-provision bastion connect --bastion-output-dir {options.output_dir}")


@bastion_app.command("connect")
@handle_errors
def bastion_connect(
    cluster_name: str = typer.Option(None, "--cluster-name", help="Cluster name"),
    bastion_output_dir: str = typer.Option(
        None, "--bastion-output-dir", help="Bastion output directory"
    ),
    install_dir: str = typer.Option(None, "--install-dir", help="OpenShift install directory"),
    copy_kubeconfig: bool = typer.Option(
        False, "--copy-kubeconfig", help="Copy auth/kubeconfig to the bastion"
    ),
    setup_environment: bool = typer.Option(
        False, "--setup-environment", help="Run the environment setup script and exit"
    ),
):
    """Open an ssh session to the bastion host."""
    from ocp_provision.bastion.connect import connect

    settings = load_settings()
    code = connect(
        Path(pick(bastion_output_dir, settings.bastion_output)),
        pick(cluster_name, settings.cluster_name),
        install_dir=Path(pick(install_dir, settings.install_dir)),
        copy_kube=copy_kubeconfig,
        setup_env=setup_environment,
    )
    if code != 0:
        raise typer.Exit(code)


# Cluster commands


@cluster_app.command("deploy")
@handle_errors
def cluster_deploy(
    cluster_name: str = typer.Option(None, "--cluster-name", help="Cluster name"),
    base_domain: str = typer.Option(None, "--base-domain", help="Route 53 base domain"),
    openshift_version: str = typer.Option(None, "--openshift-version", help="Release version"),
    vpc_output_dir: str = typer.Option(None, "--vpc-output-dir", help="VPC output directory"),
    install_dir: str = typer.Option(None, "--install-dir", help="OpenShift install directory"),
    region: str = typer.Option(None, "--region", help="AWS region (default: from VPC outputs)"),
    profile: str = typer.Option(None, "--profile", help="AWS profile"),
    pull_secret: str = typer.Option(None, "--pull-secret", help="Pull secret JSON"),
    pull_secret_file: str = typer.Option(None, "--pull-secret-file", help="Pull secret file"),
    ssh_key: str = typer.Option(None, "--ssh-key", help="SSH public key"),
    ssh_key_file: str = typer.Option(None, "--ssh-key-file", help="SSH public key file"),
    compute_nodes: int = typer.Option(3, "--compute-nodes", help="Worker replicas"),
    control_plane_nodes: int = typer.Option(
        3, "--control-plane-nodes", help="Control plane replicas"
    ),
    compute_instance_type: str = typer.Option(
        "m5.xlarge", "--compute-instance-type", help="Worker instance type"
    ),
    control_plane_instance_type: str = typer.Option(
        "m5.xlarge", "--control-plane-instance-type", help="Control plane instance type"
    ),
    publish_strategy: str = typer.Option(
        "Internal", "--publish-strategy", help="External or Internal"
    ),
    network_type: str = typer.Option(
        "OVNKubernetes", "--network-type", help="OVNKubernetes or OpenShiftSDN"
    ),
    force: bool = typer.Option(False, "--force", help="Skip confirmation"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Generate install-config.yaml only"),
):
    """Generate install-config.yaml and install OpenShift into the VPC."""
    from ocp_provision.cluster.deploy import deploy_cluster
    from ocp_provision.cluster.install_config import ClusterOptions

    settings = load_settings(region, profile)
    vpc_dir = Path(pick(vpc_output_dir, settings.vpc_output))
    options = ClusterOptions(
        cluster_name=pick(cluster_name, settings.cluster_name),
        base_domain=pick(base_domain, settings.base_domain),
        openshift_version=pick(openshift_version, settings.openshift_version),
        vpc_output_dir=vpc_dir,
        install_dir=Path(pick(install_dir, settings.install_dir)),
        pull_secret=pull_secret,
        pull_secret_file=Path(pull_secret_file) if pull_secret_file else None,
        ssh_key=ssh_key,
        ssh_key_file=Path(ssh_key_file) if ssh_key_file else None,
        compute_nodes=compute_nodes,
        control_plane_nodes=control_plane_nodes,
        compute_instance_type=compute_instance_type,
        control_plane_instance_type=control_plane_instance_type,
        publish_strategy=publish_strategy,
        network_type=network_type,
    )
    ctx = _context(settings, _vpc_region(region, vpc_dir, settings))
    installed = deploy_cluster(
        ctx,
        options,
        dry_run=dry_run,
        confirm=(lambda message: True) if force else typer.confirm,
    )
    if not installed and not dry_run:
        raise typer.Exit(1)


@cluster_app.command("destroy")
@handle_errors
def cluster_destroy(
    install_dir: str = typer.Option(None, "--install-dir", help="OpenShift install directory"),
    force: bool = typer.Option(False, "--force", help="Skip confirmation"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print the destroy command only"),
):
    """Destroy the cluster recorded in the install directory."""
    from ocp_provision.cluster.deploy import destroy_cluster

    settings = load_settings()
    destroyed = destroy_cluster(
        Path(pick(install_dir, settings.install_dir)),
        dry_run=dry_run,
        force=force,
        confirm=typer.confirm,
    )
    if not destroyed and not dry_run:
        raise typer.Exit(1)


@cluster_app.command("info")
@handle_errors
def cluster_info(
    install_dir: str = typer.Option(None, "--install-dir", help="OpenShift install directory"),
    guide: str = typer.Option("summary", "--guide", help="summary, access or dns"),
):
    """Show cluster metadata, private access options or DNS troubleshooting."""
    from ocp_provision.cluster.info import access_guide, dns_guide, read_metadata
    from ocp_provision.exceptions import InvalidParameterError
    from ocp_provision.util.progress import show_summary

    if guide not in ("summary", "access", "dns"):
        raise InvalidParameterError("--guide", guide, "summary, access or dns")

    settings = load_settings()
    directory = Path(pick(install_dir, settings.install_dir))
    meta = read_metadata(directory)

    if guide == "access":
        console.print(access_guide(meta, directory), markup=False)
    elif guide == "dns":
        console.print(dns_guide(meta), markup=False)
    else:
        show_summary(
            f"Cluster {meta.cluster_name}",
            {
                "Infra ID": meta.infra_id,
                "Region": meta.region,
                "Domain": meta.cluster_domain,
                "Publish": meta.publish or "unknown",
                "Console": f"https://console-openshift-console.apps.{meta.cluster_domain}",
                "API": f"https://api.{meta.cluster_domain}:6443",
                "Kubeconfig": str(directory / "auth" / "kubeconfig"),
            },
        )
        if meta.is_private:
            console.print("[dim]Private cluster: see --guide access[/dim]")


# Environment-wide commands


@app.command()
@handle_errors
def cleanup(
    cluster_name: str = typer.Option(None, "--cluster-name", help="Cluster name"),
    vpc_output_dir: str = typer.Option(None, "--vpc-output-dir", help="VPC output directory"),
    bastion_output_dir: str = typer.Option(
        None, "--bastion-output-dir", help="Bastion output directory"
    ),
    install_dir: str = typer.Option(None, "--install-dir", help="OpenShift install directory"),
    region: str = typer.Option(None, "--region", help="AWS region (default: from VPC outputs)"),
    profile: str = typer.Option(None, "--profile", help="AWS profile"),
    skip_openshift: bool = typer.Option(False, "--skip-openshift", help="Keep the cluster"),
    skip_bastion: bool = typer.Option(False, "--skip-bastion", help="Keep the bastion host"),
    force: bool = typer.Option(False, "--force", help="Skip all confirmations"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be deleted"),
):
    """Tear down the cluster, bastion, key pairs, VPC and output directories."""
    from ocp_provision.bastion.create import REGION_FILE as BASTION_REGION_FILE
    from ocp_provision.teardown import CleanupOptions, run_cleanup
    from ocp_provision.vpc.outputs import region_of

    settings = load_settings(region, profile)
    options = CleanupOptions(
        cluster_name=pick(cluster_name, settings.cluster_name),
        vpc_output=Path(pick(vpc_output_dir, settings.vpc_output)),
        bastion_output=Path(pick(bastion_output_dir, settings.bastion_output)),
        install_dir=Path(pick(install_dir, settings.install_dir)),
        skip_openshift=skip_openshift,
        skip_bastion=skip_bastion,
    )
    resolved_region = region or region_of(
        options.vpc_output,
        default=read_value(options.bastion_output / BASTION_REGION_FILE, settings.region),
    )
    report = run_cleanup(
        _context(settings, resolved_region),
        options,
        dry_run=dry_run,
        force=force,
        confirm=typer.confirm,
    )
    if report.cancelled or not report.ok:
        raise typer.Exit(1)


@app.command()
@handle_errors
def backup(
    cluster_name: str = typer.Option(None, "--cluster-name", help="Cluster name"),
    vpc_output_dir: str = typer.Option(None, "--vpc-output-dir", help="VPC output directory"),
    bastion_output_dir: str = typer.Option(
        None, "--bastion-output-dir", help="Bastion output directory"
    ),
    install_dir: str = typer.Option(
        None, "--install-dir", "--openshift-install-dir", help="OpenShift install directory"
    ),
    logs_dir: str = typer.Option(None, "--logs-dir", help="Logs directory"),
    backups_dir: str = typer.Option(
        None, "--backups-dir", "--backup-dir", help="Where to write the archive"
    ),
    include_configs: bool = typer.Option(
        False, "--include-configs", help="Add install-config.yaml files from this directory"
    ),
    include_ssh_keys: bool = typer.Option(
        False, "--include-ssh-keys", help="Add private keys (*.pem)"
    ),
    exclude_logs: bool = typer.Option(False, "--exclude-logs", help="Leave out the logs"),
    dry_run: bool = typer.Option(False, "--dry-run", help="List contents without writing"),
):
    """Zip the output directories into a timestamped backup."""
    from ocp_provision.backup import BackupOptions, create_backup, human_size
    from ocp_provision.util.progress import print_dry_run, print_success, show_summary

    settings = load_settings()
    options = BackupOptions(
        cluster_name=pick(cluster_name, settings.cluster_name),
        vpc_output=Path(pick(vpc_output_dir, settings.vpc_output)),
        bastion_output=Path(pick(bastion_output_dir, settings.bastion_output)),
        install_dir=Path(pick(install_dir, settings.install_dir)),
        logs_dir=Path(pick(logs_dir, settings.logs_dir)),
        backups_dir=Path(pick(backups_dir, settings.backups_dir)),
        include_configs=include_configs,
        include_ssh_keys=include_ssh_keys,
        exclude_logs=exclude_logs,
    )
    result = create_backup(options, dry_run=dry_run)

    if result.dry_run:
        print_dry_run(f"Would write {result.archive}")
        for name in result.files:
            console.print(f"  {name}")
        return

    print_success(f"Backup written to {result.archive}")
    show_summary(
        "Backup",
        {
            "Archive": str(result.archive),
            "Size": human_size(result.size),
            "SHA256": result.sha256,
            "Items": ", ".join(result.items),
            "Files": len(result.files),
        },
    )


@images_app.command("check")
@handle_errors
def images_check(
    version: str = typer.Option("4.19.2", "--version", help="Release version to probe"),
    registry: str = typer.Option(
        "registry.ci.openshift.org", "--registry", help="Registry host"
    ),
    tool: str = typer.Option("podman", "--tool", help="podman or docker"),
    username: str = typer.Option(None, "--username", help="Registry user (default: oc whoami)"),
    show_tags: bool = typer.Option(
        False, "--show-tags", help="Also list the release image stream tags"
    ),
):
    """Check that release images can be pulled from the CI registry."""
    from ocp_provision.images import check_images, imagestream_tags
    from ocp_provision.util.progress import print_success, print_warning, show_summary

    def report(image: str, available: bool) -> None:
        mark = "[green]✓ EXISTS[/green]" if available else "[red]✗ NOT FOUND[/red]"
        console.print(f"  {image:<30} {mark}")

    groups = check_images(
        version=version, registry=registry, tool=tool, username=username, on_result=report
    )

    found = sum(len(g.found) for g in groups)
    total = sum(g.total for g in groups)
    summary = {f"{g.name} images": f"{len(g.found)}/{g.total} found" for g in groups}
    summary["Total"] = f"{found}/{total} found"
    show_summary(f"Images for {version}", summary)

    if groups[0].complete:
        print_success("All core images are available")
    else:
        print_warning(f"Missing core images: {', '.join(groups[0].missing)}")

    if show_tags:
        tags = imagestream_tags(version)
        console.print(f"\n[bold]Image stream {version}[/bold] ({len(tags)} tags)")
        for tag in tags[:20]:
            console.print(f"  {tag}")


if __name__ == "__main__":
    app()
