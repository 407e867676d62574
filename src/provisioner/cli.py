"""ncloud provisioner CLI (ncp).

Usage:
    ncp repo apply repo.yaml                 # Create or update a repository
    ncp repo read tf-1234-repo               # Show a repository by name
    ncp repo import 55                       # Resolve a repository by id
    ncp repo delete tf-1234-repo             # Delete and wait until gone
    ncp public-ip list -f zone=KR-1          # List public IPs
    ncp public-ip show --associated          # Require exactly one match
    ncp config                               # Show the effective configuration

Provider settings come from the environment (see ProviderConfig.from_env).
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import click

from .config import BackendFlavor, ConfigurationError, ProviderConfig
from .errors import ProvisionerError
from .filters import FilterPredicate, parse_filter
from .lifecycle import ResourceController, ResourceLister
from .main import apply_spec_file, setup_logging
from .models import ListQuery
from .reconciler import ResourceReconciler
from .session import ProviderSession


def echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, sort_keys=True))


def get_config(ctx: click.Context) -> ProviderConfig:
    config = ctx.obj.get("config") if ctx.obj else None
    if config is None:
        raise click.ClickException("Provider configuration was not loaded")
    return config


@contextmanager
def provider_errors() -> Iterator[None]:
    """Turn provisioner errors into CLI errors."""
    try:
        yield
    except ProvisionerError as e:
        raise click.ClickException(str(e)) from e


# =============================================================================
# Main CLI Group
# =============================================================================


@click.group()
@click.version_option(version="0.1.0", prog_name="ncp")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.option(
    "--vpc/--classic",
    "support_vpc",
    default=None,
    help="Override NCLOUD_SUPPORT_VPC for this invocation",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, support_vpc: bool | None) -> None:
    """ncloud provisioner CLI (ncp).

    Reconciles source repositories and reads public IPs on either the
    classic or the VPC backend.
    """
    setup_logging(logging.DEBUG if verbose else logging.WARNING)

    try:
        config = ProviderConfig.from_env()
        if support_vpc is not None:
            flavor = BackendFlavor.VPC if support_vpc else BackendFlavor.CLASSIC
            config = dataclasses.replace(config, flavor=flavor)
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@cli.command("config")
@click.pass_context
def show_config(ctx: click.Context) -> None:
    """Show the effective provider configuration."""
    config = get_config(ctx)
    data = dataclasses.asdict(config)
    data["flavor"] = config.flavor.value
    data["unexpected_state_policy"] = config.unexpected_state_policy.value
    data["api_key"] = "***" if config.api_key else None
    echo_json(data)


# =============================================================================
# Repository Commands
# =============================================================================


@cli.group()
def repo() -> None:
    """Source repository commands: apply, read, import, delete."""
    pass


@repo.command("apply")
@click.argument("spec_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def repo_apply(ctx: click.Context, spec_file: Path) -> None:
    """Create or update a repository from a YAML spec."""
    exit_code = asyncio.run(apply_spec_file(get_config(ctx), spec_file))
    if exit_code:
        raise click.ClickException(f"Apply of {spec_file} failed (exit code {exit_code})")
    click.secho(f"✓ Applied {spec_file}", fg="green")


@repo.command("read")
@click.argument("name")
@click.pass_context
def repo_read(ctx: click.Context, name: str) -> None:
    """Show one repository by name."""
    with ProviderSession.open(get_config(ctx)) as session, provider_errors():
        record = ResourceController.for_repositories(session).read_by_name(name)
    echo_json(record.to_dict())


@repo.command("import")
@click.argument("resource_id")
@click.pass_context
def repo_import(ctx: click.Context, resource_id: str) -> None:
    """Resolve a repository from its id."""
    with ProviderSession.open(get_config(ctx)) as session, provider_errors():
        state = ResourceController.for_repositories(session).import_state(resource_id)
    echo_json({"id": state.id, "name": state.name})


@repo.command("delete")
@click.argument("name")
@click.pass_context
def repo_delete(ctx: click.Context, name: str) -> None:
    """Delete a repository and wait until it is gone."""
    with ProviderSession.open(get_config(ctx)) as session, provider_errors():
        reconciler = ResourceReconciler(ResourceController.for_repositories(session))
        result = asyncio.run(reconciler.destroy(name))
    click.echo(f"{name}: {result.action.value}")


# =============================================================================
# Public IP Commands
# =============================================================================


def public_ip_options(func: Any) -> Any:
    """Shared narrowing and filtering options."""
    options = [
        click.option("--id", "ids", multiple=True, help="Public IP instance number (repeatable)"),
        click.option(
            "--associated/--unassociated",
            "is_associated",
            default=None,
            help="Only IPs attached (or not) to a server",
        ),
        click.option("--zone", help="Zone number (classic backend only)"),
        click.option(
            "--filter",
            "-f",
            "filter_exprs",
            multiple=True,
            help="name=value[,value...] (repeatable, all must match)",
        ),
        click.option("--regex", is_flag=True, help="Treat filter values as regular expressions"),
        click.option("--ignore-case", is_flag=True, help="Case-insensitive filter matching"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def build_filters(
    filter_exprs: tuple[str, ...], regex: bool, ignore_case: bool
) -> list[FilterPredicate]:
    return [
        parse_filter(expr, regex=regex, case_sensitive=not ignore_case) for expr in filter_exprs
    ]


@cli.group("public-ip")
def public_ip() -> None:
    """Public IP commands: list, show."""
    pass


@public_ip.command("list")
@public_ip_options
@click.pass_context
def public_ip_list(
    ctx: click.Context,
    ids: tuple[str, ...],
    is_associated: bool | None,
    zone: str | None,
    filter_exprs: tuple[str, ...],
    regex: bool,
    ignore_case: bool,
) -> None:
    """List public IPs matching every filter."""
    query = ListQuery(ids=list(ids), is_associated=is_associated, zone=zone)
    with ProviderSession.open(get_config(ctx)) as session, provider_errors():
        filters = build_filters(filter_exprs, regex, ignore_case)
        records = ResourceLister.for_public_ips(session).list(filters, query)
    echo_json([r.to_dict() for r in records])


@public_ip.command("show")
@public_ip_options
@click.pass_context
def public_ip_show(
    ctx: click.Context,
    ids: tuple[str, ...],
    is_associated: bool | None,
    zone: str | None,
    filter_exprs: tuple[str, ...],
    regex: bool,
    ignore_case: bool,
) -> None:
    """Show the single public IP matching every filter."""
    query = ListQuery(ids=list(ids), is_associated=is_associated, zone=zone)
    with ProviderSession.open(get_config(ctx)) as session, provider_errors():
        filters = build_filters(filter_exprs, regex, ignore_case)
        record = ResourceLister.for_public_ips(session).read_singular(filters, query)
    echo_json(record.to_dict())


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
