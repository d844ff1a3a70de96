"""partshub CLI — inspect registries and install libraries from them."""

from __future__ import annotations

import json
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from partshub import __version__
from partshub.errors import PartsHubError

console = Console()


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", count=True, help="Log more (-v info, -vv debug)")
@click.option("--log-json", is_flag=True, help="Emit logs as JSON lines on stderr")
@click.option("--token", envvar="GITHUB_TOKEN", default=None, help="GitHub access token")
@click.pass_context
def main(ctx: click.Context, verbose: int, log_json: bool, token: str | None):
    """partshub — resolve parts registries hosted on GitHub.

    Registries are declared in an app's app.yaml. Their inventories are
    cached per commit; libraries are always pinned to a full commit SHA.
    """
    from partshub.utils.logger import setup_logging

    level = {0: "WARNING", 1: "INFO"}.get(verbose, "DEBUG")
    setup_logging(level, json_output=log_json)

    ctx.ensure_object(dict)
    ctx.obj.setdefault("token", token)


def _client(ctx: click.Context):
    """Transport for this invocation; tests inject one through ``obj``.

    A client built here is closed when the command's context closes.
    """
    if ctx.obj.get("client") is None:
        from partshub.github.real import RealGitHub

        client = RealGitHub(token=ctx.obj.get("token"))
        ctx.obj["client"] = client
        ctx.call_on_close(client.close)
    return ctx.obj["client"]


def _open_registry(ctx: click.Context, app_dir: str, name: str):
    from partshub.app import load_app_config
    from partshub.errors import ConfigError
    from partshub.registry.github import GitHubRegistry
    from partshub.registry.options import RegistryOptions

    app = load_app_config(app_dir)
    config = app.registry(name)
    if config.protocol != GitHubRegistry.PROTOCOL:
        raise ConfigError(f"registry {name!r} uses unsupported protocol {config.protocol!r}")
    return GitHubRegistry(app, config, RegistryOptions(client=_client(ctx)))


def _fail(err: PartsHubError) -> None:
    console.print(f"[red]Error:[/] {err}")
    raise SystemExit(1)


# ── Parse ────────────────────────────────────────────────────────────


@main.command()
@click.argument("uri")
def parse(uri: str):
    """Show how a registry URI is interpreted."""
    from partshub.registry.uri import parse_github_uri

    try:
        hd = parse_github_uri(uri)
    except PartsHubError as e:
        _fail(e)
        return

    table = Table(title="Registry descriptor", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("API root", hd.base_url or "(public github.com)")
    table.add_row("Organization", hd.org)
    table.add_row("Repository", hd.repo)
    table.add_row("Ref", hd.ref_spec or "(default branch)")
    table.add_row("Registry path", hd.registry_repo_path or "(repository root)")
    table.add_row("registry.yaml", hd.registry_spec_repo_path)
    console.print(table)


# ── Registry ─────────────────────────────────────────────────────────


@main.group()
def registry():
    """Manage the registries an app uses."""


@registry.command(name="list")
@click.option("--app", "app_dir", default=".", help="App directory containing app.yaml")
def list_registries(app_dir: str):
    """List registries declared in app.yaml."""
    from partshub.app import load_app_config

    try:
        app = load_app_config(app_dir)
    except PartsHubError as e:
        _fail(e)
        return

    if not app.registries:
        console.print("[yellow]No registries configured.[/]")
        return

    table = Table(title=f"Registries ({len(app.registries)})")
    table.add_column("Name", style="cyan")
    table.add_column("Protocol")
    table.add_column("URI")
    for reg in app.registries.values():
        table.add_row(reg.name, reg.protocol, reg.uri)
    console.print(table)


@registry.command()
@click.argument("name")
@click.argument("uri")
@click.option("--app", "app_dir", default=".", help="App directory containing app.yaml")
@click.option("--no-validate", is_flag=True, help="Skip the reachability check")
@click.pass_context
def add(ctx: click.Context, name: str, uri: str, app_dir: str, no_validate: bool):
    """Add a GitHub registry to app.yaml."""
    from partshub.app import load_app_config, save_app_config
    from partshub.registry.github import GitHubRegistry
    from partshub.registry.models import RegistryConfig
    from partshub.registry.options import RegistryOptions

    try:
        app = load_app_config(app_dir)
        config = RegistryConfig(name=name, protocol=GitHubRegistry.PROTOCOL, uri=uri)
        reg = GitHubRegistry(app, config, RegistryOptions(client=_client(ctx)))
        if not no_validate:
            reg.validate_uri(uri)
        app.add_registry(config)
        save_app_config(app)
    except PartsHubError as e:
        _fail(e)
        return

    console.print(f"  [green]Added[/] registry [cyan]{name}[/] -> {uri}")


@registry.command()
@click.argument("name")
@click.option("--app", "app_dir", default=".", help="App directory containing app.yaml")
@click.pass_context
def show(ctx: click.Context, name: str, app_dir: str):
    """Show the libraries in a registry's inventory."""
    try:
        reg = _open_registry(ctx, app_dir, name)
        spec = reg.fetch_registry_spec()
    except PartsHubError as e:
        _fail(e)
        return

    if reg.last_fetch_degraded:
        console.print(
            f"[yellow]![/] could not reach GitHub; showing cached inventory at "
            f"'{reg.descriptor.ref_spec or '(default branch)'}' (may be stale)"
        )

    if not spec.libraries:
        console.print("[yellow]Registry has no libraries.[/]")
        return

    table = Table(title=f"{name} ({len(spec.libraries)} libraries)")
    table.add_column("Name", style="cyan")
    table.add_column("Version")
    table.add_column("Path")
    for lib_name, lib in spec.libraries.items():
        table.add_row(lib_name, lib.version, lib.path)
    console.print(table)


@registry.command(name="validate")
@click.argument("manifest_path")
@click.option("--kind", type=click.Choice(["registry", "parts"]), default=None,
              help="Manifest kind (default: from the file name)")
def validate_manifest(manifest_path: str, kind: str | None):
    """Check a local registry.yaml or parts.yaml against its schema."""
    import yaml

    from partshub.registry.schema_validator import validate_schema

    kind = kind or ("parts" if Path(manifest_path).name == "parts.yaml" else "registry")
    try:
        with open(manifest_path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        console.print(f"  [red]Failed to parse:[/] {e}")
        raise SystemExit(1)

    issues = validate_schema(data, kind)
    if issues:
        console.print(f"[red]{kind} validation FAILED:[/]")
        for issue in issues:
            console.print(f"  [red]x[/] {issue}")
        raise SystemExit(1)
    console.print(f"  [green]v[/] {manifest_path} is a valid {kind} manifest")


@registry.command(name="schema")
@click.argument("kind", type=click.Choice(["registry", "parts"]))
def dump_schema(kind: str):
    """Print the JSON Schema for registry.yaml or parts.yaml."""
    from partshub.registry.schema import get_schema

    console.print_json(json.dumps(get_schema(kind)))


# ── Packages ─────────────────────────────────────────────────────────


@main.group()
def pkg():
    """Install libraries from registries."""


@pkg.command()
@click.argument("qualified_name")
@click.option("--alias", "-a", default="", help="Local name for the library")
@click.option("--version", "ref", default="", help="Branch, tag or SHA (default: registry ref)")
@click.option("--app", "app_dir", default=".", help="App directory containing app.yaml")
@click.option("--out", "-o", default="vendor", help="Vendor directory, relative to the app")
@click.pass_context
def install(ctx: click.Context, qualified_name: str, alias: str, ref: str, app_dir: str, out: str):
    """Install REGISTRY/LIBRARY into the app's vendor directory."""
    from partshub.utils.staging import new_staging_dir

    registry_name, sep, lib_name = qualified_name.partition("/")
    if not sep or not lib_name:
        console.print("[red]Error:[/] expected REGISTRY/LIBRARY")
        raise SystemExit(1)

    try:
        reg = _open_registry(ctx, app_dir, registry_name)
        with new_staging_dir() as staging:
            resolution = reg.resolve_library(
                lib_name, alias, ref, staging.on_file, staging.on_directory
            )
            dest = staging.commit(
                Path(app_dir) / out / registry_name / resolution.library.name,
                subpath=lib_name,
            )
    except PartsHubError as e:
        _fail(e)
        return

    lib = resolution.library
    console.print(f"  [green]Installed[/] {resolution.parts.name} as [cyan]{lib.name}[/]")
    console.print(f"    registry: {lib.registry}")
    console.print(f"    version:  {lib.version}")
    console.print(f"    path:     {dest}")


if __name__ == "__main__":
    main()
