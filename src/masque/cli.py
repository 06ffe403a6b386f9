"""Command-line interface for Masque."""

from __future__ import annotations

import json
import logging
import sys

import click
from rich.console import Console
from rich.table import Table

from masque.catalog.store import TemplateStore
from masque.config import load_config
from masque.exceptions import IdentityGenerationError
from masque.identity.composer import SyntheticIdentityComposer
from masque.models import NoiseDistribution, NoiseLevel
from masque.noise import NoiseEngine

console = Console()


def _setup_logging(level: str) -> None:
    """Configure logging with the specified level.

    Args:
        level: Logging level string (debug, info, warning, error).
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


@click.group()
@click.option("--config", "-c", default=None, help="Path to masque.yaml config file")
@click.pass_context
def main(ctx: click.Context, config: str | None) -> None:
    """Masque: weighted browser identity templates and deterministic noise."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    cfg = load_config(config)
    ctx.obj["config"] = cfg
    ctx.obj["store"] = TemplateStore.from_config(cfg.catalog)
    _setup_logging(cfg.logging.level)


@main.command()
@click.option("--host", default=None, help="Override server host")
@click.option("--port", "-p", default=None, type=int, help="Override server port")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Start the Masque HTTP server."""
    import uvicorn

    from masque.server import create_app

    cfg = ctx.obj["config"]
    server_host = host or cfg.server.host
    server_port = port or cfg.server.port

    console.print(f"[bold green]Starting Masque on {server_host}:{server_port}[/bold green]")

    app = create_app(ctx.obj["config_path"])
    uvicorn.run(app, host=server_host, port=server_port, log_level=cfg.logging.level)


@main.command()
@click.option("--os", "os_name", default=None, help="Target OS: windows, macos, linux")
@click.option("--browser", "-b", default=None, help="Target browser: chrome, firefox, ...")
@click.option("--seed", "-s", default=None, type=int, help="Deterministic seed for generation")
@click.option("--count", "-n", default=1, type=click.IntRange(min=1), help="Identities to make")
@click.option("--json-output", is_flag=True, help="Output as JSON")
@click.pass_context
def generate(
    ctx: click.Context,
    os_name: str | None,
    browser: str | None,
    seed: int | None,
    count: int,
    json_output: bool,
) -> None:
    """Generate synthetic browser identities."""
    cfg = ctx.obj["config"]
    composer = SyntheticIdentityComposer(
        ctx.obj["store"], max_attempts=cfg.identity.max_attempts
    )

    try:
        identities = [
            composer.generate(os=os_name, browser=browser, seed=seed)
            for _ in range(count)
        ]
    except IdentityGenerationError as exc:
        raise click.ClickException(str(exc)) from exc

    if json_output:
        click.echo(
            json.dumps([i.model_dump(mode="json", by_alias=True) for i in identities], indent=2)
        )
        return

    for identity in identities:
        table = Table(title=f"Synthetic Identity: {identity.id}")
        table.add_column("Field", style="cyan")
        table.add_column("Value", style="white")
        for key, value in identity.model_dump(by_alias=True).items():
            table.add_row(key, str(value))
        console.print(table)


@main.command()
@click.option("--os", "os_name", default=None, help="Restrict to an OS")
@click.option("--browser", "-b", default=None, help="Restrict to a browser")
@click.option("--min-major", default=None, type=int, help="Lowest major version")
@click.option("--max-major", default=None, type=int, help="Highest major version")
@click.option("--gpu-vendor", default=None, help="Substring of the GPU vendor")
@click.option("--json-output", is_flag=True, help="Output as JSON")
@click.pass_context
def search(
    ctx: click.Context,
    os_name: str | None,
    browser: str | None,
    min_major: int | None,
    max_major: int | None,
    gpu_vendor: str | None,
    json_output: bool,
) -> None:
    """Search catalog templates."""
    store: TemplateStore = ctx.obj["store"]
    results = store.search(
        os=os_name,
        browser=browser,
        min_major_version=min_major,
        max_major_version=max_major,
        gpu_vendor=gpu_vendor,
    )

    if json_output:
        click.echo(
            json.dumps([t.model_dump(mode="json", by_alias=True) for t in results], indent=2)
        )
        return

    table = Table(title=f"Templates ({len(results)})")
    table.add_column("ID", style="dim")
    table.add_column("OS", style="cyan")
    table.add_column("Browser", style="cyan")
    table.add_column("Version")
    table.add_column("Weight", justify="right")
    table.add_column("GPU", style="green")
    for t in results:
        table.add_row(
            t.id,
            t.os,
            t.browser,
            t.browser_version,
            str(t.weight),
            t.webgl.unmasked_vendor or t.webgl.vendor,
        )
    console.print(table)


@main.command()
@click.option("--json-output", is_flag=True, help="Output as JSON")
@click.pass_context
def stats(ctx: click.Context, json_output: bool) -> None:
    """Show template counts per OS and browser."""
    store: TemplateStore = ctx.obj["store"]
    statistics = store.get_statistics()

    if json_output:
        click.echo(statistics.model_dump_json(by_alias=True, indent=2))
        return

    table = Table(title=f"Catalog {statistics.version}: {statistics.total_templates} templates")
    table.add_column("Group", style="cyan")
    table.add_column("Key")
    table.add_column("Templates", justify="right")
    for os_key, n in statistics.by_os.items():
        table.add_row("os", os_key, str(n))
    for browser, n in statistics.by_browser.items():
        table.add_row("browser", browser, str(n))
    console.print(table)


@main.command(name="export")
@click.option("--output", "-o", default=None, help="Output file path (JSON)")
@click.pass_context
def export_catalog(ctx: click.Context, output: str | None) -> None:
    """Export the catalog as a JSON document."""
    store: TemplateStore = ctx.obj["store"]
    document = store.export_data().model_dump_json(by_alias=True, indent=2)

    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(document)
        console.print(f"[green]Catalog exported to {output}[/green]")
    else:
        click.echo(document)


@main.command(name="import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def import_catalog(ctx: click.Context, path: str) -> None:
    """Import templates from a JSON document and report the new totals."""
    store: TemplateStore = ctx.obj["store"]

    try:
        with open(path, encoding="utf-8") as f:
            document = json.load(f)
        added = store.import_data(document)
    except (json.JSONDecodeError, ValueError) as exc:
        raise click.ClickException(f"Could not import {path}: {exc}") from exc

    console.print(
        f"[green]Imported {added} templates, catalog now holds "
        f"{store.get_template_count()}[/green]"
    )


@main.command()
@click.option("--seed", "-s", default=None, type=int, help="Noise seed (random if omitted)")
@click.option(
    "--level",
    default=None,
    type=click.Choice([lvl.value for lvl in NoiseLevel]),
    help="Noise level",
)
@click.option(
    "--distribution",
    default=None,
    type=click.Choice([d.value for d in NoiseDistribution]),
    help="Noise distribution",
)
@click.option("--count", "-n", default=10, type=click.IntRange(min=1), help="Values to print")
@click.option("--json-output", is_flag=True, help="Output as JSON")
@click.pass_context
def noise(
    ctx: click.Context,
    seed: int | None,
    level: str | None,
    distribution: str | None,
    count: int,
    json_output: bool,
) -> None:
    """Print a deterministic noise sequence."""
    cfg = ctx.obj["config"]
    try:
        engine = NoiseEngine(
            seed,
            level=level or cfg.noise.level,
            distribution=distribution or cfg.noise.distribution,
        )
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc

    values = [engine.get_noise(i) for i in range(count)]

    if json_output:
        body = engine.to_settings().model_dump(mode="json")
        body["values"] = values
        click.echo(json.dumps(body, indent=2))
        return

    table = Table(title=f"Noise (seed={engine.seed}, {engine.level}, {engine.distribution})")
    table.add_column("Index", justify="right", style="dim")
    table.add_column("Value", justify="right")
    for i, value in enumerate(values):
        table.add_row(str(i), f"{value:+.6f}")
    console.print(table)


if __name__ == "__main__":
    main()
