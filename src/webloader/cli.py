"""Command-line interface for the web resource loader."""

import asyncio
import json
import re
from pathlib import Path

import structlog
import typer
from rich.console import Console
from rich.table import Table

from .config import load_config
from .constants import RESOURCE_FILE_EXTENSIONS
from .core.manifest import Manifest, load_manifest
from .execution.loader import ResourceLoader
from .models.resource import ResourceType
from .observability.logger import configure_from_config
from .observability.reporter import ReportGenerator
from .utils.exceptions import LoaderError

app = typer.Typer(
    name="webloader",
    help="Load web resources in dependency order with fallback URLs",
    add_completion=False,
)

console = Console()
logger = structlog.get_logger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def _read_manifest(manifest_file: Path) -> Manifest:
    try:
        return load_manifest(manifest_file)
    except (LoaderError, OSError) as e:
        console.print(f"\n[red]ERROR: Could not read manifest:[/red] {e}")
        raise typer.Exit(code=1) from e


def output_filename(resource_id: str, resource_type: ResourceType | str) -> str:
    """File name a fetched resource is written to."""
    safe_id = _UNSAFE_FILENAME_CHARS.sub("_", resource_id).strip(".") or "resource"
    return f"{safe_id}{RESOURCE_FILE_EXTENSIONS[ResourceType(resource_type)]}"


def unique_filename(name: str, used_names: set[str]) -> str:
    """
    Return `name`, or `<stem>-<n><suffix>` if it was already handed out.

    Names are compared case-insensitively. The returned name is added to
    `used_names`.
    """
    stem, suffix = Path(name).stem, Path(name).suffix
    candidate = name
    counter = 2
    while candidate.lower() in used_names:
        candidate = f"{stem}-{counter}{suffix}"
        counter += 1
    used_names.add(candidate.lower())
    return candidate


@app.command()
def validate(
    manifest_file: Path = typer.Argument(..., help="Manifest file to validate", exists=True),
) -> None:
    """
    Validate a manifest without fetching anything.

    Checks:
    - YAML structure and entry fields
    - Dependencies reference declared resources
    - No dependency cycles

    Examples:
        webloader validate resources.yaml
    """
    console.print(f"\n[bold blue]Validating manifest:[/bold blue] {manifest_file}\n")

    manifest = _read_manifest(manifest_file)

    try:
        loader = manifest.build_loader()
        step_plan = loader.plan()
    except LoaderError as e:
        console.print(f"[red]ERROR: Validation failed:[/red] {e}")
        raise typer.Exit(code=1) from e

    console.print("[green]PASS: Manifest is valid![/green]")
    console.print(f"  Resources: {step_plan.total_resources}")
    console.print(f"  Steps: {len(step_plan.steps)}")
    console.print(f"  Max parallelism: {step_plan.max_parallelism}")


@app.command()
def order(
    manifest_file: Path = typer.Argument(..., help="Manifest file", exists=True),
    leaves_only: bool = typer.Option(
        False, "--leaves-only", help="Only list resources without dependencies"
    ),
) -> None:
    """
    Print the overall load order (every resource after its dependencies).

    Examples:
        webloader order resources.yaml
        webloader order resources.yaml --leaves-only
    """
    manifest = _read_manifest(manifest_file)

    try:
        loader = manifest.build_loader()
        resource_ids = loader.graph.overall_order(leaves_only=leaves_only)
    except LoaderError as e:
        console.print(f"[red]ERROR:[/red] {e}")
        raise typer.Exit(code=1) from e

    for position, resource_id in enumerate(resource_ids, start=1):
        console.print(f"{position:>3}. {resource_id}")


@app.command()
def plan(
    manifest_file: Path = typer.Argument(..., help="Manifest file", exists=True),
    max_step_size: int | None = typer.Option(
        None, "--max-step-size", min=1, help="Split steps larger than this"
    ),
    dot_file: Path | None = typer.Option(
        None, "--dot", help="Write the dependency graph in Graphviz DOT format"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print steps as JSON"),
) -> None:
    """
    Show the load steps for a manifest.

    Examples:
        webloader plan resources.yaml
        webloader plan resources.yaml --max-step-size 4 --dot deps.dot
    """
    manifest = _read_manifest(manifest_file)

    try:
        loader = manifest.build_loader()
        if max_step_size is not None:
            loader.policy.max_step_size = max_step_size
        step_plan = loader.plan()
    except LoaderError as e:
        console.print(f"[red]ERROR:[/red] {e}")
        raise typer.Exit(code=1) from e

    if dot_file:
        dot_file.write_text(loader.graph.to_dot(), encoding="utf-8")
        logger.info("Dependency graph written", path=str(dot_file))

    if as_json:
        typer.echo(json.dumps(step_plan.as_lists()))
        return

    table = Table(title=f"Load plan ({len(step_plan.steps)} steps)")
    table.add_column("Step", justify="right")
    table.add_column("Level", justify="right")
    table.add_column("Resources")

    for step in step_plan.steps:
        table.add_row(str(step.index), str(step.level), ", ".join(step.node_ids))

    console.print(table)
    if dot_file:
        console.print(f"[green]Graph written to {dot_file}[/green]")


@app.command()
def fetch(
    manifest_file: Path = typer.Argument(..., help="Manifest file", exists=True),
    output_dir: Path = typer.Option(
        Path("build"), "--output-dir", "-o", help="Directory fetched resources are written to"
    ),
    config_file: Path | None = typer.Option(None, "--config", "-c", help="Configuration file"),
    log_level: str | None = typer.Option(
        None, "--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)"
    ),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit logs as JSON"),
    report_file: Path | None = typer.Option(
        None, "--report", help="Write a JSON load report to this file"
    ),
) -> None:
    """
    Fetch every resource of a manifest in dependency order.

    Each step is fetched concurrently; steps run one after another. A resource
    whose primary URL fails is fetched once from its fallback URL.

    Examples:
        webloader fetch resources.yaml -o dist/vendor
        webloader fetch resources.yaml --config loader.yaml --report load.json
    """
    try:
        config = load_config(config_file)
    except (OSError, ValueError) as e:
        console.print(f"[red]ERROR: Could not load configuration:[/red] {e}")
        raise typer.Exit(code=1) from e

    configure_from_config(config.logging, level=log_level, json_logs=json_logs)

    manifest = _read_manifest(manifest_file)

    try:
        loader = manifest.build_loader(config=config)
    except LoaderError as e:
        console.print(f"[red]ERROR:[/red] {e}")
        raise typer.Exit(code=1) from e

    async def run_fetch(loader: ResourceLoader) -> None:
        async with loader:
            await loader.load()

    reporter = ReportGenerator()
    failure: LoaderError | None = None
    try:
        asyncio.run(run_fetch(loader))
    except LoaderError as e:
        failure = e

    written = _write_resources(loader, output_dir)

    if loader.report:
        reporter.print_summary(loader.report, console)
        if report_file:
            reporter.save_json(loader.report, report_file)

    if failure is not None:
        console.print(f"\n[bold red]ERROR:[/bold red] {failure}")
        raise typer.Exit(code=1)

    console.print(f"[green]Wrote {written} resources to {output_dir}[/green]")


def _write_resources(loader: ResourceLoader, output_dir: Path) -> int:
    written = 0
    used_names: set[str] = set()
    registration = {resource_id: index for index, resource_id in enumerate(loader.graph.nodes)}
    # Registration order decides which resource keeps the unsuffixed name
    for result in sorted(loader.results, key=lambda r: registration.get(r.resource_id, 0)):
        if not result.success or result.resource is None:
            continue
        preferred = output_filename(result.resource_id, result.resource.resource_type)
        name = unique_filename(preferred, used_names)
        if name != preferred:
            logger.warning("Output file name taken", resource_id=result.resource_id, path=name)
        output_dir.mkdir(parents=True, exist_ok=True)
        (output_dir / name).write_bytes(result.resource.content)
        written += 1
    return written
