"""flow-architect CLI - conversational data-pipeline design.

Unified entry point for the pipeline chat and catalog inspection.

Usage:
    flow-architect chat                      Start conversational REPL
    flow-architect catalog list              List catalog connectors
    flow-architect catalog categorize NAME   Show the category for a name
    flow-architect config show               Show effective configuration
"""

import asyncio
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console

from flow_architect.cli.config import FlowArchitectConfig, configure_logging, load_config
from flow_architect.cli.output import format_config, format_connector_table
from flow_architect.errors import CatalogLoadError
from flow_architect.orchestrator.models.connector import ConnectorCategory
from flow_architect.services.connector_categories import categorize
from flow_architect.services.connector_registry import ConnectorRegistry

app = typer.Typer(
    name="flow-architect",
    help="Design data pipelines by chatting about them",
    no_args_is_help=True,
)
catalog_app = typer.Typer(help="Inspect the connector catalog")
config_app = typer.Typer(help="Configuration management")

app.add_typer(catalog_app, name="catalog")
app.add_typer(config_app, name="config")

console = Console()

# --- Global state ---
_config_path: str | None = None


@app.callback()
def main(
    config: Optional[str] = typer.Option(
        None, "--config", help="Path to flow-architect.yaml config file"
    ),
):
    """flow-architect - conversational data-pipeline design."""
    global _config_path
    _config_path = config


def _load_config_or_exit() -> FlowArchitectConfig:
    try:
        cfg = load_config(config_path=_config_path)
    except FileNotFoundError as e:
        console.print(f"[red]Config file not found:[/red] {e}")
        raise typer.Exit(1)
    except ValidationError as e:
        console.print(f"[red]Config validation failed:[/red] {e}")
        raise typer.Exit(1)
    configure_logging(cfg.logging)
    return cfg


def _load_registry_or_exit(cfg: FlowArchitectConfig) -> ConnectorRegistry:
    try:
        if cfg.catalog.path:
            return ConnectorRegistry.from_catalog_file(cfg.catalog.path)
        return ConnectorRegistry.get_instance()
    except CatalogLoadError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


# --- Version ---


@app.command()
def version():
    """Show flow-architect version and dependency info."""
    from importlib.metadata import PackageNotFoundError
    from importlib.metadata import version as pkg_version

    try:
        v = pkg_version("flow-architect")
    except PackageNotFoundError:
        v = "unknown"
    console.print(f"[bold]flow-architect[/bold] v{v}")
    try:
        console.print(f"  Anthropic SDK: {pkg_version('anthropic')}")
    except PackageNotFoundError:
        console.print("  Anthropic SDK: [red]not installed[/red]")


# --- Chat ---


@app.command()
def chat(
    session: Optional[str] = typer.Option(None, "--session", help="Session ID to use"),
    offline: bool = typer.Option(
        False, "--offline", help="Use rule-based classification only (no API calls)"
    ),
):
    """Start a conversational pipeline-design REPL."""
    from flow_architect.cli.repl import run_repl

    cfg = _load_config_or_exit()
    if offline:
        cfg = cfg.model_copy(
            update={"classifier": cfg.classifier.model_copy(update={"enabled": False})}
        )
    registry = _load_registry_or_exit(cfg)
    asyncio.run(run_repl(cfg, registry, session_id=session))


# --- Catalog commands ---


@catalog_app.command("list")
def catalog_list(
    category: Optional[str] = typer.Option(
        None, "--category", "-c", help="Only show one category (e.g. \"CRM\")"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List catalog connectors in catalog order."""
    cfg = _load_config_or_exit()
    registry = _load_registry_or_exit(cfg)
    if category is None:
        connectors = list(registry.all())
    else:
        try:
            wanted = ConnectorCategory(category)
        except ValueError:
            valid = ", ".join(c.value for c in ConnectorCategory)
            console.print(f"[red]Unknown category:[/red] {category}. Valid: {valid}")
            raise typer.Exit(1)
        connectors = registry.by_category(wanted)
    console.print(format_connector_table(connectors, as_json=json_output), end="")


@catalog_app.command("categorize")
def catalog_categorize(
    name: str = typer.Argument(..., help="Connector name, catalog member or not"),
):
    """Show which category a connector name falls into."""
    console.print(f"{name}: [bold]{categorize(name).value}[/bold]")


# --- Config commands ---


@config_app.command("show")
def config_show(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show the effective configuration (file, env overrides and defaults)."""
    cfg = _load_config_or_exit()
    console.print(format_config(cfg, as_json=json_output))


@config_app.command("validate")
def config_validate(
    config: Optional[str] = typer.Option(None, "--config", help="Config file path"),
):
    """Validate a config file without starting a chat."""
    path = config or _config_path
    try:
        cfg = load_config(config_path=path)
    except FileNotFoundError as e:
        console.print(f"[red]Config file not found:[/red] {e}")
        raise typer.Exit(1)
    except ValidationError as e:
        console.print(f"[red]Config validation failed:[/red] {e}")
        raise typer.Exit(1)
    except Exception as e:
        console.print(f"[red]Config loading error ({type(e).__name__}):[/red] {e}")
        raise typer.Exit(1)
    console.print("[green]Config is valid.[/green]")
    console.print(f"  Classifier: {'enabled' if cfg.classifier.enabled else 'disabled'} ({cfg.classifier.model})")
    console.print(f"  Confidence threshold: {cfg.dialogue.confidence_threshold}")


if __name__ == "__main__":
    app()
