"""CLI output formatters for Rich tables and JSON.

Provides human-readable Rich output (default) and machine-parseable JSON
output (--json flag). All formatting goes through these functions so the
CLI commands stay clean.
"""

import json

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table

from flow_architect.cli.config import FlowArchitectConfig
from flow_architect.orchestrator.models.connector import Connector
from flow_architect.orchestrator.models.intent import NodeRole
from flow_architect.orchestrator.models.pipeline import GraphSnapshot, NodeStatus
from flow_architect.utils.redaction import mask_field_value, redact_for_logging

console = Console()

# Node status color map (matches canvas node badges)
STATUS_COLORS = {
    NodeStatus.PENDING: "yellow",
    NodeStatus.PARTIAL: "blue",
    NodeStatus.COMPLETE: "green",
}

ROLE_LABELS = {
    NodeRole.SOURCE: "Source",
    NodeRole.TRANSFORM: "Transform",
    NodeRole.DESTINATION: "Destination",
}


def _render(renderable) -> str:
    with console.capture() as capture:
        console.print(renderable)
    return capture.get()


def format_connector_table(connectors: list[Connector], as_json: bool = False) -> str:
    """Format catalog connectors as a Rich table or JSON.

    Args:
        connectors: Connectors to display, in catalog order.
        as_json: If True, return JSON string instead of Rich table.

    Returns:
        Formatted string output.
    """
    if as_json:
        return json.dumps(
            [
                {
                    "name": c.name,
                    "category": c.category.value,
                    "roles": [r.value for r in c.supported_roles],
                    "mandatory": list(c.credentials.mandatory),
                    "optional": list(c.credentials.optional),
                }
                for c in connectors
            ],
            indent=2,
        )

    table = Table(title=f"Connectors ({len(connectors)})")
    table.add_column("Name", style="bold")
    table.add_column("Category")
    table.add_column("Roles")
    table.add_column("Required fields", style="dim")
    for c in connectors:
        table.add_row(
            c.name,
            c.category.value,
            ", ".join(r.value for r in c.supported_roles),
            ", ".join(c.credentials.mandatory) or "-",
        )
    return _render(table)


def format_pipeline(snapshot: GraphSnapshot) -> str:
    """Render the pipeline chain with per-node field progress.

    Secret field values are masked.
    """
    if not snapshot.nodes:
        return _render(Panel("[dim]No nodes yet[/dim]", title="Pipeline"))

    table = Table(show_header=True, box=None, pad_edge=False)
    table.add_column("Step")
    table.add_column("Node", style="bold")
    table.add_column("Status")
    table.add_column("Fields")
    for node in snapshot.nodes:
        color = STATUS_COLORS[node.status]
        filled = len(node.mandatory_fields) - len(node.missing_mandatory_fields())
        values = ", ".join(
            f"{key}={mask_field_value(key, value)}" for key, value in node.configured_fields.items()
        )
        progress = f"{filled}/{len(node.mandatory_fields)}" if node.mandatory_fields else "-"
        table.add_row(
            ROLE_LABELS[node.role],
            node.name,
            f"[{color}]{node.status.value}[/{color}]",
            f"{progress} {values}".strip(),
        )

    chain = " -> ".join(node.name for node in snapshot.nodes)
    filled, total = snapshot.progress
    footer = f"[dim]{chain}  ({filled}/{total} required fields, v{snapshot.version})[/dim]"
    return _render(Panel(Group(table, footer), title="Pipeline"))


def pipeline_to_dict(snapshot: GraphSnapshot) -> dict:
    """Export a snapshot as plain data with secret field values redacted."""
    return {
        "version": snapshot.version,
        "nodes": [
            {
                "id": node.id,
                "role": node.role.value,
                "name": node.name,
                "status": node.status.value,
                "configuredFields": redact_for_logging(node.configured_fields),
            }
            for node in snapshot.nodes
        ],
        "edges": [
            {"from": edge.from_node_id, "to": edge.to_node_id}
            for edge in snapshot.edges
        ],
    }


def format_config(config: FlowArchitectConfig, as_json: bool = False) -> str:
    """Format the effective configuration."""
    data = config.model_dump()
    if as_json:
        return json.dumps(data, indent=2)

    lines = []
    for section, values in data.items():
        lines.append(f"[bold]{section.capitalize()}:[/bold]")
        for key, value in values.items():
            lines.append(f"  {key}: {value}")
    return "\n".join(lines)
