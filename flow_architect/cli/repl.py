"""Interactive conversational REPL for designing a pipeline.

Provides a terminal-based chat interface with Rich rendering. A canvas
observer redraws the pipeline whenever the graph changes.

Slash commands:
    /graph    Show the current pipeline
    /export   Print the pipeline as JSON (secrets redacted)
    /reset    Start over
"""

import json
import logging
import uuid

from rich.console import Console
from rich.markup import escape

from flow_architect.cli.config import FlowArchitectConfig
from flow_architect.cli.output import format_pipeline, pipeline_to_dict
from flow_architect.errors import GraphInvariantViolation
from flow_architect.orchestrator.models.pipeline import GraphSnapshot
from flow_architect.orchestrator.nl_engine.fallback_parser import RuleBasedClassifier
from flow_architect.orchestrator.nl_engine.intent_classifier import (
    Classifier,
    LLMIntentClassifier,
)
from flow_architect.services.connector_registry import ConnectorRegistry
from flow_architect.services.conversation_handler import ConversationHandler
from flow_architect.services.session import Session, SessionManager

logger = logging.getLogger(__name__)

console = Console()


class CanvasObserver:
    """Renders the pipeline to the terminal after each committed change."""

    def __init__(self, target: Console) -> None:
        self._console = target
        self.last_snapshot: GraphSnapshot | None = None

    def on_graph_changed(self, snapshot: GraphSnapshot) -> None:
        self.last_snapshot = snapshot

    def on_question_asked(self, text: str) -> None:
        pass

    def flush(self) -> None:
        """Draw the latest snapshot once per turn instead of once per mutation."""
        if self.last_snapshot is not None:
            self._console.print(format_pipeline(self.last_snapshot), end="")
            self.last_snapshot = None


def build_classifier(config: FlowArchitectConfig, registry: ConnectorRegistry) -> Classifier:
    """Primary classifier for the configured settings."""
    if not config.classifier.enabled:
        logger.info("Classifier disabled, using rule-based classification only")
        return RuleBasedClassifier(registry)
    return LLMIntentClassifier(
        model=config.classifier.model,
        max_tokens=config.classifier.max_tokens,
    )


def build_handler(
    session: Session,
    registry: ConnectorRegistry,
    config: FlowArchitectConfig,
) -> ConversationHandler:
    return ConversationHandler(
        session,
        registry,
        build_classifier(config, registry),
        timeout_seconds=config.classifier.timeout_seconds,
        context_turns=config.classifier.context_turns,
        confidence_threshold=config.dialogue.confidence_threshold,
        ask_optional_fields=config.dialogue.ask_optional_fields,
    )


async def run_repl(
    config: FlowArchitectConfig,
    registry: ConnectorRegistry,
    session_id: str | None = None,
) -> None:
    """Run the interactive pipeline chat.

    Args:
        config: Loaded configuration.
        registry: Connector catalog.
        session_id: Optional session ID. A new one is generated if None.
    """
    manager = SessionManager()
    session_id = session_id or uuid.uuid4().hex[:12]
    session = manager.get_or_create_session(session_id)
    canvas = CanvasObserver(console)
    session.emitter.add_observer(canvas)
    handler = build_handler(session, registry, config)

    console.print(f"[dim]Session: {session_id}[/dim]")
    console.print()
    console.print("[bold]flow-architect[/bold] - Interactive Mode")
    console.print("Describe the data flow you want to build. /graph, /export, /reset. Ctrl+D to exit.")
    console.print()

    try:
        while True:
            try:
                user_input = console.input("[bold green]> [/bold green]")
            except EOFError:
                break

            text = user_input.strip()
            if not text:
                continue

            if text == "/graph":
                console.print(format_pipeline(session.graph.snapshot()), end="")
                continue
            if text == "/export":
                console.print_json(json.dumps(pipeline_to_dict(session.graph.snapshot())))
                continue
            if text == "/reset":
                await manager.cancel_in_flight(session_id)
                session = manager.reset_session(session_id)
                handler = build_handler(session, registry, config)
                console.print("[yellow]Started over.[/yellow]")
                continue

            try:
                outcome = await handler.handle_message(text)
            except KeyboardInterrupt:
                console.print("\n[yellow]Interrupted[/yellow]")
                continue
            except GraphInvariantViolation as e:
                console.print(f"[red]Internal error:[/red] {e}")
                break

            if outcome is None:
                continue
            canvas.flush()
            style = "yellow" if outcome.degraded else "cyan"
            console.print(f"[{style}]{escape(outcome.message)}[/{style}]")
            console.print()
    finally:
        await manager.cancel_in_flight(session_id)
        manager.remove_session(session_id)

    console.print("\n[dim]Session ended.[/dim]")
