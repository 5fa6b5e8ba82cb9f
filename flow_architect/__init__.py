"""flow-architect: turn a chat about a data flow into a pipeline graph.

Packages:
    orchestrator: Intent models, classifiers, dialogue state machine and
        the pipeline graph.
    services: Connector catalog, sessions and message handling.
    errors: Error code registry and domain exceptions.
    cli: Typer command line and interactive chat.
"""
