"""Pipeline graph builder and change notifications."""

from flow_architect.orchestrator.pipeline.events import (
    PipelineEventEmitter,
    PipelineEventObserver,
)
from flow_architect.orchestrator.pipeline.graph import PipelineGraph

__all__ = [
    "PipelineEventEmitter",
    "PipelineEventObserver",
    "PipelineGraph",
]
