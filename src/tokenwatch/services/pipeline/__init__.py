"""Token evaluation pipeline."""

from tokenwatch.services.pipeline.orchestrator import (
    PipelineOrchestrator,
    get_orchestrator,
    reset_orchestrator,
)

__all__ = ["PipelineOrchestrator", "get_orchestrator", "reset_orchestrator"]
