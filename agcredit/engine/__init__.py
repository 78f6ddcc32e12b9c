"""
Financial statement extraction and ratio engine.

Exports the orchestrator entry points.
"""
from agcredit.engine.orchestrator import (
    EngineOptions,
    analyze_combined,
    analyze_combined_async,
    run_engine,
)
from agcredit.models import ExtractionResult

__all__ = [
    "EngineOptions",
    "ExtractionResult",
    "analyze_combined",
    "analyze_combined_async",
    "run_engine",
]
