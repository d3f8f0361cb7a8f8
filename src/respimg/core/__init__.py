"""Core transformation components for Respimg."""

from .assembler import EmittedFile, GeneratedArtifact, assemble, disabled_artifact
from .engine import RenderedSet, TransformEngine
from .planner import SizePlan, derive_sizes, plan_sizes

__all__ = [
    "EmittedFile",
    "GeneratedArtifact",
    "RenderedSet",
    "SizePlan",
    "TransformEngine",
    "assemble",
    "derive_sizes",
    "disabled_artifact",
    "plan_sizes",
]
