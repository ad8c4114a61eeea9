"""Commit evaluation and promotion pipeline."""

from commitwatch.pipeline.commit_pipeline import CommitPipeline
from commitwatch.pipeline.messages import FailureKind, classify, classify_failure
from commitwatch.pipeline.types import CommitReport, EvaluationResult, PipelineState

__all__ = [
    "CommitPipeline",
    "CommitReport",
    "EvaluationResult",
    "FailureKind",
    "PipelineState",
    "classify",
    "classify_failure",
]
