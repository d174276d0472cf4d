"""Recognition run orchestration."""

from repertoirevision.orchestrator.pipeline import RecognitionConfig, RecognitionPipeline

__all__ = [
    "RecognitionConfig",
    "RecognitionPipeline",
]
