"""
Pipeline module for video analysis.

- orchestrator: request lifecycle from cache check to persisted feedback

Example:
    from speaking_coach.services.pipeline import AnalysisOrchestrator, PipelineError

    orchestrator = AnalysisOrchestrator.from_settings(settings, store)
    outcome = await orchestrator.analyze(request)
"""

from .orchestrator import AnalysisOrchestrator, PipelineError

__all__ = [
    "AnalysisOrchestrator",
    "PipelineError",
]
