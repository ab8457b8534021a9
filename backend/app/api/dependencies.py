"""
Process-wide service instances for the HTTP layer.

Routes receive these through ``Depends`` so tests can swap them out with
``app.dependency_overrides``.
"""

from typing import Optional

from app.services.llm.config import GenerationSettings
from app.services.llm.explanation_service import ExplanationOrchestrator
from app.services.quality.metrics_tracker import MetricsTracker

_tracker_instance: Optional[MetricsTracker] = None
_orchestrator_instance: Optional[ExplanationOrchestrator] = None


def get_metrics_tracker() -> MetricsTracker:
    """Get the global pipeline metrics tracker."""
    global _tracker_instance
    if _tracker_instance is None:
        _tracker_instance = MetricsTracker()
    return _tracker_instance


def get_orchestrator() -> ExplanationOrchestrator:
    """
    Get the global explanation orchestrator.

    Built lazily from the environment; raises ``ConfigurationError`` when the
    selected provider lacks credentials.
    """
    global _orchestrator_instance
    if _orchestrator_instance is None:
        _orchestrator_instance = ExplanationOrchestrator(
            GenerationSettings.from_env(),
            tracker=get_metrics_tracker(),
        )
    return _orchestrator_instance


async def shutdown_orchestrator() -> None:
    global _orchestrator_instance
    if _orchestrator_instance is not None:
        await _orchestrator_instance.aclose()
        _orchestrator_instance = None
