"""
Pipeline telemetry — running counters for generation and QA outcomes.

Write-only from the services' point of view: nothing in the analysis path
reads these counters back, they exist for logging and monitoring.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Dict

logger = logging.getLogger(__name__)


@dataclass
class PipelineCounters:
    variants_matched: int = 0
    variants_unmatched: int = 0
    llm_api_attempts: int = 0
    llm_api_successes: int = 0
    llm_api_failures: int = 0
    contradiction_checks: int = 0
    contradictions_detected: int = 0
    explanation_generations: int = 0
    fallback_explanations_used: int = 0
    metric_validations: int = 0
    metric_validation_failures: int = 0


def _rate(numerator: int, denominator: int) -> float:
    return numerator / denominator if denominator else 0.0


class MetricsTracker:
    """Accumulates counters across analyses handled by one process."""

    def __init__(self):
        self.counters = PipelineCounters()

    def track_variant_matching(self, matched: int, unmatched: int) -> None:
        self.counters.variants_matched += matched
        self.counters.variants_unmatched += unmatched

    def track_llm_call(self, succeeded: bool) -> None:
        self.counters.llm_api_attempts += 1
        if succeeded:
            self.counters.llm_api_successes += 1
        else:
            self.counters.llm_api_failures += 1

    def track_contradiction_check(self, contradictions_found: int) -> None:
        self.counters.contradiction_checks += 1
        self.counters.contradictions_detected += contradictions_found

    def track_explanation_generation(self, used_fallback: bool) -> None:
        self.counters.explanation_generations += 1
        if used_fallback:
            self.counters.fallback_explanations_used += 1

    def track_metric_validation(self, valid: bool) -> None:
        self.counters.metric_validations += 1
        if not valid:
            self.counters.metric_validation_failures += 1

    def get_summary(self) -> Dict[str, float]:
        c = self.counters
        return {
            "variant_matching_rate": _rate(c.variants_matched, c.variants_matched + c.variants_unmatched),
            "llm_api_success_rate": _rate(c.llm_api_successes, c.llm_api_attempts),
            "contradiction_detection_rate": _rate(c.contradictions_detected, c.contradiction_checks),
            "fallback_explanation_usage_rate": _rate(c.fallback_explanations_used, c.explanation_generations),
            "metric_validation_failure_rate": _rate(c.metric_validation_failures, c.metric_validations),
            "total_explanations": c.explanation_generations,
        }

    def log_summary(self) -> None:
        logger.info("Pipeline metrics summary", extra={"summary": self.get_summary(), "counters": asdict(self.counters)})

    def reset(self) -> None:
        self.counters = PipelineCounters()
