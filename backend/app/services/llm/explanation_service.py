"""
Explanation Orchestrator — bounded, fail-safe clinical explanation generation.

Per request: Attempting(n) → Parsed on non-empty text; empty text or a
failed call → backoff → Attempting(n+1); after ``max_retries`` attempts →
FallbackUsed. The caller always receives a ``GenerationResult``; only
cancellation of the caller's task propagates.
"""

import asyncio
import logging
import time
from typing import List, Mapping, Optional, Protocol, Sequence

import backoff
import httpx

from app.core.exceptions import GenerationError
from app.services.llm.config import GenerationSettings
from app.services.llm.fallback import build_fallback_explanation
from app.services.llm.groq_client import GroqClient
from app.services.llm.models import Explanation, ExplanationRequest, GenerationResult
from app.services.llm.ollama_client import OllamaClient
from app.services.llm.prompt_builder import build_prompt
from app.services.llm.response_parser import parse_explanation
from app.services.quality.contradiction_detector import ContradictionDetector
from app.services.quality.metrics_tracker import MetricsTracker

logger = logging.getLogger(__name__)


class TextClient(Protocol):
    async def generate_text(self, prompt: str) -> Optional[str]:
        ...


def create_text_client(
    settings: GenerationSettings,
    http_client: Optional[httpx.AsyncClient] = None,
) -> TextClient:
    """Factory for the provider selected in ``settings``."""
    if settings.provider == "ollama":
        return OllamaClient(settings, http_client=http_client)
    return GroqClient(settings, http_client=http_client)


class ExplanationOrchestrator:
    """
    Drives the external generation call with retry, backoff and fallback.

    Usage::

        orchestrator = ExplanationOrchestrator(GenerationSettings.from_env())
        result = await orchestrator.generate_explanation(request)
        results = await orchestrator.generate_batch([request_a, request_b])
    """

    def __init__(
        self,
        settings: GenerationSettings,
        client: Optional[TextClient] = None,
        detector: Optional[ContradictionDetector] = None,
        tracker: Optional[MetricsTracker] = None,
        phenotype_descriptions: Optional[Mapping[str, str]] = None,
    ):
        if client is None:
            settings.require_credentials()
            client = create_text_client(settings)
        self.settings = settings
        self.client = client
        self.detector = detector or ContradictionDetector()
        self.tracker = tracker
        self.phenotype_descriptions = phenotype_descriptions
        logger.info(
            "Explanation orchestrator initialized",
            extra={"provider": settings.provider, "max_retries": settings.max_retries},
        )

    # -- Public API --------------------------------------------------------

    async def generate_explanation(self, request: ExplanationRequest) -> GenerationResult:
        """Generate one explanation. Never raises except on cancellation."""
        logger.info(
            f"Generating LLM explanation for {request.drug}-{request.gene}",
            extra={"provider": self.settings.provider, "variant_count": len(request.variants)},
        )
        start_time = time.time()
        attempts = 0

        async def attempt_once() -> str:
            nonlocal attempts
            attempts += 1
            content = await self.client.generate_text(prompt)
            if not content or not content.strip():
                raise GenerationError(
                    "LLM returned an empty response",
                    provider=self.settings.provider,
                    attempt=attempts,
                )
            return content

        retrying_call = backoff.on_exception(
            backoff.expo,
            Exception,
            max_tries=self.settings.max_retries,
            jitter=None,
            on_backoff=lambda details: self._log_backoff(request, details),
            logger=None,
            factor=self.settings.base_delay_seconds,
            base=2,
        )(attempt_once)

        try:
            prompt = build_prompt(
                request.drug,
                request.gene,
                request.diplotype,
                request.phenotype,
                request.variants,
                request.recommendation,
            )
            content = await retrying_call()
        except Exception as e:
            logger.warning(
                "All LLM retry attempts exhausted - using fallback explanation",
                extra={
                    "drug": request.drug,
                    "gene": request.gene,
                    "phenotype": request.phenotype,
                    "total_attempts": attempts,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            return self._finish(
                GenerationResult(
                    explanation=self.build_fallback(request),
                    used_fallback=True,
                    succeeded=False,
                    attempts=attempts,
                    provider=self.settings.provider,
                ),
                start_time,
            )

        logger.info(
            "LLM explanation generated successfully",
            extra={
                "drug": request.drug,
                "gene": request.gene,
                "response_length": len(content),
                "attempt": attempts,
            },
        )
        result = GenerationResult(
            explanation=parse_explanation(content),
            used_fallback=False,
            succeeded=True,
            attempts=attempts,
            provider=self.settings.provider,
        )
        if self.settings.self_check:
            result = self._self_check(request, result)
        return self._finish(result, start_time)

    async def generate_batch(self, requests: Sequence[ExplanationRequest]) -> List[GenerationResult]:
        """
        Fan out one generation per request and collect results in input order.

        Each item degrades independently; a fallback for one drug does not
        affect its siblings.
        """
        results = await asyncio.gather(*(self.generate_explanation(r) for r in requests))
        return list(results)

    def build_fallback(self, request: ExplanationRequest) -> Explanation:
        return build_fallback_explanation(
            request.drug,
            request.gene,
            request.phenotype,
            request.variants,
            request.recommendation,
            self.phenotype_descriptions,
        )

    async def aclose(self) -> None:
        close = getattr(self.client, "aclose", None)
        if close is not None:
            await close()

    # -- Internals ---------------------------------------------------------

    def _self_check(self, request: ExplanationRequest, result: GenerationResult) -> GenerationResult:
        try:
            report = self.detector.detect_contradictions(result.explanation, request.variants)
        except Exception as e:
            logger.error(
                "Contradiction detection failed - using original explanation",
                extra={"drug": request.drug, "gene": request.gene, "error": str(e)},
            )
            return result

        if self.tracker is not None:
            self.tracker.track_contradiction_check(len(report.contradictions))
        if not report.has_contradictions:
            return result

        logger.warning(
            f"Contradictions detected in LLM explanation for {request.drug}: "
            f"{len(report.contradictions)} issues - using fallback explanation",
            extra={"drug": request.drug, "gene": request.gene},
        )
        return result.model_copy(update={
            "explanation": self.build_fallback(request),
            "used_fallback": True,
            "contradictions": list(report.contradictions),
        })

    def _log_backoff(self, request: ExplanationRequest, details: dict) -> None:
        exc = details.get("exception")
        logger.error(
            f"LLM generation failed (attempt {details['tries']}/{self.settings.max_retries})",
            extra={
                "drug": request.drug,
                "gene": request.gene,
                "error": str(exc),
                "error_type": type(exc).__name__,
                "will_retry": True,
            },
        )
        logger.info(
            f"Retrying LLM API call after {details['wait']:.2f}s delay",
            extra={"attempt": details["tries"], "delay_seconds": details["wait"]},
        )

    def _finish(self, result: GenerationResult, start_time: float) -> GenerationResult:
        if self.tracker is not None:
            self.tracker.track_llm_call(result.succeeded)
            self.tracker.track_explanation_generation(result.used_fallback)
        logger.info(
            f"LLM generation time: {time.time() - start_time:.2f} seconds",
            extra={
                "used_fallback": result.used_fallback,
                "succeeded": result.succeeded,
                "attempts": result.attempts,
            },
        )
        return result
