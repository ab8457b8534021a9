from fastapi import APIRouter, Depends

from app.api.dependencies import get_orchestrator
from app.schemas.quality_schema import BatchExplanationRequest, BatchExplanationResponse
from app.services.llm.explanation_service import ExplanationOrchestrator
from app.services.llm.models import ExplanationRequest, GenerationResult

router = APIRouter()


@router.post("", response_model=GenerationResult)
async def create_explanation(
    request: ExplanationRequest,
    orchestrator: ExplanationOrchestrator = Depends(get_orchestrator),
):
    """
    Generate a four-section clinical explanation for one drug.

    Always returns an explanation; ``used_fallback`` tells whether it came
    from the model or from the deterministic template.
    """
    return await orchestrator.generate_explanation(request)


@router.post("/batch", response_model=BatchExplanationResponse)
async def create_explanations_batch(
    request: BatchExplanationRequest,
    orchestrator: ExplanationOrchestrator = Depends(get_orchestrator),
):
    """Generate explanations for several drugs concurrently, in request order."""
    results = await orchestrator.generate_batch(request.requests)
    return BatchExplanationResponse(
        results=results,
        fallback_count=sum(1 for r in results if r.used_fallback),
    )
