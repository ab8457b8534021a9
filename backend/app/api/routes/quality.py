from fastapi import APIRouter, Depends

from app.schemas.quality_schema import (
    ContradictionRequest,
    ContradictionResponse,
    MetricsRequest,
    MetricsResponse,
    PipelineSummaryResponse,
)
from app.api.dependencies import get_metrics_tracker
from app.services.quality.contradiction_detector import ContradictionDetector
from app.services.quality.metrics_engine import QualityMetricsEngine
from app.services.quality.metrics_tracker import MetricsTracker

router = APIRouter()


@router.post("/metrics", response_model=MetricsResponse)
async def calculate_quality_metrics(
    request: MetricsRequest,
    tracker: MetricsTracker = Depends(get_metrics_tracker),
):
    """
    Compute the quality metrics snapshot for one analysis and re-check it.

    Invariant violations are reported in ``validation``; they never fail the request.
    """
    metrics = QualityMetricsEngine.calculate_metrics(
        request.all_variants,
        request.pgx_variants,
        request.matched_variants,
        request.unmatched_variants,
        request.detection_state,
        request.gene_drug_mapping,
    )
    validation = QualityMetricsEngine.validate_metrics(metrics)

    tracker.track_variant_matching(metrics.pgx_variants_matched, metrics.pgx_variants_unmatched)
    tracker.track_metric_validation(validation.valid)

    return MetricsResponse(metrics=metrics, validation=validation)


@router.post("/contradictions", response_model=ContradictionResponse)
async def check_contradictions(
    request: ContradictionRequest,
    tracker: MetricsTracker = Depends(get_metrics_tracker),
):
    """Audit explanation text against the variant evidence it was built from."""
    detector = ContradictionDetector(drug_names=request.drug_names)
    report = detector.detect_contradictions(request.explanation, request.variants)
    citations = detector.validate_citations(request.explanation, request.variants)

    tracker.track_contradiction_check(len(report.contradictions))

    return ContradictionResponse(report=report, citations=citations)


@router.get("/summary", response_model=PipelineSummaryResponse)
async def get_pipeline_summary(tracker: MetricsTracker = Depends(get_metrics_tracker)):
    """Rates accumulated by this process since start-up."""
    return PipelineSummaryResponse(summary=tracker.get_summary())
