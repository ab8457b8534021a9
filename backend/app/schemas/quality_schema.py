from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from app.services.llm.models import ExplanationRequest, GenerationResult
from app.services.pharmacogenomics.models import DetectionState, VariantRecord
from app.services.quality.models import (
    CitationReport,
    ContradictionReport,
    MetricValidationResult,
    QualityMetrics,
)


class MetricsRequest(BaseModel):
    all_variants: List[VariantRecord] = Field(default_factory=list, description="Every variant parsed from the VCF")
    pgx_variants: List[VariantRecord] = Field(default_factory=list, description="Variants located in pharmacogenes")
    matched_variants: List[VariantRecord] = Field(default_factory=list)
    unmatched_variants: List[VariantRecord] = Field(default_factory=list)
    detection_state: DetectionState
    gene_drug_mapping: Optional[Dict[str, List[str]]] = Field(
        None, description="Gene → drugs table; the built-in CPIC map when omitted"
    )


class MetricsResponse(BaseModel):
    metrics: QualityMetrics
    validation: MetricValidationResult


class ContradictionRequest(BaseModel):
    explanation: str = Field(..., description="Explanation text to audit")
    variants: List[VariantRecord] = Field(default_factory=list)
    drug_names: Optional[List[str]] = Field(None, description="Extra drug names to recognise in the text")


class ContradictionResponse(BaseModel):
    report: ContradictionReport
    citations: CitationReport


class BatchExplanationRequest(BaseModel):
    requests: List[ExplanationRequest] = Field(..., description="One entry per drug")


class BatchExplanationResponse(BaseModel):
    results: List[GenerationResult]
    fallback_count: int = 0


class PipelineSummaryResponse(BaseModel):
    summary: Dict[str, float]
