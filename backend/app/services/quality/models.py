"""
Value objects produced by the quality-assurance services.

All of them are frozen: a metrics snapshot or a contradiction finding is
created once per analysis and never mutated afterwards.
"""

from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from app.services.pharmacogenomics.models import DetectionState

NOT_APPLICABLE = "N/A"

ClaimType = Literal["enzyme_activity", "drug_efficacy"]
EffectDirection = Literal["increase", "decrease", "eliminate"]
ContradictionType = Literal["enzyme_activity_mismatch", "internal_contradiction"]
ContradictionSeverity = Literal["high", "medium"]


class EvidenceDistribution(BaseModel):
    """Histogram of matched variants by CPIC evidence level."""
    model_config = ConfigDict(frozen=True)

    A: int = 0
    B: int = 0
    C: int = 0
    D: int = 0
    unknown: int = 0

    def total(self) -> int:
        return self.A + self.B + self.C + self.D + self.unknown


class QualityMetrics(BaseModel):
    """
    Snapshot of how much variant evidence an analysis used.

    Fields carry no range constraints on purpose: the snapshot reports the raw
    upstream counts and ``QualityMetricsEngine.validate_metrics`` flags any
    inconsistency instead of construction rejecting it.
    """
    model_config = ConfigDict(frozen=True)

    vcf_parsing_success: bool = True
    annotation_completeness: Union[float, Literal["N/A"]] = NOT_APPLICABLE
    variants_detected: int = 0
    genes_analyzed: int = 0
    total_vcf_variants: int = 0
    pgx_variants_identified: int = 0
    pgx_variants_matched: int = 0
    pgx_variants_unmatched: int = 0
    average_variant_quality: float = 0.0
    evidence_distribution: EvidenceDistribution = Field(default_factory=EvidenceDistribution)
    variants_by_gene: Dict[str, int] = Field(default_factory=dict)
    variants_by_drug: Dict[str, int] = Field(default_factory=dict)
    detection_state: DetectionState


class MetricValidationResult(BaseModel):
    """Outcome of re-checking the metric invariants."""
    model_config = ConfigDict(frozen=True)

    valid: bool
    errors: List[str] = Field(default_factory=list)


class BiologicalClaim(BaseModel):
    """An assertion pattern-matched out of generated text."""
    model_config = ConfigDict(frozen=True)

    type: ClaimType
    direction: EffectDirection
    subject: str = Field(..., description="Gene symbol, drug name, or 'enzyme' when unqualified")
    variant_mentioned: Optional[str] = Field(None, description="rsID or star allele near the assertion")
    claim: str = Field("", description="Sentence the claim was taken from")


class Contradiction(BaseModel):
    """An inconsistency between generated text and evidence, or within the text."""
    model_config = ConfigDict(frozen=True)

    type: ContradictionType
    severity: ContradictionSeverity
    affected_variant: str = Field(..., description="Variant identifier or claim subject")
    description: str = ""
    conflicting_statements: List[str] = Field(default_factory=list)


class ContradictionReport(BaseModel):
    """Result of one contradiction-detection pass."""
    model_config = ConfigDict(frozen=True)

    has_contradictions: bool
    contradictions: List[Contradiction] = Field(default_factory=list)
    claims_analyzed: int = 0


class CitationReport(BaseModel):
    """How completely an explanation cites the variants it was given."""
    model_config = ConfigDict(frozen=True)

    all_rsids_cited: bool
    all_star_alleles_cited: bool
    all_genes_cited: bool
    citation_completeness: float
    missing_citations: List[str] = Field(default_factory=list)
