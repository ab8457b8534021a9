"""
Data models shared with the upstream variant-detection layer.

These are the read-only inputs of the quality-assurance services: the
variant records produced by VCF parsing and known-variant matching, and the
detection summary that classifies how matching went.
"""

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

EvidenceGrade = Literal["A", "B", "C", "D"]
FunctionalStatus = Literal["normal", "decreased", "increased", "no_function"]


class DetectionState(str, Enum):
    """How variant detection proceeded for one VCF."""
    NO_VARIANTS_IN_VCF = "no_variants_in_vcf"
    NO_PGX_VARIANTS_DETECTED = "no_pgx_variants_detected"
    PGX_VARIANTS_FOUND_NONE_MATCHED = "pgx_variants_found_none_matched"
    PGX_VARIANTS_FOUND_SOME_MATCHED = "pgx_variants_found_some_matched"
    PGX_VARIANTS_FOUND_ALL_MATCHED = "pgx_variants_found_all_matched"


# Completeness has no denominator in these states.
COMPLETENESS_NOT_APPLICABLE_STATES = frozenset({
    DetectionState.NO_VARIANTS_IN_VCF,
    DetectionState.NO_PGX_VARIANTS_DETECTED,
})


class VariantRecord(BaseModel):
    """A single variant as produced by upstream detection. Immutable."""
    model_config = ConfigDict(frozen=True)

    chrom: str = Field("", description="Chromosome identifier")
    pos: int = Field(0, description="Position on chromosome")
    rsid: Optional[str] = Field(None, description="dbSNP reference ID")
    star_allele: Optional[str] = Field(None, description="Star allele label (e.g., *4)")
    gene: Optional[str] = Field(None, description="Gene symbol (e.g., CYP2D6)")
    evidence_level: Optional[EvidenceGrade] = Field(None, description="CPIC evidence level A-D")
    functional_status: Optional[FunctionalStatus] = Field(None, description="Allele function")
    quality: float = Field(default=0.0, description="Variant quality score")

    @property
    def identifier(self) -> Optional[str]:
        """rsID when known, else the star allele."""
        return self.rsid or self.star_allele


class DetectionResult(BaseModel):
    """Summary emitted by the variant detector for one analysis."""
    model_config = ConfigDict(frozen=True)

    matched: List[VariantRecord] = Field(default_factory=list)
    unmatched: List[VariantRecord] = Field(default_factory=list)
    total_vcf_variants: int = Field(0, description="Variants present in the VCF")
    pgx_variants_found: int = Field(0, description="Variants located in pharmacogenes")
    matched_count: int = Field(0, description="PGx variants matched to known variants")
    state: DetectionState
