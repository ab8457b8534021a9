"""
Request/response models for clinical explanation generation.
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field

from app.services.pharmacogenomics.models import VariantRecord
from app.services.quality.models import Contradiction

SECTION_FIELDS = ("summary", "biological_mechanism", "variant_interpretation", "clinical_impact")


class Explanation(BaseModel):
    """Four-section clinical explanation. Immutable once returned."""
    model_config = ConfigDict(frozen=True)

    summary: str = ""
    biological_mechanism: str = ""
    variant_interpretation: str = ""
    clinical_impact: str = ""

    def full_text(self) -> str:
        """All non-empty sections joined into one text block."""
        return " ".join(
            section for section in (getattr(self, name) for name in SECTION_FIELDS) if section
        )


class ExplanationRequest(BaseModel):
    """Structured context for one drug's explanation."""
    model_config = ConfigDict(frozen=True)

    drug: str = Field(..., description="Drug name (e.g., codeine)")
    gene: str = Field(..., description="Primary gene symbol (e.g., CYP2D6)")
    diplotype: str = Field("Unknown", description="Diplotype (e.g., *1/*4)")
    phenotype: str = Field("Unknown", description="Phenotype code (PM, IM, NM, RM, URM)")
    variants: List[VariantRecord] = Field(default_factory=list, description="Matched variants for the gene")
    recommendation: str = Field("", description="CPIC recommendation text")


class GenerationResult(BaseModel):
    """An explanation plus the metadata describing how it was obtained."""
    model_config = ConfigDict(frozen=True)

    explanation: Explanation
    used_fallback: bool
    succeeded: bool
    attempts: int
    provider: str
    contradictions: List[Contradiction] = Field(default_factory=list)
