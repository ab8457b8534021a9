"""
Pharmacogenomics Inputs

Variant records and detection summaries handed to the quality-assurance
services, plus the CPIC reference tables they consult.
"""

from .models import (
    DetectionResult,
    DetectionState,
    VariantRecord,
)
from .reference_data import (
    GENE_DRUG_MAP,
    PHENOTYPE_DESCRIPTIONS,
    normalize_phenotype,
)

__all__ = [
    # Models
    'DetectionResult',
    'DetectionState',
    'VariantRecord',

    # Reference data
    'GENE_DRUG_MAP',
    'PHENOTYPE_DESCRIPTIONS',
    'normalize_phenotype',
]
