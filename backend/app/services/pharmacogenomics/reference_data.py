"""
Reference tables consumed by the quality-assurance services.

The rule layer owns the authoritative versions; these defaults mirror the
six CPIC gene-drug pairs the analysis pipeline supports.
"""

from typing import Dict, List

# Gene → drugs whose response the gene affects
GENE_DRUG_MAP: Dict[str, List[str]] = {
    "CYP2D6":  ["CODEINE"],
    "CYP2C19": ["CLOPIDOGREL"],
    "CYP2C9":  ["WARFARIN"],
    "SLCO1B1": ["SIMVASTATIN"],
    "TPMT":    ["AZATHIOPRINE"],
    "DPYD":    ["FLUOROURACIL"],
}

# Phenotype → plain-language description used in fallback prose
PHENOTYPE_DESCRIPTIONS: Dict[str, str] = {
    "PM": "poor metabolizer with significantly reduced or absent enzyme activity",
    "IM": "intermediate metabolizer with reduced enzyme activity",
    "NM": "normal metabolizer with typical enzyme activity",
    "RM": "rapid metabolizer with increased enzyme activity",
    "URM": "ultra-rapid metabolizer with significantly increased enzyme activity",
    "Unknown": "metabolizer with uncertain enzyme activity",
}

REDUCED_FUNCTION_PHENOTYPES = frozenset({"PM", "IM"})
NORMAL_FUNCTION_PHENOTYPES = frozenset({"NM"})
INCREASED_FUNCTION_PHENOTYPES = frozenset({"RM", "URM", "UM"})

# Long-form labels emitted by some upstream callers
_PHENOTYPE_ALIASES: Dict[str, str] = {
    "POOR METABOLIZER": "PM",
    "INTERMEDIATE METABOLIZER": "IM",
    "NORMAL METABOLIZER": "NM",
    "RAPID METABOLIZER": "RM",
    "ULTRARAPID METABOLIZER": "URM",
    "ULTRA-RAPID METABOLIZER": "URM",
    "UM": "URM",
}


def normalize_phenotype(phenotype: str) -> str:
    """Map a phenotype label onto the short codes used by the tables above."""
    if not phenotype:
        return "Unknown"
    key = phenotype.strip()
    if key in PHENOTYPE_DESCRIPTIONS:
        return key
    upper = key.upper()
    if upper in _PHENOTYPE_ALIASES:
        return _PHENOTYPE_ALIASES[upper]
    if upper in PHENOTYPE_DESCRIPTIONS:
        return upper
    return "Unknown"
