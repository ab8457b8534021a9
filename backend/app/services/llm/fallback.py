"""
Deterministic fallback explanation, built from structured inputs only.

Used when generation fails, returns nothing usable, or contradicts the
evidence. Every variant identifier is cited verbatim so the fallback passes
the same citation audit as generated text.
"""

from typing import List, Mapping, Optional, Sequence

from app.services.llm.models import Explanation
from app.services.pharmacogenomics.models import VariantRecord
from app.services.pharmacogenomics.reference_data import (
    INCREASED_FUNCTION_PHENOTYPES,
    NORMAL_FUNCTION_PHENOTYPES,
    PHENOTYPE_DESCRIPTIONS,
    REDUCED_FUNCTION_PHENOTYPES,
    normalize_phenotype,
)


def _variant_citations(variants: Sequence[VariantRecord]) -> str:
    citations = []
    for variant in variants:
        parts = [p for p in (variant.rsid, variant.star_allele) if p]
        if not parts:
            continue
        if variant.gene:
            parts.append(f"in {variant.gene}")
        citations.append(" ".join(parts))
    return ", ".join(citations)


def _distinct_statuses(variants: Sequence[VariantRecord]) -> List[str]:
    return list(dict.fromkeys(v.functional_status for v in variants if v.functional_status))


def build_fallback_explanation(
    drug: str,
    gene: str,
    phenotype: str,
    variants: Sequence[VariantRecord] = (),
    recommendation: str = "",
    phenotype_descriptions: Optional[Mapping[str, str]] = None,
) -> Explanation:
    """
    Construct all four sections without calling a model.

    Args:
        drug: Drug name.
        gene: Primary gene symbol.
        phenotype: Phenotype code or long-form label.
        variants: Matched variants; each rsID/star allele is cited.
        recommendation: CPIC recommendation text, quoted in the clinical impact.
        phenotype_descriptions: Phenotype → description table from the rule layer.
    """
    descriptions = phenotype_descriptions or PHENOTYPE_DESCRIPTIONS
    code = normalize_phenotype(phenotype)
    description = descriptions.get(code, descriptions.get("Unknown", "metabolizer with uncertain enzyme activity"))

    citations = _variant_citations(variants)
    statuses = _distinct_statuses(variants)
    is_normal = code in NORMAL_FUNCTION_PHENOTYPES
    is_reduced = code in REDUCED_FUNCTION_PHENOTYPES
    is_increased = code in INCREASED_FUNCTION_PHENOTYPES

    # -- Summary ----------------------------------------------------------
    summary = f"The patient is a {code} ({description}) for {gene}, which affects {drug} therapy."
    if citations:
        summary += f" Detected variants include {citations}."
    if is_normal:
        summary += " Standard dosing is appropriate as normal enzyme function is expected."
    else:
        summary += f" Genetic variation in {gene} alters how {drug} is handled and may require dose adjustment or alternative therapy."

    # -- Biological mechanism ---------------------------------------------
    mechanism = (
        f"{gene} encodes a protein involved in the metabolism or transport of {drug}, "
        f"so its activity shapes drug exposure and response."
    )
    if is_normal:
        mechanism += " The patient is expected to have typical activity and drug handling."
    else:
        mechanism += f" The {code} phenotype indicates metabolic capacity that differs from normal metabolizers."
    if citations and statuses:
        mechanism += (
            f" The detected variants ({citations}) are annotated as {', '.join(statuses)}, "
            f"contributing to the observed phenotype."
        )

    # -- Variant interpretation -------------------------------------------
    if citations:
        interpretation = (
            f"The following variants were detected: {citations}. "
            f"These variants contribute to the {code} phenotype."
        )
        if statuses:
            interpretation += f" Reported allele status: {', '.join(statuses)}."
    else:
        interpretation = (
            f"No clinically significant {gene} variants were cited for this analysis; "
            f"the {code} phenotype is reported as provided by the genotype caller."
        )

    # -- Clinical impact --------------------------------------------------
    if is_normal:
        impact = (
            f"The {code} phenotype indicates a standard response to {drug} is expected. "
            f"Standard dosing is recommended without pharmacogenomic adjustment."
        )
    elif is_reduced:
        impact = (
            f"The {code} phenotype has significant implications for {drug} therapy. "
            f"Diminished {gene} capacity may alter drug exposure and raise the risk of adverse effects or treatment failure. "
            f"A dose reduction or an alternative therapy should be considered."
        )
    elif is_increased:
        impact = (
            f"The {code} phenotype has significant implications for {drug} therapy. "
            f"Accelerated {gene} capacity may shorten drug exposure or produce excess active metabolite. "
            f"Use caution with higher doses and consider an alternative therapy."
        )
    else:
        impact = (
            f"The {gene} phenotype could not be fully determined, so the {drug} response is uncertain. "
            f"Follow CPIC guidance and clinical judgement when selecting a dose."
        )
    if recommendation:
        impact += f" CPIC recommendation: {recommendation}"
    evidence = next((v.evidence_level for v in variants if v.evidence_level), None)
    if evidence:
        impact += f" These recommendations are supported by CPIC evidence level {evidence} guidelines."

    return Explanation(
        summary=summary,
        biological_mechanism=mechanism,
        variant_interpretation=interpretation,
        clinical_impact=impact,
    )
