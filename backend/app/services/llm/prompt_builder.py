from typing import Sequence

from app.services.pharmacogenomics.models import VariantRecord


def _variant_citation(variant: VariantRecord) -> str:
    parts = []
    if variant.rsid:
        parts.append(f"rsID: {variant.rsid}")
    if variant.star_allele:
        parts.append(f"STAR allele: {variant.star_allele}")
    if variant.gene:
        parts.append(f"Gene: {variant.gene}")
    if variant.evidence_level:
        parts.append(f"Evidence Level: {variant.evidence_level}")
    if variant.functional_status:
        parts.append(f"Functional Status: {variant.functional_status}")
    return ", ".join(parts)


def build_prompt(
    drug: str,
    gene: str,
    diplotype: str,
    phenotype: str,
    variants: Sequence[VariantRecord],
    recommendation: str,
) -> str:
    """
    Constructs a prompt for the LLM to generate a four-section clinical explanation.

    Args:
        drug: The drug name.
        gene: The gene symbol.
        diplotype: The detected diplotype.
        phenotype: The metabolizer status.
        variants: Matched variants to be cited.
        recommendation: The clinical recommendation text.

    Returns:
        A formatted prompt string whose requested headers match the response parser.
    """
    citations = "\n  - ".join(_variant_citation(v) for v in variants) or "None"
    variant_list = ", ".join(
        f"{v.rsid or 'unknown'} ({v.star_allele or 'unknown'})" for v in variants
    ) or "None"
    statuses = ", ".join(dict.fromkeys(v.functional_status for v in variants if v.functional_status))

    return f"""You are a clinical pharmacogenomics expert. Generate a clinical pharmacogenomics explanation for the following case:

**Drug:** {drug}
**Gene:** {gene}
**Diplotype:** {diplotype}
**Phenotype:** {phenotype}
**Detected Variants:**
  - {citations}
**Clinical Recommendation:** {recommendation}

CRITICAL REQUIREMENTS:
1. Cite ALL detected variants by their rsID and/or STAR allele.
2. Do NOT contradict yourself about enzyme activity or drug efficacy.
3. Functional status claims must match the data provided.
4. Align with CPIC guidelines and the provided phenotype.

Respond with exactly these four sections, each introduced by its bold header:

**Summary**
2-3 sentences on the finding. Mention the {phenotype} phenotype and the key variants.

**Biological Mechanism**
3-4 sentences on how {gene} affects {drug} metabolism or transport, and how the detected variants alter it.

**Variant Interpretation**
2-3 sentences citing each variant ({variant_list}) and its functional impact ({statuses or 'not reported'}).

**Clinical Impact**
2-3 sentences on expected drug response and why the recommendation is appropriate."""
