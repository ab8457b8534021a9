"""
Tests for the deterministic fallback explanation.

Validates:
  - Phenotype code and description always appear in the summary
  - Every detected variant is cited
  - Clinical guidance follows the phenotype group
"""

import pytest

from app.services.llm.fallback import build_fallback_explanation
from app.services.pharmacogenomics.models import VariantRecord
from app.services.pharmacogenomics.reference_data import PHENOTYPE_DESCRIPTIONS
from app.services.quality.contradiction_detector import ContradictionDetector


class TestFallbackExplanation:
    """Test deterministic fallback text per phenotype group."""

    def test_summary_names_phenotype(self, cyp2d6_variants):
        """Test summary carries phenotype code and description"""
        explanation = build_fallback_explanation("codeine", "CYP2D6", "PM", cyp2d6_variants)

        assert "PM" in explanation.summary
        assert PHENOTYPE_DESCRIPTIONS["PM"] in explanation.summary

    def test_all_variants_cited(self, cyp2d6_variants):
        """Test every rsID and star allele appears in the text"""
        text = build_fallback_explanation("codeine", "CYP2D6", "PM", cyp2d6_variants).full_text()

        for variant in cyp2d6_variants:
            assert variant.rsid in text
            assert variant.star_allele in text

    def test_every_section_populated(self, cyp2d6_variants):
        """Test all four sections are non-empty"""
        explanation = build_fallback_explanation("codeine", "CYP2D6", "PM", cyp2d6_variants)
        assert all([
            explanation.summary,
            explanation.biological_mechanism,
            explanation.variant_interpretation,
            explanation.clinical_impact,
        ])

    def test_mechanism_mentions_functional_status(self, cyp2d6_variants):
        """Test mechanism reports each allele status"""
        explanation = build_fallback_explanation("codeine", "CYP2D6", "PM", cyp2d6_variants)
        assert "no_function" in explanation.biological_mechanism
        assert "decreased" in explanation.biological_mechanism

    @pytest.mark.parametrize("phenotype", ["PM", "IM"])
    def test_reduced_function_guidance(self, phenotype):
        """Test PM/IM -> dose reduction or alternative therapy"""
        impact = build_fallback_explanation("codeine", "CYP2D6", phenotype).clinical_impact
        assert "dose reduction" in impact
        assert "alternative therapy" in impact

    def test_normal_function_guidance(self):
        """Test NM -> standard dosing"""
        impact = build_fallback_explanation("clopidogrel", "CYP2C19", "NM").clinical_impact
        assert "Standard dosing" in impact

    @pytest.mark.parametrize("phenotype", ["RM", "URM"])
    def test_increased_function_guidance(self, phenotype):
        """Test RM/URM -> caution with higher doses"""
        impact = build_fallback_explanation("codeine", "CYP2D6", phenotype).clinical_impact
        assert "higher doses" in impact
        assert "alternative therapy" in impact

    def test_long_form_phenotype_normalized(self):
        """Test "Poor Metabolizer" label -> PM"""
        summary = build_fallback_explanation("codeine", "CYP2D6", "Poor Metabolizer").summary
        assert PHENOTYPE_DESCRIPTIONS["PM"] in summary

    def test_unknown_phenotype(self):
        """Test unrecognized phenotype -> uncertain response"""
        explanation = build_fallback_explanation("warfarin", "CYP2C9", "Indeterminate")
        assert "Unknown" in explanation.summary
        assert "uncertain" in explanation.clinical_impact

    def test_no_variants(self):
        """Test interpretation without cited variants"""
        explanation = build_fallback_explanation("warfarin", "CYP2C9", "IM")
        assert "No clinically significant CYP2C9 variants" in explanation.variant_interpretation

    def test_recommendation_and_evidence_quoted(self, cyp2d6_variants):
        """Test CPIC recommendation and evidence level quoted in impact"""
        impact = build_fallback_explanation(
            "codeine", "CYP2D6", "PM", cyp2d6_variants, recommendation="Avoid codeine use."
        ).clinical_impact
        assert "CPIC recommendation: Avoid codeine use." in impact
        assert "evidence level A" in impact

    def test_custom_descriptions(self):
        """Test caller-supplied phenotype descriptions"""
        descriptions = {"PM": "slow processor", "Unknown": "unclear"}
        summary = build_fallback_explanation(
            "codeine", "CYP2D6", "PM", phenotype_descriptions=descriptions
        ).summary
        assert "slow processor" in summary

    def test_star_allele_only_variant_cited(self):
        """Test variant without rsID is cited by star allele"""
        variant = VariantRecord(star_allele="*2A", gene="DPYD", functional_status="no_function")
        text = build_fallback_explanation("fluorouracil", "DPYD", "PM", [variant]).full_text()
        assert "*2A" in text


def _record(rsid, star, gene, status):
    return VariantRecord(rsid=rsid, star_allele=star, gene=gene, functional_status=status, evidence_level="A")


class TestFallbackConsistency:
    """Test the fallback never contradicts the evidence it was built from."""

    @pytest.mark.parametrize("drug, gene, phenotype, variants", [
        ("codeine", "CYP2D6", "PM", [
            _record("rs3892097", "*4", "CYP2D6", "no_function"),
            _record("rs1065852", "*10", "CYP2D6", "decreased"),
        ]),
        ("codeine", "CYP2D6", "IM", [_record("rs1065852", "*10", "CYP2D6", "decreased")]),
        ("clopidogrel", "CYP2C19", "NM", [_record("rs3758581", "*1", "CYP2C19", "normal")]),
        ("clopidogrel", "CYP2C19", "RM", [_record("rs12248560", "*17", "CYP2C19", "increased")]),
        ("clopidogrel", "CYP2C19", "URM", [_record("rs12248560", "*17", "CYP2C19", "increased")]),
    ])
    def test_no_contradictions_for_matching_evidence(self, drug, gene, phenotype, variants):
        """Test fallback for each phenotype passes the contradiction check"""
        explanation = build_fallback_explanation(drug, gene, phenotype, variants)
        report = ContradictionDetector().detect_contradictions(explanation, variants)
        assert report.has_contradictions is False, report.contradictions

    def test_increased_guidance_makes_no_decrease_claim(self):
        """Test URM clinical impact yields no decrease or eliminate claim"""
        variants = [_record("rs12248560", "*17", "CYP2C19", "increased")]
        impact = build_fallback_explanation("clopidogrel", "CYP2C19", "URM", variants).clinical_impact
        claims = ContradictionDetector().extract_biological_claims(impact)
        assert all(c.direction == "increase" for c in claims)
