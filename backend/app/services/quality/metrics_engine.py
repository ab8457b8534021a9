"""
Quality Metrics Engine — derives and cross-validates analysis completeness.

Turns the raw counts of a variant-detection pass into a ``QualityMetrics``
snapshot and re-checks its invariants independently of the calculation.

Rules:
  - Metrics never block the pipeline; a report must always be produced
  - Each metric degrades to its own safe default on internal failure
  - Every invariant violation is logged with all operands
  - Completeness is "N/A" (undefined), not 0, when there was nothing to match
"""

import logging
import math
from typing import Dict, List, Mapping, Optional, Sequence, Union

from app.services.pharmacogenomics.models import (
    COMPLETENESS_NOT_APPLICABLE_STATES,
    DetectionResult,
    DetectionState,
    VariantRecord,
)
from app.services.pharmacogenomics.reference_data import GENE_DRUG_MAP
from .models import (
    NOT_APPLICABLE,
    EvidenceDistribution,
    MetricValidationResult,
    QualityMetrics,
)

logger = logging.getLogger(__name__)

QUALITY_MIN = 0.0
QUALITY_MAX = 100.0
COMPLETENESS_TOLERANCE = 0.001

Completeness = Union[float, str]


class QualityMetricsEngine:
    """
    Stateless metric calculations.

    Usage::

        metrics = QualityMetricsEngine.calculate_metrics(
            all_variants, pgx_variants, matched, unmatched, state, GENE_DRUG_MAP
        )
        report = QualityMetricsEngine.validate_metrics(metrics)
    """

    # -- Individual metrics ------------------------------------------------

    @staticmethod
    def calculate_annotation_completeness(
        pgx_variant_count: int,
        matched_count: int,
        state: DetectionState,
    ) -> Completeness:
        """Fraction of identified PGx variants that matched a known variant."""
        if state in COMPLETENESS_NOT_APPLICABLE_STATES:
            return NOT_APPLICABLE
        if pgx_variant_count == 0:
            return 0.0
        return matched_count / pgx_variant_count

    @staticmethod
    def calculate_average_quality(variants: Sequence[VariantRecord]) -> float:
        """Mean variant quality, clamped to [0, 100]."""
        if not variants:
            return 0.0

        average = sum(v.quality for v in variants) / len(variants)
        if not math.isfinite(average):
            logger.warning(
                "Average quality is not a finite number - using safe default",
                extra={"original": average, "safe_default": 0.0},
            )
            return 0.0
        if average < QUALITY_MIN or average > QUALITY_MAX:
            clamped = max(QUALITY_MIN, min(QUALITY_MAX, average))
            logger.warning(
                "Average quality out of valid range - clamping to [0, 100]",
                extra={"original": average, "clamped": clamped},
            )
            return clamped
        return average

    @staticmethod
    def calculate_evidence_distribution(
        variants: Sequence[VariantRecord],
    ) -> EvidenceDistribution:
        counts = {"A": 0, "B": 0, "C": 0, "D": 0, "unknown": 0}
        for variant in variants:
            counts[variant.evidence_level or "unknown"] += 1
        return EvidenceDistribution(**counts)

    @staticmethod
    def calculate_variants_by_gene(variants: Sequence[VariantRecord]) -> Dict[str, int]:
        by_gene: Dict[str, int] = {}
        for variant in variants:
            if variant.gene:
                by_gene[variant.gene] = by_gene.get(variant.gene, 0) + 1
        return by_gene

    @staticmethod
    def calculate_variants_by_drug(
        variants: Sequence[VariantRecord],
        gene_drug_mapping: Mapping[str, Sequence[str]],
    ) -> Dict[str, int]:
        """
        Attribute each matched variant to every drug its gene affects.

        A variant in a gene tied to three drugs increments all three counters.
        """
        by_drug: Dict[str, int] = {}
        for variant in variants:
            if not variant.gene:
                continue
            for drug in gene_drug_mapping.get(variant.gene, ()):
                by_drug[drug] = by_drug.get(drug, 0) + 1
        return by_drug

    # -- Orchestration -----------------------------------------------------

    @classmethod
    def calculate_metrics(
        cls,
        all_variants: Sequence[VariantRecord],
        pgx_variants: Sequence[VariantRecord],
        matched_variants: Sequence[VariantRecord],
        unmatched_variants: Sequence[VariantRecord],
        detection_state: DetectionState,
        gene_drug_mapping: Optional[Mapping[str, Sequence[str]]] = None,
    ) -> QualityMetrics:
        """
        Build the metrics snapshot for one analysis.

        A count mismatch (matched + unmatched != identified) is logged but the
        raw unmatched count is still reported; ``validate_metrics`` flags it.
        """
        return cls._assemble_metrics(
            all_variants,
            len(all_variants),
            len(pgx_variants),
            matched_variants,
            unmatched_variants,
            detection_state,
            gene_drug_mapping,
        )

    @classmethod
    def from_detection_result(
        cls,
        detection: DetectionResult,
        all_variants: Sequence[VariantRecord],
        gene_drug_mapping: Optional[Mapping[str, Sequence[str]]] = None,
    ) -> QualityMetrics:
        """
        Compute metrics straight from a detector summary.

        The detector's own counts are reported as-is: ``pgx_variants_found``
        is the identified count, ``total_vcf_variants`` the total and
        ``matched_count`` the detected count. Disagreement with the variant
        lists is logged here and surfaces as invariant violations.
        """
        matched = len(detection.matched)
        listed = matched + len(detection.unmatched)

        if detection.pgx_variants_found != listed or detection.matched_count != matched:
            logger.error(
                "Detection summary counts disagree with its variant lists",
                extra={
                    "pgx_variants_found": detection.pgx_variants_found,
                    "listed_pgx_variants": listed,
                    "matched_count": detection.matched_count,
                    "listed_matched": matched,
                },
            )
        if detection.total_vcf_variants != len(all_variants):
            logger.warning(
                "Detection summary total differs from supplied variants; reporting the summary total",
                extra={"total_vcf_variants": detection.total_vcf_variants, "supplied": len(all_variants)},
            )

        return cls._assemble_metrics(
            all_variants,
            detection.total_vcf_variants,
            detection.pgx_variants_found,
            detection.matched,
            detection.unmatched,
            detection.state,
            gene_drug_mapping,
            variants_detected=detection.matched_count,
        )

    @classmethod
    def _assemble_metrics(
        cls,
        quality_variants: Sequence[VariantRecord],
        total_vcf_variants: int,
        identified: int,
        matched_variants: Sequence[VariantRecord],
        unmatched_variants: Sequence[VariantRecord],
        detection_state: DetectionState,
        gene_drug_mapping: Optional[Mapping[str, Sequence[str]]],
        variants_detected: Optional[int] = None,
    ) -> QualityMetrics:
        if gene_drug_mapping is None:
            gene_drug_mapping = GENE_DRUG_MAP

        matched = len(matched_variants)
        unmatched = len(unmatched_variants)

        if matched + unmatched != identified:
            safe_unmatched = max(0, identified - matched)
            logger.error(
                "Metric invariant violation detected: matched + unmatched != identified",
                extra={
                    "matched": matched,
                    "unmatched": unmatched,
                    "identified": identified,
                    "sum": matched + unmatched,
                },
            )
            logger.warning(
                "Safe unmatched count computed for diagnostics; raw count is reported",
                extra={"original": unmatched, "safe": safe_unmatched},
            )

        try:
            completeness = cls.calculate_annotation_completeness(identified, matched, detection_state)
        except Exception as e:
            logger.error(
                "Annotation completeness calculation failed - using safe default",
                extra={"error": str(e), "safe_default": NOT_APPLICABLE},
            )
            completeness = NOT_APPLICABLE

        try:
            average_quality = cls.calculate_average_quality(quality_variants)
        except Exception as e:
            logger.error(
                "Average quality calculation failed - using safe default",
                extra={"error": str(e), "safe_default": 0.0},
            )
            average_quality = 0.0

        try:
            evidence = cls.calculate_evidence_distribution(matched_variants)
        except Exception as e:
            logger.error(
                "Evidence distribution calculation failed - using safe default",
                extra={"error": str(e), "safe_default": "empty histogram"},
            )
            evidence = EvidenceDistribution()

        try:
            by_gene = cls.calculate_variants_by_gene(matched_variants)
        except Exception as e:
            logger.error(
                "Variants by gene calculation failed - using safe default",
                extra={"error": str(e), "safe_default": "{}"},
            )
            by_gene = {}

        try:
            by_drug = cls.calculate_variants_by_drug(matched_variants, gene_drug_mapping)
        except Exception as e:
            logger.error(
                "Variants by drug calculation failed - using safe default",
                extra={"error": str(e), "safe_default": "{}"},
            )
            by_drug = {}

        metrics = QualityMetrics(
            vcf_parsing_success=True,
            annotation_completeness=completeness,
            variants_detected=matched if variants_detected is None else variants_detected,
            genes_analyzed=len(by_gene),
            total_vcf_variants=total_vcf_variants,
            pgx_variants_identified=identified,
            pgx_variants_matched=matched,
            pgx_variants_unmatched=unmatched,
            average_variant_quality=average_quality,
            evidence_distribution=evidence,
            variants_by_gene=by_gene,
            variants_by_drug=by_drug,
            detection_state=detection_state,
        )

        validation = cls.validate_metrics(metrics)
        if not validation.valid:
            logger.warning(
                "Metrics validation failed after calculation; analysis will continue",
                extra={"error_count": len(validation.errors), "errors": validation.errors},
            )

        return metrics

    # -- Validation --------------------------------------------------------

    @staticmethod
    def validate_metrics(metrics: QualityMetrics) -> MetricValidationResult:
        """
        Re-check the seven metric invariants.

        Never raises. The result is for observability only and does not
        reject the analysis.
        """
        errors: List[str] = []
        matched = metrics.pgx_variants_matched
        unmatched = metrics.pgx_variants_unmatched
        identified = metrics.pgx_variants_identified

        # 1. matched + unmatched == identified
        if matched + unmatched != identified:
            errors.append(
                f"Matched ({matched}) + Unmatched ({unmatched}) != Total PGx ({identified})"
            )
            logger.error(
                "Metric invariant violation: matched + unmatched != total",
                extra={"matched": matched, "unmatched": unmatched, "total": identified},
            )

        # 2. PGx variants cannot exceed all variants
        if identified > metrics.total_vcf_variants:
            errors.append(
                f"PGx variants ({identified}) > Total variants ({metrics.total_vcf_variants})"
            )
            logger.error(
                "Metric invariant violation: PGx > total variants",
                extra={"pgx_variants": identified, "total_variants": metrics.total_vcf_variants},
            )

        # 3. Non-negative counts
        if min(metrics.total_vcf_variants, identified, matched, unmatched) < 0:
            errors.append("Negative variant counts detected")
            logger.error(
                "Metric invariant violation: negative counts",
                extra={
                    "total": metrics.total_vcf_variants,
                    "pgx_identified": identified,
                    "matched": matched,
                    "unmatched": unmatched,
                },
            )

        # 4. Quality in range
        quality = metrics.average_variant_quality
        if not math.isfinite(quality) or quality < QUALITY_MIN or quality > QUALITY_MAX:
            errors.append(f"Average quality ({quality}) out of range [0, 100]")
            logger.error(
                "Metric invariant violation: quality out of range",
                extra={"average_quality": quality},
            )

        # 5. Evidence histogram covers every matched variant exactly once
        evidence_sum = metrics.evidence_distribution.total()
        if evidence_sum != matched:
            errors.append(
                f"Evidence distribution sum ({evidence_sum}) != Matched variants ({matched})"
            )
            logger.error(
                "Metric invariant violation: evidence distribution mismatch",
                extra={
                    "evidence_sum": evidence_sum,
                    "matched": matched,
                    "distribution": metrics.evidence_distribution.model_dump(),
                },
            )

        # 6. Completeness formula (only when numeric)
        completeness = metrics.annotation_completeness
        if completeness != NOT_APPLICABLE:
            expected = matched / identified if identified > 0 else 0.0
            if abs(completeness - expected) > COMPLETENESS_TOLERANCE:
                errors.append(
                    f"Annotation completeness ({completeness}) != Expected ({expected})"
                )
                logger.error(
                    "Metric invariant violation: annotation completeness formula",
                    extra={
                        "actual": completeness,
                        "expected": expected,
                        "matched": matched,
                        "identified": identified,
                    },
                )

        # 7. variants_detected mirrors the matched count
        if metrics.variants_detected != matched:
            errors.append(
                f"variants_detected ({metrics.variants_detected}) != pgx_variants_matched ({matched})"
            )
            logger.error(
                "Metric invariant violation: variants_detected mismatch",
                extra={"variants_detected": metrics.variants_detected, "matched": matched},
            )

        if not errors:
            logger.debug(
                "Quality metrics validation passed",
                extra={
                    "total_variants": metrics.total_vcf_variants,
                    "pgx_matched": matched,
                    "detection_state": metrics.detection_state.value,
                },
            )

        return MetricValidationResult(valid=not errors, errors=errors)
