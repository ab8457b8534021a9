"""
Contradiction Detector — checks generated explanations against variant evidence.

A conservative, pattern-based rule engine. Sentences are split into clauses,
each clause is tokenized into gene, drug, variant and direction mentions, and
one claim per family is built from each clause, or one per variant when the
clause lists several variants sharing the verb. Claims that cannot be tied to
a known variant are ignored rather than flagged.
"""

import logging
import re
from typing import TYPE_CHECKING, Dict, Iterable, List, NamedTuple, Optional, Sequence, Set, Tuple, Union

from app.services.pharmacogenomics.models import VariantRecord
from .models import (
    BiologicalClaim,
    CitationReport,
    Contradiction,
    ContradictionReport,
)

if TYPE_CHECKING:
    from app.services.llm.models import Explanation

logger = logging.getLogger(__name__)

UNQUALIFIED_SUBJECT = "enzyme"

# ---------------------------------------------------------------------------
# Token patterns
# ---------------------------------------------------------------------------

SENTENCE_BOUNDARY = re.compile(r"[.!?]+(?=\s|$)")
CLAUSE_BOUNDARY = re.compile(
    r";|,\s*and\b|\bwhile\b|\bwhereas\b|\bbut\b|\bhowever\b|\balthough\b",
    re.IGNORECASE,
)

VARIANT_TOKEN = re.compile(r"\brs\d+\b|(?<!\*)\*\d+\w*", re.IGNORECASE)
GENE_TOKEN = re.compile(
    r"\b(?:CYP\d+[A-Z]\d+|SLCO1B1|TPMT|DPYD|NUDT15|UGT1A1|VKORC1|G6PD|HLA-[AB]|IFNL3|CFTR|RYR1)\b",
    re.IGNORECASE,
)

ENZYME_CONTEXT = re.compile(r"\b(?:enzym\w*|activity|function\w*|metaboli\w*)\b", re.IGNORECASE)
EFFICACY_CONTEXT = re.compile(r"\b(?:efficacy|effective\w*|response\w*)\b", re.IGNORECASE)

INCREASE_WORDS = re.compile(
    r"\b(?:increas\w*|enhanc\w*|higher|elevat\w*|gain[- ]of[- ]function)\b", re.IGNORECASE
)
DECREASE_WORDS = re.compile(
    r"\b(?:decreas\w*|reduc\w*|lower\w*|diminish\w*|impair\w*)\b", re.IGNORECASE
)
ELIMINATE_WORDS = re.compile(
    r"\b(?:eliminat\w*|abolish\w*|absent|no[- ]function|non-?functional|loss[- ]of[- ]function)\b",
    re.IGNORECASE,
)

# Text allowed between variant tokens that share one verb ("rs1 and rs2 reduce ...")
VARIANT_LIST_JOINER = re.compile(r"\s*(?:,|/|,?\s*\b(?:and|or)\b)?\s*", re.IGNORECASE)

DEFAULT_DRUG_NAMES = (
    "codeine", "tramadol", "oxycodone", "hydrocodone",
    "clopidogrel", "voriconazole", "escitalopram",
    "warfarin", "phenytoin",
    "simvastatin",
    "azathioprine", "mercaptopurine",
    "fluorouracil", "capecitabine",
    "tacrolimus", "abacavir", "carbamazepine",
)

# Functional status → (violating direction → severity)
CONSISTENCY_TABLE: Dict[str, Dict[str, str]] = {
    "no_function": {"increase": "high"},
    "decreased": {"increase": "medium"},
    "increased": {"decrease": "medium", "eliminate": "medium"},
    "normal": {},
}


class _Token(NamedTuple):
    text: str
    start: int
    end: int


def _tokens(pattern: "re.Pattern", text: str, offset: int = 0) -> List[_Token]:
    return [_Token(m.group(0), m.start() + offset, m.end() + offset) for m in pattern.finditer(text)]


def _distance(a: _Token, b: _Token) -> int:
    if a.end <= b.start:
        return b.start - a.end
    if b.end <= a.start:
        return a.start - b.end
    return 0


def _is_cited(value: str, text: str, variant_tokens: Set[str]) -> bool:
    if VARIANT_TOKEN.fullmatch(value):
        return value.lower() in variant_tokens
    return re.search(rf"(?<![\w*]){re.escape(value)}(?!\w)", text, re.IGNORECASE) is not None


def _split_spans(text: str, boundary: "re.Pattern") -> List[Tuple[int, int]]:
    spans = []
    start = 0
    for match in boundary.finditer(text):
        spans.append((start, match.start()))
        start = match.end()
    spans.append((start, len(text)))
    return [(s, e) for s, e in spans if text[s:e].strip()]


class ContradictionDetector:
    """
    Extracts biological claims from text and checks them for consistency.

    Usage::

        detector = ContradictionDetector()
        report = detector.detect_contradictions(explanation, variants)
        if report.has_contradictions:
            ...
    """

    def __init__(self, drug_names: Optional[Iterable[str]] = None):
        names = set(DEFAULT_DRUG_NAMES)
        names.update(name.lower() for name in (drug_names or ()))
        alternation = "|".join(sorted((re.escape(n) for n in names), key=len, reverse=True))
        self._drug_token = re.compile(rf"\b(?:{alternation})\b", re.IGNORECASE)

    # -- Claim extraction --------------------------------------------------

    def extract_biological_claims(self, text: str) -> List[BiologicalClaim]:
        """Pattern-match enzyme-activity and drug-efficacy claims, in text order."""
        claims: List[BiologicalClaim] = []
        if not text:
            return claims

        for sent_start, sent_end in _split_spans(text, SENTENCE_BOUNDARY):
            sentence = text[sent_start:sent_end]
            claims.extend(self._claims_from_sentence(sentence))

        return claims

    def _claims_from_sentence(self, sentence: str) -> List[BiologicalClaim]:
        claims: List[BiologicalClaim] = []
        statement = sentence.strip()

        sentence_has_enzyme = bool(ENZYME_CONTEXT.search(sentence))
        sentence_has_efficacy = bool(EFFICACY_CONTEXT.search(sentence))
        if not (sentence_has_enzyme or sentence_has_efficacy):
            return claims

        genes = _tokens(GENE_TOKEN, sentence)
        variants = _tokens(VARIANT_TOKEN, sentence)
        drugs = _tokens(self._drug_token, sentence)

        for start, end in _split_spans(sentence, CLAUSE_BOUNDARY):
            clause = sentence[start:end]
            increases = _tokens(INCREASE_WORDS, clause, start)
            decreases = _tokens(DECREASE_WORDS, clause, start)
            eliminations = _tokens(ELIMINATE_WORDS, clause, start)
            if not (increases or decreases or eliminations):
                continue

            if sentence_has_enzyme:
                anchors = _tokens(ENZYME_CONTEXT, clause, start)
                direction, keyword = self._resolve_direction(increases, decreases, eliminations, anchors)
                gene = self._nearest(genes, keyword, start, end)
                variant = self._nearest(variants, keyword, start, end)
                for mention in self._coordinated(variants, variant, sentence):
                    claims.append(BiologicalClaim(
                        type="enzyme_activity",
                        direction=direction,
                        subject=gene.text.upper() if gene else UNQUALIFIED_SUBJECT,
                        variant_mentioned=mention,
                        claim=statement,
                    ))

            if sentence_has_efficacy:
                anchors = _tokens(EFFICACY_CONTEXT, clause, start)
                direction, keyword = self._resolve_direction(increases, decreases, eliminations, anchors)
                drug = self._nearest(drugs, keyword, start, end)
                if drug is None:
                    continue
                variant = self._nearest(variants, keyword, start, end)
                for mention in self._coordinated(variants, variant, sentence):
                    claims.append(BiologicalClaim(
                        type="drug_efficacy",
                        direction="increase" if direction == "increase" else "decrease",
                        subject=drug.text.lower(),
                        variant_mentioned=mention,
                        claim=statement,
                    ))

        return claims

    @staticmethod
    def _resolve_direction(
        increases: List[_Token],
        decreases: List[_Token],
        eliminations: List[_Token],
        anchors: List[_Token],
    ) -> Tuple[str, _Token]:
        """
        Pick the direction keyword governing a clause.

        The keyword closest to a context word (``enzyme``, ``efficacy``...) wins;
        without an anchor in the clause the earliest keyword wins.
        """
        candidates = (
            [("increase", t) for t in increases]
            + [("decrease", t) for t in decreases]
            + [("eliminate", t) for t in eliminations]
        )
        if anchors:
            return min(
                candidates,
                key=lambda c: (min(_distance(c[1], a) for a in anchors), c[1].start),
            )
        return min(candidates, key=lambda c: c[1].start)

    @staticmethod
    def _nearest(
        tokens: Sequence[_Token],
        keyword: _Token,
        clause_start: int,
        clause_end: int,
    ) -> Optional[_Token]:
        """
        Attach an entity to a direction keyword.

        Order of preference: the nearest mention preceding the keyword within
        the clause, then the nearest following it within the clause, then the
        nearest mention in an earlier clause of the same sentence.
        """
        in_clause = [t for t in tokens if t.start >= clause_start and t.end <= clause_end]
        preceding = [t for t in in_clause if t.start < keyword.start]
        if preceding:
            return preceding[-1]
        following = [t for t in in_clause if t.start >= keyword.start]
        if following:
            return following[0]
        earlier = [t for t in tokens if t.end <= clause_start]
        return earlier[-1] if earlier else None

    @staticmethod
    def _coordinated(
        tokens: Sequence[_Token],
        anchor: Optional[_Token],
        sentence: str,
    ) -> List[Optional[str]]:
        """
        Expand an attached variant to the list it belongs to.

        "Both rs1 and rs2 reduce activity" yields one claim per variant; tokens
        count as one list only when nothing but a comma, slash, "and" or "or"
        separates them.
        """
        if anchor is None:
            return [None]
        index = tokens.index(anchor)
        first = last = index
        while first > 0 and VARIANT_LIST_JOINER.fullmatch(sentence[tokens[first - 1].end:tokens[first].start]):
            first -= 1
        while last + 1 < len(tokens) and VARIANT_LIST_JOINER.fullmatch(sentence[tokens[last].end:tokens[last + 1].start]):
            last += 1
        return [t.text for t in tokens[first:last + 1]]

    # -- Consistency checks ------------------------------------------------

    def check_enzyme_activity_consistency(
        self,
        claims: Sequence[BiologicalClaim],
        variants: Sequence[VariantRecord],
    ) -> List[Contradiction]:
        """Compare enzyme-activity claims with each variant's functional status."""
        contradictions: List[Contradiction] = []

        for claim in claims:
            if claim.type != "enzyme_activity":
                continue

            record = self._resolve_variant(claim, variants)
            if record is None or record.functional_status is None:
                continue

            severity = CONSISTENCY_TABLE.get(record.functional_status, {}).get(claim.direction)
            if severity is None:
                continue

            identifier = record.identifier or claim.subject
            contradictions.append(Contradiction(
                type="enzyme_activity_mismatch",
                severity=severity,
                affected_variant=identifier,
                description=(
                    f"Claim states enzyme activity is {claim.direction}d, but variant "
                    f"{identifier} has functional status '{record.functional_status}'"
                ),
                conflicting_statements=[
                    claim.claim,
                    f"Variant functional status: {record.functional_status}",
                ],
            ))

        return contradictions

    @staticmethod
    def _resolve_variant(
        claim: BiologicalClaim,
        variants: Sequence[VariantRecord],
    ) -> Optional[VariantRecord]:
        if claim.variant_mentioned:
            token = claim.variant_mentioned.lower()
            candidates = [
                v for v in variants
                if (v.rsid and v.rsid.lower() == token)
                or (v.star_allele and v.star_allele.lower() == token)
            ]
            # Star alleles repeat across genes; prefer the claim's gene.
            for candidate in candidates:
                if candidate.gene and candidate.gene.upper() == claim.subject.upper():
                    return candidate
            return candidates[0] if candidates else None

        if claim.subject == UNQUALIFIED_SUBJECT:
            return None
        for variant in variants:
            if variant.gene and variant.gene.upper() == claim.subject.upper() and variant.functional_status:
                return variant
        return None

    def check_internal_consistency(self, claims: Sequence[BiologicalClaim]) -> List[Contradiction]:
        """
        Flag claims about the same variant (or subject) that point both ways.

        Claims are grouped per claim type by variant when one was mentioned,
        otherwise by subject. Unqualified enzyme claims are not grouped.
        """
        groups: Dict[Tuple[str, str], List[BiologicalClaim]] = {}
        labels: Dict[Tuple[str, str], str] = {}

        for claim in claims:
            if claim.variant_mentioned:
                label = claim.variant_mentioned
            elif claim.subject != UNQUALIFIED_SUBJECT:
                label = claim.subject
            else:
                continue
            key = (claim.type, label.lower())
            groups.setdefault(key, []).append(claim)
            labels.setdefault(key, label)

        contradictions: List[Contradiction] = []
        for key, grouped in groups.items():
            directions = {c.direction for c in grouped}
            if "increase" in directions and directions & {"decrease", "eliminate"}:
                label = labels[key]
                contradictions.append(Contradiction(
                    type="internal_contradiction",
                    severity="high",
                    affected_variant=label,
                    description=f"{label} is described as both increasing and decreasing activity",
                    conflicting_statements=list(dict.fromkeys(c.claim for c in grouped)),
                ))

        return contradictions

    # -- Entry points ------------------------------------------------------

    def detect_contradictions(
        self,
        explanation: Union[str, "Explanation"],
        variants: Sequence[VariantRecord],
    ) -> ContradictionReport:
        """Extract claims once and run both consistency checks over them."""
        text = explanation if isinstance(explanation, str) else explanation.full_text()

        logger.debug(
            "Starting contradiction detection",
            extra={"explanation_length": len(text), "variant_count": len(variants)},
        )

        claims = self.extract_biological_claims(text)
        contradictions = (
            self.check_enzyme_activity_consistency(claims, variants)
            + self.check_internal_consistency(claims)
        )

        if contradictions:
            logger.warning(
                "Contradictions detected in explanation",
                extra={
                    "contradiction_count": len(contradictions),
                    "contradictions": [
                        {"type": c.type, "severity": c.severity, "variant": c.affected_variant}
                        for c in contradictions
                    ],
                },
            )
        else:
            logger.debug("No contradictions detected", extra={"claims_analyzed": len(claims)})

        return ContradictionReport(
            has_contradictions=bool(contradictions),
            contradictions=contradictions,
            claims_analyzed=len(claims),
        )

    @staticmethod
    def validate_citations(
        explanation: Union[str, "Explanation"],
        variants: Sequence[VariantRecord],
    ) -> CitationReport:
        """
        Check that every rsID, star allele and gene is cited somewhere.

        Identifiers must appear as whole tokens: rs123 is not cited by rs12345,
        nor *1 by *10.
        """
        text = explanation if isinstance(explanation, str) else explanation.full_text()
        variant_tokens = {token.lower() for token in VARIANT_TOKEN.findall(text)}

        missing: List[str] = []
        expected = 0
        cited = 0
        flags = {}

        for field in ("rsid", "star_allele", "gene"):
            all_cited = True
            for variant in variants:
                value = getattr(variant, field)
                if not value:
                    continue
                expected += 1
                if _is_cited(value, text, variant_tokens):
                    cited += 1
                else:
                    all_cited = False
                    if value not in missing:
                        missing.append(value)
            flags[field] = all_cited

        return CitationReport(
            all_rsids_cited=flags["rsid"],
            all_star_alleles_cited=flags["star_allele"],
            all_genes_cited=flags["gene"],
            citation_completeness=cited / expected if expected else 1.0,
            missing_citations=missing,
        )
