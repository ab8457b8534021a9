"""
Parses raw LLM output into the four explanation sections.

Degrades in three steps and never discards usable text:
  1. Named section markers (bold, heading or ``Label:`` at line start)
  2. A numbered list with at least four items
  3. The whole response as the summary
"""

import logging
import re
from typing import Dict, List

from app.services.llm.models import SECTION_FIELDS, Explanation

logger = logging.getLogger(__name__)

SECTION_TITLES: Dict[str, str] = {
    "summary": "summary",
    "biological mechanism": "biological_mechanism",
    "variant interpretation": "variant_interpretation",
    "clinical impact": "clinical_impact",
}

SECTION_MARKER = re.compile(
    r"^[ \t]*(?:#{1,6}[ \t]*)?(?:\d+[.)][ \t]*)?(?:\*\*|__)?[ \t]*"
    r"(Summary|Biological Mechanism|Variant Interpretation|Clinical Impact)"
    r"(?=[ \t]*(?:\*\*|__|:|$))"
    r"[ \t]*(?:\*\*|__)?[ \t]*:?[ \t]*(?:\*\*|__)?",
    re.IGNORECASE | re.MULTILINE,
)

NUMBERED_ITEM = re.compile(r"^[ \t]*\d+[.)][ \t]+", re.MULTILINE)


def _clean(text: str) -> str:
    return text.replace("**", "").replace("__", "").strip()


def _parse_markers(content: str) -> Dict[str, str]:
    matches = list(SECTION_MARKER.finditer(content))
    sections: Dict[str, str] = {}
    for index, match in enumerate(matches):
        field = SECTION_TITLES[match.group(1).lower()]
        if field in sections:
            continue
        end = matches[index + 1].start() if index + 1 < len(matches) else len(content)
        sections[field] = _clean(content[match.end():end])
    return sections


def _parse_numbered(content: str) -> List[str]:
    markers = list(NUMBERED_ITEM.finditer(content))
    parts = []
    for index, match in enumerate(markers):
        end = markers[index + 1].start() if index + 1 < len(markers) else len(content)
        part = _clean(content[match.end():end])
        if part:
            parts.append(part)
    return parts


def parse_explanation(content: str) -> Explanation:
    """Split a generated response into an ``Explanation``."""
    sections = _parse_markers(content)
    if sections:
        return Explanation(**sections)

    parts = _parse_numbered(content)
    if len(parts) >= len(SECTION_FIELDS):
        logger.info("Section markers missing - using numbered-list split", extra={"parts": len(parts)})
        return Explanation(**dict(zip(SECTION_FIELDS, parts)))

    logger.warning(
        "Could not locate explanation sections - using whole response as summary",
        extra={"response_length": len(content)},
    )
    return Explanation(summary=content.strip())
