"""
Shared fixtures for the quality-assurance test suite.
"""

import asyncio
from typing import Callable, List, Optional, Sequence, Union

import pytest

from app.services.llm.config import GenerationSettings
from app.services.pharmacogenomics.models import VariantRecord

Reply = Union[str, None, Exception]


class ScriptedTextClient:
    """
    Stand-in for a provider client.

    Replies are consumed in order; an ``Exception`` instance is raised instead
    of returned. A ``route`` callable, when given, picks the reply from the
    prompt instead and the script is ignored.
    """

    def __init__(
        self,
        replies: Sequence[Reply] = (),
        route: Optional[Callable[[str], Reply]] = None,
        delay: float = 0.0,
    ):
        self.replies: List[Reply] = list(replies)
        self.route = route
        self.delay = delay
        self.prompts: List[str] = []
        self.closed = False

    async def generate_text(self, prompt: str) -> Optional[str]:
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.route is not None:
            reply = self.route(prompt)
        else:
            reply = self.replies.pop(0) if self.replies else None
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def scripted_client() -> Callable[..., ScriptedTextClient]:
    """Provide the ScriptedTextClient class for per-test construction."""
    return ScriptedTextClient


@pytest.fixture
def fast_settings() -> GenerationSettings:
    """Three attempts, no real waiting between them."""
    return GenerationSettings(provider="ollama", max_retries=3, base_delay_seconds=0.0)


@pytest.fixture
def cyp2d6_variants() -> List[VariantRecord]:
    """Create CYP2D6 *4 (no function) and *10 (decreased) variants."""
    return [
        VariantRecord(
            chrom="chr22", pos=42130692, rsid="rs3892097", star_allele="*4",
            gene="CYP2D6", evidence_level="A", functional_status="no_function", quality=60.0,
        ),
        VariantRecord(
            chrom="chr22", pos=42126611, rsid="rs1065852", star_allele="*10",
            gene="CYP2D6", evidence_level="A", functional_status="decreased", quality=55.0,
        ),
    ]


@pytest.fixture
def well_formed_reply() -> str:
    """Create a model reply with all four section markers."""
    return (
        "**Summary**\n"
        "The patient is a poor metabolizer carrying rs3892097 (*4) and rs1065852 (*10).\n\n"
        "**Biological Mechanism**\n"
        "CYP2D6 converts codeine to morphine; both alleles reduce CYP2D6 enzyme activity.\n\n"
        "**Variant Interpretation**\n"
        "rs3892097 is a no-function allele and rs1065852 has decreased function.\n\n"
        "**Clinical Impact**\n"
        "Codeine is unlikely to provide adequate analgesia; choose an alternative.\n"
    )


_GENERATION_ENV_KEYS = (
    "LLM_PROVIDER", "GROQ_API_KEY", "GROQ_MODEL", "GROQ_BASE_URL",
    "GROK_API_KEY", "GROK_MODEL", "GROK_BASE_URL",
    "OLLAMA_MODEL", "OLLAMA_BASE_URL", "OLLAMA_API_KEY",
    "LLM_MAX_RETRIES", "LLM_BASE_DELAY_SECONDS", "LLM_TIMEOUT_SECONDS", "LLM_SELF_CHECK",
)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every generation-related variable from the environment."""
    for key in _GENERATION_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch
