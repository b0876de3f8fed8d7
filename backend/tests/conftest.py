"""Shared fixtures for sitesmith tests."""

import json
import random
from unittest.mock import AsyncMock

import pytest

from sitesmith.config import Settings
from sitesmith.models import (
    BrandIdentity,
    ContentStrategy,
    IntentManifest,
    ManifestCore,
    ManifestStrategy,
    ProviderResponse,
    TaskCategory,
)
from sitesmith.services.fallback_artifacts import FallbackArtifactGenerator
from sitesmith.services.intent import IntentAnalyzer
from sitesmith.services.orchestrator import GenerationOrchestrator
from sitesmith.services.providers import ProviderRouter, ProviderSpec, load_provider_registry
from sitesmith.services.runs import RunRegistry
from sitesmith.services.similarity import SimilarityGuard
from sitesmith.services.variation import DesignVariationGenerator

VALID_COMPONENT = (
    "import { Star } from \"lucide-react\";\n\n"
    "export default function Section() {\n"
    "  return <section><Star /> Hello</section>;\n"
    "}\n"
)

MANIFEST_DATA = {
    "core": {"purpose": "Neighborhood bistro serving seasonal plates", "primaryGoal": "Book reservations"},
    "brand": {"name": "Olive & Ember", "tagline": "Seasonal plates, open fire", "personality": "Friendly"},
    "strategy": {"industry": "restaurant", "subCategory": "hospitality"},
    "contentStrategy": {"tone": "Warm", "keyDifferentiators": ["Wood-fired oven"]},
}


class FixedRandom(random.Random):
    """Always picks the first option, the midpoint, or the lower bound."""

    def choice(self, seq):
        return seq[0]

    def uniform(self, a, b):
        return (a + b) / 2

    def randint(self, a, b):
        return a


@pytest.fixture
def fixed_rng() -> FixedRandom:
    return FixedRandom()


@pytest.fixture
def sample_manifest() -> IntentManifest:
    """Manifest for a small restaurant."""
    return IntentManifest(
        core=ManifestCore(
            purpose="Neighborhood bistro serving seasonal plates",
            primary_goal="Book reservations and drive visits",
        ),
        brand=BrandIdentity(name="Olive & Ember", tagline="Seasonal plates, open fire", personality="Friendly"),
        strategy=ManifestStrategy(industry="restaurant", sub_category="hospitality"),
        content_strategy=ContentStrategy(tone="Warm", key_differentiators=["Wood-fired oven", "Local farms"]),
    )


@pytest.fixture
def sample_brief(fixed_rng, sample_manifest):
    generator = DesignVariationGenerator(fixed_rng)
    return generator.generate_design_brief("restaurant", "modern", "warm", sample_manifest)


def make_router(*keys: str) -> ProviderRouter:
    """Router where only ``keys`` have API keys."""
    env = {f"{key.upper()}_API_KEY": f"test-{key}" for key in keys}
    return ProviderRouter(load_provider_registry(env))


@pytest.fixture
def offline_router() -> ProviderRouter:
    return make_router()


@pytest.fixture
def anthropic_spec() -> ProviderSpec:
    return make_router("anthropic").providers["anthropic"]


def build_orchestrator(router: ProviderRouter, **kwargs) -> GenerationOrchestrator:
    rng = kwargs.pop("rng", None) or FixedRandom()
    kwargs.setdefault("settings", Settings())
    kwargs.setdefault("registry", RunRegistry())
    return GenerationOrchestrator(
        router=router,
        analyzer=kwargs.pop("analyzer", None) or IntentAnalyzer(router),
        generator=DesignVariationGenerator(rng),
        guard=SimilarityGuard(),
        fallback=FallbackArtifactGenerator(rng),
        **kwargs,
    )


def mock_execute(**answers: str) -> AsyncMock:
    """``execute_request`` replacement with one canned answer per task category."""
    replies = {
        TaskCategory.CODE: VALID_COMPONENT,
        TaskCategory.ANALYSIS: "Here is the analysis:\n" + json.dumps(MANIFEST_DATA),
        TaskCategory.PROSE: "A warm neighborhood bistro site with a menu preview and online reservations.",
    }
    replies.update({TaskCategory(k): v for k, v in answers.items()})

    async def _answer(spec, request):
        return ProviderResponse(backend=spec.key, content=replies[request.category], usage={"tokens_in": 10, "tokens_out": 20})

    return AsyncMock(side_effect=_answer)
