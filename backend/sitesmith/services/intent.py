import json
import time
import logging

from pydantic import ValidationError

from sitesmith.errors import ManifestParseFailed, NoProviderAvailable, ProviderRequestFailed
from sitesmith.models import (
    BrandIdentity,
    ContentStrategy,
    IntentManifest,
    ManifestCore,
    ManifestStrategy,
    ProviderRequest,
    TargetAudience,
    TaskCategory,
)
from sitesmith.services.json_extract import extract_json_object
from sitesmith.services.knowledge import (
    INDUSTRY_BLUEPRINTS,
    classify_industry,
    classify_personality,
    knowledge_snippet,
)
from sitesmith.services.providers import ProviderRouter

logger = logging.getLogger(__name__)

MANIFEST_SHAPE = {
    "core": {
        "purpose": "string",
        "targetAudience": {"description": "string", "ageRange": "string", "incomeLevel": "string", "values": ["string"]},
        "primaryGoal": "string",
    },
    "brand": {"name": "string", "tagline": "string", "personality": "string", "colorPsychology": "string", "keywords": ["string"]},
    "strategy": {
        "industry": "string (lowercase, hyphenated)",
        "subCategory": "string",
        "suggestedSections": ["string"],
        "layoutStyle": "string",
        "competitors": ["string"],
    },
    "contentStrategy": {"tone": "string", "keyDifferentiators": ["string"]},
}


def build_analysis_prompt(prompt: str, research: str = "") -> str:
    research_block = f"## Market research\n{research.strip()}\n\n" if research and research.strip() else ""
    return (
        "Analyze this website request and return the business intent as JSON.\n\n"
        f"## Request\n{prompt.strip()}\n\n"
        f"{research_block}"
        f"## Design knowledge\n{knowledge_snippet()}\n\n"
        "## Output\n"
        "Return ONLY a JSON object with exactly this shape:\n"
        f"{json.dumps(MANIFEST_SHAPE, indent=2)}"
    )


def parse_manifest(raw: str) -> IntentManifest:
    """Turn backend output into a manifest, tolerating prose around the JSON."""
    try:
        data = extract_json_object(raw)
        return IntentManifest.model_validate(data)
    except (ValueError, ValidationError) as e:
        raise ManifestParseFailed(f"Could not parse intent manifest: {e}") from e


def heuristic_manifest(prompt: str) -> IntentManifest:
    """Keyword classifier used when no backend produced a usable manifest."""
    text = prompt.lower()
    industry, sub_category, blueprint_key = classify_industry(text)
    blueprint = INDUSTRY_BLUEPRINTS[blueprint_key]

    personality, tone = classify_personality(text) or ("Professional", blueprint["vibe"].split(",")[0].strip())
    display = industry.replace("-", " ").title()

    return IntentManifest(
        core=ManifestCore(
            purpose=f"{display} website: {prompt.strip()[:200]}",
            target_audience=TargetAudience(description=f"People interested in {display.lower()}"),
            primary_goal=blueprint["goal"],
        ),
        brand=BrandIdentity(
            name="",
            tagline=blueprint["vibe"],
            personality=personality,
            keywords=[industry, sub_category, personality.lower()],
        ),
        strategy=ManifestStrategy(
            industry=industry,
            sub_category=sub_category,
            suggested_sections=list(blueprint["required_sections"]),
            layout_style=blueprint["layout"],
        ),
        content_strategy=ContentStrategy(tone=tone),
    )


class IntentAnalyzer:
    def __init__(self, router: ProviderRouter):
        self.router = router

    async def analyze_intent(self, prompt: str, research: str = "", provider: str | None = None) -> IntentManifest:
        """One routed analysis request; any failure falls back to the heuristic classifier."""
        t0 = time.time()
        try:
            spec = self.router.select(TaskCategory.ANALYSIS, provider)
            response = await self.router.execute_request(
                spec,
                ProviderRequest(category=TaskCategory.ANALYSIS, prompt=build_analysis_prompt(prompt, research)),
            )
            manifest = parse_manifest(response.content)
        except (NoProviderAvailable, ProviderRequestFailed, ManifestParseFailed) as e:
            logger.warning(f"[intent] Analysis failed, using heuristic classifier: {e}")
            manifest = heuristic_manifest(prompt)
            logger.info(f"[intent] Heuristic manifest: industry={manifest.industry} personality={manifest.personality}")
            return manifest

        logger.info(
            f"[intent] Manifest from {response.backend} in {time.time() - t0:.1f}s: "
            f"industry={manifest.industry} personality={manifest.personality}"
        )
        return manifest
