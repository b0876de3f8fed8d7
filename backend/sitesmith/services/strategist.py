"""Deterministic layout rules keyed on a manifest's goal, industry and personality.

Every rule table is ordered and the last entry always matches, so identical
manifests always get identical layouts.
"""

import logging
from typing import Callable

from pydantic import BaseModel

from sitesmith.models import FeatureLayout, FooterLayout, HeroLayout, IntentManifest, ProductLayout

logger = logging.getLogger(__name__)


class LayoutRecommendation(BaseModel):
    hero: HeroLayout
    features: FeatureLayout
    products: ProductLayout
    footer: FooterLayout


def _goal_has(*words: str) -> Callable[[IntentManifest], bool]:
    return lambda m: any(w in m.goal.lower() for w in words)


def _industry_has(*words: str) -> Callable[[IntentManifest], bool]:
    return lambda m: any(w in m.industry.lower() for w in words)


def _personality_has(*words: str) -> Callable[[IntentManifest], bool]:
    return lambda m: any(w in m.personality.lower() for w in words)


def _always(_: IntentManifest) -> bool:
    return True


HERO_RULES: list[tuple[Callable[[IntentManifest], bool], HeroLayout]] = [
    (_goal_has("lead", "conversion", "sell", "signup", "sign up", "book"), HeroLayout(
        name="split-screen-conversion", structure="grid-cols-2", image_position="right",
        text_align="left", vertical_align="center", unique_element="floating-card-form",
    )),
    (_industry_has("portfolio", "creative", "photo", "art"), HeroLayout(
        name="typography-led", structure="text-dominant", image_position="background",
        text_align="center", vertical_align="center", unique_element="kinetic-type",
    )),
    (_industry_has("saas", "tech", "software", "app"), HeroLayout(
        name="dashboard-preview", structure="flex-col", image_position="bottom-overlap",
        text_align="center", vertical_align="bottom", unique_element="glowing-gradient",
    )),
    (_always, HeroLayout(
        name="balanced-classic", structure="grid-cols-2", image_position="right",
        text_align="left", vertical_align="center", unique_element="blob-shape",
    )),
]

FEATURE_RULES: list[tuple[Callable[[IntentManifest], bool], FeatureLayout]] = [
    (lambda m: len(m.sections) > 6, FeatureLayout(type="bento-grid", style="compact")),
    (_personality_has("playful"), FeatureLayout(type="alternating-zigzag", style="offset")),
    (_always, FeatureLayout(type="grid-3", style="clean")),
]

PRODUCT_RULES: list[tuple[Callable[[IntentManifest], bool], ProductLayout]] = [
    (lambda m: "luxury" in m.personality.lower() or "luxury" in m.tone.lower(), ProductLayout(type="carousel-large", columns=1)),
    (_always, ProductLayout(type="grid", columns=3)),
]

FOOTER_RULES: list[tuple[Callable[[IntentManifest], bool], FooterLayout]] = [
    (_goal_has("inform"), FooterLayout(style="mega-menu")),
    (_always, FooterLayout(style="minimal-centered")),
]


def _first_match(rules, manifest: IntentManifest):
    for predicate, layout in rules:
        if predicate(manifest):
            return layout.model_copy(deep=True)
    raise LookupError("Rule table has no default entry")


class DesignStrategist:
    def recommend_layouts(self, manifest: IntentManifest) -> LayoutRecommendation:
        recommendation = LayoutRecommendation(
            hero=_first_match(HERO_RULES, manifest),
            features=_first_match(FEATURE_RULES, manifest),
            products=_first_match(PRODUCT_RULES, manifest),
            footer=_first_match(FOOTER_RULES, manifest),
        )
        logger.debug(
            f"[strategist] {manifest.industry}: hero={recommendation.hero.name} "
            f"features={recommendation.features.type} footer={recommendation.footer.style}"
        )
        return recommendation
