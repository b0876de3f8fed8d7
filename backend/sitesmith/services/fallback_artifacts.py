import re
import json
import random
import logging

from sitesmith.models import DesignBrief, GeneratedFile, IntentManifest
from sitesmith.services.assets import fallback_image_url
from sitesmith.services.template_loader import (
    COMPONENT_GROUP,
    design_tokens,
    get_template,
    render_template,
)

logger = logging.getLogger(__name__)

NAME_SUFFIXES = ["Hub", "Lab", "Studio", "Works", "Flow", "X", "Zone", "Sphere"]

# (industry keywords, headline). Ordered: first match wins.
HEADLINES = [
    (("skate",), "SHRED THE STREETS"),
    (("game", "gaming", "cyber"), "LEVEL UP YOUR REALITY"),
    (("food", "cafe", "coffee", "restaurant", "bakery", "bistro"), "TASTE THE EXTRAORDINARY"),
    (("finance", "bank", "invest"), "SECURE YOUR FUTURE"),
    (("fashion", "cloth"), "DEFINE YOUR STYLE"),
]

CTA_LABELS = [
    (("book", "reserv"), "Book a Table"),
    (("sell", "shop", "buy", "product"), "Shop Now"),
    (("signup", "sign up", "trial", "convert"), "Start Free Trial"),
    (("lead", "contact", "client"), "Let's Talk"),
]

DEFAULT_FEATURES = [
    {"title": "Crafted with care", "description": "Every detail is considered, from first impression to final touch."},
    {"title": "Built to last", "description": "Reliable quality you can count on, day after day."},
    {"title": "Loved by customers", "description": "A community that keeps coming back for more."},
]


def _jsx_text(text: str) -> str:
    """Strip characters that would break out of a JSX text node or string."""
    return re.sub(r'[{}<>"`$\\]', "", text or "").strip()


def _industry_word(industry: str) -> str:
    parts = [p for p in re.split(r"[^a-zA-Z0-9]+", industry or "") if p]
    return "".join(p.capitalize() for p in parts) or "Brand"


class FallbackArtifactGenerator:
    """Builds components from the brief and manifest alone, with no network call."""

    def __init__(self, rng: random.Random | None = None):
        self.rng = rng if rng is not None else random.Random()

    def brand_name(self, industry: str) -> str:
        return _industry_word(industry) + self.rng.choice(NAME_SUFFIXES)

    def headline(self, industry: str) -> str:
        text = (industry or "").lower()
        for keywords, headline in HEADLINES:
            if any(k in text for k in keywords):
                return headline
        label = (industry or "business").replace("-", " ").title()
        return f"Redefining {label} Excellence"

    def cta_label(self, manifest: IntentManifest) -> str:
        goal = manifest.goal.lower()
        for keywords, label in CTA_LABELS:
            if any(k in goal for k in keywords):
                return label
        return "Get Started"

    def features(self, manifest: IntentManifest) -> list[dict]:
        differentiators = [d for d in manifest.content_strategy.key_differentiators if d.strip()]
        if not differentiators:
            return DEFAULT_FEATURES
        return [
            {"title": _jsx_text(d)[:60], "description": f"{_jsx_text(d)}, delivered the way our customers expect."}
            for d in differentiators[:3]
        ]

    def tokens(
        self,
        component: str,
        brief: DesignBrief,
        manifest: IntentManifest,
        images: dict[str, str] | None = None,
        brand: str | None = None,
    ) -> dict:
        images = images or {}
        brand = _jsx_text(brand or manifest.brand.name or self.brand_name(manifest.industry))
        tokens = design_tokens(brief, manifest, brand)
        tokens.update({
            "component": component,
            "brand": brand,
            "title": _jsx_text(component),
            "headline": _jsx_text(self.headline(manifest.industry)),
            "subheadline": _jsx_text(manifest.brand.tagline or manifest.core.purpose)[:160],
            "tagline": _jsx_text(manifest.brand.tagline or f"{brand}: {manifest.tone.lower()} by design"),
            "purpose": _jsx_text(manifest.core.purpose)[:400],
            "cta_label": self.cta_label(manifest),
            "hero_image": images.get("hero") or fallback_image_url(manifest.industry, 1200, 800),
            "feature_image": images.get("feature") or fallback_image_url(f"{manifest.industry}-detail", 800, 600),
            "features_json": json.dumps(self.features(manifest), indent=2),
            "sections_json": json.dumps(["Features", "About", "Contact"]),
        })
        return tokens

    def render(
        self,
        component: str,
        brief: DesignBrief,
        manifest: IntentManifest,
        images: dict[str, str] | None = None,
        brand: str | None = None,
    ) -> GeneratedFile:
        template = get_template(COMPONENT_GROUP, f"{component}.tsx") or get_template(COMPONENT_GROUP, "Generic.tsx")
        if template is None:
            raise FileNotFoundError(f"No fallback template for {component}")

        content = render_template(template, self.tokens(component, brief, manifest, images, brand))
        logger.info(f"[fallback] Rendered {component} from template ({content.count(chr(10)) + 1} lines)")
        return GeneratedFile(path=f"src/components/{component}.tsx", content=content, language="typescript")
