import random
import logging

from sitesmith.models import (
    AnimationTokens,
    ArtisticStyle,
    ColorPalette,
    DesignBrief,
    FeatureLayout,
    FontPairing,
    FooterLayout,
    HeroLayout,
    IntentManifest,
    ProductLayout,
    SectionLayouts,
    SpacingTokens,
)
from sitesmith.services.strategist import DesignStrategist

logger = logging.getLogger(__name__)

# Candidate base hues per industry family. Drawing from a pool (not a fixed
# hue) is what keeps two runs for the same industry apart.
INDUSTRY_HUES: dict[str, list[int]] = {
    "luxury": [210, 240, 30, 15, 280],
    "tech": [200, 260, 180, 300, 220],
    "food": [0, 30, 45, 120, 60],
    "fashion": [300, 330, 200, 180, 350],
    "health": [120, 180, 200, 220, 160],
    "business": [220, 200, 240, 30, 180],
    "creative": [280, 320, 60, 180, 0],
    "restaurant": [15, 30, 45, 120, 0],
    "photography": [240, 280, 200, 30, 0],
    "ecommerce": [260, 300, 180, 220, 30],
}
DEFAULT_FAMILY = "business"

# Substring of an industry name -> hue family. Ordered.
FAMILY_KEYWORDS = [
    ("restaurant", "restaurant"), ("bistro", "restaurant"),
    ("food", "food"), ("cafe", "food"), ("coffee", "food"), ("bakery", "food"),
    ("luxury", "luxury"), ("jewel", "luxury"),
    ("fashion", "fashion"), ("cloth", "fashion"),
    ("health", "health"), ("fitness", "health"), ("wellness", "health"), ("medical", "health"),
    ("photo", "photography"), ("portfolio", "photography"),
    ("creative", "creative"), ("agency", "creative"), ("art", "creative"),
    ("saas", "tech"), ("tech", "tech"), ("software", "tech"), ("app", "tech"), ("gaming", "tech"),
    ("shop", "ecommerce"), ("store", "ecommerce"), ("retail", "ecommerce"), ("ecommerce", "ecommerce"),
    ("finance", "business"), ("business", "business"),
]

MOOD_SATURATION = {"minimal": 25, "vibrant": 75, "elegant": 45, "warm": 65}
MOOD_LIGHTNESS = {"dark": 25, "light": 85, "bold": 40, "warm": 50}
DEFAULT_SATURATION = 60
DEFAULT_LIGHTNESS = 55
KNOWN_MOODS = ["dark", "light", "bold", "minimal", "vibrant", "elegant", "warm"]

# (weight, saturation factor, lightness) for the light half of a ramp
LIGHT_STEPS = [(50, 0.3, 95), (100, 0.4, 90), (200, 0.5, 80), (300, 0.6, 70), (400, 0.7, 60)]
# weight -> lightness drop from the base for the dark half
DARK_STEPS = [(600, 10), (700, 20), (800, 30), (900, 40)]
NEUTRAL_LIGHTNESS = {50: 98, 100: 96, 200: 90, 300: 83, 400: 64, 500: 45, 600: 32, 700: 24, 800: 16, 900: 9}

FONT_PAIRINGS: dict[str, list[tuple[str, str, list[int], str]]] = {
    "elegant": [
        ("Playfair Display", "Source Sans Pro", [400, 600, 700], "golden-ratio"),
        ("Cormorant Garamond", "Lato", [400, 600, 700], "golden-ratio"),
        ("Crimson Text", "Work Sans", [400, 600, 700], "golden-ratio"),
        ("Libre Baskerville", "Open Sans", [400, 600, 700], "golden-ratio"),
        ("Lora", "Nunito Sans", [400, 600, 700], "golden-ratio"),
    ],
    "modern": [
        ("Inter", "Inter", [400, 500, 600, 700], "modular"),
        ("Poppins", "Inter", [400, 500, 600, 700], "modular"),
        ("Plus Jakarta Sans", "DM Sans", [400, 500, 600, 700], "modular"),
        ("Space Grotesk", "Manrope", [400, 500, 600, 700], "modular"),
        ("Outfit", "Inter", [400, 500, 600, 700], "modular"),
    ],
    "bold": [
        ("Montserrat", "Open Sans", [400, 600, 700, 800], "major-third"),
        ("Oswald", "Lato", [400, 600, 700, 800], "major-third"),
        ("Raleway", "Source Sans Pro", [400, 600, 700, 800], "major-third"),
        ("Bebas Neue", "Roboto", [400, 600, 700, 800], "major-third"),
        ("Anton", "PT Sans", [400, 600, 700, 800], "major-third"),
    ],
    "minimal": [
        ("Inter", "Inter", [300, 400, 500, 600], "minor-third"),
        ("Manrope", "Manrope", [300, 400, 500, 600], "minor-third"),
        ("DM Sans", "DM Sans", [300, 400, 500, 600], "minor-third"),
        ("Work Sans", "Work Sans", [300, 400, 500, 600], "minor-third"),
        ("IBM Plex Sans", "IBM Plex Sans", [300, 400, 500, 600], "minor-third"),
    ],
    "creative": [
        ("Abril Fatface", "Lato", [400, 600, 700], "perfect-fourth"),
        ("Righteous", "Open Sans", [400, 600, 700], "perfect-fourth"),
        ("Fredoka", "Nunito", [400, 600, 700], "perfect-fourth"),
        ("Comfortaa", "Source Sans Pro", [400, 600, 700], "perfect-fourth"),
        ("Quicksand", "Work Sans", [400, 600, 700], "perfect-fourth"),
    ],
}
DEFAULT_CATEGORY = "modern"

# Keyword in a personality string -> font category. Ordered.
CATEGORY_KEYWORDS = [
    ("elegant", "elegant"), ("luxury", "elegant"), ("sophisticated", "elegant"), ("refined", "elegant"),
    ("bold", "bold"), ("edgy", "bold"), ("energetic", "bold"), ("rebellious", "bold"), ("dark", "bold"),
    ("minimal", "minimal"), ("clean", "minimal"), ("simple", "minimal"), ("calm", "minimal"),
    ("creative", "creative"), ("playful", "creative"), ("fun", "creative"), ("artistic", "creative"),
    ("quirky", "creative"), ("expressive", "creative"),
]

HERO_LAYOUTS = [
    HeroLayout(name="split-screen", structure="grid-cols-2", image_position="left",
               text_align="left", vertical_align="center", unique_element="diagonal-divider"),
    HeroLayout(name="centered-minimal", structure="flex-col", image_position="background",
               text_align="center", vertical_align="center", unique_element="floating-elements"),
    HeroLayout(name="asymmetric", structure="grid-cols-3", image_position="right-2-cols",
               text_align="left", vertical_align="top", unique_element="geometric-shapes"),
    HeroLayout(name="stacked-visual", structure="flex-col", image_position="top",
               text_align="center", vertical_align="start", unique_element="parallax-scroll"),
    HeroLayout(name="diagonal-split", structure="custom-diagonal", image_position="left-diagonal",
               text_align="right", vertical_align="center", unique_element="animated-border"),
    HeroLayout(name="fullscreen-video", structure="relative", image_position="background-video",
               text_align="center", vertical_align="center", unique_element="video-overlay"),
    HeroLayout(name="carousel-hero", structure="relative", image_position="carousel",
               text_align="left", vertical_align="bottom", unique_element="slide-indicators"),
    HeroLayout(name="bento-grid", structure="grid-bento", image_position="multiple",
               text_align="overlay", vertical_align="mixed", unique_element="grid-animation"),
    HeroLayout(name="typography-led", structure="text-dominant", image_position="none",
               text_align="left-huge", vertical_align="bottom", unique_element="kinetic-type"),
    HeroLayout(name="overlap-card", structure="overlap-container", image_position="right-overlap",
               text_align="left-overlap", vertical_align="center", unique_element="glass-card"),
]

SIGNATURE_ELEMENTS = {
    "elegant": ["floating-geometric-shapes", "subtle-parallax-scroll", "gradient-text-hero",
                "animated-border-reveal", "glass-morphism-cards", "golden-ratio-grid", "elegant-hover-effects"],
    "modern": ["glitch-effect-titles", "3d-card-hover", "particle-background", "animated-gradient-bg",
               "cyber-grid-overlay", "neon-accents", "holographic-elements"],
    "minimal": ["breathing-animation", "line-drawing-svg", "fade-in-sections", "subtle-shadows",
                "clean-transitions", "micro-interactions", "zen-spacing"],
    "bold": ["explosive-animations", "dynamic-typography", "color-shifting-bg", "impact-transitions",
             "bold-geometric-shapes", "high-contrast-elements", "dramatic-shadows"],
    "creative": ["artistic-brush-strokes", "creative-clip-paths", "playful-animations", "color-splash-effects",
                 "organic-shapes", "hand-drawn-elements", "whimsical-interactions"],
}
EXTRA_ELEMENTS = ["custom-cursor", "scroll-indicators", "loading-animation"]

FEATURE_TYPES = ["grid-3", "grid-4", "bento", "alternating", "masonry", "carousel", "list-large"]
FEATURE_STYLE_BY_ART = {
    ArtisticStyle.GLASSMORPHISM: "glass",
    ArtisticStyle.BRUTALIST: "brutal-border",
    ArtisticStyle.NEUMORPHISM: "soft-shadow",
    ArtisticStyle.MINIMALIST: "icon-only",
}
PRODUCT_TYPES = ["grid", "masonry", "carousel", "infinite-scroll"]
FOOTER_STYLES = ["minimal", "mega", "centered", "asymmetric"]
ANIMATION_DURATIONS = [600, 800, 1000]
ANIMATION_EASINGS = ["ease-out", "cubic-bezier(0.25, 0.1, 0.25, 1)", "cubic-bezier(0.4, 0, 0.2, 1)"]


def hsl_to_hex(h: float, s: float, l: float) -> str:
    """HSL (degrees, percent, percent) to '#rrggbb'."""
    s = max(0.0, min(100.0, s))
    l = max(0.0, min(100.0, l)) / 100
    a = s * min(l, 1 - l) / 100

    def channel(n: int) -> int:
        k = (n + h / 30) % 12
        color = l - a * max(min(k - 3, 9 - k, 1), -1)
        return int(255 * color + 0.5)

    return f"#{channel(0):02x}{channel(8):02x}{channel(4):02x}"


def tint_ramp(hue: float, saturation: float, lightness: float) -> dict[int, str]:
    ramp = {weight: hsl_to_hex(hue, saturation * factor, light) for weight, factor, light in LIGHT_STEPS}
    ramp[500] = hsl_to_hex(hue, saturation, lightness)
    for weight, drop in DARK_STEPS:
        ramp[weight] = hsl_to_hex(hue, saturation, max(lightness - drop, 10))
    return dict(sorted(ramp.items()))


def palette_family(industry: str) -> str:
    """Map a free-form industry name onto one of the hue pools."""
    industry = (industry or "").lower()
    if industry in INDUSTRY_HUES:
        return industry
    for keyword, family in FAMILY_KEYWORDS:
        if keyword in industry:
            return family
    return DEFAULT_FAMILY


def personality_category(personality: str) -> str:
    """Map a free-form personality string onto a font/signature category."""
    text = (personality or "").lower()
    if text in FONT_PAIRINGS:
        return text
    for keyword, category in CATEGORY_KEYWORDS:
        if keyword in text:
            return category
    return DEFAULT_CATEGORY


def mood_keyword(text: str) -> str:
    text = (text or "").lower()
    for mood in KNOWN_MOODS:
        if mood in text:
            return mood
    return "balanced"


def alternate_personality(personality: str) -> str:
    """A different font category to retry with when a brief is rejected."""
    category = personality_category(personality)
    return {
        "modern": "elegant",
        "elegant": "bold",
        "bold": "minimal",
        "minimal": "creative",
        "creative": "modern",
    }[category]


class DesignVariationGenerator:
    """Procedural design briefs drawn from curated pools.

    Every random draw goes through ``rng`` so a seeded ``random.Random`` makes
    selection reproducible.
    """

    def __init__(self, rng: random.Random | None = None, strategist: DesignStrategist | None = None):
        self.rng = rng if rng is not None else random.Random()
        self.strategist = strategist if strategist is not None else DesignStrategist()

    def _jitter(self, base: float, percentage: float) -> float:
        spread = base * (percentage / 100)
        return base + self.rng.uniform(-1, 1) * spread

    def _vary_spacing(self, base: int, variation: float = 0.2) -> int:
        """Jitter a size while staying on the 8px grid."""
        varied = self.rng.uniform(base * (1 - variation), base * (1 + variation))
        return int(round(varied / 8) * 8)

    def generate_color_palette(self, industry: str, mood: str) -> ColorPalette:
        hue = self.rng.choice(INDUSTRY_HUES[palette_family(industry)])
        mood = (mood or "").lower()
        saturation = self._jitter(MOOD_SATURATION.get(mood, DEFAULT_SATURATION), 15)
        lightness = self._jitter(MOOD_LIGHTNESS.get(mood, DEFAULT_LIGHTNESS), 15)
        neutral_hue = self.rng.randint(200, 229)

        logger.debug(f"[variation] palette hue={hue} s={saturation:.1f} l={lightness:.1f} ({industry}/{mood})")
        return ColorPalette(
            primary=tint_ramp(hue, saturation, lightness),
            secondary=tint_ramp((hue + 180) % 360, saturation, lightness),
            accent=tint_ramp((hue + 120) % 360, saturation, lightness),
            neutral={weight: hsl_to_hex(neutral_hue, 5, light) for weight, light in NEUTRAL_LIGHTNESS.items()},
            base_hue=hue,
        )

    def select_font_pairing(self, personality: str, industry: str) -> FontPairing:
        category = personality_category(personality)
        heading, body, weights, scale = self.rng.choice(FONT_PAIRINGS[category])
        return FontPairing(heading=heading, body=body, weights=list(weights), scale=scale, category=category)

    def generate_hero_layout(self, industry: str, personality: str) -> HeroLayout:
        return self.rng.choice(HERO_LAYOUTS).model_copy()

    def generate_artistic_style(self, industry: str, mood: str) -> ArtisticStyle:
        family = palette_family(industry)
        mood = (mood or "").lower()
        # Repeated entries weight the draw
        options = [ArtisticStyle.MINIMALIST, ArtisticStyle.CORPORATE_CLEAN]
        if mood in ("bold", "dark") or family == "tech":
            options += [ArtisticStyle.DARK_MODE_TECH, ArtisticStyle.BRUTALIST]
        if mood == "elegant" or family == "luxury":
            options += [ArtisticStyle.GLASSMORPHISM, ArtisticStyle.SWISS_STYLE, ArtisticStyle.MINIMALIST]
        if family in ("creative", "fashion"):
            options += [ArtisticStyle.RETRO_POP, ArtisticStyle.BRUTALIST, ArtisticStyle.GLASSMORPHISM]
        if family in ("restaurant", "food") or mood == "warm":
            options += [ArtisticStyle.NEUMORPHISM, ArtisticStyle.RETRO_POP]
        if family == "business":
            options += [ArtisticStyle.CORPORATE_CLEAN, ArtisticStyle.SWISS_STYLE]
        return self.rng.choice(options)

    def select_signature_elements(self, personality: str) -> list[str]:
        category = personality_category(personality)
        return [self.rng.choice(SIGNATURE_ELEMENTS[category]), self.rng.choice(EXTRA_ELEMENTS)]

    def generate_spacing(self, personality: str, style: ArtisticStyle) -> SpacingTokens:
        category = personality_category(personality)
        narrow = style in (ArtisticStyle.SWISS_STYLE, ArtisticStyle.MINIMALIST)
        return SpacingTokens(
            scale={"minimal": "tight", "bold": "generous"}.get(category, "balanced"),
            header_height=self._vary_spacing(80, 0.2),
            hero_height=int(round(self.rng.uniform(65 * 0.9, 65 * 1.1))),
            section_gap=self._vary_spacing(96, 0.3),
            container_width="max-w-4xl" if narrow else "max-w-7xl",
        )

    def generate_animations(self, personality: str) -> AnimationTokens:
        category = personality_category(personality)
        return AnimationTokens(
            style={"minimal": "subtle", "bold": "dramatic"}.get(category, "smooth"),
            duration_ms=self.rng.choice(ANIMATION_DURATIONS),
            easing=self.rng.choice(ANIMATION_EASINGS),
        )

    def generate_design_brief(
        self,
        industry: str,
        personality: str,
        mood: str,
        manifest: IntentManifest | None = None,
    ) -> DesignBrief:
        """Compose a full brief. Manifest-driven layout rules override the random draws."""
        style = self.generate_artistic_style(industry, mood)
        palette = self.generate_color_palette(industry, mood)
        typography = self.select_font_pairing(personality, industry)
        layouts = SectionLayouts(
            hero=self.generate_hero_layout(industry, personality),
            features=FeatureLayout(
                type=self.rng.choice(FEATURE_TYPES),
                style=FEATURE_STYLE_BY_ART.get(style, "clean-card"),
            ),
            products=ProductLayout(type=self.rng.choice(PRODUCT_TYPES), columns=self.rng.choice([3, 4, 5])),
            footer=FooterLayout(style=self.rng.choice(FOOTER_STYLES)),
        )

        if manifest is not None:
            recommended = self.strategist.recommend_layouts(manifest)
            layouts.hero = recommended.hero
            layouts.features = FeatureLayout(type=recommended.features.type, style=recommended.features.style)
            layouts.products = recommended.products
            layouts.footer = recommended.footer

        brief = DesignBrief(
            industry=industry,
            personality=personality,
            mood=mood,
            artistic_style=style,
            color_palette=palette,
            typography=typography,
            spacing=self.generate_spacing(personality, style),
            layouts=layouts,
            animations=self.generate_animations(personality),
            unique_elements=self.select_signature_elements(personality),
        )
        logger.info(
            f"[variation] Brief for {industry}: style={style.value} primary={palette.primary[500]} "
            f"fonts={typography.key} hero={layouts.hero.name}"
        )
        return brief

    def generate_variation_options(self, category: str, industry: str, count: int = 3) -> list[dict]:
        """Distinct alternatives for one design dimension ('hero', 'palette' or 'fonts')."""
        if category not in ("hero", "palette", "fonts"):
            raise ValueError(f"Unknown variation category: {category}")

        options = []
        used: set[str] = set()
        for i in range(count):
            option = None
            for _ in range(5):
                if category == "hero":
                    layout = self.generate_hero_layout(industry, self.rng.choice(["modern", "bold", "minimal", "creative"]))
                    option, option_id = layout.model_dump(by_alias=True), layout.name
                elif category == "palette":
                    mood = ["minimal", "vibrant", "elegant", "bold", "dark"][i % 5]
                    palette = self.generate_color_palette(industry, mood)
                    option = palette.model_dump(by_alias=True) | {"name": f"{mood.capitalize()} Theme"}
                    option_id = mood
                else:
                    style = ["modern", "elegant", "bold", "minimal", "creative"][i % 5]
                    fonts = self.select_font_pairing(style, industry)
                    option = fonts.model_dump(by_alias=True) | {"style": style}
                    option_id = fonts.heading
                if option_id not in used:
                    used.add(option_id)
                    break
            if option is not None:
                options.append(option)
        return options
