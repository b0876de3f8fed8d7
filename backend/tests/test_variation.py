import random

import pytest

from sitesmith.services.variation import (
    ANIMATION_DURATIONS,
    ANIMATION_EASINGS,
    FONT_PAIRINGS,
    HERO_LAYOUTS,
    INDUSTRY_HUES,
    DesignVariationGenerator,
    alternate_personality,
    hsl_to_hex,
    mood_keyword,
    palette_family,
    personality_category,
)

RAMP_WEIGHTS = [50, 100, 200, 300, 400, 500, 600, 700, 800, 900]


def test_hsl_to_hex_primaries():
    assert hsl_to_hex(0, 100, 50) == "#ff0000"
    assert hsl_to_hex(120, 100, 50) == "#00ff00"
    assert hsl_to_hex(0, 0, 100) == "#ffffff"


def test_same_seed_same_brief():
    a = DesignVariationGenerator(random.Random(42)).generate_design_brief("restaurant", "modern", "warm")
    b = DesignVariationGenerator(random.Random(42)).generate_design_brief("restaurant", "modern", "warm")
    assert a.model_dump() == b.model_dump()


def test_palette_ramps(fixed_rng):
    palette = DesignVariationGenerator(fixed_rng).generate_color_palette("restaurant", "warm")

    assert palette.base_hue == INDUSTRY_HUES["restaurant"][0]
    for ramp in (palette.primary, palette.secondary, palette.accent, palette.neutral):
        assert list(ramp) == RAMP_WEIGHTS
        assert all(color.startswith("#") and len(color) == 7 for color in ramp.values())
    # Lightness decreases along the ramp
    assert palette.primary[50] != palette.primary[900]


def test_palette_hue_comes_from_industry_pool():
    generator = DesignVariationGenerator(random.Random(7))
    for _ in range(10):
        assert generator.generate_color_palette("tech", "dark").base_hue in INDUSTRY_HUES["tech"]


def test_font_pairing_from_personality_pool(fixed_rng):
    fonts = DesignVariationGenerator(fixed_rng).select_font_pairing("Elegant", "luxury")
    assert fonts.category == "elegant"
    assert fonts.key == "Playfair Display+Source Sans Pro"
    assert fonts.heading in [p[0] for p in FONT_PAIRINGS["elegant"]]


def test_hero_layout_is_a_copy(fixed_rng):
    layout = DesignVariationGenerator(fixed_rng).generate_hero_layout("tech", "modern")
    layout.name = "mutated"
    assert HERO_LAYOUTS[0].name == "split-screen"


def test_manifest_layouts_override_random_draws(fixed_rng, sample_manifest):
    generator = DesignVariationGenerator(fixed_rng)
    without = generator.generate_design_brief("restaurant", "modern", "warm")
    with_manifest = generator.generate_design_brief("restaurant", "modern", "warm", sample_manifest)

    assert without.layouts.hero.name == "split-screen"
    assert with_manifest.layouts.hero.name == "split-screen-conversion"
    assert with_manifest.layouts.footer.style == "minimal-centered"


def test_brief_carries_its_inputs(sample_brief):
    assert sample_brief.industry == "restaurant"
    assert sample_brief.mood == "warm"
    assert len(sample_brief.unique_elements) == 2
    assert sample_brief.spacing.section_gap % 8 == 0


@pytest.mark.parametrize("personality, style", [("minimal", "subtle"), ("bold", "dramatic"), ("elegant", "smooth")])
def test_animation_tokens(fixed_rng, personality, style):
    animations = DesignVariationGenerator(fixed_rng).generate_animations(personality)

    assert animations.style == style
    assert animations.duration_ms == ANIMATION_DURATIONS[0]
    assert animations.easing == ANIMATION_EASINGS[0]
    assert set(animations.model_dump(by_alias=True)) == {"style", "durationMs", "easing"}


def test_variation_options():
    generator = DesignVariationGenerator(random.Random(3))

    palettes = generator.generate_variation_options("palette", "restaurant", 3)
    assert [p["name"] for p in palettes] == ["Minimal Theme", "Vibrant Theme", "Elegant Theme"]

    fonts = generator.generate_variation_options("fonts", "restaurant", 2)
    assert [f["style"] for f in fonts] == ["modern", "elegant"]

    heroes = generator.generate_variation_options("hero", "restaurant", 3)
    assert len(heroes) == 3

    with pytest.raises(ValueError):
        generator.generate_variation_options("spacing", "restaurant")


def test_mapping_helpers():
    assert palette_family("restaurant") == "restaurant"
    assert palette_family("cozy-coffee-bar") == "food"
    assert palette_family("skate-shop") == "ecommerce"
    assert palette_family("unknown") == "business"

    assert personality_category("Bold") == "bold"
    assert personality_category("Rebellious") == "bold"
    assert personality_category("Professional") == "modern"

    assert mood_keyword("Warm and inviting") == "warm"
    assert mood_keyword("Professional") == "balanced"


def test_alternate_personality_cycles_through_every_category():
    seen = set()
    personality = "modern"
    for _ in range(5):
        personality = alternate_personality(personality)
        seen.add(personality)
    assert seen == set(FONT_PAIRINGS)
    assert alternate_personality("Professional") == "elegant"
