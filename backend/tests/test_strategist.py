from sitesmith.models import BrandIdentity, ContentStrategy, IntentManifest, ManifestCore, ManifestStrategy
from sitesmith.services.strategist import DesignStrategist


def _manifest(industry="agency", goal="Build trust", personality="Professional", tone="Professional", sections=None):
    strategy = ManifestStrategy(industry=industry)
    if sections is not None:
        strategy = ManifestStrategy(industry=industry, suggested_sections=sections)
    return IntentManifest(
        core=ManifestCore(purpose="test", primary_goal=goal),
        brand=BrandIdentity(personality=personality),
        strategy=strategy,
        content_strategy=ContentStrategy(tone=tone),
    )


def test_conversion_goal_gets_split_screen_hero():
    layouts = DesignStrategist().recommend_layouts(_manifest(goal="Generate leads for the sales team"))
    assert layouts.hero.name == "split-screen-conversion"
    assert layouts.hero.unique_element == "floating-card-form"


def test_goal_rule_wins_over_industry_rule():
    layouts = DesignStrategist().recommend_layouts(_manifest(industry="saas", goal="Convert visitors into trial signups"))
    assert layouts.hero.name == "split-screen-conversion"


def test_industry_rules():
    strategist = DesignStrategist()
    assert strategist.recommend_layouts(_manifest(industry="portfolio")).hero.name == "typography-led"
    assert strategist.recommend_layouts(_manifest(industry="saas")).hero.name == "dashboard-preview"
    assert strategist.recommend_layouts(_manifest(industry="bakery")).hero.name == "balanced-classic"


def test_feature_rules():
    strategist = DesignStrategist()
    many = strategist.recommend_layouts(_manifest(sections=[f"S{i}" for i in range(7)]))
    assert (many.features.type, many.features.style) == ("bento-grid", "compact")

    playful = strategist.recommend_layouts(_manifest(personality="Playful"))
    assert playful.features.type == "alternating-zigzag"

    plain = strategist.recommend_layouts(_manifest())
    assert (plain.features.type, plain.features.style) == ("grid-3", "clean")


def test_products_and_footer():
    strategist = DesignStrategist()
    luxe = strategist.recommend_layouts(_manifest(tone="Luxury", goal="Inform visitors"))
    assert (luxe.products.type, luxe.products.columns) == ("carousel-large", 1)
    assert luxe.footer.style == "mega-menu"

    plain = strategist.recommend_layouts(_manifest())
    assert (plain.products.type, plain.products.columns) == ("grid", 3)
    assert plain.footer.style == "minimal-centered"


def test_identical_input_identical_output():
    strategist = DesignStrategist()
    manifest = _manifest(industry="tech-startup")
    assert strategist.recommend_layouts(manifest) == strategist.recommend_layouts(manifest)


def test_recommendations_are_independent_copies():
    strategist = DesignStrategist()
    first = strategist.recommend_layouts(_manifest())
    first.hero.name = "changed"
    assert strategist.recommend_layouts(_manifest()).hero.name == "balanced-classic"
