"""Static design knowledge injected into analysis prompts and used by the
heuristic classifier when no backend answers."""

import json
import re

DESIGN_HEURISTICS = {
    "hierarchy": [
        "The H1 headline is the most dominant text element above the fold.",
        "CTA buttons contrast strongly with their background (complementary or triadic color).",
        "Section headings get twice as much whitespace above as below.",
        "Body line length stays under 75 characters on desktop.",
    ],
    "colors": {
        "trust": "Blue/Navy. Banks, tech, medical.",
        "energy": "Red/Orange accents. Fitness, food, startups.",
        "luxury": "Black/Gold/White or deep purple. Fashion, jewelry, high-end real estate.",
        "growth": "Green/earthy tones. Eco, finance, wellness.",
        "playful": "Pink/Yellow/bright purple. Kids, creative agencies, apps.",
    },
    "ux_laws": {
        "fitts": "Touch targets are at least 44px tall.",
        "hick": "At most 7 navigation items.",
        "jakob": "Headers and footers follow familiar patterns.",
        "miller": "Chunk content into groups of 5-9 items.",
    },
    "accessibility": [
        "Contrast ratio of at least 4.5:1 for body text.",
        "Every image has descriptive alt text.",
        "Focus states are visible for keyboard navigation.",
    ],
    "conversion": [
        "Primary CTA visible above the fold.",
        "Social proof right after the hero or benefits section.",
        "Forms ask for as few fields as possible.",
        "Buttons use action words ('Get Started Free', not 'Submit').",
    ],
}

INDUSTRY_BLUEPRINTS = {
    "ecommerce": {
        "required_sections": ["Hero with Product", "Featured Collection", "Social Proof", "Benefits Bar", "Newsletter"],
        "vibe": "Clean, Product-focused, Trustworthy",
        "layout": "Grid-heavy, large imagery",
        "goal": "Sell products online",
    },
    "saas": {
        "required_sections": ["Hero with Dashboard Preview", "Logo Wall", "Feature Grid", "How it Works", "Pricing Tables", "FAQ"],
        "vibe": "Modern, Tech-forward, Clean",
        "layout": "Alternating feature blocks, extensive whitespace",
        "goal": "Convert visitors into trial signups",
    },
    "portfolio": {
        "required_sections": ["Personal Intro Hero", "Project Gallery", "Services List", "About Me", "Contact"],
        "vibe": "Minimalist, Expressive, Unique",
        "layout": "Masonry grids, creative typography",
        "goal": "Showcase work and attract clients",
    },
    "restaurant": {
        "required_sections": ["Hero with Signature Dish", "Menu Preview", "Reservation CTA", "Location/Hours", "Chef's Story"],
        "vibe": "Appetizing, Warm, Textural",
        "layout": "Image backgrounds, centered text",
        "goal": "Book reservations and drive visits",
    },
    "agency": {
        "required_sections": ["Bold Statement Hero", "Case Studies", "Client Logos", "Service Breakdown", "Let's Talk"],
        "vibe": "Bold, Professional, Creative",
        "layout": "Big type, asymmetric layouts",
        "goal": "Inform visitors and generate leads",
    },
}

DEFAULT_BLUEPRINT = "agency"

# (keyword, industry, sub-category, blueprint). Ordered: first match wins.
INDUSTRY_KEYWORDS = [
    ("skate", "skate-shop", "retail", "ecommerce"),
    ("board", "skate-shop", "retail", "ecommerce"),
    ("surf", "surf-shop", "retail", "ecommerce"),
    ("restaurant", "restaurant", "hospitality", "restaurant"),
    ("food", "restaurant", "hospitality", "restaurant"),
    ("bistro", "restaurant", "hospitality", "restaurant"),
    ("cafe", "cafe", "hospitality", "restaurant"),
    ("coffee", "cafe", "hospitality", "restaurant"),
    ("bakery", "bakery", "hospitality", "restaurant"),
    ("photo", "portfolio", "creative", "portfolio"),
    ("portfolio", "portfolio", "creative", "portfolio"),
    ("art", "portfolio", "creative", "portfolio"),
    ("saas", "saas", "software", "saas"),
    ("software", "saas", "software", "saas"),
    ("tech", "tech-startup", "saas", "saas"),
    ("startup", "tech-startup", "saas", "saas"),
    ("app", "mobile-app", "saas", "saas"),
    ("fashion", "fashion", "retail", "ecommerce"),
    ("cloth", "fashion", "retail", "ecommerce"),
    ("jewel", "luxury", "retail", "ecommerce"),
    ("luxury", "luxury", "retail", "ecommerce"),
    ("gym", "fitness", "wellness", "agency"),
    ("fitness", "fitness", "wellness", "agency"),
    ("yoga", "fitness", "wellness", "agency"),
    ("health", "health", "wellness", "agency"),
    ("clinic", "health", "medical", "agency"),
    ("bank", "finance", "services", "agency"),
    ("invest", "finance", "services", "agency"),
    ("finance", "finance", "services", "agency"),
    ("game", "gaming", "entertainment", "saas"),
    ("gaming", "gaming", "entertainment", "saas"),
    ("agency", "agency", "services", "agency"),
    ("shop", "ecommerce", "retail", "ecommerce"),
    ("store", "ecommerce", "retail", "ecommerce"),
]

DEFAULT_INDUSTRY = ("business", "general", DEFAULT_BLUEPRINT)

# (keyword, personality, tone). Ordered: first match wins.
PERSONALITY_KEYWORDS = [
    ("edgy", "Bold", "Rebellious"),
    ("dark", "Bold", "Dark"),
    ("bold", "Bold", "Energetic"),
    ("luxury", "Elegant", "Sophisticated"),
    ("elegant", "Elegant", "Sophisticated"),
    ("retro", "Creative", "Nostalgic"),
    ("minimal", "Minimal", "Calm"),
    ("clean", "Minimal", "Calm"),
    ("playful", "Playful", "Fun"),
    ("fun", "Playful", "Fun"),
    ("warm", "Friendly", "Warm"),
    ("cozy", "Friendly", "Warm"),
    ("creative", "Creative", "Expressive"),
    ("artistic", "Creative", "Expressive"),
    ("corporate", "Professional", "Formal"),
    ("glass", "Modern", "Futuristic"),
]


def keyword_matches(keyword: str, text: str) -> bool:
    """True when ``keyword`` starts a word in ``text`` (so 'app' hits 'apps' but not 'happy')."""
    return re.search(rf"\b{re.escape(keyword)}", text) is not None


def classify_industry(text: str) -> tuple[str, str, str]:
    """Return (industry, sub-category, blueprint key) for lower-cased ``text``."""
    for keyword, industry, sub_category, blueprint in INDUSTRY_KEYWORDS:
        if keyword_matches(keyword, text):
            return industry, sub_category, blueprint
    return DEFAULT_INDUSTRY


def classify_personality(text: str) -> tuple[str, str] | None:
    for keyword, personality, tone in PERSONALITY_KEYWORDS:
        if keyword_matches(keyword, text):
            return personality, tone
    return None


def knowledge_snippet() -> str:
    """Compact context block for the analysis prompt."""
    return (
        f"Industry blueprints: {', '.join(INDUSTRY_BLUEPRINTS)}\n"
        f"UX laws: {json.dumps(DESIGN_HEURISTICS['ux_laws'])}\n"
        f"Color psychology: {json.dumps(DESIGN_HEURISTICS['colors'])}\n"
        f"Conversion rules: {' '.join(DESIGN_HEURISTICS['conversion'])}"
    )
