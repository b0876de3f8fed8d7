import re
import logging

from sitesmith.models import DesignBrief, IntentManifest
from sitesmith.services.json_extract import strip_fences

logger = logging.getLogger(__name__)

COMPONENTS = ["Hero", "Features", "About", "CTA", "Footer"]

COMPONENT_BRIEFS = {
    "Hero": "Above-the-fold hero: brand, headline, sub-headline, primary CTA and a hero image.",
    "Features": "Three to six key benefits or differentiators as cards or blocks, each with a lucide icon.",
    "About": "Story/mission section with an image and two or three credibility stats.",
    "CTA": "Focused call-to-action band with a single prominent button (anchor id=\"contact\").",
    "Footer": "Footer with brand name, section links, and copyright line.",
}

LUCIDE_ICONS = {
    "Star", "ChevronDown", "ChevronUp", "ChevronRight", "ChevronLeft",
    "Menu", "X", "Search", "ArrowRight", "ArrowLeft", "ArrowUpRight", "ExternalLink",
    "Check", "CheckCircle", "CheckCircle2", "Heart", "ThumbsUp", "Share2",
    "Github", "Twitter", "Linkedin", "Facebook", "Instagram", "Youtube",
    "Mail", "Phone", "MapPin", "Calendar", "Clock", "User", "Users",
    "Globe", "Zap", "Award", "TrendingUp", "BarChart", "Shield", "Lock",
    "Sparkles", "Rocket", "Flame", "Target", "Compass", "Coffee", "Utensils",
    "ShoppingCart", "ShoppingBag", "Gift", "Percent", "CreditCard", "DollarSign",
    "Play", "Pause", "Camera", "Image", "Music", "Headphones", "Sun", "Moon",
    "Leaf", "Droplet", "Wind", "Mountain", "Wand2", "Lightbulb", "Layers", "Box",
    "Package", "Truck", "Dumbbell", "Activity", "Smile", "MessageCircle", "Send",
}


def build_component_prompt(
    component: str,
    prompt: str,
    manifest: IntentManifest,
    brief: DesignBrief,
    brand: str,
    images: dict[str, str],
) -> str:
    """Prompt for one self-contained React + Tailwind section component."""
    palette = brief.color_palette
    hero = brief.layouts.hero
    image_lines = "\n".join(f"- {slot}: {url}" for slot, url in images.items()) or "- none"

    return (
        f"Write the `{component}` section of a website for **{brand}**.\n\n"
        f"## Request\n{prompt.strip()}\n\n"
        "## Business\n"
        f"- Industry: {manifest.industry} ({manifest.strategy.sub_category})\n"
        f"- Goal: {manifest.goal}\n"
        f"- Audience: {manifest.core.target_audience.description} ({manifest.core.target_audience.age_range})\n"
        f"- Tone: {manifest.tone}; personality: {manifest.personality}\n"
        f"- Differentiators: {', '.join(manifest.content_strategy.key_differentiators) or 'n/a'}\n\n"
        "## Design brief\n"
        f"- Artistic style: {brief.artistic_style.value}\n"
        f"- Colors: primary {palette.primary[500]} (dark {palette.primary[800]}, light {palette.primary[100]}), "
        f"secondary {palette.secondary[500]}, accent {palette.accent[500]}, text {palette.neutral[900]}, "
        f"background {palette.neutral[50]}\n"
        f"- Fonts: headings '{brief.typography.heading}', body '{brief.typography.body}' (weights {brief.typography.weights})\n"
        f"- Hero layout: {hero.name} ({hero.structure}, image {hero.image_position}, text {hero.text_align}, "
        f"signature {hero.unique_element})\n"
        f"- Features: {brief.layouts.features.type} / {brief.layouts.features.style}; "
        f"footer: {brief.layouts.footer.style}\n"
        f"- Spacing: section gap {brief.spacing.section_gap}px, container {brief.spacing.container_width}\n"
        f"- Motion: {brief.animations.style}, {brief.animations.duration_ms}ms {brief.animations.easing}\n"
        f"- Signature elements: {', '.join(brief.unique_elements)}\n\n"
        f"## Images\n{image_lines}\n\n"
        f"## This component\n{COMPONENT_BRIEFS.get(component, f'A {component} section.')}\n\n"
        "## Rules\n"
        "- React 18 + TypeScript + Tailwind CSS. Default export a function component with ZERO props.\n"
        "- Icons only from lucide-react; import every icon you use.\n"
        "- Use the exact hex colors above via Tailwind arbitrary values or inline styles.\n"
        "- Write real, specific copy for this business. No lorem ipsum.\n"
        "- Output ONLY the TSX source, no markdown fences, no explanation."
    )


def build_enhance_prompt(prompt: str) -> str:
    return (
        "Rewrite this website request as a clear, specific brief in 2-4 sentences. "
        "Keep every fact the user gave; add the likely audience, tone and must-have sections. "
        "Return only the rewritten request.\n\n"
        f"Request: {prompt.strip()}"
    )


def clean_code(content: str) -> str:
    """Clean one generated component: fences, preamble, smart quotes, missing icon imports."""
    content = strip_fences(content or "")

    # Drop any prose before the first line of code
    if not re.match(r'(?:import |export |const |function )', content):
        code_start = re.search(r'^(?:import |export |const |function )', content, re.MULTILINE)
        if code_start:
            content = content[code_start.start():]

    content = content.replace("\u201c", '"').replace("\u201d", '"')
    content = content.replace("\u2018", "'").replace("\u2019", "'")
    for ch in ["\u200b", "\u200c", "\u200d", "\ufeff", "\u00a0"]:
        content = content.replace(ch, "")

    # Next.js directive is meaningless in a Vite app
    content = re.sub(r'^["\']use client["\'];?\s*\n', "", content)

    return _fix_missing_imports(content.strip()) + "\n"


def is_component_source(content: str) -> bool:
    return "export default" in content and "return" in content


def _fix_missing_imports(content: str) -> str:
    """Add lucide-react imports for icons used in JSX but never imported."""
    jsx_tags = set(re.findall(r'<([A-Z][a-zA-Z0-9]+)[\s/>]', content))

    imported = set()
    for m in re.finditer(r'import\s+\{([^}]+)\}\s+from\s+[\'"]([^\'"]+)[\'"]', content):
        imported.update(n.strip().split(" as ")[0].strip() for n in m.group(1).split(","))
    for m in re.finditer(r'import\s+(\w+)\s+from\s+[\'"]', content):
        imported.add(m.group(1))

    missing = sorted(tag for tag in jsx_tags if tag not in imported and tag in LUCIDE_ICONS)
    if not missing:
        return content

    logger.warning(f"[writer] Auto-fixing missing lucide imports: {', '.join(missing)}")

    lucide_import = re.search(r'(import\s+\{)([^}]+)(\}\s+from\s+[\'"]lucide-react[\'"];?)', content)
    if lucide_import:
        existing = lucide_import.group(2).strip().rstrip(",")
        return (
            content[:lucide_import.start()]
            + f"{lucide_import.group(1)} {existing}, {', '.join(missing)} {lucide_import.group(3)}"
            + content[lucide_import.end():]
        )
    return f'import {{ {", ".join(missing)} }} from "lucide-react";\n' + content
