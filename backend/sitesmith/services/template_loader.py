import os
import re
import json
import logging
from string import Template
from urllib.parse import quote_plus

from sitesmith.models import DesignBrief, GeneratedFile, IntentManifest

logger = logging.getLogger(__name__)

TEMPLATE_ROOT = os.path.join(os.path.dirname(__file__), "..", "templates")
SCAFFOLD_GROUP = "vite_react"
COMPONENT_GROUP = "components"

LANGUAGES = {
    ".tsx": "typescript",
    ".ts": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".json": "json",
    ".css": "css",
    ".html": "html",
    ".md": "markdown",
    ".sql": "sql",
}


def language_for_path(path: str) -> str:
    _, ext = os.path.splitext(path)
    return LANGUAGES.get(ext.lower(), "plaintext")


def get_template_files(group: str = SCAFFOLD_GROUP) -> list[dict]:
    """Read every file under ``templates/<group>``.

    Returns a list of dicts: [{"path": "relative/path", "content": "..."}],
    sorted by path so scaffolds are emitted in a stable order.
    """
    files = []
    template_root = os.path.abspath(os.path.join(TEMPLATE_ROOT, group))

    for dirpath, _, filenames in os.walk(template_root):
        for filename in filenames:
            full_path = os.path.join(dirpath, filename)
            rel_path = os.path.relpath(full_path, template_root).replace(os.sep, "/")
            with open(full_path, "r", encoding="utf-8") as f:
                files.append({"path": rel_path, "content": f.read()})

    files.sort(key=lambda f: f["path"])
    logger.debug(f"[templates] Loaded {len(files)} files from {group}")
    return files


def get_template(group: str, path: str) -> str | None:
    for f in get_template_files(group):
        if f["path"] == path:
            return f["content"]
    return None


def render_template(content: str, tokens: dict) -> str:
    """Substitute ``$name`` / ``${name}`` tokens; unknown tokens are left as-is."""
    return Template(content).safe_substitute({k: str(v) for k, v in tokens.items()})


def slugify(text: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", (text or "").lower()).strip("-")
    return slug or "site"


def design_tokens(brief: DesignBrief, manifest: IntentManifest | None = None, brand: str | None = None) -> dict:
    """Flatten a brief (and manifest copy) into template tokens."""
    palette = brief.color_palette
    fonts = brief.typography
    tokens = {
        "heading_font": fonts.heading,
        "body_font": fonts.body,
        "font_query": "&".join(
            f"family={quote_plus(name)}:wght@{';'.join(str(w) for w in fonts.weights)}"
            for name in dict.fromkeys([fonts.heading, fonts.body])
        ),
        "artistic_style": brief.artistic_style.value,
        "hero_layout": brief.layouts.hero.name,
        "section_gap": brief.spacing.section_gap,
        "header_height": brief.spacing.header_height,
        "container_px": 896 if brief.spacing.container_width == "max-w-4xl" else 1280,
        "duration_ms": brief.animations.duration_ms,
    }
    for name in ("primary", "secondary", "accent", "neutral"):
        ramp = getattr(palette, name)
        tokens[f"{name}_ramp"] = json.dumps({str(k): v for k, v in ramp.items()})
        for weight, color in ramp.items():
            tokens[f"{name}_{weight}"] = color

    if manifest is not None:
        brand = brand or manifest.brand.name or manifest.industry.replace("-", " ").title()
        tokens.update({
            "brand": brand,
            "title": f"{brand} | {manifest.brand.tagline}" if manifest.brand.tagline else brand,
            "description": manifest.core.purpose.replace('"', "'"),
            "project_slug": slugify(brand),
        })
    return tokens


def build_project_files(manifest: IntentManifest, brief: DesignBrief, brand: str | None = None) -> list[GeneratedFile]:
    """Render the static project scaffold for this run's manifest and brief."""
    tokens = design_tokens(brief, manifest, brand)
    return [
        GeneratedFile(path=f["path"], content=render_template(f["content"], tokens), language=language_for_path(f["path"]))
        for f in get_template_files(SCAFFOLD_GROUP)
    ]


def assemble_app(component_names: list[str]) -> GeneratedFile:
    """Build src/App.tsx rendering every component in order."""
    if not component_names:
        raise ValueError("Cannot assemble an app without components")

    imports = "\n".join(f'import {name} from "./components/{name}";' for name in component_names)
    body = "\n".join(f"      <{name} />" for name in component_names)
    content = (
        f"{imports}\n\n"
        "export default function App() {\n"
        "  return (\n"
        '    <main className="min-h-screen">\n'
        f"{body}\n"
        "    </main>\n"
        "  );\n"
        "}\n"
    )
    return GeneratedFile(path="src/App.tsx", content=content, language="typescript")
