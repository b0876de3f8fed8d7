import math
import logging
from collections import Counter, deque
from typing import Callable, NamedTuple

from sitesmith.errors import SimilarityRejected
from sitesmith.models import DesignBrief, DesignRecord, SimilarityScore
from sitesmith.services.variation import alternate_personality

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.75
DEFAULT_WINDOW = 10
DEFAULT_CAPACITY = 100

MAX_RGB_DISTANCE = math.sqrt(3 * 255 ** 2)

SERIF_FONTS = {
    "Playfair Display", "Cormorant Garamond", "Crimson Text",
    "Libre Baskerville", "Lora", "Merriweather", "Abril Fatface",
}

LAYOUT_GROUPS = {
    "grid": {"split-screen", "asymmetric", "bento-grid", "overlap-card", "split-screen-conversion", "balanced-classic"},
    "centered": {"centered-minimal", "stacked-visual", "dashboard-preview"},
    "creative": {"diagonal-split", "fullscreen-video", "carousel-hero", "typography-led"},
}

SUGGESTED_COLORS = ["#3b82f6", "#ef4444", "#10b981", "#f59e0b", "#8b5cf6", "#ec4899", "#06b6d4", "#84cc16"]
SUGGESTED_FONTS = [
    "Inter+Inter", "Playfair Display+Source Sans Pro", "Montserrat+Open Sans",
    "Poppins+Inter", "Cormorant Garamond+Lato", "Space Grotesk+Manrope",
]
SUGGESTED_LAYOUTS = ["split-screen", "centered-minimal", "asymmetric", "stacked-visual", "diagonal-split"]


def hex_to_rgb(color: str) -> tuple[int, int, int] | None:
    value = (color or "").strip().lstrip("#")
    if len(value) == 3:
        value = "".join(c * 2 for c in value)
    if len(value) != 6:
        return None
    try:
        return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)
    except ValueError:
        return None


def color_similarity(a: str, b: str) -> float:
    if a.lower() == b.lower():
        return 1.0
    rgb_a, rgb_b = hex_to_rgb(a), hex_to_rgb(b)
    if rgb_a is None or rgb_b is None:
        return 0.0
    distance = math.dist(rgb_a, rgb_b)
    return max(0.0, 1.0 - distance / MAX_RGB_DISTANCE)


def _font_category(pairing: str) -> str:
    heading = pairing.split("+", 1)[0].strip()
    return "serif" if heading in SERIF_FONTS else "sans"


def font_similarity(a: str, b: str) -> float:
    if a == b:
        return 1.0
    if a.split("+", 1)[0].strip() == b.split("+", 1)[0].strip():
        return 0.7
    if _font_category(a) == _font_category(b):
        return 0.3
    return 0.0


def _layout_group(layout: str) -> str | None:
    for group, members in LAYOUT_GROUPS.items():
        if layout in members:
            return group
    return None


def layout_similarity(a: str, b: str) -> float:
    if a == b:
        return 1.0
    group = _layout_group(a)
    if group is not None and group == _layout_group(b):
        return 0.5
    return 0.0


def is_too_similar(overall: float, threshold: float = DEFAULT_THRESHOLD) -> bool:
    return overall > threshold


def check_similarity(
    candidate: DesignRecord,
    history: list[DesignRecord],
    threshold: float = DEFAULT_THRESHOLD,
    window: int = DEFAULT_WINDOW,
) -> SimilarityScore:
    """Score ``candidate`` against the last ``window`` records of its industry."""
    recent = [r for r in history if r.industry == candidate.industry][-window:] if window > 0 else []
    if not recent:
        return SimilarityScore()

    color = sum(color_similarity(candidate.primary_color, r.primary_color) for r in recent) / len(recent)
    font = sum(font_similarity(candidate.font_pairing, r.font_pairing) for r in recent) / len(recent)
    layout = sum(layout_similarity(candidate.layout_type, r.layout_type) for r in recent) / len(recent)
    overall = (color + font + layout) / 3

    return SimilarityScore(
        color_sim=color,
        font_sim=font,
        layout_sim=layout,
        overall=overall,
        too_similar=is_too_similar(overall, threshold),
    )


class VettedBrief(NamedTuple):
    brief: DesignBrief
    score: SimilarityScore
    regenerated: bool


class SimilarityGuard:
    """Process-lifetime design history with near-duplicate detection.

    The history is a ring buffer: once ``capacity`` records are held the
    oldest is evicted on every insert.
    """

    def __init__(
        self,
        threshold: float = DEFAULT_THRESHOLD,
        window: int = DEFAULT_WINDOW,
        capacity: int = DEFAULT_CAPACITY,
    ):
        self.threshold = threshold
        self.window = window
        self.history: deque[DesignRecord] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self.history.maxlen

    def check(self, candidate: DesignRecord) -> SimilarityScore:
        return check_similarity(candidate, list(self.history), self.threshold, self.window)

    def record(self, candidate: DesignRecord) -> None:
        self.history.append(candidate)

    def ensure_distinct(self, brief: DesignBrief) -> SimilarityScore:
        """Score ``brief`` against history; raises SimilarityRejected when it is too close."""
        score = self.check(DesignRecord.from_brief(brief))
        if score.too_similar:
            logger.info(
                f"[similarity] {brief.industry} brief scored color={score.color_sim:.2f} "
                f"font={score.font_sim:.2f} layout={score.layout_sim:.2f}"
            )
            raise SimilarityRejected(score.overall, self.threshold)
        return score

    def vet(self, industry: str, personality: str, build: Callable[[str], DesignBrief]) -> VettedBrief:
        """Build a brief, rebuild once with another personality if it is too close to
        recent work, then record and return whichever brief came last."""
        brief = build(personality)
        regenerated = False

        try:
            score = self.ensure_distinct(brief)
        except SimilarityRejected as e:
            retry_personality = alternate_personality(personality)
            logger.info(f"[similarity] {industry}: {e}, regenerating as '{retry_personality}'")
            brief = build(retry_personality)
            score = self.check(DesignRecord.from_brief(brief))
            regenerated = True
            if score.too_similar:
                logger.info(f"[similarity] Regenerated brief still scores {score.overall:.2f}, accepting it")

        self.record(DesignRecord.from_brief(brief))
        return VettedBrief(brief=brief, score=score, regenerated=regenerated)

    def suggestions(self, industry: str) -> dict:
        """What recent designs for ``industry`` used, and which options stay clear of them."""
        recent = [r for r in self.history if r.industry == industry][-5:]
        used_colors = [r.primary_color for r in recent]
        used_fonts = [r.font_pairing for r in recent]
        used_layouts = [r.layout_type for r in recent]

        return {
            "avoid_colors": used_colors,
            "avoid_fonts": used_fonts,
            "avoid_layouts": used_layouts,
            "recommended_colors": [
                c for c in SUGGESTED_COLORS if not any(color_similarity(c, used) > 0.6 for used in used_colors)
            ],
            "recommended_fonts": [f for f in SUGGESTED_FONTS if f not in used_fonts],
            "recommended_layouts": [layout for layout in SUGGESTED_LAYOUTS if layout not in used_layouts],
        }

    def stats(self) -> dict:
        total = len(self.history)
        unique_colors = len({r.primary_color for r in self.history})
        unique_fonts = len({r.font_pairing for r in self.history})
        unique_layouts = len({r.layout_type for r in self.history})

        # Diversity: average unique count per dimension against the best achievable (capped at 20)
        best = min(total, 20)
        diversity = round(((unique_colors + unique_fonts + unique_layouts) / 3) / best * 100) if total else 0

        return {
            "total_designs": total,
            "capacity": self.capacity,
            "unique_colors": unique_colors,
            "unique_fonts": unique_fonts,
            "unique_layouts": unique_layouts,
            "diversity_score": min(diversity, 100),
            "by_industry": dict(Counter(r.industry for r in self.history)),
            "top_fonts": [f for f, _ in Counter(r.font_pairing for r in self.history).most_common(3)],
            "top_layouts": [layout for layout, _ in Counter(r.layout_type for r in self.history).most_common(3)],
        }
