from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire; either accepted on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenCamelModel(CamelModel):
    model_config = ConfigDict(frozen=True)


# ── Provider contract ──


class TaskCategory(str, Enum):
    CODE = "code"
    PROSE = "prose"
    ANALYSIS = "analysis"
    VISION = "vision"
    CHAT = "chat"


class ProviderRequest(CamelModel):
    category: TaskCategory
    prompt: str
    system_prompt: str | None = None


class ProviderResponse(CamelModel):
    backend: str
    content: str
    usage: dict[str, int] = Field(default_factory=dict)


# ── Intent manifest ──


class TargetAudience(FrozenCamelModel):
    description: str = "General audience"
    age_range: str = "25-45"
    income_level: str = "Middle"
    values: list[str] = Field(default_factory=lambda: ["Quality", "Reliability", "Trust"])


class ManifestCore(FrozenCamelModel):
    purpose: str
    target_audience: TargetAudience = Field(default_factory=TargetAudience)
    primary_goal: str = "Inform visitors and build trust"


class BrandIdentity(FrozenCamelModel):
    name: str = ""
    tagline: str = ""
    personality: str = "Professional"
    color_psychology: str = ""
    keywords: list[str] = Field(default_factory=list)


class ManifestStrategy(FrozenCamelModel):
    industry: str
    sub_category: str = ""
    suggested_sections: list[str] = Field(default_factory=lambda: ["Hero", "Features", "About", "CTA", "Footer"])
    layout_style: str = ""
    competitors: list[str] = Field(default_factory=list)


class ContentStrategy(FrozenCamelModel):
    tone: str = "Professional"
    key_differentiators: list[str] = Field(default_factory=list)


class IntentManifest(FrozenCamelModel):
    """Structured reading of a raw prompt. Built once per run, never mutated."""

    core: ManifestCore
    brand: BrandIdentity = Field(default_factory=BrandIdentity)
    strategy: ManifestStrategy
    content_strategy: ContentStrategy = Field(default_factory=ContentStrategy)

    @property
    def industry(self) -> str:
        return self.strategy.industry

    @property
    def goal(self) -> str:
        return self.core.primary_goal

    @property
    def personality(self) -> str:
        return self.brand.personality

    @property
    def tone(self) -> str:
        return self.content_strategy.tone

    @property
    def sections(self) -> list[str]:
        return self.strategy.suggested_sections


# ── Design brief ──


class ArtisticStyle(str, Enum):
    MINIMALIST = "minimalist"
    BRUTALIST = "brutalist"
    GLASSMORPHISM = "glassmorphism"
    NEUMORPHISM = "neumorphism"
    RETRO_POP = "retro-pop"
    CORPORATE_CLEAN = "corporate-clean"
    DARK_MODE_TECH = "dark-mode-tech"
    SWISS_STYLE = "swiss-style"


class ColorPalette(CamelModel):
    primary: dict[int, str]
    secondary: dict[int, str]
    accent: dict[int, str]
    neutral: dict[int, str]
    base_hue: float = 0


class FontPairing(CamelModel):
    heading: str
    body: str
    weights: list[int]
    scale: str
    category: str = "modern"

    @property
    def key(self) -> str:
        return f"{self.heading}+{self.body}"


class HeroLayout(CamelModel):
    name: str
    structure: str
    image_position: str
    text_align: str
    vertical_align: str
    unique_element: str = ""


class FeatureLayout(CamelModel):
    type: str
    style: str


class ProductLayout(CamelModel):
    type: str
    columns: int


class FooterLayout(CamelModel):
    style: str


class SectionLayouts(CamelModel):
    hero: HeroLayout
    features: FeatureLayout
    products: ProductLayout
    footer: FooterLayout


class SpacingTokens(CamelModel):
    scale: str
    header_height: int
    hero_height: int
    section_gap: int
    container_width: str


class AnimationTokens(CamelModel):
    style: str
    duration_ms: int
    easing: str


class DesignBrief(CamelModel):
    industry: str
    personality: str
    mood: str
    artistic_style: ArtisticStyle
    color_palette: ColorPalette
    typography: FontPairing
    spacing: SpacingTokens
    layouts: SectionLayouts
    animations: AnimationTokens
    unique_elements: list[str] = Field(default_factory=list)


class DesignRecord(CamelModel):
    industry: str
    primary_color: str
    font_pairing: str
    layout_type: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_brief(cls, brief: DesignBrief) -> "DesignRecord":
        return cls(
            industry=brief.industry,
            primary_color=brief.color_palette.primary[500],
            font_pairing=brief.typography.key,
            layout_type=brief.layouts.hero.name,
        )


class SimilarityScore(CamelModel):
    color_sim: float = 0.0
    font_sim: float = 0.0
    layout_sim: float = 0.0
    overall: float = 0.0
    too_similar: bool = False


# ── Output ──


class GeneratedFile(CamelModel):
    path: str
    content: str
    language: str

    @property
    def lines(self) -> int:
        return self.content.count("\n") + 1


class StepType(str, Enum):
    PLAN = "plan"
    THOUGHT = "thought"
    FILE = "file"
    TEXT = "text"
    IMAGE = "image"
    SUMMARY = "summary"
    COMPLETE = "complete"
    ERROR = "error"


EXTENDABLE_STEPS = (StepType.TEXT, StepType.THOUGHT)


class GenerationLogStep(CamelModel):
    type: StepType
    message: str
    data: dict[str, Any] | None = None
    timestamp: float | None = None


class GenerationLog(CamelModel):
    """Append-only step sequence. Serialized as ``{"log": [...], "isComplete": ...}``."""

    steps: list[GenerationLogStep] = Field(default_factory=list, alias="log")
    is_complete: bool = False

    def append(self, step: GenerationLogStep) -> int:
        self.steps.append(step)
        return len(self.steps) - 1

    def extend_step(self, index: int, suffix: str) -> None:
        step = self.steps[index]
        if step.type not in EXTENDABLE_STEPS:
            raise ValueError(f"Step {index} ({step.type.value}) is not an in-progress text step")
        step.message += suffix

    @property
    def last(self) -> GenerationLogStep | None:
        return self.steps[-1] if self.steps else None

    def files(self) -> list[GeneratedFile]:
        return [
            GeneratedFile(path=s.data["path"], content=s.data["content"], language=s.data.get("language", "plaintext"))
            for s in self.steps
            if s.type == StepType.FILE and s.data
        ]
