"""Runs one prompt through the whole generation pipeline.

Stages run strictly in order on a single task and every stage emits at least
one log step on entry:

    enhancing-prompt -> analyzing-intent -> drafting-design-brief
    -> generating-assets -> scaffolding-project -> generating-components
    -> assembling-app -> finalizing -> complete

Steps are appended to the run's log and pushed onto its channel as soon as
they exist; ``stream()`` drains that channel. A failed component never ends
the run: it is replaced with a fallback artifact and the loop moves on.
"""

import time
import random
import asyncio
import logging
from typing import AsyncIterator

from pydantic import BaseModel, Field

from sitesmith.config import Settings
from sitesmith.database import RunStore
from sitesmith.errors import (
    GenerationCancelled,
    GenerationFailed,
    NoProviderAvailable,
    ProviderRequestFailed,
)
from sitesmith.models import (
    DesignBrief,
    GeneratedFile,
    GenerationLog,
    GenerationLogStep,
    IntentManifest,
    ProviderRequest,
    ProviderResponse,
    StepType,
    TaskCategory,
)
from sitesmith.services.assets import ImageAssetProvider, OpenAIImageAssets, fallback_image_url
from sitesmith.services.component_writer import (
    COMPONENTS,
    build_component_prompt,
    build_enhance_prompt,
    clean_code,
    is_component_source,
)
from sitesmith.services.fallback_artifacts import FallbackArtifactGenerator
from sitesmith.services.intent import IntentAnalyzer
from sitesmith.services.providers import ProviderRouter, load_provider_registry
from sitesmith.services.research import McpResearchClient
from sitesmith.services.runs import GenerationRun, GenerationStage, RunRegistry
from sitesmith.services.similarity import SimilarityGuard
from sitesmith.services.strategist import DesignStrategist
from sitesmith.services.template_loader import assemble_app, build_project_files
from sitesmith.services.variation import (
    DesignVariationGenerator,
    mood_keyword,
    palette_family,
    personality_category,
)

logger = logging.getLogger(__name__)

# slot -> (keyword suffix, width, height)
IMAGE_SLOTS = {
    "hero": ("", 1200, 800),
    "feature": ("-detail", 800, 600),
}


class GenerationResult(BaseModel):
    run_id: str
    files: list[GeneratedFile]
    manifest: IntentManifest
    brief: DesignBrief
    log: GenerationLog
    usage: dict[str, int] = Field(default_factory=dict)


class GenerationOrchestrator:
    def __init__(
        self,
        router: ProviderRouter,
        analyzer: IntentAnalyzer,
        generator: DesignVariationGenerator,
        guard: SimilarityGuard,
        fallback: FallbackArtifactGenerator,
        persistence=None,
        assets: ImageAssetProvider | None = None,
        research: McpResearchClient | None = None,
        settings: Settings | None = None,
        registry: RunRegistry | None = None,
    ):
        self.router = router
        self.analyzer = analyzer
        self.generator = generator
        self.guard = guard
        self.fallback = fallback
        self.persistence = persistence
        self.assets = assets
        self.research = research
        self.settings = settings if settings is not None else Settings()
        self.registry = registry if registry is not None else RunRegistry()

    def start(self, prompt: str, run_id: str | None = None, provider: str | None = None) -> GenerationRun:
        run = self.registry.register(GenerationRun(prompt, run_id=run_id, provider=provider))
        logger.info(f"[run:{run.run_id}] Registered ({len(prompt)} chars, provider={provider or 'auto'})")
        return run

    # ── Log plumbing ──

    def emit(self, run: GenerationRun, type: StepType, message: str, data: dict | None = None) -> int:
        """Append a step and push it to the channel. Returns the step index."""
        if run.cancelled:
            run.check_complete()
            raise GenerationCancelled(f"Run {run.run_id} was cancelled")
        if run.log.is_complete:
            raise RuntimeError(f"Log for run {run.run_id} is already complete")

        step = GenerationLogStep(type=type, message=message, data=data, timestamp=time.time())
        index = run.log.append(step)
        run.channel.put_nowait(step)
        return index

    def extend(self, run: GenerationRun, index: int, suffix: str) -> None:
        if run.cancelled:
            run.check_complete()
            raise GenerationCancelled(f"Run {run.run_id} was cancelled")
        run.log.extend_step(index, suffix)

    def _enter(self, run: GenerationRun, stage: GenerationStage) -> None:
        if run.cancelled:
            run.check_complete()
            raise GenerationCancelled(f"Run {run.run_id} was cancelled before {stage.value}")
        run.stage = stage
        logger.info(f"[run:{run.run_id}] Stage {stage.value}")

    def _emit_file(self, run: GenerationRun, file: GeneratedFile, action: str = "Created") -> int:
        run.files[file.path] = file
        return self.emit(
            run,
            StepType.FILE,
            f"{action} {file.path}",
            {"path": file.path, "content": file.content, "language": file.language, "lines": file.lines},
        )

    async def _checkpoint(self, run: GenerationRun, label: str) -> None:
        if self.persistence is None:
            return
        try:
            await self.persistence.save(run.run_id, run.manifest, run.brief, list(run.files.values()), run.log)
        except Exception as e:
            logger.warning(f"[run:{run.run_id}] Checkpoint '{label}' failed, continuing: {e}")

    # ── Routed requests ──

    async def route_request(
        self,
        category: TaskCategory,
        prompt: str,
        override: str | None = None,
        run: GenerationRun | None = None,
    ) -> ProviderResponse:
        """Try each candidate backend in order until one answers.

        Raises NoProviderAvailable when no backend is usable, otherwise the
        last backend's ProviderRequestFailed.
        """
        request = ProviderRequest(category=category, prompt=prompt)
        last_error: ProviderRequestFailed | None = None

        for spec in self.router.candidates(category, override):
            # An earlier failure in this walk may have exhausted it
            if not self.router.is_usable(spec):
                continue
            try:
                response = await self.router.execute_request(spec, request)
            except ProviderRequestFailed as e:
                last_error = e
                if e.exhausts_backend:
                    self.router.mark_exhausted(spec.key)
                logger.warning(f"[orchestrator] {spec.key} failed for {category.value} ({e.status}), trying next backend")
                continue
            if run is not None:
                run.add_usage(response.usage)
            return response

        if last_error is not None:
            raise last_error
        raise NoProviderAvailable(category.value)

    async def enhance_prompt(self, prompt: str, override: str | None = None, run: GenerationRun | None = None) -> str:
        """Rewrite a short prompt into a fuller brief. Long prompts and failures keep the original."""
        if len(prompt) >= self.settings.prompt_enhance_max_chars:
            return prompt
        try:
            response = await self.route_request(TaskCategory.PROSE, build_enhance_prompt(prompt), override, run)
        except (NoProviderAvailable, ProviderRequestFailed) as e:
            logger.warning(f"[orchestrator] Prompt enhancement skipped: {e}")
            return prompt

        enhanced = response.content.strip().strip('"').strip()
        return enhanced or prompt

    async def _research(self, prompt: str) -> str:
        if self.research is None:
            return ""
        try:
            return await self.research.research(f"{prompt[:200]} market competitors")
        except Exception as e:
            logger.warning(f"[orchestrator] Research failed, analyzing without it: {e}")
            return ""

    async def _image_url(self, prompt: str, keyword: str, width: int, height: int) -> tuple[str, str]:
        """(url, source) for one slot; any asset failure falls back to a stable placeholder."""
        if self.assets is not None:
            try:
                url = await self.assets.request_image(prompt)
            except Exception as e:
                logger.warning(f"[orchestrator] Image request failed, using placeholder: {e}")
                url = None
            if url:
                return url, "generated"
        return fallback_image_url(keyword, width, height), "fallback"

    # ── Pipeline ──

    async def run(self, run: GenerationRun) -> GenerationResult:
        try:
            return await self._pipeline(run)
        except Exception as e:
            stage = run.stage
            self._fail(run, e)
            await self._checkpoint(run, "error")
            raise GenerationFailed(f"Generation failed at {stage.value}: {e}", cause=e) from e
        finally:
            run.channel.put_nowait(None)

    def _fail(self, run: GenerationRun, exc: Exception) -> None:
        run.error = exc
        if isinstance(exc, GenerationCancelled) or run.cancelled:
            logger.warning(f"[run:{run.run_id}] Cancelled during {run.stage.value}")
            run.check_complete()
        else:
            logger.error(f"[run:{run.run_id}] Failed during {run.stage.value}: {exc}", exc_info=exc)
            if not run.log.is_complete:
                step = GenerationLogStep(
                    type=StepType.ERROR,
                    message=f"Generation failed: {exc}",
                    data={"stage": run.stage.value, "error": type(exc).__name__},
                    timestamp=time.time(),
                )
                run.log.append(step)
                run.channel.put_nowait(step)
            run.log.is_complete = True
        run.stage = GenerationStage.ERROR

    async def _pipeline(self, run: GenerationRun) -> GenerationResult:
        t0 = time.time()
        rid = run.run_id

        # Prompt
        self._enter(run, GenerationStage.ENHANCING_PROMPT)
        idx = self.emit(run, StepType.THOUGHT, "Reading your request")
        prompt = await self.enhance_prompt(run.prompt, run.provider, run)
        self.extend(run, idx, ": refined into a fuller brief" if prompt != run.prompt else ": using it as written")

        # Intent
        self._enter(run, GenerationStage.ANALYZING_INTENT)
        self.emit(run, StepType.THOUGHT, "Analyzing business intent")
        research = await self._research(prompt)
        manifest = await self.analyzer.analyze_intent(prompt, research, run.provider)
        run.manifest = manifest
        run.brand = manifest.brand.name or self.fallback.brand_name(manifest.industry)
        self.emit(run, StepType.PLAN, f"Planning a {manifest.industry} site for {run.brand}", {
            "brand": run.brand,
            "industry": manifest.industry,
            "personality": manifest.personality,
            "tone": manifest.tone,
            "goal": manifest.goal,
            "sections": manifest.sections,
            "components": COMPONENTS,
        })
        await self._checkpoint(run, "intent")

        # Design brief
        self._enter(run, GenerationStage.DRAFTING_DESIGN_BRIEF)
        self.emit(run, StepType.THOUGHT, "Drafting a design brief")
        mood = mood_keyword(f"{manifest.tone} {manifest.personality}")
        vetted = self.guard.vet(
            manifest.industry,
            personality_category(manifest.personality),
            lambda personality: self.generator.generate_design_brief(manifest.industry, personality, mood, manifest),
        )
        brief = vetted.brief
        run.brief = brief
        self.emit(
            run,
            StepType.TEXT,
            f"{brief.artistic_style.value} style, primary {brief.color_palette.primary[500]}, "
            f"{brief.typography.heading} + {brief.typography.body}, {brief.layouts.hero.name} hero",
            {
                "palette": palette_family(manifest.industry),
                "mood": mood,
                "similarity": round(vetted.score.overall, 3),
                "regenerated": vetted.regenerated,
            },
        )

        # Assets
        self._enter(run, GenerationStage.GENERATING_ASSETS)
        self.emit(run, StepType.THOUGHT, "Sourcing imagery")
        for slot, (suffix, width, height) in IMAGE_SLOTS.items():
            image_prompt = (
                f"{brief.artistic_style.value} {slot} photograph for a {manifest.industry} website. "
                f"{manifest.core.purpose}"
            )
            url, source = await self._image_url(image_prompt, f"{manifest.industry}{suffix}", width, height)
            run.images[slot] = url
            self.emit(run, StepType.IMAGE, f"{slot.capitalize()} image ready", {"slot": slot, "url": url, "source": source})

        # Scaffold
        self._enter(run, GenerationStage.SCAFFOLDING_PROJECT)
        scaffold = build_project_files(manifest, brief, run.brand)
        self.emit(run, StepType.THOUGHT, f"Scaffolding a Vite + React project ({len(scaffold)} files)")
        for file in scaffold:
            self._emit_file(run, file)

        # Components
        self._enter(run, GenerationStage.GENERATING_COMPONENTS)
        offline = not self.router.candidates(TaskCategory.CODE, run.provider)
        if offline:
            if not self.settings.allow_offline_generation:
                raise NoProviderAvailable(TaskCategory.CODE.value)
            logger.warning(f"[run:{rid}] No code backend configured, every component will come from templates")
        self.emit(run, StepType.THOUGHT, f"Writing {len(COMPONENTS)} components")

        fallbacks = []
        for component in COMPONENTS:
            idx = self.emit(run, StepType.THOUGHT, f"Writing {component}")
            file = None
            if not offline:
                file = await self._write_component(run, component, prompt, manifest, brief)
            if file is None:
                file = self.fallback.render(component, brief, manifest, run.images, run.brand)
                fallbacks.append(component)
            self.extend(run, idx, f" ({file.lines} lines{', from template' if component in fallbacks else ''})")
            self._emit_file(run, file)
            await self._checkpoint(run, component)

        # App
        self._enter(run, GenerationStage.ASSEMBLING_APP)
        self.emit(run, StepType.THOUGHT, "Assembling App.tsx")
        self._emit_file(run, assemble_app(COMPONENTS))

        # Summary
        self._enter(run, GenerationStage.FINALIZING)
        duration = time.time() - t0
        self.emit(run, StepType.SUMMARY, f"Generated {len(run.files)} files in {duration:.1f}s", {
            "duration": round(duration, 2),
            "fileCount": len(run.files),
            "fallbacks": fallbacks,
            "usage": dict(run.usage),
        })

        self._enter(run, GenerationStage.COMPLETE)
        self.emit(run, StepType.COMPLETE, f"{run.brand} is ready")
        run.log.is_complete = True
        await self._checkpoint(run, "complete")

        logger.info(
            f"[run:{rid}] Complete: {len(run.files)} files, {len(fallbacks)} fallbacks, "
            f"in={run.usage['tokens_in']} out={run.usage['tokens_out']} ({duration:.1f}s)"
        )
        return GenerationResult(
            run_id=rid,
            files=list(run.files.values()),
            manifest=manifest,
            brief=brief,
            log=run.log,
            usage=dict(run.usage),
        )

    async def _write_component(
        self,
        run: GenerationRun,
        component: str,
        prompt: str,
        manifest: IntentManifest,
        brief: DesignBrief,
    ) -> GeneratedFile | None:
        """Routed code generation for one component; None means use the fallback."""
        component_prompt = build_component_prompt(component, prompt, manifest, brief, run.brand, run.images)
        try:
            response = await self.route_request(TaskCategory.CODE, component_prompt, run.provider, run)
        except (NoProviderAvailable, ProviderRequestFailed) as e:
            logger.warning(f"[run:{run.run_id}] {component} generation failed, using fallback: {e}")
            return None

        code = clean_code(response.content)
        if not is_component_source(code):
            logger.warning(f"[run:{run.run_id}] {component} from {response.backend} is not a component, using fallback")
            return None
        return GeneratedFile(path=f"src/components/{component}.tsx", content=code, language="typescript")

    async def stream(self, run: GenerationRun) -> AsyncIterator[GenerationLogStep]:
        """Run the pipeline and yield each step as it is emitted.

        The run's failure, if any, is raised after its last step was yielded.
        A consumer that stops early cancels the run.
        """
        task = asyncio.create_task(self.run(run))
        try:
            while True:
                step = await run.channel.get()
                if step is None:
                    break
                yield step
        finally:
            if not task.done():
                run.cancel()
                task.add_done_callback(_retrieve_failure)
        await task


def create_orchestrator(settings: Settings | None = None) -> GenerationOrchestrator:
    """Wire the production services from settings and environment."""
    settings = settings if settings is not None else Settings.from_env()
    rng = random.Random(settings.generation_seed)
    router = ProviderRouter(load_provider_registry(), timeout=settings.provider_timeout)

    assets = None
    openai_spec = router.providers.get("openai")
    if settings.image_generation and openai_spec is not None and openai_spec.configured:
        assets = OpenAIImageAssets(openai_spec.api_key, timeout=settings.provider_timeout)

    research = McpResearchClient(settings.mcp_server_url) if settings.mcp_server_url else None

    return GenerationOrchestrator(
        router=router,
        analyzer=IntentAnalyzer(router),
        generator=DesignVariationGenerator(rng, DesignStrategist()),
        guard=SimilarityGuard(settings.similarity_threshold, settings.history_window, settings.history_capacity),
        fallback=FallbackArtifactGenerator(rng),
        persistence=RunStore(),
        assets=assets,
        research=research,
        settings=settings,
        registry=RunRegistry(),
    )


def _retrieve_failure(task: asyncio.Task) -> None:
    """Collect the failure of a run whose consumer went away."""
    if not task.cancelled() and task.exception() is not None:
        logger.info(f"[orchestrator] Abandoned run ended: {task.exception()}")
