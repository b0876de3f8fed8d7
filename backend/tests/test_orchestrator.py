"""End-to-end tests for the generation pipeline with mocked backends."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import VALID_COMPONENT, build_orchestrator, make_router, mock_execute
from sitesmith.config import Settings
from sitesmith.errors import GenerationCancelled, GenerationFailed, NoProviderAvailable, ProviderRequestFailed
from sitesmith.models import ProviderResponse, StepType, TaskCategory
from sitesmith.services.component_writer import COMPONENTS
from sitesmith.services.research import McpResearchClient
from sitesmith.services.runs import GenerationStage

PROMPT = "a cozy bistro with a wood-fired oven"


def _failing_code(status: int = 500) -> AsyncMock:
    """Answers every category except code, which always fails."""
    answer = mock_execute()

    async def _execute(spec, request):
        if request.category == TaskCategory.CODE:
            raise ProviderRequestFailed(spec.key, status, "upstream error")
        return await answer(spec, request)

    return AsyncMock(side_effect=_execute)


@pytest.mark.asyncio
async def test_full_run_produces_complete_file_set():
    router = make_router("anthropic", "openai")
    router.execute_request = mock_execute()
    orchestrator = build_orchestrator(router)

    run = orchestrator.start(PROMPT)
    result = await orchestrator.run(run)

    paths = [f.path for f in result.files]
    assert "package.json" in paths
    assert "index.html" in paths
    assert paths[-1] == "src/App.tsx"
    for component in COMPONENTS:
        assert f"src/components/{component}.tsx" in paths

    hero = next(f for f in result.files if f.path == "src/components/Hero.tsx")
    assert hero.content == VALID_COMPONENT

    assert result.manifest.brand.name == "Olive & Ember"
    assert result.log.is_complete
    assert result.log.last.type == StepType.COMPLETE
    assert result.log.steps[0].type == StepType.THOUGHT
    assert result.usage["tokens_out"] > 0
    assert run.stage == GenerationStage.COMPLETE
    assert orchestrator.registry.get(run.run_id) is run


@pytest.mark.asyncio
async def test_every_stage_emits_in_order():
    router = make_router("anthropic")
    router.execute_request = mock_execute()
    orchestrator = build_orchestrator(router)

    result = await orchestrator.run(orchestrator.start(PROMPT))
    types = [s.type for s in result.log.steps]

    plan = types.index(StepType.PLAN)
    first_image = types.index(StepType.IMAGE)
    first_file = types.index(StepType.FILE)
    summary = types.index(StepType.SUMMARY)
    assert 0 < plan < first_image < first_file < summary < len(types) - 1
    assert types.count(StepType.IMAGE) == 2
    assert types.count(StepType.COMPLETE) == 1


@pytest.mark.asyncio
async def test_component_thought_is_extended_when_done():
    router = make_router("anthropic")
    router.execute_request = mock_execute()
    orchestrator = build_orchestrator(router)

    result = await orchestrator.run(orchestrator.start(PROMPT))

    thoughts = [s.message for s in result.log.steps if s.type == StepType.THOUGHT]
    hero_thought = next(m for m in thoughts if m.startswith("Writing Hero"))
    assert hero_thought.endswith("lines)")


@pytest.mark.asyncio
async def test_failed_components_fall_back_and_run_completes(sample_manifest):
    router = make_router("anthropic", "openai")
    router.execute_request = _failing_code()
    orchestrator = build_orchestrator(router)

    result = await orchestrator.run(orchestrator.start(PROMPT))

    summary = next(s for s in result.log.steps if s.type == StepType.SUMMARY)
    assert summary.data["fallbacks"] == COMPONENTS
    hero = next(f for f in result.files if f.path == "src/components/Hero.tsx")
    assert "TASTE THE EXTRAORDINARY" in hero.content
    assert result.brief.color_palette.primary[900] in hero.content
    assert result.log.last.type == StepType.COMPLETE


@pytest.mark.asyncio
async def test_non_component_answer_is_replaced():
    router = make_router("anthropic")
    router.execute_request = mock_execute(code="Sorry, I can't help with that.")
    orchestrator = build_orchestrator(router)

    result = await orchestrator.run(orchestrator.start(PROMPT))

    summary = next(s for s in result.log.steps if s.type == StepType.SUMMARY)
    assert summary.data["fallbacks"] == COMPONENTS


@pytest.mark.asyncio
async def test_rate_limited_backend_is_exhausted_and_next_is_used():
    router = make_router("anthropic", "openai")
    answer = mock_execute()

    async def _execute(spec, request):
        if spec.key == "anthropic":
            raise ProviderRequestFailed("anthropic", 429, "rate limited")
        return await answer(spec, request)

    router.execute_request = AsyncMock(side_effect=_execute)
    orchestrator = build_orchestrator(router)

    response = await orchestrator.route_request(TaskCategory.CODE, "hero")
    assert response.backend == "openai"
    assert not router.is_usable(router.providers["anthropic"])

    router.execute_request.reset_mock()
    await orchestrator.route_request(TaskCategory.CODE, "features")
    assert [c.args[0].key for c in router.execute_request.call_args_list] == ["openai"]


@pytest.mark.asyncio
async def test_route_request_raises_last_failure():
    router = make_router("anthropic", "openai")
    router.execute_request = _failing_code(status=500)
    orchestrator = build_orchestrator(router)

    with pytest.raises(ProviderRequestFailed) as exc:
        await orchestrator.route_request(TaskCategory.CODE, "hero")
    assert exc.value.backend == "openai"
    assert router.is_usable(router.providers["anthropic"])


@pytest.mark.asyncio
async def test_missing_code_backend_is_fatal():
    orchestrator = build_orchestrator(make_router())
    run = orchestrator.start("skate shop, dark and edgy")

    with pytest.raises(GenerationFailed) as exc:
        await orchestrator.run(run)

    assert isinstance(exc.value.cause, NoProviderAvailable)
    assert exc.value.__cause__ is exc.value.cause
    assert run.log.is_complete
    assert run.log.last.type == StepType.ERROR
    assert run.log.last.data["stage"] == GenerationStage.GENERATING_COMPONENTS.value
    assert run.stage == GenerationStage.ERROR


@pytest.mark.asyncio
async def test_offline_generation_uses_templates_only():
    orchestrator = build_orchestrator(make_router(), settings=Settings(allow_offline_generation=True))
    run = orchestrator.start("skate shop, dark and edgy")

    result = await orchestrator.run(run)

    assert result.manifest.industry == "skate-shop"
    hero = next(f for f in result.files if f.path == "src/components/Hero.tsx")
    assert "SHRED THE STREETS" in hero.content
    assert run.brand in hero.content
    package = next(f for f in result.files if f.path == "package.json")
    assert run.brand.lower() in package.content
    assert result.usage == {"tokens_in": 0, "tokens_out": 0}


@pytest.mark.asyncio
async def test_cancellation_stops_new_steps():
    router = make_router("anthropic")
    answer = mock_execute()
    orchestrator = build_orchestrator(router)
    run = orchestrator.start(PROMPT)
    seen = {}

    async def _execute(spec, request):
        if request.category == TaskCategory.CODE and "steps" not in seen:
            run.cancel()
            seen["steps"] = len(run.log.steps)
        return await answer(spec, request)

    router.execute_request = AsyncMock(side_effect=_execute)

    with pytest.raises(GenerationFailed) as exc:
        await orchestrator.run(run)

    assert isinstance(exc.value.cause, GenerationCancelled)
    assert len(run.log.steps) == seen["steps"]
    assert run.log.is_complete
    assert run.log.last.type != StepType.ERROR
    assert run.stage == GenerationStage.ERROR
    assert not any(f.startswith("src/components/") for f in run.files)


@pytest.mark.asyncio
async def test_cancel_before_start_emits_nothing():
    orchestrator = build_orchestrator(make_router(), settings=Settings(allow_offline_generation=True))
    run = orchestrator.start(PROMPT)
    run.cancel()

    with pytest.raises(GenerationFailed):
        await orchestrator.run(run)
    assert run.log.steps == []
    assert run.log.is_complete


@pytest.mark.asyncio
async def test_persistence_failure_does_not_stop_run():
    store = MagicMock()
    store.save = AsyncMock(side_effect=RuntimeError("database unavailable"))
    router = make_router("anthropic")
    router.execute_request = mock_execute()
    orchestrator = build_orchestrator(router, persistence=store)

    result = await orchestrator.run(orchestrator.start(PROMPT))

    assert result.log.last.type == StepType.COMPLETE
    # intent, one per component, completion
    assert store.save.await_count == len(COMPONENTS) + 2


@pytest.mark.asyncio
async def test_checkpoints_receive_run_state():
    store = MagicMock()
    store.save = AsyncMock(return_value=None)
    router = make_router("anthropic")
    router.execute_request = mock_execute()
    orchestrator = build_orchestrator(router, persistence=store)

    run = orchestrator.start(PROMPT)
    await orchestrator.run(run)

    run_id, manifest, brief, files, log = store.save.await_args.args
    assert run_id == run.run_id
    assert manifest.brand.name == "Olive & Ember"
    assert brief is run.brief
    assert len(files) == len(run.files)
    assert log.is_complete


@pytest.mark.asyncio
async def test_asset_collaborator_results():
    router = make_router("anthropic")
    router.execute_request = mock_execute()
    assets = MagicMock()
    assets.request_image = AsyncMock(side_effect=["https://img.example.com/hero.png", None])
    orchestrator = build_orchestrator(router, assets=assets)

    run = orchestrator.start(PROMPT)
    await orchestrator.run(run)

    images = [s.data for s in run.log.steps if s.type == StepType.IMAGE]
    assert images[0] == {"slot": "hero", "url": "https://img.example.com/hero.png", "source": "generated"}
    assert images[1]["source"] == "fallback"
    assert images[1]["url"] == "https://picsum.photos/seed/restaurant-detail/800/600"


@pytest.mark.asyncio
async def test_asset_errors_fall_back():
    router = make_router("anthropic")
    router.execute_request = mock_execute()
    assets = MagicMock()
    assets.request_image = AsyncMock(side_effect=RuntimeError("quota"))
    orchestrator = build_orchestrator(router, assets=assets)

    run = orchestrator.start(PROMPT)
    await orchestrator.run(run)
    assert run.images["hero"] == "https://picsum.photos/seed/restaurant/1200/800"


@pytest.mark.asyncio
async def test_enhance_prompt_rules():
    router = make_router("openai")
    router.execute_request = mock_execute(prose='"A bakery site with online orders."')
    orchestrator = build_orchestrator(router)

    assert await orchestrator.enhance_prompt("bakery") == "A bakery site with online orders."

    long_prompt = "x" * 300
    router.execute_request.reset_mock()
    assert await orchestrator.enhance_prompt(long_prompt) == long_prompt
    router.execute_request.assert_not_called()

    router.execute_request = AsyncMock(side_effect=ProviderRequestFailed("openai", 500, "boom"))
    assert await orchestrator.enhance_prompt("bakery") == "bakery"


@pytest.mark.asyncio
async def test_stream_yields_steps_as_logged():
    router = make_router("anthropic")
    router.execute_request = mock_execute()
    orchestrator = build_orchestrator(router)
    run = orchestrator.start(PROMPT)

    steps = [step async for step in orchestrator.stream(run)]

    assert steps == run.log.steps
    assert steps[-1].type == StepType.COMPLETE


@pytest.mark.asyncio
async def test_stream_reraises_after_error_step():
    orchestrator = build_orchestrator(make_router())
    run = orchestrator.start(PROMPT)
    received = []

    with pytest.raises(GenerationFailed):
        async for step in orchestrator.stream(run):
            received.append(step)

    assert received[-1].type == StepType.ERROR


@pytest.mark.asyncio
async def test_research_context_reaches_analysis():
    router = make_router("anthropic")
    router.execute_request = mock_execute()
    research = MagicMock()
    research.research = AsyncMock(return_value="Competitors: Le Bistro")
    orchestrator = build_orchestrator(router, research=research)

    await orchestrator.run(orchestrator.start(PROMPT))

    analysis = next(
        c.args[1] for c in router.execute_request.call_args_list if c.args[1].category == TaskCategory.ANALYSIS
    )
    assert "Competitors: Le Bistro" in analysis.prompt


@pytest.mark.asyncio
async def test_similar_runs_are_regenerated():
    router = make_router("anthropic")
    router.execute_request = mock_execute()
    orchestrator = build_orchestrator(router)

    await orchestrator.run(orchestrator.start(PROMPT))
    second = await orchestrator.run(orchestrator.start(PROMPT))

    brief_step = next(s for s in second.log.steps if s.type == StepType.TEXT)
    assert brief_step.data["regenerated"] is True
    assert orchestrator.guard.stats()["total_designs"] == 2


@pytest.mark.asyncio
async def test_usage_is_summed_across_requests():
    router = make_router("anthropic")

    async def _execute(spec, request):
        return ProviderResponse(backend=spec.key, content=VALID_COMPONENT, usage={"tokens_in": 1, "tokens_out": 2})

    router.execute_request = AsyncMock(side_effect=_execute)
    orchestrator = build_orchestrator(router)

    result = await orchestrator.run(orchestrator.start(PROMPT))

    # enhancement + one per component; analysis goes straight to the router
    assert router.execute_request.await_count == len(COMPONENTS) + 2
    routed = len(COMPONENTS) + 1
    assert result.usage == {"tokens_in": routed, "tokens_out": 2 * routed}


@pytest.mark.asyncio
async def test_malformed_research_reply_does_not_end_run():
    router = make_router("anthropic")
    router.execute_request = mock_execute()
    research = McpResearchClient("http://mcp.local")
    research._session_id = "s1"
    research._mcp_request = AsyncMock(return_value={"jsonrpc": "2.0", "id": 1, "error": "rate limited"})
    orchestrator = build_orchestrator(router, research=research)

    result = await orchestrator.run(orchestrator.start(PROMPT))

    assert result.log.last.type == StepType.COMPLETE
    assert result.manifest.brand.name == "Olive & Ember"


@pytest.mark.asyncio
async def test_raising_research_collaborator_is_skipped():
    router = make_router("anthropic")
    router.execute_request = mock_execute()
    research = MagicMock()
    research.research = AsyncMock(side_effect=AttributeError("bad reply"))
    orchestrator = build_orchestrator(router, research=research)

    result = await orchestrator.run(orchestrator.start(PROMPT))
    assert result.log.last.type == StepType.COMPLETE
