import json
import time
import asyncio
import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from sitesmith.config import Settings
from sitesmith.errors import GenerationFailed, LogReloadRejected
from sitesmith.services.orchestrator import GenerationOrchestrator
from sitesmith.services.progress_log import encode_log
from sitesmith.services.runs import GenerationRun, GenerationStage

logger = logging.getLogger(__name__)

router = APIRouter()

# ── Concurrency & rate limiting ──
_settings = Settings.from_env()
MAX_CONCURRENT_RUNS = _settings.max_concurrent_runs
_run_semaphore = asyncio.Semaphore(MAX_CONCURRENT_RUNS)

# Simple per-IP rate limiter
_rate_limit_map: dict[str, float] = {}
RATE_LIMIT_SECONDS = _settings.rate_limit_seconds


class GenerateRequest(BaseModel):
    prompt: str
    provider: str | None = None


def sse_event(data: dict) -> str:
    return f"data: {json.dumps(data)}\n\n"


def _orchestrator(request: Request) -> GenerationOrchestrator:
    return request.app.state.orchestrator


def _run_payload(run: GenerationRun) -> dict:
    return {
        "runId": run.run_id,
        "stage": run.stage.value,
        "isComplete": run.log.is_complete,
        "log": [s.model_dump(by_alias=True, exclude_none=True, mode="json") for s in run.log.steps],
        "files": sorted(run.files) or [f.path for f in run.log.files()],
        "encoded": encode_log(run.log),
    }


@router.post("/api/generate")
async def generate_site(request: GenerateRequest, raw_request: Request):
    """Generate a site from a prompt, streaming every log step as an SSE event."""
    prompt = request.prompt.strip()
    if not prompt:
        raise HTTPException(status_code=400, detail="Prompt is required")

    # Rate limit per IP
    client_ip = raw_request.client.host if raw_request.client else "unknown"
    now = time.time()
    last_request = _rate_limit_map.get(client_ip, 0)
    if now - last_request < RATE_LIMIT_SECONDS:
        raise HTTPException(status_code=429, detail="Please wait before starting another generation")
    _rate_limit_map[client_ip] = now

    # Check concurrency
    if _run_semaphore.locked():
        logger.warning(f"[generate] Rejected request from {client_ip}: all {MAX_CONCURRENT_RUNS} slots busy")
        raise HTTPException(
            status_code=503,
            detail=f"Server busy, {MAX_CONCURRENT_RUNS} generations already in progress. Try again shortly.",
        )

    orchestrator = _orchestrator(raw_request)

    async def event_stream():
        # The run exists only once a slot is held and the client is reading
        await _run_semaphore.acquire()
        run = orchestrator.start(prompt, provider=request.provider)
        streaming = False
        try:
            yield sse_event({"type": "run", "runId": run.run_id})
            streaming = True
            try:
                async for step in orchestrator.stream(run):
                    yield sse_event(step.model_dump(by_alias=True, exclude_none=True, mode="json"))
            except GenerationFailed as e:
                logger.warning(f"[generate:{run.run_id}] Run ended in error: {e}")
            yield sse_event({"type": "log", "runId": run.run_id, "encoded": encode_log(run.log)})
        finally:
            if not streaming:
                # Client left before the pipeline started
                run.cancel()
                run.check_complete()
                run.stage = GenerationStage.ERROR
            _run_semaphore.release()
            logger.info(f"[generate:{run.run_id}] Released slot (stage={run.stage.value})")

        yield "data: [DONE]\n\n"

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.post("/api/runs/{run_id}/cancel")
async def cancel_run(run_id: str, raw_request: Request):
    run = _orchestrator(raw_request).registry.get(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail="Run not found")
    run.cancel()
    return {"runId": run.run_id, "cancelled": True, "stage": run.stage.value}


@router.get("/api/runs/{run_id}")
async def get_run(run_id: str, raw_request: Request, reload: bool = False):
    """Live log for a run, or its persisted record.

    ``reload=true`` replaces the in-memory log with the stored one, which is
    refused while the run is still producing steps.
    """
    orchestrator = _orchestrator(raw_request)
    run = orchestrator.registry.get(run_id)
    if run is not None and not reload:
        return _run_payload(run)

    store = orchestrator.persistence
    record = await store.load(run_id) if store is not None else None
    if record is None:
        if run is None:
            raise HTTPException(status_code=404, detail="Run not found")
        return _run_payload(run)

    try:
        run = orchestrator.registry.reinitialize(run_id, record["log"])
    except LogReloadRejected as e:
        raise HTTPException(status_code=409, detail=str(e))
    logger.info(f"[generate:{run_id}] Reloaded {len(run.log.steps)} steps from storage")
    return _run_payload(run)


@router.get("/api/design/stats")
async def design_stats(raw_request: Request):
    return _orchestrator(raw_request).guard.stats()


@router.get("/api/design/suggestions/{industry}")
async def design_suggestions(industry: str, raw_request: Request):
    return _orchestrator(raw_request).guard.suggestions(industry)


@router.get("/api/design/options/{category}")
async def design_options(category: str, raw_request: Request, industry: str = "business", count: int = 3):
    """Alternative heroes, palettes or font pairings for one industry."""
    count = max(1, min(6, count))
    try:
        return _orchestrator(raw_request).generator.generate_variation_options(category, industry, count)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
