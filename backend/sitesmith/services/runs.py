import time
import uuid
import asyncio
import logging
from collections import OrderedDict
from enum import Enum

from sitesmith.errors import LogReloadRejected
from sitesmith.models import DesignBrief, GeneratedFile, GenerationLog, GenerationLogStep, IntentManifest, StepType

logger = logging.getLogger(__name__)

MAX_FINISHED_RUNS = 50


class GenerationStage(str, Enum):
    PENDING = "pending"
    ENHANCING_PROMPT = "enhancing-prompt"
    ANALYZING_INTENT = "analyzing-intent"
    DRAFTING_DESIGN_BRIEF = "drafting-design-brief"
    GENERATING_ASSETS = "generating-assets"
    SCAFFOLDING_PROJECT = "scaffolding-project"
    GENERATING_COMPONENTS = "generating-components"
    ASSEMBLING_APP = "assembling-app"
    FINALIZING = "finalizing"
    COMPLETE = "complete"
    ERROR = "error"


TERMINAL_STAGES = (GenerationStage.COMPLETE, GenerationStage.ERROR)


class GenerationRun:
    """State of one generation: its log, the step channel and the cancellation flag."""

    def __init__(self, prompt: str, run_id: str | None = None, provider: str | None = None):
        self.run_id = run_id or str(uuid.uuid4())
        self.prompt = prompt
        self.provider = provider
        self.stage = GenerationStage.PENDING
        self.log = GenerationLog()
        self.channel: asyncio.Queue[GenerationLogStep | None] = asyncio.Queue()
        self.manifest: IntentManifest | None = None
        self.brief: DesignBrief | None = None
        self.brand: str = ""
        self.images: dict[str, str] = {}
        self.files: dict[str, GeneratedFile] = {}
        self.usage: dict[str, int] = {"tokens_in": 0, "tokens_out": 0}
        self.error: BaseException | None = None
        self.started_at = time.time()
        self._cancelled = False

    def cancel(self) -> None:
        if not self._cancelled:
            logger.info(f"[run:{self.run_id}] Cancellation requested at stage {self.stage.value}")
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def is_terminal(self) -> bool:
        return self.stage in TERMINAL_STAGES

    def check_complete(self) -> bool:
        """Whether the log is closed. A cancelled run is always closed."""
        if self._cancelled:
            self.log.is_complete = True
        return self.log.is_complete

    def add_usage(self, usage: dict[str, int]) -> None:
        for key in ("tokens_in", "tokens_out"):
            self.usage[key] += usage.get(key, 0) or 0


class RunRegistry:
    """Live and recently finished runs, keyed by id."""

    def __init__(self, max_finished: int = MAX_FINISHED_RUNS):
        self.max_finished = max_finished
        self._runs: OrderedDict[str, GenerationRun] = OrderedDict()

    def register(self, run: GenerationRun) -> GenerationRun:
        self._runs[run.run_id] = run
        self._evict_finished()
        return run

    def get(self, run_id: str) -> GenerationRun | None:
        return self._runs.get(run_id)

    def active(self) -> list[GenerationRun]:
        return [r for r in self._runs.values() if not r.is_terminal]

    def reinitialize(self, run_id: str, log: GenerationLog) -> GenerationRun:
        """Install a persisted log for ``run_id``.

        Rejected while the run is live and has produced more than one step, so
        a reload can never overwrite a log that is still being appended to.
        """
        run = self._runs.get(run_id)
        if run is not None and not run.is_terminal and len(run.log.steps) > 1:
            raise LogReloadRejected(run_id, len(run.log.steps))

        if run is None:
            run = GenerationRun(prompt="", run_id=run_id)
            self._runs[run_id] = run
        restored = run.is_terminal or run.stage == GenerationStage.PENDING
        run.log = log
        if restored:
            # A restored run is never resumed; it is finished one way or the other
            run.stage = GenerationStage.COMPLETE if log.is_complete and not _ends_in_error(log) else GenerationStage.ERROR
        self._evict_finished()
        return run

    def _evict_finished(self) -> None:
        finished = [rid for rid, r in self._runs.items() if r.is_terminal]
        for rid in finished[:max(0, len(finished) - self.max_finished)]:
            del self._runs[rid]


def _ends_in_error(log: GenerationLog) -> bool:
    return log.last is not None and log.last.type == StepType.ERROR
