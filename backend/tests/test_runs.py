import pytest

from sitesmith.errors import LogReloadRejected
from sitesmith.models import GenerationLog, GenerationLogStep, StepType
from sitesmith.services.runs import GenerationRun, GenerationStage, RunRegistry


def _log(*types: StepType, complete: bool = True) -> GenerationLog:
    log = GenerationLog(steps=[GenerationLogStep(type=t, message=t.value) for t in types])
    log.is_complete = complete
    return log


def test_cancel_forces_completion_on_next_check():
    run = GenerationRun("a bakery")
    assert run.check_complete() is False
    run.cancel()
    assert run.cancelled
    assert run.check_complete() is True
    assert run.log.is_complete


def test_usage_accumulates():
    run = GenerationRun("a bakery")
    run.add_usage({"tokens_in": 5, "tokens_out": 7})
    run.add_usage({"tokens_in": 1})
    assert run.usage == {"tokens_in": 6, "tokens_out": 7}


def test_reload_rejected_while_run_is_live():
    registry = RunRegistry()
    run = registry.register(GenerationRun("a bakery", run_id="r1"))
    run.stage = GenerationStage.GENERATING_COMPONENTS
    run.log.append(GenerationLogStep(type=StepType.THOUGHT, message="one"))
    run.log.append(GenerationLogStep(type=StepType.THOUGHT, message="two"))

    with pytest.raises(LogReloadRejected) as exc:
        registry.reinitialize("r1", _log(StepType.COMPLETE))
    assert exc.value.steps == 2
    assert [s.message for s in run.log.steps] == ["one", "two"]


def test_reload_allowed_before_second_step():
    registry = RunRegistry()
    run = registry.register(GenerationRun("a bakery", run_id="r1"))
    run.log.append(GenerationLogStep(type=StepType.THOUGHT, message="one"))

    restored = registry.reinitialize("r1", _log(StepType.THOUGHT, StepType.COMPLETE))
    assert restored is run
    assert len(run.log.steps) == 2
    assert run.stage == GenerationStage.COMPLETE


def test_reload_allowed_once_terminal():
    registry = RunRegistry()
    run = registry.register(GenerationRun("a bakery", run_id="r1"))
    run.log = _log(StepType.THOUGHT, StepType.ERROR)
    run.stage = GenerationStage.ERROR

    registry.reinitialize("r1", _log(StepType.THOUGHT, StepType.SUMMARY, StepType.COMPLETE))
    assert run.stage == GenerationStage.COMPLETE
    assert run.log.last.type == StepType.COMPLETE


def test_reload_of_unknown_run_registers_it():
    registry = RunRegistry()
    run = registry.reinitialize("old", _log(StepType.THOUGHT, StepType.ERROR))
    assert registry.get("old") is run
    assert run.stage == GenerationStage.ERROR


def test_finished_runs_are_evicted_oldest_first():
    registry = RunRegistry(max_finished=2)
    for i in range(3):
        run = registry.register(GenerationRun("p", run_id=f"r{i}"))
        run.stage = GenerationStage.COMPLETE
    live = registry.register(GenerationRun("p", run_id="live"))

    assert registry.get("r0") is None
    assert registry.get("r1") is not None
    assert registry.active() == [live]
