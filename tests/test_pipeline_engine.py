from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from contract.coordinates import ArtifactCoordinate
from contract.errors import (
    PipelineConfigurationError,
    ResolutionError,
    StageExecutionError,
)
from pipeline.engine import BaseTask, Pipeline, StageRegistration
from store.local import LocalArtifactStore

if TYPE_CHECKING:
    from pathlib import Path

    from pipeline.engine import TaskContext

SOURCE = ArtifactCoordinate("org.example", "source", "1.0", "jar")
MAPPING = ArtifactCoordinate("org.example", "mapping", "1.0", "zip")
DERIVED = ArtifactCoordinate("org.example", "derived", "1.0", "jar")
FINAL = ArtifactCoordinate("org.example", "final", "1.0", "jar")


class WriteTask(BaseTask):
    name = "write"
    requires_output = True

    def __init__(self, payload: bytes = b"payload") -> None:
        self.payload = payload
        self.contexts: list[TaskContext] = []

    def execute(self, context: TaskContext) -> None:
        self.contexts.append(context)
        context.required_output().write_bytes(self.payload)


class CopyTask(BaseTask):
    name = "copy"
    requires_input = True
    requires_output = True
    parameter_names = frozenset({"mapping"})

    def __init__(self) -> None:
        self.runs = 0

    def execute(self, context: TaskContext) -> None:
        self.runs += 1
        data = context.required_input().read_bytes()
        suffix = context.parameter("mapping").read_bytes()
        context.required_output().write_bytes(data + suffix)


class FailingTask(BaseTask):
    name = "failing"
    requires_output = True

    def __init__(self, error: Exception) -> None:
        self.error = error

    def execute(self, context: TaskContext) -> None:
        context.required_output().write_bytes(b"partial")
        raise self.error


class SilentTask(BaseTask):
    name = "silent"
    requires_output = True

    def execute(self, context: TaskContext) -> None:
        pass


@pytest.fixture
def store(tmp_path: Path) -> LocalArtifactStore:
    return LocalArtifactStore(tmp_path / "store")


def _stages(copy: CopyTask) -> list[StageRegistration]:
    return [
        StageRegistration(WriteTask(b"source"), output_artifact=SOURCE),
        StageRegistration(WriteTask(b"+mapping"), output_artifact=MAPPING),
        StageRegistration(
            copy,
            input_artifact=SOURCE,
            output_artifact=DERIVED,
            parameters={"mapping": MAPPING},
        ),
    ]


def test_stages_run_in_order_and_publish(store: LocalArtifactStore) -> None:
    copy = CopyTask()

    report = Pipeline(_stages(copy), store).execute()

    assert report.executed == ["write", "write", "copy"]
    assert report.skipped == []
    assert store.path_for(DERIVED).read_bytes() == b"source+mapping"


def test_cached_outputs_are_skipped(store: LocalArtifactStore) -> None:
    Pipeline(_stages(CopyTask()), store).execute()
    copy = CopyTask()

    report = Pipeline(_stages(copy), store).execute()

    assert report.executed == []
    assert report.skipped == ["write", "write", "copy"]
    assert copy.runs == 0


def test_tasks_write_into_staging(store: LocalArtifactStore) -> None:
    task = WriteTask()

    Pipeline([StageRegistration(task, output_artifact=SOURCE)], store).execute()

    (context,) = task.contexts
    assert context.output_path is not None
    assert context.output_path != store.path_for(SOURCE)
    assert not context.scratch_dir.exists()
    assert context.stage == "write"


def test_working_tree_stages_are_never_cached(
    store: LocalArtifactStore, tmp_path: Path
) -> None:
    task = WriteTask(b"tree")
    target = tmp_path / "tree.bin"
    stages = [StageRegistration(task, output_path=target)]

    Pipeline(stages, store).execute()
    Pipeline(stages, store).execute()

    assert len(task.contexts) == 2
    assert target.read_bytes() == b"tree"


@pytest.mark.parametrize(
    ("stage", "match"),
    [
        (StageRegistration(WriteTask()), "output: required but missing"),
        (
            StageRegistration(CopyTask(), output_artifact=DERIVED),
            "input: required but missing",
        ),
        (
            StageRegistration(
                CopyTask(), input_artifact=SOURCE, output_artifact=DERIVED
            ),
            "missing parameters mapping",
        ),
        (
            StageRegistration(
                WriteTask(), output_artifact=DERIVED, parameters={"extra": SOURCE}
            ),
            "unknown parameters extra",
        ),
        (
            StageRegistration(
                CopyTask(),
                input_artifact=SOURCE,
                output_artifact=DERIVED,
                parameters={"mapping": MAPPING},
            ),
            "neither cached nor produced",
        ),
    ],
)
def test_invalid_registrations_are_rejected(
    store: LocalArtifactStore, stage: StageRegistration, match: str
) -> None:
    with pytest.raises(PipelineConfigurationError, match=match) as excinfo:
        Pipeline([stage], store).execute()

    assert excinfo.value.stage == stage.name


def test_validation_happens_before_any_stage_runs(store: LocalArtifactStore) -> None:
    first = WriteTask()
    stages = [
        StageRegistration(first, output_artifact=SOURCE),
        StageRegistration(WriteTask(), output_artifact=SOURCE),
    ]

    with pytest.raises(PipelineConfigurationError, match="produced by an earlier"):
        Pipeline(stages, store).execute()

    assert first.contexts == []
    assert not store.exists(SOURCE)


def test_cached_inputs_satisfy_validation(store: LocalArtifactStore) -> None:
    store.put(SOURCE, b"cached")
    store.put(MAPPING, b"!")
    copy = CopyTask()
    stage = StageRegistration(
        copy,
        input_artifact=SOURCE,
        output_artifact=DERIVED,
        parameters={"mapping": MAPPING},
    )

    Pipeline([stage], store).execute()

    assert store.path_for(DERIVED).read_bytes() == b"cached!"


def test_unexpected_failures_are_wrapped(store: LocalArtifactStore) -> None:
    later = WriteTask()
    stages = [
        StageRegistration(FailingTask(ValueError("boom")), output_artifact=SOURCE),
        StageRegistration(later, output_artifact=FINAL),
    ]

    with pytest.raises(StageExecutionError, match="ValueError: boom") as excinfo:
        Pipeline(stages, store).execute()

    assert excinfo.value.stage == "failing"
    assert str(excinfo.value).startswith("[failing] ")
    assert isinstance(excinfo.value.__cause__, ValueError)
    assert not store.exists(SOURCE)
    assert later.contexts == []


def test_pipeline_errors_keep_their_type(store: LocalArtifactStore) -> None:
    stage = StageRegistration(
        FailingTask(ResolutionError("no such version")), output_artifact=SOURCE
    )

    with pytest.raises(ResolutionError) as excinfo:
        Pipeline([stage], store).execute()

    assert excinfo.value.stage == "failing"
    assert not store.exists(SOURCE)


def test_tasks_must_produce_their_output(store: LocalArtifactStore) -> None:
    stage = StageRegistration(SilentTask(), output_artifact=SOURCE)

    with pytest.raises(StageExecutionError, match="produced no file"):
        Pipeline([stage], store).execute()
