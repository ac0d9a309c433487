"""Sequential stage execution over the artifact store.

A pipeline is an ordered list of stage registrations. ``Pipeline.execute``
validates every registration against its task contract before anything
runs, then executes the stages strictly in order:

* a stage whose output coordinate already exists in the store is skipped
  without running (the only cache mechanism);
* a running stage writes its output inside a staging directory, and the
  output is published to the store only after the task returned;
* the first failure aborts the pipeline. Nothing is retried.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal, Protocol

from contract.errors import (
    PipelineConfigurationError,
    PipelineError,
    StageExecutionError,
)

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from pathlib import Path

    from contract.coordinates import ArtifactCoordinate
    from store.local import LocalArtifactStore

logger = logging.getLogger(__name__)

SCRATCH_DIR_NAME = "scratch"

StageStatus = Literal["executed", "skipped"]


@dataclass(frozen=True)
class TaskContext:
    """Resolved paths handed to a running task."""

    stage: str
    input_path: Path | None
    output_path: Path | None
    parameters: Mapping[str, Path]
    scratch_dir: Path

    def required_input(self) -> Path:
        if self.input_path is None:
            msg = "stage has no input"
            raise PipelineConfigurationError(msg, stage=self.stage)
        return self.input_path

    def required_output(self) -> Path:
        if self.output_path is None:
            msg = "stage has no output"
            raise PipelineConfigurationError(msg, stage=self.stage)
        return self.output_path

    def parameter(self, name: str) -> Path:
        try:
            return self.parameters[name]
        except KeyError as exc:
            msg = f"parameter {name!r} was not supplied"
            raise PipelineConfigurationError(msg, stage=self.stage) from exc


class Task(Protocol):
    name: str
    requires_input: bool
    requires_output: bool
    parameter_names: frozenset[str]

    def execute(self, context: TaskContext) -> None: ...


class BaseTask:
    """Task defaults: no input, no output, no parameters."""

    name = "task"
    requires_input = False
    requires_output = False
    parameter_names: frozenset[str] = frozenset()

    def execute(self, context: TaskContext) -> None:
        raise NotImplementedError


@dataclass(frozen=True)
class StageRegistration:
    """One stage: a task plus its artifact and working tree wiring.

    Inputs and outputs are either store coordinates (cached) or plain paths
    (working tree, never cached).
    """

    task: Task
    input_artifact: ArtifactCoordinate | None = None
    output_artifact: ArtifactCoordinate | None = None
    parameters: Mapping[str, ArtifactCoordinate] = field(default_factory=dict)
    input_path: Path | None = None
    output_path: Path | None = None

    @property
    def name(self) -> str:
        return self.task.name


@dataclass(frozen=True)
class StageOutcome:
    stage: str
    status: StageStatus
    duration_s: float


@dataclass(frozen=True)
class PipelineReport:
    outcomes: tuple[StageOutcome, ...]

    @property
    def executed(self) -> list[str]:
        return [o.stage for o in self.outcomes if o.status == "executed"]

    @property
    def skipped(self) -> list[str]:
        return [o.stage for o in self.outcomes if o.status == "skipped"]


def _configuration_error(stage: str, field_name: str, message: str) -> PipelineError:
    return PipelineConfigurationError(f"{field_name}: {message}", stage=stage)


class Pipeline:
    def __init__(
        self, stages: Sequence[StageRegistration], store: LocalArtifactStore
    ) -> None:
        self.stages = list(stages)
        self.store = store

    def validate(self) -> None:
        """Check every registration before any stage runs.

        Raises:
            PipelineConfigurationError: Naming the first offending stage and
                field.
        """
        produced: set[ArtifactCoordinate] = set()
        for stage in self.stages:
            task = stage.task
            has_input = stage.input_artifact is not None or stage.input_path is not None
            has_output = (
                stage.output_artifact is not None or stage.output_path is not None
            )
            if task.requires_input and not has_input:
                raise _configuration_error(stage.name, "input", "required but missing")
            if task.requires_output and not has_output:
                raise _configuration_error(stage.name, "output", "required but missing")

            supplied = set(stage.parameters)
            unknown = sorted(supplied - task.parameter_names)
            if unknown:
                msg = f"unknown parameters {', '.join(unknown)}"
                raise _configuration_error(stage.name, "parameters", msg)
            missing = sorted(task.parameter_names - supplied)
            if missing:
                msg = f"missing parameters {', '.join(missing)}"
                raise _configuration_error(stage.name, "parameters", msg)

            required = []
            if stage.input_artifact is not None:
                required.append(("input", stage.input_artifact))
            required.extend(stage.parameters.items())
            for field_name, coordinate in required:
                if coordinate not in produced and not self.store.exists(coordinate):
                    msg = f"{coordinate} is neither cached nor produced earlier"
                    raise _configuration_error(stage.name, field_name, msg)

            if stage.output_artifact is not None:
                if stage.output_artifact in produced:
                    msg = f"{stage.output_artifact} is produced by an earlier stage"
                    raise _configuration_error(stage.name, "output", msg)
                produced.add(stage.output_artifact)

    def execute(self) -> PipelineReport:
        self.validate()
        started = time.perf_counter()
        outcomes = [self._execute_stage(stage) for stage in self.stages]
        report = PipelineReport(tuple(outcomes))
        logger.info(
            "event=pipeline_completed executed=%d skipped=%d duration_s=%.3f",
            len(report.executed),
            len(report.skipped),
            time.perf_counter() - started,
        )
        return report

    def _execute_stage(self, stage: StageRegistration) -> StageOutcome:
        output = stage.output_artifact
        if output is not None and self.store.exists(output):
            logger.info("event=stage_skipped stage=%s output=%s", stage.name, output)
            return StageOutcome(stage.name, "skipped", 0.0)

        logger.info("event=stage_started stage=%s", stage.name)
        started = time.perf_counter()
        with self.store.staging() as staging:
            scratch_dir = staging / SCRATCH_DIR_NAME
            scratch_dir.mkdir()
            output_path = stage.output_path
            if output is not None:
                output_path = staging / output.filename
            context = TaskContext(
                stage=stage.name,
                input_path=self._input_path(stage),
                output_path=output_path,
                parameters={
                    name: self.store.path_for(coordinate)
                    for name, coordinate in stage.parameters.items()
                },
                scratch_dir=scratch_dir,
            )
            try:
                stage.task.execute(context)
                if output is not None and output_path is not None:
                    if not output_path.is_file():
                        msg = f"task produced no file for {output}"
                        raise StageExecutionError(msg, stage=stage.name)
                    self.store.put(output, output_path)
            except PipelineError as exc:
                if exc.stage is None:
                    exc.stage = stage.name
                self._log_failure(stage, exc, started)
                raise
            except Exception as exc:
                self._log_failure(stage, exc, started)
                msg = f"{type(exc).__name__}: {exc}"
                raise StageExecutionError(msg, stage=stage.name) from exc

        duration = time.perf_counter() - started
        logger.info(
            "event=stage_completed stage=%s duration_s=%.3f", stage.name, duration
        )
        return StageOutcome(stage.name, "executed", duration)

    def _input_path(self, stage: StageRegistration) -> Path | None:
        if stage.input_artifact is not None:
            return self.store.path_for(stage.input_artifact)
        return stage.input_path

    def _log_failure(
        self, stage: StageRegistration, exc: BaseException, started: float
    ) -> None:
        logger.error(
            "event=stage_failed stage=%s error=%s duration_s=%.3f",
            stage.name,
            type(exc).__name__,
            time.perf_counter() - started,
        )


__all__ = [
    "BaseTask",
    "Pipeline",
    "PipelineReport",
    "StageOutcome",
    "StageRegistration",
    "Task",
    "TaskContext",
]
