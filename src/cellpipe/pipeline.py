"""
Assembly and execution of pipelines.

Each stage runs in its own thread. Stage N's producer end is wired to stage
N+1's consumer end; stages agree on schemas through the streams themselves, so
there is no global scheduler and no stage waits for another except by reading
from its input.
"""

import logging
import threading
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from cellpipe.commands.base import Argument, BoundCommand, Command, CompileContext
from cellpipe.commands.registry import DEFAULT_REGISTRY, CommandRegistry
from cellpipe.context import ExecutionContext
from cellpipe.data.values import Closure
from cellpipe.errors import CellpipeError
from cellpipe.printer import Printer
from cellpipe.streams.channel import (
    UninitializedInputStream,
    empty_stream,
    unlimited_streams,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Stage:
    command: Command
    arguments: tuple[Argument, ...] = field(default=())

    @classmethod
    def from_bound(cls, bound: BoundCommand) -> "Stage":
        return cls(bound.command, bound.arguments)


class Job:
    """A started pipeline: its stage threads and the consumer end of its last stage."""

    def __init__(
        self,
        threads: Sequence[threading.Thread],
        output: UninitializedInputStream,
        errors: list[Exception],
        errors_lock: threading.Lock,
    ):
        self._threads = tuple(threads)
        self._errors = errors
        self._errors_lock = errors_lock
        self.output = output

    @property
    def errors(self) -> list[Exception]:
        with self._errors_lock:
            return list(self._errors)

    def is_alive(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    def join(self, timeout: float | None = None) -> None:
        """
        Wait for every stage to return and re-raise the first stage error.
        Workers spawned by stages are not waited for; they finish on their own
        when their input is exhausted or their consumer is gone.
        """
        for thread in self._threads:
            thread.join(timeout)
        errors = self.errors
        if errors:
            raise errors[0]


class Pipeline:
    def __init__(
        self,
        stages: Iterable[Stage],
        context: ExecutionContext | None = None,
        printer: Printer | None = None,
    ):
        self.stages = tuple(stages)
        if not self.stages:
            raise ValueError("A pipeline needs at least one stage")
        self.context = context if context is not None else ExecutionContext.create()
        self.printer = printer if printer is not None else Printer()

    @classmethod
    def from_names(
        cls,
        stages: Iterable[tuple[str, Sequence[Argument]]],
        registry: CommandRegistry | None = None,
        context: ExecutionContext | None = None,
        printer: Printer | None = None,
    ) -> "Pipeline":
        """
        Build a pipeline from ``(command name, arguments)`` pairs.

        Raises:
            CommandNotFoundError: if a name is not registered
        """
        registry = registry if registry is not None else DEFAULT_REGISTRY
        return cls(
            (Stage(registry.get(name), tuple(arguments)) for name, arguments in stages),
            context=context,
            printer=printer,
        )

    @classmethod
    def from_closure(
        cls,
        closure: Closure,
        context: ExecutionContext,
        printer: Printer | None = None,
    ) -> "Pipeline":
        """Pipeline running a closure's body in a child of its captured scope."""
        stages = [
            item if isinstance(item, Stage) else Stage.from_bound(item)
            for item in closure.body
        ]
        return cls(
            stages,
            context=context.with_scope(closure.scope.create_child()),
            printer=printer,
        )

    def start(self, input: UninitializedInputStream | None = None) -> Job:
        """
        Wire the stages together and start one thread per stage. Returns
        immediately; read the result from ``job.output``.
        """
        errors: list[Exception] = []
        errors_lock = threading.Lock()
        threads = []
        current = input if input is not None else empty_stream(label="pipeline-input")

        logger.info(
            "Starting pipeline " + " | ".join(stage.command.name for stage in self.stages)
        )
        for idx, stage in enumerate(self.stages):
            sender, receiver = unlimited_streams(label=f"{stage.command.name}#{idx}")
            compile_context = CompileContext(
                input=current,
                output=sender,
                arguments=list(stage.arguments),
                printer=self.printer,
                env=self.context,
            )
            thread = threading.Thread(
                target=self._run_stage,
                args=(stage, compile_context, errors, errors_lock),
                name=f"stage-{idx}-{stage.command.name}",
                daemon=True,
            )
            threads.append(thread)
            current = receiver

        for thread in threads:
            thread.start()
        return Job(threads, current, errors, errors_lock)

    def _run_stage(
        self,
        stage: Stage,
        compile_context: CompileContext,
        errors: list[Exception],
        errors_lock: threading.Lock,
    ) -> None:
        try:
            stage.command.compile_and_run(compile_context)
        except CellpipeError as e:
            logger.debug(f"Stage {stage.command.name} failed: {e}")
            self._record(e, errors, errors_lock)
        except Exception as e:
            # a bug in a command, not a user error
            logger.exception(f"Stage {stage.command.name} crashed")
            self._record(e, errors, errors_lock)

    def _record(
        self,
        error: Exception,
        errors: list[Exception],
        errors_lock: threading.Lock,
    ) -> None:
        self.printer.report_failure(error)
        with errors_lock:
            errors.append(error)
