"""
Step Sequencer

Runs the steps of an initialization plan strictly one at a time. Step k is
started only after the substrate has returned from step k - 1, which for the
substrates in this package means the statement has been committed. The
first step waits for the readiness gate. Any failure stops the sequence.

A substrate is any object with ``execute(step) -> bool`` returning whether
the statement was applied (False when the step's guard found the
postcondition already satisfied).
"""

import logging
import time
from typing import Any, Callable, Optional

from .errors import SequenceDefinitionError, StepFailedError
from .models import ExecutionRecord, InitializationPlan, SequenceResult, WriterActiveMarker
from .readiness import ReadinessGate

logger = logging.getLogger(__name__)


class StepSequencer:
    """Fail-fast, strictly serial executor for initialization plans."""

    def __init__(
        self,
        substrate: Any,
        gate: Optional[ReadinessGate] = None,
        marker: Optional[WriterActiveMarker] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if gate is not None and marker is None:
            raise ValueError("A readiness gate needs the writer-active marker it waits on")

        self.substrate = substrate
        self.gate = gate
        self.marker = marker
        self._clock = clock
        self._running = False

    def execute(self, plan: InitializationPlan) -> SequenceResult:
        """
        Execute every step of the plan in sequence index order.

        Args:
            plan: Initialization plan

        Returns:
            Execution records of all steps

        Raises:
            StepFailedError: If a step fails. Later steps are not started.
        """
        if self._running:
            raise SequenceDefinitionError("Sequencer is already executing a plan")

        result = SequenceResult()
        if len(plan) == 0:
            logger.info("No initialization steps to run")
            return result

        self._running = True
        try:
            if self.gate is not None:
                self.gate.await_ready(self.marker)

            for step in plan:
                result.records.append(self._run_step(step, result))
        finally:
            self._running = False

        logger.info(
            f"Initialization sequence completed: {len(result.applied_steps)} applied, "
            f"{len(result.skipped_steps)} already satisfied"
        )
        return result

    def _run_step(self, step, result: SequenceResult) -> ExecutionRecord:
        logger.info(f"Running step {step.sequence_index}: {step.name} on database '{step.target_database}'")
        started_at = self._clock()

        try:
            applied = self.substrate.execute(step)
        except Exception as e:
            logger.error(f"Step {step.sequence_index} ({step.name}) failed: {str(e)}")
            raise StepFailedError(step, e, list(result.records)) from e

        return ExecutionRecord(
            step=step,
            started_at=started_at,
            finished_at=self._clock(),
            applied=bool(applied),
        )
