"""
Print orchestrator with a single system-wide print lane.

Every print, manual or automatic, goes through request(). The lane is a
two-state machine (IDLE / BUSY) switched by a lock-guarded compare-and-swap:
only a request that finds the lane IDLE may claim it. A request that finds
it BUSY is dropped (never queued) and gets a rejected result back; callers
must not retry on their own.

An accepted request runs in its own job thread, so request() returns
immediately:

    REQUESTED
      -> RENDERING    wait until the store has committed the triggering
                      mutation, then RenderService.snapshot()
      -> CONVERTING   backend.print_document() (HTML -> PDF artifact)
      -> DISPATCHING  (reported by the backend when it starts sending)
      -> COMPLETED | FAILED

Each stage runs with a time budget; a stage that overruns fails the job
with StageTimeoutError. Whatever happens, the lane goes back to IDLE when
the job reaches a terminal stage.

Auto trigger:
    orchestrator.attach(order_store) subscribes on_order_ready(), which
    requests a single-order print on the currently selected printer each
    time an order becomes ready.

Usage:
    orchestrator = PrintOrchestrator(store, render_service, backend,
                                     selected_printer=registry.get_selected)
    orchestrator.attach(store)

    result = orchestrator.print_all()
    if not result.accepted:
        # lane busy - tell the operator, do not retry
"""

from __future__ import annotations

import threading
import uuid
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from enum import Enum
from typing import Any, Callable, List, Optional, Protocol

from core.exceptions import (
    ErrorKind,
    KitchenPrintError,
    NoPrinterSelectedError,
    StageTimeoutError,
)
from models.document import Document, PrintReceipt
from models.print_job import (
    JobStage,
    PrintJob,
    PrintOutcome,
    PrintRequestResult,
    PrintScope,
)
from services.order_store import OrderReadyEvent, OrderStore
from services.render_service import RenderService
from logging_config import get_logger, get_job_logger, set_thread_name


logger = get_logger(__name__)


class LaneState(Enum):
    IDLE = "idle"
    BUSY = "busy"


class PrintBackend(Protocol):
    """Converts and dispatches a document (print service client or in-process service)."""

    def print_document(
        self,
        document: Document,
        printer_name: str,
        on_stage: Optional[Callable[[str], None]] = None
    ) -> PrintReceipt:
        ...


OutcomeListener = Callable[[PrintOutcome], None]

_BACKEND_STAGES = {
    "converting": JobStage.CONVERTING,
    "dispatching": JobStage.DISPATCHING,
}
_STAGE_RANK = {
    JobStage.REQUESTED: 0,
    JobStage.RENDERING: 1,
    JobStage.CONVERTING: 2,
    JobStage.DISPATCHING: 3,
}

# Failures that are not KitchenPrintErrors are reported by the stage they hit
_UNEXPECTED_ERROR_KINDS = {
    JobStage.REQUESTED: ErrorKind.CONVERSION_ERROR,
    JobStage.RENDERING: ErrorKind.CONVERSION_ERROR,
    JobStage.CONVERTING: ErrorKind.CONVERSION_ERROR,
    JobStage.DISPATCHING: ErrorKind.PRINTER_ERROR,
}


class PrintOrchestrator:
    """
    Single-flight coordinator for print jobs.

    Args:
        store: Order store (source of the mutation-committed signal)
        render_service: Builds the ticket Document
        backend: Converts and dispatches the Document
        selected_printer: Returns the operator's current printer (auto trigger)
        render_timeout_seconds: Budget for the rendering stage
        print_timeout_seconds: Budget for conversion + dispatch
    """

    def __init__(
        self,
        store: OrderStore,
        render_service: RenderService,
        backend: PrintBackend,
        selected_printer: Callable[[], Optional[str]] = lambda: None,
        render_timeout_seconds: float = 10.0,
        print_timeout_seconds: float = 90.0,
    ):
        self._store = store
        self._render_service = render_service
        self._backend = backend
        self._selected_printer = selected_printer
        self._render_timeout = render_timeout_seconds
        self._print_timeout = print_timeout_seconds

        # Lane state, the current job and the last outcome share one lock
        self._lane = threading.Condition(threading.Lock())
        self._state = LaneState.IDLE
        self._job: Optional[PrintJob] = None
        self._last_outcome: Optional[PrintOutcome] = None

        self._listeners: List[OutcomeListener] = []
        self._listeners_lock = threading.Lock()

        logger.info("PrintOrchestrator initialized")

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def lane_state(self) -> LaneState:
        with self._lane:
            return self._state

    @property
    def current_job(self) -> Optional[PrintJob]:
        """The in-flight job (frozen snapshot), or None when idle."""
        with self._lane:
            return self._job

    @property
    def last_outcome(self) -> Optional[PrintOutcome]:
        """Most recent terminal outcome; earlier outcomes are not kept."""
        with self._lane:
            return self._last_outcome

    def add_outcome_listener(self, listener: OutcomeListener) -> None:
        with self._listeners_lock:
            self._listeners.append(listener)

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until the lane is IDLE. Returns False on timeout."""
        with self._lane:
            return self._lane.wait_for(lambda: self._state is LaneState.IDLE, timeout)

    # =========================================================================
    # TRIGGERS
    # =========================================================================

    def attach(self, store: OrderStore) -> None:
        """Subscribe to the store's became-ready notifications."""
        store.subscribe(self.on_order_ready)

    def on_order_ready(self, event: OrderReadyEvent) -> None:
        """Auto trigger: print the order that just became ready."""
        scope = PrintScope.single(event.order_id)
        try:
            result = self.request(scope, self._selected_printer(), min_revision=event.revision)
        except NoPrinterSelectedError as e:
            logger.warning(f"Order {event.order_id} is ready but not printed: {e.message}")
            self._publish(PrintOutcome(
                job_id=None,
                scope=scope,
                printer_name="",
                success=False,
                message=e.message,
                error_kind=e.kind,
            ))
            return

        if not result.accepted:
            logger.info(f"Auto print for order {event.order_id} dropped: print lane busy")

    def print_order(self, order_id: str) -> PrintRequestResult:
        """Manual trigger for one order on the selected printer."""
        return self.request(PrintScope.single(order_id), self._selected_printer())

    def print_all(self) -> PrintRequestResult:
        """Manual trigger for every order on the selected printer."""
        return self.request(PrintScope.all_orders(), self._selected_printer())

    # =========================================================================
    # LANE
    # =========================================================================

    def request(
        self,
        scope: PrintScope,
        printer_name: Optional[str],
        min_revision: Optional[int] = None,
    ) -> PrintRequestResult:
        """
        Ask for a print. Never blocks on the pipeline.

        Args:
            scope: What to print
            printer_name: Target printer
            min_revision: Store revision the render must observe (defaults
                to the revision at request time)

        Returns:
            accepted(job_id), or rejected(BUSY) if a job is in flight

        Raises:
            NoPrinterSelectedError: If ``printer_name`` is empty (the lane
                is not touched)
        """
        if not printer_name:
            raise NoPrinterSelectedError()

        if min_revision is None:
            min_revision = self._store.revision

        job = PrintJob(id=str(uuid.uuid4()), scope=scope, printer_name=printer_name)

        with self._lane:
            if self._state is not LaneState.IDLE:
                logger.info(f"Print request for {scope.describe()} rejected: lane busy")
                return PrintRequestResult.busy()
            self._state = LaneState.BUSY
            self._job = job

        logger.info(f"Print job {job.id[:8]} accepted: {scope.describe()} -> {printer_name}")

        thread = threading.Thread(
            target=self._job_thread_main,
            args=(job, min_revision),
            name=f"Print-{job.id[:8]}",
            daemon=True,
        )
        try:
            thread.start()
        except RuntimeError:
            self._finish(job.fail(ErrorKind.PRINTER_ERROR, "Could not start print job"), None)
            raise

        return PrintRequestResult.accept(job.id)

    def shutdown(self, timeout: float = 5.0) -> None:
        """Wait for the in-flight job, if any (application shutdown)."""
        if not self.wait_until_idle(timeout):
            job = self.current_job
            logger.warning(f"Print job {job.id[:8] if job else '?'} did not finish before shutdown")
        logger.info("PrintOrchestrator shutdown complete")

    # =========================================================================
    # PIPELINE (job thread)
    # =========================================================================

    def _job_thread_main(self, job: PrintJob, min_revision: int) -> None:
        set_thread_name(f"Print-{job.id[:8]}")
        job_logger = get_job_logger(job.id)
        receipt: Optional[PrintReceipt] = None

        try:
            job = self._advance(job.id, JobStage.RENDERING) or job
            job_logger.info(f"Rendering {job.scope.describe()}")
            document = self._run_stage(
                "render", self._render_timeout, self._render, job.scope, min_revision
            )

            job = self._advance(job.id, JobStage.CONVERTING) or job
            job_logger.info(f"Converting and sending to {job.printer_name}")
            receipt = self._run_stage(
                "conversion/dispatch",
                self._print_timeout,
                self._backend.print_document,
                document,
                job.printer_name,
                lambda stage: self._on_backend_stage(job.id, stage),
            )

            job = self._current(job)
            job = job.advance(JobStage.COMPLETED)
            job_logger.info(f"Print completed: {receipt.filename}")

        except KitchenPrintError as e:
            job = self._current(job).fail(e.kind, e.message)
            job_logger.error(f"Print failed [{e.kind.value}]: {e.message}")

        except Exception as e:
            job = self._current(job)
            stage = job.stage
            kind = _UNEXPECTED_ERROR_KINDS.get(stage, ErrorKind.PRINTER_ERROR)
            job = job.fail(kind, str(e))
            job_logger.error(f"Print failed unexpectedly while {stage.value} [{kind.value}]: {e}", exc_info=True)

        finally:
            if not job.stage.is_terminal:
                job = job.fail(ErrorKind.PRINTER_ERROR, "Print job interrupted")
            self._finish(job, receipt)

    def _render(self, scope: PrintScope, min_revision: int) -> Document:
        if not self._store.wait_for_revision(min_revision, self._render_timeout):
            raise StageTimeoutError("render", self._render_timeout)
        return self._render_service.snapshot(scope)

    @staticmethod
    def _run_stage(stage: str, timeout: float, fn: Callable[..., Any], *args: Any) -> Any:
        """
        Run one stage with a time budget.

        On timeout the worker is abandoned (it cannot be killed); its late
        result is discarded and its stage callbacks no longer match the job.
        """
        executor = ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix=f"{threading.current_thread().name}-{stage.split('/')[0]}",
        )
        future = executor.submit(fn, *args)
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError:
            future.cancel()
            raise StageTimeoutError(stage, timeout) from None
        finally:
            executor.shutdown(wait=False)

    def _on_backend_stage(self, job_id: str, stage_name: str) -> None:
        stage = _BACKEND_STAGES.get(stage_name)
        if stage is not None:
            self._advance(job_id, stage)

    def _advance(self, job_id: str, stage: JobStage) -> Optional[PrintJob]:
        """
        Move the current job forward if it is still ``job_id``.

        Repeated or backward stage reports are ignored.
        """
        with self._lane:
            job = self._job
            if job is None or job.id != job_id or job.stage.is_terminal:
                return None
            if _STAGE_RANK[stage] <= _STAGE_RANK[job.stage]:
                return job
            self._job = job.advance(stage)
            return self._job

    def _current(self, fallback: PrintJob) -> PrintJob:
        with self._lane:
            if self._job is not None and self._job.id == fallback.id:
                return self._job
        return fallback

    def _finish(self, job: PrintJob, receipt: Optional[PrintReceipt]) -> None:
        """Record the outcome and return the lane to IDLE (always)."""
        if job.stage is JobStage.COMPLETED and receipt is not None:
            outcome = PrintOutcome.from_job(job, receipt.message, receipt.filename)
        else:
            outcome = PrintOutcome.from_job(job, job.failure_message)

        with self._lane:
            self._last_outcome = outcome
            self._job = None
            self._state = LaneState.IDLE
            self._lane.notify_all()

        self._notify(outcome)

    def _publish(self, outcome: PrintOutcome) -> None:
        with self._lane:
            self._last_outcome = outcome
        self._notify(outcome)

    def _notify(self, outcome: PrintOutcome) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(outcome)
            except Exception as e:
                logger.error(f"Print outcome listener failed: {e}", exc_info=True)
