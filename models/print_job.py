"""
Print job data models.

These models describe one pass of the print pipeline
(render -> convert -> dispatch) and the way its outcome is reported back.

Lifecycle of a job stage:
    REQUESTED -> RENDERING -> CONVERTING -> DISPATCHING -> (COMPLETED | FAILED)

A job may jump to FAILED from any non-terminal stage. Jobs are owned by
PrintOrchestrator and dropped once terminal; only the latest PrintOutcome
is kept for the board to poll.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, Optional

from core.exceptions import ErrorKind


class ScopeKind(Enum):
    SINGLE_ORDER = "single_order"
    ALL_ORDERS = "all_orders"


@dataclass(frozen=True)
class PrintScope:
    """
    What to print: one order, or every order currently in the store.

    Use the ``single`` and ``all_orders`` constructors.
    """

    kind: ScopeKind
    order_id: Optional[str] = None

    @classmethod
    def single(cls, order_id: str) -> "PrintScope":
        return cls(ScopeKind.SINGLE_ORDER, order_id)

    @classmethod
    def all_orders(cls) -> "PrintScope":
        return cls(ScopeKind.ALL_ORDERS)

    @property
    def is_single(self) -> bool:
        return self.kind is ScopeKind.SINGLE_ORDER

    def describe(self) -> str:
        return f"order {self.order_id}" if self.is_single else "all orders"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"kind": self.kind.value}
        if self.is_single:
            data["orderId"] = self.order_id
        return data


class JobStage(Enum):
    """Stage of a print job."""

    REQUESTED = "requested"
    RENDERING = "rendering"
    CONVERTING = "converting"
    DISPATCHING = "dispatching"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStage.COMPLETED, JobStage.FAILED)


_STAGE_ORDER = (
    JobStage.REQUESTED,
    JobStage.RENDERING,
    JobStage.CONVERTING,
    JobStage.DISPATCHING,
    JobStage.COMPLETED,
)


@dataclass(frozen=True)
class PrintJob:
    """
    One accepted print request travelling through the pipeline.

    Frozen: each stage change produces a new instance via ``advance`` or
    ``fail``, so readers on other threads always see a consistent job.
    """

    id: str
    """Job UUID."""

    scope: PrintScope
    """What is being printed."""

    printer_name: str
    """Target printer."""

    requested_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    """When the request was accepted."""

    stage: JobStage = JobStage.REQUESTED
    """Current pipeline stage."""

    failure_reason: Optional[ErrorKind] = None
    """Classification of the failure (FAILED only)."""

    failure_message: str = ""
    """Operator-facing failure message (FAILED only)."""

    def advance(self, stage: JobStage) -> "PrintJob":
        """
        Move to the next stage.

        Raises:
            ValueError: If ``stage`` does not come after the current stage
        """
        if self.stage.is_terminal or stage is JobStage.FAILED:
            raise ValueError(f"Cannot advance job from {self.stage.value} to {stage.value}")
        if _STAGE_ORDER.index(stage) <= _STAGE_ORDER.index(self.stage):
            raise ValueError(f"Cannot advance job from {self.stage.value} to {stage.value}")
        return replace(self, stage=stage)

    def fail(self, reason: ErrorKind, message: str) -> "PrintJob":
        if self.stage.is_terminal:
            raise ValueError(f"Job {self.id[:8]} already {self.stage.value}")
        return replace(
            self,
            stage=JobStage.FAILED,
            failure_reason=reason,
            failure_message=message,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "jobId": self.id,
            "scope": self.scope.to_dict(),
            "printerName": self.printer_name,
            "requestedAt": self.requested_at.isoformat(),
            "stage": self.stage.value,
            "failureReason": self.failure_reason.value if self.failure_reason else None,
            "failureMessage": self.failure_message,
        }


@dataclass(frozen=True)
class PrintOutcome:
    """
    Terminal report of a print job (or of an auto-trigger that could not
    start one). This is what the operator is notified with.
    """

    job_id: Optional[str]
    scope: PrintScope
    printer_name: str
    success: bool
    message: str
    error_kind: Optional[ErrorKind] = None
    filename: Optional[str] = None
    finished_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_job(cls, job: PrintJob, message: str, filename: Optional[str] = None) -> "PrintOutcome":
        return cls(
            job_id=job.id,
            scope=job.scope,
            printer_name=job.printer_name,
            success=job.stage is JobStage.COMPLETED,
            message=message,
            error_kind=job.failure_reason,
            filename=filename,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "jobId": self.job_id,
            "scope": self.scope.to_dict(),
            "printerName": self.printer_name,
            "success": self.success,
            "message": self.message,
            "errorKind": self.error_kind.value if self.error_kind else None,
            "filename": self.filename,
            "finishedAt": self.finished_at.isoformat(),
        }


@dataclass(frozen=True)
class PrintRequestResult:
    """Answer to PrintOrchestrator.request(): accepted, or rejected as busy."""

    accepted: bool
    job_id: Optional[str] = None
    reason: Optional[ErrorKind] = None

    @classmethod
    def accept(cls, job_id: str) -> "PrintRequestResult":
        return cls(accepted=True, job_id=job_id)

    @classmethod
    def busy(cls) -> "PrintRequestResult":
        return cls(accepted=False, reason=ErrorKind.BUSY)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accepted": self.accepted,
            "jobId": self.job_id,
            "reason": self.reason.value if self.reason else None,
        }
