"""
Workflow transition observers.

Every initiation and every recorded decision produces one
``WorkflowEvent``.  Services hand it to an injected ``WorkflowObserver``;
the default observer writes it as a structured ``workflow_event`` log
record with stable field names so log pipelines can aggregate on them.

Events are emitted after the service flushes and before the caller
commits.  An observer that needs committed data must defer its own work.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from claims_kernel.domain.workflow import WorkflowEvent, WorkflowEventKind
from claims_kernel.logging_config import get_logger

logger = get_logger("services.workflow_events")

EVENT_WORKFLOW = "workflow_event"


@runtime_checkable
class WorkflowObserver(Protocol):
    """Sink for workflow transition events."""

    def record(self, event: WorkflowEvent) -> None:
        ...


def event_payload(event: WorkflowEvent) -> dict[str, Any]:
    """Flatten an event into log-friendly fields."""
    payload: dict[str, Any] = {
        "observability_event": EVENT_WORKFLOW,
        "event_kind": event.kind.value,
        "claim_id": str(event.claim_id),
        "from_state": event.from_state,
        "to_state": event.to_state,
        "from_step": event.from_step,
        "to_step": event.to_step,
        "from_status": event.from_status.value,
        "to_status": event.to_status.value,
        "is_override": event.is_override,
    }
    if event.actor_id is not None:
        payload["actor_id"] = str(event.actor_id)
    if event.decision is not None:
        payload["decision"] = event.decision.value
    if event.occurred_at is not None:
        payload["occurred_at"] = event.occurred_at.isoformat()
    if event.reason:
        payload["reason"] = event.reason
    return payload


class LoggingWorkflowObserver:
    """Default observer: one structured log line per event."""

    def record(self, event: WorkflowEvent) -> None:
        logger.info(EVENT_WORKFLOW, extra=event_payload(event))


class RecordingWorkflowObserver:
    """Keeps events in memory, in emission order."""

    def __init__(self) -> None:
        self.events: list[WorkflowEvent] = []

    def record(self, event: WorkflowEvent) -> None:
        self.events.append(event)

    def kinds(self) -> list[WorkflowEventKind]:
        return [e.kind for e in self.events]

    def for_claim(self, claim_id) -> list[WorkflowEvent]:
        return [e for e in self.events if e.claim_id == claim_id]

    def clear(self) -> None:
        self.events.clear()


class CompositeWorkflowObserver:
    """Fans one event out to several observers."""

    def __init__(self, *observers: WorkflowObserver) -> None:
        self._observers = observers

    def record(self, event: WorkflowEvent) -> None:
        for observer in self._observers:
            observer.record(event)
