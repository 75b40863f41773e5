"""OTel counters for governance decisions and role provisioning."""

from __future__ import annotations

from opentelemetry import metrics

_meter = metrics.get_meter("catalog.governance")
_decision_counter = _meter.create_counter(
    name="catalog.requests.decided",
    description="Review decisions recorded per workflow and outcome",
    unit="decisions",
)
_provisioning_counter = _meter.create_counter(
    name="catalog.provisioning.steps",
    description="Service-access provisioning statements per step and result",
    unit="statements",
)


def record_decision(workflow: str, request_type: str, outcome: str) -> None:
    """Record one review decision (approved, denied, returned)."""
    _decision_counter.add(1, attributes={"workflow": workflow, "request_type": request_type, "outcome": outcome})


def record_provisioning_step(action: str, step: str, *, succeeded: bool) -> None:
    _provisioning_counter.add(1, attributes={"action": action, "step": step, "succeeded": succeeded})
