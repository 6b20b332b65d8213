"""Observer port — where the fulfillment pipeline reports what it does.

Every stage transition produces one ``StageTransition``. Metrics and alerts
are separate calls so a sink can route them differently.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import Enum


class AlertSeverity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class StageTransition:
    order_id: str
    stage: str
    from_status: str
    to_status: str
    duration_ms: float
    succeeded: bool
    reason: str | None = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict:
        data = asdict(self)
        data["occurred_at"] = self.occurred_at.isoformat()
        return data


class ObserverPort(ABC):
    @abstractmethod
    def stage_transition(self, transition: StageTransition) -> None: ...

    @abstractmethod
    def metric(self, name: str, value: float, tags: dict | None = None) -> None: ...

    @abstractmethod
    def alert(self, condition: str, severity: AlertSeverity, message: str, **context) -> None: ...
