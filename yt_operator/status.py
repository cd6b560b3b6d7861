"""Reconciliation outcomes shared by every component."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class SyncStatus(str, Enum):
    """Closed set of reconcile outcomes."""

    READY = "Ready"
    PENDING = "Pending"
    BLOCKED = "Blocked"
    UPDATING = "Updating"
    NEED_LOCAL_UPDATE = "NeedLocalUpdate"


class ComponentStatus(BaseModel):
    """Outcome of one reconcile pass over a component.

    Freshly computed on every tick and never mutated afterwards.
    """

    model_config = ConfigDict(frozen=True)

    sync_status: SyncStatus
    reason: str = ""

    def is_ready(self) -> bool:
        return self.sync_status == SyncStatus.READY

    def __str__(self) -> str:
        if self.reason:
            return f"{self.sync_status.value} ({self.reason})"
        return self.sync_status.value


def simple_status(status: SyncStatus) -> ComponentStatus:
    return ComponentStatus(sync_status=status)


def waiting_status(status: SyncStatus, reason: str) -> ComponentStatus:
    return ComponentStatus(sync_status=status, reason=reason)
