"""Pydantic models for slash commands and Brigade events."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field

EVENT_SOURCE = "brigade.sh/slack"
TRACKING_KEY = "tracking"
APP_ID_QUALIFIER = "appID"


class WorkerPhase:
    """Lifecycle phases reported by Brigade workers."""

    ABORTED = "ABORTED"
    CANCELED = "CANCELED"
    FAILED = "FAILED"
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SCHEDULING_FAILED = "SCHEDULING_FAILED"
    STARTING = "STARTING"
    SUCCEEDED = "SUCCEEDED"
    TIMED_OUT = "TIMED_OUT"
    UNKNOWN = "UNKNOWN"

    TERMINAL = (ABORTED, CANCELED, FAILED, SCHEDULING_FAILED, SUCCEEDED, TIMED_OUT)


class _BrigadeModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SlashCommand(BaseModel):
    """Details of a Slack slash command invocation."""

    team_id: str = ""  # e.g. T0001
    team_domain: str = ""  # e.g. example
    enterprise_id: str = ""  # e.g. E0001
    enterprise_name: str = ""
    channel_id: str = ""  # e.g. C2147483705
    channel_name: str = ""
    user_id: str = ""  # e.g. U2147483697
    command: str = ""  # e.g. /weather
    text: str = ""  # e.g. 94070
    response_url: str = ""
    trigger_id: str = ""
    api_app_id: str = ""  # e.g. A123456

    @classmethod
    def from_form(cls, form) -> "SlashCommand":
        return cls(**{name: form.get(name, "") for name in cls.model_fields})


class ObjectMeta(_BrigadeModel):
    id: str = ""
    created: datetime | None = None


class SourceState(_BrigadeModel):
    state: Dict[str, str] = Field(default_factory=dict)


class WorkerStatus(_BrigadeModel):
    phase: str = WorkerPhase.UNKNOWN


class Worker(_BrigadeModel):
    status: WorkerStatus = Field(default_factory=WorkerStatus)


class Event(_BrigadeModel):
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    project_id: str = Field("", alias="projectID")
    source: str = ""
    type: str = ""
    qualifiers: Dict[str, str] = Field(default_factory=dict)
    labels: Dict[str, str] = Field(default_factory=dict)
    source_state: SourceState | None = Field(None, alias="sourceState")
    payload: str = ""
    summary: str = ""
    worker: Worker | None = None

    @property
    def id(self) -> str:
        return self.metadata.id

    @property
    def app_id(self) -> str | None:
        return self.qualifiers.get(APP_ID_QUALIFIER)

    @property
    def worker_phase(self) -> str:
        if self.worker is None:
            return WorkerPhase.UNKNOWN
        return self.worker.status.phase

    def to_api(self) -> dict:
        """Serialise the event the way the Brigade API expects it on create."""

        body = self.model_dump(by_alias=True, exclude_none=True, exclude={"metadata", "worker"})
        body["apiVersion"] = "brigade.sh/v2"
        body["kind"] = "Event"
        return body


class ListMeta(_BrigadeModel):
    continue_: str = Field("", alias="continue")
    remaining_item_count: int = Field(0, alias="remainingItemCount")


class EventList(_BrigadeModel):
    metadata: ListMeta = Field(default_factory=ListMeta)
    items: List[Event] = Field(default_factory=list)


class EventsSelector(_BrigadeModel):
    """Criteria for listing events."""

    source: str = ""
    worker_phases: List[str] = Field(default_factory=list)
    source_state: Dict[str, str] = Field(default_factory=dict)


class ListOptions(_BrigadeModel):
    """Cursor for one paginated listing; discarded when the cycle ends."""

    limit: int = 100
    continue_: str = ""
