"""Typed Kubernetes resources and list request descriptors.

The models cover the fields this client reads and keep everything else the
API returns as extra attributes. ``ListRequest`` describes a "list all"
call: method, path, query parameters and the list type the body decodes to.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, TypeVar
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field

from .errors import InvalidDataError


class _ResourceModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class ObjectMeta(_ResourceModel):
    name: str | None = None
    namespace: str | None = None
    uid: str | None = None
    resource_version: str | None = Field(None, alias="resourceVersion")
    creation_timestamp: datetime | None = Field(None, alias="creationTimestamp")
    labels: dict[str, str] | None = None
    annotations: dict[str, str] | None = None


class ListMeta(_ResourceModel):
    """Pagination and versioning metadata of a list response."""

    resource_version: str | None = Field(None, alias="resourceVersion")
    continue_token: str | None = Field(None, alias="continue")
    remaining_item_count: int | None = Field(None, alias="remainingItemCount")


class PodStatus(_ResourceModel):
    phase: str | None = None
    host_ip: str | None = Field(None, alias="hostIP")
    pod_ip: str | None = Field(None, alias="podIP")
    start_time: datetime | None = Field(None, alias="startTime")


class Pod(_ResourceModel):
    api_version: str | None = Field(None, alias="apiVersion")
    kind: str | None = None
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: dict[str, Any] | None = None
    status: PodStatus | None = None


class ObjectReference(_ResourceModel):
    kind: str | None = None
    namespace: str | None = None
    name: str | None = None
    uid: str | None = None


class EventSource(_ResourceModel):
    component: str | None = None
    host: str | None = None


class Event(_ResourceModel):
    """A core/v1 Event.

    ``event_time`` is the microsecond precision timestamp set by newer
    reporters; it is absent on events emitted by older components.
    """

    api_version: str | None = Field(None, alias="apiVersion")
    kind: str | None = None
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    involved_object: ObjectReference | None = Field(None, alias="involvedObject")
    reason: str | None = None
    message: str | None = None
    type: str | None = None
    count: int | None = None
    source: EventSource | None = None
    event_time: datetime | None = Field(None, alias="eventTime")
    first_timestamp: datetime | None = Field(None, alias="firstTimestamp")
    last_timestamp: datetime | None = Field(None, alias="lastTimestamp")
    reporting_component: str | None = Field(None, alias="reportingComponent")


ResourceT = TypeVar("ResourceT", bound=BaseModel)


class ResourceList(_ResourceModel, Generic[ResourceT]):
    """A list response: items plus list metadata."""

    api_version: str | None = Field(None, alias="apiVersion")
    kind: str | None = None
    metadata: ListMeta = Field(default_factory=ListMeta)
    items: list[ResourceT]


@dataclass(frozen=True)
class ListOptions:
    """Optional query parameters of a list call."""

    label_selector: str | None = None
    field_selector: str | None = None
    limit: int | None = None
    continue_token: str | None = None
    resource_version: str | None = None
    timeout_seconds: int | None = None

    def to_params(self) -> dict[str, str]:
        candidates = {
            "labelSelector": self.label_selector,
            "fieldSelector": self.field_selector,
            "limit": self.limit,
            "continue": self.continue_token,
            "resourceVersion": self.resource_version,
            "timeoutSeconds": self.timeout_seconds,
        }
        return {key: str(value) for key, value in candidates.items() if value is not None}


@dataclass(frozen=True)
class ListRequest(Generic[ResourceT]):
    """Description of a list call relative to the API server base URI."""

    path: str
    kind: str
    list_model: type[ResourceList[ResourceT]]
    params: dict[str, str] = field(default_factory=dict)
    method: str = "GET"


def list_namespaced_pod(
    namespace: str,
    options: ListOptions | None = None,
) -> ListRequest[Pod]:
    """Describe a list of all pods in ``namespace``.

    Raises:
        InvalidDataError: If ``namespace`` is empty.
    """
    if not namespace:
        msg = "namespace cannot be empty"
        raise InvalidDataError(msg)
    return ListRequest(
        path=f"/api/v1/namespaces/{quote(namespace, safe='')}/pods",
        kind="PodList",
        list_model=ResourceList[Pod],
        params=(options or ListOptions()).to_params(),
    )


def list_event_for_all_namespaces(
    options: ListOptions | None = None,
) -> ListRequest[Event]:
    """Describe a list of events across every namespace."""
    return ListRequest(
        path="/api/v1/events",
        kind="EventList",
        list_model=ResourceList[Event],
        params=(options or ListOptions()).to_params(),
    )
