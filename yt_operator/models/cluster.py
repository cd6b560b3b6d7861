"""Data models for the cluster resource and its status sub-resource."""

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from yt_operator.labeller import Labeller

API_GROUP = "cluster.ytsaurus.tech"
API_VERSION = "v1"
CLUSTER_PLURAL = "ytsaurus"
SPYT_PLURAL = "spyts"

_NAME_PATTERN = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")
# Services, and the pods and revisions of stateful sets, need names that fit a DNS label
MAX_NAME_LENGTH = 63


class ResourceModel(BaseModel):
    """Base for models that round-trip through camelCase custom objects."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ClusterState(str, Enum):
    """Coarse cluster lifecycle phase."""

    CREATED = "Created"
    INITIALIZING = "Initializing"
    RUNNING = "Running"
    UPDATING = "Updating"


class UpdateState(str, Enum):
    """Sub-phase of an update, meaningful only while the cluster is Updating."""

    NONE = "None"
    WAITING_FOR_PODS_REMOVAL = "WaitingForPodsRemoval"
    WAITING_FOR_PODS_CREATION = "WaitingForPodsCreation"


class ClusterStatus(ResourceModel):
    """Persisted status of the cluster resource."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    state: ClusterState = ClusterState.CREATED
    update_state: UpdateState = UpdateState.NONE
    # None means the update covers every component
    local_updating_components: list[str] | None = None

    def is_updating(self) -> bool:
        return self.state == ClusterState.UPDATING

    def waiting_for_pods_removal(self) -> bool:
        return self.is_updating() and self.update_state == UpdateState.WAITING_FOR_PODS_REMOVAL

    def updates_component(self, name: str) -> bool:
        """Whether a running update covers the named component."""
        if not self.is_updating():
            return False
        if self.local_updating_components is None:
            return True
        return name in self.local_updating_components

    def to_resource(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class InstanceSpec(ResourceModel):
    """Replica count and image override shared by server components."""

    instance_count: int = Field(default=1, ge=0)
    image: str | None = None


class MastersSpec(InstanceSpec):
    """Primary masters configuration."""

    cell_tag: int = 1


class ExecNodesSpec(InstanceSpec):
    """One named pool of exec nodes."""

    name: str = "default"
    sidecars: list[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate pool name can be used inside resource names."""
        if not _NAME_PATTERN.match(v):
            raise ValueError(
                f"exec node pool name '{v}' must contain only lowercase alphanumeric "
                "characters and hyphens"
            )
        return v


class UISpec(ResourceModel):
    """Web interface configuration."""

    image: str | None = None
    instance_count: int = Field(default=1, ge=0)


class ClusterSpec(ResourceModel):
    """Declared desired state of the cluster."""

    core_image: str
    ui_image: str | None = None
    image_pull_secrets: list[str] = Field(default_factory=list)
    primary_masters: MastersSpec = Field(default_factory=MastersSpec)
    exec_nodes: list[ExecNodesSpec] = Field(default_factory=list)
    ui: UISpec | None = None
    http_proxy_address: str | None = None
    # Name of a config map whose entries are merged over the generated config files
    config_overrides: str | None = None

    @field_validator("core_image")
    @classmethod
    def validate_core_image(cls, v: str) -> str:
        """Validate core_image is not empty."""
        if not v:
            raise ValueError("core_image cannot be empty")
        return v

    @field_validator("exec_nodes")
    @classmethod
    def validate_exec_nodes(cls, v: list[ExecNodesSpec]) -> list[ExecNodesSpec]:
        """Validate exec node pool names are unique."""
        names = [pool.name for pool in v]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"exec node pool names must be unique, duplicated: {duplicates}")
        return v

    @model_validator(mode="after")
    def validate_ui_image(self) -> "ClusterSpec":
        """Validate the UI has an image when it is enabled."""
        if self.ui is not None and not (self.ui.image or self.ui_image):
            raise ValueError("ui requires ui.image or uiImage to be set")
        return self


class Ytsaurus(BaseModel):
    """The cluster resource: declarative spec plus mutable status."""

    name: str
    namespace: str
    spec: ClusterSpec
    status: ClusterStatus = Field(default_factory=ClusterStatus)

    @classmethod
    def from_resource(cls, obj: dict[str, Any]) -> "Ytsaurus":
        """Parse from a custom object as returned by the API."""
        metadata = obj.get("metadata", {})
        return cls(
            name=metadata["name"],
            namespace=metadata.get("namespace", "default"),
            spec=ClusterSpec.model_validate(obj.get("spec") or {}),
            status=ClusterStatus.model_validate(obj.get("status") or {}),
        )

    def with_status(self, status: ClusterStatus) -> "Ytsaurus":
        return self.model_copy(update={"status": status})

    @model_validator(mode="after")
    def validate_name_lengths(self) -> "Ytsaurus":
        """Validate every generated resource name fits a DNS label."""
        too_long = [name for name in self.generated_names() if len(name) > MAX_NAME_LENGTH]
        if too_long:
            raise ValueError(
                f"generated resource names exceed {MAX_NAME_LENGTH} characters: {too_long}; "
                "shorten the cluster name or the exec node pool name"
            )
        return self

    def generated_names(self) -> list[str]:
        """Longest names among the resources owned by each component."""
        labellers = [(Labeller(self.name, self.namespace, "master"), "headless")]
        labellers += [
            (Labeller(self.name, self.namespace, "exec-node", pool.name), "headless")
            for pool in self.spec.exec_nodes
        ]
        if self.spec.ui is not None:
            labellers.append((Labeller(self.name, self.namespace, "ui"), "http"))
        names = []
        for labeller, service_kind in labellers:
            names += [labeller.resource_name(service_kind), labeller.main_config_map_name()]
        return names

    def status_patch(self) -> dict[str, Any]:
        """Body for a patch of the status sub-resource."""
        return {"status": self.status.to_resource()}


class SpytSpec(ResourceModel):
    """Declared state of a SPYT deployment."""

    name: str = "default"
    image: str
    ytsaurus: str


class Spyt(BaseModel):
    """The SPYT resource, bound to one cluster."""

    name: str
    namespace: str
    spec: SpytSpec

    @classmethod
    def from_resource(cls, obj: dict[str, Any]) -> "Spyt":
        """Parse from a custom object as returned by the API."""
        metadata = obj.get("metadata", {})
        return cls(
            name=metadata["name"],
            namespace=metadata.get("namespace", "default"),
            spec=SpytSpec.model_validate(obj.get("spec") or {}),
        )
