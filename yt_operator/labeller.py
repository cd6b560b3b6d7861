"""Naming and labelling of the resources a component owns."""

from dataclasses import dataclass

COMPONENT_LABEL = "app.kubernetes.io/component"
PART_OF_LABEL = "app.kubernetes.io/part-of"
MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"
INSTANCE_LABEL = "app.kubernetes.io/instance"

MANAGER_NAME = "yt-operator"


def format_component_name(kind: str, suffix: str | None = None) -> str:
    """Append a user supplied suffix unless it is empty or "default"."""
    if not suffix or suffix == "default":
        return kind
    return f"{kind}-{suffix}"


@dataclass(frozen=True)
class Labeller:
    """Derives stable names and labels from cluster name, component kind and suffix.

    Attributes:
        cluster_name: Name of the owning cluster resource
        namespace: Namespace all owned resources live in
        component_kind: Kind of component, e.g. "exec-node"
        suffix: Optional user supplied suffix, e.g. an exec node pool name
    """

    cluster_name: str
    namespace: str
    component_kind: str
    suffix: str | None = None

    @property
    def component_name(self) -> str:
        return format_component_name(self.component_kind, self.suffix)

    def resource_name(self, kind: str | None = None) -> str:
        """Name of an owned resource, unique within the namespace."""
        base = f"{self.cluster_name}-{self.component_name}"
        return f"{base}-{kind}" if kind else base

    def main_config_map_name(self) -> str:
        return self.resource_name("config")

    def secret_name(self) -> str:
        return self.resource_name("secret")

    def init_job_name(self, job: str) -> str:
        return self.resource_name(f"init-job-{job}")

    def selector_labels(self) -> dict[str, str]:
        return {
            INSTANCE_LABEL: self.cluster_name,
            COMPONENT_LABEL: self.component_name,
        }

    def labels(self) -> dict[str, str]:
        return {
            **self.selector_labels(),
            PART_OF_LABEL: "ytsaurus",
            MANAGED_BY_LABEL: MANAGER_NAME,
        }

    def object_meta(self, name: str) -> dict:
        return {"name": name, "namespace": self.namespace, "labels": self.labels()}
