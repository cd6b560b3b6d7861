"""Thin namespaced wrapper over the Kubernetes API.

Every read returns plain camelCase dicts (or None when the object is absent)
so that the rest of the operator never handles client model classes.
"""

from typing import Any

import urllib3
from kubernetes import client
from kubernetes.client.rest import ApiException

from yt_operator.exceptions import ConflictError, FetchError, KubernetesError
from yt_operator.logging_config import get_logger
from yt_operator.models.cluster import API_GROUP, API_VERSION, CLUSTER_PLURAL, SPYT_PLURAL

logger = get_logger(__name__)

# kind -> (api attribute, method suffix)
_KINDS = {
    "ConfigMap": ("core", "config_map"),
    "Secret": ("core", "secret"),
    "Service": ("core", "service"),
    "Deployment": ("apps", "deployment"),
    "StatefulSet": ("apps", "stateful_set"),
    "Job": ("batch", "job"),
}


def label_selector(labels: dict[str, str]) -> str:
    return ",".join(f"{key}={value}" for key, value in sorted(labels.items()))


class ApiProxy:
    """Create/get/replace/delete operations over the kinds the operator owns."""

    def __init__(
        self,
        namespace: str,
        api_client: client.ApiClient | None = None,
        request_timeout: float | None = None,
    ):
        """Initialize the proxy.

        Args:
            namespace: Namespace all calls are scoped to
            api_client: Configured API client, the default configuration is used if omitted
            request_timeout: Per request timeout in seconds
        """
        self.namespace = namespace
        self.api_client = api_client or client.ApiClient()
        self.request_timeout = request_timeout
        self.core = client.CoreV1Api(self.api_client)
        self.apps = client.AppsV1Api(self.api_client)
        self.batch = client.BatchV1Api(self.api_client)
        self.custom = client.CustomObjectsApi(self.api_client)

    def _method(self, verb: str, kind: str):
        if kind not in _KINDS:
            raise ValueError(f"Unsupported kind: {kind}")
        api_name, suffix = _KINDS[kind]
        return getattr(getattr(self, api_name), f"{verb}_namespaced_{suffix}")

    def _to_dict(self, obj: Any) -> dict[str, Any]:
        return self.api_client.sanitize_for_serialization(obj)

    def fetch(self, kind: str, name: str) -> dict[str, Any] | None:
        """Read an object, returning None if it does not exist.

        Raises:
            FetchError: If the API is unreachable or rejects the read
        """
        read = self._method("read", kind)
        try:
            obj = read(name, self.namespace, _request_timeout=self.request_timeout)
        except ApiException as e:
            if e.status == 404:
                return None
            raise FetchError(f"Failed to fetch {kind} {self.namespace}/{name}", e.reason)
        except urllib3.exceptions.HTTPError as e:
            raise FetchError(f"Kubernetes API unreachable while fetching {kind} {name}", str(e))
        return self._to_dict(obj)

    def create(self, kind: str, manifest: dict[str, Any]) -> dict[str, Any]:
        """Create an object from a manifest and return the stored object."""
        name = manifest["metadata"]["name"]
        logger.info(f"Creating {kind} {self.namespace}/{name}")
        create = self._method("create", kind)
        return self._write(
            kind,
            name,
            lambda: create(self.namespace, manifest, _request_timeout=self.request_timeout),
        )

    def update(self, kind: str, name: str, manifest: dict[str, Any]) -> dict[str, Any]:
        """Replace an object with the desired manifest.

        Fields absent from the manifest are dropped from the stored object.
        The manifest should carry the observed resourceVersion, so that a
        concurrent writer turns into a ConflictError instead of a lost update.
        """
        logger.info(f"Updating {kind} {self.namespace}/{name}")
        replace = self._method("replace", kind)
        return self._write(
            kind,
            name,
            lambda: replace(name, self.namespace, manifest, _request_timeout=self.request_timeout),
        )

    def delete(self, kind: str, name: str) -> None:
        """Delete an object; deleting an absent object is not an error."""
        logger.info(f"Deleting {kind} {self.namespace}/{name}")
        delete = self._method("delete", kind)
        body = client.V1DeleteOptions(propagation_policy="Background")
        try:
            delete(name, self.namespace, body=body, _request_timeout=self.request_timeout)
        except ApiException as e:
            if e.status == 404:
                return
            raise KubernetesError(f"Failed to delete {kind} {self.namespace}/{name}", e.reason)
        except urllib3.exceptions.HTTPError as e:
            raise KubernetesError(
                f"Kubernetes API unreachable while deleting {kind} {name}", str(e)
            )

    def _write(self, kind: str, name: str, call) -> dict[str, Any]:
        try:
            return self._to_dict(call())
        except ApiException as e:
            if e.status == 409:
                raise ConflictError(
                    f"Conflict writing {kind} {self.namespace}/{name}",
                    "The object was modified concurrently, it will be retried on the next tick",
                )
            raise KubernetesError(f"Failed to write {kind} {self.namespace}/{name}", e.reason)
        except urllib3.exceptions.HTTPError as e:
            raise KubernetesError(f"Kubernetes API unreachable while writing {kind} {name}", str(e))

    def list_pods(self, labels: dict[str, str]) -> list[dict[str, Any]]:
        """List pods matching all of the given labels."""
        try:
            response = self.core.list_namespaced_pod(
                self.namespace,
                label_selector=label_selector(labels),
                _request_timeout=self.request_timeout,
            )
        except ApiException as e:
            raise FetchError(f"Failed to list pods in {self.namespace}", e.reason)
        except urllib3.exceptions.HTTPError as e:
            raise FetchError("Kubernetes API unreachable while listing pods", str(e))
        return [self._to_dict(pod) for pod in response.items]

    def _get_custom(self, plural: str, name: str) -> dict[str, Any]:
        try:
            return self.custom.get_namespaced_custom_object(
                API_GROUP,
                API_VERSION,
                self.namespace,
                plural,
                name,
                _request_timeout=self.request_timeout,
            )
        except ApiException as e:
            if e.status == 404:
                raise FetchError(
                    f"Resource {plural}/{name} not found in namespace {self.namespace}",
                    f"Check the name with: kubectl get {plural} -n {self.namespace}",
                )
            raise FetchError(f"Failed to fetch {plural}/{name}", e.reason)
        except urllib3.exceptions.HTTPError as e:
            raise FetchError(f"Kubernetes API unreachable while fetching {plural}/{name}", str(e))

    def get_cluster(self, name: str) -> dict[str, Any]:
        return self._get_custom(CLUSTER_PLURAL, name)

    def get_spyt(self, name: str) -> dict[str, Any]:
        return self._get_custom(SPYT_PLURAL, name)

    def patch_cluster_status(self, name: str, body: dict[str, Any]) -> None:
        """Persist the status sub-resource of a cluster."""
        logger.info(f"Updating status of cluster {self.namespace}/{name}")
        try:
            self.custom.patch_namespaced_custom_object_status(
                API_GROUP,
                API_VERSION,
                self.namespace,
                CLUSTER_PLURAL,
                name,
                body,
                _request_timeout=self.request_timeout,
            )
        except ApiException as e:
            if e.status == 409:
                raise ConflictError(f"Conflict updating status of cluster {name}")
            raise KubernetesError(f"Failed to update status of cluster {name}", e.reason)
        except urllib3.exceptions.HTTPError as e:
            raise KubernetesError(f"Kubernetes API unreachable while updating {name}", str(e))
