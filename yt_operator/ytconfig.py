"""Generation of service configuration files.

The content of the files is opaque to the reconcile logic: components only
need deterministic bytes they can compare with what is deployed.
"""

import secrets as secrets_module
import string
from collections.abc import Callable
from typing import Any

import yaml

from yt_operator.exceptions import ValidationError
from yt_operator.models.cluster import ExecNodesSpec, Ytsaurus

GeneratorFunc = Callable[[], bytes]
# Receives the deployed config and tells whether running processes must restart
ReloadCheckerFunc = Callable[[bytes | None], bool]

MASTER_RPC_PORT = 9010
NODE_RPC_PORT = 9012
UI_HTTP_PORT = 80
HTTP_PROXY_PORT = 80

CLIENT_CONFIG_FILE_NAME = "client.yaml"
MASTER_CONFIG_FILE_NAME = "ytserver-master.yaml"
EXEC_NODE_CONFIG_FILE_NAME = "ytserver-exec-node.yaml"
UI_CONFIG_FILE_NAME = "ui.yaml"


def rand_string(n: int) -> str:
    """Random string of n ASCII letters from a cryptographically secure source."""
    return "".join(secrets_module.choice(string.ascii_letters) for _ in range(n))


def _dump(config: dict[str, Any]) -> bytes:
    return yaml.safe_dump(config, default_flow_style=False, sort_keys=True).encode("utf-8")


def merge_config(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge override into base: nested mappings merge key by key, other values replace."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def parse_override(content: str) -> dict[str, Any]:
    """Parse one entry of the overrides config map.

    Raises:
        ValidationError: If the entry is not YAML or not a mapping
    """
    try:
        override = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValidationError("Config override is not valid YAML", details=str(e)) from e
    if override is None:
        return {}
    if not isinstance(override, dict):
        raise ValidationError(
            "Config override must be a mapping", details=f"got {type(override).__name__}"
        )
    return override


def apply_override(generated: bytes, override: dict[str, Any]) -> bytes:
    """Generated config with the override merged over it, dumped deterministically."""
    if not override:
        return generated
    return _dump(merge_config(yaml.safe_load(generated) or {}, override))


class Generator:
    """Renders config files and well-known addresses for one cluster."""

    def __init__(self, cluster: Ytsaurus, cluster_domain: str = "cluster.local"):
        self.cluster = cluster
        self.cluster_domain = cluster_domain

    @property
    def _name(self) -> str:
        return self.cluster.name

    @property
    def _namespace(self) -> str:
        return self.cluster.namespace

    def service_address(self, service_name: str, port: int) -> str:
        return f"{service_name}.{self._namespace}.svc.{self.cluster_domain}:{port}"

    def master_service_name(self) -> str:
        return f"{self._name}-master-headless"

    def master_addresses(self) -> list[str]:
        count = self.cluster.spec.primary_masters.instance_count
        service = self.master_service_name()
        return [
            f"{self._name}-master-{i}.{service}.{self._namespace}.svc.{self.cluster_domain}"
            f":{MASTER_RPC_PORT}"
            for i in range(count)
        ]

    def get_http_proxies_address(self) -> str:
        if self.cluster.spec.http_proxy_address:
            return self.cluster.spec.http_proxy_address
        return self.service_address(f"{self._name}-http-proxies", HTTP_PROXY_PORT)

    def _cluster_connection(self) -> dict[str, Any]:
        return {
            "cluster_name": self._name,
            "primary_master": {
                "addresses": self.master_addresses(),
                "cell_tag": self.cluster.spec.primary_masters.cell_tag,
            },
        }

    def get_master_config(self) -> bytes:
        return _dump(
            {
                "rpc_port": MASTER_RPC_PORT,
                "primary_master": self._cluster_connection()["primary_master"],
            }
        )

    def get_exec_node_config(self, spec: ExecNodesSpec) -> bytes:
        return _dump(
            {
                "rpc_port": NODE_RPC_PORT,
                "cluster_connection": self._cluster_connection(),
                "flavors": ["exec"],
                "pool": spec.name,
            }
        )

    def get_native_client_config(self) -> bytes:
        return _dump({"driver": self._cluster_connection()})

    def get_ui_config(self) -> bytes:
        return _dump(
            {
                "clusters": [
                    {
                        "id": self._name,
                        "name": self._name,
                        "proxy": self.get_http_proxies_address(),
                    }
                ]
            }
        )
