"""Data models for the cluster resource."""

from yt_operator.models.cluster import (
    ClusterSpec,
    ClusterState,
    ClusterStatus,
    ExecNodesSpec,
    InstanceSpec,
    MastersSpec,
    Spyt,
    SpytSpec,
    UISpec,
    UpdateState,
    Ytsaurus,
)

__all__ = [
    "ClusterSpec",
    "ClusterState",
    "ClusterStatus",
    "ExecNodesSpec",
    "InstanceSpec",
    "MastersSpec",
    "Spyt",
    "SpytSpec",
    "UISpec",
    "UpdateState",
    "Ytsaurus",
]
