"""Reconcilable parts of a cluster."""

from yt_operator.components.base import Component, ComponentBase
from yt_operator.components.exec_node import ExecNode
from yt_operator.components.init_job import InitJob
from yt_operator.components.master import Master
from yt_operator.components.microservice import Microservice
from yt_operator.components.server import Server
from yt_operator.components.spyt import Spyt
from yt_operator.components.ui import UI

__all__ = [
    "Component",
    "ComponentBase",
    "ExecNode",
    "InitJob",
    "Master",
    "Microservice",
    "Server",
    "Spyt",
    "UI",
]
