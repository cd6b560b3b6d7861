"""Reconciliation core of a Kubernetes operator for YTsaurus clusters."""

__version__ = "0.1.0"
