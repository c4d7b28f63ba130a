"""Tool handlers for reading, summarising and patching Rancher-managed Kubernetes clusters."""

__version__ = "0.1.0"