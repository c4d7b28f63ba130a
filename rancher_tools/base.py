"""Shared pieces of the Rancher tool handlers: parameters, client contract and requests."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol

LOCAL_CLUSTER = "local"
"""Name of the Rancher management (local) cluster."""

URL_HEADER = "R_url"
"""Request header carrying the Rancher URL when none is configured."""

_log = logging.getLogger(__name__)


class NotFoundError(LookupError):
    """Raised by a client when the requested resource does not exist."""


@dataclass(frozen=True)
class GetParams:
    """Identifies a single resource to fetch."""

    cluster: str
    kind: str
    name: str = ""
    namespace: str = ""
    url: str = ""
    token: str = ""


@dataclass(frozen=True)
class ListParams:
    """Describes a list of resources to fetch."""

    cluster: str
    kind: str
    namespace: str = ""
    name: str = ""
    url: str = ""
    token: str = ""
    label_selector: str = ""


class ToolsClient(Protocol):
    """What the tool handlers need from a Kubernetes/Rancher client.

    Resources are plain JSON-like mappings. A missing resource is reported
    by raising :class:`NotFoundError`.
    """

    def get_resource(self, params: GetParams) -> Dict[str, Any]:
        """Fetch one resource."""
        ...

    def get_resources(self, params: ListParams) -> List[Dict[str, Any]]:
        """Fetch a list of resources."""
        ...

    def get_resource_interface(
        self, token: str, url: str, namespace: str, cluster: str, gvr: Any
    ) -> Any:
        """Return an object able to ``patch(name, patch_type, data)`` resources of ``gvr``."""
        ...

    def create_client_set(self, token: str, url: str, cluster: str) -> Any:
        """Return an object able to ``pod_logs(namespace, name, container, tail_lines)``."""
        ...

    def get_cluster_id(self, token: str, url: str, cluster_name_or_id: str) -> str:
        """Resolve a cluster name or ID to its ID."""
        ...


@dataclass(frozen=True)
class ToolRequest:
    """An incoming tool call: its HTTP headers and the caller's token."""

    headers: Mapping[str, str] = field(default_factory=dict)
    token: str = ""


@dataclass(frozen=True)
class ToolResult:
    """The text content returned by a tool."""

    text: str


class ToolsBase:
    """State shared by all tool handlers."""

    def __init__(self, client: ToolsClient, rancher_url: str = "", read_only: bool = False):
        self.client = client
        self.rancher_url = rancher_url
        self.read_only = read_only

    def rancher_url_for(self, request: Optional[ToolRequest]) -> str:
        """The configured Rancher URL, or the one sent in the request header."""
        if self.rancher_url:
            return self.rancher_url
        if request is None:
            return ""
        wanted = URL_HEADER.lower()
        return next(
            (value for key, value in request.headers.items() if key.lower() == wanted),
            "",
        )