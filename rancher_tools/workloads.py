"""Tools that read workloads, nodes and generic resources from a cluster."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional

from .base import LOCAL_CLUSTER, GetParams, ListParams, ToolRequest, ToolResult, ToolsBase
from .responses import create_mcp_response
from .selectors import SelectorError, label_selector_to_string

DEFAULT_LIST_LIMIT = 10
POD_LOGS_TAIL_LINES = 50
MANAGEMENT_CLUSTER_KIND = "management.cattle.io.cluster"
_PARENT_KINDS = ("Deployment", "StatefulSet", "DaemonSet")

_log = logging.getLogger(__name__)


def _describe(text: str, json_name: Optional[str] = None) -> Dict[str, str]:
    meta = {"description": text}
    if json_name is not None:
        meta["json"] = json_name
    return meta


@dataclass(frozen=True)
class SpecificResourceParams:
    """A resource of a known kind within a cluster."""

    name: str = field(metadata=_describe("the name of the resource"))
    namespace: str = field(metadata=_describe("the namespace where the resource is located"))
    cluster: str = field(metadata=_describe("the name of the Kubernetes cluster"))


@dataclass(frozen=True)
class ResourceParams:
    """A specific named resource within a cluster."""

    name: str = field(metadata=_describe("the name of the Kubernetes resource"))
    namespace: str = field(
        metadata=_describe(
            "the namespace of the resource. It must be empty for all namespaces "
            "or cluster-wide resources"
        )
    )
    kind: str = field(
        metadata=_describe("the kind of the Kubernetes resource (e.g. Deployment, Service)")
    )
    cluster: str = field(
        metadata=_describe("the name of the Kubernetes cluster managed by Rancher")
    )


@dataclass(frozen=True)
class GetNodesParams:
    """The cluster whose nodes are wanted."""

    cluster: str = field(metadata=_describe("the name of the Kubernetes cluster"))


@dataclass(frozen=True)
class ListResourcesParams:
    """Which resources to list and how many to return."""

    namespace: str = field(
        metadata=_describe(
            "the namespace where the resources are located. It must be empty for all "
            "namespaces or cluster-wide resources"
        )
    )
    kind: str = field(
        metadata=_describe("the type of Kubernetes resource (e.g., Pod, Deployment, Service)")
    )
    cluster: str = field(metadata=_describe("the name of the Kubernetes cluster"))
    limit: int = field(
        default=0,
        metadata=_describe("maximum number of resources to return, defaults to 10"),
    )
    label_selector: str = field(
        default="",
        metadata=_describe(
            "optional label selector to filter resources (e.g. app=nginx)", "labelSelector"
        ),
    )


@contextmanager
def _logged(tool: str, message: str) -> Iterator[None]:
    try:
        yield
    except Exception as err:
        _log.error("%s (tool=%s): %s", message, tool, err)
        raise


def _section(obj: Mapping[str, Any], key: str, kind: str) -> Mapping[str, Any]:
    value = obj.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"failed to convert unstructured object to {kind}: {key} is not an object")
    return value


def _items(obj: Mapping[str, Any], key: str, kind: str) -> List[Mapping[str, Any]]:
    value = obj.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, Mapping) for item in value):
        raise ValueError(f"failed to convert unstructured object to {kind}: {key} is not a list")
    return value


def _owner_references(obj: Mapping[str, Any], kind: str) -> List[Mapping[str, Any]]:
    return _items(_section(obj, "metadata", kind), "ownerReferences", kind)


class WorkloadTools(ToolsBase):
    """Read-only tools for resources, pods, deployments, nodes and clusters."""

    def get_resource(self, request: ToolRequest, params: ResourceParams) -> ToolResult:
        """Fetch one Kubernetes resource."""
        _log.debug("getKubernetesResource called")
        with _logged("getKubernetesResource", "failed to get resource"):
            resource = self.client.get_resource(
                GetParams(
                    cluster=params.cluster,
                    kind=params.kind,
                    namespace=params.namespace,
                    name=params.name,
                    url=self.rancher_url_for(request),
                    token=request.token,
                )
            )
        return ToolResult(create_mcp_response([resource], params.cluster))

    def list_kubernetes_resources(
        self, request: ToolRequest, params: ListResourcesParams
    ) -> ToolResult:
        """List resources of a kind, truncated to the requested limit."""
        _log.debug("listKubernetesResource called")
        limit = params.limit if params.limit > 0 else DEFAULT_LIST_LIMIT
        with _logged("listKubernetesResource", "failed to list resources"):
            resources = self.client.get_resources(
                ListParams(
                    cluster=params.cluster,
                    kind=params.kind,
                    namespace=params.namespace,
                    url=self.rancher_url_for(request),
                    token=request.token,
                    label_selector=params.label_selector,
                )
            )

        total = len(resources)
        if total > limit:
            note = (
                f"Results were limited to {limit} items out of {total} total. "
                "There may be more resources matching the query. "
                "Use a namespace or label selector to narrow results, or increase the limit."
            )
            text = create_mcp_response(resources[:limit], params.cluster, note)
        else:
            text = create_mcp_response(resources, params.cluster)
        return ToolResult(text)

    def inspect_pod(self, request: ToolRequest, params: SpecificResourceParams) -> ToolResult:
        """Return a pod with its parent workload, logs and metrics if available."""
        _log.debug("inspectPod called")
        url = self.rancher_url_for(request)
        token = request.token

        def fetch(kind: str, name: str) -> Dict[str, Any]:
            return self.client.get_resource(
                GetParams(
                    cluster=params.cluster,
                    kind=kind,
                    namespace=params.namespace,
                    name=name,
                    url=url,
                    token=token,
                )
            )

        with _logged("inspectPod", "failed to get Pod"):
            pod = fetch("pod", params.name)

        with _logged("inspectPod", "failed to convert unstructured object to Pod"):
            replica_set_name = next(
                (ref.get("name", "") for ref in _owner_references(pod, "Pod")
                 if ref.get("kind") == "ReplicaSet"),
                "",
            )

        with _logged("inspectPod", "failed to get ReplicaSet"):
            replica_set = fetch("replicaset", replica_set_name)

        with _logged("inspectPod", "failed to convert unstructured object to ReplicaSet"):
            parent_kind, parent_name = next(
                (
                    (ref.get("kind", ""), ref.get("name", ""))
                    for ref in _owner_references(replica_set, "Pod")
                    if ref.get("kind") in _PARENT_KINDS
                ),
                ("", ""),
            )

        with _logged("inspectPod", "failed to get parent resource"):
            parent = fetch(parent_kind, parent_name)

        # Metrics Server might not be installed in the cluster.
        try:
            pod_metrics: Optional[Dict[str, Any]] = fetch("pod.metrics.k8s.io", params.name)
        except Exception:
            pod_metrics = None

        with _logged("inspectPod", "failed to get pod logs"):
            logs = self.get_pod_logs(url, params.cluster, token, pod)

        resources = [pod, parent, logs]
        if pod_metrics is not None:
            resources.append(pod_metrics)
        return ToolResult(create_mcp_response(resources, params.cluster))

    def get_pod_logs(
        self, url: str, cluster: str, token: str, pod: Mapping[str, Any]
    ) -> Dict[str, Any]:
        """Collect the last lines of log of every container, keyed by container name."""
        try:
            client_set = self.client.create_client_set(token, url, cluster)
        except Exception as err:
            raise RuntimeError(f"failed to create clientset: {err}") from err

        metadata = _section(pod, "metadata", "Pod")
        containers = _items(_section(pod, "spec", "Pod"), "containers", "Pod")
        logs: Dict[str, Any] = {}
        for container in containers:
            container_name = container.get("name", "")
            try:
                text = client_set.pod_logs(
                    metadata.get("namespace", ""),
                    metadata.get("name", ""),
                    container=container_name,
                    tail_lines=POD_LOGS_TAIL_LINES,
                )
            except Exception as err:
                raise RuntimeError(f"failed to open log stream: {err}") from err
            if isinstance(text, bytes):
                text = text.decode("utf-8", errors="replace")
            logs[container_name] = text
        return {"pod-logs": logs}

    def get_deployment_details(
        self, request: ToolRequest, params: SpecificResourceParams
    ) -> ToolResult:
        """Return a deployment together with the pods its selector matches."""
        _log.debug("getDeploymentDetails called")
        url = self.rancher_url_for(request)
        with _logged("getDeploymentDetails", "failed to get deployment"):
            deployment = self.client.get_resource(
                GetParams(
                    cluster=params.cluster,
                    kind="deployment",
                    namespace=params.namespace,
                    name=params.name,
                    url=url,
                    token=request.token,
                )
            )

        with _logged("getDeploymentDetails", "failed convert unstructured object to Deployment"):
            selector = _section(deployment, "spec", "Pod").get("selector")

        with _logged("getDeploymentDetails", "failed create label selector"):
            try:
                selector_text = label_selector_to_string(selector)
            except SelectorError as err:
                raise SelectorError(f"failed to convert label selector: {err}") from err

        with _logged("getDeploymentDetails", "failed to get pods"):
            try:
                pods = self.client.get_resources(
                    ListParams(
                        cluster=params.cluster,
                        kind="pod",
                        namespace=params.namespace,
                        name=params.name,
                        url=url,
                        token=request.token,
                        label_selector=selector_text,
                    )
                )
            except Exception as err:
                raise RuntimeError(f"failed to get pods: {err}") from err

        return ToolResult(create_mcp_response([deployment, *pods], params.cluster))

    def get_nodes(self, request: ToolRequest, params: GetNodesParams) -> ToolResult:
        """Return all nodes of a cluster and their metrics when available."""
        _log.debug("getNodes called")
        url = self.rancher_url_for(request)
        with _logged("getNodes", "failed to get nodes"):
            nodes = self.client.get_resources(
                ListParams(cluster=params.cluster, kind="node", url=url, token=request.token)
            )

        # Metrics Server might not be installed in the cluster.
        try:
            metrics = self.client.get_resources(
                ListParams(
                    cluster=params.cluster,
                    kind="node.metrics.k8s.io",
                    url=url,
                    token=request.token,
                )
            )
        except Exception:
            metrics = []

        return ToolResult(create_mcp_response([*nodes, *metrics], params.cluster))

    def list_clusters(self, request: ToolRequest, params: Any = None) -> ToolResult:
        """List every cluster known to Rancher."""
        _log.debug("listClusters called")
        with _logged("listClusters", "failed to list clusters"):
            clusters = self.client.get_resources(
                ListParams(
                    cluster=LOCAL_CLUSTER,
                    kind=MANAGEMENT_CLUSTER_KIND,
                    url=self.rancher_url_for(request),
                    token=request.token,
                )
            )
        return ToolResult(create_mcp_response(clusters, LOCAL_CLUSTER))