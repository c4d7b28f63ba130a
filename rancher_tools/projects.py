"""Tools about Rancher projects and their resource usage."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from .base import (
    LOCAL_CLUSTER,
    GetParams,
    ListParams,
    NotFoundError,
    ToolRequest,
    ToolResult,
    ToolsBase,
)
from .responses import create_mcp_response, create_mcp_response_any
from .selectors import match_labels_selector
from .usage import Sample, namespace_usage, to_namespace_summary

PROJECT_ID_LABEL = "field.cattle.io/projectId"

_log = logging.getLogger(__name__)


def _describe(text: str) -> Dict[str, str]:
    return {"description": text}


@dataclass(frozen=True)
class GetProjectParams:
    """A project, by name or display name, within a cluster."""

    name: str = field(metadata=_describe("the name of the project resource"))
    cluster: str = field(
        metadata=_describe("the name of the cluster resource the project belongs to")
    )


@dataclass(frozen=True)
class ListProjectsParams:
    """The cluster whose projects are wanted."""

    cluster: str = field(
        metadata=_describe("the name of the cluster resource the project belongs to")
    )


@dataclass(frozen=True)
class ResourceUsageParams:
    """Which usage to report: one namespace, one project or all projects."""

    cluster: str = field(metadata=_describe("the name of the cluster resource"))
    project: str = field(
        default="",
        metadata=_describe(
            "(optional) the name of the project to filter by. If omitted, data for all "
            "projects in the cluster is returned"
        ),
    )
    namespace: str = field(
        default="",
        metadata=_describe(
            "(optional) the name of a specific namespace. If provided, only data for this "
            "namespace is returned"
        ),
    )


@contextmanager
def _logged(tool: str, message: str) -> Iterator[None]:
    try:
        yield
    except Exception as err:
        _log.error("%s (tool=%s): %s", message, tool, err)
        raise


def _name(resource: Mapping[str, Any]) -> str:
    metadata = resource.get("metadata")
    return metadata.get("name", "") if isinstance(metadata, Mapping) else ""


def _display_name(resource: Mapping[str, Any]) -> Optional[str]:
    """The project's ``spec.displayName``; ``None`` when absent."""
    spec = resource.get("spec")
    if spec is None:
        return None
    if not isinstance(spec, Mapping):
        raise ValueError(".spec accessor error: not an object")
    value = spec.get("displayName")
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f".spec.displayName accessor error: {value!r} is not a string")
    return value


class ProjectTools(ToolsBase):
    """Tools for projects, their namespaces and their resource usage."""

    def get_project_id(
        self, token: str, url: str, cluster_id: str, project: str
    ) -> Tuple[str, Dict[str, Any]]:
        """Resolve a project ID or display name to its ID and resource."""
        try:
            resource = self.client.get_resource(
                GetParams(
                    cluster=LOCAL_CLUSTER,
                    kind="project",
                    namespace=cluster_id,
                    name=project,
                    url=url,
                    token=token,
                )
            )
            return _name(resource), resource
        except NotFoundError:
            pass

        resources = self.client.get_resources(
            ListParams(
                cluster=LOCAL_CLUSTER,
                kind="project",
                namespace=cluster_id,
                url=url,
                token=token,
            )
        )
        wanted = project.casefold()
        for resource in resources:
            try:
                display_name = _display_name(resource)
            except ValueError:
                continue
            if display_name is not None and display_name.casefold() == wanted:
                return _name(resource), resource

        raise NotFoundError(f"project '{project}' not found in cluster '{cluster_id}'")

    def _project_namespaces(
        self, request: ToolRequest, cluster_id: str, project_id: str
    ) -> List[Dict[str, Any]]:
        return self.client.get_resources(
            ListParams(
                cluster=cluster_id,
                kind="namespace",
                label_selector=match_labels_selector({PROJECT_ID_LABEL: project_id}),
                url=self.rancher_url_for(request),
                token=request.token,
            )
        )

    def get_project(self, request: ToolRequest, params: GetProjectParams) -> ToolResult:
        """Return a project and the namespaces that belong to it."""
        _log.debug("getProject called")
        url = self.rancher_url_for(request)
        with _logged("getProject", "failed to get cluster ID"):
            cluster_id = self.client.get_cluster_id(request.token, url, params.cluster)
        with _logged("getProject", "failed to get project"):
            project_id, project = self.get_project_id(
                request.token, url, cluster_id, params.name
            )
        with _logged("getProject", "failed to get namespaces for project"):
            namespaces = self._project_namespaces(request, cluster_id, project_id)
        return ToolResult(create_mcp_response([project, *namespaces], cluster_id))

    def list_projects(self, request: ToolRequest, params: ListProjectsParams) -> ToolResult:
        """Return every project of a cluster."""
        _log.debug("listProjects called")
        url = self.rancher_url_for(request)
        with _logged("listProjects", "failed to get cluster ID"):
            cluster_id = self.client.get_cluster_id(request.token, url, params.cluster)
        with _logged("listProjects", "failed to list projects"):
            projects = self.client.get_resources(
                ListParams(
                    cluster=LOCAL_CLUSTER,
                    kind="project",
                    namespace=cluster_id,
                    url=url,
                    token=request.token,
                )
            )
        return ToolResult(create_mcp_response(projects, cluster_id))

    def get_resource_usage(
        self, request: ToolRequest, params: ResourceUsageParams
    ) -> ToolResult:
        """Report resource usage of a namespace, a project or all projects of a cluster."""
        _log.debug("getResourceUsage called")
        url = self.rancher_url_for(request)
        with _logged("getResourceUsage", "failed to get cluster ID"):
            cluster_id = self.client.get_cluster_id(request.token, url, params.cluster)

        summary: Dict[str, Any] = {"cluster": cluster_id}

        if params.namespace:
            # The namespace must exist; otherwise an error beats an empty usage.
            with _logged("getResourceUsage", "failed to get namespace"):
                namespace = self.client.get_resource(
                    GetParams(
                        cluster=cluster_id,
                        kind="namespace",
                        name=params.namespace,
                        url=url,
                        token=request.token,
                    )
                )
            with _logged("getResourceUsage", "failed to get resource usage for namespace"):
                totals = self.get_namespace_resource_usage(
                    request, cluster_id, _name(namespace)
                )
            summary["namespace"] = to_namespace_summary(params.namespace, totals)
        else:
            if params.project:
                with _logged("getResourceUsage", "failed to get project"):
                    _, project = self.get_project_id(
                        request.token, url, cluster_id, params.project
                    )
                projects = [project]
            else:
                with _logged("getResourceUsage", "failed to list projects"):
                    projects = self.client.get_resources(
                        ListParams(
                            cluster=LOCAL_CLUSTER,
                            kind="project",
                            namespace=cluster_id,
                            url=url,
                            token=request.token,
                        )
                    )
            project_summaries = [
                self._project_summary(request, cluster_id, project) for project in projects
            ]
            summary["projects"] = project_summaries or None

        return ToolResult(create_mcp_response_any(summary))

    def _project_summary(
        self, request: ToolRequest, cluster_id: str, project: Mapping[str, Any]
    ) -> Dict[str, Any]:
        with _logged("getResourceUsage", "failed to get displayName from project"):
            display_name = _display_name(project) or ""
        project_id = _name(project)
        with _logged("getResourceUsage", "failed to get namespaces for project"):
            namespaces = self._project_namespaces(request, cluster_id, project_id)

        totals = Sample()
        by_namespace: Dict[str, Sample] = {}
        for namespace in namespaces:
            namespace_name = _name(namespace)
            with _logged("getResourceUsage", "failed to get resource usage for namespace"):
                namespace_totals = self.get_namespace_resource_usage(
                    request, cluster_id, namespace_name
                )
            totals = totals.merge(namespace_totals)
            by_namespace[namespace_name] = namespace_totals

        namespace_summaries = [
            to_namespace_summary(name, sample) for name, sample in by_namespace.items()
        ]
        return {
            "name": project_id,
            "displayName": display_name,
            "totals": totals.totals(),
            "namespaces": namespace_summaries or None,
        }

    def get_namespace_resource_usage(
        self, request: ToolRequest, cluster_id: str, namespace: str
    ) -> Sample:
        """Total requests, limits and usage of the running pods in a namespace."""
        url = self.rancher_url_for(request)
        try:
            pods = self.client.get_resources(
                ListParams(
                    cluster=cluster_id,
                    kind="pod",
                    namespace=namespace,
                    url=url,
                    token=request.token,
                )
            )
        except Exception as err:
            raise RuntimeError(f"failed to get pods for namespace {namespace}: {err}") from err

        try:
            metrics = self.client.get_resources(
                ListParams(
                    cluster=cluster_id,
                    kind="pod.metrics.k8s.io",
                    namespace=namespace,
                    url=url,
                    token=request.token,
                )
            )
        except Exception as err:
            # Metrics Server might not be installed.
            _log.warning(
                "failed to get pod metrics, will skip actual usage data "
                "(tool=getResourceUsage, namespace=%s): %s",
                namespace,
                err,
            )
            metrics = []

        return namespace_usage(pods, metrics)