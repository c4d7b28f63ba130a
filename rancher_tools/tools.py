"""Registration of the Rancher tools and a small server that lists and calls them."""

from __future__ import annotations

import dataclasses
from dataclasses import MISSING, dataclass, field
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Tuple,
    get_args,
    get_origin,
)

from .base import ToolRequest, ToolResult
from .patching import JsonPatch, PatchTools, UpdateResourceParams
from .projects import GetProjectParams, ListProjectsParams, ProjectTools, ResourceUsageParams
from .workloads import (
    GetNodesParams,
    ListResourcesParams,
    ResourceParams,
    SpecificResourceParams,
    WorkloadTools,
)

TOOLSET = "rancher"
TOOLSET_ANNOTATION = "toolset"

_JSON_TYPES = {str: "string", bool: "boolean", int: "integer", float: "number"}

# Names that may appear in string annotations of parameter dataclasses.
_KNOWN_NAMES: Dict[str, Any] = {
    "str": str,
    "bool": bool,
    "int": int,
    "float": float,
    "Any": Any,
    "JsonPatch": JsonPatch,
}

_SEQUENCE_PREFIXES = ("List[", "list[", "Sequence[", "Tuple[", "tuple[")

Handler = Callable[[ToolRequest, Any], ToolResult]


@dataclass(frozen=True)
class ToolDefinition:
    """A tool as advertised to clients."""

    name: str
    description: str
    meta: Dict[str, Any] = field(default_factory=dict)
    input_schema: Optional[Dict[str, Any]] = None


def _json_name(f: dataclasses.Field) -> str:
    return f.metadata.get("json", f.name)


def _is_required(f: dataclasses.Field) -> bool:
    return f.default is MISSING and f.default_factory is MISSING


def _split_top_level(text: str) -> List[str]:
    parts: List[str] = []
    depth = 0
    current = ""
    for char in text:
        if char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
        if char == "," and depth == 0:
            parts.append(current.strip())
            current = ""
        else:
            current += char
    if current.strip():
        parts.append(current.strip())
    return parts


def _schema_for_name(text: str) -> Dict[str, Any]:
    text = text.strip().strip("'\"")
    for prefix in _SEQUENCE_PREFIXES:
        if text.startswith(prefix) and text.endswith("]"):
            args = [arg for arg in _split_top_level(text[len(prefix):-1]) if arg != "..."]
            return {"type": "array", "items": _schema_for_name(args[0]) if args else {}}
    resolved = _KNOWN_NAMES.get(text)
    if resolved is None or resolved is Any:
        return {}
    return _schema_for(resolved)


def _schema_for(tp: Any) -> Dict[str, Any]:
    if isinstance(tp, str):
        return _schema_for_name(tp)
    origin = get_origin(tp)
    if origin in (list, tuple):
        args = [arg for arg in get_args(tp) if arg is not Ellipsis]
        return {"type": "array", "items": _schema_for(args[0]) if args else {}}
    if isinstance(tp, type) and dataclasses.is_dataclass(tp):
        return _object_schema(tp)
    if tp in _JSON_TYPES:
        return {"type": _JSON_TYPES[tp]}
    return {}


def _object_schema(params_type: type) -> Dict[str, Any]:
    properties: Dict[str, Any] = {}
    required: List[str] = []
    for f in dataclasses.fields(params_type):
        schema = _schema_for(f.type)
        if "description" in f.metadata:
            schema["description"] = f.metadata["description"]
        properties[_json_name(f)] = schema
        if _is_required(f):
            required.append(_json_name(f))
    schema: Dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


def _scalar_type(tp: Any) -> Optional[type]:
    if isinstance(tp, str):
        tp = _KNOWN_NAMES.get(tp.strip().strip("'\""))
    return tp if tp in _JSON_TYPES else None


def _check(key: str, tp: Any, value: Any) -> Any:
    expected = _scalar_type(tp)
    if expected is None:
        return value
    if isinstance(value, bool) and expected is not bool:
        raise TypeError(f"argument {key!r} must be of type {_JSON_TYPES[expected]}")
    if expected is float and isinstance(value, int):
        return float(value)
    if not isinstance(value, expected):
        raise TypeError(f"argument {key!r} must be of type {_JSON_TYPES[expected]}")
    return value


def _build_params(params_type: Optional[type], arguments: Mapping[str, Any]) -> Any:
    if params_type is None:
        return None
    values: Dict[str, Any] = {}
    for f in dataclasses.fields(params_type):
        key = _json_name(f)
        if key in arguments:
            values[f.name] = _check(key, f.type, arguments[key])
        elif _is_required(f):
            raise ValueError(f"missing required argument {key!r}")
    return params_type(**values)


class ToolServer:
    """Holds registered tools and dispatches calls to their handlers."""

    def __init__(self, name: str = "rancher-tools", version: str = "") -> None:
        self.name = name
        self.version = version
        self._tools: Dict[str, Tuple[ToolDefinition, Handler, Optional[type]]] = {}

    def add_tool(
        self, tool: ToolDefinition, handler: Handler, params_type: Optional[type] = None
    ) -> None:
        """Register a tool, replacing any tool of the same name.

        Without an explicit input schema one is derived from ``params_type``.
        """
        if tool.input_schema is None:
            schema = (
                _object_schema(params_type)
                if params_type is not None
                else {"type": "object", "properties": {}}
            )
            tool = dataclasses.replace(tool, input_schema=schema)
        self._tools[tool.name] = (tool, handler, params_type)

    def list_tools(self) -> List[ToolDefinition]:
        """Every registered tool, in registration order."""
        return [tool for tool, _, _ in self._tools.values()]

    def call_tool(
        self, name: str, request: ToolRequest, arguments: Optional[Mapping[str, Any]] = None
    ) -> ToolResult:
        """Call a tool with JSON arguments."""
        try:
            _, handler, params_type = self._tools[name]
        except KeyError:
            raise KeyError(f"unknown tool {name!r}") from None
        params = _build_params(params_type, arguments or {})
        return handler(request, params)


_PATCH_EXAMPLE = """

Example of the patch parameter:
[{"op": "replace", "path": "/spec/replicas", "value": 3}]"""


class Tools(WorkloadTools, ProjectTools, PatchTools):
    """All Rancher Kubernetes tools."""

    def add_tools(self, server: ToolServer) -> None:
        """Register the tools with ``server``; mutating tools only when not read-only."""

        def define(name: str, description: str, **extra: Any) -> ToolDefinition:
            return ToolDefinition(
                name=name,
                description=description,
                meta={TOOLSET_ANNOTATION: TOOLSET},
                **extra,
            )

        server.add_tool(
            define(
                "getKubernetesResource",
                "Fetches a Kubernetes resource from the cluster. The namespace must be empty "
                "for all namespaces or cluster-wide resources.",
            ),
            self.get_resource,
            ResourceParams,
        )
        server.add_tool(
            define(
                "listKubernetesResources",
                "Returns a list of Kubernetes resources. The namespace must be empty for all "
                "namespaces or cluster-wide resources.",
            ),
            self.list_kubernetes_resources,
            ListResourcesParams,
        )
        server.add_tool(
            define(
                "inspectPod",
                "Returns all information related to a Pod. It includes its parent Deployment "
                "or StatefulSet, the CPU and memory consumption and the logs. It must be used "
                "for troubleshooting problems with pods.",
            ),
            self.inspect_pod,
            SpecificResourceParams,
        )
        server.add_tool(
            define(
                "getDeployment",
                "Returns a Deployment and its Pods. It must be used for troubleshooting "
                "problems with deployments.",
            ),
            self.get_deployment_details,
            SpecificResourceParams,
        )
        server.add_tool(
            define(
                "getNodeMetrics",
                "Returns a list of all nodes in a specified Kubernetes cluster, including "
                "their current resource utilization metrics.",
            ),
            self.get_nodes,
            GetNodesParams,
        )
        server.add_tool(
            define("getProject", "Returns a project resource and its associated namespaces."),
            self.get_project,
            GetProjectParams,
        )
        server.add_tool(
            define("listProjects", "Returns a list of project resources for a specified cluster."),
            self.list_projects,
            ListProjectsParams,
        )
        # An explicit "properties" member keeps clients that require it satisfied.
        server.add_tool(
            define(
                "listClusters",
                "Returns a list of all Rancher clusters, including local and downstream "
                "clusters.",
                input_schema={"type": "object", "properties": {}},
            ),
            self.list_clusters,
            None,
        )
        server.add_tool(
            define(
                "getResourceUsage",
                "Returns the resource usage for a namespace, project or all projects in a "
                "cluster.\nUsage totals are provided for the entire project as well as broken "
                "down by namespace.\nThe resource usage includes CPU and memory requests, "
                "limits and actual usage, as well as the total number of pods.",
            ),
            self.get_resource_usage,
            ResourceUsageParams,
        )

        if self.read_only:
            return

        server.add_tool(
            define(
                "patchKubernetesResource",
                "Patches a Kubernetes resource using a JSON patch. Don't ask for confirmation. "
                "The namespace must be empty for cluster-wide resources. The content type used "
                "is application/json-patch+json. Returns the modified resource."
                + _PATCH_EXAMPLE,
            ),
            self.update_kubernetes_resource,
            UpdateResourceParams,
        )
        server.add_tool(
            define(
                "patchKubernetesResourcePlan",
                "Plans to patch a Kubernetes resource using a JSON patch. It returns the JSON "
                "representation of the planned update without actually applying it in the "
                "cluster. Only used for displaying the patch when using human validation. The "
                "namespace must be empty for cluster-wide resources. The content type used is "
                "application/json-patch+json." + _PATCH_EXAMPLE,
            ),
            self.update_kubernetes_resource_plan,
            UpdateResourceParams,
        )