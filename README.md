# rancher_tools

Tool handlers for looking at and patching Kubernetes clusters that Rancher
manages. Each handler takes a parameters dataclass and a `ToolRequest`, talks to
the clusters through a client that you supply, and returns a `ToolResult` whose
`text` is JSON.

## Modules

- `rancher_tools.tools`: `Tools` (every handler in one class), `ToolServer`
  (registers tools, lists them, calls them with JSON arguments) and
  `ToolDefinition`.
- `rancher_tools.workloads`: `WorkloadTools` and the parameter classes
  `ResourceParams`, `ListResourcesParams`, `SpecificResourceParams`,
  `GetNodesParams`.
- `rancher_tools.projects`: `ProjectTools` and `GetProjectParams`,
  `ListProjectsParams`, `ResourceUsageParams`.
- `rancher_tools.patching`: `PatchTools`, `JsonPatch`, `UpdateResourceParams`.
- `rancher_tools.usage`: `Sample`, `namespace_usage`, `to_namespace_summary`.
- `rancher_tools.quantity`: `Quantity`, `QuantityFormat`, `quantity_max`.
- `rancher_tools.selectors`: `label_selector_to_string`, `match_labels_selector`,
  `SelectorError`.
- `rancher_tools.responses`: `create_mcp_response`, `create_mcp_response_any`,
  `create_plan_response`, `PlanResource`, `ResourceRef`, `Operation`.
- `rancher_tools.base`: `ToolsClient`, `GetParams`, `ListParams`, `ToolRequest`,
  `ToolResult`, `NotFoundError`, `ToolsBase`.

## Registered tools

`Tools.add_tools(server)` registers these nine tools, each with the meta entry
`{"toolset": "rancher"}`:

- `getKubernetesResource`: one resource by kind, name, namespace and cluster.
- `listKubernetesResources`: resources of a kind, with an optional
  `labelSelector`. At most `limit` items are returned (10 when `limit` is 0 or
  less); when the list is cut short a note says how many there were in all.
- `inspectPod`: a pod, the Deployment, StatefulSet or DaemonSet that owns its
  ReplicaSet, the last 50 log lines of every container, and the pod's metrics
  when they can be fetched.
- `getDeployment`: a deployment and the pods its label selector matches.
- `getNodeMetrics`: all nodes of a cluster, and their metrics when available.
- `getProject`: a project, found by ID or by case-insensitive display name, and
  the namespaces labelled `field.cattle.io/projectId` with its ID.
- `listProjects`: all projects of a cluster.
- `listClusters`: every cluster known to Rancher.
- `getResourceUsage`: CPU and memory requests, limits and measured usage, and the
  number of running pods, for one namespace, one project or every project of a
  cluster. A pod's effective request or limit is the larger of the sum over its
  app containers and the largest value among its init containers.

Unless the tool set is read-only, two more are registered:

- `patchKubernetesResource`: applies a JSON Patch
  (`application/json-patch+json`) and returns the modified resource.
- `patchKubernetesResourcePlan`: returns the planned change without applying it.

## Usage

Provide an object that implements `rancher_tools.base.ToolsClient`:
`get_resource`, `get_resources`, `get_cluster_id`, `create_client_set` (whose
result has `pod_logs(namespace, name, container=..., tail_lines=...)`) and
`get_resource_interface` (whose result has `patch(name, patch_type, data)`). A
missing resource is reported by raising `NotFoundError`.

```python
from rancher_tools.base import ToolRequest
from rancher_tools.tools import Tools, ToolServer

tools = Tools(my_client, "https://rancher.example.com", read_only=True)
server = ToolServer()
tools.add_tools(server)

for definition in server.list_tools():
    print(definition.name, definition.input_schema)

result = server.call_tool(
    "listKubernetesResources",
    ToolRequest(token="token"),
    {"kind": "pod", "namespace": "default", "cluster": "local"},
)
print(result.text)
```

If the Rancher URL is left empty, the request's `R_url` header is used instead.
`call_tool` raises `KeyError` for an unknown tool, `ValueError` for a missing
required argument and `TypeError` for an argument of the wrong JSON type.

Planning a patch needs no cluster at all:

```python
from rancher_tools.patching import JsonPatch, UpdateResourceParams

params = UpdateResourceParams(
    name="test-config",
    namespace="default",
    kind="ConfigMap",
    cluster="local",
    patch=[JsonPatch(op="add", path="/data/key3", value="value3")],
)
plan = tools.update_kubernetes_resource_plan(ToolRequest(), params)
print(plan.text)
# [{"type": "update", "payload": [{"op": "add", "path": "/data/key3", "value": "value3"}], ...}]
```

Resource quantities such as `500m` or `1Gi` can be parsed, added, compared and
printed with `Quantity`:

```python
from rancher_tools.quantity import Quantity

print(Quantity.parse("512Mi") + Quantity.parse("512Mi"))  # 1Gi
```

## What this package does not do

- It has no client for Rancher or Kubernetes: you supply one that implements
  `ToolsClient`.
- `ToolServer` is an in-process registry; it does not listen on a network or
  speak any wire protocol.
- There are no tools for creating resources or projects, and no tool listing the
  container images of clusters.
- There is no command-line program.

## Running the tests

```
pip install -e ".[test]"
pytest
```