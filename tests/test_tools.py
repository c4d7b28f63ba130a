import json

import pytest

from rancher_tools.base import ToolRequest, ToolResult
from rancher_tools.tools import ToolDefinition, Tools, ToolServer

MUTATING = {"patchKubernetesResource", "patchKubernetesResourcePlan"}


class FakeClient:
    def __init__(self):
        self.get_calls = []
        self.list_calls = []

    def get_resource(self, params):
        self.get_calls.append(params)
        return {"kind": params.kind, "metadata": {"name": params.name}}

    def get_resources(self, params):
        self.list_calls.append(params)
        return [{"kind": params.kind, "metadata": {"name": "a"}}]


def _server(read_only, rancher_url="not-used-in-test", client=None):
    tools = Tools(client or FakeClient(), rancher_url, read_only)
    server = ToolServer("test-server", "v1.0.0")
    tools.add_tools(server)
    return server


def test_add_tools():
    listed = _server(False).list_tools()
    assert len(listed) == 11
    assert all(tool.meta["toolset"] == "rancher" for tool in listed)
    assert MUTATING <= {tool.name for tool in listed}


def test_add_tools_read_only():
    listed = _server(True).list_tools()
    assert len(listed) == 9
    names = {tool.name for tool in listed}
    assert not names & MUTATING
    assert all(tool.meta["toolset"] == "rancher" for tool in listed)


def test_list_clusters_schema_has_properties():
    tool = next(t for t in _server(True).list_tools() if t.name == "listClusters")
    assert tool.input_schema == {"type": "object", "properties": {}}


def test_inferred_schema_uses_json_names_and_required():
    tool = next(t for t in _server(True).list_tools() if t.name == "listKubernetesResources")
    schema = tool.input_schema
    assert set(schema["properties"]) == {"namespace", "kind", "cluster", "limit", "labelSelector"}
    assert sorted(schema["required"]) == ["cluster", "kind", "namespace"]
    assert schema["properties"]["limit"]["type"] == "integer"


def test_patch_schema_describes_array_of_operations():
    tool = next(t for t in _server(False).list_tools() if t.name == "patchKubernetesResource")
    patch = tool.input_schema["properties"]["patch"]
    assert patch["type"] == "array"
    assert patch["items"]["required"] == ["op", "path"]


def test_call_get_resource_uses_header_url():
    client = FakeClient()
    server = _server(True, rancher_url="", client=client)
    request = ToolRequest(headers={"R_url": "https://rancher.example.com"}, token="token")
    result = server.call_tool(
        "getKubernetesResource",
        request,
        {"name": "web", "namespace": "default", "kind": "pod", "cluster": "local"},
    )
    assert json.loads(result.text)["resources"] == [{"kind": "pod", "metadata": {"name": "web"}}]
    assert client.get_calls[0].url == "https://rancher.example.com"
    assert client.get_calls[0].token == "token"


def test_call_list_clusters_ignores_arguments():
    client = FakeClient()
    server = _server(True, client=client)
    result = server.call_tool("listClusters", ToolRequest(), None)
    assert json.loads(result.text)["cluster"] == "local"
    assert client.list_calls[0].kind == "management.cattle.io.cluster"


def test_call_patch_plan():
    server = _server(False)
    result = server.call_tool(
        "patchKubernetesResourcePlan",
        ToolRequest(),
        {
            "name": "my-ns",
            "kind": "Namespace",
            "cluster": "local",
            "patch": [{"op": "add", "path": "/metadata/labels/team", "value": "platform"}],
        },
    )
    assert json.loads(result.text) == [
        {
            "type": "update",
            "payload": [{"op": "add", "path": "/metadata/labels/team", "value": "platform"}],
            "resource": {"name": "my-ns", "kind": "Namespace", "cluster": "local", "namespace": ""},
        }
    ]


def test_call_unknown_tool():
    with pytest.raises(KeyError, match="patchKubernetesResource"):
        _server(True).call_tool("patchKubernetesResource", ToolRequest(), {})


def test_call_missing_required_argument():
    with pytest.raises(ValueError, match="'cluster'"):
        _server(True).call_tool("getNodeMetrics", ToolRequest(), {})


def test_call_wrong_argument_type():
    with pytest.raises(TypeError, match="'limit'"):
        _server(True).call_tool(
            "listKubernetesResources",
            ToolRequest(),
            {"namespace": "", "kind": "pod", "cluster": "local", "limit": "ten"},
        )


def test_add_tool_replaces_same_name():
    server = ToolServer()

    def first(request, params):
        return ToolResult("first")

    def second(request, params):
        return ToolResult("second")

    server.add_tool(ToolDefinition(name="echo", description="one"), first)
    server.add_tool(ToolDefinition(name="echo", description="two"), second)
    assert [tool.description for tool in server.list_tools()] == ["two"]
    assert server.call_tool("echo", ToolRequest()).text == "second"